"""
Leitner box schemas.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class CreateCardRequest(BaseModel):
    """Request to save a word into the Leitner box."""
    word: str = Field(..., description="Word to save; normalized to uppercase letters")
    meaning: Optional[str] = Field(None, description="Meaning of the word")
    notes: Optional[str] = Field(None, description="Personal notes about the word")
    source_word_ref: Optional[str] = Field(None, description="Reference to the source word in the content catalog")
    source_level_ref: Optional[str] = Field(None, description="Reference to the level where the word was found")

    class Config:
        json_schema_extra = {
            "example": {
                "word": "apple",
                "meaning": "a round fruit",
                "notes": "seen in level 3",
                "source_word_ref": "65a1f0c2e4b0a1b2c3d4e5f6",
                "source_level_ref": "65a1f0c2e4b0a1b2c3d4e5f7"
            }
        }


class BatchCreateCardsRequest(BaseModel):
    """Request to save several words at once."""
    words: List[str] = Field(..., min_length=1, description="Words to save")
    source_level_ref: Optional[str] = Field(None, description="Level shared by all words")


class ReviewCardRequest(BaseModel):
    """Request to record a review outcome."""
    outcome: str = Field(..., description="Review outcome: 'success' or 'fail'")

    class Config:
        json_schema_extra = {
            "example": {
                "outcome": "success"
            }
        }


class UpdateNotesRequest(BaseModel):
    """Request to replace a card's notes."""
    notes: Optional[str] = Field(None, description="New notes; empty clears them")


class CardStats(BaseModel):
    """Review counters for a card."""
    repetitions: int
    successful_reviews: int
    failed_reviews: int


class CardResponse(BaseModel):
    """Card response schema."""
    id: int
    owner_id: int
    word: str
    meaning: Optional[str] = None
    notes: Optional[str] = None
    source_word_ref: Optional[str] = None
    source_level_ref: Optional[str] = None
    stage: int
    next_review_at: datetime
    last_reviewed_at: Optional[datetime] = None
    last_result: Optional[str] = None
    stats: CardStats
    accuracy: int = Field(..., description="Percentage of successful reviews")
    is_archived: bool
    is_due: bool
    created_at: datetime
    updated_at: datetime


class CreateCardResponse(BaseModel):
    """Response from saving a word."""
    message: str
    created: bool = Field(..., description="True when a new card was created, False when merged")
    card: CardResponse


class BatchFailure(BaseModel):
    """A word that could not be saved."""
    word: str
    reason: str


class BatchCreateCardsResponse(BaseModel):
    """Response from saving several words."""
    message: str
    added: List[str]
    merged: List[str]
    failed: List[BatchFailure]


class LeitnerSummary(BaseModel):
    """Summary statistics over an owner's cards."""
    total: int
    due_count: int
    upcoming_count: int
    mastered_count: int
    stage_counts: Dict[int, int]
    reviewed_today: int
    new_today: int
    last_review_at: Optional[datetime] = None
    ready_percentage: int
    total_reviews: int
    average_accuracy: int


class CardListResponse(BaseModel):
    """Cards plus their summary."""
    cards: List[CardResponse]
    summary: LeitnerSummary


class MessageResponse(BaseModel):
    """Plain message response."""
    message: str
