"""
LeitnerCard model.
"""
from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint, Column, DateTime, UniqueConstraint, Index
from typing import Optional
from datetime import datetime

from leitner_box.core.clock import utc_now
from leitner_box.utils.number_utils import percentage

MAX_STAGE = 5
MIN_STAGE = 1

WORD_MIN_LENGTH = 2
WORD_MAX_LENGTH = 32
MEANING_MAX_LENGTH = 300
NOTES_MAX_LENGTH = 500


class LeitnerCard(SQLModel, table=True):
    """LeitnerCard table - one word being scheduled for one learner."""
    __tablename__ = "leitner_card"
    __table_args__ = (
        UniqueConstraint("owner_id", "word", name="uq_leitner_card_owner_word"),
        Index("ix_leitner_card_owner_next_review", "owner_id", "next_review_at"),
        Index("ix_leitner_card_owner_stage", "owner_id", "stage"),
        CheckConstraint(f"stage BETWEEN {MIN_STAGE} AND {MAX_STAGE}", name="leitner_card_stage_check"),
        CheckConstraint(
            "last_result IS NULL OR last_result IN ('success', 'fail')",
            name="leitner_card_last_result_check",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: int = Field(index=True)
    word: str = Field(max_length=WORD_MAX_LENGTH)  # Normalized uppercase letters
    meaning: Optional[str] = Field(default=None, max_length=MEANING_MAX_LENGTH)
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)

    # Lookup-only references into the gameplay content catalog
    source_word_ref: Optional[str] = Field(default=None)
    source_level_ref: Optional[str] = Field(default=None)

    stage: int = Field(default=MIN_STAGE)
    # Instants are naive UTC, stored in plain DateTime columns
    next_review_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime, nullable=False))
    last_reviewed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    last_result: Optional[str] = None  # 'success', 'fail' or None before the first review

    repetitions: int = Field(default=0)
    successful_reviews: int = Field(default=0)
    failed_reviews: int = Field(default=0)

    is_archived: bool = Field(default=False)
    version: int = Field(default=1)  # Bumped on every write for optimistic concurrency

    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime, nullable=False))

    def is_due(self, now: datetime) -> bool:
        """A card is due once its next review instant has passed."""
        return self.next_review_at is None or self.next_review_at <= now

    def accuracy(self) -> int:
        """Percentage of successful reviews, 0 before the first review."""
        return percentage(self.successful_reviews, self.successful_reviews + self.failed_reviews)
