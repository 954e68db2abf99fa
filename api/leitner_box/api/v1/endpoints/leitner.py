"""
Leitner box endpoints.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlmodel import Session
from datetime import datetime
from typing import List, Optional
import logging

from leitner_box.core.clock import Clock, get_request_clock
from leitner_box.core.database import get_session
from leitner_box.models.leitner_card import LeitnerCard
from leitner_box.schemas.leitner import (
    BatchCreateCardsRequest,
    BatchCreateCardsResponse,
    BatchFailure,
    CardListResponse,
    CardResponse,
    CardStats,
    CreateCardRequest,
    CreateCardResponse,
    LeitnerSummary,
    MessageResponse,
    ReviewCardRequest,
    UpdateNotesRequest,
)
from leitner_box.services import review_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leitner", tags=["leitner"])


def card_to_response(card: LeitnerCard, now: datetime) -> CardResponse:
    """Build the API representation of a card."""
    return CardResponse(
        id=card.id,
        owner_id=card.owner_id,
        word=card.word,
        meaning=card.meaning,
        notes=card.notes,
        source_word_ref=card.source_word_ref,
        source_level_ref=card.source_level_ref,
        stage=card.stage,
        next_review_at=card.next_review_at,
        last_reviewed_at=card.last_reviewed_at,
        last_result=card.last_result,
        stats=CardStats(
            repetitions=card.repetitions,
            successful_reviews=card.successful_reviews,
            failed_reviews=card.failed_reviews,
        ),
        accuracy=card.accuracy(),
        is_archived=card.is_archived,
        is_due=card.is_due(now),
        created_at=card.created_at,
        updated_at=card.updated_at,
    )


@router.post("/cards", response_model=CreateCardResponse)
def create_card(
    request: CreateCardRequest,
    response: Response,
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """
    Save a word into the owner's Leitner box.

    A word the owner already saved is merged into the existing card instead:
    its metadata is updated, it is unarchived, and a far-off schedule is
    pulled forward so it can be reviewed right away.

    Returns:
        201 with the new card, or 200 with the merged card
    """
    card, created = review_service.create_or_merge_card(
        session,
        owner_id,
        request.word,
        clock,
        meaning=request.meaning,
        notes=request.notes,
        source_word_ref=request.source_word_ref,
        source_level_ref=request.source_level_ref,
    )

    if created:
        response.status_code = status.HTTP_201_CREATED
        message = "Word added to the Leitner box"
    else:
        response.status_code = status.HTTP_200_OK
        message = "Word already in the Leitner box; card updated and reopened for review"

    return CreateCardResponse(
        message=message,
        created=created,
        card=card_to_response(card, clock.now()),
    )


@router.post("/cards/batch", response_model=BatchCreateCardsResponse)
def batch_create_cards(
    request: BatchCreateCardsRequest,
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """
    Save several words at once.

    Each word is created or merged independently; invalid words are reported
    in 'failed' without stopping the batch.
    """
    results = review_service.batch_create_or_merge_cards(
        session,
        owner_id,
        request.words,
        clock,
        source_level_ref=request.source_level_ref,
    )
    return BatchCreateCardsResponse(
        message=f"{len(results['added'])} word(s) added, {len(results['merged'])} merged",
        added=results["added"],
        merged=results["merged"],
        failed=[BatchFailure(**failure) for failure in results["failed"]],
    )


@router.get("/cards", response_model=CardListResponse)
def list_cards(
    owner_id: int,
    include_archived: bool = False,
    stage: Optional[int] = None,
    due_only: bool = False,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """
    List the owner's cards in review order with summary statistics.

    Args:
        owner_id: Owner of the cards
        include_archived: Also return archived cards
        stage: Optional stage filter (1-5)
        due_only: Only return cards due now
    """
    cards, summary = review_service.list_cards(
        session,
        owner_id,
        clock,
        include_archived=include_archived,
        stage=stage,
        due_only=due_only,
    )
    now = clock.now()
    return CardListResponse(
        cards=[card_to_response(card, now) for card in cards],
        summary=summary,
    )


@router.get("/review", response_model=List[CardResponse])
def get_due_cards(
    owner_id: int,
    limit: int = Query(20, ge=1, le=200),
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """Get the cards due for review, most urgent first."""
    cards = review_service.get_due_cards(session, owner_id, clock, limit=limit)
    now = clock.now()
    return [card_to_response(card, now) for card in cards]


@router.post("/cards/{card_id}/review", response_model=CardResponse)
def review_card(
    card_id: int,
    request: ReviewCardRequest,
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """
    Record a review outcome ('success' or 'fail') for a card.

    Returns 404 if the card does not belong to the owner and 409 if the card
    was reviewed concurrently.
    """
    card = review_service.review_card(session, owner_id, card_id, request.outcome, clock)
    return card_to_response(card, clock.now())


@router.get("/stats", response_model=LeitnerSummary)
def get_stats(
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """Get summary statistics for the owner's Leitner box."""
    return review_service.get_summary(session, owner_id, clock)


@router.get("/stage/{stage}", response_model=List[CardResponse])
def get_cards_by_stage(
    stage: int,
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """Get the owner's active cards at a given stage (1-5)."""
    cards, _ = review_service.list_cards(session, owner_id, clock, stage=stage)
    now = clock.now()
    return [card_to_response(card, now) for card in cards]


@router.put("/cards/{card_id}/notes", response_model=CardResponse)
def update_notes(
    card_id: int,
    request: UpdateNotesRequest,
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """Replace a card's notes."""
    card = review_service.update_notes(session, owner_id, card_id, request.notes, clock)
    return card_to_response(card, clock.now())


@router.post("/cards/{card_id}/archive", response_model=CardResponse)
def archive_card(
    card_id: int,
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """Archive a card (remove from active learning)."""
    card = review_service.archive_card(session, owner_id, card_id, clock)
    return card_to_response(card, clock.now())


@router.post("/cards/{card_id}/unarchive", response_model=CardResponse)
def unarchive_card(
    card_id: int,
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """Bring an archived card back into active learning."""
    card = review_service.unarchive_card(session, owner_id, card_id, clock)
    return card_to_response(card, clock.now())


@router.post("/cards/{card_id}/reset", response_model=CardResponse)
def reset_card(
    card_id: int,
    owner_id: int,
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_request_clock),
):
    """Reset a card to stage 1 (start over)."""
    card = review_service.reset_card(session, owner_id, card_id, clock)
    return card_to_response(card, clock.now())


@router.delete("/cards/{card_id}", response_model=MessageResponse)
def delete_card(
    card_id: int,
    owner_id: int,
    session: Session = Depends(get_session),
):
    """Delete a card from the Leitner box."""
    review_service.delete_card(session, owner_id, card_id)
    return MessageResponse(message=f"Card {card_id} deleted")
