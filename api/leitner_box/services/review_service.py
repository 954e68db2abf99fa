"""
Review service for Leitner box operations.

This is the only module that talks to the card store. It normalizes input,
applies the scheduler, persists the result and translates database failures
into StoreError.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from leitner_box.core.clock import Clock
from leitner_box.core.exceptions import (
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from leitner_box.models.enums import ReviewOutcome
from leitner_box.models.leitner_card import (
    LeitnerCard,
    MAX_STAGE,
    MIN_STAGE,
    MEANING_MAX_LENGTH,
    NOTES_MAX_LENGTH,
)
from leitner_box.schemas.leitner import LeitnerSummary
from leitner_box.services.card_store import CardStore
from leitner_box.services.queue_service import build_due_queue, order_review_queue
from leitner_box.services.srs_service import FAILURE_INTERVAL, decide, parse_outcome
from leitner_box.services.stats_service import compute_summary
from leitner_box.utils.text_utils import clean_optional_text, normalize_word

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(store: CardStore, action: str):
    """Translate SQLAlchemy failures raised inside the block into StoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        store.session.rollback()
        logger.error(f"Store failure while trying to {action}: {exc}")
        raise StoreError(f"Failed to {action}") from exc


def _get_owned_card(store: CardStore, owner_id: int, card_id: int) -> LeitnerCard:
    """Load a card scoped to its owner or raise NotFoundError."""
    with _store_errors(store, "load card"):
        card = store.find_by_id_for_owner(card_id, owner_id)
    if card is None:
        raise NotFoundError(f"Card {card_id} not found")
    return card


def _merge_changes(
    card: LeitnerCard,
    now: datetime,
    meaning: Optional[str],
    notes: Optional[str],
    source_word_ref: Optional[str],
    source_level_ref: Optional[str],
) -> Dict[str, object]:
    """
    Changes applied when a word is saved again.

    Only metadata that was provided overwrites the stored value. A schedule
    further out than the failure interval is pulled forward to now; stage and
    counters are never touched.
    """
    changes: Dict[str, object] = {"is_archived": False, "updated_at": now}
    if meaning is not None:
        changes["meaning"] = meaning
    if notes is not None:
        changes["notes"] = notes
    if source_word_ref is not None:
        changes["source_word_ref"] = source_word_ref
    if source_level_ref is not None:
        changes["source_level_ref"] = source_level_ref
    if card.next_review_at is None or card.next_review_at > now + FAILURE_INTERVAL:
        changes["next_review_at"] = now
    return changes


def create_or_merge_card(
    session: Session,
    owner_id: int,
    word: str,
    clock: Clock,
    meaning: Optional[str] = None,
    notes: Optional[str] = None,
    source_word_ref: Optional[str] = None,
    source_level_ref: Optional[str] = None,
) -> Tuple[LeitnerCard, bool]:
    """
    Save a word for an owner, merging into the existing card if there is one.

    Args:
        session: Database session
        owner_id: Learner the card belongs to
        word: Raw word; normalized before lookup and storage
        clock: Clock supplying the current instant
        meaning: Optional meaning
        notes: Optional notes
        source_word_ref: Optional reference to the source word
        source_level_ref: Optional reference to the source level

    Returns:
        (card, created) where created is False when an existing card was merged

    Raises:
        ValidationError: If the word or a text field is invalid
        ConflictError: If the existing card changed while merging
        StoreError: If the database fails
    """
    normalized = normalize_word(word)
    meaning = clean_optional_text(meaning, "meaning", MEANING_MAX_LENGTH)
    notes = clean_optional_text(notes, "notes", NOTES_MAX_LENGTH)
    now = clock.now()
    store = CardStore(session)

    with _store_errors(store, "save card"):
        existing = store.find_by_owner_and_word(owner_id, normalized)
        if existing is None:
            card = LeitnerCard(
                owner_id=owner_id,
                word=normalized,
                meaning=meaning,
                notes=notes,
                source_word_ref=source_word_ref,
                source_level_ref=source_level_ref,
                stage=MIN_STAGE,
                next_review_at=now,
                created_at=now,
                updated_at=now,
            )
            try:
                card = store.create(card)
                logger.info(f"Created card {card.id} for owner {owner_id}: {normalized}")
                return card, True
            except IntegrityError:
                # Another request inserted the same word first; merge into it
                session.rollback()
                logger.info(f"Card for owner {owner_id} word {normalized} created concurrently, merging")
                existing = store.find_by_owner_and_word(owner_id, normalized)
                if existing is None:
                    raise

        changes = _merge_changes(existing, now, meaning, notes, source_word_ref, source_level_ref)
        card = store.update(existing, changes, expected_version=existing.version)

    logger.info(f"Merged card {card.id} for owner {owner_id}: {normalized}")
    return card, False


def batch_create_or_merge_cards(
    session: Session,
    owner_id: int,
    words: List[str],
    clock: Clock,
    source_level_ref: Optional[str] = None,
) -> Dict[str, list]:
    """
    Save several words, collecting per-word results.

    Invalid words and concurrent-write conflicts are reported as failures
    instead of aborting the batch.

    Returns:
        Dict with 'added' and 'merged' word lists and 'failed' entries
        of the form {'word': ..., 'reason': ...}
    """
    results: Dict[str, list] = {"added": [], "merged": [], "failed": []}

    for word in words:
        try:
            card, created = create_or_merge_card(
                session,
                owner_id,
                word,
                clock,
                source_level_ref=source_level_ref,
            )
        except (ValidationError, ConflictError) as exc:
            results["failed"].append({"word": word, "reason": str(exc)})
            continue

        if created:
            results["added"].append(card.word)
        else:
            results["merged"].append(card.word)

    logger.info(
        f"Batch save for owner {owner_id}: {len(results['added'])} added, "
        f"{len(results['merged'])} merged, {len(results['failed'])} failed"
    )
    return results


def review_card(
    session: Session,
    owner_id: int,
    card_id: int,
    outcome: Union[ReviewOutcome, str],
    clock: Clock,
) -> LeitnerCard:
    """
    Record a review outcome for a card.

    Increments the counters, moves the card through the scheduler and
    persists the result under a version check.

    Raises:
        ValidationError: If outcome is not 'success' or 'fail'
        NotFoundError: If the card does not exist or belongs to another owner
        ConflictError: If the card was reviewed concurrently
        StoreError: If the database fails
    """
    outcome = parse_outcome(outcome)
    store = CardStore(session)
    card = _get_owned_card(store, owner_id, card_id)
    now = clock.now()

    decision = decide(card.stage, outcome, now)
    succeeded = outcome == ReviewOutcome.SUCCESS

    changes = {
        "stage": decision.next_stage,
        "next_review_at": decision.next_review_at,
        "last_reviewed_at": now,
        "last_result": outcome.value,
        "repetitions": card.repetitions + 1,
        "successful_reviews": card.successful_reviews + (1 if succeeded else 0),
        "failed_reviews": card.failed_reviews + (0 if succeeded else 1),
        "updated_at": now,
    }
    previous_stage = card.stage

    with _store_errors(store, "review card"):
        card = store.update(card, changes, expected_version=card.version)

    logger.info(
        f"Reviewed card {card.id} for owner {owner_id}: {outcome.value}, "
        f"stage {previous_stage} -> {card.stage}, next review at {card.next_review_at}"
    )
    return card


def list_cards(
    session: Session,
    owner_id: int,
    clock: Clock,
    include_archived: bool = False,
    stage: Optional[int] = None,
    due_only: bool = False,
) -> Tuple[List[LeitnerCard], LeitnerSummary]:
    """
    List an owner's cards in review order together with their summary.

    The summary always covers every active card of the owner, whatever
    filters are applied to the returned list.

    Raises:
        ValidationError: If stage is outside 1..MAX_STAGE
    """
    if stage is not None and not MIN_STAGE <= stage <= MAX_STAGE:
        raise ValidationError(f"stage must be between {MIN_STAGE} and {MAX_STAGE}", field="stage")

    store = CardStore(session)
    now = clock.now()

    with _store_errors(store, "list cards"):
        cards = store.find_all_for_owner(owner_id, include_archived=include_archived)

    summary = compute_summary([card for card in cards if not card.is_archived], now)

    if stage is not None:
        cards = [card for card in cards if card.stage == stage]
    if due_only:
        cards = [card for card in cards if card.is_due(now)]

    return order_review_queue(cards), summary


def get_due_cards(session: Session, owner_id: int, clock: Clock, limit: int = 20) -> List[LeitnerCard]:
    """Active cards due for review, most urgent first."""
    store = CardStore(session)
    with _store_errors(store, "list due cards"):
        cards = store.find_all_for_owner(owner_id)
    return build_due_queue(cards, clock.now(), limit=limit)


def get_summary(session: Session, owner_id: int, clock: Clock) -> LeitnerSummary:
    """Summary statistics over an owner's active cards."""
    store = CardStore(session)
    with _store_errors(store, "compute summary"):
        cards = store.find_all_for_owner(owner_id)
    return compute_summary(cards, clock.now())


def _apply_admin_change(
    session: Session,
    owner_id: int,
    card_id: int,
    clock: Clock,
    changes: Dict[str, object],
    action: str,
) -> LeitnerCard:
    """Load an owned card and apply a non-review change to it."""
    store = CardStore(session)
    card = _get_owned_card(store, owner_id, card_id)
    changes = dict(changes, updated_at=clock.now())
    with _store_errors(store, action):
        card = store.update(card, changes, expected_version=card.version)
    logger.info(f"Card {card.id} for owner {owner_id}: {action}")
    return card


def update_notes(
    session: Session,
    owner_id: int,
    card_id: int,
    notes: Optional[str],
    clock: Clock,
) -> LeitnerCard:
    """Replace a card's notes; blank notes clear them."""
    notes = clean_optional_text(notes, "notes", NOTES_MAX_LENGTH)
    return _apply_admin_change(session, owner_id, card_id, clock, {"notes": notes}, "update notes")


def archive_card(session: Session, owner_id: int, card_id: int, clock: Clock) -> LeitnerCard:
    """Hide a card from lists, queues and stats without losing its progress."""
    return _apply_admin_change(session, owner_id, card_id, clock, {"is_archived": True}, "archive")


def unarchive_card(session: Session, owner_id: int, card_id: int, clock: Clock) -> LeitnerCard:
    """Bring an archived card back into active learning."""
    return _apply_admin_change(session, owner_id, card_id, clock, {"is_archived": False}, "unarchive")


def reset_card(session: Session, owner_id: int, card_id: int, clock: Clock) -> LeitnerCard:
    """Send a card back to stage 1 and make it due now; counters are kept."""
    changes = {"stage": MIN_STAGE, "next_review_at": clock.now()}
    return _apply_admin_change(session, owner_id, card_id, clock, changes, "reset")


def delete_card(session: Session, owner_id: int, card_id: int) -> None:
    """Permanently delete a card."""
    store = CardStore(session)
    card = _get_owned_card(store, owner_id, card_id)
    with _store_errors(store, "delete card"):
        store.delete(card)
    logger.info(f"Deleted card {card_id} for owner {owner_id}")
