"""
Card store: persistence for LeitnerCard records.

Every lookup by id is scoped to an owner. Writes go through a conditional
UPDATE on the card's version column, so two writers that read the same
version cannot both succeed.
"""
# pyright: reportAttributeAccessIssue=false
# pyright: reportCallIssue=false
# pyright: reportArgumentType=false
import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from leitner_box.core.config import settings
from leitner_box.core.exceptions import ConflictError
from leitner_box.models.leitner_card import LeitnerCard

logger = logging.getLogger(__name__)

LOCKED_MESSAGES = {"database is locked", "database is busy"}

# Columns a caller may never change through update()
IMMUTABLE_FIELDS = {"id", "owner_id", "created_at", "version"}


def _is_lock_error(error: OperationalError) -> bool:
    """Return True if the OperationalError was caused by a lock."""
    message = str(error).lower()
    return any(token in message for token in LOCKED_MESSAGES)


class CardStore:
    """Repository for LeitnerCard CRUD operations."""

    def __init__(
        self,
        session: Session,
        retries: Optional[int] = None,
        initial_delay: Optional[float] = None,
    ):
        self.session = session
        self.retries = retries if retries is not None else settings.store_commit_retries
        self.initial_delay = initial_delay if initial_delay is not None else settings.store_retry_initial_delay

    def commit(self) -> None:
        """
        Commit the current transaction, retrying when SQLite is locked.

        The delay doubles after every attempt. Waiting blocks the calling
        thread, so callers must not run on the event loop.

        Raises:
            OperationalError: Re-raised after the last attempt or when the
                error is unrelated to locking.
        """
        delay = self.initial_delay
        for attempt in range(self.retries):
            try:
                self.session.commit()
                return
            except OperationalError as exc:
                self.session.rollback()
                if attempt == self.retries - 1 or not _is_lock_error(exc):
                    raise
                logger.warning(f"Commit hit a database lock (attempt {attempt + 1}/{self.retries}), retrying in {delay}s")
                time.sleep(delay)
                delay *= 2

    def create(self, card: LeitnerCard) -> LeitnerCard:
        """Insert a new card and return it with its generated id."""
        self.session.add(card)
        self.commit()
        self.session.refresh(card)
        return card

    def find_by_owner_and_word(self, owner_id: int, word: str) -> Optional[LeitnerCard]:
        """Get the card for an owner's normalized word."""
        return self.session.exec(
            select(LeitnerCard).where(
                LeitnerCard.owner_id == owner_id,
                LeitnerCard.word == word,
            )
        ).first()

    def find_by_id_for_owner(self, card_id: int, owner_id: int) -> Optional[LeitnerCard]:
        """Get a card by id, only if it belongs to the owner."""
        return self.session.exec(
            select(LeitnerCard).where(
                LeitnerCard.id == card_id,
                LeitnerCard.owner_id == owner_id,
            )
        ).first()

    def find_all_for_owner(
        self,
        owner_id: int,
        include_archived: bool = False,
        stage: Optional[int] = None,
    ) -> List[LeitnerCard]:
        """List an owner's cards, optionally filtered by stage."""
        query = select(LeitnerCard).where(LeitnerCard.owner_id == owner_id)

        if not include_archived:
            query = query.where(LeitnerCard.is_archived == False)  # noqa: E712

        if stage is not None:
            query = query.where(LeitnerCard.stage == stage)

        return list(self.session.exec(query.order_by(LeitnerCard.id)).all())

    def update(self, card: LeitnerCard, changes: Dict[str, Any], expected_version: int) -> LeitnerCard:
        """
        Apply changes to a card if nobody else wrote it since it was read.

        Args:
            card: The card as previously loaded
            changes: Column values to set
            expected_version: Version the caller's decision was based on

        Returns:
            The card reloaded from the database

        Raises:
            ConflictError: If the stored version no longer matches
        """
        illegal = IMMUTABLE_FIELDS.intersection(changes)
        if illegal:
            raise ValueError(f"Cannot update immutable card fields: {sorted(illegal)}")

        result = self.session.execute(
            update(LeitnerCard)
            .where(
                LeitnerCard.id == card.id,
                LeitnerCard.owner_id == card.owner_id,
                LeitnerCard.version == expected_version,
            )
            .values(**changes, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            self.session.rollback()
            logger.warning(
                f"Version conflict on card {card.id} (owner {card.owner_id}): "
                f"expected version {expected_version}"
            )
            raise ConflictError(f"Card {card.id} was modified concurrently, please retry")

        self.commit()
        self.session.refresh(card)
        return card

    def delete(self, card: LeitnerCard) -> None:
        """Delete a card."""
        self.session.delete(card)
        self.commit()
