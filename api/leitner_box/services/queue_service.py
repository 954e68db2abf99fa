"""
Review queue ordering.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from leitner_box.models.leitner_card import LeitnerCard


def _last_touched(card: LeitnerCard) -> datetime:
    """Most recent write to the card, falling back to review then creation time."""
    return card.updated_at or card.last_reviewed_at or card.created_at or datetime.min


def order_review_queue(cards: Iterable[LeitnerCard]) -> List[LeitnerCard]:
    """
    Order cards for presentation.

    Earliest next_review_at first (a missing instant counts as most urgent);
    among equal instants the most recently touched card comes first.
    """
    # Two stable sorts: secondary key first, then primary key
    ordered = sorted(cards, key=_last_touched, reverse=True)
    ordered.sort(key=lambda card: (card.next_review_at is not None, card.next_review_at or datetime.min))
    return ordered


def build_due_queue(cards: Iterable[LeitnerCard], now: datetime, limit: Optional[int] = None) -> List[LeitnerCard]:
    """Due cards in review order, capped at limit."""
    due = order_review_queue(card for card in cards if card.is_due(now))
    if limit is not None:
        return due[:limit]
    return due
