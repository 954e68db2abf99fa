"""
Statistics over an owner's Leitner cards.

Due-ness compares exact instants. "Today" means the calendar day of `now`
in the configured timezone; stored instants are naive UTC.
"""
import logging
from datetime import datetime, tzinfo
from typing import Dict, Iterable, Optional, Union

import pytz

from leitner_box.core.config import settings
from leitner_box.models.leitner_card import LeitnerCard, MAX_STAGE, MIN_STAGE
from leitner_box.schemas.leitner import LeitnerSummary
from leitner_box.services.srs_service import clamp_stage
from leitner_box.utils.number_utils import percentage

logger = logging.getLogger(__name__)


def resolve_timezone(tz: Union[str, tzinfo, None] = None) -> tzinfo:
    """Turn a timezone name (or None for the configured one) into a tzinfo."""
    if tz is None:
        tz = settings.timezone
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def _to_local(d: datetime, tz: tzinfo) -> datetime:
    """View a naive UTC datetime in the given timezone."""
    if d.tzinfo is None:
        d = pytz.utc.localize(d)
    return d.astimezone(tz)


def same_local_day(a_utc: datetime, b_utc: datetime, tz: tzinfo) -> bool:
    """Return True if both instants fall on the same calendar day in tz."""
    return _to_local(a_utc, tz).date() == _to_local(b_utc, tz).date()


def compute_summary(
    cards: Iterable[LeitnerCard],
    now: datetime,
    tz: Union[str, tzinfo, None] = None,
) -> LeitnerSummary:
    """
    Compute summary statistics for a set of cards in one pass.

    Args:
        cards: The owner's cards
        now: Reference instant (naive UTC)
        tz: Timezone used for the "today" counters; defaults to settings.timezone

    Returns:
        LeitnerSummary
    """
    tzinfo_ = resolve_timezone(tz)

    total = 0
    due_count = 0
    mastered_count = 0
    reviewed_today = 0
    new_today = 0
    total_reviews = 0
    total_successful = 0
    total_failed = 0
    last_review_at: Optional[datetime] = None
    stage_counts: Dict[int, int] = {stage: 0 for stage in range(MIN_STAGE, MAX_STAGE + 1)}

    for card in cards:
        total += 1

        if card.is_due(now):
            due_count += 1

        stage = clamp_stage(card.stage)
        stage_counts[stage] += 1
        if stage == MAX_STAGE:
            mastered_count += 1

        if card.last_reviewed_at is not None:
            if same_local_day(card.last_reviewed_at, now, tzinfo_):
                reviewed_today += 1
            if last_review_at is None or card.last_reviewed_at > last_review_at:
                last_review_at = card.last_reviewed_at

        if card.created_at is not None and same_local_day(card.created_at, now, tzinfo_):
            new_today += 1

        total_reviews += card.repetitions
        total_successful += card.successful_reviews
        total_failed += card.failed_reviews

    return LeitnerSummary(
        total=total,
        due_count=due_count,
        upcoming_count=total - due_count,
        mastered_count=mastered_count,
        stage_counts=stage_counts,
        reviewed_today=reviewed_today,
        new_today=new_today,
        last_review_at=last_review_at,
        ready_percentage=percentage(due_count, total),
        total_reviews=total_reviews,
        average_accuracy=percentage(total_successful, total_successful + total_failed),
    )
