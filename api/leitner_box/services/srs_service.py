"""
SRS (Spaced Repetition System) service implementing the Leitner system.

This module holds the interval table and the pure scheduling decision used
by every review. It has no database access and never reads the system clock.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Union

from leitner_box.core.exceptions import ValidationError
from leitner_box.models.enums import ReviewOutcome
from leitner_box.models.leitner_card import MAX_STAGE, MIN_STAGE

logger = logging.getLogger(__name__)


# Leitner stage review intervals in days
# Stage 1 = 1 day, Stage 2 = 3 days, Stage 3 = 1 week, Stage 4 = 2 weeks, Stage 5 = 1 month
LEITNER_INTERVALS = {1: 1, 2: 3, 3: 7, 4: 14, 5: 30}

# A missed word comes back after 12 hours whatever its stage was
FAILURE_INTERVAL_HOURS = 12
FAILURE_INTERVAL = timedelta(hours=FAILURE_INTERVAL_HOURS)


@dataclass(frozen=True)
class ScheduleDecision:
    """Outcome of a scheduling calculation."""
    next_stage: int
    next_review_at: datetime


def success_interval(stage: int) -> timedelta:
    """
    Look up the success interval for a stage.

    Args:
        stage: Stage the card is moving into

    Returns:
        Interval as a timedelta; stages missing from the table use the stage 1 interval
    """
    days = LEITNER_INTERVALS.get(stage, LEITNER_INTERVALS[MIN_STAGE])
    return timedelta(days=days)


def parse_outcome(outcome: Union[ReviewOutcome, str]) -> ReviewOutcome:
    """
    Coerce a raw outcome value into ReviewOutcome.

    Raises:
        ValidationError: If the value is not 'success' or 'fail'
    """
    if isinstance(outcome, ReviewOutcome):
        return outcome
    try:
        return ReviewOutcome(outcome)
    except ValueError:
        raise ValidationError(
            f"outcome must be one of {[o.value for o in ReviewOutcome]}, got {outcome!r}",
            field="outcome",
        )


def clamp_stage(stage: int) -> int:
    """Clamp a stage value into the valid 1..MAX_STAGE range."""
    return max(MIN_STAGE, min(MAX_STAGE, stage))


def decide(current_stage: int, outcome: Union[ReviewOutcome, str], now: datetime) -> ScheduleDecision:
    """
    Decide the next stage and review instant for a card.

    Success moves the card up one stage (capped at MAX_STAGE) and schedules it
    after that stage's interval. Failure sends it back to stage 1 and schedules
    it after the fixed failure interval.

    Args:
        current_stage: Stage before the review
        outcome: Review outcome ('success' or 'fail')
        now: Instant of the review

    Returns:
        ScheduleDecision with the next stage and next review instant
    """
    outcome = parse_outcome(outcome)
    current_stage = clamp_stage(current_stage)

    if outcome == ReviewOutcome.SUCCESS:
        next_stage = min(current_stage + 1, MAX_STAGE)
        return ScheduleDecision(next_stage=next_stage, next_review_at=now + success_interval(next_stage))

    return ScheduleDecision(next_stage=MIN_STAGE, next_review_at=now + FAILURE_INTERVAL)
