"""
Models package.
"""
from leitner_box.models.enums import ReviewOutcome
from leitner_box.models.leitner_card import LeitnerCard, MAX_STAGE, MIN_STAGE

__all__ = [
    'ReviewOutcome',
    'LeitnerCard',
    'MAX_STAGE',
    'MIN_STAGE',
]
