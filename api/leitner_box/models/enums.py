"""
Model enums.
"""
from enum import Enum


class ReviewOutcome(str, Enum):
    """Result of a single review attempt."""
    SUCCESS = "success"
    FAIL = "fail"
