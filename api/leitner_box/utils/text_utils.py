"""
Text utility functions.
"""
from typing import Optional

from leitner_box.core.exceptions import ValidationError
from leitner_box.models.leitner_card import (
    WORD_MIN_LENGTH,
    WORD_MAX_LENGTH,
)


def normalize_word(word: str) -> str:
    """
    Normalize a saved word for lookup and storage.

    Trims whitespace, uppercases, and drops every character that is not a
    letter (digits, spaces, punctuation). Letters from any script are kept.

    Args:
        word: The raw word as entered by the learner

    Returns:
        Normalized word

    Raises:
        ValidationError: If the normalized word is not 2 to 32 letters long
    """
    if word is None:
        raise ValidationError("word is required", field="word")

    normalized = "".join(ch for ch in word.strip().upper() if ch.isalpha())

    if not WORD_MIN_LENGTH <= len(normalized) <= WORD_MAX_LENGTH:
        raise ValidationError(
            f"word must contain between {WORD_MIN_LENGTH} and {WORD_MAX_LENGTH} letters",
            field="word",
        )
    return normalized


def clean_optional_text(value: Optional[str], field: str, max_length: int) -> Optional[str]:
    """
    Trim an optional free-text field, turning blank input into None.

    Raises:
        ValidationError: If the trimmed text exceeds max_length
    """
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if len(cleaned) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters",
            field=field,
        )
    return cleaned
