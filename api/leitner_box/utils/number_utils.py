"""
Numeric helper functions.
"""


def percentage(part: int, whole: int) -> int:
    """
    Integer percentage of part over whole, rounding halves up.

    Python's round() rounds halves to even (round(12.5) == 12), which would
    make 1 of 8 cards read as 12%. Integer arithmetic keeps this exact.

    Returns:
        0 when whole is 0, otherwise round-half-up of part / whole * 100
    """
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (2 * whole)
