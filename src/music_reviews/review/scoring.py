"""Score calculator: turns a review's five sub-ratings into one final score.

The atmosphere rating (1-10) maps linearly onto a multiplier between
1.0000 and 1.6072 in nine equal steps. The final score is the sum of the
four base ratings, weighted by 1.4 and scaled by that multiplier:

    final = round_half_up((rhymes + structure + implementation + individuality)
                          * 1.4 * multiplier, 1)

All-minimum ratings give 5.6; all-maximum ratings give 90.0 (the raw value,
90.0032, rounds down onto the ceiling).
"""

from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError

MIN_RATING = 1
MAX_RATING = 10

MIN_MULTIPLIER = 1.0
MAX_MULTIPLIER = 1.6072
ATMOSPHERE_STEP = (MAX_MULTIPLIER - MIN_MULTIPLIER) / (MAX_RATING - MIN_RATING)

BASE_WEIGHT = Decimal("1.4")
MAX_FINAL_SCORE = Decimal("90.0")


def round_half_up(value, places: int = 0) -> Decimal:
    """Round ``value`` to ``places`` decimals, halves away from zero."""
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def validate_rating(name: str, value) -> int:
    """Return ``value`` if it is an integer rating in [1, 10]."""
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError({name: [f"Rating must be between {MIN_RATING} and {MAX_RATING}"]})
    return value


def convert_atmosphere(rating: int) -> float:
    """Map an atmosphere rating (1-10) onto its multiplier (1.0000-1.6072)."""
    validate_rating("atmosphere", rating)
    return round(MIN_MULTIPLIER + (rating - MIN_RATING) * ATMOSPHERE_STEP, 4)


def compute_final_score(
    rhymes: int,
    structure: int,
    implementation: int,
    individuality: int,
    multiplier: float,
) -> float:
    validate_rating("rhymes", rhymes)
    validate_rating("structure", structure)
    validate_rating("implementation", implementation)
    validate_rating("individuality", individuality)
    if multiplier is None or not MIN_MULTIPLIER <= multiplier <= MAX_MULTIPLIER:
        raise ValidationError(
            {"atmosphere_multiplier": [f"Multiplier must be between {MIN_MULTIPLIER:.4f} and {MAX_MULTIPLIER:.4f}"]}
        )

    base = Decimal(rhymes + structure + implementation + individuality)
    raw = base * BASE_WEIGHT * Decimal(str(multiplier))
    return float(min(round_half_up(raw, 1), MAX_FINAL_SCORE))
