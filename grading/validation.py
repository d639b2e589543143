"""Evaluation input validation."""

import math
from numbers import Real
from typing import Any

from utils.errors import ValidationError

from .results import COMPETENCY_COUNT, MAX_COMPETENCY_SCORE


def validate_competency(value: Any) -> int:
    """
    Validate a competency number.

    Returns:
        The competency as an int in 1..5

    Raises:
        ValidationError: If the value is not an integer in range
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError("Competency must be an integer", field="competency")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("Competency must be an integer", field="competency")

    competency = int(value)
    if not 1 <= competency <= COMPETENCY_COUNT:
        raise ValidationError(
            f"Competency must be between 1 and {COMPETENCY_COUNT}, got {competency}",
            field="competency",
        )
    return competency


def validate_score(value: Any) -> float:
    """
    Validate a competency score.

    Returns:
        The score as a float in 0..200

    Raises:
        ValidationError: If the value is not a number in range
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError("Score must be a number", field="score")

    score = float(value)
    if math.isnan(score) or not 0 <= score <= MAX_COMPETENCY_SCORE:
        raise ValidationError(
            f"Score must be between 0 and {MAX_COMPETENCY_SCORE}, got {value}",
            field="score",
        )
    return score
