"""Confidence score normalization rules."""

from __future__ import annotations

import math
from typing import Any

MIN_SCORE = 0
MAX_SCORE = 100


def clamp_score(value: float) -> int:
    """Round a raw score and clamp it into [0, 100]."""
    if math.isnan(value):
        return MIN_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, int(round(value))))


def normalize_confidence_score(score: float) -> int:
    """Convert a 0..1 confidence ratio into a clamped 0..100 score."""
    return clamp_score(score * 100.0)


def parse_confidence(payload: dict[str, Any]) -> int | None:
    """Parse a confidence/score value from a provider payload.

    Providers report either a ratio (0..1) or a percentage; both are
    normalized to a clamped 0..100 integer. A value of exactly 1 is a
    percentage, so only fractions below 1 are read as ratios.
    """
    for key in ("confidence", "score", "confidence_score"):
        value = payload.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        return normalize_confidence_score(number) if number < 1.0 else clamp_score(number)
    return None
