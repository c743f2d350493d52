"""Confidence arithmetic helpers."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; confidence scores round .5 up
    return int(math.floor(value + 0.5))


def clamp_confidence(value: float) -> int:
    """Round to an integer score and clamp to 0-100."""
    return max(0, min(100, round_half_up(value)))
