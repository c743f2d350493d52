"""Regulatory validators, run in precedence order (MI first)."""

from __future__ import annotations

from typing import Optional

from jobgraph.core.clock import Clock
from jobgraph.validators.base import ValidationContext, ValidationResult, Validator
from jobgraph.validators.bs5440 import BS5440Validator
from jobgraph.validators.bs7671 import BS7671Validator
from jobgraph.validators.hsg264 import HSG264Validator
from jobgraph.validators.manufacturer import ManufacturerInstructionsValidator


def get_all_validators(clock: Clock | None = None) -> list[Validator]:
    return [
        ManufacturerInstructionsValidator(clock),  # MI takes precedence, check it first
        BS5440Validator(clock),
        BS7671Validator(clock),
        HSG264Validator(clock),
    ]


def get_validator(name: str, clock: Clock | None = None) -> Optional[Validator]:
    """Find a validator by display name or standard reference."""
    return next(
        (v for v in get_all_validators(clock) if name in (v.name, v.standard)),
        None,
    )


__all__ = [
    "BS5440Validator",
    "BS7671Validator",
    "HSG264Validator",
    "ManufacturerInstructionsValidator",
    "ValidationContext",
    "ValidationResult",
    "Validator",
    "get_all_validators",
    "get_validator",
]
