"""Fact lookup and value coercion helpers shared by the engine and validators."""

from __future__ import annotations

import json
from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from jobgraph.models import Fact, FactCategory


def find_fact(facts: Iterable[Fact], category: FactCategory | str, key: str) -> Optional[Fact]:
    """Return the first fact recorded for ``category:key`` (or None)."""
    category_value = getattr(category, "value", category)
    for fact in facts:
        if fact.category.value == category_value and fact.key == key:
            return fact
    return None


def qualified_key(category: FactCategory | str, key: str) -> str:
    return f"{getattr(category, 'value', category)}:{key}"


def as_number(value: Any) -> float:
    """Coerce a fact value to a number, treating anything unparseable as 0.

    Booleans count as 1/0, numeric strings ("60", " 22.5 ") are parsed.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return 0.0
    return 0.0


def as_text(value: Any) -> Optional[str]:
    """Lower-cased string form of a string fact value; None for anything else."""
    if isinstance(value, str):
        return value.lower()
    return None


def serialize_value(value: Any) -> str:
    """Canonical JSON form of a fact value used for structural equality.

    Integral floats are folded to ints so 60 and 60.0 compare equal.
    """
    return json.dumps(_normalize(value), sort_keys=True, separators=(",", ":"), default=str)


def _normalize(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, Decimal):
        return _normalize(float(value))
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value
