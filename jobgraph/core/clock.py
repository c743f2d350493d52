"""Clock and identifier helpers shared by the job graph components.

Every component accepts an optional ``clock`` callable so timestamps can be
pinned in tests; production code falls back to timezone-aware UTC now.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from uuid import uuid4

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a unique identifier for facts, decisions, conflicts and milestones."""
    return str(uuid4())


def resolve_clock(clock: Clock | None) -> Clock:
    return clock if clock is not None else utc_now
