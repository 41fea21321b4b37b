"""Injectable time source."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite columns store timestamps without tzinfo."""

    return datetime.now(timezone.utc).replace(tzinfo=None)
