from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable
from uuid import uuid4

IdFactory = Callable[[], str]
Clock = Callable[[], datetime]


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
