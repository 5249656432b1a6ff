from __future__ import annotations

from dataclasses import dataclass, field
from time import monotonic

from fastapi import Request

from gridcrud.core.config import settings


@dataclass
class Deadline:
    """Request-scoped time budget threaded through every store call."""

    timeout_seconds: float | None
    started_at: float = field(default_factory=monotonic)

    @property
    def expired(self) -> bool:
        remaining = self.remaining_seconds()
        return remaining is not None and remaining <= 0

    def remaining_seconds(self) -> float | None:
        if self.timeout_seconds is None or self.timeout_seconds <= 0:
            return None
        return self.timeout_seconds - (monotonic() - self.started_at)

    def remaining_ms(self) -> int | None:
        remaining = self.remaining_seconds()
        if remaining is None:
            return None
        return max(1, int(remaining * 1000))

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(timeout_seconds=None)


def get_deadline(request: Request) -> Deadline:
    deadline = getattr(request.state, "deadline", None)
    if isinstance(deadline, Deadline):
        return deadline
    return Deadline(timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
