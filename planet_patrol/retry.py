"""
Retry policy used by the refresh loops.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed-backoff retry policy.

    ``max_attempts`` counts the first attempt; ``None`` means keep retrying
    until the caller's deadline (the next scheduled refresh) arrives.
    """

    backoff_seconds: float = 5.0
    max_attempts: Optional[int] = None

    def __post_init__(self):
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        return cls(backoff_seconds=0.0, max_attempts=1)

    def should_retry(self, attempts_made: int) -> bool:
        return self.max_attempts is None or attempts_made < self.max_attempts

    def delay(self, attempts_made: int) -> float:
        return self.backoff_seconds
