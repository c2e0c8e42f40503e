"""
Loan record id generators.

CounterLoanIdGenerator is process-local: two processes, or one process started
without seeding against an existing store, can issue the same id.
UuidLoanIdGenerator avoids that at the cost of unordered ids.
"""

import re
import threading
import uuid
from typing import Iterable

DEFAULT_PREFIX = "loan_"


class CounterLoanIdGenerator:
    """Issues prefix + 1, prefix + 2, ... under its own lock."""

    def __init__(self, prefix: str = DEFAULT_PREFIX, start: int = 0):
        self.prefix = prefix
        self._counter = start
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            self._counter += 1
            return f"{self.prefix}{self._counter}"

    @property
    def last_issued(self) -> int:
        with self._lock:
            return self._counter

    def seed_from(self, existing_ids: Iterable[str]) -> None:
        """Advance the counter past the highest prefix<n> id in existing_ids."""
        pattern = re.compile(rf"^{re.escape(self.prefix)}(\d+)$")
        highest = 0
        for record_id in existing_ids:
            match = pattern.match(record_id)
            if match:
                highest = max(highest, int(match.group(1)))
        with self._lock:
            self._counter = max(self._counter, highest)


class UuidLoanIdGenerator:
    """Issues prefix + a random UUID4 hex string."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self.prefix = prefix

    def __call__(self) -> str:
        return f"{self.prefix}{uuid.uuid4().hex}"
