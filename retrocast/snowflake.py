"""
retrocast.snowflake — Time-Sortable 64-bit Id Generator
=========================================================

Bit layout (most significant first)::

    | 41 bits ms since 2025-01-01 | 5 bits worker | 5 bits process | 12 bits sequence |

Ids produced by one generator increase strictly with creation order, which
is what keyset pagination over messages relies on.
"""

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime

EPOCH_MS = 1735689600000  # 2025-01-01T00:00:00Z

WORKER_ID_BITS = 5
PROCESS_ID_BITS = 5
SEQUENCE_BITS = 12

MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_PROCESS_ID = (1 << PROCESS_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1

PROCESS_ID_SHIFT = SEQUENCE_BITS
WORKER_ID_SHIFT = SEQUENCE_BITS + PROCESS_ID_BITS
TIMESTAMP_SHIFT = SEQUENCE_BITS + PROCESS_ID_BITS + WORKER_ID_BITS


def _now_ms() -> int:
    return time.time_ns() // 1_000_000 - EPOCH_MS


class SnowflakeGenerator:
    """Thread-safe snowflake generator for one (worker, process) node."""

    def __init__(self, worker_id: int = 0, process_id: int = 0) -> None:
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ValueError(f"worker_id must be between 0 and {MAX_WORKER_ID}")
        if not 0 <= process_id <= MAX_PROCESS_ID:
            raise ValueError(f"process_id must be between 0 and {MAX_PROCESS_ID}")
        self.worker_id = worker_id
        self.process_id = process_id
        self._lock = threading.Lock()
        self._sequence = 0
        self._last_ms = -1

    def generate(self) -> int:
        """Return the next id."""
        with self._lock:
            now = _now_ms()
            if now < self._last_ms:
                # Clock stepped backwards; keep issuing from the last tick.
                now = self._last_ms
            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    while now <= self._last_ms:
                        now = _now_ms()
            else:
                self._sequence = 0
            self._last_ms = now

            return (
                (now << TIMESTAMP_SHIFT)
                | (self.worker_id << WORKER_ID_SHIFT)
                | (self.process_id << PROCESS_ID_SHIFT)
                | self._sequence
            )


def extract_timestamp(snowflake: int) -> datetime:
    """Wall-clock time embedded in *snowflake*."""
    ms = (snowflake >> TIMESTAMP_SHIFT) + EPOCH_MS
    return datetime.fromtimestamp(ms / 1000, tz=UTC)
