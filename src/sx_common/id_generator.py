"""Business ID generation.

Orders, trades and notifications get time-ordered snowflake-style string IDs so
that ``ORDER BY id`` follows creation order within one process; pub/sub events
get random UUIDs (consumers dedupe on them).
"""

import threading
import time
import uuid

_EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
_NODE_BITS = 10
_SEQ_BITS = 12
_SEQ_MASK = (1 << _SEQ_BITS) - 1


class SnowflakeIdGenerator:
    """41-bit ms timestamp | 10-bit node | 12-bit per-ms sequence."""

    def __init__(self, node_id: int = 0) -> None:
        if not (0 <= node_id < (1 << _NODE_BITS)):
            raise ValueError(f"node_id must be 0-{(1 << _NODE_BITS) - 1}")
        self._node_id = node_id
        self._last_ms = -1
        self._seq = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = time.time_ns() // 1_000_000
            if now_ms < self._last_ms:
                # Wall clock stepped back: keep issuing from the last timestamp
                now_ms = self._last_ms
            if now_ms == self._last_ms:
                self._seq = (self._seq + 1) & _SEQ_MASK
                if self._seq == 0:
                    while now_ms <= self._last_ms:
                        now_ms = time.time_ns() // 1_000_000
            else:
                self._seq = 0
            self._last_ms = now_ms
            value = (
                ((now_ms - _EPOCH_MS) << (_NODE_BITS + _SEQ_BITS))
                | (self._node_id << _SEQ_BITS)
                | self._seq
            )
            return str(value)


_default_generator = SnowflakeIdGenerator()


def generate_id() -> str:
    """Next ID from the process-wide generator."""
    return _default_generator.next_id()


def new_event_id() -> str:
    return uuid.uuid4().hex
