"""Ring buffers for metric trend history.

Each tracked series (CPU %, memory %, health score, network rates) gets a
fixed-capacity buffer that the refresh loop pushes into once per cycle.
Storage is preallocated; the buffer never grows past its capacity.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostpulse.collector import MetricsSnapshot


class RingBuffer:
    """Fixed-capacity circular buffer of float samples.

    Once full, each push overwrites the oldest sample.
    """

    def __init__(self, capacity: int) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ValueError(f"RingBuffer capacity must be a positive integer, got {capacity!r}")
        self._data: list[float] = [0.0] * capacity
        self._capacity = capacity
        self._size = 0
        self._index = 0  # Next slot to write once the buffer is full

    def __len__(self) -> int:
        """Return number of samples in buffer."""
        return self._size

    @property
    def capacity(self) -> int:
        """Return maximum number of samples the buffer can hold."""
        return self._capacity

    @property
    def is_empty(self) -> bool:
        """Return True if buffer has no samples."""
        return self._size == 0

    @property
    def latest(self) -> float | None:
        """Return the newest sample, or None when empty."""
        if self._size == 0:
            return None
        if self._size < self._capacity:
            return self._data[self._size - 1]
        return self._data[(self._index - 1) % self._capacity]

    def push(self, value: float) -> None:
        """Add a sample, evicting the oldest one when full."""
        if self._size < self._capacity:
            self._data[self._size] = value
            self._size += 1
            return
        self._data[self._index] = value
        self._index = (self._index + 1) % self._capacity

    def values(self) -> list[float]:
        """Return samples oldest-first as a new list."""
        if self._size == 0:
            return []
        if self._size < self._capacity:
            return self._data[: self._size]
        return self._data[self._index :] + self._data[: self._index]

    def clear(self) -> None:
        """Empty the buffer."""
        self._size = 0
        self._index = 0


class TrendHistory:
    """Per-series ring buffers fed once per collection cycle.

    Network rates are bytes/second across all reported interfaces, derived
    from the previous snapshot's cumulative counters.
    """

    def __init__(self, capacity: int) -> None:
        self.cpu = RingBuffer(capacity)
        self.memory = RingBuffer(capacity)
        self.health = RingBuffer(capacity)
        self.net_recv_rate = RingBuffer(capacity)
        self.net_send_rate = RingBuffer(capacity)
        self._prev: MetricsSnapshot | None = None

    def record(self, snapshot: MetricsSnapshot) -> None:
        """Push one sample per series from a snapshot."""
        self.cpu.push(snapshot.cpu_percent)
        self.memory.push(snapshot.mem_percent)
        self.health.push(float(snapshot.health_score))

        prev = self._prev
        if prev is not None:
            elapsed = (snapshot.collected_at - prev.collected_at).total_seconds()
            if elapsed > 0:
                recv = _total(snapshot, "bytes_recv") - _total(prev, "bytes_recv")
                sent = _total(snapshot, "bytes_sent") - _total(prev, "bytes_sent")
                # Counters reset when interfaces come and go
                self.net_recv_rate.push(max(0, recv) / elapsed)
                self.net_send_rate.push(max(0, sent) / elapsed)
        self._prev = snapshot


def _total(snapshot: MetricsSnapshot, attr: str) -> int:
    return sum(getattr(n, attr) for n in snapshot.networks)
