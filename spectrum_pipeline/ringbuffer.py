"""
Bounded Drop-Oldest Frame Ring Buffer.

Decouples time-sensitive audio producers from the analysis thread.
Producers never block: when the buffer is full the oldest frame is
discarded to admit the new one. A single consumer drains frames in
submission order.

Usage:
    buffer = FrameRingBuffer(capacity=10)

    # Producer thread(s)
    buffer.submit(frame)

    # Consumer thread
    try:
        frame = buffer.drain(timeout=0.1)
    except BufferClosed:
        ...  # shutting down
"""

import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from .errors import BufferClosed, ConfigurationError
from .frames import AudioFrame


@dataclass
class BufferStats:
    """Statistics for ring buffer operations."""

    submitted: int = 0
    drained: int = 0
    dropped: int = 0  # Oldest frames discarded to admit new ones
    rejected: int = 0  # Submissions after close()
    capacity: int = 0
    current_fill: int = 0

    def reset(self):
        """Reset all counters."""
        self.submitted = 0
        self.drained = 0
        self.dropped = 0
        self.rejected = 0


class FrameRingBuffer:
    """
    Many-producer, single-consumer ring buffer with drop-oldest overflow.

    A ``deque`` with ``maxlen`` holds the slots; a condition variable lets
    the consumer sleep until a frame arrives or the buffer is closed. The
    lock is only held for the O(1) append/popleft, so producers never wait
    on analysis work.

    Attributes:
        capacity: Maximum number of buffered frames
    """

    def __init__(self, capacity: int = 10):
        """
        Initialize the ring buffer.

        Args:
            capacity: Number of frame slots (small, e.g. 10)
        """
        if capacity <= 0:
            raise ConfigurationError(f"capacity must be positive, got: {capacity}")

        self.capacity = capacity
        self._frames: Deque[AudioFrame] = deque(maxlen=capacity)
        self._cond = threading.Condition(threading.Lock())
        self._closed = False
        self._stats = BufferStats(capacity=capacity)

    def submit(self, frame: AudioFrame) -> bool:
        """
        Add a frame to the buffer.

        Non-blocking and never raises on a full buffer.

        Args:
            frame: Audio frame from the producer

        Returns:
            True if admitted without loss, False if the oldest frame was
            dropped to make room or the buffer is closed
        """
        with self._cond:
            if self._closed:
                self._stats.rejected += 1
                return False

            dropped = len(self._frames) == self.capacity
            # deque(maxlen) evicts from the left on append
            self._frames.append(frame)
            self._stats.submitted += 1
            if dropped:
                self._stats.dropped += 1
            self._cond.notify()

        return not dropped

    def drain(self, timeout: Optional[float] = None) -> Optional[AudioFrame]:
        """
        Remove and return the oldest buffered frame, waiting if necessary.

        Only the analysis thread should call this.

        Args:
            timeout: Seconds to wait for a frame (None = wait indefinitely)

        Returns:
            The next frame, or None if the timeout expired

        Raises:
            BufferClosed: if the buffer is closed and empty
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._frames or self._closed, timeout):
                return None
            if not self._frames:
                raise BufferClosed("frame buffer closed")
            self._stats.drained += 1
            return self._frames.popleft()

    def try_drain(self) -> Optional[AudioFrame]:
        """Non-blocking drain. Returns None if the buffer is empty."""
        with self._cond:
            if not self._frames:
                return None
            self._stats.drained += 1
            return self._frames.popleft()

    def close(self):
        """Close the buffer and wake any waiting consumer. Idempotent."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def clear(self):
        """Discard all buffered frames."""
        with self._cond:
            self._frames.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def available(self) -> int:
        """Number of frames available to drain."""
        with self._cond:
            return len(self._frames)

    @property
    def is_empty(self) -> bool:
        """Check if buffer is empty."""
        return self.available == 0

    @property
    def is_full(self) -> bool:
        """Check if buffer is full."""
        return self.available == self.capacity

    @property
    def stats(self) -> BufferStats:
        """Get buffer statistics."""
        with self._cond:
            self._stats.current_fill = len(self._frames)
            return BufferStats(**vars(self._stats))

    def reset_stats(self):
        """Reset statistics counters."""
        with self._cond:
            self._stats.reset()
