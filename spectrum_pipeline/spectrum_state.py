"""
Shared spectrum snapshot with change notifications.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

SpectrumCallback = Callable[[np.ndarray], None]


class SpectrumState:
    """
    Current spectrum snapshot, written by the analysis and simulation
    threads and read by any number of consumers.

    Writes replace the whole array under a short lock; reads copy it out
    under the same lock, so nobody ever sees a half-written snapshot.
    Listener notification runs under a separate publish lock, which keeps
    each listener's view in write order even with two writers.
    """

    def __init__(self, bin_count: int):
        self.bin_count = bin_count
        self._data = np.zeros(bin_count, dtype=np.float32)
        self._lock = threading.Lock()
        self._publish_lock = threading.RLock()

        self._callbacks: List[SpectrumCallback] = []
        self._callbacks_lock = threading.Lock()

        self._version = 0
        self._last_source: Optional[str] = None
        self._last_update: Dict[str, float] = {}  # source -> time.monotonic() of last write

    def get_snapshot(self) -> np.ndarray:
        """Return a copy of the current snapshot."""
        with self._lock:
            return self._data.copy()

    def update(self, values: np.ndarray, source: str = "fft") -> np.ndarray:
        """
        Replace the snapshot and notify listeners.

        Args:
            values: Exactly ``bin_count`` intensities (clamped to [0, 1])
            source: Writer tag ("fft", "simulated" or "idle")

        Returns:
            A copy of the stored snapshot

        Raises:
            ValueError: if ``values`` has the wrong length
        """
        snapshot = np.asarray(values, dtype=np.float32)
        snapshot = np.clip(np.nan_to_num(snapshot, nan=0.0, posinf=1.0, neginf=0.0), 0.0, 1.0)
        if snapshot.shape != (self.bin_count,):
            raise ValueError(
                f"Spectrum must have {self.bin_count} bins, got shape {snapshot.shape}"
            )

        with self._publish_lock:
            with self._lock:
                self._data = snapshot
                self._version += 1
                self._last_source = source
                self._last_update[source] = time.monotonic()
            self._notify(snapshot)

        return snapshot.copy()

    def reset(self, source: str = "idle") -> np.ndarray:
        """Write an all-zero snapshot."""
        return self.update(np.zeros(self.bin_count, dtype=np.float32), source=source)

    def subscribe(self, callback: SpectrumCallback):
        """Register a callback invoked with a copy of every new snapshot."""
        with self._callbacks_lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def unsubscribe(self, callback: SpectrumCallback):
        """Remove a callback. Unknown callbacks are ignored."""
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def _notify(self, snapshot: np.ndarray):
        with self._callbacks_lock:
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(snapshot.copy())
            except Exception:
                logger.exception(f"Spectrum listener {callback!r} failed")

    @property
    def version(self) -> int:
        """Number of completed writes."""
        with self._lock:
            return self._version

    @property
    def last_source(self) -> Optional[str]:
        with self._lock:
            return self._last_source

    def seconds_since_update(self, source: Optional[str] = None) -> float:
        """
        Seconds since the last write (optionally only counting ``source``).

        Returns infinity if there has been no matching write.
        """
        with self._lock:
            if source is None:
                stamps = list(self._last_update.values())
                last = max(stamps) if stamps else None
            else:
                last = self._last_update.get(source)
        if last is None:
            return float("inf")
        return time.monotonic() - last

    @property
    def subscriber_count(self) -> int:
        with self._callbacks_lock:
            return len(self._callbacks)
