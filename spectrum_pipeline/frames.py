"""
Audio frame type delivered by playback sources.
"""

import time
from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True, eq=False)
class AudioFrame:
    """Immutable block of mono PCM samples."""

    samples: np.ndarray  # Mono float32 amplitudes, already downmixed
    sample_rate: int  # Hz
    channels: int = 1  # Channel count of the original stream
    timestamp: float = field(default_factory=time.time)  # Capture time

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got: {self.sample_rate}")
        if self.channels <= 0:
            raise ValueError(f"channels must be positive, got: {self.channels}")

        samples = np.array(self.samples, dtype=np.float32, copy=True)
        if samples.ndim != 1:
            raise ValueError(f"samples must be one-dimensional, got shape {samples.shape}")
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    @classmethod
    def from_interleaved(
        cls, data: np.ndarray, sample_rate: int, timestamp: float = None
    ) -> "AudioFrame":
        """
        Build a frame from a (frames, channels) block, averaging channels to mono.

        A one-dimensional block is treated as mono.
        """
        data = np.asarray(data, dtype=np.float32)
        if data.ndim > 1:
            channels = data.shape[1]
            mono = np.mean(data, axis=1, dtype=np.float32)
        else:
            channels = 1
            mono = data
        if timestamp is None:
            timestamp = time.time()
        return cls(samples=mono, sample_rate=sample_rate, channels=channels, timestamp=timestamp)

    @property
    def is_empty(self) -> bool:
        return self.samples.size == 0

    @property
    def duration(self) -> float:
        """Frame length in seconds."""
        return self.samples.size / self.sample_rate

    def __len__(self) -> int:
        return int(self.samples.size)
