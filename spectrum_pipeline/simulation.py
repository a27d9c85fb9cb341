"""
Synthetic spectrum generator.

Produces a plausible, bass-heavy bar pattern from wall-clock time when
playback is active but no real audio frames are reaching the analyzer.
"""

import time
from typing import Callable, Optional

import numpy as np

# (amplitude, temporal frequency, per-bin phase step)
SIMULATION_WAVES = (
    (0.30, 2.0, 0.10),
    (0.20, 3.0, 0.15),
    (0.15, 5.0, 0.05),
)
SIMULATION_OFFSET = 0.3
NOISE_AMPLITUDE = 0.1  # Peak-to-peak


def simulate_spectrum(
    bin_count: int, t: float, rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """
    Generate one synthetic spectrum frame.

    Each bin combines a linear bass emphasis (1.0 at bin 0 down to 0.0 past
    the last bin), three sinusoids with per-bin phase offsets, a constant
    offset and a small random perturbation, clamped to [0, 1].

    Args:
        bin_count: Number of output bins
        t: Time in seconds (wall-clock)
        rng: Random generator for the perturbation (fresh one if None)

    Returns:
        float32 array of ``bin_count`` values in [0, 1]
    """
    if rng is None:
        rng = np.random.default_rng()

    i = np.arange(bin_count, dtype=np.float64)
    bass_boost = np.maximum(0.0, 1.0 - i / bin_count)

    waves = np.zeros(bin_count, dtype=np.float64)
    for amplitude, speed, phase_step in SIMULATION_WAVES:
        waves += amplitude * np.sin(t * speed + i * phase_step)

    noise = (rng.random(bin_count) - 0.5) * NOISE_AMPLITUDE

    values = (waves + noise + SIMULATION_OFFSET) * bass_boost
    return np.clip(values, 0.0, 1.0).astype(np.float32)


class SpectrumSimulator:
    """Stateful wrapper that supplies time and randomness to simulate_spectrum."""

    def __init__(
        self,
        bin_count: int,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            bin_count: Number of output bins
            seed: Seed for the perturbation noise (None = unpredictable)
            clock: Time source in seconds
        """
        self.bin_count = bin_count
        self._rng = np.random.default_rng(seed)
        self._clock = clock

    def generate(self, t: Optional[float] = None) -> np.ndarray:
        """Generate a frame for time ``t`` (defaults to the clock)."""
        if t is None:
            t = self._clock()
        return simulate_spectrum(self.bin_count, t, self._rng)

    def silence(self) -> np.ndarray:
        """All-zero frame used while playback is inactive."""
        return np.zeros(self.bin_count, dtype=np.float32)
