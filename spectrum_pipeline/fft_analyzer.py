"""
Windowed FFT and logarithmic binning.

Turns a block of mono PCM samples into a fixed number of perceptually
log-spaced bins in [0, 1], suitable for drawing terminal bars.

Two pure building blocks (``windowed_transform`` and ``log_bin_spectrum``)
and a ``SpectrumAnalyzer`` that owns the window, the per-sample-rate bin
edges and the scratch buffer used by the analysis thread.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy.fft import fft

from .config import AnalysisConfig
from .errors import ConfigurationError
from .frames import AudioFrame

logger = logging.getLogger(__name__)

# Denominator of the log10(1 + 9x) compression curve
_LOG_COMPRESSION_BASE = math.log10(10.0)


def hann_window(size: int) -> np.ndarray:
    """Symmetric Hann window: 0.5 * (1 - cos(2*pi*i / (size - 1)))."""
    return np.hanning(size)


def windowed_transform(
    samples: np.ndarray,
    fft_size: int,
    window: Optional[np.ndarray] = None,
    scratch: Optional[np.ndarray] = None,
) -> Optional[np.ndarray]:
    """
    Hann-windowed forward FFT of the first ``fft_size`` samples.

    Shorter inputs are zero-padded. The forward transform is unscaled
    (asymmetric scaling: 1/N is applied only on the inverse).

    Args:
        samples: Mono sample buffer
        fft_size: Transform length (power of two)
        window: Pre-computed window of length fft_size (computed if None)
        scratch: Complex work buffer of length fft_size (allocated if None)

    Returns:
        Complex spectrum of length fft_size (only the first fft_size // 2
        entries are meaningful), or None if ``samples`` is empty
    """
    samples = np.asarray(samples)
    if samples.size == 0:
        return None

    if window is None:
        window = hann_window(fft_size)
    if scratch is None or scratch.shape[0] != fft_size:
        scratch = np.empty(fft_size, dtype=np.complex128)

    n = min(samples.size, fft_size)
    scratch[:n] = samples[:n] * window[:n]
    scratch[n:] = 0.0

    return fft(scratch, n=fft_size, norm="backward")


def compute_bin_edges(
    fft_size: int, sample_rate: int, bin_count: int, band_low: float, band_high: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map log-spaced frequency bands to FFT index ranges.

    Bin ``i`` spans 10^(logMin + (logMax - logMin) * i / N) up to the same
    expression with ``i + 1``. Each edge becomes ``int(freq * fft_size /
    sample_rate)``; starts are clamped into the usable half and every range
    is at least one index wide.

    Returns:
        (starts, ends) integer arrays of length bin_count; bin ``i`` covers
        indices [starts[i], ends[i])
    """
    usable = fft_size // 2
    band_high = min(float(band_high), sample_rate / 2.0)
    if band_low <= 0 or band_low >= band_high:
        raise ConfigurationError(
            f"Band {band_low}-{band_high}Hz is empty at sample rate {sample_rate}Hz"
        )

    log_min = math.log10(band_low)
    log_max = math.log10(band_high)
    log_edges = log_min + (log_max - log_min) * np.arange(bin_count + 1) / bin_count
    freqs = np.power(10.0, log_edges)

    indices = np.floor(freqs * fft_size / sample_rate).astype(np.int64)
    starts = np.clip(indices[:-1], 0, usable - 1)
    ends = np.clip(indices[1:], starts + 1, usable)
    return starts, ends


def log_bin_spectrum(magnitudes: np.ndarray, starts: np.ndarray, ends: np.ndarray) -> np.ndarray:
    """
    Average magnitudes per bin, normalize to the loudest bin and compress.

    Silence (all-zero bins) skips normalization and stays all-zero.

    Args:
        magnitudes: Magnitude spectrum (first fft_size // 2 entries)
        starts: Inclusive start index per bin
        ends: Exclusive end index per bin

    Returns:
        float32 array of bin intensities in [0, 1]
    """
    # Prefix sums give every range mean in one pass
    csum = np.concatenate(([0.0], np.cumsum(magnitudes, dtype=np.float64)))
    bins = (csum[ends] - csum[starts]) / (ends - starts)

    max_magnitude = float(np.max(bins)) if bins.size else 0.0
    if max_magnitude > 0 and np.isfinite(max_magnitude):
        bins = bins / max_magnitude
        bins = np.log10(1.0 + bins * 9.0) / _LOG_COMPRESSION_BASE
    else:
        bins = np.zeros_like(bins)

    return np.clip(bins, 0.0, 1.0).astype(np.float32)


class SpectrumAnalyzer:
    """
    Frame-to-spectrum converter for the analysis thread.

    Holds the Hann window, bin edges cached per sample rate and a complex
    scratch buffer. Not thread-safe: one instance per analysis thread.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """
        Initialize the analyzer.

        Args:
            config: Analysis parameters (defaults: 2048 FFT, 24 bins, 20Hz-20kHz)
        """
        self.config = config or AnalysisConfig()
        self.fft_size = self.config.fft_size
        self.bin_count = self.config.bin_count

        # Pre-compute window (Hann for smooth spectral analysis)
        self.window = hann_window(self.fft_size)

        self._edges: Dict[int, Tuple[np.ndarray, np.ndarray]] = {}
        self._scratch: Optional[np.ndarray] = None

        logger.debug(
            f"SpectrumAnalyzer initialized: fft_size={self.fft_size}, "
            f"bins={self.bin_count}, band={self.config.band_low}-{self.config.band_high}Hz"
        )

    def _bin_edges(self, sample_rate: int) -> Tuple[np.ndarray, np.ndarray]:
        edges = self._edges.get(sample_rate)
        if edges is None:
            edges = compute_bin_edges(
                self.fft_size,
                sample_rate,
                self.bin_count,
                self.config.band_low,
                self.config.band_high,
            )
            self._edges[sample_rate] = edges
        return edges

    def transform(self, samples: np.ndarray) -> Optional[np.ndarray]:
        """Windowed FFT using this analyzer's window and scratch buffer."""
        if self._scratch is None:
            self._scratch = np.empty(self.fft_size, dtype=np.complex128)
        return windowed_transform(samples, self.fft_size, self.window, self._scratch)

    def compute(self, samples: np.ndarray, sample_rate: int) -> Optional[np.ndarray]:
        """
        Compute binned spectrum for raw samples.

        Returns:
            float32 array of ``bin_count`` values in [0, 1], or None for an
            empty buffer
        """
        spectrum = self.transform(samples)
        if spectrum is None:
            return None

        magnitudes = np.abs(spectrum[: self.fft_size // 2])
        starts, ends = self._bin_edges(sample_rate)
        return log_bin_spectrum(magnitudes, starts, ends)

    def analyze(self, frame: AudioFrame) -> Optional[np.ndarray]:
        """Compute binned spectrum for an audio frame (None if the frame is empty)."""
        return self.compute(frame.samples, frame.sample_rate)

    def bin_frequency_ranges(self, sample_rate: int) -> List[Tuple[float, float]]:
        """Nominal (start_hz, end_hz) of each output bin at ``sample_rate``."""
        high = self.config.effective_band_high(sample_rate)
        log_min = math.log10(self.config.band_low)
        log_max = math.log10(high)
        step = (log_max - log_min) / self.bin_count
        return [
            (10 ** (log_min + step * i), 10 ** (log_min + step * (i + 1)))
            for i in range(self.bin_count)
        ]

    def release(self):
        """Drop scratch buffers and cached edges (re-created on next use)."""
        self._scratch = None
        self._edges.clear()
