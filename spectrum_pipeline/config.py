"""
Spectrum pipeline configuration.

Provides:
- Type-safe configuration dataclasses for analysis and pipeline tuning
- Resolution presets (bin count / FFT size pairs)
- Loading from environment and persisted visualizer settings (JSON)
"""

import json
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional

from .errors import ConfigurationError

DEFAULT_BIN_COUNT = 24
DEFAULT_FFT_SIZE = 2048
DEFAULT_BAND_LOW = 20.0
DEFAULT_BAND_HIGH = 20000.0


def _is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


@dataclass(frozen=True)
class AnalysisConfig:
    """Spectral analysis parameters, fixed for the lifetime of one pipeline."""

    fft_size: int = DEFAULT_FFT_SIZE  # Transform window length (power of two)
    band_low: float = DEFAULT_BAND_LOW  # Lowest analyzed frequency (Hz)
    band_high: float = DEFAULT_BAND_HIGH  # Highest analyzed frequency (Hz), capped at Nyquist
    bin_count: int = DEFAULT_BIN_COUNT  # Output bins per snapshot

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigurationError if any parameter is out of range."""
        if isinstance(self.fft_size, bool) or not isinstance(self.fft_size, int):
            raise ConfigurationError(f"fft_size must be an integer, got: {self.fft_size!r}")
        if not _is_power_of_two(self.fft_size) or self.fft_size < 2:
            raise ConfigurationError(f"fft_size must be a power of two >= 2, got: {self.fft_size}")
        if isinstance(self.bin_count, bool) or not isinstance(self.bin_count, int):
            raise ConfigurationError(f"bin_count must be an integer, got: {self.bin_count!r}")
        if self.bin_count <= 0:
            raise ConfigurationError(f"bin_count must be positive, got: {self.bin_count}")
        if self.band_low <= 0:
            raise ConfigurationError(f"band_low must be positive, got: {self.band_low}")
        if self.band_low >= self.band_high:
            raise ConfigurationError(
                f"band_low ({self.band_low}) must be below band_high ({self.band_high})"
            )

    def effective_band_high(self, sample_rate: int) -> float:
        """Upper band edge for a given sample rate (never above Nyquist)."""
        return min(float(self.band_high), sample_rate / 2.0)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisConfig":
        """Create from dictionary, ignoring unknown keys."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


# Resolution presets: output granularity vs. frequency resolution
RESOLUTION_PRESETS: Dict[str, AnalysisConfig] = {
    "compact": AnalysisConfig(fft_size=1024, bin_count=16),
    "default": AnalysisConfig(),
    "detailed": AnalysisConfig(fft_size=4096, bin_count=48),
}


def get_preset(name: str) -> AnalysisConfig:
    """Get a preset by name, returns 'default' if not found."""
    return RESOLUTION_PRESETS.get(name.lower(), RESOLUTION_PRESETS["default"])


def list_presets() -> List[str]:
    """List available preset names."""
    return list(RESOLUTION_PRESETS.keys())


@dataclass
class PipelineConfig:
    """Pipeline tuning: buffering, simulation cadence and teardown."""

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)

    # Frame buffer (drop-oldest)
    buffer_capacity: int = 10

    # Simulation fallback
    enable_simulation: bool = True
    simulation_interval: float = 0.05  # ~20 ticks/second
    real_data_grace: float = 0.25  # Simulation stays quiet this long after real data

    # Teardown
    join_timeout: float = 2.0

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigurationError if any parameter is out of range."""
        if not isinstance(self.analysis, AnalysisConfig):
            raise ConfigurationError("analysis must be an AnalysisConfig")
        if self.buffer_capacity <= 0:
            raise ConfigurationError(
                f"buffer_capacity must be positive, got: {self.buffer_capacity}"
            )
        if self.simulation_interval <= 0:
            raise ConfigurationError(
                f"simulation_interval must be positive, got: {self.simulation_interval}"
            )
        if self.real_data_grace < 0:
            raise ConfigurationError(
                f"real_data_grace must not be negative, got: {self.real_data_grace}"
            )
        if self.join_timeout <= 0:
            raise ConfigurationError(f"join_timeout must be positive, got: {self.join_timeout}")

    @property
    def bin_count(self) -> int:
        return self.analysis.bin_count

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PipelineConfig":
        """Create from dictionary."""
        values = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if isinstance(values.get("analysis"), dict):
            values["analysis"] = AnalysisConfig.from_dict(values["analysis"])
        return cls(**values)

    @classmethod
    def from_env(cls, base: Optional["PipelineConfig"] = None) -> "PipelineConfig":
        """Load configuration from environment variables, falling back to ``base``."""
        base = base or cls()
        analysis = base.analysis
        try:
            analysis = replace(
                analysis,
                bin_count=int(os.environ.get("SPECTRUM_BINS", analysis.bin_count)),
                fft_size=int(os.environ.get("SPECTRUM_FFT_SIZE", analysis.fft_size)),
                band_low=float(os.environ.get("SPECTRUM_BAND_LOW", analysis.band_low)),
                band_high=float(os.environ.get("SPECTRUM_BAND_HIGH", analysis.band_high)),
            )
            capacity = int(os.environ.get("SPECTRUM_BUFFER_CAPACITY", base.buffer_capacity))
        except ValueError as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid spectrum environment setting: {e}") from e
        return replace(base, analysis=analysis, buffer_capacity=capacity)


@dataclass
class VisualizerSettings:
    """Persisted visualizer preferences (bin count and enabled flag)."""

    bin_count: int = DEFAULT_BIN_COUNT
    enabled: bool = True

    def to_pipeline_config(
        self, base: Optional[PipelineConfig] = None
    ) -> Optional[PipelineConfig]:
        """Build a pipeline config that uses these preferences.

        Returns None when the visualizer is disabled, in which case no
        pipeline should be started.
        """
        if not self.enabled:
            return None
        base = base or PipelineConfig()
        return replace(base, analysis=replace(base.analysis, bin_count=self.bin_count))

    def save(self, path: Path) -> None:
        """Save settings to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "VisualizerSettings":
        """Load settings from JSON file, returning defaults if it does not exist."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        return cls(
            bin_count=int(data.get("bin_count", DEFAULT_BIN_COUNT)),
            enabled=bool(data.get("enabled", True)),
        )
