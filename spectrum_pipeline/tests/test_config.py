"""
Tests for configuration dataclasses, presets, environment loading and
persisted visualizer settings.
"""

import json

import pytest

from spectrum_pipeline.config import (
    DEFAULT_BIN_COUNT,
    AnalysisConfig,
    PipelineConfig,
    VisualizerSettings,
    get_preset,
    list_presets,
)
from spectrum_pipeline.errors import ConfigurationError


class TestAnalysisConfig:
    def test_defaults(self):
        """Test default analysis parameters."""
        config = AnalysisConfig()
        assert config.fft_size == 2048
        assert config.bin_count == 24
        assert config.band_low == 20.0
        assert config.band_high == 20000.0

    @pytest.mark.parametrize("fft_size", [0, 1, 1000, -2048])
    def test_fft_size_must_be_power_of_two(self, fft_size):
        """Test non-power-of-two FFT sizes are rejected."""
        with pytest.raises(ConfigurationError):
            AnalysisConfig(fft_size=fft_size)

    def test_fft_size_must_be_int(self):
        """Test float and bool FFT sizes are rejected."""
        with pytest.raises(ConfigurationError):
            AnalysisConfig(fft_size=2048.0)
        with pytest.raises(ConfigurationError):
            AnalysisConfig(fft_size=True)

    def test_bin_count_positive(self):
        """Test zero bins is rejected."""
        with pytest.raises(ConfigurationError):
            AnalysisConfig(bin_count=0)

    def test_band_order(self):
        """Test band_low must be below band_high."""
        with pytest.raises(ConfigurationError):
            AnalysisConfig(band_low=1000.0, band_high=1000.0)
        with pytest.raises(ConfigurationError):
            AnalysisConfig(band_low=0.0)

    def test_configuration_error_is_value_error(self):
        """Test callers catching ValueError also see config errors."""
        with pytest.raises(ValueError):
            AnalysisConfig(bin_count=-1)

    def test_effective_band_high_capped_at_nyquist(self):
        """Test the upper edge never exceeds half the sample rate."""
        config = AnalysisConfig()
        assert config.effective_band_high(44100) == 20000.0
        assert config.effective_band_high(16000) == 8000.0

    def test_dict_roundtrip_ignores_unknown_keys(self):
        """Test from_dict skips keys it does not know."""
        data = AnalysisConfig(bin_count=32).to_dict()
        data["color"] = "red"
        assert AnalysisConfig.from_dict(data) == AnalysisConfig(bin_count=32)


class TestPresets:
    def test_list_presets(self):
        """Test all presets are listed."""
        assert set(list_presets()) == {"compact", "default", "detailed"}

    def test_get_preset(self):
        """Test preset lookup is case-insensitive."""
        assert get_preset("DETAILED").bin_count == 48
        assert get_preset("compact").fft_size == 1024

    def test_unknown_preset_falls_back(self):
        """Test unknown names return the default preset."""
        assert get_preset("nope") == AnalysisConfig()


class TestPipelineConfig:
    def test_defaults(self):
        """Test default pipeline tuning values."""
        config = PipelineConfig()
        assert config.buffer_capacity == 10
        assert config.simulation_interval == pytest.approx(0.05)
        assert config.enable_simulation
        assert config.bin_count == DEFAULT_BIN_COUNT

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"buffer_capacity": 0},
            {"simulation_interval": 0.0},
            {"real_data_grace": -1.0},
            {"join_timeout": 0.0},
            {"analysis": {"bin_count": 8}},
        ],
    )
    def test_invalid_values(self, kwargs):
        """Test out-of-range tuning values are rejected."""
        with pytest.raises(ConfigurationError):
            PipelineConfig(**kwargs)

    def test_from_dict_nested_analysis(self):
        """Test from_dict rebuilds the nested analysis config."""
        data = PipelineConfig(analysis=AnalysisConfig(bin_count=12), buffer_capacity=4).to_dict()
        config = PipelineConfig.from_dict(data)
        assert config.analysis == AnalysisConfig(bin_count=12)
        assert config.buffer_capacity == 4


class TestFromEnv:
    def test_no_env_keeps_base(self, monkeypatch):
        """Test missing variables leave the base config unchanged."""
        for name in (
            "SPECTRUM_BINS",
            "SPECTRUM_FFT_SIZE",
            "SPECTRUM_BAND_LOW",
            "SPECTRUM_BAND_HIGH",
            "SPECTRUM_BUFFER_CAPACITY",
        ):
            monkeypatch.delenv(name, raising=False)
        base = PipelineConfig(analysis=AnalysisConfig(bin_count=16))
        assert PipelineConfig.from_env(base) == base

    def test_env_overrides(self, monkeypatch):
        """Test variables override analysis and buffer settings."""
        monkeypatch.setenv("SPECTRUM_BINS", "32")
        monkeypatch.setenv("SPECTRUM_FFT_SIZE", "4096")
        monkeypatch.setenv("SPECTRUM_BAND_HIGH", "16000")
        monkeypatch.setenv("SPECTRUM_BUFFER_CAPACITY", "5")

        config = PipelineConfig.from_env()
        assert config.analysis.bin_count == 32
        assert config.analysis.fft_size == 4096
        assert config.analysis.band_high == 16000.0
        assert config.buffer_capacity == 5

    def test_unparseable_env(self, monkeypatch):
        """Test garbage values raise ConfigurationError."""
        monkeypatch.setenv("SPECTRUM_BINS", "many")
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_env()

    def test_invalid_env(self, monkeypatch):
        """Test parseable but invalid values raise ConfigurationError."""
        monkeypatch.setenv("SPECTRUM_FFT_SIZE", "1000")
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_env()


class TestVisualizerSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        """Test loading a nonexistent file returns defaults."""
        settings = VisualizerSettings.load(tmp_path / "missing.json")
        assert settings == VisualizerSettings()

    def test_save_and_load(self, tmp_path):
        """Test settings persist to JSON and load back."""
        path = tmp_path / "nested" / "visualizer.json"
        VisualizerSettings(bin_count=32, enabled=False).save(path)

        assert json.loads(path.read_text()) == {"bin_count": 32, "enabled": False}
        assert VisualizerSettings.load(path) == VisualizerSettings(bin_count=32, enabled=False)

    def test_partial_file(self, tmp_path):
        """Test missing keys fall back to defaults."""
        path = tmp_path / "visualizer.json"
        path.write_text(json.dumps({"enabled": False}))
        settings = VisualizerSettings.load(path)
        assert settings.bin_count == DEFAULT_BIN_COUNT
        assert settings.enabled is False

    def test_to_pipeline_config(self):
        """Test the bin count carries into the pipeline config."""
        base = PipelineConfig(buffer_capacity=3)
        config = VisualizerSettings(bin_count=16).to_pipeline_config(base)
        assert config.bin_count == 16
        assert config.buffer_capacity == 3
        assert config.analysis.fft_size == base.analysis.fft_size

    def test_disabled_gives_no_pipeline_config(self):
        """Test a disabled visualizer yields no pipeline config."""
        assert VisualizerSettings(enabled=False).to_pipeline_config() is None
