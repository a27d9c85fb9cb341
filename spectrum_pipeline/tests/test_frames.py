"""
Tests for the AudioFrame type.
"""

import numpy as np
import pytest

from spectrum_pipeline.frames import AudioFrame


class TestAudioFrame:
    def test_samples_converted_to_float32(self):
        """Test samples are stored as a float32 copy."""
        source = np.arange(8, dtype=np.float64)
        frame = AudioFrame(samples=source, sample_rate=44100, timestamp=1.0)

        assert frame.samples.dtype == np.float32
        source[0] = 99.0
        assert frame.samples[0] == 0.0

    def test_samples_read_only(self):
        """Test frame samples cannot be modified in place."""
        frame = AudioFrame(samples=np.zeros(4), sample_rate=44100)
        with pytest.raises(ValueError):
            frame.samples[0] = 1.0

    def test_frozen(self):
        """Test frame fields cannot be reassigned."""
        frame = AudioFrame(samples=np.zeros(4), sample_rate=44100)
        with pytest.raises(AttributeError):
            frame.sample_rate = 48000

    @pytest.mark.parametrize("sample_rate", [0, -44100])
    def test_invalid_sample_rate(self, sample_rate):
        """Test non-positive sample rates are rejected."""
        with pytest.raises(ValueError):
            AudioFrame(samples=np.zeros(4), sample_rate=sample_rate)

    def test_invalid_channels(self):
        """Test non-positive channel counts are rejected."""
        with pytest.raises(ValueError):
            AudioFrame(samples=np.zeros(4), sample_rate=44100, channels=0)

    def test_multidimensional_rejected(self):
        """Test interleaved blocks must go through from_interleaved."""
        with pytest.raises(ValueError):
            AudioFrame(samples=np.zeros((4, 2)), sample_rate=44100)

    def test_empty_frame(self):
        """Test an empty frame reports itself as empty."""
        frame = AudioFrame(samples=np.array([]), sample_rate=44100)
        assert frame.is_empty
        assert len(frame) == 0
        assert frame.duration == 0.0

    def test_duration(self):
        """Test duration in seconds."""
        frame = AudioFrame(samples=np.zeros(22050), sample_rate=44100)
        assert frame.duration == pytest.approx(0.5)


class TestFromInterleaved:
    def test_stereo_downmix(self):
        """Test channels are averaged to mono."""
        data = np.array([[1.0, 0.0], [0.5, 0.5], [-1.0, 1.0]], dtype=np.float32)
        frame = AudioFrame.from_interleaved(data, 48000, timestamp=2.0)

        np.testing.assert_allclose(frame.samples, [0.5, 0.5, 0.0])
        assert frame.channels == 2
        assert frame.sample_rate == 48000
        assert frame.timestamp == 2.0

    def test_mono_passthrough(self):
        """Test a 1-D block is treated as mono."""
        frame = AudioFrame.from_interleaved(np.array([0.1, 0.2]), 44100)
        assert frame.channels == 1
        np.testing.assert_allclose(frame.samples, [0.1, 0.2], rtol=1e-6)
