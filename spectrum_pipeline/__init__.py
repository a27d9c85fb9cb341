"""
Spectrum Pipeline
Real-time log-binned spectrum analysis for terminal visualization.
"""

from .config import AnalysisConfig, PipelineConfig, VisualizerSettings
from .errors import BufferClosed, ConfigurationError
from .fft_analyzer import SpectrumAnalyzer
from .frames import AudioFrame
from .pipeline import SpectrumPipeline
from .ringbuffer import FrameRingBuffer
from .sources import PlaybackSource, SoundDeviceSource, ToneSource
from .spectrum_state import SpectrumState

__all__ = [
    'AnalysisConfig',
    'AudioFrame',
    'BufferClosed',
    'ConfigurationError',
    'FrameRingBuffer',
    'PipelineConfig',
    'PlaybackSource',
    'SoundDeviceSource',
    'SpectrumAnalyzer',
    'SpectrumPipeline',
    'SpectrumState',
    'ToneSource',
    'VisualizerSettings',
]
