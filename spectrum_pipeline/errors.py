"""
Exception types raised by the spectrum pipeline.
"""


class ConfigurationError(ValueError):
    """Invalid analysis or pipeline configuration, raised at construction time."""


class BufferClosed(Exception):
    """Raised by FrameRingBuffer.drain() once the buffer is closed and empty."""
