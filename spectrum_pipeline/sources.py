"""
Playback sources that feed audio frames to the spectrum pipeline.

Supports:
1. ToneSource - synthetic sine playback (demos, tests, no audio hardware)
2. SoundDeviceSource - live input capture via sounddevice (loopback or mic)
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Union

import numpy as np

from .frames import AudioFrame

logger = logging.getLogger(__name__)

FrameListener = Callable[[AudioFrame], None]


class PlaybackSource(ABC):
    """
    Base class for anything that produces audio frames and play/pause state.

    Listeners are called on the producer's own thread and must not block.
    """

    def __init__(self):
        self._frame_listeners: List[FrameListener] = []
        self._listeners_lock = threading.Lock()

    def add_frame_listener(self, listener: FrameListener):
        """Register a callable that receives every produced frame."""
        with self._listeners_lock:
            if listener not in self._frame_listeners:
                self._frame_listeners.append(listener)

    def remove_frame_listener(self, listener: FrameListener):
        """Unregister a frame listener. Unknown listeners are ignored."""
        with self._listeners_lock:
            if listener in self._frame_listeners:
                self._frame_listeners.remove(listener)

    def _emit(self, frame: AudioFrame):
        with self._listeners_lock:
            listeners = list(self._frame_listeners)
        for listener in listeners:
            try:
                listener(frame)
            except Exception:
                logger.exception("Frame listener failed")

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        """True while audio is actively playing."""


class ToneSource(PlaybackSource):
    """
    Synthetic playback engine emitting sine-tone frames on a background thread.

    Phase is continuous across blocks, so consecutive frames splice cleanly.
    Frames are only emitted while playing; pausing keeps the thread alive.
    """

    def __init__(
        self,
        frequency: Union[float, List[float]] = 440.0,
        sample_rate: int = 44100,
        block_size: int = 2048,
        amplitude: float = 0.5,
        realtime: bool = True,
    ):
        """
        Initialize tone source.

        Args:
            frequency: Tone frequency in Hz, or a list of frequencies to mix
            sample_rate: Output sample rate
            block_size: Samples per emitted frame
            amplitude: Peak amplitude of the mix (0-1)
            realtime: If True, pace frames at block_size / sample_rate seconds
        """
        super().__init__()
        if isinstance(frequency, (int, float)):
            frequency = [float(frequency)]
        self.frequencies = [float(f) for f in frequency]
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.amplitude = amplitude
        self.realtime = realtime

        self._position = 0  # Samples generated so far
        self._playing = threading.Event()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_playing(self) -> bool:
        return self._playing.is_set() and not self._stop.is_set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def generate_block(self) -> np.ndarray:
        """Generate the next block of samples and advance the phase."""
        t = (self._position + np.arange(self.block_size)) / self.sample_rate
        block = np.zeros(self.block_size, dtype=np.float64)
        for freq in self.frequencies:
            block += np.sin(2.0 * np.pi * freq * t)
        block *= self.amplitude / max(1, len(self.frequencies))
        self._position += self.block_size
        return block.astype(np.float32)

    def start(self):
        """Start the producer thread and begin playing."""
        if self.is_running:
            self.play()
            return
        self._stop.clear()
        self._playing.set()
        self._thread = threading.Thread(target=self._run, name="tone-source", daemon=True)
        self._thread.start()
        logger.info(f"Tone source started: {self.frequencies}Hz @ {self.sample_rate}Hz")

    def play(self):
        self._playing.set()

    def pause(self):
        self._playing.clear()

    def toggle(self):
        if self._playing.is_set():
            self.pause()
        else:
            self.play()

    def stop(self, timeout: float = 1.0):
        """Stop the producer thread."""
        self._stop.set()
        self._playing.clear()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Tone source stopped")

    def _run(self):
        interval = self.block_size / self.sample_rate
        next_time = time.monotonic()
        while not self._stop.is_set():
            if not self._playing.is_set():
                # Paused: idle without emitting
                self._stop.wait(interval)
                next_time = time.monotonic()
                continue

            block = self.generate_block()
            self._emit(AudioFrame(samples=block, sample_rate=self.sample_rate))

            if self.realtime:
                next_time += interval
                delay = next_time - time.monotonic()
                if delay > 0:
                    self._stop.wait(delay)
                else:
                    next_time = time.monotonic()


class SoundDeviceSource(PlaybackSource):
    """
    Live capture through a sounddevice InputStream.

    Each callback block is downmixed to mono and emitted immediately; the
    callback never blocks the audio thread.
    """

    def __init__(
        self,
        device: Optional[Union[int, str]] = None,
        sample_rate: int = 44100,
        channels: int = 2,
        block_size: int = 1024,
    ):
        """
        Initialize capture source.

        Args:
            device: Device index or name (None = default input)
            sample_rate: Capture sample rate
            channels: Capture channel count
            block_size: Frames per callback block
        """
        super().__init__()
        self.device = device
        self.sample_rate = sample_rate
        self.channels = channels
        self.block_size = block_size
        self._stream = None
        self._running = False

    @property
    def is_playing(self) -> bool:
        return self._running and self._stream is not None and bool(self._stream.active)

    def _audio_callback(self, indata, frames, time_info, status):
        if status:
            logger.debug(f"Audio status: {status}")
        self._emit(AudioFrame.from_interleaved(indata.copy(), self.sample_rate))

    def start(self):
        """Open and start the input stream."""
        if self._running:
            return

        try:
            import sounddevice as sd
        except ImportError as e:
            raise RuntimeError(
                "sounddevice not available; install with: pip install spectrum-pipeline[capture]"
            ) from e

        self._stream = sd.InputStream(
            device=self.device,
            channels=self.channels,
            samplerate=self.sample_rate,
            blocksize=self.block_size,
            callback=self._audio_callback,
            dtype="float32",
        )
        self._stream.start()
        self._running = True
        logger.info(
            f"Sounddevice capture started (device: {self.device}, "
            f"{self.sample_rate}Hz, {self.channels}ch)"
        )

    def stop(self):
        """Stop and close the input stream."""
        self._running = False
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.debug(f"Error stopping stream: {e}")
            self._stream = None
        logger.info("Sounddevice capture stopped")


def list_input_devices() -> List[str]:
    """Describe available sounddevice input devices (empty if unavailable)."""
    try:
        import sounddevice as sd
    except ImportError:
        logger.warning("sounddevice not installed; no capture devices available")
        return []

    lines = []
    for i, dev in enumerate(sd.query_devices()):
        if dev["max_input_channels"] > 0:
            lines.append(f"{i}: {dev['name'][:45]} ({int(dev['default_samplerate'])}Hz)")
    return lines
