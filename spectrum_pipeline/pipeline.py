"""
Spectrum analysis pipeline.

Wires a playback source to the shared spectrum snapshot:

    source thread -> FrameRingBuffer -> analysis thread -> SpectrumAnalyzer
        -> SpectrumState -> subscribers

A second thread runs the synthetic fallback on its own timer. It only
writes while the source reports playback, the buffer is empty and no real
spectrum has been produced within the grace window; when playback stops
it resets the snapshot to silence.
"""

import logging
import threading
import time
from typing import Callable, List, Optional, Union

import numpy as np

from .config import AnalysisConfig, PipelineConfig
from .errors import BufferClosed
from .fft_analyzer import SpectrumAnalyzer
from .frames import AudioFrame
from .ringbuffer import FrameRingBuffer
from .simulation import SpectrumSimulator
from .sources import PlaybackSource
from .spectrum_state import SpectrumCallback, SpectrumState

logger = logging.getLogger(__name__)

# Writer tags recorded in SpectrumState
SOURCE_FFT = "fft"
SOURCE_SIMULATED = "simulated"
SOURCE_IDLE = "idle"


class SpectrumPipeline:
    """
    Owns the frame buffer, the spectrum snapshot and the two background
    threads (analysis and simulation).

    Usage:
        with SpectrumPipeline(PipelineConfig()) as pipeline:
            pipeline.attach(source)
            pipeline.subscribe(renderer.draw)
            ...
            bars = pipeline.get_current_spectrum()
    """

    def __init__(
        self,
        config: Optional[Union[PipelineConfig, AnalysisConfig]] = None,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the pipeline. Invalid configuration raises ConfigurationError.

        Args:
            config: Pipeline or analysis configuration (defaults if None)
            seed: Seed for the simulation noise (None = unpredictable)
            clock: Wall-clock source for the simulation waves
        """
        if isinstance(config, AnalysisConfig):
            config = PipelineConfig(analysis=config)
        self.config = config or PipelineConfig()
        self.config.validate()

        self.bin_count = self.config.analysis.bin_count

        self._buffer = FrameRingBuffer(self.config.buffer_capacity)
        self._state = SpectrumState(self.bin_count)
        self._analyzer = SpectrumAnalyzer(self.config.analysis)
        self._simulator = SpectrumSimulator(self.bin_count, seed=seed, clock=clock)

        self._source: Optional[PlaybackSource] = None
        self._source_lock = threading.Lock()

        self._stop_event = threading.Event()
        self._lifecycle_lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        self._running = False
        self._stopped = False

        # Counters (written by one thread each)
        self._frames_processed = 0
        self._frames_skipped = 0
        self._frame_errors = 0
        self._simulation_ticks = 0
        self._simulation_errors = 0

    # === Lifecycle ===

    def start(self):
        """Start the analysis and simulation threads."""
        with self._lifecycle_lock:
            if self._running:
                return
            if self._stopped:
                raise RuntimeError("SpectrumPipeline cannot be restarted after stop()")

            # The timer thread also performs the idle reset, so it runs even
            # when the synthetic fallback is disabled
            self._threads = [
                threading.Thread(target=self._analysis_loop, name="spectrum-analysis", daemon=True),
                threading.Thread(
                    target=self._simulation_loop, name="spectrum-simulation", daemon=True
                ),
            ]
            for thread in self._threads:
                thread.start()
            self._running = True

        logger.info(
            f"Spectrum pipeline started: {self.bin_count} bins, "
            f"fft_size={self.config.analysis.fft_size}, "
            f"simulation={'on' if self.config.enable_simulation else 'off'}",
            extra={"bin_count": self.bin_count, "fft_size": self.config.analysis.fft_size},
        )

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Stop both threads and release scratch buffers. Safe to call repeatedly.

        Args:
            timeout: Join timeout per thread (defaults to config.join_timeout)

        Returns:
            True if every thread stopped within the timeout
        """
        with self._lifecycle_lock:
            if self._stopped:
                return True
            self._stopped = True
            self._running = False
            threads, self._threads = self._threads, []

        if timeout is None:
            timeout = self.config.join_timeout

        self._stop_event.set()
        self._buffer.close()
        self.detach()

        clean = True
        current = threading.current_thread()
        for thread in threads:
            if thread is current:
                continue
            thread.join(timeout)
            if thread.is_alive():
                clean = False
                logger.warning(f"{thread.name} did not stop within {timeout:.1f}s")

        self._analyzer.release()
        stats = self.stats
        logger.info(
            "Spectrum pipeline stopped",
            extra={
                "frames_dropped": stats["frames_dropped"],
                "frame_errors": stats["frame_errors"],
            },
        )
        return clean

    def close(self):
        """Alias for stop()."""
        self.stop()

    def __enter__(self) -> "SpectrumPipeline":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    # === Producer side ===

    def attach(self, source: PlaybackSource):
        """
        Start receiving frames from a playback source.

        The source's ``is_playing`` becomes the playback-state query polled by
        the simulation thread. A previously attached source is detached first.
        """
        with self._source_lock:
            previous = self._source
            if previous is source:
                return
            if previous is not None:
                previous.remove_frame_listener(self.submit)
            source.add_frame_listener(self.submit)
            self._source = source
        logger.info(f"Attached to {type(source).__name__} for analysis")

    def detach(self):
        """Stop receiving frames from the current source (no-op if none)."""
        with self._source_lock:
            source, self._source = self._source, None
            if source is None:
                return
            source.remove_frame_listener(self.submit)
        logger.info(f"Detached from {type(source).__name__}")

    @property
    def source(self) -> Optional[PlaybackSource]:
        return self._source

    def submit(self, frame: AudioFrame) -> bool:
        """
        Queue a frame for analysis. Never blocks; drops the oldest frame when full.

        Returns:
            False if an older frame was dropped or the pipeline is stopped
        """
        return self._buffer.submit(frame)

    def is_playback_active(self) -> Optional[bool]:
        """Playback state of the attached source, or None with no source attached."""
        source = self._source
        if source is None:
            return None
        return bool(source.is_playing)

    # === Consumer side ===

    def get_current_spectrum(self) -> np.ndarray:
        """Copy of the current spectrum: exactly ``bin_count`` values in [0, 1]."""
        return self._state.get_snapshot()

    def subscribe(self, callback: SpectrumCallback):
        """Call ``callback(snapshot)`` after every spectrum update."""
        self._state.subscribe(callback)

    def unsubscribe(self, callback: SpectrumCallback):
        self._state.unsubscribe(callback)

    @property
    def state(self) -> SpectrumState:
        return self._state

    @property
    def source_mode(self) -> Optional[str]:
        """Writer of the current snapshot: "fft", "simulated", "idle" or None."""
        return self._state.last_source

    @property
    def using_fft(self) -> bool:
        """Check if the current snapshot came from real audio."""
        return self.source_mode == SOURCE_FFT

    # === Processing steps ===

    def process_frame(self, frame: AudioFrame) -> bool:
        """
        Analyze one frame and publish the result.

        Returns:
            True if the snapshot was updated, False if the frame was empty
        """
        if frame.is_empty:
            self._frames_skipped += 1
            logger.debug("Skipping empty audio frame")
            return False

        spectrum = self._analyzer.analyze(frame)
        if spectrum is None:
            self._frames_skipped += 1
            return False

        self._state.update(spectrum, source=SOURCE_FFT)
        self._frames_processed += 1
        return True

    def simulation_tick(self) -> Optional[str]:
        """
        Run one simulation step.

        Returns:
            "simulated" or "idle" if the snapshot was written, None if the
            tick was suppressed (no source, fallback disabled, real data
            present or already idle)
        """
        self._simulation_ticks += 1

        playing = self.is_playback_active()
        if playing is None:
            return None

        if not playing:
            if self._state.last_source == SOURCE_IDLE:
                return None
            self._state.reset(source=SOURCE_IDLE)
            return SOURCE_IDLE

        if not self.config.enable_simulation:
            return None

        # Real data has priority over the synthetic fallback
        if not self._buffer.is_empty:
            return None
        if self._state.seconds_since_update(SOURCE_FFT) < self.config.real_data_grace:
            return None

        self._state.update(self._simulator.generate(), source=SOURCE_SIMULATED)
        return SOURCE_SIMULATED

    # === Background threads ===

    def _analysis_loop(self):
        logger.info("Audio analysis processing started")
        poll = self.config.simulation_interval

        while not self._stop_event.is_set():
            try:
                frame = self._buffer.drain(timeout=poll)
            except BufferClosed:
                break
            if frame is None:
                continue

            try:
                self.process_frame(frame)
            except Exception:
                self._frame_errors += 1
                logger.exception("Error processing audio frame")

        logger.info("Audio analysis processing stopped")

    def _simulation_loop(self):
        logger.info("Spectrum simulation started")
        interval = self.config.simulation_interval

        while not self._stop_event.wait(interval):
            try:
                self.simulation_tick()
            except Exception:
                self._simulation_errors += 1
                logger.exception("Error in spectrum simulation")

        logger.info("Spectrum simulation stopped")

    # === Diagnostics ===

    @property
    def is_running(self) -> bool:
        """Check if any background thread is alive."""
        return any(t.is_alive() for t in self._threads)

    @property
    def stats(self) -> dict:
        """Processing counters and buffer statistics."""
        buffer_stats = self._buffer.stats
        return {
            "frames_processed": self._frames_processed,
            "frames_skipped": self._frames_skipped,
            "frame_errors": self._frame_errors,
            "simulation_ticks": self._simulation_ticks,
            "simulation_errors": self._simulation_errors,
            "frames_dropped": buffer_stats.dropped,
            "buffer_fill": buffer_stats.current_fill,
            "source_mode": self.source_mode,
        }
