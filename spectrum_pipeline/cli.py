"""
Spectrum CLI - terminal spectrum display driven by the analysis pipeline.

Entry point:
    spectrum-viz  - play a test tone (or capture live input) and draw bars
"""

import argparse
import json
import logging
import signal
import sys
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .config import PipelineConfig, VisualizerSettings, get_preset, list_presets
from .errors import ConfigurationError
from .logging_config import configure_logging
from .pipeline import SpectrumPipeline
from .sources import SoundDeviceSource, ToneSource, list_input_devices
from .spectrograph import CompactSpectrograph, TerminalSpectrograph

logger = logging.getLogger(__name__)

# Fix Windows console encoding for unicode characters
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")


def validate_positive_int(value: str) -> int:
    """Validate positive integer."""
    try:
        num = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}")

    if num <= 0:
        raise argparse.ArgumentTypeError(f"Value must be positive, got: {num}")
    return num


def validate_power_of_two(value: str) -> int:
    """Validate FFT size (positive power of two)."""
    num = validate_positive_int(value)
    if num & (num - 1):
        raise argparse.ArgumentTypeError(f"FFT size must be a power of two, got: {num}")
    return num


def validate_frequency(value: str) -> float:
    """Validate positive frequency in Hz."""
    try:
        freq = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid frequency: {value}")

    if freq <= 0:
        raise argparse.ArgumentTypeError(f"Frequency must be positive, got: {freq}")
    return freq


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spectrum-viz",
        description="Real-time log-binned spectrum display for the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  spectrum-viz                         # 440Hz test tone, 24 bars
  spectrum-viz --tone 60 --tone 1000   # Mix of two tones
  spectrum-viz --preset detailed       # 48 bars, 4096-point FFT
  spectrum-viz --capture               # Live input via sounddevice
  spectrum-viz --list-devices          # Show capture devices and exit
        """,
    )

    analysis_group = parser.add_argument_group("Analysis")
    analysis_group.add_argument(
        "--preset",
        choices=list_presets(),
        default="default",
        help="Resolution preset (default: default)",
    )
    analysis_group.add_argument(
        "--bins", type=validate_positive_int, help="Number of spectrum bars (overrides preset)"
    )
    analysis_group.add_argument(
        "--fft-size", type=validate_power_of_two, help="FFT window size (overrides preset)"
    )
    analysis_group.add_argument(
        "--band-low", type=validate_frequency, help="Lowest analyzed frequency in Hz"
    )
    analysis_group.add_argument(
        "--band-high", type=validate_frequency, help="Highest analyzed frequency in Hz"
    )
    analysis_group.add_argument(
        "--no-simulation",
        action="store_true",
        help="Disable the synthetic fallback when no audio arrives",
    )
    analysis_group.add_argument(
        "--settings",
        type=Path,
        help="Saved visualizer settings (JSON) supplying bin count and enabled flag",
    )

    source_group = parser.add_argument_group("Audio Source")
    source_group.add_argument(
        "--tone",
        type=validate_frequency,
        action="append",
        help="Test tone frequency in Hz (repeatable, default: 440)",
    )
    source_group.add_argument(
        "--sample-rate", type=validate_positive_int, default=44100, help="Sample rate in Hz"
    )
    source_group.add_argument(
        "--capture", action="store_true", help="Capture live input instead of a test tone"
    )
    source_group.add_argument("--device", type=str, help="Capture device index or name")
    source_group.add_argument(
        "--list-devices", action="store_true", help="List available capture devices and exit"
    )

    display_group = parser.add_argument_group("Display")
    display_group.add_argument(
        "--fps", type=validate_positive_int, default=30, help="Display refresh rate (default: 30)"
    )
    display_group.add_argument(
        "--height", type=validate_positive_int, default=12, help="Bar height in rows"
    )
    display_group.add_argument("--compact", action="store_true", help="Single-line display")
    display_group.add_argument(
        "--duration", type=float, default=0.0, help="Exit after N seconds (0 = run until Ctrl+C)"
    )
    display_group.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: $SPECTRUM_LOG_LEVEL or INFO)",
    )
    return parser


def build_config(args: argparse.Namespace) -> Optional[PipelineConfig]:
    """
    Combine preset, saved settings, environment and explicit flags into a
    pipeline config, later sources winning.

    Returns None when the saved settings disable the visualizer.
    """
    config = PipelineConfig(analysis=get_preset(args.preset))
    if args.settings is not None:
        config = VisualizerSettings.load(args.settings).to_pipeline_config(config)
        if config is None:
            return None
    config = PipelineConfig.from_env(config)

    overrides = {}
    if args.bins is not None:
        overrides["bin_count"] = args.bins
    if args.fft_size is not None:
        overrides["fft_size"] = args.fft_size
    if args.band_low is not None:
        overrides["band_low"] = args.band_low
    if args.band_high is not None:
        overrides["band_high"] = args.band_high

    return replace(
        config,
        analysis=replace(config.analysis, **overrides),
        enable_simulation=not args.no_simulation,
    )


def _parse_device(value):
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return value


def _restore_signals(handlers):
    for sig, handler in handlers.items():
        signal.signal(sig, handler)


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    if args.list_devices:
        devices = list_input_devices()
        if not devices:
            print("No capture devices found (is sounddevice installed?)")
        for line in devices:
            print(f"  {line}")
        return 0

    try:
        config = build_config(args)
    except (ConfigurationError, OSError, json.JSONDecodeError) as e:
        parser.error(str(e))

    if config is None:
        print("Visualizer disabled in settings")
        return 0

    if args.capture:
        source = SoundDeviceSource(device=_parse_device(args.device), sample_rate=args.sample_rate)
    else:
        source = ToneSource(
            frequency=args.tone or [440.0],
            sample_rate=args.sample_rate,
            block_size=config.analysis.fft_size,
        )

    display = CompactSpectrograph() if args.compact else TerminalSpectrograph(height=args.height)

    stop_event = threading.Event()

    def _shutdown(signum=None, frame=None):
        stop_event.set()

    previous_handlers = {
        sig: signal.signal(sig, _shutdown) for sig in (signal.SIGINT, signal.SIGTERM)
    }

    pipeline = SpectrumPipeline(config)
    try:
        source.start()
    except Exception as e:
        logger.error(f"Could not start audio source: {e}")
        _restore_signals(previous_handlers)
        return 1

    deadline = time.monotonic() + args.duration if args.duration > 0 else None
    try:
        with pipeline:
            pipeline.attach(source)
            while not stop_event.is_set():
                stats = pipeline.stats
                display.set_stats(mode=stats["source_mode"], frames_dropped=stats["frames_dropped"])
                display.display(pipeline.get_current_spectrum(), playing=source.is_playing)
                if deadline is not None and time.monotonic() >= deadline:
                    break
                stop_event.wait(1.0 / args.fps)
    finally:
        source.stop()
        display.clear()
        _restore_signals(previous_handlers)

    return 0


if __name__ == "__main__":
    sys.exit(main())
