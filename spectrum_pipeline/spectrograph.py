"""
Terminal-based spectrum display for the demo CLI.
Vertical bars with height-based colors, plus a single-line compact mode.
"""

import os
import shutil
import sys
from typing import List, Optional, Sequence


def is_vscode_terminal() -> bool:
    """Check if running in VS Code's integrated terminal."""
    return os.environ.get("TERM_PROGRAM") == "vscode"


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    BRIGHT_GREEN = "\033[92m"

    # Cursor control
    HIDE_CURSOR = "\033[?25l"
    SHOW_CURSOR = "\033[?25h"
    CLEAR_LINE = "\033[2K"
    CLEAR_SCREEN = "\033[2J"
    HOME = "\033[H"


# Partial-height block characters, lowest to full
BAR_CHARS = "▁▂▃▄▅▆▇█"


def _safe_level(value) -> float:
    """Clamp to [0, 1], mapping NaN and non-numbers to 0."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not (-1e10 < value < 1e10):
        return 0.0
    return max(0.0, min(1.0, value))


def bar_color(bar_height: int, max_height: int) -> str:
    """Red near the top, yellow in the middle, green below."""
    if bar_height > max_height * 0.8:
        return Colors.RED
    if bar_height > max_height * 0.5:
        return Colors.YELLOW
    return Colors.GREEN


def render_bars(spectrum: Sequence[float], height: int = 12, color: bool = True) -> List[str]:
    """
    Render a spectrum as vertical bars, one column per bin.

    Args:
        spectrum: Bin intensities (0-1)
        height: Number of text rows
        color: Wrap cells in ANSI colors

    Returns:
        Lines from top row to bottom row
    """
    levels = [_safe_level(v) for v in spectrum]
    # Eighths of a row, so tops can use partial blocks
    heights = [int(round(level * height * 8)) for level in levels]

    lines = []
    for row in range(height - 1, -1, -1):
        row_floor = row * 8
        cells = []
        for eighths in heights:
            if eighths <= row_floor:
                cells.append(" ")
                continue
            fill = min(8, eighths - row_floor)
            char = BAR_CHARS[fill - 1]
            if color:
                char = f"{bar_color(eighths // 8, height)}{char}{Colors.RESET}"
            cells.append(char)
        lines.append("".join(cells))
    return lines


class TerminalSpectrograph:
    """Multi-row spectrum display redrawn in place."""

    def __init__(self, height: int = 12, vscode_mode: Optional[bool] = None, stream=None):
        self.height = height
        self._stream = stream or sys.stdout
        self._frame = 0
        self._initialized = False
        self._lines_used = 0

        # Status shown in the header
        self._mode = None
        self._frames_dropped = 0

        # VS Code compatibility - auto-detect or use provided value
        self._vscode_mode = vscode_mode if vscode_mode is not None else is_vscode_terminal()

        try:
            self._width = shutil.get_terminal_size().columns
        except OSError:
            self._width = 80

        # Enable ANSI on Windows
        if sys.platform == "win32":
            os.system("")

        if self._vscode_mode:
            self._stream.write(Colors.CLEAR_SCREEN)
            self._stream.write(Colors.HOME)
            self._stream.flush()

    def set_stats(self, mode=None, frames_dropped=None):
        """Update header stats from the pipeline."""
        if mode is not None:
            self._mode = mode
        if frames_dropped is not None:
            self._frames_dropped = frames_dropped

    def _header(self) -> str:
        header = f"{Colors.CYAN}{Colors.BOLD}# Spectrum{Colors.RESET}"
        if self._mode == "fft":
            mode_str = f" {Colors.BRIGHT_GREEN}FFT{Colors.RESET}"
        elif self._mode == "simulated":
            mode_str = f" {Colors.DIM}SYN{Colors.RESET}"
        else:
            mode_str = f" {Colors.DIM}---{Colors.RESET}"
        dropped = ""
        if self._frames_dropped:
            dropped = f" {Colors.DIM}dropped={self._frames_dropped}{Colors.RESET}"
        return f"{header}{mode_str}{dropped}"

    def display(self, spectrum: Sequence[float], playing: bool = True):
        """Draw one frame of the display."""
        self._frame += 1

        if self._vscode_mode:
            self._stream.write(Colors.HOME)
        elif self._initialized:
            self._stream.write(f"\033[{self._lines_used}A")

        rule = f"{Colors.DIM}{'─' * min(max(len(spectrum), 20), self._width - 2)}{Colors.RESET}"
        lines = [self._header(), rule]

        if not playing or len(spectrum) == 0:
            lines.append(f"{Colors.DIM}No audio playing{Colors.RESET}")
            lines.extend("" for _ in range(self.height - 1))
        else:
            lines.extend(render_bars(spectrum, self.height))

        lines.append(rule)
        lines.append(f"{Colors.DIM}Frame: {self._frame}{Colors.RESET}")

        for line in lines:
            self._stream.write(f"{Colors.CLEAR_LINE}{line}\n")

        self._stream.flush()
        self._lines_used = len(lines)
        self._initialized = True

    def clear(self):
        """Clean up display."""
        if self._vscode_mode:
            self._stream.write(Colors.CLEAR_SCREEN)
            self._stream.write(Colors.HOME)
        elif self._initialized:
            for _ in range(self._lines_used):
                self._stream.write(f"{Colors.CLEAR_LINE}\n")
            self._stream.write(f"\033[{self._lines_used}A")

        self._stream.write(Colors.SHOW_CURSOR)
        self._stream.flush()


class CompactSpectrograph:
    """Minimal single-line spectrograph for simple output."""

    def __init__(self, stream=None):
        self._stream = stream or sys.stdout
        self._frame = 0

    @staticmethod
    def format_line(spectrum: Sequence[float]) -> str:
        chars = " " + BAR_CHARS
        return "".join(chars[int(_safe_level(v) * (len(chars) - 1))] for v in spectrum)

    def display(self, spectrum: Sequence[float], playing: bool = True):
        """Display compact spectrograph on single line."""
        self._frame += 1
        body = self.format_line(spectrum) if playing else "No audio playing"
        self._stream.write(f"\r[{body}] Frame:{self._frame}    ")
        self._stream.flush()

    def set_stats(self, **kwargs):
        """No-op for compact display."""
        pass

    def clear(self):
        self._stream.write("\n")
        self._stream.flush()
