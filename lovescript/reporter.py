"""Diagnostic and watch-status reporting for the terminal."""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path
from typing import Iterable, TextIO

from .config import BuildOptions
from .diagnostics import Diagnostic, Severity, error_summary

# ANSI styles
_RESET = "\033[0m"
_GREY = "\033[90m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_BLUE = "\033[94m"
_CYAN = "\033[96m"

_SEVERITY_COLORS = {
    Severity.ERROR: _RED,
    Severity.WARNING: _YELLOW,
    Severity.SUGGESTION: _GREY,
    Severity.MESSAGE: _BLUE,
}

STARTING_WATCH = "Starting compilation in watch mode..."
CHANGE_DETECTED = "File change detected. Starting incremental compilation..."


def should_be_pretty(options: BuildOptions | None = None, stream: TextIO | None = None) -> bool:
    """Explicit ``pretty`` option wins; otherwise pretty only on a terminal."""
    if options is not None and options.pretty is not None:
        return bool(options.pretty)
    stream = stream or sys.stdout
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class DiagnosticReporter:
    """Renders diagnostics, status lines and per-pass summaries."""

    def __init__(self, stream: TextIO | None = None, pretty: bool = False, cwd: Path | None = None):
        self.stream = stream or sys.stdout
        self.pretty = pretty
        self.cwd = cwd or Path.cwd()

    def report(self, diagnostic: Diagnostic) -> None:
        if self.pretty:
            text = self._format_pretty(diagnostic)
        else:
            text = self._format_plain(diagnostic)
        self._write(text)

    def report_all(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.report(diagnostic)

    def report_summary(self, error_count: int, watching: bool = True) -> None:
        text = error_summary(error_count, watching=watching)
        if watching:
            self.report_status(text)
        else:
            self._write(text)

    def report_status(self, message: str) -> None:
        stamp = time.strftime("%H:%M:%S")
        if self.pretty:
            self._write(f"[{_GREY}{stamp}{_RESET}] {message}")
        else:
            self._write(f"[{stamp}] {message}")

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def _display_path(self, path: Path) -> str:
        try:
            return os.path.relpath(path, self.cwd).replace(os.sep, "/")
        except ValueError:
            # Different drive on Windows.
            return path.as_posix()

    def _format_plain(self, diag: Diagnostic) -> str:
        loc = ""
        if diag.file is not None:
            loc = self._display_path(diag.file)
            if diag.line:
                loc += f"({diag.line},{diag.column})"
            loc += ": "
        return f"{loc}{diag.severity.value} LS{diag.code}: {diag.message}"

    def _format_pretty(self, diag: Diagnostic) -> str:
        color = _SEVERITY_COLORS[diag.severity]
        head = f"{color}{diag.severity.value}{_RESET} {_GREY}LS{diag.code}:{_RESET} {diag.message}"
        if diag.file is None:
            return head + "\n"

        loc = f"{_CYAN}{self._display_path(diag.file)}{_RESET}"
        if diag.line:
            loc += f":{_YELLOW}{diag.line}{_RESET}:{_YELLOW}{diag.column}{_RESET}"
        lines = [f"{loc} - {head}"]

        source_line = _read_line(diag.file, diag.line) if diag.line else None
        if source_line is not None:
            gutter = str(diag.line)
            column = max(diag.column, 1)
            squiggle = "~" * max(diag.length, 1)
            lines.append("")
            lines.append(f"{_GREY}{gutter}{_RESET} {source_line}")
            lines.append(f"{' ' * len(gutter)} {' ' * (column - 1)}{color}{squiggle}{_RESET}")
        return "\n".join(lines) + "\n"

    def _write(self, text: str) -> None:
        self.stream.write(text + "\n")
        self.stream.flush()


def _read_line(path: Path, line: int) -> str | None:
    try:
        lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return None
    if 1 <= line <= len(lines):
        return lines[line - 1].expandtabs(4)
    return None
