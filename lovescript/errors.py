"""Error types for lovescript with source location context."""

from __future__ import annotations


class LoveScriptError(Exception):
    """Base error with optional source location."""

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
        path: str | None = None,
    ):
        self.message = message
        self.line = line
        self.column = column
        self.path = path
        loc = ""
        if path is not None:
            loc = f" in {path}"
        if line is not None:
            loc += f" (line {line}"
            if column is not None:
                loc += f", col {column}"
            loc += ")"
        super().__init__(f"{message}{loc}")


class ParseError(LoveScriptError):
    """Raised when source code cannot be parsed.

    ``code`` is the diagnostic code the syntax error is reported under.
    """

    def __init__(self, message: str, line: int | None = None, column: int | None = None, code: int = 1005):
        self.code = code
        super().__init__(message, line=line, column=column)


class ConfigError(LoveScriptError):
    """Raised when no usable configuration file can be located."""


class EmitError(LoveScriptError):
    """Raised when an output file cannot be written."""


class SpawnError(LoveScriptError):
    """Raised when the runtime process cannot be launched."""
