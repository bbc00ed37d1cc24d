"""Diagnostics: the closed set of categories the compiler reports, as data.

Diagnostics never raise. They flow from the configuration loader, the
parser, the checker and the emitter into a single sorted, de-duplicated list
that the reporter renders once per pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Iterable


class Category(IntEnum):
    """Where a diagnostic came from; the value is its sort rank."""
    CONFIG = 0
    OPTIONS = 1
    SYNTACTIC = 2
    SEMANTIC = 3
    GLOBAL = 4
    EMIT = 5


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"
    MESSAGE = "message"


# ---------------------------------------------------------------------------
# Diagnostic codes
# ---------------------------------------------------------------------------

UNEXPECTED_TOKEN = 1005
INVALID_CHARACTER = 1127
NOT_A_STATEMENT = 1128
RESERVED_WORD = 1213
CANNOT_FIND_NAME = 2304
CANNOT_FIND_MODULE = 2307
INVALID_ASSIGNMENT_TARGET = 2364
DUPLICATE_FUNCTION = 2393
REDECLARED_LOCAL = 2451
UNKNOWN_OPTION = 5023
OPTION_TYPE = 5024
OUT_DIR_IS_ROOT_DIR = 5055
MISSING_ROOT_DIR = 5057
UNREADABLE_FILE = 5083
OVERWRITES_SUPPORT_FILE = 6059
UNUSED_LOCAL = 6133
NO_MAIN_MODULE = 6504
UNREACHABLE_CODE = 7027


@dataclass(frozen=True)
class Diagnostic:
    """A single compiler message with optional source position.

    ``line`` and ``column`` are 1-based; 0 means "no position".
    """
    category: Category
    severity: Severity
    code: int
    message: str
    file: Path | None = None
    line: int = 0
    column: int = 0
    length: int = 0

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    @property
    def identity(self) -> tuple:
        """Structural identity used for de-duplication."""
        return (self.code, self.file, self.line, self.column, self.message)

    def sort_key(self) -> tuple:
        return (
            "" if self.file is None else self.file.as_posix(),
            self.line,
            self.column,
            int(self.category),
            self.code,
            self.message,
        )

    def __str__(self) -> str:
        loc = ""
        if self.file is not None:
            loc = self.file.as_posix()
            if self.line:
                loc += f"({self.line},{self.column})"
            loc += ": "
        return f"{loc}{self.severity.value} LS{self.code}: {self.message}"


def error(category: Category, code: int, message: str, **location) -> Diagnostic:
    return Diagnostic(category, Severity.ERROR, code, message, **location)


def warning(category: Category, code: int, message: str, **location) -> Diagnostic:
    return Diagnostic(category, Severity.WARNING, code, message, **location)


def sort_and_deduplicate(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    """Order by file, position, then category; drop structural duplicates."""
    result: list[Diagnostic] = []
    seen: set[tuple] = set()
    for diag in sorted(diagnostics, key=Diagnostic.sort_key):
        if diag.identity in seen:
            continue
        seen.add(diag.identity)
        result.append(diag)
    return result


def count_errors(diagnostics: Iterable[Diagnostic]) -> int:
    return sum(1 for d in diagnostics if d.is_error)


def error_summary(error_count: int, watching: bool = True) -> str:
    """One-line pass summary: 'Found 0 errors.', 'Found 1 error.', ..."""
    noun = "error" if error_count == 1 else "errors"
    text = f"Found {error_count} {noun}."
    if watching:
        text += " Watching for file changes."
    return text
