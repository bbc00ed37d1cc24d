"""Configuration: locating, loading and parsing ``lovescript.yaml``.

Every load of the configuration file gets an identity (``load_id``). The
identity only changes when the file's text changes, so a cache keyed on it
never serves a stale parse after the file is edited.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from .diagnostics import (
    OPTION_TYPE,
    UNEXPECTED_TOKEN,
    UNKNOWN_OPTION,
    UNREADABLE_FILE,
    Category,
    Diagnostic,
    error,
    warning,
)
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "lovescript.yaml"
DEFAULT_ROOT_DIR = "src"
DEFAULT_OUT_DIR = "build"
DEFAULT_RUNTIME = "lovec"

# option -> (python type, description used in diagnostics)
_OPTION_TYPES: dict[str, tuple[type, str]] = {
    "root_dir": (str, "string"),
    "out_dir": (str, "string"),
    "source_map": (bool, "boolean"),
    "pretty": (bool, "boolean"),
    "runtime": (str, "string"),
    "external_modules": (list, "list of strings"),
    "globals": (list, "list of strings"),
}

_PATH_OPTIONS = {"root_dir", "out_dir"}

# Load identities are unique across every resolver in the process.
_load_ids = itertools.count(1)


@dataclass(frozen=True)
class BuildOptions:
    """Effective options for one compilation pass."""
    project: Path
    root_dir: Path
    out_dir: Path
    source_map: bool = False
    pretty: bool | None = None
    runtime: str = DEFAULT_RUNTIME
    external_modules: tuple[str, ...] = ()
    globals: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConfigLoad:
    """One read of the configuration file."""
    load_id: int
    path: Path
    text: str
    read_error: str | None = None


@dataclass(frozen=True)
class ParsedConfig:
    """Validated option values from one ConfigLoad plus its diagnostics."""
    load_id: int
    options: dict[str, Any] = field(default_factory=dict, hash=False)
    diagnostics: tuple[Diagnostic, ...] = ()


# ---------------------------------------------------------------------------
# Discovery and loading
# ---------------------------------------------------------------------------

def find_config_file(path: str | Path) -> Path:
    """Resolve a file or project directory to its configuration file."""
    candidate = Path(path)
    if candidate.is_dir():
        candidate = candidate / CONFIG_FILE_NAME
    if not candidate.is_file():
        raise ConfigError(f"Could not find {CONFIG_FILE_NAME}", path=str(path))
    return candidate.resolve()


class ConfigResolver:
    """Loads the configuration file and assigns load identities."""

    def __init__(self, path: str | Path):
        self.path = find_config_file(path)
        self._last: ConfigLoad | None = None

    def load(self) -> ConfigLoad:
        """Read the file fresh; reuse the previous identity if unchanged."""
        read_error = None
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            text = ""
            read_error = e.strerror or str(e)

        last = self._last
        if last is not None and last.text == text and last.read_error == read_error:
            return last

        load = ConfigLoad(load_id=next(_load_ids), path=self.path, text=text, read_error=read_error)
        self._last = load
        logger.debug("Loaded %s as configuration #%d", self.path, load.load_id)
        return load


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_config(load: ConfigLoad) -> ParsedConfig:
    """Parse and validate a loaded configuration.

    Problems become CONFIG/OPTIONS diagnostics; the returned options always
    hold at least the defaults so a pass can proceed.
    """
    config_dir = load.path.parent
    options: dict[str, Any] = {
        "project": load.path,
        "root_dir": config_dir / DEFAULT_ROOT_DIR,
        "out_dir": config_dir / DEFAULT_OUT_DIR,
    }
    diagnostics: list[Diagnostic] = []

    if load.read_error is not None:
        diagnostics.append(error(
            Category.CONFIG, UNREADABLE_FILE,
            f"Cannot read file '{load.path.name}': {load.read_error}.",
            file=load.path,
        ))
        return ParsedConfig(load.load_id, options, tuple(diagnostics))

    try:
        node = yaml.compose(load.text, Loader=yaml.SafeLoader)
        data = yaml.safe_load(load.text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        problem = getattr(e, "problem", None) or str(e)
        diagnostics.append(error(
            Category.CONFIG, UNEXPECTED_TOKEN,
            f"Invalid YAML: {problem}.",
            file=load.path,
            line=mark.line + 1 if mark else 1,
            column=mark.column + 1 if mark else 1,
        ))
        return ParsedConfig(load.load_id, options, tuple(diagnostics))

    if data is None:
        data = {}
    if not isinstance(data, dict):
        diagnostics.append(error(
            Category.CONFIG, UNEXPECTED_TOKEN,
            "The configuration file must contain a mapping of options.",
            file=load.path, line=1, column=1,
        ))
        return ParsedConfig(load.load_id, options, tuple(diagnostics))

    positions: dict[str, tuple[int, int]] = {}
    if isinstance(node, yaml.MappingNode):
        for key_node, _value_node in node.value:
            mark = key_node.start_mark
            positions[str(key_node.value)] = (mark.line + 1, mark.column + 1)

    for raw_key, value in data.items():
        key = str(raw_key)
        line, column = positions.get(key, (0, 0))
        if key not in _OPTION_TYPES:
            diagnostics.append(warning(
                Category.CONFIG, UNKNOWN_OPTION,
                f"Unknown option '{key}'.",
                file=load.path, line=line, column=column, length=len(key),
            ))
            continue
        expected, label = _OPTION_TYPES[key]
        if not _has_type(value, expected):
            diagnostics.append(error(
                Category.OPTIONS, OPTION_TYPE,
                f"Option '{key}' requires a value of type {label}.",
                file=load.path, line=line, column=column, length=len(key),
            ))
            continue
        options[key] = _convert(key, value, config_dir)

    return ParsedConfig(load.load_id, options, tuple(diagnostics))


def _has_type(value: Any, expected: type) -> bool:
    if expected is list:
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return isinstance(value, expected)


def _convert(key: str, value: Any, config_dir: Path) -> Any:
    if key in _PATH_OPTIONS:
        path = Path(value)
        return path if path.is_absolute() else config_dir / path
    if isinstance(value, list):
        return tuple(value)
    return value


def resolve_options(parsed: ParsedConfig, overrides: Mapping[str, Any] | None = None) -> BuildOptions:
    """Apply overrides (from the command line or session) over file options."""
    values = dict(parsed.options)
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value
    return BuildOptions(**values)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class ConfigCache:
    """Parsed configurations keyed by load identity.

    Owned by the watch session; stale identities are dropped with prune().
    """

    def __init__(self) -> None:
        self._entries: dict[int, ParsedConfig] = {}

    def get(self, load: ConfigLoad) -> ParsedConfig:
        parsed = self._entries.get(load.load_id)
        if parsed is None:
            parsed = parse_config(load)
            self._entries[load.load_id] = parsed
            logger.debug("Parsed configuration #%d (%d diagnostics)", load.load_id, len(parsed.diagnostics))
        return parsed

    def prune(self, live_ids: Iterable[int]) -> int:
        """Drop every entry not in live_ids; return how many were dropped."""
        live = set(live_ids)
        stale = [load_id for load_id in self._entries if load_id not in live]
        for load_id in stale:
            del self._entries[load_id]
        return len(stale)

    def __contains__(self, load_id: int) -> bool:
        return load_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
