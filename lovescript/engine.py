"""Incremental compilation engine.

The engine turns the current source tree into Lua output files plus the
whole program's diagnostics. It keeps nothing between passes itself: all
persistent state lives in a ``BuilderState`` owned by the caller.

Full passes recompile every unit and refresh options from configuration.
Incremental passes drain the builder's affected-unit queue and recompile only
those units; diagnostics are always computed for the whole program.
"""

from __future__ import annotations

import hashlib
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Mapping, Union

from .ast_nodes import Module
from .checker import SUPPORT_MODULES, Checker, check_program
from .compiler import Compiler
from .config import BuildOptions, ConfigCache, ConfigLoad, resolve_options
from .diagnostics import (
    MISSING_ROOT_DIR,
    OUT_DIR_IS_ROOT_DIR,
    OVERWRITES_SUPPORT_FILE,
    Category,
    Diagnostic,
    Severity,
    count_errors,
    error,
    sort_and_deduplicate,
)
from .errors import ParseError
from .parser import parse

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".lvs"
OUTPUT_SUFFIX = ".lua"
SUPPORT_OUTPUTS = frozenset(f"{name}{OUTPUT_SUFFIX}" for name in SUPPORT_MODULES)
CONF_OUTPUT = f"conf{OUTPUT_SUFFIX}"


class CompilationMode(Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


@dataclass(frozen=True)
class OutputFile:
    path: Path
    text: str


# ---------------------------------------------------------------------------
# Source units
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SourceUnit:
    """One .lvs file, named by its dotted path under the source root."""
    name: str
    path: Path
    relpath: PurePosixPath
    text: str
    version: str

    @classmethod
    def load(cls, root: Path, path: Path) -> SourceUnit:
        rel = PurePosixPath(*path.relative_to(root).parts)
        text = path.read_text(encoding="utf-8", errors="replace")
        return cls(
            name=".".join(rel.with_suffix("").parts),
            path=path,
            relpath=rel,
            text=text,
            version=hashlib.sha1(text.encode("utf-8")).hexdigest(),
        )

    @property
    def output_relpath(self) -> PurePosixPath:
        return self.relpath.with_suffix(OUTPUT_SUFFIX)


def discover_units(options: BuildOptions) -> list[SourceUnit]:
    """All source units under root_dir, in path order, skipping out_dir."""
    root = options.root_dir
    if not root.is_dir():
        return []
    out_dir = options.out_dir.resolve()
    units = []
    for path in sorted(root.rglob(f"*{SOURCE_SUFFIX}")):
        rel = path.relative_to(root)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if path.resolve().is_relative_to(out_dir) or not path.is_file():
            continue
        try:
            units.append(SourceUnit.load(root, path))
        except FileNotFoundError:
            # Deleted between listing and reading; the next event covers it.
            logger.debug("Source unit vanished during discovery: %s", path)
    return units


# ---------------------------------------------------------------------------
# Builder state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AffectedFile:
    """A single unit whose own text changed."""
    name: str

    @property
    def units(self) -> tuple[str, ...]:
        return (self.name,)


@dataclass(frozen=True)
class AffectedGroup:
    """Every unit of the program, after a change that is not file-scoped."""
    names: tuple[str, ...]

    @property
    def units(self) -> tuple[str, ...]:
        return self.names


Affected = Union[AffectedFile, AffectedGroup]


@dataclass
class UnitRecord:
    unit: SourceUnit
    module: Module | None
    syntax: tuple[Diagnostic, ...] = ()

    @classmethod
    def build(cls, unit: SourceUnit) -> UnitRecord:
        try:
            return cls(unit=unit, module=parse(unit.text))
        except ParseError as e:
            diag = error(
                Category.SYNTACTIC, e.code, e.message,
                file=unit.path, line=e.line or 0, column=e.column or 0, length=1,
            )
            return cls(unit=unit, module=None, syntax=(diag,))

    @property
    def global_functions(self) -> frozenset[str]:
        if self.module is None:
            return frozenset()
        return frozenset(d.name[0].id for d in self.module.global_functions)


class BuilderState:
    """Everything the engine remembers between passes."""

    def __init__(self) -> None:
        self.records: dict[str, UnitRecord] = {}
        self.options: BuildOptions | None = None
        self.config_diagnostics: tuple[Diagnostic, ...] = ()
        self._pending: deque[Affected] = deque()
        self._semantic: dict[str, tuple[tuple, tuple[Diagnostic, ...]]] = {}

    def program_globals(self) -> frozenset[str]:
        names: set[str] = set()
        for record in self.records.values():
            names |= record.global_functions
        return frozenset(names)

    def update(self, units: list[SourceUnit]) -> None:
        """Refresh unit records and queue what the change affects."""
        previous = self.records
        previous_globals = self.program_globals()
        records: dict[str, UnitRecord] = {}
        changed: list[str] = []
        for unit in units:
            old = previous.get(unit.name)
            if old is not None and old.unit.version == unit.version and old.unit.path == unit.path:
                records[unit.name] = old
            else:
                records[unit.name] = UnitRecord.build(unit)
                changed.append(unit.name)
        self.records = records

        if records.keys() != previous.keys() or self.program_globals() != previous_globals:
            self._pending.append(AffectedGroup(tuple(sorted(records))))
        else:
            self._pending.extend(AffectedFile(name) for name in changed)

    def next_affected(self) -> Affected | None:
        """Pop the next affected unit, or None once the queue is drained."""
        if not self._pending:
            return None
        return self._pending.popleft()

    def discard_pending(self) -> None:
        self._pending.clear()

    def semantic_diagnostics(self, options: BuildOptions) -> list[Diagnostic]:
        """Checker results for every parsed unit, reusing unchanged ones."""
        program_globals = self.program_globals()
        modules = frozenset(self.records)
        fresh: dict[str, tuple[tuple, tuple[Diagnostic, ...]]] = {}
        result: list[Diagnostic] = []
        for name, record in sorted(self.records.items()):
            if record.module is None:
                continue
            key = (record.unit.version, record.unit.path, program_globals, modules,
                   options.external_modules, options.globals)
            cached = self._semantic.get(name)
            if cached is None or cached[0] != key:
                checker = Checker(
                    record.unit.path,
                    program_globals=program_globals,
                    modules=modules,
                    external_modules=options.external_modules,
                    extra_globals=options.globals,
                )
                cached = (key, tuple(checker.check(record.module)))
            fresh[name] = cached
            result.extend(cached[1])
        self._semantic = fresh
        return result


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------

@dataclass
class CompilationPass:
    """The result of one compile: files to write and what to report."""
    mode: CompilationMode
    options: BuildOptions
    affected: tuple[str, ...] = ()
    output_files: list[OutputFile] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    has_conf: bool = False

    @property
    def error_count(self) -> int:
        return count_errors(self.diagnostics)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.WARNING)


class IncrementalCompilationEngine:
    """Compiles the program against a caller-owned BuilderState."""

    def __init__(self, config_cache: ConfigCache | None = None, compiler: Compiler | None = None):
        self.config_cache = config_cache if config_cache is not None else ConfigCache()
        self.compiler = compiler or Compiler()

    def compile(
        self,
        builder: BuilderState,
        mode: CompilationMode,
        overrides: Mapping[str, Any] | None = None,
        config_load: ConfigLoad | None = None,
    ) -> CompilationPass:
        if mode is CompilationMode.FULL and config_load is not None:
            parsed = self.config_cache.get(config_load)
            builder.options = resolve_options(parsed, overrides)
            builder.config_diagnostics = parsed.diagnostics
        if builder.options is None:
            raise ValueError("the first pass must be a full pass with a configuration load")
        options = builder.options

        builder.update(discover_units(options))

        if mode is CompilationMode.FULL:
            builder.discard_pending()
            scope = sorted(builder.records)
            affected: tuple[str, ...] = ()
        else:
            names: list[str] = []
            while True:
                item = builder.next_affected()
                if item is None:
                    break
                names.extend(item.units)
            scope = [name for name in dict.fromkeys(names) if name in builder.records]
            affected = tuple(scope)

        output_files, emit_diagnostics = self._emit(builder, scope, options)

        diagnostics = sort_and_deduplicate([
            *builder.config_diagnostics,
            *_option_diagnostics(options),
            *(d for record in builder.records.values() for d in record.syntax),
            *builder.semantic_diagnostics(options),
            *check_program(
                (name, record.unit.path, record.module)
                for name, record in sorted(builder.records.items())
            ),
            *emit_diagnostics,
        ])
        logger.debug(
            "%s pass: %d units in scope, %d files, %d diagnostics",
            mode.value, len(scope), len(output_files), len(diagnostics),
        )
        return CompilationPass(
            mode=mode,
            options=options,
            affected=affected,
            output_files=output_files,
            diagnostics=diagnostics,
            has_conf=_has_conf_unit(builder),
        )

    def _emit(
        self,
        builder: BuilderState,
        scope: list[str],
        options: BuildOptions,
    ) -> tuple[list[OutputFile], list[Diagnostic]]:
        diagnostics: list[Diagnostic] = []
        blocked: set[str] = set()
        for name, record in sorted(builder.records.items()):
            rel = record.unit.output_relpath.as_posix()
            if rel in SUPPORT_OUTPUTS:
                blocked.add(name)
                diagnostics.append(error(
                    Category.EMIT, OVERWRITES_SUPPORT_FILE,
                    f"Output file '{rel}' would overwrite a runtime support file.",
                    file=record.unit.path,
                ))

        files: list[OutputFile] = []
        for name in scope:
            record = builder.records[name]
            if record.module is None or name in blocked:
                continue
            rel = record.unit.output_relpath
            out_path = options.out_dir.joinpath(*rel.parts)
            text, source_map = self.compiler.compile_with_map(
                record.module,
                source_file=record.unit.relpath.as_posix(),
                output_file=rel.as_posix(),
            )
            files.append(OutputFile(out_path, text))
            if options.source_map:
                files.append(OutputFile(out_path.with_name(out_path.name + ".map"), source_map.to_json()))
        return files, diagnostics


def _option_diagnostics(options: BuildOptions) -> list[Diagnostic]:
    if not options.root_dir.is_dir():
        return [error(
            Category.OPTIONS, MISSING_ROOT_DIR,
            f"Cannot find source directory '{options.root_dir}'.",
            file=options.project,
        )]
    if options.out_dir.resolve() == options.root_dir.resolve():
        return [error(
            Category.OPTIONS, OUT_DIR_IS_ROOT_DIR,
            "The output directory must differ from the source directory.",
            file=options.project,
        )]
    return []


def _has_conf_unit(builder: BuilderState) -> bool:
    """Whether some parsed unit compiles to the top-level conf.lua."""
    return any(
        record.module is not None and record.unit.output_relpath.as_posix() == CONF_OUTPUT
        for record in builder.records.values()
    )
