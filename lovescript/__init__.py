"""lovescript: LoveScript to Lua compiler with a hot-reloading watch mode for LÖVE."""

from .ast_nodes import FunctionDecl, Import, Module, Name
from .checker import Checker, check_program
from .compiler import Compiler
from .config import BuildOptions, ConfigCache, ConfigLoad, ConfigResolver, parse_config, resolve_options
from .diagnostics import Category, Diagnostic, Severity
from .emitter import OutputEmitter, SessionResources
from .engine import (
    AffectedFile,
    AffectedGroup,
    BuilderState,
    CompilationMode,
    CompilationPass,
    IncrementalCompilationEngine,
    OutputFile,
    SourceUnit,
)
from .errors import ConfigError, EmitError, LoveScriptError, ParseError, SpawnError
from .logging import PassLog, SessionLog
from .parser import parse
from .reporter import DiagnosticReporter
from .sourcemap import SourceMap
from .supervisor import OutputDirectory, ProcessSupervisor, SupervisedProcess
from .watcher import SessionState, WatchController

__all__ = [
    "parse",
    "Compiler",
    "Checker",
    "check_program",
    "SourceMap",
    "BuildOptions",
    "ConfigCache",
    "ConfigLoad",
    "ConfigResolver",
    "parse_config",
    "resolve_options",
    "Category",
    "Diagnostic",
    "Severity",
    "IncrementalCompilationEngine",
    "BuilderState",
    "CompilationMode",
    "CompilationPass",
    "AffectedFile",
    "AffectedGroup",
    "OutputFile",
    "SourceUnit",
    "OutputEmitter",
    "SessionResources",
    "DiagnosticReporter",
    "ProcessSupervisor",
    "SupervisedProcess",
    "OutputDirectory",
    "WatchController",
    "SessionState",
    "PassLog",
    "SessionLog",
    "Module",
    "Import",
    "FunctionDecl",
    "Name",
    "LoveScriptError",
    "ParseError",
    "ConfigError",
    "EmitError",
    "SpawnError",
]
