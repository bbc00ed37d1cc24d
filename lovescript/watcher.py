"""Watch mode: recompile on change and keep one game runtime alive.

A single control thread consumes events from a queue. The watchdog observer
thread posts file changes; the runtime's wait thread posts its exit. A pass
(compile → emit → report) always runs to completion before the next event
is taken, so passes never overlap and the builder state has one owner.
"""

from __future__ import annotations

import logging
import os
import queue
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, TextIO

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import BuildOptions, ConfigCache, ConfigResolver, resolve_options
from .emitter import OutputEmitter, SessionResources
from .engine import (
    SOURCE_SUFFIX,
    BuilderState,
    CompilationMode,
    CompilationPass,
    IncrementalCompilationEngine,
)
from .logging import SessionLog
from .reporter import CHANGE_DETECTED, STARTING_WATCH, DiagnosticReporter, should_be_pretty
from .supervisor import OutputDirectory, ProcessSupervisor

logger = logging.getLogger(__name__)


class Phase(Enum):
    WAITING_FOR_CHANGE = "waiting"
    COMPILING = "compiling"
    EMITTING = "emitting"
    REPORTING = "reporting"
    SUPERVISING = "supervising"


class EventKind(Enum):
    CHANGE = "change"
    EXIT = "exit"


@dataclass(frozen=True)
class WatchEvent:
    kind: EventKind
    path: Path | None = None
    returncode: int | None = None


@dataclass
class SessionState:
    """Everything that survives from one pass to the next."""
    force_full_recompile: bool = True
    runtime_process_started: bool = False
    builder: BuilderState = field(default_factory=BuilderState)
    config_cache: ConfigCache = field(default_factory=ConfigCache)


# ---------------------------------------------------------------------------
# Filesystem events
# ---------------------------------------------------------------------------

class SourceChangeHandler(FileSystemEventHandler):
    """Forwards changes to source units and the config file as WatchEvents."""

    _EVENT_TYPES = {"created", "modified", "deleted", "moved"}

    def __init__(self, events: queue.Queue, options: BuildOptions):
        self.events = events
        self.project = options.project
        self.out_dir = options.out_dir.resolve()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in self._EVENT_TYPES:
            return
        for raw in (event.src_path, getattr(event, "dest_path", "")):
            if not raw:
                continue
            path = Path(os.fsdecode(raw))
            if self.is_relevant(path):
                self.events.put(WatchEvent(EventKind.CHANGE, path=path))
                return

    def is_relevant(self, path: Path) -> bool:
        if path == self.project:
            return True
        if path.suffix != SOURCE_SUFFIX:
            return False
        return not path.resolve().is_relative_to(self.out_dir)


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class WatchController:
    """Drives the compile → emit → report → supervise loop for one session."""

    def __init__(
        self,
        config_path: str | Path,
        *,
        overrides: Mapping[str, Any] | None = None,
        state: SessionState | None = None,
        engine: IncrementalCompilationEngine | None = None,
        emitter: OutputEmitter | None = None,
        reporter: DiagnosticReporter | None = None,
        supervisor: ProcessSupervisor | None = None,
        stream: TextIO | None = None,
        observer_factory: Callable[[], Any] = Observer,
        debounce: float = 0.1,
    ):
        self.resolver = ConfigResolver(config_path)
        self.overrides = dict(overrides or {})
        self.state = state or SessionState()
        self.events: queue.Queue[WatchEvent] = queue.Queue()
        self.debounce = debounce
        self._observer_factory = observer_factory

        base = self.state.config_cache.get(self.resolver.load())
        self.base_options = resolve_options(base, self.overrides)

        self.engine = engine or IncrementalCompilationEngine(self.state.config_cache)
        self.emitter = emitter or OutputEmitter(SessionResources.load())
        self.reporter = reporter or DiagnosticReporter(
            stream, pretty=should_be_pretty(self.base_options, stream),
        )
        self.supervisor = supervisor or ProcessSupervisor(self.base_options.runtime)
        if self.supervisor.on_exit is None:
            self.supervisor.on_exit = self._post_exit

        self.phase = Phase.WAITING_FOR_CHANGE
        self.output_directory: OutputDirectory | None = None
        self.log = SessionLog(project=str(self.resolver.path))

    # ------------------------------------------------------------------
    # One pass
    # ------------------------------------------------------------------

    def run_pass(self, changed: Iterable[Path] = ()) -> CompilationPass:
        """Compile, emit and report once; start the runtime after the first pass."""
        changed = tuple(changed)
        state = self.state
        config_changed = self.resolver.path in changed
        if state.force_full_recompile or config_changed:
            mode = CompilationMode.FULL
        else:
            mode = CompilationMode.INCREMENTAL

        self.reporter.report_status(CHANGE_DETECTED if self.log.passes else STARTING_WATCH)
        entry = self.log.start_pass(mode.value, trigger=tuple(str(p) for p in changed))

        self.phase = Phase.COMPILING
        config_load = None
        if mode is CompilationMode.FULL:
            config_load = self.resolver.load()
            dropped = state.config_cache.prune([config_load.load_id])
            if dropped:
                logger.debug("Dropped %d stale configuration parses", dropped)
        result = self.engine.compile(state.builder, mode, self.overrides, config_load)

        self.phase = Phase.EMITTING
        written = self.emitter.emit(result.output_files, result.options, has_conf=result.has_conf)

        self.phase = Phase.REPORTING
        self.reporter.report_all(result.diagnostics)
        error_count = result.error_count
        self.reporter.report_summary(error_count)
        # Any error makes the next pass a full one.
        state.force_full_recompile = error_count > 0
        self.log.finish_pass(
            entry,
            affected=result.affected,
            files_written=len(written),
            error_count=error_count,
            warning_count=result.warning_count,
        )

        if not state.runtime_process_started:
            self.phase = Phase.SUPERVISING
            self.output_directory = OutputDirectory(result.options.out_dir)
            self.supervisor.start(result.options.out_dir)
            state.runtime_process_started = True
            self.log.runtime_started_at = time.time()

        self.phase = Phase.WAITING_FOR_CHANGE
        return result

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    def run(self) -> int:
        """Run the session until the runtime exits; return the host exit code."""
        observer = self._start_observer()
        try:
            self.run_pass()
            return self.serve()
        except KeyboardInterrupt:
            self.reporter.report_status("Stopped watching.")
            self.log.finish(0)
            return 0
        finally:
            observer.stop()
            observer.join()
            self.shutdown()

    def serve(self) -> int:
        """Handle queued events until the runtime exits."""
        while True:
            event = self.events.get()
            if event.kind is EventKind.EXIT:
                return self._finish(event.returncode)

            if self.debounce:
                time.sleep(self.debounce)
            changed = [event.path]
            while True:
                try:
                    pending = self.events.get_nowait()
                except queue.Empty:
                    break
                if pending.kind is EventKind.EXIT:
                    return self._finish(pending.returncode)
                changed.append(pending.path)
            self.run_pass(dict.fromkeys(changed))

    def shutdown(self) -> None:
        """Stop the runtime if needed and release the output directory."""
        self.supervisor.terminate()
        if self.output_directory is not None:
            self.output_directory.release()
        logger.debug("Session finished\n%s", self.log.summary())

    def _finish(self, returncode: int | None) -> int:
        logger.info("Runtime exited (code %s); ending watch session", returncode)
        if self.output_directory is not None:
            self.output_directory.release()
        self.log.finish(0)
        return 0

    def _post_exit(self, returncode: int) -> None:
        self.events.put(WatchEvent(EventKind.EXIT, returncode=returncode))

    def _start_observer(self):
        observer = self._observer_factory()
        handler = SourceChangeHandler(self.events, self.base_options)
        root = self.base_options.root_dir.resolve()
        config_dir = self.resolver.path.parent
        if root.is_dir():
            observer.schedule(handler, str(root), recursive=True)
        if config_dir != root:
            observer.schedule(handler, str(config_dir), recursive=False)
        observer.start()
        return observer
