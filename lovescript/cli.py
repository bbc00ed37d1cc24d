"""CLI for lovescript: build LoveScript projects, run them once or in watch mode."""

from __future__ import annotations

import argparse
import logging
import sys
import tempfile
from pathlib import Path

from .config import ConfigResolver
from .emitter import OutputEmitter
from .engine import BuilderState, CompilationMode, CompilationPass, IncrementalCompilationEngine
from .errors import LoveScriptError
from .reporter import DiagnosticReporter, should_be_pretty
from .supervisor import OutputDirectory, ProcessSupervisor
from .watcher import WatchController


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="lovescript",
        description="LoveScript to Lua compiler for LÖVE, with a hot-reloading watch mode",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command")

    # start
    start_p = sub.add_parser("start", help="Compile once and run the game")
    start_p.add_argument("path", nargs="?", default=".", help="Project directory or lovescript.yaml")
    start_p.add_argument("--runtime", help="Runtime executable (default: from config, else lovec)")
    _add_pretty_flags(start_p)

    # watch
    watch_p = sub.add_parser("watch", help="Run the game and recompile on every change")
    watch_p.add_argument("path", nargs="?", default=".", help="Project directory or lovescript.yaml")
    watch_p.add_argument("--runtime", help="Runtime executable (default: from config, else lovec)")
    _add_pretty_flags(watch_p)

    # build
    build_p = sub.add_parser("build", help="Compile the project once")
    build_p.add_argument("path", nargs="?", default=".", help="Project directory or lovescript.yaml")
    build_p.add_argument("--out-dir", help="Output directory (default: from config)")
    _add_pretty_flags(build_p)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "start":
            return _cmd_start(args.path, runtime=args.runtime, pretty=args.pretty)
        elif args.command == "watch":
            return _cmd_watch(args.path, runtime=args.runtime, pretty=args.pretty)
        elif args.command == "build":
            return _cmd_build(args.path, out_dir=args.out_dir, pretty=args.pretty)
    except LoveScriptError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def _add_pretty_flags(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--pretty", dest="pretty", action="store_true", help="Colorized diagnostics")
    group.add_argument("--no-pretty", dest="pretty", action="store_false", help="Plain diagnostics")
    p.set_defaults(pretty=None)


def _cmd_watch(path: str, runtime: str | None = None, pretty: bool | None = None) -> int:
    out_dir = Path(tempfile.mkdtemp(prefix="lovescript-"))
    overrides = {
        "out_dir": out_dir,
        "source_map": True,
        "runtime": runtime,
        "pretty": pretty,
    }
    with OutputDirectory(out_dir):
        controller = WatchController(path, overrides=overrides)
        return controller.run()


def _cmd_start(path: str, runtime: str | None = None, pretty: bool | None = None) -> int:
    out_dir = Path(tempfile.mkdtemp(prefix="lovescript-"))
    overrides = {"out_dir": out_dir, "runtime": runtime, "pretty": pretty}
    with OutputDirectory(out_dir):
        result = _compile_once(path, overrides)
        if result.error_count:
            return 1
        supervisor = ProcessSupervisor(result.options.runtime)
        supervised = supervisor.start(out_dir)
        try:
            supervised.process.wait()
        except KeyboardInterrupt:
            supervisor.terminate()
        return 0


def _cmd_build(path: str, out_dir: str | None = None, pretty: bool | None = None) -> int:
    overrides = {
        "out_dir": Path(out_dir).resolve() if out_dir else None,
        "pretty": pretty,
    }
    result = _compile_once(path, overrides)
    return 1 if result.error_count else 0


def _compile_once(path: str, overrides: dict) -> CompilationPass:
    """Full pass without hot-reload glue, reported in one-shot form."""
    load = ConfigResolver(path).load()
    result = IncrementalCompilationEngine().compile(BuilderState(), CompilationMode.FULL, overrides, load)

    OutputEmitter(hot_reload=False).emit(result.output_files, result.options, has_conf=result.has_conf)

    reporter = DiagnosticReporter(pretty=should_be_pretty(result.options))
    reporter.report_all(result.diagnostics)
    reporter.report_summary(result.error_count, watching=False)
    return result


if __name__ == "__main__":
    sys.exit(main())
