"""Supervision of the single runtime process of a watch session."""

from __future__ import annotations

import logging
import shutil
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .errors import SpawnError

logger = logging.getLogger(__name__)


class OutputDirectory:
    """The output directory, held while the runtime may read from it.

    Released (deleted, best-effort) exactly once, on whichever exit path
    comes first.
    """

    def __init__(self, path: Path):
        self.path = path
        self.released = False

    def release(self) -> bool:
        """Delete the directory; return False if deletion failed."""
        if self.released:
            return True
        self.released = True
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning("Could not remove output directory %s: %s", self.path, e)
            return False
        logger.debug("Removed output directory %s", self.path)
        return True

    def __enter__(self) -> OutputDirectory:
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


@dataclass
class SupervisedProcess:
    process: subprocess.Popen
    out_dir: Path

    @property
    def running(self) -> bool:
        return self.process.poll() is None


class ProcessSupervisor:
    """Starts the runtime once and reports its exit through ``on_exit``.

    The child inherits stdin, stdout and stderr so the runtime's own output
    appears in the developer's terminal.
    """

    def __init__(
        self,
        runtime: str = "lovec",
        on_exit: Callable[[int], None] | None = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.runtime = runtime
        self.on_exit = on_exit
        self._popen = popen
        self.current: SupervisedProcess | None = None
        self._waiter: threading.Thread | None = None

    def start(self, out_dir: Path) -> SupervisedProcess:
        if self.current is not None:
            raise RuntimeError("the runtime process was already started for this session")
        try:
            process = self._popen([self.runtime, str(out_dir)])
        except OSError as e:
            raise SpawnError(f"Could not start runtime '{self.runtime}': {e.strerror or e}") from e

        self.current = SupervisedProcess(process=process, out_dir=out_dir)
        logger.info("Started %s (pid %s) on %s", self.runtime, getattr(process, "pid", "?"), out_dir)
        self._waiter = threading.Thread(
            target=self._wait,
            args=(self.current,),
            name="lovescript-runtime-wait",
            daemon=True,
        )
        self._waiter.start()
        return self.current

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop the runtime if it is still running."""
        current = self.current
        if current is None or not current.running:
            return
        current.process.terminate()
        try:
            current.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Runtime did not exit after %.1fs; killing it", timeout)
            current.process.kill()
            current.process.wait()

    def _wait(self, supervised: SupervisedProcess) -> None:
        returncode = supervised.process.wait()
        logger.info("%s exited with code %s", self.runtime, returncode)
        if self.on_exit is not None:
            self.on_exit(returncode)
