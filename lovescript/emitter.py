"""Output emitter: writes a pass's files and the runtime glue around them.

Two output files are special:

- ``conf.lua`` always starts with CONF_HEAD, which extends the runtime's
  module search path. It is written on its own when no unit produced it.
- ``main.lua`` gets MAIN_TAIL appended, which chains a hot-reload update
  into ``love.update`` without dropping the game's own callback.

The runtime support shims (lume, lurker) are written once per session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .checker import SUPPORT_MODULES
from .config import BuildOptions
from .engine import CONF_OUTPUT, OUTPUT_SUFFIX, OutputFile
from .errors import EmitError

logger = logging.getLogger(__name__)

CONF_NAME = CONF_OUTPUT
MAIN_NAME = "main.lua"

CONF_HEAD = """
package.path = package.path .. ";lua_modules/?/init.lua"
package.path = package.path .. ";lua_modules/?/?.lua"
"""

MAIN_TAIL = """
local oldUpdate = love.update
function love.update(delta)
    if oldUpdate then
        oldUpdate(delta)
    end
    require("lurker").update()
end
"""

_RUNTIME_DIR = Path(__file__).parent / "runtime"


@dataclass(frozen=True)
class SessionResources:
    """Runtime support file contents, read once at session start."""
    files: tuple[tuple[str, str], ...]

    @classmethod
    def load(cls, directory: Path = _RUNTIME_DIR) -> SessionResources:
        files = []
        for module in sorted(SUPPORT_MODULES):
            name = f"{module}{OUTPUT_SUFFIX}"
            files.append((name, (directory / name).read_text(encoding="utf-8")))
        return cls(files=tuple(files))


def with_conf_head(text: str) -> str:
    if text.startswith(CONF_HEAD):
        return text
    return f"{CONF_HEAD}\n{text}"


def with_main_tail(text: str) -> str:
    if text.endswith(MAIN_TAIL):
        return text
    return f"{text}\n{MAIN_TAIL}"


class OutputEmitter:
    """Persists output files for one session.

    With ``hot_reload`` off (one-shot builds) the main tail and the support
    shims are left out; the conf head is always written.
    """

    def __init__(self, resources: SessionResources | None = None, hot_reload: bool = True):
        if hot_reload and resources is None:
            resources = SessionResources.load()
        self.resources = resources
        self.hot_reload = hot_reload
        self.shims_written = False

    def emit(self, files: list[OutputFile], options: BuildOptions, has_conf: bool = False) -> list[Path]:
        """Write every file; raise EmitError on the first failure.

        ``has_conf`` says whether the program still has a unit producing
        conf.lua. Without one, conf.lua is reset to the head block alone.
        """
        out_dir = options.out_dir
        written: list[Path] = []

        if self.hot_reload and not self.shims_written:
            for name, text in self.resources.files:
                written.append(self._write(out_dir / name, text))
            self.shims_written = True

        conf_path = out_dir / CONF_NAME
        main_path = out_dir / MAIN_NAME
        wrote_conf = False
        for output in files:
            text = output.text
            if output.path == conf_path:
                text = with_conf_head(text)
                wrote_conf = True
            elif output.path == main_path and self.hot_reload:
                text = with_main_tail(text)
            written.append(self._write(output.path, text))

        if not wrote_conf and (not has_conf or not _has_conf_head(conf_path)):
            written.append(self._write(conf_path, CONF_HEAD))

        logger.debug("Wrote %d files to %s", len(written), out_dir)
        return written

    def _write(self, path: Path, text: str) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise EmitError(f"Could not write output file: {e.strerror or e}", path=str(path)) from e
        return path


def _has_conf_head(path: Path) -> bool:
    try:
        return path.read_text(encoding="utf-8").startswith(CONF_HEAD)
    except FileNotFoundError:
        return False
