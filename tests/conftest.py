"""Shared fixtures for lovescript tests."""

import subprocess
import threading

import pytest

from lovescript.compiler import Compiler
from lovescript.emitter import SessionResources


@pytest.fixture
def compiler():
    return Compiler()


# ---------------------------------------------------------------------------
# Sample project
# ---------------------------------------------------------------------------

MAIN_SOURCE = '''\
import player

fn love.load() {
    player.reset()
}

fn love.draw() {
    love.graphics.print("score: " .. player.score, 10, 10)
}
'''

PLAYER_SOURCE = '''\
let player = { score: 0 }

fn player.reset() {
    player.score = 0
}

return player
'''

CONFIG_SOURCE = '''\
root_dir: src
out_dir: build
'''


@pytest.fixture
def project(tmp_path):
    """A clean two-unit project: src/main.lvs imports src/player.lvs."""
    root = tmp_path / "game"
    (root / "src").mkdir(parents=True)
    (root / "lovescript.yaml").write_text(CONFIG_SOURCE, encoding="utf-8")
    (root / "src" / "main.lvs").write_text(MAIN_SOURCE, encoding="utf-8")
    (root / "src" / "player.lvs").write_text(PLAYER_SOURCE, encoding="utf-8")
    return root


@pytest.fixture
def player_source():
    return PLAYER_SOURCE


@pytest.fixture
def main_source():
    return MAIN_SOURCE


@pytest.fixture
def resources():
    return SessionResources(files=(
        ("lume.lua", "-- lume\nreturn {}\n"),
        ("lurker.lua", "-- lurker\nreturn {}\n"),
    ))


# ---------------------------------------------------------------------------
# Process and observer doubles
# ---------------------------------------------------------------------------

class FakeProcess:
    """Stands in for subprocess.Popen; finishes when told to."""

    def __init__(self, args, returncode=None):
        self.args = args
        self.pid = 4242
        self.returncode = None
        self.terminated = False
        self._done = threading.Event()
        if returncode is not None:
            self.finish(returncode)

    def finish(self, returncode=0):
        self.returncode = returncode
        self._done.set()

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if not self._done.wait(timeout):
            raise subprocess.TimeoutExpired(self.args, timeout)
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.finish(-15)

    def kill(self):
        self.finish(-9)


class FakePopen:
    """Records launches; ``exit_code`` makes every process exit at once."""

    def __init__(self, exit_code=None):
        self.calls = []
        self.processes = []
        self.exit_code = exit_code

    def __call__(self, args, **kwargs):
        self.calls.append(list(args))
        process = FakeProcess(args, self.exit_code)
        self.processes.append(process)
        return process


class NullObserver:
    """A watchdog Observer that never delivers events."""

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


@pytest.fixture
def fake_popen():
    return FakePopen()


@pytest.fixture
def null_observer():
    return NullObserver()
