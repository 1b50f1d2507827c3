"""
Shared fixtures: a fake screen session driving FakeFcsh, and a config that
keeps the transcript and lock inside the test's tmp directory.
"""
import os
import sys

import pytest

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(TESTS_DIR))
sys.path.insert(0, TESTS_DIR)

from fake_fcsh import BANNER, PROMPT, FakeFcsh
from fcshctl import FcshConfig


class FakeSession:
    """Behaves like ScreenSession with fcsh inside it.

    Injected lines are echoed and answered straight into the capture file,
    the way screen's log records a terminal that echoes its input.
    """

    def __init__(self, alive=True):
        self.shell = FakeFcsh()
        self.alive = alive
        self.capture_path = None
        self.capturing = False
        self.injected = []
        self.started = []
        self.pending = ""

    def _emit(self, text):
        if self.capturing and self.capture_path:
            with open(self.capture_path, "a") as f:
                f.write(text)

    def exists(self):
        return self.alive

    def start(self, command):
        self.started.append(list(command))
        self.alive = True
        self.pending = BANNER + PROMPT

    def inject(self, text):
        self.injected.append(text)
        reply = self.shell.handle(text)
        if not self.shell.running:
            self._emit(text + "\n")
            self.alive = False
            return
        self._emit(text + "\n" + reply + PROMPT)

    def configure_capture(self, path):
        self.capture_path = path

    def set_capture(self, on):
        if not self.alive:
            raise AssertionError("capture toggled on a dead session")
        self.capturing = on
        if on and self.pending:
            self._emit(self.pending)
            self.pending = ""


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def config(tmp_path):
    return FcshConfig(
        flex_home=str(tmp_path / "flex"),
        capture_path=str(tmp_path / "fcshctl.log"),
        timeout=10,
    )
