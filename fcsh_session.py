#!/usr/bin/env python3
# fcsh_session.py
import os
import subprocess

SCREEN_BIN = os.environ.get("FCSHCTL_SCREEN", "screen")
CONTROL_TIMEOUT = 10  # seconds per screen control command


class SessionError(RuntimeError):
    pass


def escape_stuff(text: str) -> str:
    # screen's "stuff" interprets backslash and caret sequences
    return text.replace("\\", "\\\\").replace("^", "\\^")


class ScreenSession:
    """A named, detached GNU screen session hosting one process.

    Every call goes through screen's -X control channel, never through the
    window itself, so nothing here shows up in the captured transcript.
    """

    def __init__(self, name: str, screen_bin: str = SCREEN_BIN):
        self.name = name
        self.screen_bin = screen_bin

    def _run(self, args, check=True):
        argv = [self.screen_bin] + args
        try:
            result = subprocess.run(argv, capture_output=True, text=True,
                                    timeout=CONTROL_TIMEOUT)
        except FileNotFoundError:
            raise SessionError(f"{self.screen_bin} not found in PATH") from None
        except subprocess.TimeoutExpired:
            raise SessionError(f"timed out: {' '.join(argv)}") from None
        if check and result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise SessionError(f"{' '.join(argv)} failed: {detail}")
        return result

    def _control(self, *command):
        self._run(["-S", self.name, "-p", "0", "-X"] + list(command))

    def start(self, command):
        # -dmS forks a detached session; screen exits at once
        self._run(["-dmS", self.name] + list(command), check=False)

    def exists(self) -> bool:
        # "screen -ls" exits 1 when there are no sessions at all
        result = self._run(["-ls"], check=False)
        suffix = "." + self.name
        for line in result.stdout.splitlines():
            fields = line.split()
            if fields and fields[0].endswith(suffix):
                return True
        return False

    def inject(self, text: str):
        self._control("stuff", escape_stuff(text) + "\n")

    def configure_capture(self, path: str):
        self._control("logfile", path)
        self._control("logfile", "flush", "0")

    def set_capture(self, on: bool):
        self._control("log", "on" if on else "off")
