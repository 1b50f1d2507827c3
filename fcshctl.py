#!/usr/bin/env python3
# fcshctl.py
"""Forward one-shot commands to a long-lived fcsh running in a screen session.

    fcshctl mxmlc -strict=true ./src/Main.as
    fcshctl id Main.as
    fcshctl clear Main.as
    fcshctl quit

The first call starts fcsh inside a detached screen session; later calls reuse
its warm compiler and, when a file was compiled before, send "compile <id>"
instead of the full mxmlc line.
"""
import enum
import os
import re
import sys
import tempfile
import time
from dataclasses import dataclass, field, replace
from typing import Optional

from fcsh_lock import LockTimeout, SessionLock
from fcsh_monitor import PROMPT, MonitorError, await_prompt, filter_transcript
from fcsh_session import SCREEN_BIN, ScreenSession, SessionError
from fcsh_targets import INFO_COMMAND, NOT_FOUND, TargetResolver

EXIT_OK = 0
EXIT_COMPILE_ERROR = 1
EXIT_FCSH_NOT_FOUND = 2
EXIT_SESSION_ERROR = 3
EXIT_CONFIG_ERROR = 4
EXIT_INTERRUPTED = 130

SESSION_NAME = "fcshctl"
COMPILERS = ("mxmlc", "compc")
SOURCE_EXTENSIONS = (".as", ".mxml")
SESSION_START_WAIT = 5.0  # seconds for screen to register a new session

COMPILE_OK = re.compile(r"\.sw[fc] \(\d+ bytes\)")
NOTHING_CHANGED = "Nothing has changed since the last compile"

USAGE = """usage: fcshctl <fcsh command> [args...]
       fcshctl id <search>
       fcshctl clear [id | file]
Run 'fcshctl help' for the fcsh command list."""

HELP_ADDENDUM = """fcshctl extras:
    id <search>       print the compile target id whose command mentions <search>
    clear <file>      clear the compile target for <file>
    mxmlc/compc ...   reuse an existing target as "compile <id>" when the
                      source file was compiled before
                      (set FCSHCTL_NO_INCREMENTAL=1 to always send the full line)
"""

TRUTHY = ("1", "true", "yes", "on")


class ConfigError(RuntimeError):
    pass


class FcshNotFound(ConfigError):
    pass


def _default_capture_path() -> str:
    user = os.environ.get("USER") or str(os.getuid())
    return os.path.join(tempfile.gettempdir(), f"fcshctl-{user}.log")


@dataclass
class FcshConfig:
    flex_home: Optional[str] = None
    incremental: bool = True
    session_name: str = SESSION_NAME
    capture_path: str = field(default_factory=_default_capture_path)
    lock_path: Optional[str] = None
    timeout: Optional[float] = None
    screen_bin: str = SCREEN_BIN

    def __post_init__(self):
        if self.lock_path is None:
            self.lock_path = self.capture_path + ".lock"

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        timeout = env.get("FCSHCTL_TIMEOUT", "").strip()
        try:
            timeout = float(timeout) if timeout else None
        except ValueError:
            raise ConfigError(f"FCSHCTL_TIMEOUT must be a number, got {timeout!r}") from None
        return cls(
            flex_home=env.get("FLEX_HOME") or None,
            incremental=env.get("FCSHCTL_NO_INCREMENTAL", "").lower() not in TRUTHY,
            session_name=env.get("FCSHCTL_SESSION", SESSION_NAME),
            capture_path=env.get("FCSHCTL_LOG") or _default_capture_path(),
            lock_path=env.get("FCSHCTL_LOCK") or None,
            timeout=timeout or None,
            screen_bin=env.get("FCSHCTL_SCREEN", SCREEN_BIN),
        )

    def fcsh_path(self) -> str:
        if not self.flex_home:
            raise FcshNotFound("FLEX_HOME is not set")
        path = os.path.join(self.flex_home, "bin", "fcsh")
        if not os.access(path, os.X_OK):
            raise FcshNotFound(f"fcsh not found at {path}")
        return path


class CommandKind(enum.Enum):
    USAGE = "usage"
    ID_USAGE_ERROR = "id-usage-error"
    ID_LOOKUP = "id"
    CLEAR_ALL = "clear-all"
    CLEAR_BY_ID = "clear-by-id"
    CLEAR_BY_NAME = "clear-by-name"
    COMPILE_DIRECT = "compile-direct"
    COMPILE_INCREMENTAL = "compile-incremental"
    QUIT = "quit"
    HELP = "help"
    PASSTHROUGH = "passthrough"


COMPILING = (CommandKind.COMPILE_DIRECT, CommandKind.COMPILE_INCREMENTAL)


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    line: str = ""
    argument: Optional[str] = None  # id search string, clear target or source file
    target_id: int = NOT_FOUND

    @property
    def compiling(self) -> bool:
        return self.kind in COMPILING


def source_file(args) -> Optional[str]:
    """The last argument naming an ActionScript or MXML source."""
    found = None
    for arg in args:
        if arg.endswith(SOURCE_EXTENSIONS):
            found = arg
    return found


def classify(argv) -> Command:
    args = list(argv)
    if not args:
        return Command(CommandKind.USAGE)
    head, line = args[0], " ".join(args)
    if head == "id":
        if len(args) < 2:
            return Command(CommandKind.ID_USAGE_ERROR)
        return Command(CommandKind.ID_LOOKUP, INFO_COMMAND, args[1])
    if head == "clear":
        if len(args) < 2:
            return Command(CommandKind.CLEAR_ALL, "clear")
        target = args[1]
        if re.fullmatch(r"[+-]?\d+", target):
            return Command(CommandKind.CLEAR_BY_ID, f"clear {target}", target, int(target))
        return Command(CommandKind.CLEAR_BY_NAME, "", target)
    if head in COMPILERS:
        return Command(CommandKind.COMPILE_DIRECT, line, source_file(args[1:]))
    if head == "quit":
        return Command(CommandKind.QUIT, line)
    if head == "help":
        return Command(CommandKind.HELP, line)
    return Command(CommandKind.PASSTHROUGH, line)


def compile_succeeded(lines) -> bool:
    for line in lines:
        if COMPILE_OK.search(line) or NOTHING_CHANGED in line:
            return True
    return False


class FcshController:
    """Runs one classified command against the shared fcsh session."""

    def __init__(self, config: FcshConfig, session=None, monitor=await_prompt,
                 lock=None, argv=None):
        self.config = config
        self.session = session or ScreenSession(config.session_name, config.screen_bin)
        self.monitor = monitor
        self.lock = lock or SessionLock(config.lock_path, argv=argv)
        self.resolver = TargetResolver(self.session, config.capture_path, PROMPT,
                                       monitor, config.timeout)
        self.capturing = False

    def run(self, command: Command) -> int:
        if command.kind is CommandKind.USAGE:
            print(USAGE)
            return EXIT_OK
        if command.kind is CommandKind.ID_USAGE_ERROR:
            print("usage: fcshctl id <search>")
            return EXIT_OK

        with self.lock:
            self._remove_orphan()
            try:
                self._ensure_session()
                return self._dispatch(command)
            finally:
                self._cleanup(command)

    # -- session plumbing --

    def _remove_orphan(self):
        if os.path.exists(self.config.capture_path):
            print(f"fcshctl: removing orphaned transcript {self.config.capture_path}",
                  file=sys.stderr)
            os.remove(self.config.capture_path)

    def _truncate(self):
        with open(self.config.capture_path, "w"):
            pass

    def _await(self) -> str:
        return self.monitor(self.config.capture_path, PROMPT, timeout=self.config.timeout)

    def _ensure_session(self):
        started = False
        if not self.session.exists():
            fcsh = self.config.fcsh_path()
            print(f"fcshctl: starting {fcsh} in screen session "
                  f"'{self.config.session_name}'", file=sys.stderr)
            self.session.start([fcsh])
            self._wait_for_session()
            started = True

        self._truncate()
        # toggling off first makes screen reopen the log at the configured path
        self.session.set_capture(False)
        self.session.configure_capture(self.config.capture_path)
        self.session.set_capture(True)
        self.capturing = True
        if started:
            # fcsh must not reach its first prompt before capture is on
            self._await()
            self._truncate()

    def _wait_for_session(self):
        deadline = time.monotonic() + SESSION_START_WAIT
        while not self.session.exists():
            if time.monotonic() >= deadline:
                raise SessionError(f"screen session '{self.config.session_name}' did not start")
            time.sleep(0.1)

    def _cleanup(self, command: Command):
        try:
            if self.capturing and command.kind is not CommandKind.QUIT:
                self.session.set_capture(False)
        except SessionError as e:
            print(f"fcshctl: could not stop capture: {e}", file=sys.stderr)
        finally:
            self.capturing = False
            if os.path.exists(self.config.capture_path):
                os.remove(self.config.capture_path)

    def _transact(self, line: str) -> str:
        self._truncate()
        self.session.inject(line)
        output = self._await()
        self.session.set_capture(False)
        self.capturing = False
        return output

    # -- modes --

    def _dispatch(self, command: Command) -> int:
        kind = command.kind
        if kind is CommandKind.ID_LOOKUP:
            target_id = self.resolver.resolve(command.argument)
            if target_id == NOT_FOUND:
                print(f"no compile target matches '{command.argument}'")
            else:
                print(target_id)
            return EXIT_OK

        if kind is CommandKind.CLEAR_BY_NAME:
            target_id = self.resolver.resolve(command.argument)
            if target_id == NOT_FOUND:
                print(f"cannot clear '{command.argument}': no compile target matches it")
                return EXIT_OK
            command = replace(command, line=f"clear {target_id}", target_id=target_id)

        if kind is CommandKind.COMPILE_DIRECT:
            command = self._incremental(command)
            what = command.argument or "..."
            if command.kind is CommandKind.COMPILE_INCREMENTAL:
                print(f"compiling {what} (target {command.target_id})...")
            else:
                print(f"compiling {what}...")

        if kind is CommandKind.QUIT:
            self.session.inject(command.line)
            return EXIT_OK

        output = self._transact(command.line)
        lines = filter_transcript(output, command.line, PROMPT)
        status = EXIT_OK
        if command.compiling and not compile_succeeded(lines):
            status = EXIT_COMPILE_ERROR
        if kind is CommandKind.HELP:
            print(HELP_ADDENDUM)
        for line in lines:
            print(line)
        return status

    def _incremental(self, command: Command) -> Command:
        if not self.config.incremental or not command.argument:
            return command
        target_id = self.resolver.resolve(command.argument)
        if target_id == NOT_FOUND:
            return command
        return replace(command, kind=CommandKind.COMPILE_INCREMENTAL,
                       line=f"compile {target_id}", target_id=target_id)


def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    try:
        config = FcshConfig.from_env()
        command = classify(argv)
        return FcshController(config, argv=argv).run(command)
    except FcshNotFound as e:
        print(f"fcshctl: {e}", file=sys.stderr)
        return EXIT_FCSH_NOT_FOUND
    except ConfigError as e:
        print(f"fcshctl: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (SessionError, MonitorError, LockTimeout, OSError) as e:
        print(f"fcshctl: {e}", file=sys.stderr)
        return EXIT_SESSION_ERROR
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
