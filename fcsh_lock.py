#!/usr/bin/env python3
# fcsh_lock.py
import fcntl
import json
import os
import sys
import time

POLL_INTERVAL = 1.0
REPORT_EVERY = 5  # polls between "still waiting" messages


class LockTimeout(RuntimeError):
    pass


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True  # exists, owned by someone else
    return True


def read_record(path: str):
    """Return the holder record stored in the lock file, or None."""
    try:
        with open(path, "r") as f:
            data = f.read().strip()
    except FileNotFoundError:
        return None
    if not data:
        return None
    try:
        record = json.loads(data)
    except ValueError:
        return None
    if not isinstance(record, dict) or not isinstance(record.get("pid"), int):
        return None
    if not isinstance(record.get("since"), (int, float)):
        record["since"] = None
    return record


class SessionLock:
    """Cross-invocation exclusive lock around the fcsh session.

    The flock is atomic and dropped by the kernel when the holder dies, so a
    crashed invocation can never wedge the next one. The pid/timestamp record
    written into the file is informational: waiters use it to say who they
    are waiting for.
    """

    def __init__(self, path: str, poll_interval: float = POLL_INTERVAL, argv=None):
        self.path = path
        self.poll_interval = poll_interval
        self.argv = list(argv) if argv is not None else sys.argv[1:]
        self.fd = None
        self.recovered_from = None

    def holder(self):
        return read_record(self.path)

    def _try_lock(self, fd) -> bool:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            return False
        return True

    def _report_wait(self):
        record = self.holder()
        if record is None:
            print("fcshctl: waiting for another fcshctl to finish", file=sys.stderr)
            return
        if record["since"] is None:
            print(f"fcshctl: waiting for pid {record['pid']}", file=sys.stderr)
            return
        held = time.time() - record["since"]
        print(f"fcshctl: waiting for pid {record['pid']} "
              f"(holding the session for {held:.0f}s)", file=sys.stderr)

    def acquire(self, timeout=None):
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        start = time.monotonic()
        polls = 0
        try:
            while not self._try_lock(fd):
                if polls % REPORT_EVERY == 0:
                    self._report_wait()
                if timeout is not None and time.monotonic() - start >= timeout:
                    raise LockTimeout(f"{self.path} still locked after {timeout}s")
                time.sleep(self.poll_interval)
                polls += 1
        except BaseException:
            os.close(fd)
            raise
        self.fd = fd

        previous = self.holder()
        if previous and previous["pid"] != os.getpid() and not pid_alive(previous["pid"]):
            self.recovered_from = previous["pid"]
            print(f"fcshctl: recovered lock left by dead pid {previous['pid']}",
                  file=sys.stderr)
        self._write_record()
        return self

    def _write_record(self):
        record = {"pid": os.getpid(), "since": time.time(), "argv": self.argv}
        os.ftruncate(self.fd, 0)
        os.lseek(self.fd, 0, os.SEEK_SET)
        os.write(self.fd, json.dumps(record).encode("utf-8"))

    def release(self):
        if self.fd is None:
            return
        fd, self.fd = self.fd, None
        try:
            os.ftruncate(fd, 0)
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    @property
    def locked(self) -> bool:
        return self.fd is not None

    def __enter__(self):
        return self.acquire()

    def __exit__(self, exc_type, exc, tb):
        self.release()
