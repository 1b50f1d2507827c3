#!/usr/bin/env python3
# fcsh_targets.py
import re
from dataclasses import dataclass

from fcsh_monitor import PROMPT, await_prompt

INFO_COMMAND = "info"
ID_LABEL = "id:"
NOT_FOUND = 0


@dataclass
class CompileTarget:
    id: int
    command: str


def _id_value(line: str) -> int:
    fields = line[len(ID_LABEL):].split()
    if not fields:
        return NOT_FOUND
    digits = re.sub(r"\D", "", fields[0])
    return int(digits) if digits else NOT_FOUND


def parse_targets(text: str):
    """Parse fcsh "info" output into its target records.

    Each record is an "id: N" line followed by the command that created it.
    """
    targets = []
    lines = text.splitlines()
    for i, line in enumerate(lines):
        if not line.startswith(ID_LABEL):
            continue
        target_id = _id_value(line)
        if target_id == NOT_FOUND:
            continue
        command = lines[i + 1].strip() if i + 1 < len(lines) else ""
        targets.append(CompileTarget(target_id, command))
    return targets


def find_target_id(text: str, search: str) -> int:
    """Id of the first record near a line mentioning `search`, or 0.

    Takes each line containing `search` with one line of context on either
    side and returns the first "id:" line among them, in transcript order.
    A search string that is a substring of several file names can pick the
    wrong record.
    """
    if not search:
        return NOT_FOUND
    lines = text.splitlines()
    window = set()
    for i, line in enumerate(lines):
        if search in line:
            window.update((i - 1, i, i + 1))
    for i in sorted(window):
        if 0 <= i < len(lines) and lines[i].startswith(ID_LABEL):
            return _id_value(lines[i])
    return NOT_FOUND


class TargetResolver:
    """Looks up compile target ids by asking the running shell for "info"."""

    def __init__(self, session, capture_path, sentinel=PROMPT,
                 monitor=await_prompt, timeout=None):
        self.session = session
        self.capture_path = capture_path
        self.sentinel = sentinel
        self.monitor = monitor
        self.timeout = timeout

    def _truncate(self):
        with open(self.capture_path, "w"):
            pass

    def query(self) -> str:
        self.session.set_capture(True)
        self._truncate()
        self.session.inject(INFO_COMMAND)
        try:
            return self.monitor(self.capture_path, self.sentinel, timeout=self.timeout)
        finally:
            self._truncate()

    def resolve(self, search: str) -> int:
        return find_target_id(self.query(), search)
