#!/usr/bin/env python3
# fcsh_monitor.py
import re

import pexpect

PROMPT = "(fcsh) "
POLL_INTERVAL = 0.2


class MonitorError(RuntimeError):
    pass


class PromptTimeout(MonitorError):
    pass


def prompt_pattern(sentinel: str):
    # the sentinel only counts at the start of a line
    return re.compile(r"(?:\A|\n)" + re.escape(sentinel))


def await_prompt(path: str, sentinel: str = PROMPT,
                 poll_interval: float = POLL_INTERVAL, timeout=None) -> str:
    """Follow the transcript at `path` until a line starts with `sentinel`.

    The file is read from its first byte, so callers truncate it before
    injecting the command. Returns everything before the prompt with
    carriage returns removed. `timeout=None` waits forever.
    """
    child = pexpect.spawn(
        "tail", ["-n", "+1", "-F", "-s", str(poll_interval), path],
        encoding="utf-8", codec_errors="replace", echo=False)
    try:
        # tail's line breaks pick up a \r from the pty, so match on \n only
        child.expect(prompt_pattern(sentinel), timeout=timeout)
        return child.before.replace("\r", "")
    except pexpect.TIMEOUT:
        seen = (child.before or "").replace("\r", "")
        raise PromptTimeout(
            f"no {sentinel.strip()!r} prompt after {timeout}s; last output: "
            f"{seen[-200:]!r}") from None
    except pexpect.EOF:
        raise MonitorError(f"stopped following {path} before the prompt") from None
    finally:
        child.close(force=True)


def filter_transcript(text: str, command: str, sentinel: str = PROMPT):
    """Drop echoed prompts and echoed copies of `command`, keeping order."""
    prompt = sentinel.strip()
    lines = []
    for line in text.splitlines():
        if line.strip() == prompt:
            continue
        if command and command in line:
            continue
        lines.append(line)
    return lines
