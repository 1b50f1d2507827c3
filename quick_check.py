#!/usr/bin/env python3
# quick_check.py
"""Talk to fcsh directly, without screen, to check that the SDK works.

    FLEX_HOME=/opt/flex fcshctl-check [src/Main.as]
"""
import sys

import pexpect

from fcsh_monitor import PROMPT, filter_transcript
from fcsh_targets import INFO_COMMAND, parse_targets
from fcshctl import (EXIT_CONFIG_ERROR, EXIT_FCSH_NOT_FOUND, EXIT_OK,
                     EXIT_SESSION_ERROR, ConfigError, FcshConfig, FcshNotFound)

STARTUP_TIMEOUT = 60  # the JVM is slow to come up
COMMAND_TIMEOUT = 300


def run(child, cmd: str, timeout: float = COMMAND_TIMEOUT):
    """Send one command, wait for the prompt, return fcsh's output lines."""
    child.sendline(cmd)
    child.expect_exact(PROMPT, timeout=timeout)
    return filter_transcript(child.before.replace("\r", ""), cmd, PROMPT)


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    try:
        fcsh = FcshConfig.from_env().fcsh_path()
    except FcshNotFound as e:
        print(f"fcshctl-check: {e}", file=sys.stderr)
        return EXIT_FCSH_NOT_FOUND
    except ConfigError as e:
        print(f"fcshctl-check: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    child = pexpect.spawn(fcsh, encoding="utf-8", codec_errors="replace")
    child.delaybeforesend = 0
    try:
        child.expect_exact(PROMPT, timeout=STARTUP_TIMEOUT)
        print(f"fcsh is up (pid={child.pid})")
        if args:
            print("\n".join(run(child, "mxmlc " + " ".join(args))))
        targets = parse_targets("\n".join(run(child, INFO_COMMAND)))
        for target in targets:
            print(f"target {target.id}: {target.command}")
        if not targets:
            print("no compile targets")
        child.sendline("quit")
        child.expect(pexpect.EOF, timeout=10)
    except pexpect.TIMEOUT:
        print(f"fcshctl-check: no {PROMPT.strip()} prompt from {fcsh}", file=sys.stderr)
        return EXIT_SESSION_ERROR
    except pexpect.EOF:
        print(f"fcshctl-check: {fcsh} exited unexpectedly", file=sys.stderr)
        return EXIT_SESSION_ERROR
    finally:
        child.close(force=True)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
