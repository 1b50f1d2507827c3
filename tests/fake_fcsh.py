#!/usr/bin/env python3
"""
A stand-in for fcsh: same prompt, same command names, canned output.

Used in-process by the fake screen session and as an executable for the
quick check tests.
"""
import os
import sys

PROMPT = "(fcsh) "
BANNER = (
    "Adobe Flex Compiler SHell (fcsh)\n"
    "Version 4.6.0 build 23201\n"
    "Copyright (c) 2004-2011 Adobe Systems, Inc. All rights reserved.\n"
    "\n"
)
NOTHING_CHANGED = "Nothing has changed since the last compile. Skip..."
HELP = (
    "List of fcsh commands:\n"
    "mxmlc arg1 arg2 ...      full compilation and optimization; return a target id\n"
    "compc arg1 arg2 ...      full SWC compilation\n"
    "compile id               incremental compilation\n"
    "clear [id]               clear target(s)\n"
    "info [id]                display compile target info\n"
    "quit                     quit\n"
)


class FakeFcsh:

    def __init__(self):
        self.targets = {}
        self.next_id = 0
        self.running = True

    def _build(self, line):
        source = [w for w in line.split() if w.endswith((".as", ".mxml"))]
        source = source[-1] if source else "Main.as"
        if "broken" in source:
            return f"{source}(3): col: 1 Error: Syntax error: expecting identifier.\n"
        swf = os.path.splitext(source)[0] + (".swc" if line.startswith("compc") else ".swf")
        return ("Loading configuration file /opt/flex/frameworks/flex-config.xml\n"
                f"{swf} (1024 bytes)\n")

    def handle(self, line):
        words = line.split()
        if not words:
            return ""
        cmd, args = words[0], words[1:]
        if cmd in ("mxmlc", "compc"):
            self.next_id += 1
            self.targets[self.next_id] = line
            return (f"fcsh: Assigned {self.next_id} as the compile target id\n"
                    + self._build(line))
        if cmd == "compile":
            target_id = int(args[0]) if args and args[0].isdigit() else 0
            if target_id not in self.targets:
                return f"fcsh: Target {target_id} not found\n"
            return NOTHING_CHANGED + "\n"
        if cmd == "info":
            return "".join(f"id: {i}\n{command}\n" for i, command in self.targets.items())
        if cmd == "clear":
            if not args:
                self.targets.clear()
            elif args[0].isdigit() and int(args[0]) in self.targets:
                del self.targets[int(args[0])]
            else:
                return f"fcsh: Target {args[0]} not found\n"
            return ""
        if cmd == "help":
            return HELP
        if cmd == "quit":
            self.running = False
            return ""
        return f"fcsh: Command {cmd} not found\n"


def main():
    shell = FakeFcsh()
    sys.stdout.write(BANNER)
    while shell.running:
        sys.stdout.write(PROMPT)
        sys.stdout.flush()
        line = sys.stdin.readline()
        if not line:
            break
        sys.stdout.write(shell.handle(line.strip()))
    sys.stdout.flush()


if __name__ == "__main__":
    main()
