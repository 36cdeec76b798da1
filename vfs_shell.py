"""
vfs_shell.py - command parsing and dispatch for the Polina shell emulator

Commands:
    ls [path]
    cd [path]
    chown <owner> <path>
    whoami
    history
    clear
    exit

A raw line is parsed into a ``Command``; ``Command.execute`` turns it into a
list of system calls. ``Shell`` applies those calls to the VFS and hands the
caller a flat list of display operations. Nothing here touches the display
or ends the process: ``exit`` comes back as ``Outcome.exit``.
"""
from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional

from vfs_storage import HISTORY_LIMIT, VFS, VFSError

logger = logging.getLogger(__name__)

COMMANDS = ("ls", "cd", "exit", "clear", "whoami", "history", "chown")
NO_STORAGE = "VFS storage not set"
CHOWN_USAGE = "chown: usage: chown <owner> <path>"
CHOWN_EXAMPLE = "example: chown admin /docs/a.txt"


# ---------- System calls ----------
@dataclass(frozen=True)
class Display:
    text: str


@dataclass(frozen=True)
class DisplayNewLine:
    pass


@dataclass(frozen=True)
class DisplayUser:
    pass


@dataclass(frozen=True)
class DisplayHistory:
    pass


@dataclass(frozen=True)
class ListDir:
    args: List[str]


@dataclass(frozen=True)
class ChangeDir:
    args: List[str]


@dataclass(frozen=True)
class ChangeOwner:
    owner: str
    target: str


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Exit:
    pass


# ---------- Display operations ----------
@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class NewLine:
    pass


@dataclass(frozen=True)
class ClearAll:
    pass


# ---------- Commands ----------
def expand_args(args: Iterable[str], extra: Optional[Dict[str, str]] = None) -> List[str]:
    """
    Substitute variables in command arguments.

    ``$NAME`` is looked up in the environment (any other ``$`` in the token is
    dropped from the key); when unset the token is kept literally. Tokens
    without a leading ``$`` are looked up in ``extra`` and kept as-is when
    absent.
    """
    result = []
    for arg in args:
        if arg.startswith("$"):
            key = arg.lstrip("$").replace("$", "")
            result.append(os.environ.get(key, arg))
            continue
        if extra and arg in extra:
            result.append(extra[arg])
            continue
        result.append(arg)
    return result


class Command:
    def __init__(self, kind: str, args: Optional[List[str]] = None,
                 extra: Optional[Dict[str, str]] = None, name: str = ""):
        self.kind = kind
        self.args = args or []
        self.extra = extra
        # unrecognized token for "not_found"
        self.name = name

    def __repr__(self):
        return f"Command({self.kind!r}, {self.args!r})"

    @classmethod
    def parse(cls, line: str, extra: Optional[Dict[str, str]] = None) -> "Command":
        parts = line.split()
        if not parts or parts[0].startswith("#"):
            return cls("noop")
        cmd, args = parts[0], parts[1:]
        if cmd not in COMMANDS:
            return cls("not_found", name=cmd)
        return cls(cmd, args, extra)

    def expand_args(self) -> List[str]:
        return expand_args(self.args, self.extra)

    def execute(self) -> list:
        if self.kind == "ls":
            return [DisplayNewLine(), ListDir(self.expand_args())]
        if self.kind == "cd":
            return [DisplayNewLine(), ChangeDir(self.expand_args())]
        if self.kind == "exit":
            return [Exit()]
        if self.kind == "clear":
            return [Clear()]
        if self.kind == "whoami":
            return [DisplayNewLine(), DisplayUser(), DisplayNewLine()]
        if self.kind == "history":
            return [DisplayNewLine(), DisplayHistory(), DisplayNewLine()]
        if self.kind == "chown":
            args = self.expand_args()
            if len(args) != 2:
                return [
                    DisplayNewLine(),
                    Display(CHOWN_USAGE),
                    DisplayNewLine(),
                    Display(CHOWN_EXAMPLE),
                    DisplayNewLine(),
                ]
            return [ChangeOwner(args[0], args[1]), DisplayNewLine()]
        if self.kind == "not_found":
            return [DisplayNewLine(), Display(f"{self.name}: command not found"), DisplayNewLine()]
        return [DisplayNewLine()]


# ---------- Shell session ----------
@dataclass
class Outcome:
    ops: list = field(default_factory=list)
    exit: bool = False


class Shell:
    def __init__(self, vfs: Optional[VFS], user: str = "root",
                 extra_vars: Optional[Dict[str, str]] = None):
        self.vfs = vfs
        self.user = vfs.user if vfs is not None else user
        self.extra_vars = extra_vars
        # typed lines kept for recall when there is no VFS to hold history
        self._typed: Deque[str] = deque(maxlen=HISTORY_LIMIT)

    def prompt(self) -> str:
        cwd = self.vfs.current_path if self.vfs is not None else "?"
        return f"{self.user}@polina:{cwd}# "

    def submit(self, line: str) -> Outcome:
        """Record, parse and run one line; return what should be displayed."""
        logger.debug("submit %r", line)
        if self.vfs is not None:
            self.vfs.record(line)
        else:
            self._typed.append(line)
        command = Command.parse(line, self.extra_vars)
        outcome = Outcome()
        for call in command.execute():
            if isinstance(call, Exit):
                outcome.exit = True
                break
            outcome.ops.extend(self.apply(call))
        return outcome

    def recall(self) -> List[str]:
        """Non-blank submitted lines, oldest first, for Up/Down navigation."""
        source = self.vfs.history if self.vfs is not None else self._typed
        return [line for line in source if line.strip()]

    def run_script(self, lines: Iterable[str]) -> Outcome:
        """Feed startup lines through ``submit``; comment lines are skipped unrecorded."""
        total = Outcome()
        for line in lines:
            if line.startswith("#"):
                continue
            total.ops.append(Text(self.prompt() + line))
            outcome = self.submit(line)
            total.ops.extend(outcome.ops)
            if outcome.exit:
                total.exit = True
                break
        return total

    def apply(self, call) -> list:
        if isinstance(call, Display):
            return [Text(call.text)]
        if isinstance(call, DisplayNewLine):
            return [NewLine()]
        if isinstance(call, Clear):
            return [ClearAll()]
        if isinstance(call, DisplayUser):
            return [Text(self.user)]
        if isinstance(call, DisplayHistory):
            if self.vfs is None:
                return [Text(f"history: {NO_STORAGE}")]
            ops = []
            for i, cmd in enumerate(self.vfs.history, start=1):
                if ops:
                    ops.append(NewLine())
                ops.append(Text(f"{i}  {cmd}"))
            return ops
        if isinstance(call, ListDir):
            return self._vfs_call("ls", self._list_dir, call.args)
        if isinstance(call, ChangeDir):
            return self._vfs_call("cd", self._change_dir, call.args)
        if isinstance(call, ChangeOwner):
            # chown runs before its newline, so errors go on a line of their own
            return self._vfs_call("chown", self._change_owner, call.owner, call.target, lead=True)
        raise TypeError(f"unknown system call: {call!r}")

    def _vfs_call(self, name: str, func, *args, lead: bool = False) -> list:
        if self.vfs is None:
            message = f"{name}: {NO_STORAGE}"
        else:
            try:
                return func(*args)
            except VFSError as e:
                logger.warning("%s failed: %s", name, e)
                message = f"{name}: {e}"
        if lead:
            return [NewLine(), Text(message)]
        return [Text(message), NewLine()]

    def _list_dir(self, args: List[str]) -> list:
        children = self.vfs.list_dir(args)
        if not children:
            return []
        return [Text(" ".join(child.name for child in children)), NewLine()]

    def _change_dir(self, args: List[str]) -> list:
        self.vfs.change_dir(args)
        return []

    def _change_owner(self, owner: str, target: str) -> list:
        self.vfs.set_owner(target, owner)
        return []
