#!/usr/bin/env python3
"""
vfs_gui.py - Polina VFS window

Run:
    python vfs_gui.py --storage ./storage [--startapp start_script.txt]

The window only renders what the shell returns (text, newlines, clear) and
closes on ``exit``. All state lives in ``vfs_shell.Shell``.
"""
from __future__ import annotations

import logging
import sys
import tkinter as tk
from tkinter import scrolledtext
from typing import List, Optional

from vfs_config import parse_args, read_startup_script, setup_logging
from vfs_shell import ClearAll, NewLine, Shell, Text
from vfs_storage import VFS, VFSIOError

logger = logging.getLogger(__name__)


class ShellGUI(tk.Tk):
    def __init__(self, shell: Shell, startapp: Optional[str] = None):
        super().__init__()
        self.shell = shell
        self.startapp = startapp
        self.hist_index: Optional[int] = None

        self.title("Polina VFS")
        self.geometry("600x800")

        self.output = scrolledtext.ScrolledText(self, wrap=tk.WORD, state=tk.DISABLED)
        self.output.pack(fill=tk.BOTH, expand=True, padx=6, pady=6)

        frm = tk.Frame(self)
        frm.pack(fill=tk.X, padx=6, pady=(0, 6))
        self.prompt_label = tk.Label(frm, text=self.shell.prompt(), anchor="w")
        self.prompt_label.pack(side=tk.LEFT)
        self.entry_var = tk.StringVar()
        self.entry = tk.Entry(frm, textvariable=self.entry_var)
        self.entry.pack(side=tk.LEFT, fill=tk.X, expand=True)
        self.entry.bind("<Return>", self.on_enter)
        self.entry.bind("<Up>", self.on_history_up)
        self.entry.bind("<Down>", self.on_history_down)
        self.entry.focus()

        self.start_button = None
        if self.startapp:
            self.start_button = tk.Button(self, text=f"Run startapp script: {self.startapp}",
                                          command=self.run_startup_script)
            self.start_button.pack(anchor="e", padx=15, pady=(0, 6))

        vfs = self.shell.vfs
        if vfs is None:
            self.print_output("[debug] VFS storage not set\n")
        else:
            self.print_output(f"[debug] VFS loaded from: {vfs.sys_path}\n")
            self.print_output(f"[debug] entries: {[n.name for n in vfs.list_dir(['/'])]}\n\n")

    def print_output(self, text: str):
        self.output.config(state=tk.NORMAL)
        self.output.insert(tk.END, text)
        self.output.see(tk.END)
        self.output.config(state=tk.DISABLED)
        self.prompt_label.config(text=self.shell.prompt())

    def clear_output(self):
        self.output.config(state=tk.NORMAL)
        self.output.delete("1.0", tk.END)
        self.output.config(state=tk.DISABLED)

    def render(self, outcome):
        for op in outcome.ops:
            if isinstance(op, Text):
                self.print_output(op.text)
            elif isinstance(op, NewLine):
                self.print_output("\n")
            elif isinstance(op, ClearAll):
                self.clear_output()
        if outcome.exit:
            logger.debug("exit requested")
            self.destroy()

    # history nav
    def on_history_up(self, event=None):
        recalled = self.shell.recall()
        if not recalled:
            return
        if self.hist_index is None:
            self.hist_index = len(recalled) - 1
        else:
            self.hist_index = max(0, self.hist_index - 1)
        self.entry_var.set(recalled[self.hist_index])
        return "break"

    def on_history_down(self, event=None):
        recalled = self.shell.recall()
        if not recalled or self.hist_index is None:
            return
        self.hist_index = min(len(recalled) - 1, self.hist_index + 1)
        self.entry_var.set(recalled[self.hist_index])
        return "break"

    # input
    def on_enter(self, event=None):
        line = self.entry_var.get()
        self.entry_var.set("")
        self.hist_index = None
        self.print_output(self.shell.prompt() + line)
        self.render(self.shell.submit(line))

    def run_startup_script(self):
        if self.start_button is not None:
            self.start_button.pack_forget()
            self.start_button = None
        lines = read_startup_script(self.startapp)
        if not lines:
            self.print_output(f"[error] Script not found or empty: {self.startapp}\n")
            return
        self.print_output(f"[script] Running {self.startapp}\n")
        self.render(self.shell.run_script(lines))


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.debug)

    try:
        vfs = VFS(args.storage, user=args.user)
    except VFSIOError as e:
        logger.error("VFS not created: %s", e)
        print(f"Failed to build VFS: {e}", file=sys.stderr)
        vfs = None

    shell = Shell(vfs, user=args.user, extra_vars=args.extra_vars)
    app = ShellGUI(shell, startapp=args.startapp)
    app.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
