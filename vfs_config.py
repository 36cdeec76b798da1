"""
vfs_config.py - launch options for the Polina shell emulator

    python vfs_gui.py --storage ./storage [--startapp start.txt] [--user ilya]
                      [--var DOCS=/docs ...] [--debug]
"""
from __future__ import annotations

import argparse
import logging
import os
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_STORAGE = "./storage"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_vars(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Turn ``NAME=VALUE`` strings into a dict; the last duplicate wins."""
    result = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {pair!r}")
        result[name] = value
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Polina VFS shell emulator")
    parser.add_argument("--storage", default=DEFAULT_STORAGE,
                        help="Directory the VFS is read from")
    parser.add_argument("--startapp", default=None, help="Optional startup script")
    parser.add_argument("--user", default=os.environ.get("USER", "root"),
                        help="Session user (owner of every node)")
    parser.add_argument("--var", action="append", default=[], metavar="NAME=VALUE",
                        help="Extra argument substitution, may be repeated")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.extra_vars = parse_vars(args.var)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    return args


def read_startup_script(path: Optional[str]) -> List[str]:
    """
    Lines of the startup script without terminators.

    A missing or unreadable script gives an empty list; lines that are not
    valid UTF-8 are dropped.
    """
    if not path or not os.path.exists(path):
        return []
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        logger.warning("cannot read startup script %s: %s", path, e)
        return []

    lines = []
    for number, chunk in enumerate(raw.splitlines(), start=1):
        try:
            lines.append(chunk.decode("utf-8"))
        except UnicodeDecodeError:
            logger.warning("%s:%d: not valid UTF-8, skipped", path, number)
    return lines


def setup_logging(debug: bool = False):
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING, format=LOG_FORMAT)
