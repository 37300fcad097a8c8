"""Command-line entry point with client, server and version commands."""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path

CONFIG_NAME = ".cobra"
CONFIG_EXTENSIONS = (
    "json",
    "toml",
    "yaml",
    "yml",
    "properties",
    "props",
    "prop",
    "hcl",
    "tfvars",
    "dotenv",
    "env",
    "ini",
)
VERSION_FILE = "VERSION"


def build_parser() -> argparse.ArgumentParser:
    """Build the gomcp argument parser and its subcommands."""
    parser = argparse.ArgumentParser(prog="gomcp", description="Root command for gomcp")
    commands = parser.add_subparsers(dest="command", metavar="command")
    for name, summary in (
        ("client", "start the mcp client"),
        ("server", "start the mcp server"),
        ("version", "display version"),
    ):
        commands.add_parser(name, help=summary, description=summary)
    return parser


def _readable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def init_config(cfgfile: str | os.PathLike | None = None) -> Path | None:
    """Return the configuration file in use, or None when there is none.

    An explicit file must carry a supported extension; otherwise the home
    directory is searched for .cobra with each supported extension, then
    for .cobra itself.
    """
    if cfgfile:
        path = Path(cfgfile)
        if path.suffix.lstrip(".") not in CONFIG_EXTENSIONS:
            return None
        return path if _readable(path) else None
    home = Path.home()
    candidates = [home / f"{CONFIG_NAME}.{ext}" for ext in CONFIG_EXTENSIONS]
    candidates.append(home / CONFIG_NAME)
    return next((path for path in candidates if _readable(path)), None)


def show_version(version_file: str | os.PathLike = VERSION_FILE) -> str:
    """Return the version line read from the version file."""
    try:
        text = Path(version_file).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileNotFoundError("VERSION file not found") from exc
    return "Version: " + text


def _fatal(message: str) -> int:
    sys.stderr.write(f"{time.strftime('%Y/%m/%d %H:%M:%S')} {message}\n")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Run the gomcp command line and return its exit status."""
    try:
        used = init_config()
    except RuntimeError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 1
    if used is not None:
        return _fatal(f"Using config file: {used}")

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    if args.command == "version":
        try:
            sys.stdout.write(show_version())
        except OSError as exc:
            return _fatal(str(exc))
    return 0


if __name__ == "__main__":
    sys.exit(main())