"""Shared CLI arguments (--config, --project-root, --verbose) and logging setup."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from ndk_bridge.config import DEFAULT_CONFIG_FILE


def path_resolver(s: str) -> Path:
    """Resolve a path argument to absolute Path (e.g. --project-root, --config)."""
    return Path(s).resolve()


def add_common_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument(
        "--config",
        type=path_resolver,
        default=None,
        help=f"Config file (default: <project-root>/{DEFAULT_CONFIG_FILE})",
    )
    ap.add_argument(
        "--project-root",
        type=path_resolver,
        default=None,
        help="Base for relative paths in config (default: config file directory)",
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def config_path(args: argparse.Namespace) -> Path:
    if args.config is not None:
        return args.config
    return (args.project_root or Path.cwd()) / DEFAULT_CONFIG_FILE


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
