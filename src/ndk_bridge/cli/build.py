"""`ndk-bridge build|validate <variant>`: native build + jniLibs placement for one variant."""

import sys

from ndk_bridge.cli.parse_common import add_common_args, config_path, configure_logging
from ndk_bridge.pipeline import run as run_build
from ndk_bridge.pipeline import run_validate


def _parse(description: str, argv: list[str]):
    import argparse

    ap = argparse.ArgumentParser(description=description)
    ap.add_argument("variant", help="debug or release")
    add_common_args(ap)
    return ap.parse_args(argv)


def run_build_argv(argv: list[str] | None = None) -> None:
    """Parse argv and build variant for every configured ABI."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []  # skip 'ndk-bridge build'
    args = _parse("Build native libraries for every configured ABI", argv)
    configure_logging(args.verbose)
    rc = run_build(args.variant, config_path(args), args.project_root)
    sys.exit(rc)


def run_validate_argv(argv: list[str] | None = None) -> None:
    """Parse argv and check jniLibs/<variant>/<abi> holds every configured library."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    args = _parse("Validate jniLibs placement for a variant", argv)
    configure_logging(args.verbose)
    rc = run_validate(args.variant, config_path(args), args.project_root)
    sys.exit(rc)
