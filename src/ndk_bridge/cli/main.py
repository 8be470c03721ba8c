"""Main CLI entry point for ndk-bridge."""

import sys

from ndk_bridge.cli import build as build_cli
from ndk_bridge.cli import tasks_cmd


def _usage() -> None:
    print("Usage: ndk-bridge <command> [args...]", file=sys.stderr)
    print("Commands:", file=sys.stderr)
    print(
        "  build <variant>     - cargo build every configured ABI, copy into jniLibs, validate",
        file=sys.stderr,
    )
    print("  validate <variant>  - Check jniLibs/<variant>/<abi> holds every library", file=sys.stderr)
    print(
        "  run <task>          - Run a task after its prerequisites (e.g. javaPreCompileRelease)",
        file=sys.stderr,
    )
    print("  tasks               - List task dependency edges", file=sys.stderr)


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        _usage()
        sys.exit(1)

    command = sys.argv[1]

    if command == "build":
        build_cli.run_build_argv()
    elif command == "validate":
        build_cli.run_validate_argv()
    elif command == "run":
        tasks_cmd.run_task_argv()
    elif command == "tasks":
        tasks_cmd.run_tasks_argv()
    elif command in ("-h", "--help", "help"):
        _usage()
    else:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
