"""`ndk-bridge run <task>` and `ndk-bridge tasks`: packager hook entry points."""

import sys

from ndk_bridge.cli.parse_common import add_common_args, config_path, configure_logging
from ndk_bridge.tasks.runner import run as run_task
from ndk_bridge.tasks.runner import run_list


def run_task_argv(argv: list[str] | None = None) -> None:
    """Parse argv and run a task (e.g. javaPreCompileRelease) after its prerequisites."""
    import argparse

    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    ap = argparse.ArgumentParser(description="Run a task and its native build prerequisites")
    ap.add_argument("task", help="e.g. javaPreCompileRelease or buildCargoNdkDebug")
    add_common_args(ap)
    args = ap.parse_args(argv)
    configure_logging(args.verbose)
    sys.exit(run_task(args.task, config_path(args), args.project_root))


def run_tasks_argv(argv: list[str] | None = None) -> None:
    """Parse argv and print task dependency edges."""
    import argparse

    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    ap = argparse.ArgumentParser(description="List task dependency edges")
    add_common_args(ap)
    args = ap.parse_args(argv)
    configure_logging(args.verbose)
    sys.exit(run_list(config_path(args), args.project_root))
