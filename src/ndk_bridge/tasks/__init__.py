"""Task graph and the native-build-before-compile wiring."""

from .graph import TaskDependencyEdge, TaskGraph
from .wiring import (
    HOOK_TASK_PREFIX,
    NATIVE_TASK_PREFIX,
    hook_task_name,
    hook_variant,
    native_task_name,
    wire_native_build,
)

__all__ = [
    "HOOK_TASK_PREFIX",
    "NATIVE_TASK_PREFIX",
    "TaskDependencyEdge",
    "TaskGraph",
    "hook_task_name",
    "hook_variant",
    "native_task_name",
    "wire_native_build",
]
