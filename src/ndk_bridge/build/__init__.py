"""Per-ABI cargo builds for Android: target/variant mapping, invocation, jniLibs placement."""

from .invoker import (
    BuildInvocation,
    CompilationResult,
    NativeBuildInvoker,
)
from .ndk import find_ndk, ndk_host_tag, ndk_revision, toolchain_env
from .placement import (
    PlacementReport,
    place_artifacts,
    require_placement,
    validate_placement,
)
from .targets import ARCH_TARGETS, TargetArchitecture, resolve_targets
from .variants import BuildVariant, NativeProfile, map_variant

__all__ = [
    "ARCH_TARGETS",
    "BuildInvocation",
    "BuildVariant",
    "CompilationResult",
    "NativeBuildInvoker",
    "NativeProfile",
    "PlacementReport",
    "TargetArchitecture",
    "find_ndk",
    "map_variant",
    "ndk_host_tag",
    "ndk_revision",
    "place_artifacts",
    "require_placement",
    "resolve_targets",
    "toolchain_env",
    "validate_placement",
]
