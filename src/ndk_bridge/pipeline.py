"""Native build for one variant: invoke cargo per ABI, place into jniLibs, validate."""

from __future__ import annotations

import sys
import threading
from collections.abc import Mapping
from pathlib import Path

from ndk_bridge.build.invoker import BuildInvocation, NativeBuildInvoker
from ndk_bridge.build.placement import (
    place_artifacts,
    require_placement,
    validate_placement,
)
from ndk_bridge.build.variants import BuildVariant
from ndk_bridge.config import NativeBuildConfig, load_config
from ndk_bridge.errors import CompilationFailure, NativeBuildError


def build_native(
    config: NativeBuildConfig,
    variant: str | BuildVariant,
    env: Mapping[str, str] | None = None,
    cancel_event: threading.Event | None = None,
    invoker: NativeBuildInvoker | None = None,
) -> BuildInvocation:
    """Build, place and validate. Raises the first NativeBuildError; placement is skipped on compile failure."""
    inv = invoker or NativeBuildInvoker(config, env=env)
    invocation = inv.invoke(variant, cancel_event)
    invocation.raise_for_failure()
    place_artifacts(invocation, config.libraries, config.jni_libs_dir)
    require_placement(
        config.jni_libs_dir, invocation.variant, invocation.architectures, config.libraries
    )
    return invocation


def report_error(e: NativeBuildError) -> None:
    """Print a stage-tagged failure line (plus every failed ABI for compile failures) to stderr."""
    print(f"❌ {e}", file=sys.stderr)
    if isinstance(e, CompilationFailure):
        for result in e.results[1:]:
            print(f"❌ [{e.stage}] {result.architecture.abi}: {result.diagnostic}", file=sys.stderr)


def run(
    variant: str,
    config_path: Path,
    project_root: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Load config and build variant for every configured ABI. Returns 0 or 1."""
    try:
        config = load_config(config_path, project_root)
        v = BuildVariant.parse(variant)
        abis = ", ".join(a.abi for a in config.architectures)
        print(f"🔨 Building native libraries ({v}) for {abis}...")
        invocation = build_native(config, v, env=env)
    except NativeBuildError as e:
        report_error(e)
        return 1
    for arch in invocation.architectures:
        result = invocation.results[arch]
        print(f"  ✅ {arch.abi}: {', '.join(sorted(result.artifacts))} ({result.duration:.1f}s)")
    print(f"📦 Placed in {config.jni_libs_dir / v.value}")
    print("🎉 Native build complete!")
    return 0


def run_validate(variant: str, config_path: Path, project_root: Path | None = None) -> int:
    """Check jniLibs placement only. Returns 0 or 1."""
    try:
        config = load_config(config_path, project_root)
        v = BuildVariant.parse(variant)
        report = validate_placement(config.jni_libs_dir, v, config.architectures, config.libraries)
    except NativeBuildError as e:
        report_error(e)
        return 1
    for lib, arch in report.missing:
        print(f"❌ {v}/{arch.abi}: missing {lib}", file=sys.stderr)
    for lib, arch, machine in report.mismatched:
        print(f"❌ {v}/{arch.abi}: {lib} is built for ELF machine {machine}", file=sys.stderr)
    if not report.passed:
        return 1
    total = len(config.libraries)
    for arch in config.architectures:
        print(f"✅ {arch.abi}: {total}/{total} libraries")
    return 0
