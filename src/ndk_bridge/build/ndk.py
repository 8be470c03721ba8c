"""Android NDK discovery and per-target toolchain environment."""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path

from ndk_bridge.build.targets import TargetArchitecture
from ndk_bridge.errors import NdkNotFound
from ndk_bridge.helpers import compare_versions, env_key, parse_version, read_properties

log = logging.getLogger(__name__)

NDK_ENV_VARS = ("ANDROID_NDK_HOME", "ANDROID_NDK_ROOT", "NDK_ROOT")
SDK_ENV_VARS = ("ANDROID_SDK_ROOT", "ANDROID_HOME")


def ndk_host_tag() -> str:
    """Host tag used in toolchains/llvm/prebuilt/<tag>. Apple silicon NDKs still ship darwin-x86_64."""
    if sys.platform.startswith("darwin"):
        return "darwin-x86_64"
    if sys.platform.startswith("win"):
        return "windows-x86_64"
    return "linux-x86_64"


def ndk_revision(ndk_dir: Path) -> str | None:
    """Pkg.Revision from source.properties, or None if absent."""
    props = ndk_dir / "source.properties"
    if not props.is_file():
        return None
    return read_properties(props).get("Pkg.Revision")


def _sdk_ndk(sdk_root: Path, ndk_version: str | None) -> Path | None:
    ndk_parent = sdk_root / "ndk"
    if ndk_version and (ndk_parent / ndk_version).is_dir():
        return ndk_parent / ndk_version
    if not ndk_parent.is_dir():
        return None
    candidates = []
    for d in ndk_parent.iterdir():
        try:
            candidates.append((parse_version(d.name), d))
        except ValueError:
            continue
    if not candidates:
        return None
    return max(candidates)[1]


def find_ndk(
    ndk_dir: Path | None = None,
    ndk_version: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Resolve the NDK: explicit dir, NDK env vars, then <sdk>/ndk/<version or newest>. Raises NdkNotFound."""
    env = environ if environ is not None else {}
    found: Path | None = None
    if ndk_dir is not None:
        if not ndk_dir.is_dir():
            raise NdkNotFound(f"Configured ndk_dir does not exist: {ndk_dir}")
        found = ndk_dir
    if found is None:
        for var in NDK_ENV_VARS:
            value = env.get(var)
            if value and Path(value).is_dir():
                found = Path(value)
                log.debug("NDK from %s: %s", var, found)
                break
    if found is None:
        for var in SDK_ENV_VARS:
            value = env.get(var)
            if value:
                found = _sdk_ndk(Path(value), ndk_version)
                if found is not None:
                    log.debug("NDK from %s: %s", var, found)
                    break
    if found is None:
        raise NdkNotFound(
            "Android NDK not found. Set ndk_dir in config, or ANDROID_NDK_HOME / ANDROID_SDK_ROOT."
        )

    revision = ndk_revision(found)
    if ndk_version and revision and compare_versions(revision, ndk_version) != 0:
        log.warning("NDK at %s is %s, config expects %s", found, revision, ndk_version)
    return found


def toolchain_env(ndk_dir: Path, arch: TargetArchitecture, api_level: int) -> dict[str, str]:
    """Cargo/cc env for one target: linker, CC/CXX/AR pointing at the NDK LLVM toolchain."""
    bin_dir = ndk_dir / "toolchains" / "llvm" / "prebuilt" / ndk_host_tag() / "bin"
    ext = ".cmd" if sys.platform.startswith("win") else ""
    clang = bin_dir / f"{arch.clang_prefix}{api_level}-clang{ext}"
    clangxx = bin_dir / f"{arch.clang_prefix}{api_level}-clang++{ext}"
    ar = bin_dir / "llvm-ar"
    triple_us = arch.target_triple.replace("-", "_")
    return {
        "ANDROID_NDK_HOME": str(ndk_dir),
        f"CARGO_TARGET_{env_key(arch.target_triple)}_LINKER": str(clang),
        f"CARGO_TARGET_{env_key(arch.target_triple)}_AR": str(ar),
        f"CC_{triple_us}": str(clang),
        f"CXX_{triple_us}": str(clangxx),
        f"AR_{triple_us}": str(ar),
    }
