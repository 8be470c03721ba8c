"""Copy built libraries into the packager's jniLibs layout and verify them.

Layout: <jni_libs_root>/<variant>/<abi>/<library>. Each <variant>/<abi>
directory is owned by ndk_bridge and rebuilt from scratch on every
placement, so libraries from an earlier run never linger.
"""

from __future__ import annotations

import logging
import shutil
import struct
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ndk_bridge.build.targets import TargetArchitecture
from ndk_bridge.build.variants import BuildVariant
from ndk_bridge.errors import MissingArtifact

if TYPE_CHECKING:
    from ndk_bridge.build.invoker import BuildInvocation

log = logging.getLogger(__name__)

# ELF e_machine values for each ABI
ELF_MACHINES: dict[TargetArchitecture, int] = {
    TargetArchitecture.X86: 3,
    TargetArchitecture.ARMEABI_V7A: 40,
    TargetArchitecture.X86_64: 62,
    TargetArchitecture.ARM64_V8A: 183,
}


@dataclass
class PlacementReport:
    missing: list[tuple[str, TargetArchitecture]] = field(default_factory=list)
    # (library, abi dir it sits in, e_machine found)
    mismatched: list[tuple[str, TargetArchitecture, int]] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.missing and not self.mismatched


def abi_dir(jni_libs_root: Path, variant: str | BuildVariant, arch: TargetArchitecture) -> Path:
    return jni_libs_root / BuildVariant.parse(variant).value / arch.abi


def elf_machine(path: Path) -> int | None:
    """e_machine of an ELF file, or None if path is not ELF."""
    with path.open("rb") as f:
        header = f.read(20)
    if len(header) < 20 or header[:4] != b"\x7fELF":
        return None
    order = "<" if header[5] == 1 else ">"
    return struct.unpack(f"{order}H", header[18:20])[0]


def place_artifacts(
    invocation: BuildInvocation,
    libraries: Iterable[str],
    jni_libs_root: Path,
) -> dict[tuple[str, TargetArchitecture], Path]:
    """Copy each produced library to jni_libs_root/<variant>/<abi>/. Failed invocations raise CompilationFailure."""
    invocation.raise_for_failure()
    libs = list(libraries)
    placed: dict[tuple[str, TargetArchitecture], Path] = {}
    for arch in invocation.architectures:
        result = invocation.results[arch]
        dest_dir = abi_dir(jni_libs_root, invocation.variant, arch)
        if dest_dir.exists():
            shutil.rmtree(dest_dir)
        dest_dir.mkdir(parents=True)
        for lib in libs:
            src = result.artifacts.get(lib)
            if src is None or not src.is_file():
                log.warning("%s: %s was not produced by cargo", arch.abi, lib)
                continue
            dst = dest_dir / lib
            shutil.copy2(src, dst)
            placed[(lib, arch)] = dst
            log.debug("Copied %s -> %s", src, dst)
    return placed


def validate_placement(
    jni_libs_root: Path,
    variant: str | BuildVariant,
    architectures: Iterable[TargetArchitecture],
    libraries: Iterable[str],
) -> PlacementReport:
    """Check every (library, abi) pair exists, and that ELF libraries match their ABI directory."""
    report = PlacementReport()
    libs = list(libraries)
    for arch in architectures:
        d = abi_dir(jni_libs_root, variant, arch)
        for lib in libs:
            path = d / lib
            if not path.is_file():
                report.missing.append((lib, arch))
                continue
            machine = elf_machine(path)
            if machine is not None and machine != ELF_MACHINES[arch]:
                report.mismatched.append((lib, arch, machine))
    return report


def require_placement(
    jni_libs_root: Path,
    variant: str | BuildVariant,
    architectures: Iterable[TargetArchitecture],
    libraries: Iterable[str],
) -> PlacementReport:
    """validate_placement, raising MissingArtifact for every absent or wrong-architecture pair."""
    report = validate_placement(jni_libs_root, variant, architectures, libraries)
    if not report.passed:
        for lib, arch, machine in report.mismatched:
            log.error("%s/%s has ELF machine %d, expected %d", arch.abi, lib, machine, ELF_MACHINES[arch])
        raise MissingArtifact(report.missing + [(lib, arch) for lib, arch, _ in report.mismatched])
    return report
