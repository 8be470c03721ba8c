"""Android ABIs and their Rust target triples.

The packager names architectures by ABI (arm64-v8a, armeabi-v7a, x86, x86_64);
cargo-ndk style configs use short names (arm64, arm, x86, x86_64). Both resolve
to the same TargetArchitecture. The NDK clang prefix differs from the Rust
triple only for 32-bit ARM (armv7a- vs armv7-).
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from ndk_bridge.errors import UnknownArchitecture


class TargetArchitecture(Enum):
    # (abi, short name, rust triple, ndk clang prefix)
    X86 = ("x86", "x86", "i686-linux-android", "i686-linux-android")
    X86_64 = ("x86_64", "x86_64", "x86_64-linux-android", "x86_64-linux-android")
    ARMEABI_V7A = ("armeabi-v7a", "arm", "armv7-linux-androideabi", "armv7a-linux-androideabi")
    ARM64_V8A = ("arm64-v8a", "arm64", "aarch64-linux-android", "aarch64-linux-android")

    @property
    def abi(self) -> str:
        return self.value[0]

    @property
    def short_name(self) -> str:
        return self.value[1]

    @property
    def target_triple(self) -> str:
        return self.value[2]

    @property
    def clang_prefix(self) -> str:
        return self.value[3]

    @classmethod
    def parse(cls, name: str | TargetArchitecture) -> TargetArchitecture:
        """Look up by ABI or short name. Raises UnknownArchitecture."""
        if isinstance(name, cls):
            return name
        arch = ARCH_TARGETS.get(str(name).strip())
        if arch is None:
            raise UnknownArchitecture(
                str(name),
                f"Unknown architecture: {name!r}. Use one of: {', '.join(sorted(ARCH_TARGETS))}",
            )
        return arch

    def __str__(self) -> str:
        return self.abi


ARCH_TARGETS: dict[str, TargetArchitecture] = {}
for _arch in TargetArchitecture:
    ARCH_TARGETS[_arch.abi] = _arch
    ARCH_TARGETS[_arch.short_name] = _arch
del _arch


def resolve_targets(
    declared: Iterable[str | TargetArchitecture],
) -> tuple[TargetArchitecture, ...]:
    """Map declared architectures to compiler targets, duplicate-free, first-seen order.

    Every name is checked before anything is returned, so an unmapped
    entry fails the whole resolution and no compilation starts.
    """
    names = list(declared)
    if not names:
        raise UnknownArchitecture("", "No target architectures declared")
    out: list[TargetArchitecture] = []
    for name in names:
        arch = TargetArchitecture.parse(name)
        if arch not in out:
            out.append(arch)
    return tuple(out)
