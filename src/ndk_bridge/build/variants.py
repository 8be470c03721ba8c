"""Packager build variant -> cargo profile.

The table is closed: only debug and release exist on either side. A
packager variant such as "staging" is rejected instead of silently
building with some default profile.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from ndk_bridge.errors import UnsupportedVariant


class BuildVariant(Enum):
    DEBUG = "debug"
    RELEASE = "release"

    @classmethod
    def parse(cls, name: str | BuildVariant) -> BuildVariant:
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise UnsupportedVariant(str(name)) from None

    @property
    def task_suffix(self) -> str:
        """Capitalized name used in task names (buildCargoNdkRelease, javaPreCompileRelease)."""
        return self.value.capitalize()

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NativeProfile:
    name: str
    output_dir: str
    cargo_args: tuple[str, ...]
    opt_level: int
    debug_symbols: bool


NATIVE_PROFILES: dict[str, NativeProfile] = {
    "debug": NativeProfile("dev", "debug", (), opt_level=0, debug_symbols=True),
    "release": NativeProfile("release", "release", ("--release",), opt_level=3, debug_symbols=False),
}

# Default packager variant -> native profile key.
VARIANT_PROFILES: dict[BuildVariant, str] = {
    BuildVariant.DEBUG: "debug",
    BuildVariant.RELEASE: "release",
}


def map_variant(
    variant: str | BuildVariant,
    overrides: Mapping[str, str] | None = None,
) -> NativeProfile:
    """Return the native profile for variant. overrides: {variant: profile key} from config build_types."""
    v = BuildVariant.parse(variant)
    table = dict(VARIANT_PROFILES)
    for key, profile in (overrides or {}).items():
        target = BuildVariant.parse(key)
        if profile not in NATIVE_PROFILES:
            raise UnsupportedVariant(
                str(profile),
                f"build_types.{key}: unknown native build type {profile!r} (use debug or release)",
            )
        table[target] = profile
    return NATIVE_PROFILES[table[v]]
