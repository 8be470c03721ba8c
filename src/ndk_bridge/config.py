"""Native build configuration (the cargoNdk block of the app build).

Config YAML format (default file: ndk-bridge.yaml):
- module: crate directory containing Cargo.toml
- targets: ABI or short names (x86, arm, arm64, x86_64, armeabi-v7a, ...)
- libraries: shared library file names the packager embeds (libfoo.so)
- target_dir: cargo output root; each ABI builds under target_dir/<abi>
- jni_libs_dir: packager search root; libraries land in jni_libs_dir/<variant>/<abi>
- platform: Android API level used to pick the NDK clang wrapper
- ndk_dir / ndk_version: NDK location and expected revision (optional)
- cargo_bin: cargo executable (default: cargo on PATH)
- extra_cargo_env, extra_cargo_build_arguments, verbose, jobs
- build_types: {debug: <profile>, release: <profile>}

Relative paths are resolved against base_dir (default: config file parent).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ndk_bridge.build.targets import TargetArchitecture, resolve_targets
from ndk_bridge.build.variants import BuildVariant, map_variant
from ndk_bridge.errors import ConfigError
from ndk_bridge.helpers import load_yaml

DEFAULT_CONFIG_FILE = "ndk-bridge.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "module": ".",
    "targets": ["x86", "arm", "arm64"],
    "libraries": [],
    "target_dir": "build/rust-target",
    "jni_libs_dir": "build/rustJniLibs",
    "platform": 24,
    "ndk_dir": None,
    "ndk_version": None,
    "cargo_bin": None,
    "extra_cargo_env": {},
    "extra_cargo_build_arguments": [],
    "verbose": False,
    "jobs": None,
    "build_types": {"debug": "debug", "release": "release"},
}


@dataclass
class NativeBuildConfig:
    module: Path
    architectures: tuple[TargetArchitecture, ...]
    libraries: tuple[str, ...]
    target_dir: Path
    jni_libs_dir: Path
    platform: int = 24
    ndk_dir: Path | None = None
    ndk_version: str | None = None
    cargo_bin: str | None = None
    extra_cargo_env: dict[str, str] = field(default_factory=dict)
    extra_cargo_build_arguments: tuple[str, ...] = ()
    verbose: bool = False
    jobs: int | None = None
    build_types: dict[str, str] = field(default_factory=dict)

    @property
    def manifest_path(self) -> Path:
        return self.module / "Cargo.toml"


def validate_library_names(names: list[Any]) -> tuple[str, ...]:
    """Library names must be plain lib*.so file names and unique (each ABI dir holds one of each)."""
    if not names:
        raise ConfigError("No native libraries declared (libraries: [...])")
    out: list[str] = []
    for name in names:
        if not isinstance(name, str) or not name.endswith(".so"):
            raise ConfigError(f"Invalid native library name {name!r}: expected a .so file name")
        if "/" in name or "\\" in name or name == ".so":
            raise ConfigError(f"Invalid native library name {name!r}: must not contain a path")
        if name in out:
            raise ConfigError(f"Duplicate native library name {name!r}")
        out.append(name)
    return tuple(out)


def _resolve_path(base: Path, value: Any) -> Path:
    p = Path(str(value))
    return p if p.is_absolute() else (base / p).resolve()


def resolve_config(data: dict[str, Any] | None, base_dir: Path | None = None) -> NativeBuildConfig:
    """Fill defaults, resolve paths against base_dir (default: cwd), and validate. Raises ConfigError."""
    merged = dict(DEFAULT_CONFIG)
    unknown = sorted(set(data or {}) - set(DEFAULT_CONFIG))
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    merged.update(data or {})
    base = (Path(base_dir) if base_dir else Path.cwd()).resolve()

    targets = merged["targets"]
    if isinstance(targets, str):
        targets = [targets]
    if not isinstance(targets, list):
        raise ConfigError("targets must be a list of architecture names")
    libraries = merged["libraries"]
    if isinstance(libraries, str):
        libraries = [libraries]
    if not isinstance(libraries, list):
        raise ConfigError("libraries must be a list of shared library names")

    env = merged["extra_cargo_env"] or {}
    if not isinstance(env, dict):
        raise ConfigError("extra_cargo_env must be a mapping")
    extra_args = merged["extra_cargo_build_arguments"] or []
    if not isinstance(extra_args, list):
        raise ConfigError("extra_cargo_build_arguments must be a list")
    build_types = merged["build_types"] or {}
    if not isinstance(build_types, dict):
        raise ConfigError("build_types must be a mapping of variant -> native build type")
    # accept both `release: release` and the nested `release: {build_type: release}` form
    build_types = {
        str(k): str(v.get("build_type", k) if isinstance(v, dict) else v)
        for k, v in build_types.items()
    }

    try:
        platform = int(merged["platform"])
        jobs = int(merged["jobs"]) if merged["jobs"] is not None else None
    except (TypeError, ValueError) as e:
        raise ConfigError(f"platform and jobs must be integers: {e}") from e
    if jobs is not None and jobs < 1:
        raise ConfigError("jobs must be >= 1")

    architectures = resolve_targets(targets)
    for variant in BuildVariant:
        map_variant(variant, build_types)

    return NativeBuildConfig(
        module=_resolve_path(base, merged["module"]),
        architectures=architectures,
        libraries=validate_library_names(libraries),
        target_dir=_resolve_path(base, merged["target_dir"]),
        jni_libs_dir=_resolve_path(base, merged["jni_libs_dir"]),
        platform=platform,
        ndk_dir=_resolve_path(base, merged["ndk_dir"]) if merged["ndk_dir"] else None,
        ndk_version=str(merged["ndk_version"]) if merged["ndk_version"] else None,
        cargo_bin=str(merged["cargo_bin"]) if merged["cargo_bin"] else None,
        extra_cargo_env={str(k): str(v) for k, v in env.items()},
        extra_cargo_build_arguments=tuple(str(a) for a in extra_args),
        verbose=bool(merged["verbose"]),
        jobs=jobs,
        build_types=build_types,
    )


def load_config(config_path: Path, base_dir: Path | None = None) -> NativeBuildConfig:
    """Load config YAML. Paths resolve relative to base_dir, defaulting to the config file's directory."""
    if not config_path.is_file():
        raise ConfigError(f"Config not found: {config_path}")
    try:
        data = load_yaml(config_path)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: expected a mapping at top level")
    return resolve_config(data, base_dir or config_path.parent)
