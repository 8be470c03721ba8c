"""Shared helpers for ndk_bridge (yaml/properties loading, versions, text).

Used by config, build.ndk, build.invoker, and the CLI.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

# --- File ---


def load_yaml(p: Path) -> dict[str, Any]:
    """Load a YAML mapping from path. Empty file -> {}."""
    with p.open() as f:
        data = yaml.safe_load(f)
    return data or {}


def read_properties(p: Path) -> dict[str, str]:
    """Parse a Java-style key=value properties file (e.g. NDK source.properties)."""
    out: dict[str, str] = {}
    for line in p.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "!")) or "=" not in line:
            continue
        key, _, value = line.partition("=")
        out[key.strip()] = value.strip()
    return out


# --- Version ---


def parse_version(v: str) -> tuple[int, ...]:
    """Numeric dotted version (22.1.7171670 -> (22, 1, 7171670)). Raises ValueError on invalid format."""
    v = v.strip().lstrip("v")
    if not re.match(r"^\d+(\.\d+)*$", v):
        msg = "Invalid version format: " + str(v)
        raise ValueError(msg)
    return tuple(int(part) for part in v.split("."))


def compare_versions(v1: str, v2: str) -> int:
    """Positive if v1 > v2, negative if v1 < v2, zero if equal. Missing parts count as 0."""
    a, b = parse_version(v1), parse_version(v2)
    width = max(len(a), len(b))
    a = a + (0,) * (width - len(a))
    b = b + (0,) * (width - len(b))
    return (a > b) - (a < b)


# --- Text ---


def tail_lines(text: str, n: int = 20) -> str:
    """Last n non-empty lines of text (compiler diagnostics can be very long)."""
    lines = [line for line in text.splitlines() if line.strip()]
    return "\n".join(lines[-n:])


def env_key(triple: str) -> str:
    """Cargo env var form of a target triple: aarch64-linux-android -> AARCH64_LINUX_ANDROID."""
    return triple.upper().replace("-", "_")
