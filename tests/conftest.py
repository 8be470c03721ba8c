"""Pytest fixtures for ndk_bridge tests: a crate dir, an NDK dir, and a fake cargo."""

from __future__ import annotations

import subprocess
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture
def ndk_dir(tmp_path: Path) -> Path:
    d = tmp_path / "ndk" / "22.1.7171670"
    d.mkdir(parents=True)
    (d / "source.properties").write_text("Pkg.Desc = Android NDK\nPkg.Revision = 22.1.7171670\n")
    return d


@pytest.fixture
def crate_dir(tmp_path: Path) -> Path:
    d = tmp_path / "native"
    d.mkdir()
    (d / "Cargo.toml").write_text('[package]\nname = "core"\n\n[lib]\ncrate-type = ["cdylib"]\n')
    return d


@pytest.fixture
def make_config(tmp_path: Path, ndk_dir: Path, crate_dir: Path) -> Callable[..., Any]:
    """Build a NativeBuildConfig rooted at tmp_path; keyword args override config keys."""
    from ndk_bridge.config import resolve_config

    def _make(**overrides: Any):
        data: dict[str, Any] = {
            "module": str(crate_dir),
            "targets": ["x86", "arm64", "arm"],
            "libraries": ["libcore.so"],
            "ndk_dir": str(ndk_dir),
        }
        data.update(overrides)
        return resolve_config(data, tmp_path)

    return _make


class FakeCargo:
    """Stand-in for subprocess.Popen running `cargo build`.

    Writes each library into <target-dir>/<triple>/<debug|release>/ unless the
    triple is in fail_triples (exit 101) or the library is listed in
    skip[triple]. Every call is recorded in `calls` and `events`.
    """

    def __init__(
        self,
        libraries: tuple[str, ...] = ("libcore.so",),
        fail_triples: set[str] | None = None,
        skip: dict[str, set[str]] | None = None,
    ) -> None:
        self.libraries = libraries
        self.fail_triples = fail_triples or set()
        self.skip = skip or {}
        self.calls: list[list[str]] = []
        self.envs: list[dict[str, str]] = []
        self.events: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, cmd: list[str], **kwargs: Any) -> _FakeProc:
        with self._lock:
            self.calls.append(list(cmd))
            self.envs.append(dict(kwargs.get("env") or {}))
        return _FakeProc(self, list(cmd))

    def triples(self) -> list[str]:
        return [c[c.index("--target") + 1] for c in self.calls]


class _FakeProc:
    pid = 4242

    def __init__(self, owner: FakeCargo, cmd: list[str]) -> None:
        self.owner = owner
        self.cmd = cmd
        self.returncode: int | None = None

    def communicate(self, timeout: float | None = None) -> tuple[str, str]:
        triple = self.cmd[self.cmd.index("--target") + 1]
        target_dir = Path(self.cmd[self.cmd.index("--target-dir") + 1])
        profile_dir = "release" if "--release" in self.cmd else "debug"
        if triple in self.owner.fail_triples:
            self.returncode = 101
            with self.owner._lock:
                self.owner.events.append(f"cargo-failed:{triple}")
            return "", f"   Compiling core v0.1.0\nerror: could not compile `core` for {triple}\n"
        out = target_dir / triple / profile_dir
        out.mkdir(parents=True, exist_ok=True)
        for lib in self.owner.libraries:
            if lib in self.owner.skip.get(triple, set()):
                continue
            (out / lib).write_bytes(b"not really elf: " + triple.encode())
        self.returncode = 0
        with self.owner._lock:
            self.owner.events.append(f"cargo:{triple}")
        return f"   Finished {profile_dir} target(s)\n", ""

    def terminate(self) -> None:
        self.returncode = -15

    def kill(self) -> None:
        self.returncode = -9


class HangingProc:
    """Popen stand-in that never finishes until terminated; sets `cancel` on first poll."""

    pid = 4343

    def __init__(self, cancel: threading.Event) -> None:
        self.cancel = cancel
        self.returncode: int | None = None
        self.terminated = False

    def communicate(self, timeout: float | None = None) -> tuple[str, str]:
        if self.terminated:
            return "", ""
        self.cancel.set()
        raise subprocess.TimeoutExpired("cargo", timeout or 0)

    def terminate(self) -> None:
        self.terminated = True
        self.returncode = -15

    def kill(self) -> None:
        self.returncode = -9


@pytest.fixture
def fake_cargo() -> Callable[..., FakeCargo]:
    return FakeCargo


@pytest.fixture
def hanging_proc() -> Callable[[threading.Event], HangingProc]:
    return HangingProc
