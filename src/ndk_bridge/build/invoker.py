"""Run cargo once per Android ABI for one build variant.

Each ABI builds with its own --target-dir (target_dir/<abi>), so the
per-ABI cargo processes share nothing but the read-only crate sources and
can run concurrently. invoke() returns only after every ABI has finished.

Expected libraries are deleted from the profile directory before cargo
starts, so only libraries this run wrote are reported as produced. A marker
file naming the profile directory sits in target_dir/<abi> while that ABI
is compiling. If a run is killed, the marker survives and the next run
discards that profile's libraries before rebuilding.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ndk_bridge.build.ndk import find_ndk, toolchain_env
from ndk_bridge.build.targets import TargetArchitecture, resolve_targets
from ndk_bridge.build.variants import NATIVE_PROFILES, BuildVariant, NativeProfile, map_variant
from ndk_bridge.errors import CompilationFailure, ConfigError, ToolchainNotFound
from ndk_bridge.helpers import tail_lines

if TYPE_CHECKING:
    from ndk_bridge.config import NativeBuildConfig

log = logging.getLogger(__name__)

INCOMPLETE_MARKER = ".ndk-bridge-incomplete"
POLL_SECONDS = 0.2


@dataclass
class CompilationResult:
    architecture: TargetArchitecture
    ok: bool
    artifacts: dict[str, Path] = field(default_factory=dict)
    diagnostic: str = ""
    returncode: int | None = None
    duration: float = 0.0

    @classmethod
    def success(
        cls, architecture: TargetArchitecture, artifacts: dict[str, Path], duration: float = 0.0
    ) -> CompilationResult:
        return cls(architecture, True, artifacts=dict(artifacts), returncode=0, duration=duration)

    @classmethod
    def failure(
        cls,
        architecture: TargetArchitecture,
        diagnostic: str,
        returncode: int | None = None,
        duration: float = 0.0,
    ) -> CompilationResult:
        return cls(
            architecture, False, diagnostic=diagnostic, returncode=returncode, duration=duration
        )


@dataclass
class BuildInvocation:
    """One variant built for a set of ABIs. Re-created on every build, never persisted."""

    variant: BuildVariant
    profile: NativeProfile
    architectures: tuple[TargetArchitecture, ...]
    results: dict[TargetArchitecture, CompilationResult] = field(default_factory=dict)

    @property
    def pending(self) -> list[TargetArchitecture]:
        return [a for a in self.architectures if a not in self.results]

    @property
    def failures(self) -> list[CompilationResult]:
        done = [self.results[a] for a in self.architectures if a in self.results]
        return [r for r in done if not r.ok]

    @property
    def succeeded(self) -> bool:
        return not self.pending and not self.failures

    def raise_for_failure(self) -> None:
        """Raise CompilationFailure for the first failed ABI (declared order); all failures attached."""
        if self.pending:
            arch = self.pending[0]
            raise CompilationFailure(arch, "compilation did not complete", self.failures)
        failures = self.failures
        if failures:
            first = failures[0]
            raise CompilationFailure(first.architecture, first.diagnostic, failures)


class NativeBuildInvoker:
    """Builds config.libraries for every configured ABI with the profile mapped from the variant."""

    def __init__(
        self,
        config: NativeBuildConfig,
        cargo_bin: str | None = None,
        env: Mapping[str, str] | None = None,
        max_workers: int | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self.cargo_bin = cargo_bin or config.cargo_bin or "cargo"
        self.env_overrides = dict(env or {})
        self.max_workers = max_workers or config.jobs
        self.environ = dict(os.environ if environ is None else environ)

    # --- Layout ---

    def arch_target_dir(self, arch: TargetArchitecture) -> Path:
        return self.config.target_dir / arch.abi

    def artifact_dir(self, arch: TargetArchitecture, profile: NativeProfile) -> Path:
        """Where cargo leaves the .so files: target_dir/<abi>/<triple>/<debug|release>."""
        return self.arch_target_dir(arch) / arch.target_triple / profile.output_dir

    # --- Command ---

    def build_command(
        self, cargo: str, arch: TargetArchitecture, profile: NativeProfile
    ) -> list[str]:
        cmd = [
            cargo,
            "build",
            "--lib",
            "--manifest-path",
            str(self.config.manifest_path),
            "--target",
            arch.target_triple,
            "--target-dir",
            str(self.arch_target_dir(arch)),
            *profile.cargo_args,
        ]
        if self.config.verbose:
            cmd.append("--verbose")
        cmd.extend(self.config.extra_cargo_build_arguments)
        return cmd

    def build_env(self, arch: TargetArchitecture, ndk_dir: Path) -> dict[str, str]:
        env = dict(self.environ)
        env.update(toolchain_env(ndk_dir, arch, self.config.platform))
        env.update(self.config.extra_cargo_env)
        env.update(self.env_overrides)
        return env

    def _resolve_cargo(self) -> str:
        cargo = shutil.which(self.cargo_bin, path=self.environ.get("PATH"))
        if cargo is None:
            raise ToolchainNotFound(
                f"cargo not found: {self.cargo_bin} (install Rust or set cargo_bin)"
            )
        return cargo

    # --- Invoke ---

    def invoke(
        self,
        variant: str | BuildVariant,
        cancel_event: threading.Event | None = None,
    ) -> BuildInvocation:
        """Compile every ABI for variant. Resolution/toolchain errors raise before any compiler runs."""
        v = BuildVariant.parse(variant)
        profile = map_variant(v, self.config.build_types)
        archs = resolve_targets(self.config.architectures)
        if not self.config.manifest_path.is_file():
            raise ConfigError(f"{self.config.manifest_path} not found")
        cargo = self._resolve_cargo()
        ndk_dir = find_ndk(self.config.ndk_dir, self.config.ndk_version, self.environ)
        envs = {a: self.build_env(a, ndk_dir) for a in archs}

        invocation = BuildInvocation(v, profile, archs)
        cancel = cancel_event or threading.Event()
        workers = min(self.max_workers or len(archs), len(archs))
        log.info(
            "Building %s (%s profile) for %s with %d worker(s)",
            v, profile.name, ", ".join(a.abi for a in archs), workers,
        )
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ndk-build") as pool:
            futures = {
                a: pool.submit(self._compile_one, cargo, a, profile, envs[a], cancel) for a in archs
            }
            try:
                for arch, fut in futures.items():
                    invocation.results[arch] = fut.result()
            except BaseException:
                cancel.set()
                raise
        return invocation

    def _clear_outputs(self, arch: TargetArchitecture, output_dir: str) -> None:
        out = self.arch_target_dir(arch) / arch.target_triple / output_dir
        for lib in self.config.libraries:
            (out / lib).unlink(missing_ok=True)

    def _discard_stale(self, arch: TargetArchitecture) -> None:
        """Clear the outputs of an interrupted run, for the profile recorded in its marker."""
        marker = self.arch_target_dir(arch) / INCOMPLETE_MARKER
        if not marker.is_file():
            return
        recorded = marker.read_text().strip()
        known = {p.output_dir for p in NATIVE_PROFILES.values()}
        stale = [recorded] if recorded in known else sorted(known)
        log.warning(
            "%s: previous build was interrupted; discarding its %s libraries",
            arch.abi, "/".join(stale),
        )
        for output_dir in stale:
            self._clear_outputs(arch, output_dir)

    def _compile_one(
        self,
        cargo: str,
        arch: TargetArchitecture,
        profile: NativeProfile,
        env: dict[str, str],
        cancel: threading.Event,
    ) -> CompilationResult:
        if cancel.is_set():
            return CompilationResult.failure(arch, "cancelled")
        arch_dir = self.arch_target_dir(arch)
        marker = arch_dir / INCOMPLETE_MARKER
        try:
            self._discard_stale(arch)
            arch_dir.mkdir(parents=True, exist_ok=True)
            # only libraries written by this run count as produced
            self._clear_outputs(arch, profile.output_dir)
            marker.write_text(f"{profile.output_dir}\n")
        except OSError as e:
            log.error("%s: cannot prepare %s: %s", arch.abi, arch_dir, e)
            return CompilationResult.failure(arch, f"cannot prepare {arch_dir}: {e}")

        cmd = self.build_command(cargo, arch, profile)
        log.debug("%s: %s", arch.abi, " ".join(cmd))
        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(self.config.module),
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            return CompilationResult.failure(arch, f"cannot run {cargo}: {e}")

        stdout, stderr = "", ""
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=POLL_SECONDS)
                break
            except subprocess.TimeoutExpired:
                if cancel.is_set():
                    log.warning("%s: cancelling cargo (pid %s)", arch.abi, proc.pid)
                    proc.terminate()
                    try:
                        proc.communicate(timeout=10)
                    except subprocess.TimeoutExpired:
                        proc.kill()
                        proc.communicate()
                    return CompilationResult.failure(
                        arch, "cancelled", proc.returncode, time.monotonic() - start
                    )
        duration = time.monotonic() - start

        if self.config.verbose:
            for line in (stdout or "").splitlines() + (stderr or "").splitlines():
                log.info("[%s] %s", arch.abi, line)

        if proc.returncode != 0:
            diagnostic = tail_lines(stderr or "") or f"cargo exited with status {proc.returncode}"
            log.error("%s: cargo failed with status %s", arch.abi, proc.returncode)
            return CompilationResult.failure(arch, diagnostic, proc.returncode, duration)

        out = self.artifact_dir(arch, profile)
        artifacts = {lib: out / lib for lib in self.config.libraries if (out / lib).is_file()}
        marker.unlink(missing_ok=True)
        log.info(
            "%s: built in %.1fs (%d/%d libraries)",
            arch.abi, duration, len(artifacts), len(self.config.libraries),
        )
        return CompilationResult.success(arch, artifacts, duration)
