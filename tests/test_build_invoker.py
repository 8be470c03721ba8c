"""Tests for ndk_bridge.build.invoker (per-ABI cargo invocation)."""

import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from ndk_bridge.build.invoker import INCOMPLETE_MARKER, NativeBuildInvoker
from ndk_bridge.build.targets import TargetArchitecture
from ndk_bridge.build.variants import BuildVariant
from ndk_bridge.errors import (
    CompilationFailure,
    ConfigError,
    ToolchainNotFound,
    UnknownArchitecture,
    UnsupportedVariant,
)

WHICH = "ndk_bridge.build.invoker.shutil.which"
POPEN = "ndk_bridge.build.invoker.subprocess.Popen"


def _invoker(config, **kwargs) -> NativeBuildInvoker:
    return NativeBuildInvoker(config, environ={"PATH": "/usr/bin"}, **kwargs)


class TestInvoke:
    def test_release_three_abis_all_succeed(self, make_config, fake_cargo) -> None:
        cfg = make_config()
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            inv = _invoker(cfg).invoke("release")
        assert inv.variant is BuildVariant.RELEASE
        assert inv.succeeded
        assert len(inv.results) == 3
        assert all(r.ok for r in inv.results.values())
        assert sorted(cargo.triples()) == [
            "aarch64-linux-android",
            "armv7-linux-androideabi",
            "i686-linux-android",
        ]
        arm64 = inv.results[TargetArchitecture.ARM64_V8A]
        expected = cfg.target_dir / "arm64-v8a" / "aarch64-linux-android" / "release" / "libcore.so"
        assert arm64.artifacts == {"libcore.so": expected}

    def test_command_shape(self, make_config, fake_cargo) -> None:
        cfg = make_config(
            targets=["arm64"],
            verbose=True,
            extra_cargo_build_arguments=["--features", "android"],
        )
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            _invoker(cfg).invoke("release")
        (cmd,) = cargo.calls
        assert cmd[:3] == ["/usr/bin/cargo", "build", "--lib"]
        assert cmd[cmd.index("--manifest-path") + 1] == str(cfg.manifest_path)
        assert cmd[cmd.index("--target-dir") + 1] == str(cfg.target_dir / "arm64-v8a")
        assert "--release" in cmd
        assert "--verbose" in cmd
        assert cmd[-2:] == ["--features", "android"]

    def test_debug_has_no_release_flag(self, make_config, fake_cargo) -> None:
        cfg = make_config(targets=["x86"])
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            inv = _invoker(cfg).invoke("debug")
        assert "--release" not in cargo.calls[0]
        path = inv.results[TargetArchitecture.X86].artifacts["libcore.so"]
        assert path.parent.name == "debug"

    def test_env_merges_ndk_config_and_overrides(self, make_config, fake_cargo, ndk_dir: Path) -> None:
        cfg = make_config(targets=["arm64"], extra_cargo_env={"RUSTFLAGS": "-g", "X": "config"})
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            _invoker(cfg, env={"X": "caller"}).invoke("release")
        (env,) = cargo.envs
        assert env["ANDROID_NDK_HOME"] == str(ndk_dir)
        assert "CARGO_TARGET_AARCH64_LINUX_ANDROID_LINKER" in env
        assert env["RUSTFLAGS"] == "-g"
        assert env["X"] == "caller"
        assert env["PATH"] == "/usr/bin"

    def test_one_abi_fails(self, make_config, fake_cargo) -> None:
        cfg = make_config()
        cargo = fake_cargo(fail_triples={"armv7-linux-androideabi"})
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            inv = _invoker(cfg).invoke("release")
        # every ABI still ran to completion
        assert len(cargo.calls) == 3
        assert not inv.succeeded
        (failed,) = inv.failures
        assert failed.architecture is TargetArchitecture.ARMEABI_V7A
        assert failed.returncode == 101
        assert "could not compile" in failed.diagnostic
        with pytest.raises(CompilationFailure) as exc_info:
            inv.raise_for_failure()
        assert exc_info.value.architecture is TargetArchitecture.ARMEABI_V7A
        assert "armeabi-v7a" in str(exc_info.value)
        assert exc_info.value.stage == "invocation"

    def test_missing_library_not_recorded(self, make_config, fake_cargo) -> None:
        cfg = make_config(libraries=["libcore.so", "libextra.so"], targets=["x86"])
        cargo = fake_cargo(libraries=("libcore.so",))
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            inv = _invoker(cfg).invoke("release")
        assert inv.succeeded
        assert set(inv.results[TargetArchitecture.X86].artifacts) == {"libcore.so"}

    def test_popen_oserror_is_failure(self, make_config) -> None:
        cfg = make_config(targets=["x86"])
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, side_effect=OSError("exec format error")):
            inv = _invoker(cfg).invoke("debug")
        assert not inv.succeeded
        assert "exec format error" in inv.failures[0].diagnostic

    def test_rerun_is_idempotent(self, make_config, fake_cargo) -> None:
        cfg = make_config()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, fake_cargo()):
            first = _invoker(cfg).invoke("release")
            second = _invoker(cfg).invoke("release")
        assert first.succeeded and second.succeeded
        assert first.results[TargetArchitecture.X86].artifacts == second.results[TargetArchitecture.X86].artifacts


class TestFailFast:
    def test_unsupported_variant_before_any_compile(self, make_config, fake_cargo) -> None:
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            with pytest.raises(UnsupportedVariant):
                _invoker(make_config()).invoke("staging")
        assert cargo.calls == []

    def test_unknown_architecture_before_any_compile(self, make_config, fake_cargo) -> None:
        cfg = make_config()
        cfg.architectures = (*cfg.architectures, "mips")
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            with pytest.raises(UnknownArchitecture):
                _invoker(cfg).invoke("release")
        assert cargo.calls == []

    def test_cargo_missing(self, make_config, fake_cargo) -> None:
        cargo = fake_cargo()
        with patch(WHICH, return_value=None), patch(POPEN, cargo):
            with pytest.raises(ToolchainNotFound):
                _invoker(make_config()).invoke("release")
        assert cargo.calls == []

    def test_manifest_missing(self, make_config, fake_cargo, crate_dir: Path) -> None:
        (crate_dir / "Cargo.toml").unlink()
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            with pytest.raises(ConfigError):
                _invoker(make_config()).invoke("release")
        assert cargo.calls == []


class TestCancellation:
    def test_cancel_before_start_runs_nothing(self, make_config, fake_cargo) -> None:
        cancel = threading.Event()
        cancel.set()
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            inv = _invoker(make_config()).invoke("release", cancel_event=cancel)
        assert cargo.calls == []
        assert not inv.succeeded
        assert {r.diagnostic for r in inv.failures} == {"cancelled"}

    def test_running_cargo_is_terminated(self, make_config, hanging_proc) -> None:
        cfg = make_config(targets=["x86"])
        cancel = threading.Event()
        proc = hanging_proc(cancel)
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, return_value=proc):
            inv = _invoker(cfg).invoke("release", cancel_event=cancel)
        assert proc.terminated
        assert inv.failures[0].diagnostic == "cancelled"
        # marker left behind so the next run distrusts this ABI's output
        assert (cfg.target_dir / "x86" / INCOMPLETE_MARKER).exists()

    def test_stale_marker_discards_old_library(self, make_config, fake_cargo) -> None:
        cfg = make_config(targets=["x86"])
        out = cfg.target_dir / "x86" / "i686-linux-android" / "release"
        out.mkdir(parents=True)
        (out / "libcore.so").write_bytes(b"half written")
        (cfg.target_dir / "x86" / INCOMPLETE_MARKER).write_text("release\n")
        # this run "forgets" to produce libcore.so, so a surviving stale copy would be trusted
        cargo = fake_cargo(skip={"i686-linux-android": {"libcore.so"}})
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            inv = _invoker(cfg).invoke("release")
        assert inv.succeeded
        assert inv.results[TargetArchitecture.X86].artifacts == {}
        assert not (out / "libcore.so").exists()
        assert not (cfg.target_dir / "x86" / INCOMPLETE_MARKER).exists()

    def test_marker_from_other_profile_clears_that_profile(self, make_config, fake_cargo) -> None:
        cfg = make_config(targets=["x86"])
        debug_out = cfg.target_dir / "x86" / "i686-linux-android" / "debug"
        debug_out.mkdir(parents=True)
        (debug_out / "libcore.so").write_bytes(b"half written")
        (cfg.target_dir / "x86" / INCOMPLETE_MARKER).write_text("debug\n")
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, fake_cargo()):
            inv = _invoker(cfg).invoke("release")
        assert inv.succeeded
        assert not (debug_out / "libcore.so").exists()
        assert not (cfg.target_dir / "x86" / INCOMPLETE_MARKER).exists()


class TestFreshOutputs:
    def test_library_from_earlier_run_not_reported(self, make_config, fake_cargo) -> None:
        cfg = make_config(targets=["x86"])
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, fake_cargo()):
            first = _invoker(cfg).invoke("release")
        assert set(first.results[TargetArchitecture.X86].artifacts) == {"libcore.so"}
        cargo = fake_cargo(skip={"i686-linux-android": {"libcore.so"}})
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            second = _invoker(cfg).invoke("release")
        assert second.results[TargetArchitecture.X86].artifacts == {}
        out = cfg.target_dir / "x86" / "i686-linux-android" / "release"
        assert not (out / "libcore.so").exists()

    def test_unpreparable_target_dir_is_abi_failure(self, make_config, fake_cargo) -> None:
        cfg = make_config()
        cfg.target_dir.mkdir(parents=True)
        (cfg.target_dir / "x86").write_text("not a directory")
        cargo = fake_cargo()
        with patch(WHICH, return_value="/usr/bin/cargo"), patch(POPEN, cargo):
            inv = _invoker(cfg).invoke("release")
        (failed,) = inv.failures
        assert failed.architecture is TargetArchitecture.X86
        assert "cannot prepare" in failed.diagnostic
        # the other ABIs still built
        assert sorted(cargo.triples()) == ["aarch64-linux-android", "armv7-linux-androideabi"]
        with pytest.raises(CompilationFailure) as exc_info:
            inv.raise_for_failure()
        assert exc_info.value.architecture is TargetArchitecture.X86
