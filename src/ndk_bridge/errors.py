"""Error taxonomy for ndk_bridge. Every error is fatal to the current build.

Each error carries the stage it was raised in (resolution, configuration,
invocation, placement, wiring) so the caller can report where the build broke.
"""

from __future__ import annotations

from typing import Any


class NativeBuildError(Exception):
    """Base class. `stage` names the orchestration stage that failed."""

    stage = "build"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


class UnknownArchitecture(NativeBuildError):
    stage = "resolution"

    def __init__(self, name: str, message: str | None = None) -> None:
        super().__init__(message or f"Unknown architecture: {name!r}")
        self.name = name


class UnsupportedVariant(NativeBuildError):
    stage = "resolution"

    def __init__(self, variant: str, message: str | None = None) -> None:
        super().__init__(message or f"Unsupported build variant: {variant!r} (use debug or release)")
        self.variant = variant


class ConfigError(NativeBuildError):
    stage = "configuration"


class ToolchainNotFound(NativeBuildError):
    stage = "configuration"


class NdkNotFound(NativeBuildError):
    stage = "configuration"


class CompilationFailure(NativeBuildError):
    """Native compilation failed for `architecture`. `results` holds every failed CompilationResult."""

    stage = "invocation"

    def __init__(self, architecture: Any, diagnostic: str, results: list[Any] | None = None) -> None:
        abi = getattr(architecture, "abi", architecture)
        super().__init__(f"{abi}: {diagnostic}")
        self.architecture = architecture
        self.diagnostic = diagnostic
        self.results = results or []


class MissingArtifact(NativeBuildError):
    """Expected (library, architecture) pairs are absent. First pair exposed as descriptor/architecture."""

    stage = "placement"

    def __init__(self, missing: list[tuple[str, Any]]) -> None:
        pairs = ", ".join(f"{lib} ({getattr(arch, 'abi', arch)})" for lib, arch in missing)
        super().__init__(f"Missing native libraries: {pairs}")
        self.missing = list(missing)
        self.descriptor, self.architecture = self.missing[0]


class TaskCycleError(NativeBuildError):
    stage = "wiring"


class TaskFailed(NativeBuildError):
    """A task (or one of its prerequisites) failed; `cause` is the underlying error."""

    stage = "wiring"

    def __init__(self, task: str, cause: BaseException) -> None:
        super().__init__(f"Task {task} failed: {getattr(cause, 'message', cause)}")
        self.stage = getattr(cause, "stage", self.stage)
        self.task = task
        self.cause = cause
