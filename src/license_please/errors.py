from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .policy import Violation


class LicensePleaseError(Exception):
    """Base class for every error raised by the license pipeline."""


class OperationCancelled(LicensePleaseError):
    """Raised when a run is cancelled or its deadline passes."""


class ResolutionError(LicensePleaseError):
    """Raised when the dependency modules of a project cannot be listed."""

    def __init__(self, project_dir: str | Path, reason: object) -> None:
        super().__init__(f"resolving modules in {project_dir}: {reason}")
        self.project_dir = str(project_dir)
        self.reason = reason


class WalkError(LicensePleaseError):
    """Raised when a module directory cannot be traversed (including cancellation)."""

    def __init__(self, module_path: str, reason: BaseException) -> None:
        super().__init__(f"finding licenses in {module_path}: {reason}")
        self.module_path = module_path
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return isinstance(self.reason, OperationCancelled)


class ReadError(LicensePleaseError):
    """Raised when a located license file cannot be read."""

    def __init__(self, path: str | Path, reason: BaseException) -> None:
        super().__init__(f"reading license file {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class ClassificationError(LicensePleaseError):
    """Raised when the license matching engine fails on a file."""

    def __init__(self, path: str | Path, reason: object) -> None:
        super().__init__(f"classifying {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class PolicyError(LicensePleaseError):
    """Raised when a policy file cannot be parsed."""

    def __init__(self, path: str | Path, reason: object) -> None:
        super().__init__(f"loading policy {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class PolicyViolation(LicensePleaseError):
    """Raised after aggregation when disallowed licenses were found."""

    def __init__(self, violations: Iterable["Violation"]) -> None:
        self.violations = list(violations)
        details = "\n  ".join(str(v) for v in self.violations)
        super().__init__(
            f"found {len(self.violations)} dependencies with disallowed licenses:\n  {details}"
        )
