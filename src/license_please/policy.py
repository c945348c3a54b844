from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import AbstractSet, Iterable, List, Optional

import yaml

from .errors import PolicyError, PolicyViolation
from .types_licenses import allowed_identifiers
from .types_modules import LicenseFile
from .types_report import Report


@dataclass(frozen=True)
class Violation:
    module: str
    version: str
    license: str
    rel_path: str

    def as_tuple(self) -> tuple[str, str, str, str]:
        return (self.module, self.version, self.license, self.rel_path)

    def __str__(self) -> str:
        return f"{self.module}@{self.version}: {self.license} ({self.rel_path})"


@dataclass
class PolicyException:
    module: str
    license: str
    reason: str = ""
    approved_by: Optional[str] = None
    expires: Optional[datetime] = None

    def covers(self, violation: Violation) -> bool:
        return self.module == violation.module and self.license == violation.license

    def expired(self, now: datetime) -> bool:
        return bool(self.expires and self.expires < now)

    def as_dict(self) -> dict:
        return {
            "module": self.module,
            "license": self.license,
            "reason": self.reason,
            "approved_by": self.approved_by,
            "expires": self.expires.isoformat() if self.expires else None,
        }


@dataclass
class Policy:
    allowed: Optional[List[str]] = None
    exceptions: List[PolicyException] = field(default_factory=list)

    def allowed_set(self) -> AbstractSet[str]:
        if self.allowed is None:
            return allowed_identifiers()
        return frozenset(self.allowed)


@dataclass
class PolicyEvaluation:
    passed: bool
    violations: List[Violation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    used_exceptions: List[PolicyException] = field(default_factory=list)
    expired_exceptions: List[PolicyException] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "passed": self.passed,
            "violations": [
                {
                    "module": v.module,
                    "version": v.version,
                    "license": v.license,
                    "rel_path": v.rel_path,
                }
                for v in self.violations
            ],
            "warnings": self.warnings,
            "used_exceptions": [exc.as_dict() for exc in self.used_exceptions],
            "expired_exceptions": [exc.as_dict() for exc in self.expired_exceptions],
        }


def check_policy(license_files: Iterable[LicenseFile], allowed: AbstractSet[str]) -> List[Violation]:
    """Return every disallowed license occurrence; an empty list means the gate passes.

    Unclassified licenses (empty name) need manual review but are not
    violations.
    """

    violations: List[Violation] = []
    for lf in license_files:
        for lic in lf.licenses:
            if lic.name and lic.name not in allowed:
                violations.append(
                    Violation(
                        module=lf.module.path,
                        version=lf.module.version,
                        license=lic.name,
                        rel_path=lf.rel_path,
                    )
                )
    return violations


def enforce_policy(license_files: Iterable[LicenseFile], allowed: Optional[AbstractSet[str]] = None) -> None:
    violations = check_policy(license_files, allowed if allowed is not None else allowed_identifiers())
    if violations:
        raise PolicyViolation(violations)


def _parse_expiry(raw: object, path: Path) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    try:
        parsed = datetime.fromisoformat(str(raw))
    except ValueError as exc:
        raise PolicyError(path, f"invalid expires value {raw!r}") from exc
    # Compare in naive local time.
    return parsed.astimezone().replace(tzinfo=None) if parsed.tzinfo else parsed


def load_policy(path: Path) -> Policy:
    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except (yaml.YAMLError, ValueError) as exc:
        # PyYAML's timestamp constructor raises ValueError for dates like 2020-13-45.
        raise PolicyError(path, exc) from exc
    if not isinstance(raw, dict):
        raise PolicyError(path, "expected a mapping at the top level")

    exceptions: list[PolicyException] = []
    for entry in raw.get("exceptions", []) or []:
        if not isinstance(entry, dict):
            continue
        exceptions.append(
            PolicyException(
                module=str(entry.get("module")),
                license=str(entry.get("license")),
                reason=str(entry.get("reason", "")),
                approved_by=entry.get("approved_by"),
                expires=_parse_expiry(entry.get("expires"), path),
            )
        )

    allowed = raw["allowed"] if "allowed" in raw else raw.get("allowlist")
    return Policy(
        allowed=[str(name) for name in allowed] if allowed is not None else None,
        exceptions=exceptions,
    )


def evaluate_policy(
    license_files: Iterable[LicenseFile], policy: Policy, now: Optional[datetime] = None
) -> PolicyEvaluation:
    now = now or datetime.now()
    violations: list[Violation] = []
    used_exceptions: list[PolicyException] = []
    expired: list[PolicyException] = []
    warnings: list[str] = []

    for violation in check_policy(license_files, policy.allowed_set()):
        matched = next(
            (exc for exc in policy.exceptions if exc.covers(violation) and not exc.expired(now)),
            None,
        )
        if matched:
            if matched not in used_exceptions:
                used_exceptions.append(matched)
            continue
        violations.append(violation)

    for exc in policy.exceptions:
        if exc.expired(now):
            expired.append(exc)
            warnings.append(
                f"Exception for {exc.module} ({exc.license}) expired on {exc.expires.isoformat()}"
            )

    return PolicyEvaluation(
        passed=not violations,
        violations=violations,
        warnings=warnings,
        used_exceptions=used_exceptions,
        expired_exceptions=expired,
    )


def write_github_check(path: Path, evaluation: PolicyEvaluation, report: Report) -> None:
    payload = {
        "conclusion": "success" if evaluation.passed else "failure",
        "summary": "; ".join(str(v) for v in evaluation.violations)
        if evaluation.violations
        else "All license policy checks passed.",
        "details": evaluation.as_dict(),
        "license_files": len(report.license_files),
        "modules": len({lf.module.path for lf in report.license_files}),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2))
