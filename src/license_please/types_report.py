from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from .types_modules import LicenseFile

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .policy import PolicyEvaluation


@dataclass
class Report:
    license_files: list[LicenseFile]
    generated_at: datetime
    project_dir: str = "."
    policy_evaluation: Optional["PolicyEvaluation"] = None

    @property
    def sorted_license_files(self) -> list[LicenseFile]:
        """License files ordered for presentation: module path, then relative path."""

        return sorted(self.license_files, key=lambda lf: (lf.module.path, lf.rel_path))

    @property
    def modules(self) -> list[str]:
        return sorted({lf.module.path for lf in self.license_files})

    @property
    def license_breakdown(self) -> dict[str, int]:
        """Count of license files per displayed license identifier."""

        buckets: dict[str, int] = {}
        for lf in self.license_files:
            for license_type in lf.license_types:
                key = license_type.identify() or "Unknown"
                buckets[key] = buckets.get(key, 0) + 1
        return dict(sorted(buckets.items()))
