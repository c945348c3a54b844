from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Tuple

from .types_licenses import NOTICE_FILE, LicenseType, unknown_license


@dataclass(frozen=True)
class Module:
    path: str
    version: str
    dir: str = ""
    ecosystem: str = "go"


@dataclass(frozen=True)
class License:
    name: str
    license_type: LicenseType


@dataclass(frozen=True)
class LicenseFile:
    path: str
    rel_path: str
    module: Module
    licenses: Tuple[License, ...] = field(default_factory=tuple)

    @property
    def is_notice(self) -> bool:
        stem = PurePath(self.rel_path or self.path).name.upper()
        return "NOTICE" in stem or "COPYRIGHT" in stem

    @property
    def license_types(self) -> list[LicenseType]:
        """Types used for display and artifact collection.

        Unclassified NOTICE/COPYRIGHT files fall back to the notice variant,
        anything else unclassified to an unnamed unknown license.
        """

        if self.licenses:
            return [lic.license_type for lic in self.licenses]
        if self.is_notice:
            return [NOTICE_FILE]
        return [unknown_license("")]
