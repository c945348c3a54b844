from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping


class LicenseKind(str, Enum):
    MIT = "MIT"
    APACHE_2_0 = "Apache-2.0"
    BSD_2_CLAUSE = "BSD-2-Clause"
    BSD_3_CLAUSE = "BSD-3-Clause"
    ISC = "ISC"
    MPL_2_0 = "MPL-2.0"
    UNLICENSE = "Unlicense"
    CC_BY_SA_4_0 = "CC-BY-SA-4.0"
    PYTHON_2_0 = "Python-2.0"
    UNKNOWN = "unknown"
    NOTICE = "(NOTICE)"


NOTICE_CANDIDATES = ("NOTICE", "NOTICE.txt", "NOTICE.md")

LICENSE_OBLIGATIONS = {
    LicenseKind.MIT: "Include the copyright notice and license text in all copies.",
    LicenseKind.APACHE_2_0: (
        "Include the copyright notice, license text and NOTICE file (if present); state changes if modified."
    ),
    LicenseKind.BSD_2_CLAUSE: "Include the copyright notice and license text in all copies.",
    LicenseKind.BSD_3_CLAUSE: (
        "Include the copyright notice and license text; do not use author names for endorsement."
    ),
    LicenseKind.ISC: "Include the copyright notice and license text in all copies.",
    LicenseKind.MPL_2_0: (
        "Include the license text; source of modified MPL files must be made available."
    ),
    LicenseKind.UNLICENSE: "None (public domain dedication); included for attribution.",
    LicenseKind.CC_BY_SA_4_0: "Attribution required; derivatives must be shared alike.",
    LicenseKind.PYTHON_2_0: "Include the copyright notice and license text.",
    LicenseKind.UNKNOWN: "Unrecognized license; review manually before distributing.",
    LicenseKind.NOTICE: "Attribution notice; redistribute alongside the license text.",
}


def _license_only(module_dir: Path, license_rel_path: str) -> list[str]:
    return [license_rel_path]


def _license_and_notice(module_dir: Path, license_rel_path: str) -> list[str]:
    artifacts = [license_rel_path]
    for candidate in NOTICE_CANDIDATES:
        if candidate == license_rel_path:
            continue
        if (module_dir / candidate).is_file():
            artifacts.append(candidate)
    return artifacts


ARTIFACT_COLLECTORS: Mapping[LicenseKind, Callable[[Path, str], list[str]]] = MappingProxyType(
    {
        LicenseKind.APACHE_2_0: _license_and_notice,
    }
)


@dataclass(frozen=True)
class LicenseType:
    """A license variant together with its compliance requirements.

    The set of kinds is closed; only ``LicenseKind.UNKNOWN`` carries a
    ``name`` so that unrecognized identifiers survive verbatim.
    """

    kind: LicenseKind
    name: str = ""

    def identify(self) -> str:
        if self.kind is LicenseKind.UNKNOWN:
            return self.name
        return self.kind.value

    @property
    def known(self) -> bool:
        return self.kind not in {LicenseKind.UNKNOWN, LicenseKind.NOTICE}

    @property
    def obligations(self) -> str:
        return LICENSE_OBLIGATIONS[self.kind]

    def collect_artifacts(self, module_dir: str | Path, license_rel_path: str) -> list[str]:
        """Return the files (relative to ``module_dir``) that must ship with this license.

        ``license_rel_path`` is always the first entry.
        """

        collector = ARTIFACT_COLLECTORS.get(self.kind, _license_only)
        return collector(Path(module_dir), license_rel_path)


NOTICE_FILE = LicenseType(LicenseKind.NOTICE)


def unknown_license(name: str) -> LicenseType:
    return LicenseType(LicenseKind.UNKNOWN, name)


@lru_cache(maxsize=None)
def known_licenses() -> Mapping[str, LicenseType]:
    """Return the process-wide, read-only taxonomy keyed by SPDX identifier."""

    return MappingProxyType(
        {
            kind.value: LicenseType(kind)
            for kind in LicenseKind
            if kind not in {LicenseKind.UNKNOWN, LicenseKind.NOTICE}
        }
    )


def resolve_license(identifier: str) -> LicenseType:
    known = known_licenses().get(identifier)
    if known is not None:
        return known
    return unknown_license(identifier)


def allowed_identifiers() -> frozenset[str]:
    return frozenset(known_licenses())
