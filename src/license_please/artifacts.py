from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, List

from .types_modules import LicenseFile


logger = logging.getLogger(__name__)


def required_artifacts(license_file: LicenseFile) -> List[str]:
    """Relative paths that must ship with ``license_file``'s module, in first-seen order."""

    rel_path = license_file.rel_path
    if not rel_path or not license_file.module.dir:
        return [rel_path] if rel_path else []

    artifacts: List[str] = []
    for license_type in license_file.license_types:
        for artifact in license_type.collect_artifacts(license_file.module.dir, rel_path):
            if artifact not in artifacts:
                artifacts.append(artifact)
    return artifacts


def _bundle_dir(destination: Path, license_file: LicenseFile) -> Path:
    module = license_file.module
    label = f"{module.path}@{module.version}" if module.version else module.path
    return destination / label


def bundle_artifacts(license_files: Iterable[LicenseFile], destination: Path) -> List[Path]:
    """Copy every required artifact into ``destination/<module>@<version>/``."""

    written: List[Path] = []
    seen: set[Path] = set()
    for lf in license_files:
        if not lf.module.dir:
            continue
        target_root = _bundle_dir(destination, lf)
        for artifact in required_artifacts(lf):
            target = target_root / artifact
            if target in seen:
                continue
            seen.add(target)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(Path(lf.module.dir) / artifact, target)
            written.append(target)

    logger.debug("bundled %d artifacts into %s", len(written), destination)
    return written
