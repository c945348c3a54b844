from __future__ import annotations

import logging
import os
import re
from typing import List, Optional

from .cancellation import Cancellation
from .errors import OperationCancelled, WalkError
from .types_modules import Module


logger = logging.getLogger(__name__)

LICENSE_FILE_PATTERN = re.compile(
    r"(?:(?:UN)?LICEN[SC]E|COPYING|NOTICE|COPYRIGHT)(?:\.[a-z]+)?",
    re.IGNORECASE,
)

VENDOR_DIR = "vendor"


def is_license_file(filename: str) -> bool:
    return LICENSE_FILE_PATTERN.fullmatch(filename) is not None


def _raise_walk_error(exc: OSError) -> None:
    raise exc


class RecursiveLicenseFinder:
    """Find license files by walking a module directory.

    ``vendor`` directories are pruned at any depth, including the module
    root itself. Entries are visited in sorted order, so the result is
    stable for a given directory snapshot.
    """

    def find(self, module: Module, cancellation: Optional[Cancellation] = None) -> List[str]:
        if not module.dir:
            return []
        if os.path.basename(os.path.normpath(module.dir)) == VENDOR_DIR:
            return []

        paths: List[str] = []
        try:
            for root, dirnames, filenames in os.walk(module.dir, onerror=_raise_walk_error):
                if cancellation:
                    cancellation.raise_if_cancelled()
                dirnames[:] = sorted(d for d in dirnames if d != VENDOR_DIR)
                for filename in sorted(filenames):
                    if is_license_file(filename):
                        paths.append(os.path.join(root, filename))
        except (OSError, OperationCancelled) as exc:
            raise WalkError(module.path, exc) from exc

        logger.debug("found %d license files in %s", len(paths), module.path)
        return paths
