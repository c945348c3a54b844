from __future__ import annotations

"""Shared data structures for license aggregation.

This module re-exports the primary dataclasses. The definitions live in
domain-focused modules so the taxonomy, the pipeline records and the report
can evolve independently while keeping the public import paths stable.
"""

from .types_licenses import (
    LICENSE_OBLIGATIONS,
    NOTICE_CANDIDATES,
    NOTICE_FILE,
    LicenseKind,
    LicenseType,
    allowed_identifiers,
    known_licenses,
    resolve_license,
    unknown_license,
)
from .types_modules import License, LicenseFile, Module
from .types_report import Report

__all__ = [
    "License",
    "LicenseFile",
    "LicenseKind",
    "LicenseType",
    "LICENSE_OBLIGATIONS",
    "Module",
    "NOTICE_CANDIDATES",
    "NOTICE_FILE",
    "Report",
    "allowed_identifiers",
    "known_licenses",
    "resolve_license",
    "unknown_license",
]
