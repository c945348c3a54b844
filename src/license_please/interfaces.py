"""Narrow stage interfaces injected into the :class:`~license_please.aggregator.Aggregator`.

Each pipeline stage is a structural protocol so tests and alternative
ecosystems can substitute deterministic doubles without subclassing.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from .cancellation import Cancellation
from .types_modules import License, Module


class ModuleResolver(Protocol):
    def resolve(self, project_dir: str, cancellation: Optional[Cancellation] = None) -> List[Module]:
        """Return the project's dependency modules in a stable order."""


class LicenseFinder(Protocol):
    def find(self, module: Module, cancellation: Optional[Cancellation] = None) -> List[str]:
        """Return absolute paths of license-bearing files inside ``module``."""


class LicenseClassifier(Protocol):
    def classify(self, path: str, cancellation: Optional[Cancellation] = None) -> List[License]:
        """Return the licenses recognized in the file at ``path``."""
