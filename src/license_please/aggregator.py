from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from .cancellation import Cancellation
from .errors import (
    ClassificationError,
    LicensePleaseError,
    OperationCancelled,
    ReadError,
    ResolutionError,
    WalkError,
)
from .interfaces import LicenseClassifier, LicenseFinder, ModuleResolver
from .types_modules import LicenseFile, Module


logger = logging.getLogger(__name__)


def relative_license_path(module: Module, path: str) -> str:
    if not module.dir:
        return ""
    try:
        return os.path.relpath(path, module.dir)
    except ValueError:
        return ""


@dataclass
class Aggregator:
    """Run resolver -> finder -> classifier over every module of a project.

    Output order is resolver order, then finder order within each module.
    Nothing is de-duplicated: a license file reachable from several modules
    produces one entry per module. With ``max_workers > 1`` modules are
    processed concurrently but results and errors keep the canonical order.
    """

    resolver: ModuleResolver
    finder: LicenseFinder
    classifier: LicenseClassifier
    max_workers: int = 1

    def aggregate(self, project_dir: str, cancellation: Optional[Cancellation] = None) -> List[LicenseFile]:
        cancellation = cancellation or Cancellation()
        try:
            modules = self.resolver.resolve(project_dir, cancellation)
        except LicensePleaseError:
            raise
        except Exception as exc:
            raise ResolutionError(project_dir, exc) from exc
        logger.debug("resolved %d modules for %s", len(modules), project_dir)

        if self.max_workers > 1 and len(modules) > 1:
            return self._aggregate_concurrently(modules, cancellation)

        result: List[LicenseFile] = []
        for module in modules:
            result.extend(self._process_module(module, cancellation))
        return result

    def _aggregate_concurrently(self, modules: List[Module], cancellation: Cancellation) -> List[LicenseFile]:
        scoped = cancellation.child()
        result: List[LicenseFile] = []
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="license-please")
        try:
            futures: List[Future[List[LicenseFile]]] = [
                executor.submit(self._process_module, module, scoped) for module in modules
            ]
            for future in futures:
                try:
                    result.extend(future.result())
                except BaseException:
                    scoped.cancel()
                    raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
        return result

    def _process_module(self, module: Module, cancellation: Cancellation) -> List[LicenseFile]:
        try:
            cancellation.raise_if_cancelled()
            paths = self.finder.find(module, cancellation)
        except WalkError:
            raise
        except Exception as exc:
            raise WalkError(module.path, exc) from exc

        entries: List[LicenseFile] = []
        for path in paths:
            try:
                licenses = self.classifier.classify(path, cancellation)
            except OperationCancelled as exc:
                raise WalkError(module.path, exc) from exc
            except LicensePleaseError:
                raise
            except OSError as exc:
                raise ReadError(path, exc) from exc
            except Exception as exc:
                raise ClassificationError(path, exc) from exc

            entries.append(
                LicenseFile(
                    path=path,
                    rel_path=relative_license_path(module, path),
                    module=module,
                    licenses=tuple(licenses),
                )
            )
        logger.debug("module %s contributed %d license files", module.path, len(entries))
        return entries
