from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
from importlib import metadata
from pathlib import Path
from typing import Iterable, List, Optional

from packaging.utils import canonicalize_name

from .cancellation import Cancellation
from .errors import ResolutionError
from .types_modules import Module


logger = logging.getLogger(__name__)


def parse_go_mod_download(output: str, project_dir: str = ".") -> List[Module]:
    """Parse the JSON object stream printed by ``go mod download -json``."""

    decoder = json.JSONDecoder()
    modules: List[Module] = []
    position = 0
    while True:
        while position < len(output) and output[position].isspace():
            position += 1
        if position >= len(output):
            break
        try:
            entry, position = decoder.raw_decode(output, position)
        except json.JSONDecodeError as exc:
            raise ResolutionError(project_dir, f"parsing module JSON: {exc}") from exc
        if not isinstance(entry, dict):
            raise ResolutionError(project_dir, f"unexpected module entry: {entry!r}")
        if entry.get("Error"):
            raise ResolutionError(project_dir, f"{entry.get('Path', '?')}: {entry['Error']}")
        modules.append(
            Module(
                path=str(entry.get("Path", "")),
                version=str(entry.get("Version", "")),
                dir=str(entry.get("Dir", "")),
                ecosystem="go",
            )
        )
    return modules


class GoModResolver:
    """List Go module dependencies with ``go mod download -json``."""

    def __init__(self, go_binary: Optional[str] = None) -> None:
        self.go_binary = go_binary or os.environ.get("GO_BINARY", "go")

    def resolve(self, project_dir: str, cancellation: Optional[Cancellation] = None) -> List[Module]:
        if cancellation:
            cancellation.raise_if_cancelled()
        timeout = cancellation.remaining() if cancellation else None
        try:
            result = subprocess.run(
                [self.go_binary, "mod", "download", "-json"],
                cwd=project_dir,
                check=True,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as exc:
            raise ResolutionError(project_dir, f"{self.go_binary} executable not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise ResolutionError(project_dir, "go mod download timed out") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            raise ResolutionError(
                project_dir, f"go mod download exited {exc.returncode}: {stderr}"
            ) from exc

        modules = parse_go_mod_download(result.stdout, project_dir)
        logger.debug("go mod download listed %d modules in %s", len(modules), project_dir)
        return modules


def _virtualenv_site_packages(project_dir: Path) -> List[Path]:
    candidates: List[Path] = []
    for venv_name in (".venv", "venv"):
        venv = project_dir / venv_name
        if not venv.is_dir():
            continue
        candidates.extend(sorted(venv.glob("lib/python*/site-packages")))
        windows_site = venv / "Lib" / "site-packages"
        if windows_site.is_dir():
            candidates.append(windows_site)
    return candidates


def _metadata_dir(dist: metadata.Distribution) -> str:
    for entry in dist.files or []:
        if entry.parent.name.endswith(".dist-info"):
            return str(Path(dist.locate_file(entry.parent)).resolve())
    return ""


class PythonEnvironmentResolver:
    """List installed Python distributions as modules.

    Each module's directory is the distribution's ``.dist-info`` folder, which
    is where wheels place bundled license files. When ``search_paths`` is not
    given, a ``.venv``/``venv`` inside the project is preferred over the
    running interpreter's ``sys.path``.
    """

    def __init__(self, search_paths: Optional[Iterable[str]] = None) -> None:
        self.search_paths = list(search_paths) if search_paths is not None else None

    def _paths_for(self, project_dir: str) -> List[str]:
        if self.search_paths is not None:
            return self.search_paths
        venv_paths = _virtualenv_site_packages(Path(project_dir))
        if venv_paths:
            return [str(p) for p in venv_paths]
        return list(sys.path)

    def resolve(self, project_dir: str, cancellation: Optional[Cancellation] = None) -> List[Module]:
        if cancellation:
            cancellation.raise_if_cancelled()
        paths = self._paths_for(project_dir)

        seen: dict[str, Module] = {}
        for dist in metadata.distributions(path=paths):
            meta = dist.metadata
            raw_name = meta.get("Name") if meta is not None else None
            if not raw_name:
                raise ResolutionError(project_dir, f"distribution without a Name in {paths}")
            name = canonicalize_name(raw_name)
            if name in seen:
                # First match on the search path wins, as with imports.
                continue
            seen[name] = Module(
                path=name,
                version=dist.version or "",
                dir=_metadata_dir(dist),
                ecosystem="python",
            )

        modules = [seen[name] for name in sorted(seen)]
        logger.debug("found %d python distributions for %s", len(modules), project_dir)
        return modules
