from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import subprocess
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from license_expression import ExpressionError, Licensing

from .cancellation import Cancellation
from .errors import ClassificationError, ReadError
from .types_licenses import resolve_license
from .types_modules import License


logger = logging.getLogger(__name__)

LICENSE_MATCH = "License"
COPYRIGHT_MATCH = "Copyright"


@dataclass(frozen=True)
class LicenseMatch:
    name: str
    match_kind: str
    confidence: float = 1.0


class MatchEngine(Protocol):
    def match(self, content: bytes, timeout: Optional[float] = None) -> List[LicenseMatch]:
        """Return candidate matches for ``content`` in detection order."""


class EngineError(RuntimeError):
    """Raised by a match engine that could not analyse the content."""


_licensing = Licensing()


def _expression_symbols(expression: str) -> List[str]:
    try:
        keys = _licensing.license_keys(expression, unique=True)
    except ExpressionError:
        return [expression]
    return list(keys) or [expression]


def _score(raw: Any) -> float:
    try:
        return float(raw) / 100.0
    except (TypeError, ValueError):
        return 0.0


def parse_scancode_output(payload: dict) -> List[LicenseMatch]:
    """Flatten a ScanCode JSON payload into license and copyright matches.

    Handles both the ``license_detections`` layout (ScanCode 32+) and the
    older per-file ``licenses`` list.
    """

    matches: List[LicenseMatch] = []
    for entry in payload.get("files", []) or []:
        if entry.get("type", "file") != "file":
            continue
        for detection in entry.get("license_detections", []) or []:
            detection_matches = detection.get("matches") or [detection]
            for match in detection_matches:
                expression = (
                    match.get("license_expression_spdx")
                    or match.get("spdx_license_expression")
                    or match.get("license_expression")
                )
                if not expression:
                    continue
                for symbol in _expression_symbols(str(expression)):
                    matches.append(LicenseMatch(symbol, LICENSE_MATCH, _score(match.get("score"))))
        for legacy in entry.get("licenses", []) or []:
            name = legacy.get("spdx_license_key") or legacy.get("key")
            if name:
                matches.append(LicenseMatch(str(name), LICENSE_MATCH, _score(legacy.get("score"))))
        for holder in entry.get("copyrights", []) or []:
            statement = holder.get("copyright") or holder.get("value")
            if statement:
                matches.append(LicenseMatch(str(statement), COPYRIGHT_MATCH, 1.0))
    return matches


class ScanCodeEngine:
    """Match license text with the external ScanCode toolkit CLI.

    Results are cached by content digest, so a license text shared by many
    modules is scanned once per engine.
    """

    def __init__(self, executable: Optional[str] = None, processes: int = 1) -> None:
        self.executable = executable or os.environ.get("SCANCODE_BIN") or shutil.which("scancode") or "scancode"
        self.processes = processes
        self._cache: Dict[str, List[LicenseMatch]] = {}
        self._lock = threading.Lock()

    def _command(self, target: Path) -> List[str]:
        return [
            self.executable,
            "--license",
            "--copyright",
            "--quiet",
            "--processes",
            str(self.processes),
            "--json",
            "-",
            str(target),
        ]

    def match(self, content: bytes, timeout: Optional[float] = None) -> List[LicenseMatch]:
        digest = hashlib.sha256(content).hexdigest()
        with self._lock:
            cached = self._cache.get(digest)
        if cached is not None:
            return list(cached)

        matches = self._scan(content, timeout)
        with self._lock:
            self._cache[digest] = matches
        return list(matches)

    def _scan(self, content: bytes, timeout: Optional[float]) -> List[LicenseMatch]:
        with tempfile.TemporaryDirectory(prefix="license-please-") as workdir:
            target = Path(workdir) / "LICENSE"
            target.write_bytes(content)
            try:
                result = subprocess.run(
                    self._command(target),
                    check=True,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
            except FileNotFoundError as exc:
                raise EngineError(f"scancode executable not found: {self.executable}") from exc
            except subprocess.TimeoutExpired as exc:
                raise EngineError("scancode timed out") from exc
            except subprocess.CalledProcessError as exc:
                stderr = (exc.stderr or "").strip()
                raise EngineError(f"scancode exited {exc.returncode}: {stderr}") from exc

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            raise EngineError(f"invalid scancode JSON output: {exc}") from exc
        return parse_scancode_output(payload)


def select_licenses(matches: Iterable[LicenseMatch]) -> List[License]:
    """Keep license matches only, de-duplicated by name in first-seen order."""

    seen: set[str] = set()
    licenses: List[License] = []
    for match in matches:
        if match.match_kind != LICENSE_MATCH:
            continue
        if match.name in seen:
            continue
        seen.add(match.name)
        licenses.append(License(name=match.name, license_type=resolve_license(match.name)))
    return licenses


class EngineLicenseClassifier:
    def __init__(self, engine: Optional[MatchEngine] = None) -> None:
        self.engine = engine or ScanCodeEngine()

    def classify(self, path: str, cancellation: Optional[Cancellation] = None) -> List[License]:
        if cancellation:
            cancellation.raise_if_cancelled()
        try:
            content = Path(path).read_bytes()
        except OSError as exc:
            raise ReadError(path, exc) from exc

        timeout = cancellation.remaining() if cancellation else None
        try:
            matches = self.engine.match(content, timeout=timeout)
        except EngineError as exc:
            raise ClassificationError(path, exc) from exc

        licenses = select_licenses(matches)
        logger.debug("classified %s as %s", path, [lic.name for lic in licenses] or "unknown")
        return licenses
