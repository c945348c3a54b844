from pathlib import Path

from license_please.artifacts import bundle_artifacts, required_artifacts
from license_please.types import License, LicenseFile, Module, resolve_license


def _module_tree(root: Path, files: dict[str, str]) -> Path:
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return root


def _lf(module_dir: Path, rel_path: str, names: list[str], module: str = "github.com/apache/thing") -> LicenseFile:
    return LicenseFile(
        path=str(module_dir / rel_path),
        rel_path=rel_path,
        module=Module(module, "v1.0.0", str(module_dir)),
        licenses=tuple(License(name, resolve_license(name)) for name in names),
    )


def test_required_artifacts_for_apache_include_notice(tmp_path: Path):
    module_dir = _module_tree(tmp_path / "mod", {"LICENSE": "Apache", "NOTICE.txt": "Attribution"})

    assert required_artifacts(_lf(module_dir, "LICENSE", ["Apache-2.0"])) == ["LICENSE", "NOTICE.txt"]


def test_required_artifacts_union_without_duplicates(tmp_path: Path):
    module_dir = _module_tree(tmp_path / "mod", {"LICENSE": "dual", "NOTICE": "Attribution"})

    artifacts = required_artifacts(_lf(module_dir, "LICENSE", ["MIT", "Apache-2.0", "Apache-2.0"]))

    assert artifacts == ["LICENSE", "NOTICE"]


def test_unclassified_file_requires_only_itself(tmp_path: Path):
    module_dir = _module_tree(tmp_path / "mod", {"COPYING": "???", "NOTICE": "n"})

    assert required_artifacts(_lf(module_dir, "COPYING", [])) == ["COPYING"]


def test_bundle_artifacts_copies_per_module(tmp_path: Path):
    apache_dir = _module_tree(tmp_path / "apache", {"LICENSE": "Apache License", "NOTICE": "Apache Thing"})
    mit_dir = _module_tree(tmp_path / "mit", {"LICENSE": "MIT License"})
    files = [
        _lf(apache_dir, "LICENSE", ["Apache-2.0"]),
        _lf(apache_dir, "NOTICE", []),
        _lf(mit_dir, "LICENSE", ["MIT"], module="github.com/mit/lib"),
    ]
    destination = tmp_path / "bundle"

    written = bundle_artifacts(files, destination)

    rel = sorted(p.relative_to(destination).as_posix() for p in written)
    assert rel == [
        "github.com/apache/thing@v1.0.0/LICENSE",
        "github.com/apache/thing@v1.0.0/NOTICE",
        "github.com/mit/lib@v1.0.0/LICENSE",
    ]
    assert (destination / "github.com/apache/thing@v1.0.0/NOTICE").read_text() == "Apache Thing"


def test_bundle_skips_modules_without_directory(tmp_path: Path):
    lf = LicenseFile(path="/nowhere/LICENSE", rel_path="", module=Module("m", "v1", ""))

    assert bundle_artifacts([lf], tmp_path / "bundle") == []
