import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from license_please import cli
from license_please.aggregator import Aggregator
from license_please.cli import main
from license_please.errors import ResolutionError
from license_please.license_finder import RecursiveLicenseFinder
from license_please.types import License, Module, resolve_license


class StubResolver:
    def __init__(self, modules, error=None):
        self.modules = modules
        self.error = error

    def resolve(self, project_dir, cancellation=None):
        if self.error:
            raise self.error
        return list(self.modules)


class NameClassifier:
    """Classifies each file by the first line of its content."""

    def classify(self, path, cancellation=None):
        first_line = Path(path).read_text().splitlines()[0].strip()
        return [License(first_line, resolve_license(first_line))] if first_line else []


@pytest.fixture
def project(tmp_path: Path):
    mods = tmp_path / "mods"
    for name, files in {
        "foo": {"LICENSE": "MIT\nPermission is hereby granted"},
        "apache": {"LICENSE": "Apache-2.0\nApache License", "NOTICE": "\nApache Thing"},
    }.items():
        for rel, content in files.items():
            target = mods / name / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
    modules = [
        Module("github.com/example/foo", "v1.0.0", str(mods / "foo")),
        Module("github.com/example/apache", "v2.1.0", str(mods / "apache")),
    ]
    return tmp_path, modules


def _use_pipeline(monkeypatch, modules, error=None):
    calls = []

    def build(ecosystem, scancode_bin, go_bin, workers):
        calls.append((ecosystem, scancode_bin, go_bin, workers))
        return Aggregator(
            resolver=StubResolver(modules, error),
            finder=RecursiveLicenseFinder(),
            classifier=NameClassifier(),
            max_workers=workers,
        )

    monkeypatch.setattr(cli, "_build_aggregator", build)
    return calls


def test_report_cli_generates_json(monkeypatch, project):
    root, modules = project
    _use_pipeline(monkeypatch, modules)

    result = CliRunner().invoke(main, ["report", str(root), "--format", "json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["modules"] == ["github.com/example/apache", "github.com/example/foo"]
    rows = {(row["module"], row["rel_path"]): row for row in payload["license_files"]}
    assert rows[("github.com/example/apache", "LICENSE")]["artifacts"] == ["LICENSE", "NOTICE"]
    assert rows[("github.com/example/apache", "NOTICE")]["license"] == "(NOTICE file)"
    assert payload["policy"]["passed"] is True


def test_report_cli_writes_markdown_file(monkeypatch, project):
    root, modules = project
    _use_pipeline(monkeypatch, modules)
    output = root / "THIRD_PARTY_LICENSES.md"

    result = CliRunner().invoke(main, ["report", str(root), "--output", str(output)])

    assert result.exit_code == 0, result.output
    text = output.read_text()
    assert text.startswith("# Third-Party Licenses")
    assert "| github.com/example/foo | v1.0.0 | MIT |" in text
    assert "# Third-Party Licenses" not in result.output


def test_report_cli_passes_options_to_pipeline(monkeypatch, project):
    root, modules = project
    calls = _use_pipeline(monkeypatch, modules)

    result = CliRunner().invoke(
        main,
        ["report", str(root), "--format", "json", "--workers", "3", "--go-bin", "/usr/local/go/bin/go"],
        env={"SCANCODE_BIN": "/opt/scancode/scancode"},
    )

    assert result.exit_code == 0, result.output
    assert calls == [("go", "/opt/scancode/scancode", "/usr/local/go/bin/go", 3)]


def test_report_cli_fails_on_disallowed_license(monkeypatch, project):
    root, modules = project
    (Path(modules[0].dir) / "LICENSE").write_text("GPL-3.0\nGNU GENERAL PUBLIC LICENSE")
    _use_pipeline(monkeypatch, modules)

    result = CliRunner().invoke(main, ["report", str(root), "--format", "json"])

    assert result.exit_code == cli.EXIT_POLICY_VIOLATION
    assert "found 1 dependencies with disallowed licenses:" in result.output
    assert "github.com/example/foo@v1.0.0: GPL-3.0 (LICENSE)" in result.output


def test_report_cli_policy_exception_allows_license(monkeypatch, project):
    root, modules = project
    (Path(modules[0].dir) / "LICENSE").write_text("GPL-3.0\nGNU GENERAL PUBLIC LICENSE")
    _use_pipeline(monkeypatch, modules)
    policy = root / "policy.yml"
    policy.write_text(
        """
exceptions:
  - module: github.com/example/foo
    license: GPL-3.0
    reason: build-time tool only
"""
    )
    check = root / "checks" / "licenses.json"

    result = CliRunner().invoke(
        main,
        ["report", str(root), "--format", "json", "--policy", str(policy), "--github-check-output", str(check)],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(check.read_text())
    assert payload["conclusion"] == "success"
    assert payload["details"]["used_exceptions"][0]["module"] == "github.com/example/foo"


def test_report_cli_pipeline_error_exit_code(monkeypatch, tmp_path: Path):
    _use_pipeline(monkeypatch, [], error=ResolutionError(str(tmp_path), "go.mod malformed"))

    result = CliRunner().invoke(main, ["report", str(tmp_path)])

    assert result.exit_code == cli.EXIT_PIPELINE_ERROR
    assert "error: resolving modules in" in result.output
    assert "go.mod malformed" in result.output


def test_report_cli_bundles_artifacts(monkeypatch, project):
    root, modules = project
    _use_pipeline(monkeypatch, modules)
    bundle = root / "bundle"

    result = CliRunner().invoke(
        main,
        ["report", str(root), "--output", str(root / "out.md"), "--artifacts-dir", str(bundle)],
    )

    assert result.exit_code == 0, result.output
    assert (bundle / "github.com/example/apache@v2.1.0" / "NOTICE").is_file()
    assert (bundle / "github.com/example/foo@v1.0.0" / "LICENSE").is_file()


def test_allowed_command_lists_taxonomy():
    result = CliRunner().invoke(main, ["allowed"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].startswith("Apache-2.0: ")
    assert any(line.startswith("MIT: Include the copyright notice") for line in lines)
    assert not any(line.startswith("unknown") for line in lines)


def test_report_cli_invalid_policy_is_pipeline_error(monkeypatch, project):
    root, modules = project
    (Path(modules[0].dir) / "LICENSE").write_text("GPL-3.0\nGNU GENERAL PUBLIC LICENSE")
    _use_pipeline(monkeypatch, modules)
    policy = root / "policy.yml"
    policy.write_text(
        """
exceptions:
  - module: github.com/example/foo
    license: GPL-3.0
    expires: 2020-13-45
"""
    )

    result = CliRunner().invoke(main, ["report", str(root), "--policy", str(policy)])

    assert result.exit_code == cli.EXIT_PIPELINE_ERROR
    assert "error: unable to load policy" in result.output
