from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable
from urllib.parse import quote

from jinja2 import Environment, select_autoescape

from .artifacts import required_artifacts
from .errors import ReadError
from .types import LicenseFile, Report, allowed_identifiers


env = Environment(autoescape=select_autoescape(["html", "xml"]))

NOTICE_LABEL = "(NOTICE file)"
UNKNOWN_LABEL = "Unknown"


def license_url(lf: LicenseFile) -> str:
    module = lf.module
    if module.ecosystem == "python":
        return f"https://pypi.org/project/{quote(module.path)}/{quote(module.version)}/"
    return f"https://pkg.go.dev/{module.path}@{module.version}?tab=licenses"


def license_names(lf: LicenseFile) -> str:
    if not lf.licenses:
        return NOTICE_LABEL if lf.is_notice else UNKNOWN_LABEL
    return ", ".join(license_type.identify() for license_type in lf.license_types)


def _read_license_text(lf: LicenseFile) -> str:
    try:
        return Path(lf.path).read_bytes().decode("utf-8", errors="replace")
    except OSError as exc:
        raise ReadError(lf.path, exc) from exc


def _license_rows(report: Report) -> Iterable[dict]:
    for lf in report.sorted_license_files:
        yield {
            "module": lf.module.path,
            "version": lf.module.version,
            "ecosystem": lf.module.ecosystem,
            "license": license_names(lf),
            "licenses": [lic.name for lic in lf.licenses],
            "obligations": [license_type.obligations for license_type in lf.license_types],
            "rel_path": lf.rel_path,
            "path": lf.path,
            "url": license_url(lf),
            "artifacts": required_artifacts(lf),
        }


def render_json(report: Report) -> str:
    payload = {
        "generated_at": report.generated_at.isoformat(),
        "project_dir": report.project_dir,
        "allowed_licenses": sorted(allowed_identifiers()),
        "modules": report.modules,
        "license_breakdown": report.license_breakdown,
        "license_files": list(_license_rows(report)),
    }
    if report.policy_evaluation:
        payload["policy"] = report.policy_evaluation.as_dict()
    return json.dumps(payload, indent=2)


def render_markdown(report: Report) -> str:
    rows = list(_license_rows(report))
    lines = [
        "# Third-Party Licenses",
        "",
        "This file contains the licenses for all third-party dependencies.",
        "",
        "## Manifest",
        "",
        "| Module | Version | License | Source |",
        "|--------|---------|---------|--------|",
    ]
    for row in rows:
        lines.append(
            f"| {row['module']} | {row['version']} | {row['license']} | [{row['rel_path']}]({row['url']}) |"
        )

    lines.extend(["", "---", "", "## License Texts", ""])

    for row, lf in zip(rows, report.sorted_license_files):
        content = _read_license_text(lf)
        lines.append(f"### {row['module']} {row['version']}")
        lines.append("")
        lines.append(f"**License:** {row['license']}")
        lines.append("")
        lines.append(f"**Source:** [{row['rel_path']}]({row['url']})")
        lines.append("")
        if row["artifacts"]:
            lines.append(f"**Artifacts:** {', '.join(row['artifacts'])}")
            lines.append("")
        lines.append("```")
        text = content[:-1] if content.endswith("\n") else content
        if text:
            lines.append(text)
        lines.append("```")
        lines.append("")

    return "\n".join(lines)


def render_html(report: Report) -> str:
    template = env.from_string(
        """
<!doctype html>
<html lang=\"en\">
<head>
  <meta charset=\"utf-8\" />
  <title>Third-Party Licenses</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 2rem; }
    h1, h2, h3 { color: #1f2937; }
    table { border-collapse: collapse; width: 100%; margin-bottom: 1.5rem; }
    th, td { border: 1px solid #d1d5db; padding: 0.5rem; }
    th { background: #f3f4f6; text-align: left; }
    pre { background: #f9fafb; padding: 1rem; overflow-x: auto; }
    .badge { display: inline-block; padding: 0.2rem 0.5rem; border-radius: 0.4rem; font-weight: 600; }
    .badge.good { background: #d1fae5; color: #065f46; }
    .badge.bad { background: #fee2e2; color: #991b1b; }
  </style>
</head>
<body>
  <h1>Third-Party Licenses</h1>
  <p>Generated at: {{ generated_at }}</p>
  {% if policy %}
  <p>Policy: <span class=\"badge {{ 'good' if policy.passed else 'bad' }}\">{{ 'passed' if policy.passed else 'failed' }}</span></p>
  {% endif %}
  <section>
    <h2>Manifest</h2>
    <table>
      <thead><tr><th>Module</th><th>Version</th><th>License</th><th>Source</th><th>Artifacts</th></tr></thead>
      <tbody>
        {% for row in rows %}
        <tr>
          <td>{{ row.module }}</td>
          <td>{{ row.version }}</td>
          <td>{{ row.license }}</td>
          <td><a href=\"{{ row.url }}\">{{ row.rel_path }}</a></td>
          <td>{{ ", ".join(row.artifacts) }}</td>
        </tr>
        {% endfor %}
      </tbody>
    </table>
  </section>
  <section>
    <h2>License Texts</h2>
    {% for row in rows %}
    <h3>{{ row.module }} {{ row.version }}</h3>
    <p><strong>License:</strong> {{ row.license }}</p>
    <pre>{{ row.text }}</pre>
    {% endfor %}
  </section>
</body>
</html>
"""
    )

    rows = []
    for row, lf in zip(_license_rows(report), report.sorted_license_files):
        rows.append({**row, "text": _read_license_text(lf)})

    return template.render(
        generated_at=report.generated_at.isoformat(),
        policy=report.policy_evaluation,
        rows=rows,
    )


def render_report(report: Report, fmt: str) -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return render_json(report)
    if fmt in {"md", "markdown"}:
        return render_markdown(report)
    if fmt == "html":
        return render_html(report)
    raise ValueError(f"Unknown report format: {fmt}")


def write_report(report: Report, fmt: str, destination: Path | None) -> str:
    output = render_report(report, fmt)
    if destination:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(output)
    return output
