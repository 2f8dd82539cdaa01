"""Normalize ``audit`` output from npm, pnpm and yarn.

Each parser returns an ``AuditResult`` or None when the output carries no
usable report (empty, malformed, or an error payload). None means "the
audit could not be read", which callers keep distinct from a clean report.
"""

import json
import re
from typing import Any

from .log import LogContext
from .models import (
    AuditResult,
    AuditSummary,
    PackageManagerName,
    SecuritySummary,
    Severity,
    Vulnerability,
)

log = LogContext().child("audit")

NO_FIX_SENTINEL = "<0.0.0"
UNKNOWN_TITLE = "Unknown vulnerability"
VERSION_PATTERN = re.compile(r"(\d+\.\d+\.\d+)")


def audit_command(pm: PackageManagerName) -> tuple[str, list[str]]:
    """Return the command and argument vector for a security audit.

    bun has no audit command of its own, so it falls back to npm.
    """
    if pm is PackageManagerName.PNPM:
        return "pnpm", ["audit", "--json"]
    if pm is PackageManagerName.YARN:
        return "yarn", ["audit", "--json"]
    return "npm", ["audit", "--json"]


def normalize_severity(severity: Any) -> Severity:
    """Map a manager's severity onto the five canonical levels."""
    value = str(severity or "").lower()
    if value == "medium":
        return Severity.MODERATE
    try:
        return Severity(value)
    except ValueError:
        return Severity.INFO


def _count(counts: dict, key: str) -> int:
    value = counts.get(key, 0)
    return value if isinstance(value, int) else 0


def _summary_from_counts(counts: dict, total: int | None = None) -> AuditSummary:
    """Build a summary; without an explicit total, all five buckets are summed."""
    if total is None:
        total = sum(_count(counts, key) for key in ("critical", "high", "moderate", "low", "info"))
    return AuditSummary(
        critical=_count(counts, "critical"),
        high=_count(counts, "high"),
        moderate=_count(counts, "moderate"),
        low=_count(counts, "low"),
        total=total,
    )


def _normalize_path(path: str) -> str:
    return " > ".join(part.strip() for part in path.split(">"))


def _patched_fix(patched_versions: Any) -> tuple[bool, str | None]:
    """Derive (fix_available, fix_version) from an advisory's patched range."""
    if not isinstance(patched_versions, str) or not patched_versions:
        return False, None
    if patched_versions == NO_FIX_SENTINEL:
        return False, None
    match = VERSION_PATTERN.search(patched_versions)
    return True, match.group(1) if match else None


# ---------------------------------------------------------------------------
# npm
# ---------------------------------------------------------------------------


def _npm_title(via: list) -> str:
    for entry in via:
        if isinstance(entry, dict) and entry.get("title"):
            return entry["title"]
    return UNKNOWN_TITLE


def _is_pass_through(via: list) -> bool:
    return len(via) == 1 and isinstance(via[0], str)


def _npm_chain(name: str, vulns: dict, visited: set[str]) -> list[str]:
    """Walk ``effects`` toward the root, returning the chain root first."""
    if name in visited:
        return []
    visited.add(name)

    entry = vulns.get(name)
    if not isinstance(entry, dict):
        return [name]

    effects = entry.get("effects")
    if isinstance(effects, list) and effects and isinstance(effects[0], str):
        return [*_npm_chain(effects[0], vulns, visited), name]
    return [name]


def build_npm_path(name: str, vulns: dict) -> str:
    """Render the dependency chain of an npm vulnerability as ``root > ... > name``."""
    return " > ".join(_npm_chain(name, vulns, set()))


def parse_npm_audit(output: str) -> AuditResult | None:
    """Parse ``npm audit --json`` (report version 2).

    Entries whose ``via`` is a single bare package name only pass another
    entry's advisory through; they are left out of the vulnerability list
    but still counted in the metadata totals.
    """
    if not output.strip():
        return None

    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        log.warning("Failed to parse npm audit output")
        return None

    if not isinstance(data, dict):
        return None
    metadata = data.get("metadata")
    counts = metadata.get("vulnerabilities") if isinstance(metadata, dict) else None
    if not isinstance(counts, dict):
        return None

    vulns = data.get("vulnerabilities")
    if not isinstance(vulns, dict):
        vulns = {}

    vulnerabilities = []
    for key, vuln in vulns.items():
        if not isinstance(vuln, dict):
            continue
        via = vuln.get("via")
        if not isinstance(via, list):
            via = []
        if _is_pass_through(via):
            continue

        name = vuln.get("name")
        if not isinstance(name, str) or not name:
            name = key
        fix = vuln.get("fixAvailable", False)
        fix_version = fix.get("version") if isinstance(fix, dict) else None

        vulnerabilities.append(
            Vulnerability(
                package=name,
                severity=normalize_severity(vuln.get("severity")),
                title=_npm_title(via),
                path=build_npm_path(name, vulns),
                fix_available=fix is not False,
                fix_version=fix_version or None,
            )
        )

    total = counts.get("total")
    summary = _summary_from_counts(counts, total=total if isinstance(total, int) else None)
    return AuditResult(vulnerabilities=vulnerabilities, summary=summary)


# ---------------------------------------------------------------------------
# pnpm
# ---------------------------------------------------------------------------


def parse_pnpm_audit(output: str) -> AuditResult | None:
    """Parse ``pnpm audit --json``.

    pnpm reports an ``error`` object instead of advisories when the audit
    cannot run (for example without a lockfile); that yields None.
    """
    if not output.strip():
        return None

    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        log.warning("Failed to parse pnpm audit output")
        return None

    if not isinstance(data, dict):
        return None
    if data.get("error"):
        log.warning("pnpm audit returned an error", error=data["error"])
        return None

    metadata = data.get("metadata")
    counts = metadata.get("vulnerabilities") if isinstance(metadata, dict) else None
    if not isinstance(counts, dict):
        return None

    advisories = data.get("advisories")
    if not isinstance(advisories, dict):
        advisories = {}

    vulnerabilities = []
    for advisory in advisories.values():
        if not isinstance(advisory, dict):
            continue
        module_name = advisory.get("module_name", "")

        paths = [
            path
            for finding in advisory.get("findings") or []
            if isinstance(finding, dict)
            for path in finding.get("paths") or []
            if isinstance(path, str)
        ]
        fix_available, fix_version = _patched_fix(advisory.get("patched_versions"))

        vulnerabilities.append(
            Vulnerability(
                package=module_name,
                severity=normalize_severity(advisory.get("severity")),
                title=advisory.get("title") or UNKNOWN_TITLE,
                path=_normalize_path(paths[0]) if paths else module_name,
                fix_available=fix_available,
                fix_version=fix_version,
            )
        )

    return AuditResult(vulnerabilities=vulnerabilities, summary=_summary_from_counts(counts))


# ---------------------------------------------------------------------------
# yarn
# ---------------------------------------------------------------------------


def _yarn_vulnerability(data: dict) -> Vulnerability | None:
    advisory = data.get("advisory")
    if not isinstance(advisory, dict):
        return None
    resolution = data.get("resolution") if isinstance(data.get("resolution"), dict) else {}
    module_name = advisory.get("module_name", "")
    path = resolution.get("path")
    fix_available, fix_version = _patched_fix(advisory.get("patched_versions"))

    return Vulnerability(
        package=module_name,
        severity=normalize_severity(advisory.get("severity")),
        title=advisory.get("title") or UNKNOWN_TITLE,
        path=_normalize_path(path) if isinstance(path, str) and path else module_name,
        fix_available=fix_available,
        fix_version=fix_version,
    )


def parse_yarn_audit(output: str) -> AuditResult | None:
    """Parse ``yarn audit --json`` (NDJSON).

    ``auditAdvisory`` lines become vulnerabilities and the ``auditSummary``
    line supplies the counts. Without a summary line the counts are taken
    from the advisories themselves.
    """
    if not output.strip():
        return None

    vulnerabilities: list[Vulnerability] = []
    summary: AuditSummary | None = None

    for line in output.strip().splitlines():
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            log.trace("Skipping non-JSON line in yarn audit output", line=line)
            continue
        if not isinstance(record, dict) or not isinstance(record.get("data"), dict):
            continue

        if record.get("type") == "auditAdvisory":
            vulnerability = _yarn_vulnerability(record["data"])
            if vulnerability is not None:
                vulnerabilities.append(vulnerability)
        elif record.get("type") == "auditSummary":
            counts = record["data"].get("vulnerabilities")
            if isinstance(counts, dict):
                summary = _summary_from_counts(counts)

    if summary is None:
        if not vulnerabilities:
            return None
        summary = AuditSummary(
            critical=sum(1 for v in vulnerabilities if v.severity is Severity.CRITICAL),
            high=sum(1 for v in vulnerabilities if v.severity is Severity.HIGH),
            moderate=sum(1 for v in vulnerabilities if v.severity is Severity.MODERATE),
            low=sum(1 for v in vulnerabilities if v.severity is Severity.LOW),
            total=len(vulnerabilities),
        )

    return AuditResult(vulnerabilities=vulnerabilities, summary=summary)


def parse_audit(pm: PackageManagerName, output: str) -> AuditResult | None:
    """Dispatch to the parser for ``pm``; bun output comes from npm."""
    if pm is PackageManagerName.PNPM:
        return parse_pnpm_audit(output)
    if pm is PackageManagerName.YARN:
        return parse_yarn_audit(output)
    return parse_npm_audit(output)


def summarize_security(result: AuditResult | None) -> SecuritySummary | None:
    """Project an audit summary onto the four tracked severity buckets."""
    if result is None:
        return None
    summary = result.summary
    return SecuritySummary(
        critical=summary.critical,
        high=summary.high,
        moderate=summary.moderate,
        low=summary.low,
    )
