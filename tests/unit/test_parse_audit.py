"""Tests for audit output normalization."""

import json

from upkeep.models import AuditSummary, PackageManagerName, Severity
from upkeep.parse_audit import (
    audit_command,
    build_npm_path,
    normalize_severity,
    parse_audit,
    parse_npm_audit,
    parse_pnpm_audit,
    parse_yarn_audit,
    summarize_security,
)


class TestNpmAudit:
    """Test npm audit --json parsing."""

    def test_pass_through_entries_excluded(self, sample_npm_audit):
        """Should list only entries with their own advisory but keep metadata counts."""
        result = parse_npm_audit(sample_npm_audit)

        assert [v.package for v in result.vulnerabilities] == ["minimist"]
        assert result.summary == AuditSummary(critical=2, high=0, moderate=0, low=0, total=2)

    def test_vulnerability_fields(self, sample_npm_audit):
        vuln = parse_npm_audit(sample_npm_audit).vulnerabilities[0]

        assert vuln.severity is Severity.CRITICAL
        assert vuln.title == "Prototype Pollution in minimist"
        assert vuln.path == "mkdirp > minimist"
        assert vuln.fix_available is True
        assert vuln.fix_version == "0.5.6"

    def test_fix_available_boolean(self):
        """Should report fixAvailable: true without a version."""
        output = json.dumps(
            {
                "vulnerabilities": {
                    "semver": {
                        "name": "semver",
                        "severity": "moderate",
                        "via": [{"title": "ReDoS in semver"}],
                        "effects": [],
                        "fixAvailable": True,
                    },
                    "tar": {
                        "name": "tar",
                        "severity": "high",
                        "via": [{"title": "Arbitrary file write"}],
                        "effects": [],
                        "fixAvailable": False,
                    },
                },
                "metadata": {"vulnerabilities": {"moderate": 1, "high": 1, "total": 2}},
            }
        )

        semver, tar = parse_npm_audit(output).vulnerabilities

        assert semver.fix_available is True
        assert semver.fix_version is None
        assert semver.path == "semver"
        assert tar.fix_available is False

    def test_missing_title(self):
        output = json.dumps(
            {
                "vulnerabilities": {"x": {"severity": "low", "via": [{"source": 1}, "y"]}},
                "metadata": {"vulnerabilities": {"low": 1, "total": 1}},
            }
        )
        assert parse_npm_audit(output).vulnerabilities[0].title == "Unknown vulnerability"

    def test_missing_total_is_summed(self):
        output = json.dumps({"metadata": {"vulnerabilities": {"high": 2, "low": 1, "info": 3}}})

        summary = parse_npm_audit(output).summary

        assert summary.total == 6

    def test_unusable_output(self):
        assert parse_npm_audit("") is None
        assert parse_npm_audit("npm ERR! code ENOLOCK") is None
        assert parse_npm_audit(json.dumps({"vulnerabilities": {}})) is None

    def test_cyclic_effects_terminate(self):
        """Should stop walking effects when a package repeats."""
        vulns = {
            "a": {"effects": ["b"]},
            "b": {"effects": ["a"]},
        }
        assert build_npm_path("a", vulns) == "b > a"

    def test_malformed_effects_and_via(self):
        """Should tolerate effects and via fields of the wrong type."""
        output = json.dumps(
            {
                "vulnerabilities": {
                    "minimist": {"name": "minimist", "severity": "high", "via": [], "effects": {"a": 1}},
                    "mkdirp": {"name": 7, "severity": "moderate", "via": "minimist", "effects": "x"},
                },
                "metadata": {"vulnerabilities": {"high": 1, "moderate": 1, "total": 2}},
            }
        )

        minimist, mkdirp = parse_npm_audit(output).vulnerabilities

        assert minimist.path == "minimist"
        assert mkdirp.package == "mkdirp"
        assert mkdirp.path == "mkdirp"
        assert mkdirp.title == "Unknown vulnerability"


class TestPnpmAudit:
    """Test pnpm audit --json parsing."""

    def _output(self, advisories, counts):
        return json.dumps({"advisories": advisories, "metadata": {"vulnerabilities": counts}})

    def test_advisories(self):
        """Should take the first finding path and derive the fix version."""
        output = self._output(
            {
                "1096": {
                    "module_name": "axios",
                    "severity": "high",
                    "title": "SSRF in axios",
                    "patched_versions": ">=1.6.0",
                    "findings": [{"version": "1.5.0", "paths": [". > axios", ". > b > axios"]}],
                }
            },
            {"info": 1, "low": 0, "moderate": 0, "high": 1, "critical": 0},
        )

        result = parse_pnpm_audit(output)
        vuln = result.vulnerabilities[0]

        assert vuln.package == "axios"
        assert vuln.severity is Severity.HIGH
        assert vuln.path == ". > axios"
        assert vuln.fix_available is True
        assert vuln.fix_version == "1.6.0"
        assert result.summary.high == 1
        assert result.summary.total == 2

    def test_no_fix_sentinel(self):
        """Should treat <0.0.0 as no fix available."""
        output = self._output(
            {"1": {"module_name": "request", "severity": "moderate", "patched_versions": "<0.0.0"}},
            {"moderate": 1},
        )

        vuln = parse_pnpm_audit(output).vulnerabilities[0]

        assert vuln.fix_available is False
        assert vuln.fix_version is None
        assert vuln.path == "request"
        assert vuln.title == "Unknown vulnerability"

    def test_error_payload(self):
        """Should return None when pnpm reports an error."""
        output = json.dumps({"error": {"code": "ERR_PNPM_AUDIT_NO_LOCKFILE", "message": "No lockfile"}})
        assert parse_pnpm_audit(output) is None


class TestYarnAudit:
    """Test yarn audit --json NDJSON parsing."""

    def _advisory(self, name, severity, path, patched=">=2.0.0"):
        return json.dumps(
            {
                "type": "auditAdvisory",
                "data": {
                    "resolution": {"path": path},
                    "advisory": {
                        "module_name": name,
                        "severity": severity,
                        "title": f"Issue in {name}",
                        "patched_versions": patched,
                    },
                },
            }
        )

    def test_advisories_with_summary(self):
        """Should use the auditSummary counts."""
        summary = json.dumps(
            {
                "type": "auditSummary",
                "data": {"vulnerabilities": {"info": 0, "low": 0, "moderate": 1, "high": 3, "critical": 0}},
            }
        )
        output = "\n".join([self._advisory("glob-parent", "moderate", "chokidar>glob-parent"), summary])

        result = parse_yarn_audit(output)

        assert result.vulnerabilities[0].path == "chokidar > glob-parent"
        assert result.vulnerabilities[0].fix_version == "2.0.0"
        assert result.summary == AuditSummary(critical=0, high=3, moderate=1, low=0, total=4)

    def test_counts_without_summary(self):
        """Should count advisories when no summary line exists."""
        output = "\n".join(
            [
                self._advisory("a", "critical", "a"),
                self._advisory("b", "medium", "x>b"),
                "not json",
            ]
        )

        result = parse_yarn_audit(output)

        assert result.summary == AuditSummary(critical=1, high=0, moderate=1, low=0, total=2)

    def test_nothing_usable(self):
        assert parse_yarn_audit(json.dumps({"type": "info", "data": {}})) is None


class TestHelpers:
    """Test severity mapping, command choice and dispatch."""

    def test_normalize_severity(self):
        assert normalize_severity("medium") is Severity.MODERATE
        assert normalize_severity("HIGH") is Severity.HIGH
        assert normalize_severity("bogus") is Severity.INFO
        assert normalize_severity(None) is Severity.INFO

    def test_bun_uses_npm_audit(self):
        assert audit_command(PackageManagerName.BUN) == ("npm", ["audit", "--json"])
        assert audit_command(PackageManagerName.PNPM) == ("pnpm", ["audit", "--json"])

    def test_dispatch_and_summary(self, sample_npm_audit):
        result = parse_audit(PackageManagerName.BUN, sample_npm_audit)
        security = summarize_security(result)

        assert security.critical == 2
        assert summarize_security(None) is None
