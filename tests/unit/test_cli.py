"""Tests for CLI functionality."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from apps.cli.main import app
from upkeep.errors import CommandSpawnError
from upkeep.exec import ExecResult


def _exec(stdout="", exit_code=0):
    return ExecResult(stdout=stdout, stderr="", exit_code=exit_code)


@pytest.fixture(autouse=True)
def quiet_logs(monkeypatch):
    """Keep log records off the captured output so stdout parses as JSON."""
    monkeypatch.setenv("UPKEEP_LOG_LEVEL", "fatal")
    monkeypatch.delenv("DEBUG", raising=False)


class TestCLI:
    """Test CLI command interface."""

    def setup_method(self):
        """Setup test fixtures."""
        self.runner = CliRunner()

    def test_cli_help_command(self):
        """Should display help when called with --help."""
        result = self.runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("detect", "deps", "audit", "quality", "imports", "dependabot", "risk"):
            assert command in result.stdout

    def test_no_command_shows_help(self):
        result = self.runner.invoke(app, [])

        assert result.exit_code == 0
        assert "Usage" in result.stdout

    def test_version(self):
        """Should print the version for both flag spellings."""
        for flag in ("--version", "-v"):
            result = self.runner.invoke(app, [flag])
            assert result.exit_code == 0
            assert result.stdout.strip() == "upkeep v0.1.4"

    def test_invalid_log_level(self):
        """Should reject an unknown log level with a JSON error."""
        result = self.runner.invoke(app, ["--log-level", "loud", "detect"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"].startswith("Invalid log level: loud")

    def test_detect(self, tmp_path, monkeypatch, write_file):
        """Should print the detected configuration as JSON."""
        write_file("yarn.lock")
        write_file("tsconfig.json", "{}")
        write_file("jest.config.js", "module.exports = {}")
        monkeypatch.chdir(tmp_path)

        result = self.runner.invoke(app, ["detect"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data == {
            "packageManager": "yarn",
            "lockfile": "yarn.lock",
            "typescript": True,
            "biome": False,
            "prettier": False,
            "testRunner": "jest",
            "coverage": False,
            "ci": None,
        }

    def test_deps_outdated_view(self, tmp_path, monkeypatch, write_package_json):
        """Should print only the outdated subset with --outdated."""
        write_package_json(dependencies={"react": "^17.0.2"})
        monkeypatch.chdir(tmp_path)
        outdated = json.dumps({"react": {"current": "17.0.2", "latest": "18.2.0"}})

        with patch("upkeep.exec.CommandRunner.run", new=AsyncMock(return_value=_exec(outdated, 1))):
            result = self.runner.invoke(app, ["deps", "--outdated"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data) == {"outdated", "major", "minor", "patch", "packages"}
        assert data["packages"] == [
            {"name": "react", "current": "17.0.2", "latest": "18.2.0", "updateType": "major", "isDevDep": False}
        ]

    def test_deps_full_view(self, tmp_path, monkeypatch, write_package_json):
        write_package_json(dependencies={"react": "^18.2.0"})
        monkeypatch.chdir(tmp_path)

        with patch("upkeep.exec.CommandRunner.run", new=AsyncMock(return_value=_exec("{}"))):
            result = self.runner.invoke(app, ["deps"])

        data = json.loads(result.stdout)
        assert data["total"] == 1
        assert data["outdated"] == 0
        assert data["security"] is None

    def test_deps_json_flag(self, tmp_path, monkeypatch, write_package_json):
        """Should accept --json and print the same document as without it."""
        write_package_json(dependencies={"react": "^18.2.0"})
        monkeypatch.chdir(tmp_path)

        with patch("upkeep.exec.CommandRunner.run", new=AsyncMock(return_value=_exec("{}"))):
            plain = self.runner.invoke(app, ["deps"])
            flagged = self.runner.invoke(app, ["deps", "--json"])

        assert flagged.exit_code == 0
        assert json.loads(flagged.stdout) == json.loads(plain.stdout)

    def test_audit(self, tmp_path, monkeypatch, sample_npm_audit):
        monkeypatch.chdir(tmp_path)

        with patch("upkeep.exec.CommandRunner.run", new=AsyncMock(return_value=_exec(sample_npm_audit, 1))):
            result = self.runner.invoke(app, ["audit"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["summary"]["critical"] == 2
        assert data["vulnerabilities"][0]["fixAvailable"] is True
        assert data["vulnerabilities"][0]["fixVersion"] == "0.5.6"

    def test_imports(self, tmp_path, monkeypatch, write_file):
        write_file("src/index.ts", "import { debounce } from 'lodash';\n")
        monkeypatch.chdir(tmp_path)

        result = self.runner.invoke(app, ["imports", "lodash"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["totalImports"] == 1
        assert data["files"] == [{"path": "src/index.ts", "imports": ["debounce"], "lines": [1]}]
        assert data["breakdown"]["namedImports"] == ["debounce"]

    def test_quality(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with patch("upkeep.exec.CommandRunner.run", new=AsyncMock(return_value=_exec())):
            result = self.runner.invoke(app, ["quality"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data) == {"score", "grade", "breakdown", "recommendations"}
        assert data["breakdown"]["deadCode"]["weight"] == 15
        assert data["recommendations"][0] == {"priority": "medium", "action": "Set up test coverage reporting"}

    def test_risk_with_explicit_versions(self, tmp_path, monkeypatch):
        """Should use the from and to keys in the JSON output."""
        monkeypatch.chdir(tmp_path)

        result = self.runner.invoke(app, ["risk", "lodash", "--from", "4.17.20", "--to", "4.17.21"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["from"] == "4.17.20"
        assert data["to"] == "4.17.21"
        assert data["updateType"] == "patch"
        assert data["riskScore"] == 5
        assert data["riskLevel"] == "low"

    def test_risk_unknown_package(self, tmp_path, monkeypatch, write_package_json):
        """Should exit 1 with a JSON error when the package is not declared."""
        write_package_json(dependencies={})
        monkeypatch.chdir(tmp_path)

        result = self.runner.invoke(app, ["risk", "left-pad"])

        assert result.exit_code == 1
        assert json.loads(result.stdout) == {"error": 'Package "left-pad" not found in package.json'}

    def test_dependabot_missing_gh(self, tmp_path, monkeypatch):
        """Should report a missing gh CLI as a typed error."""
        monkeypatch.chdir(tmp_path)
        run = AsyncMock(side_effect=CommandSpawnError("gh", ["--version"]))

        with patch("upkeep.exec.CommandRunner.run", new=run):
            result = self.runner.invoke(app, ["dependabot"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["type"] == "gh_not_installed"
        assert data["error"].startswith("GitHub CLI (gh) is not installed.")
