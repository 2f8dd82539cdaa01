"""Pytest configuration and fixtures."""

import json
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from loguru import logger

from upkeep.exec import CommandRunner, ExecResult


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers added by CLI invocations so later tests log nowhere."""
    yield
    logger.remove()


@pytest.fixture
def write_package_json(tmp_path) -> Callable[..., dict]:
    """Write a package.json into the temporary project directory."""

    def _write(**fields) -> dict:
        manifest = {"name": "test-project", **fields}
        (tmp_path / "package.json").write_text(json.dumps(manifest, indent=2))
        return manifest

    return _write


@pytest.fixture
def write_file(tmp_path) -> Callable[[str, str], None]:
    """Write a file relative to the temporary project directory."""

    def _write(relative: str, content: str = "") -> None:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    return _write


@pytest.fixture
def fake_runner() -> CommandRunner:
    """A CommandRunner whose ``run`` is an AsyncMock returning empty output."""
    runner = CommandRunner(timeout=5.0)
    runner.run = AsyncMock(return_value=ExecResult(stdout="", stderr="", exit_code=0))
    return runner


@pytest.fixture
def sample_npm_audit() -> str:
    """npm audit --json output with one advisory and one pass-through entry."""
    return json.dumps(
        {
            "auditReportVersion": 2,
            "vulnerabilities": {
                "minimist": {
                    "name": "minimist",
                    "severity": "critical",
                    "isDirect": False,
                    "via": [
                        {
                            "source": 1179,
                            "name": "minimist",
                            "title": "Prototype Pollution in minimist",
                            "severity": "critical",
                        }
                    ],
                    "effects": ["mkdirp"],
                    "range": "<0.2.4",
                    "fixAvailable": {"name": "mkdirp", "version": "0.5.6", "isSemVerMajor": False},
                },
                "mkdirp": {
                    "name": "mkdirp",
                    "severity": "critical",
                    "isDirect": True,
                    "via": ["minimist"],
                    "effects": [],
                    "range": "0.4.1 - 0.5.1",
                    "fixAvailable": True,
                },
            },
            "metadata": {
                "vulnerabilities": {
                    "info": 0,
                    "low": 0,
                    "moderate": 0,
                    "high": 0,
                    "critical": 2,
                    "total": 2,
                }
            },
        }
    )
