"""Tests for the upgrade risk scorer."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from upkeep.errors import PackageNotFoundError, VersionResolutionError
from upkeep.models import CriticalPathResult, RiskFactor, RiskFactors, RiskLevel, UpdateType
from upkeep.registry import RegistryClient
from upkeep.risk import (
    RiskScorer,
    candidate_test_files,
    clean_version,
    current_version,
    detect_critical_paths,
    generate_recommendations,
    get_risk_level,
    percent_with_tests,
    score_critical_paths,
    score_test_coverage,
    score_update_type,
    score_usage_scope,
)


class TestFactors:
    """Test the individual risk factors."""

    def test_update_type(self):
        assert score_update_type(UpdateType.MAJOR) == RiskFactor(40, "Major version bump")
        assert score_update_type(UpdateType.MINOR).score == 15
        assert score_update_type(UpdateType.PATCH).score == 5
        assert score_update_type(UpdateType.NONE) == RiskFactor(0, "No version change")

    @pytest.mark.parametrize(
        "count, score, reason",
        [
            (0, 0, "Not used in any files"),
            (1, 10, "Used in 1 file"),
            (5, 10, "Used in 5 files"),
            (6, 20, "Used in 6 files"),
            (20, 20, "Used in 20 files"),
            (21, 30, "Used in 21 files"),
        ],
    )
    def test_usage_scope(self, count, score, reason):
        assert score_usage_scope(count) == RiskFactor(score, reason)

    def test_critical_paths(self):
        """Should flag API routes, middleware and auth paths."""
        critical = detect_critical_paths(
            ["src/api/users.ts", "src/middleware/cors.ts", "src/lib/authHelpers.ts"]
        )

        assert critical == CriticalPathResult(True, True, True)
        assert score_critical_paths(critical) == RiskFactor(20, "Used in API routes and middleware and auth")

    def test_routes_directory(self):
        critical = detect_critical_paths(["routes/index.js"])

        assert critical.has_api_routes is True
        assert score_critical_paths(critical) == RiskFactor(10, "Used in API routes")

    def test_no_critical_paths(self):
        critical = detect_critical_paths(["src/components/Button.tsx", "src/rapid/x.ts"])
        assert score_critical_paths(critical) == RiskFactor(0, "Not used in critical paths")

    def test_test_coverage_factor(self):
        assert score_test_coverage(100).score == 0
        assert score_test_coverage(51).score == 0
        assert score_test_coverage(50) == RiskFactor(5, "50% of importing files have tests")
        assert score_test_coverage(0) == RiskFactor(10, "No importing files have tests")

    @pytest.mark.parametrize(
        "score, level",
        [
            (0, RiskLevel.LOW),
            (25, RiskLevel.LOW),
            (26, RiskLevel.MEDIUM),
            (50, RiskLevel.MEDIUM),
            (51, RiskLevel.HIGH),
            (75, RiskLevel.HIGH),
            (76, RiskLevel.CRITICAL),
            (100, RiskLevel.CRITICAL),
        ],
    )
    def test_risk_levels(self, score, level):
        assert get_risk_level(score) is level


class TestTestFileLookup:
    """Test conventional test file locations."""

    def test_candidates(self):
        assert candidate_test_files("src/lib/util.ts") == [
            "src/lib/util.test.ts",
            "src/lib/util.spec.ts",
            "src/lib/__tests__/util.ts",
            "tests/lib/util.test.ts",
        ]

    def test_root_file(self):
        assert candidate_test_files("index.js") == [
            "index.test.js",
            "index.spec.js",
            "__tests__/index.js",
        ]

    def test_percent(self, tmp_path, write_file):
        write_file("src/a.ts")
        write_file("src/a.test.ts")
        write_file("src/b.tsx")
        write_file("src/__tests__/c.js")

        assert percent_with_tests(["src/a.ts", "src/b.tsx", "src/c.js"], tmp_path) == 67
        assert percent_with_tests([], tmp_path) == 100


class TestVersions:
    def test_clean_version(self):
        assert clean_version("^1.2.3") == "1.2.3"
        assert clean_version(">=2.0.0") == "2.0.0"
        assert clean_version("1.0.0") == "1.0.0"

    def test_current_version(self, tmp_path, write_package_json):
        write_package_json(dependencies={"react": "^18.2.0"}, devDependencies={"vitest": "~1.2.0"})

        assert current_version("react", tmp_path) == "18.2.0"
        assert current_version("vitest", tmp_path) == "1.2.0"
        assert current_version("vue", tmp_path) is None


class TestRecommendations:
    def _factors(self, usage=10, tests=0):
        return RiskFactors(
            update_type=RiskFactor(40, "Major version bump"),
            usage_scope=RiskFactor(usage, ""),
            critical_paths=RiskFactor(0, ""),
            test_coverage=RiskFactor(tests, ""),
        )

    def test_major(self):
        recommendations = generate_recommendations(
            "react", UpdateType.MAJOR, self._factors(usage=20, tests=5), CriticalPathResult(has_auth=True)
        )

        assert recommendations == [
            "Review react migration guide",
            "Run full test suite after upgrade",
            "Consider incremental rollout",
            "Verify auth flows",
            "Add tests before upgrading",
        ]

    def test_patch(self):
        assert generate_recommendations("ms", UpdateType.PATCH, self._factors(), CriticalPathResult()) == []


def _registry(version):
    registry = MagicMock(spec=RegistryClient)
    registry.latest_version = AsyncMock(return_value=version)
    return registry


class TestRiskScorer:
    """Test the end-to-end assessment."""

    @pytest.mark.asyncio
    async def test_high_risk_upgrade(self, tmp_path, write_file, write_package_json):
        """Should score a major bump used widely in api and auth code."""
        write_package_json(dependencies={"express": "^4.18.2"})
        for i in range(20):
            write_file(f"src/api/route{i}.ts", "import express from 'express';\n")
        write_file("src/auth/session.ts", "import { Router } from 'express';\n")
        write_file("src/server.ts", "const express = require('express');\n")

        assessment = await RiskScorer(_registry("5.0.0")).assess("express", tmp_path)

        assert assessment.from_version == "4.18.2"
        assert assessment.to_version == "5.0.0"
        assert assessment.update_type is UpdateType.MAJOR
        assert assessment.factors.usage_scope == RiskFactor(30, "Used in 22 files")
        assert assessment.factors.critical_paths == RiskFactor(15, "Used in API routes and auth")
        assert assessment.factors.test_coverage.score == 10
        assert assessment.risk_score == 95
        assert assessment.risk_level is RiskLevel.CRITICAL
        assert "Test API routes manually" in assessment.recommendations

    @pytest.mark.asyncio
    async def test_explicit_versions(self, tmp_path):
        """Should not consult package.json or the registry when versions are given."""
        registry = _registry(None)

        assessment = await RiskScorer(registry).assess("lodash", tmp_path, "4.17.20", "4.17.21")

        registry.latest_version.assert_not_awaited()
        assert assessment.update_type is UpdateType.PATCH
        assert assessment.factors.usage_scope.score == 0
        # Unused packages have no importing files and count as fully tested
        assert assessment.factors.test_coverage.score == 0
        assert assessment.risk_score == 5
        assert assessment.risk_level is RiskLevel.LOW

    @pytest.mark.asyncio
    async def test_package_not_found(self, tmp_path, write_package_json):
        write_package_json(dependencies={})

        with pytest.raises(PackageNotFoundError, match='Package "left-pad" not found in package.json'):
            await RiskScorer(_registry("1.3.0")).assess("left-pad", tmp_path)

    @pytest.mark.asyncio
    async def test_version_unresolvable(self, tmp_path, write_package_json):
        write_package_json(dependencies={"private-pkg": "1.0.0"})

        with pytest.raises(VersionResolutionError, match='Could not fetch latest version for "private-pkg"'):
            await RiskScorer(_registry(None)).assess("private-pkg", tmp_path)
