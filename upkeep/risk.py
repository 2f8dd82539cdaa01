"""Upgrade risk assessment.

The risk score is the plain sum of four factors:

- Update type: major 40, minor 15, patch 5
- Usage scope: up to 30 depending on how many files import the package
- Critical paths: up to 20 for use in API routes, middleware or auth code
- Test coverage: up to 10 when importing files have no tests
"""

import asyncio
import re
from pathlib import Path

from .errors import PackageNotFoundError, VersionResolutionError
from .imports import ImportScanner
from .log import LogContext
from .manifest import read_manifest
from .models import (
    CriticalPathResult,
    RiskAssessment,
    RiskFactor,
    RiskFactors,
    RiskLevel,
    UpdateType,
)
from .registry import RegistryClient
from .semver import get_update_type
from .utils import round_half_up

RANGE_PREFIX = re.compile(r"^[\^~>=<]+")
SOURCE_EXTENSION = re.compile(r"\.(ts|tsx|js|jsx|mjs|cjs)$")

API_PATTERN = re.compile(r"(?:^|/)api/")
ROUTES_PATTERN = re.compile(r"(?:^|/)routes/")
MIDDLEWARE_PATTERN = re.compile(r"middleware", re.IGNORECASE)
AUTH_PATTERN = re.compile(r"auth", re.IGNORECASE)

UPDATE_TYPE_FACTORS = {
    UpdateType.MAJOR: RiskFactor(40, "Major version bump"),
    UpdateType.MINOR: RiskFactor(15, "Minor version bump"),
    UpdateType.PATCH: RiskFactor(5, "Patch version bump"),
    UpdateType.NONE: RiskFactor(0, "No version change"),
}


def clean_version(version: str) -> str:
    """Strip range prefixes: ``^1.2.3`` becomes ``1.2.3``."""
    return RANGE_PREFIX.sub("", version)


def current_version(package: str, cwd: str | Path) -> str | None:
    """Declared version of a package in package.json, range prefix removed."""
    manifest = read_manifest(cwd)
    if manifest is None:
        return None
    version = manifest.version_of(package)
    return clean_version(version) if version else None


def score_update_type(update_type: UpdateType) -> RiskFactor:
    factor = UPDATE_TYPE_FACTORS[update_type]
    return RiskFactor(factor.score, factor.reason)


def score_usage_scope(file_count: int) -> RiskFactor:
    if file_count == 0:
        return RiskFactor(0, "Not used in any files")
    if file_count <= 5:
        plural = "s" if file_count > 1 else ""
        return RiskFactor(10, f"Used in {file_count} file{plural}")
    if file_count <= 20:
        return RiskFactor(20, f"Used in {file_count} files")
    return RiskFactor(30, f"Used in {file_count} files")


def detect_critical_paths(file_paths: list[str]) -> CriticalPathResult:
    result = CriticalPathResult()
    for path in file_paths:
        if API_PATTERN.search(path) or ROUTES_PATTERN.search(path):
            result.has_api_routes = True
        if MIDDLEWARE_PATTERN.search(path):
            result.has_middleware = True
        if AUTH_PATTERN.search(path):
            result.has_auth = True
    return result


def score_critical_paths(critical: CriticalPathResult) -> RiskFactor:
    score = 0
    reasons = []
    if critical.has_api_routes:
        score += 10
        reasons.append("API routes")
    if critical.has_middleware:
        score += 5
        reasons.append("middleware")
    if critical.has_auth:
        score += 5
        reasons.append("auth")

    if not reasons:
        return RiskFactor(0, "Not used in critical paths")
    return RiskFactor(min(score, 20), f"Used in {' and '.join(reasons)}")


def candidate_test_files(file_path: str) -> list[str]:
    """Conventional test file locations for a source file.

    For ``src/lib/util.ts`` these are ``src/lib/util.test.ts``,
    ``src/lib/util.spec.ts``, ``src/lib/__tests__/util.ts`` and
    ``tests/lib/util.test.ts``.
    """
    match = SOURCE_EXTENSION.search(file_path)
    ext = match.group(0) if match else ".ts"
    base = file_path[: match.start()] if match else file_path

    directory, _, name = base.rpartition("/")
    tests_dir = f"{directory}/__tests__" if directory else "__tests__"

    candidates = [
        f"{base}.test{ext}",
        f"{base}.spec{ext}",
        f"{tests_dir}/{name}{ext}",
    ]
    if base.startswith("src/"):
        candidates.append(f"tests/{base[len('src/'):]}.test{ext}")
    return candidates


def has_test_file(file_path: str, cwd: str | Path) -> bool:
    root = Path(cwd)
    return any((root / candidate).is_file() for candidate in candidate_test_files(file_path))


def percent_with_tests(file_paths: list[str], cwd: str | Path) -> int:
    """Percentage of files with a test file; 100 when there are no files."""
    if not file_paths:
        return 100
    with_tests = sum(1 for path in file_paths if has_test_file(path, cwd))
    return round_half_up(with_tests / len(file_paths) * 100)


def score_test_coverage(percent: int) -> RiskFactor:
    if percent > 50:
        return RiskFactor(0, f"{percent}% of importing files have tests")
    if percent > 0:
        return RiskFactor(5, f"{percent}% of importing files have tests")
    return RiskFactor(10, "No importing files have tests")


def get_risk_level(score: int) -> RiskLevel:
    """0-25 low, 26-50 medium, 51-75 high, above 75 critical."""
    if score <= 25:
        return RiskLevel.LOW
    if score <= 50:
        return RiskLevel.MEDIUM
    if score <= 75:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def generate_recommendations(
    package: str,
    update_type: UpdateType,
    factors: RiskFactors,
    critical: CriticalPathResult,
) -> list[str]:
    recommendations = []

    if update_type is UpdateType.MAJOR:
        recommendations.append(f"Review {package} migration guide")
        recommendations.append("Run full test suite after upgrade")
    elif update_type is UpdateType.MINOR:
        recommendations.append(f"Check {package} changelog for new features")

    if factors.usage_scope.score >= 20:
        recommendations.append("Consider incremental rollout")

    if critical.has_api_routes:
        recommendations.append("Test API routes manually")
    if critical.has_auth:
        recommendations.append("Verify auth flows")
    if critical.has_middleware:
        recommendations.append("Check middleware compatibility")

    if factors.test_coverage.score >= 5:
        recommendations.append("Add tests before upgrading")

    return recommendations


class RiskScorer:
    """Estimates how risky upgrading a single package would be."""

    def __init__(
        self,
        registry: RegistryClient | None = None,
        scanner: ImportScanner | None = None,
        logs: LogContext | None = None,
    ):
        self.logs = logs or LogContext()
        self.registry = registry or RegistryClient(logs=self.logs)
        self.scanner = scanner or ImportScanner(self.logs)
        self.log = self.logs.child("risk")

    async def assess(
        self,
        package: str,
        cwd: str | Path = ".",
        from_version: str | None = None,
        to_version: str | None = None,
    ) -> RiskAssessment:
        """Assess the risk of upgrading ``package``.

        Args:
            package: Package name
            cwd: Project directory
            from_version: Current version; read from package.json when omitted
            to_version: Target version; the latest published when omitted

        Returns:
            Risk score, level, contributing factors and recommendations

        Raises:
            PackageNotFoundError: ``from_version`` was omitted and the package
                is not declared in package.json
            VersionResolutionError: ``to_version`` was omitted and the latest
                version could not be resolved
        """
        self.log.info("Starting risk assessment for {package}", package=package, cwd=str(cwd))

        if not from_version:
            from_version = current_version(package, cwd)
            if not from_version:
                raise PackageNotFoundError(package)

        if not to_version:
            to_version = await self.registry.latest_version(package, cwd)
            if not to_version:
                raise VersionResolutionError(package)

        self.log.debug("Versions determined", from_version=from_version, to_version=to_version)
        update_type = get_update_type(from_version, to_version)

        analysis = await asyncio.to_thread(self.scanner.scan, package, cwd)
        file_paths = [f.path for f in analysis.files]
        critical = detect_critical_paths(file_paths)
        coverage = await asyncio.to_thread(percent_with_tests, file_paths, cwd)

        factors = RiskFactors(
            update_type=score_update_type(update_type),
            usage_scope=score_usage_scope(len(file_paths)),
            critical_paths=score_critical_paths(critical),
            test_coverage=score_test_coverage(coverage),
        )
        risk_score = factors.total()
        risk_level = get_risk_level(risk_score)

        self.log.info(
            "Risk assessment complete",
            package=package,
            risk_score=risk_score,
            risk_level=risk_level.value,
        )
        return RiskAssessment(
            package=package,
            from_version=from_version,
            to_version=to_version,
            update_type=update_type,
            risk_score=risk_score,
            risk_level=risk_level,
            factors=factors,
            recommendations=generate_recommendations(package, update_type, factors, critical),
        )
