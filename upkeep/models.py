"""Core data models for Upkeep.

All models are value objects computed fresh per command invocation. Their
JSON form (``to_json``) uses the camelCase keys printed by the CLI.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any


class UpdateType(str, Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    NONE = "none"


class PackageManagerName(str, Enum):
    BUN = "bun"
    PNPM = "pnpm"
    YARN = "yarn"
    NPM = "npm"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    INFO = "info"


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CheckStatus(str, Enum):
    PASSING = "passing"
    FAILING = "failing"
    PENDING = "pending"
    NONE = "none"


def _json_key(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(part.title() for part in rest)


def to_json(value: Any) -> Any:
    """Convert models (recursively) into JSON-ready structures."""
    if is_dataclass(value) and not isinstance(value, type):
        return {
            f.metadata.get("json", _json_key(f.name)): to_json(getattr(value, f.name))
            for f in fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_json(item) for item in value]
    if isinstance(value, dict):
        return {key: to_json(item) for key, item in value.items()}
    return value


# ---------------------------------------------------------------------------
# Versions and package managers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SemverParts:
    """A parsed ``MAJOR.MINOR.PATCH[-prerelease][+build]`` version."""

    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None


@dataclass
class PackageManagerInfo:
    """Which package manager governs a project and how it was decided."""

    name: PackageManagerName
    lockfile: str | None
    install_command: str
    upgrade_command: str
    has_multiple_lockfiles: bool = False
    detected_lockfiles: list[str] = field(default_factory=list)
    corepack_spec: str | None = None


@dataclass
class DetectResult:
    """Project configuration reported by ``upkeep detect``."""

    package_manager: str
    lockfile: str | None
    typescript: bool
    biome: bool
    prettier: bool
    test_runner: str | None
    coverage: bool
    ci: str | None


# ---------------------------------------------------------------------------
# Dependencies and audits
# ---------------------------------------------------------------------------


@dataclass
class OutdatedPackage:
    """One package reported by a package manager's outdated check."""

    name: str
    current: str
    latest: str
    update_type: UpdateType
    is_dev_dep: bool = False


@dataclass
class Vulnerability:
    """One vulnerable package from an audit report."""

    package: str
    severity: Severity
    title: str
    path: str
    fix_available: bool
    fix_version: str | None = None


@dataclass
class AuditSummary:
    """Vulnerability counts; ``total`` may include an untracked info bucket."""

    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0
    total: int = 0


@dataclass
class AuditResult:
    vulnerabilities: list[Vulnerability]
    summary: AuditSummary


@dataclass
class SecuritySummary:
    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0


@dataclass
class DepsAnalysis:
    """Dependency health of a project."""

    total: int
    outdated: int
    major: int
    minor: int
    patch: int
    security: SecuritySummary | None
    packages: list[OutdatedPackage]


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


@dataclass
class ImportInfo:
    """A single import site of the target package."""

    line: int
    type: str  # named, default, namespace, require, dynamic, reexport
    specifiers: list[str] = field(default_factory=list)


@dataclass
class FileImportInfo:
    path: str
    imports: list[str]
    lines: list[int]


@dataclass
class ImportBreakdown:
    named_imports: list[str]
    default_imports: int
    namespace_imports: int


@dataclass
class ImportsAnalysis:
    package: str
    total_imports: int
    files: list[FileImportInfo]
    breakdown: ImportBreakdown


# ---------------------------------------------------------------------------
# Project signals consumed by the quality scorer
# ---------------------------------------------------------------------------


@dataclass
class CoverageAnalysis:
    found: bool
    percentage: int | None
    source: str | None  # istanbul, c8, vitest, unknown
    details: str


@dataclass
class TsConfigStrictFlags:
    strict: bool = False
    no_unchecked_indexed_access: bool = False
    no_implicit_returns: bool = False
    no_fallthrough_cases_in_switch: bool = False
    exact_optional_property_types: bool = False
    no_implicit_override: bool = False
    no_unused_locals: bool = False
    no_unused_parameters: bool = False


@dataclass
class TsConfigAnalysis:
    exists: bool
    strict: bool
    strict_flags: TsConfigStrictFlags
    score: int
    details: str


@dataclass
class LintingAnalysis:
    linter: str  # biome, eslint, none
    prettier: bool
    score: int
    details: str


# ---------------------------------------------------------------------------
# Quality score
# ---------------------------------------------------------------------------


@dataclass
class MetricBreakdown:
    score: int
    weight: int
    details: str


@dataclass
class QualityBreakdown:
    dependency_freshness: MetricBreakdown
    security: MetricBreakdown
    test_coverage: MetricBreakdown
    typescript_strictness: MetricBreakdown
    linting: MetricBreakdown
    dead_code: MetricBreakdown

    def metrics(self) -> list[MetricBreakdown]:
        return [getattr(self, f.name) for f in fields(self)]


@dataclass
class Recommendation:
    priority: str  # high, medium, low
    action: str


@dataclass
class QualityReport:
    score: int
    grade: Grade
    breakdown: QualityBreakdown
    recommendations: list[Recommendation]


# ---------------------------------------------------------------------------
# Upgrade risk
# ---------------------------------------------------------------------------


@dataclass
class RiskFactor:
    score: int
    reason: str


@dataclass
class RiskFactors:
    update_type: RiskFactor
    usage_scope: RiskFactor
    critical_paths: RiskFactor
    test_coverage: RiskFactor

    def total(self) -> int:
        return (
            self.update_type.score
            + self.usage_scope.score
            + self.critical_paths.score
            + self.test_coverage.score
        )


@dataclass
class CriticalPathResult:
    has_api_routes: bool = False
    has_middleware: bool = False
    has_auth: bool = False


@dataclass
class RiskAssessment:
    package: str
    from_version: str = field(metadata={"json": "from"})
    to_version: str = field(metadata={"json": "to"})
    update_type: UpdateType
    risk_score: int
    risk_level: RiskLevel
    factors: RiskFactors
    recommendations: list[str]


# ---------------------------------------------------------------------------
# Dependabot
# ---------------------------------------------------------------------------


@dataclass
class ParsedPRTitle:
    package: str
    from_version: str = field(metadata={"json": "from"})
    to_version: str = field(metadata={"json": "to"})


@dataclass
class DependabotPR:
    number: int
    title: str
    package: str
    from_version: str = field(metadata={"json": "from"})
    to_version: str = field(metadata={"json": "to"})
    update_type: UpdateType
    url: str
    created_at: str
    mergeable: bool
    checks: CheckStatus


@dataclass
class DependabotSummary:
    total: int = 0
    patch: int = 0
    minor: int = 0
    major: int = 0
    mergeable: int = 0


@dataclass
class DependabotResult:
    pull_requests: list[DependabotPR]
    summary: DependabotSummary


@dataclass
class DependabotError:
    """A prerequisite for talking to GitHub is missing."""

    type: str  # gh_not_installed, gh_not_authenticated, not_git_repo, no_github_remote
    message: str
