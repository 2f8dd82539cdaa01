"""Quality score for JavaScript/TypeScript projects.

The score is a weighted mean of six metrics:

- Dependency freshness (20)
- Security (25)
- Test coverage (20)
- TypeScript strictness (10)
- Linting setup (10)
- Dead code (15)
"""

import asyncio
from pathlib import Path

from .audit import AuditAnalyzer
from .coverage import CoverageAnalyzer
from .deps import DepsAnalyzer
from .exec import CommandRunner
from .linting import LintingAnalyzer
from .log import LogContext
from .models import Grade, MetricBreakdown, QualityBreakdown, QualityReport, Recommendation
from .tsconfig import TsConfigAnalyzer
from .utils import round_half_up

WEIGHTS = {
    "dependency_freshness": 20,
    "security": 25,
    "test_coverage": 20,
    "typescript_strictness": 10,
    "linting": 10,
    "dead_code": 15,
}


def get_grade(score: int) -> Grade:
    """A: 90-100, B: 80-89, C: 70-79, D: 60-69, F: below 60."""
    if score >= 90:
        return Grade.A
    if score >= 80:
        return Grade.B
    if score >= 70:
        return Grade.C
    if score >= 60:
        return Grade.D
    return Grade.F


def dependency_freshness_score(total: int, outdated: int) -> MetricBreakdown:
    """Share of dependencies that are up to date."""
    weight = WEIGHTS["dependency_freshness"]
    if total == 0:
        return MetricBreakdown(score=100, weight=weight, details="No dependencies")

    score = max(0, round_half_up((total - outdated) / total * 100))
    if outdated == 0:
        details = "All packages up-to-date"
    else:
        details = f"{outdated} of {total} packages outdated"
    return MetricBreakdown(score=score, weight=weight, details=details)


def security_score(critical: int, high: int, moderate: int, low: int) -> MetricBreakdown:
    """Start at 100 and deduct 25/15/5/2 per critical/high/moderate/low finding."""
    weight = WEIGHTS["security"]
    if critical + high + moderate + low == 0:
        return MetricBreakdown(score=100, weight=weight, details="No vulnerabilities found")

    deduction = critical * 25 + high * 15 + moderate * 5 + low * 2
    parts = [
        f"{count} {label}"
        for count, label in (
            (critical, "critical"),
            (high, "high"),
            (moderate, "moderate"),
            (low, "low"),
        )
        if count > 0
    ]
    return MetricBreakdown(
        score=max(0, 100 - deduction),
        weight=weight,
        details=f"{', '.join(parts)} vulnerabilities",
    )


def coverage_score(found: bool, percentage: int | None) -> MetricBreakdown:
    weight = WEIGHTS["test_coverage"]
    if not found or percentage is None:
        return MetricBreakdown(score=0, weight=weight, details="No coverage data found")
    return MetricBreakdown(score=percentage, weight=weight, details=f"{percentage}% line coverage")


def typescript_strictness_score(exists: bool, score: int, details: str) -> MetricBreakdown:
    weight = WEIGHTS["typescript_strictness"]
    if not exists:
        return MetricBreakdown(score=0, weight=weight, details="No tsconfig.json found")
    return MetricBreakdown(score=score, weight=weight, details=details)


def linting_score(score: int, details: str) -> MetricBreakdown:
    return MetricBreakdown(score=score, weight=WEIGHTS["linting"], details=details)


def dead_code_score(no_unused_locals: bool, no_unused_parameters: bool) -> MetricBreakdown:
    """Heuristic stand-in for dead code detection.

    A neutral 50, plus 25 for each of noUnusedLocals and noUnusedParameters.
    """
    score = 50
    flags = []
    if no_unused_locals:
        score += 25
        flags.append("noUnusedLocals")
    if no_unused_parameters:
        score += 25
        flags.append("noUnusedParameters")

    if flags:
        details = f"Enabled: {', '.join(flags)}"
    else:
        details = "Automated dead code detection not implemented"
    return MetricBreakdown(score=score, weight=WEIGHTS["dead_code"], details=details)


def overall_score(breakdown: QualityBreakdown) -> int:
    """Weighted mean of all metrics, rounded half up."""
    metrics = breakdown.metrics()
    total_weight = sum(m.weight for m in metrics)
    if total_weight == 0:
        return 0
    return round_half_up(sum(m.score * m.weight for m in metrics) / total_weight)


def generate_recommendations(breakdown: QualityBreakdown) -> list[Recommendation]:
    """Suggest fixes, security first."""
    recommendations: list[Recommendation] = []

    security = breakdown.security
    if security.score < 100:
        if "critical" in security.details:
            recommendations.append(
                Recommendation("high", "Fix critical severity vulnerabilities immediately")
            )
        if "high" in security.details:
            recommendations.append(Recommendation("high", "Fix high severity vulnerabilities"))
        if "moderate" in security.details:
            recommendations.append(
                Recommendation("medium", "Address moderate severity vulnerabilities")
            )

    freshness = breakdown.dependency_freshness.score
    if freshness < 70:
        recommendations.append(Recommendation("medium", "Update outdated dependencies"))
    elif freshness < 90:
        recommendations.append(
            Recommendation("low", "Consider updating remaining outdated packages")
        )

    coverage = breakdown.test_coverage
    if coverage.score == 0 and "No coverage" in coverage.details:
        recommendations.append(Recommendation("medium", "Set up test coverage reporting"))
    elif coverage.score < 50:
        recommendations.append(
            Recommendation("medium", "Increase test coverage (currently below 50%)")
        )
    elif coverage.score < 80:
        recommendations.append(Recommendation("low", "Improve test coverage to 80%+"))

    strictness = breakdown.typescript_strictness
    if strictness.score == 0:
        if "No tsconfig" in strictness.details:
            recommendations.append(Recommendation("medium", "Add TypeScript to the project"))
    elif strictness.score < 40:
        recommendations.append(Recommendation("medium", 'Enable "strict": true in tsconfig.json'))
    elif strictness.score < 100 and "noUncheckedIndexedAccess" in strictness.details:
        recommendations.append(
            Recommendation("low", "Enable noUncheckedIndexedAccess in tsconfig")
        )

    linting = breakdown.linting
    if linting.score == 0:
        recommendations.append(Recommendation("medium", "Set up a linter (Biome or ESLint)"))
    elif linting.score < 80 and "no Prettier" in linting.details:
        recommendations.append(
            Recommendation("low", "Add Prettier for consistent code formatting")
        )

    return recommendations


class QualityScorer:
    """Runs every analyzer and folds the results into a graded report."""

    def __init__(self, runner: CommandRunner | None = None, logs: LogContext | None = None):
        """Initialize the scorer.

        Args:
            runner: Command runner shared by the deps and audit analyzers
            logs: Log context used to create the component loggers
        """
        self.logs = logs or LogContext()
        runner = runner or CommandRunner(logs=self.logs)
        self.deps = DepsAnalyzer(runner, self.logs)
        self.audit = AuditAnalyzer(runner, self.logs)
        self.coverage = CoverageAnalyzer(self.logs)
        self.tsconfig = TsConfigAnalyzer(self.logs)
        self.linting = LintingAnalyzer(self.logs)
        self.log = self.logs.child("quality")

    async def assess(self, cwd: str | Path = ".") -> QualityReport:
        """Assess the quality of a project.

        Args:
            cwd: Project directory

        Returns:
            Score, grade, per-metric breakdown and recommendations
        """
        self.log.info("Starting quality assessment in {cwd}", cwd=str(cwd))

        deps, audit, coverage, tsconfig, linting = await asyncio.gather(
            self.deps.analyze(cwd),
            self.audit.analyze(cwd),
            asyncio.to_thread(self.coverage.analyze, cwd),
            asyncio.to_thread(self.tsconfig.analyze, cwd),
            asyncio.to_thread(self.linting.analyze, cwd),
        )
        self.log.debug(
            "Analyzer results",
            deps={"total": deps.total, "outdated": deps.outdated},
            audit=audit.summary,
            coverage={"found": coverage.found, "percentage": coverage.percentage},
            tsconfig={"exists": tsconfig.exists, "score": tsconfig.score},
            linting={"linter": linting.linter, "score": linting.score},
        )

        summary = audit.summary
        breakdown = QualityBreakdown(
            dependency_freshness=dependency_freshness_score(deps.total, deps.outdated),
            security=security_score(summary.critical, summary.high, summary.moderate, summary.low),
            test_coverage=coverage_score(coverage.found, coverage.percentage),
            typescript_strictness=typescript_strictness_score(
                tsconfig.exists, tsconfig.score, tsconfig.details
            ),
            linting=linting_score(linting.score, linting.details),
            dead_code=dead_code_score(
                tsconfig.strict_flags.no_unused_locals,
                tsconfig.strict_flags.no_unused_parameters,
            ),
        )

        score = overall_score(breakdown)
        grade = get_grade(score)
        recommendations = generate_recommendations(breakdown)

        self.log.info(
            "Quality assessment complete",
            score=score,
            grade=grade.value,
            recommendation_count=len(recommendations),
        )
        return QualityReport(
            score=score, grade=grade, breakdown=breakdown, recommendations=recommendations
        )
