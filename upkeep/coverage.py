"""Test coverage report discovery."""

import json
from pathlib import Path

from .log import LogContext
from .manifest import read_manifest
from .models import CoverageAnalysis
from .utils import round_half_up

ISTANBUL_SUMMARIES = ("coverage/coverage-summary.json", ".nyc_output/coverage-summary.json")
LCOV_REPORTS = ("coverage/lcov.info", "lcov.info")


class CoverageAnalyzer:
    """Reads line coverage from Istanbul summaries or lcov reports."""

    def __init__(self, logs: LogContext | None = None):
        self.log = (logs or LogContext()).child("coverage")

    def analyze(self, cwd: str | Path = ".") -> CoverageAnalysis:
        """Find the line coverage percentage of a project.

        Looks for, in order:
        - coverage/coverage-summary.json or .nyc_output/coverage-summary.json
          (Istanbul format, written by nyc, c8 and Vitest)
        - coverage/lcov.info or lcov.info

        Args:
            cwd: Project directory

        Returns:
            Coverage analysis; ``found`` is False when no report exists
        """
        root = Path(cwd)
        self.log.info("Starting coverage analysis in {cwd}", cwd=str(root))

        percentage = self.istanbul_percentage(root)
        if percentage is None:
            percentage = self.lcov_percentage(root)

        if percentage is None:
            self.log.info("No coverage data found")
            return CoverageAnalysis(
                found=False, percentage=None, source=None, details="No coverage data found"
            )

        source = self.detect_source(root)
        self.log.info("Coverage analysis complete", percentage=percentage, source=source)
        return CoverageAnalysis(
            found=True,
            percentage=percentage,
            source=source,
            details=f"{percentage}% line coverage",
        )

    def istanbul_percentage(self, root: Path) -> int | None:
        for relative in ISTANBUL_SUMMARIES:
            path = root / relative
            if not path.is_file():
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                pct = data["total"]["lines"]["pct"]
            except (OSError, ValueError, KeyError, TypeError) as exc:
                self.log.debug("Failed to parse Istanbul coverage {path}: {error}", path=str(path), error=exc)
                continue
            if isinstance(pct, (int, float)):
                self.log.debug("Found Istanbul coverage", path=str(path), percentage=pct)
                return round_half_up(pct)
        return None

    def lcov_percentage(self, root: Path) -> int | None:
        for relative in LCOV_REPORTS:
            path = root / relative
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                self.log.debug("Failed to read lcov report {path}: {error}", path=str(path), error=exc)
                continue

            lines_found, lines_hit = parse_lcov_totals(content)
            if lines_found > 0:
                percentage = round_half_up(lines_hit / lines_found * 100)
                self.log.debug(
                    "Found lcov coverage",
                    path=str(path),
                    percentage=percentage,
                    lines_found=lines_found,
                    lines_hit=lines_hit,
                )
                return percentage
        return None

    def detect_source(self, root: Path) -> str:
        """Name the tool that most likely wrote the report."""
        manifest = read_manifest(root)
        deps = manifest.all_dependencies() if manifest else {}

        if "@vitest/coverage-v8" in deps or "@vitest/coverage-istanbul" in deps:
            return "vitest"
        if "c8" in deps:
            return "c8"
        if "nyc" in deps or "istanbul" in deps:
            return "istanbul"
        return "unknown"


def _int_after_prefix(line: str) -> int:
    try:
        return int(line[3:].strip())
    except ValueError:
        return 0


def parse_lcov_totals(content: str) -> tuple[int, int]:
    """Sum the ``LF`` (lines found) and ``LH`` (lines hit) records of an lcov report."""
    lines_found = 0
    lines_hit = 0
    for line in content.splitlines():
        if line.startswith("LF:"):
            lines_found += _int_after_prefix(line)
        elif line.startswith("LH:"):
            lines_hit += _int_after_prefix(line)
    return lines_found, lines_hit
