"""Linter and formatter setup analysis."""

from pathlib import Path

from .detect import BIOME_CONFIGS, PRETTIER_CONFIGS, any_file_exists
from .log import LogContext
from .manifest import read_manifest
from .models import LintingAnalysis

ESLINT_CONFIGS = (
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.mjs",
    ".eslintrc.json",
    ".eslintrc.yaml",
    ".eslintrc.yml",
    "eslint.config.js",
    "eslint.config.mjs",
    "eslint.config.cjs",
    "eslint.config.ts",
)


def calculate_score(linter: str, prettier: bool) -> int:
    """Biome 100, ESLint + Prettier 80, ESLint 50, Prettier alone 20, nothing 0."""
    if linter == "biome":
        return 100
    if linter == "eslint":
        return 80 if prettier else 50
    return 20 if prettier else 0


def generate_details(linter: str, prettier: bool) -> str:
    if linter == "biome":
        return "Biome configured"
    if linter == "eslint":
        return "ESLint + Prettier configured" if prettier else "ESLint configured (no Prettier)"
    if prettier:
        return "Prettier only (no linter)"
    return "No linting configured"


class LintingAnalyzer:
    def __init__(self, logs: LogContext | None = None):
        self.log = (logs or LogContext()).child("linting")

    def analyze(self, cwd: str | Path = ".") -> LintingAnalysis:
        """Detect Biome, ESLint and Prettier and score the combination.

        Biome takes precedence over ESLint, and Prettier is ignored when
        Biome is present since Biome also formats.
        """
        root = Path(cwd)
        self.log.info("Starting linting analysis in {cwd}", cwd=str(root))

        manifest = read_manifest(root)
        has_biome = any_file_exists(root, BIOME_CONFIGS)
        has_eslint = any_file_exists(root, ESLINT_CONFIGS) or bool(
            manifest and manifest.eslint_config
        )
        has_prettier = any_file_exists(root, PRETTIER_CONFIGS) or bool(
            manifest and manifest.prettier
        )

        if has_biome:
            linter = "biome"
        elif has_eslint:
            linter = "eslint"
        else:
            linter = "none"
        prettier = False if has_biome else has_prettier

        score = calculate_score(linter, prettier)
        self.log.info("Linting analysis complete", linter=linter, prettier=prettier, score=score)
        return LintingAnalysis(
            linter=linter,
            prettier=prettier,
            score=score,
            details=generate_details(linter, prettier),
        )
