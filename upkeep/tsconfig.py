"""TypeScript compiler strictness analysis."""

from pathlib import Path

from .log import LogContext
from .manifest import read_tsconfig
from .models import TsConfigAnalysis, TsConfigStrictFlags

# Points per flag; the six sum to 100.
FLAG_SCORES = {
    "strict": 40,
    "no_unchecked_indexed_access": 20,
    "no_implicit_returns": 10,
    "no_fallthrough_cases_in_switch": 10,
    "exact_optional_property_types": 10,
    "no_implicit_override": 10,
}

# Names as written in tsconfig.json, used in the details text.
FLAG_NAMES = {
    "strict": "strict",
    "no_unchecked_indexed_access": "noUncheckedIndexedAccess",
    "no_implicit_returns": "noImplicitReturns",
    "no_fallthrough_cases_in_switch": "noFallthroughCasesInSwitch",
    "exact_optional_property_types": "exactOptionalPropertyTypes",
    "no_implicit_override": "noImplicitOverride",
}


def calculate_score(flags: TsConfigStrictFlags) -> int:
    return sum(points for flag, points in FLAG_SCORES.items() if getattr(flags, flag))


def generate_details(flags: TsConfigStrictFlags, score: int) -> str:
    if score == 100:
        return "All strict flags enabled"

    enabled = [FLAG_NAMES[flag] for flag in FLAG_SCORES if getattr(flags, flag)]
    disabled = [FLAG_NAMES[flag] for flag in FLAG_SCORES if not getattr(flags, flag)]

    if not enabled:
        return "No strict flags enabled"
    if len(disabled) <= 2:
        return f"Missing: {', '.join(disabled)}"
    return f"Enabled: {', '.join(enabled)}"


class TsConfigAnalyzer:
    """Scores the strictness flags of a project's tsconfig.json.

    Only the top-level file is read; an ``extends`` chain is not resolved.
    """

    def __init__(self, logs: LogContext | None = None):
        self.log = (logs or LogContext()).child("tsconfig")

    def analyze(self, cwd: str | Path = ".") -> TsConfigAnalysis:
        self.log.info("Starting tsconfig analysis in {cwd}", cwd=str(cwd))

        config = read_tsconfig(cwd)
        if config is None:
            self.log.info("No tsconfig.json found")
            return TsConfigAnalysis(
                exists=False,
                strict=False,
                strict_flags=TsConfigStrictFlags(),
                score=0,
                details="No tsconfig.json found",
            )

        if config.extends:
            self.log.debug("tsconfig extends another config", extends=config.extends)

        options = config.compiler_options
        flags = TsConfigStrictFlags(
            strict=options.strict,
            no_unchecked_indexed_access=options.no_unchecked_indexed_access,
            no_implicit_returns=options.no_implicit_returns,
            no_fallthrough_cases_in_switch=options.no_fallthrough_cases_in_switch,
            exact_optional_property_types=options.exact_optional_property_types,
            no_implicit_override=options.no_implicit_override,
            no_unused_locals=options.no_unused_locals,
            no_unused_parameters=options.no_unused_parameters,
        )
        score = calculate_score(flags)

        self.log.info("tsconfig analysis complete", score=score, strict=flags.strict)
        return TsConfigAnalysis(
            exists=True,
            strict=flags.strict,
            strict_flags=flags,
            score=score,
            details=generate_details(flags, score),
        )
