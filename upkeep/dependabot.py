"""Dependabot pull request analysis through the GitHub CLI."""

import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import CommandError
from .exec import CommandRunner
from .log import LogContext
from .models import (
    CheckStatus,
    DependabotError,
    DependabotPR,
    DependabotResult,
    DependabotSummary,
    ParsedPRTitle,
    UpdateType,
)
from .semver import get_update_type

DEPENDABOT_AUTHORS = ("app/dependabot", "dependabot[bot]")
PR_FIELDS = "number,title,url,createdAt,mergeable,statusCheckRollup"

TITLE_PATTERN = re.compile(
    r"^(?:Bump|Update)\s+((?:@[\w-]+/)?[\w.-]+)(?:\s+requirement)?"
    r"\s+from\s+(\S+)\s+to\s+(\S+)(?:\s+in\s+.*)?$",
    re.IGNORECASE,
)
VERSION_PREFIX = re.compile(r"^[\^~>=<v]+")

FAILING_CONCLUSIONS = {"FAILURE", "TIMED_OUT", "CANCELLED"}
NEUTRAL_CONCLUSIONS = {"NEUTRAL", "SKIPPED", "ACTION_REQUIRED", "STALE"}
PENDING_STATES = {"PENDING", "EXPECTED"}
FAILING_STATES = {"FAILURE", "ERROR"}
PENDING_STATUSES = {"IN_PROGRESS", "QUEUED", "WAITING"}

PREREQUISITE_MESSAGES = {
    "gh_not_installed": (
        "GitHub CLI (gh) is not installed. "
        "Install it from https://cli.github.com/ and run 'gh auth login'."
    ),
    "gh_not_authenticated": "GitHub CLI is not authenticated. Run 'gh auth login' to authenticate.",
    "not_git_repo": (
        "Current directory is not a git repository. "
        "Run this command from within a git repository."
    ),
    "no_github_remote": (
        "Could not find a GitHub remote for this repository. "
        "Ensure the repository is hosted on GitHub."
    ),
}

# Checked in order; the first failing check is reported.
PREREQUISITES = (
    ("gh_not_installed", "gh", ["--version"]),
    ("gh_not_authenticated", "gh", ["auth", "status"]),
    ("not_git_repo", "git", ["rev-parse", "--git-dir"]),
    ("no_github_remote", "gh", ["repo", "view", "--json", "name"]),
)


class GhCheck(BaseModel):
    """One entry of ``statusCheckRollup``: a CheckRun or a StatusContext."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    typename: str | None = Field(default=None, alias="__typename")
    conclusion: str | None = None
    status: str | None = None
    state: str | None = None


class GhPullRequest(BaseModel):
    """A pull request as listed by ``gh pr list --json``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    number: int
    title: str
    url: str = ""
    created_at: str = Field(default="", alias="createdAt")
    mergeable: str | None = None
    status_check_rollup: list[GhCheck] | None = Field(default=None, alias="statusCheckRollup")


_PR_LIST = TypeAdapter(list[GhPullRequest])


def parse_dependabot_title(title: str) -> ParsedPRTitle | None:
    """Extract the package and versions from a Dependabot PR title.

    Understands titles such as:
    - "Bump lodash from 4.17.20 to 4.17.21"
    - "Bump @types/node from 18.0.0 to 20.0.0"
    - "Update eslint requirement from ^8.0.0 to ^9.0.0"
    - "Bump lodash from 4.17.20 to 4.17.21 in /packages/app"

    Returns:
        The parsed title, or None if it does not follow Dependabot's format
    """
    match = TITLE_PATTERN.match(title)
    if not match:
        return None

    package, from_version, to_version = match.groups()
    return ParsedPRTitle(
        package=package,
        from_version=VERSION_PREFIX.sub("", from_version),
        to_version=VERSION_PREFIX.sub("", to_version),
    )


def determine_check_status(rollup: list[GhCheck] | None) -> CheckStatus:
    """Aggregate CI checks. Failing beats pending, which beats passing."""
    if not rollup:
        return CheckStatus.NONE

    has_failing = has_pending = has_passing = False

    for check in rollup:
        # CheckRun reports a conclusion
        if check.conclusion:
            conclusion = check.conclusion.upper()
            if conclusion == "SUCCESS" or conclusion in NEUTRAL_CONCLUSIONS:
                has_passing = True
            elif conclusion in FAILING_CONCLUSIONS:
                has_failing = True

        # StatusContext reports a state
        if check.state:
            state = check.state.upper()
            if state == "SUCCESS":
                has_passing = True
            elif state in FAILING_STATES:
                has_failing = True
            elif state in PENDING_STATES:
                has_pending = True

        if check.status and check.status.upper() in PENDING_STATUSES:
            has_pending = True

    if has_failing:
        return CheckStatus.FAILING
    if has_pending:
        return CheckStatus.PENDING
    if has_passing:
        return CheckStatus.PASSING
    return CheckStatus.NONE


def parse_pr(pr: GhPullRequest) -> DependabotPR | None:
    parsed = parse_dependabot_title(pr.title)
    if parsed is None:
        return None

    return DependabotPR(
        number=pr.number,
        title=pr.title,
        package=parsed.package,
        from_version=parsed.from_version,
        to_version=parsed.to_version,
        update_type=get_update_type(parsed.from_version, parsed.to_version),
        url=pr.url,
        created_at=pr.created_at,
        mergeable=(pr.mergeable or "").upper() == "MERGEABLE",
        checks=determine_check_status(pr.status_check_rollup),
    )


def calculate_summary(prs: list[DependabotPR]) -> DependabotSummary:
    return DependabotSummary(
        total=len(prs),
        patch=sum(1 for pr in prs if pr.update_type is UpdateType.PATCH),
        minor=sum(1 for pr in prs if pr.update_type is UpdateType.MINOR),
        major=sum(1 for pr in prs if pr.update_type is UpdateType.MAJOR),
        mergeable=sum(1 for pr in prs if pr.mergeable),
    )


def _created_key(pr: DependabotPR) -> datetime:
    try:
        created = datetime.fromisoformat(pr.created_at.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


class DependabotAnalyzer:
    """Lists open Dependabot PRs of the repository at ``cwd``."""

    def __init__(self, runner: CommandRunner | None = None, logs: LogContext | None = None):
        self.logs = logs or LogContext()
        self.runner = runner or CommandRunner(logs=self.logs)
        self.log = self.logs.child("dependabot")

    async def analyze(self, cwd: str | Path = ".") -> DependabotResult | DependabotError:
        """Fetch and summarize Dependabot PRs.

        Missing prerequisites (gh CLI, authentication, git repository,
        GitHub remote) are returned as a ``DependabotError`` rather than
        raised.
        """
        self.log.info("Analyzing Dependabot PRs in {cwd}", cwd=str(cwd))

        error = await self.check_prerequisites(cwd)
        if error is not None:
            return error

        gh_prs = await self.fetch_pull_requests(cwd)
        self.log.debug("Fetched {count} PRs from GitHub", count=len(gh_prs))

        pull_requests = []
        for gh_pr in gh_prs:
            pr = parse_pr(gh_pr)
            if pr is None:
                self.log.debug("Could not parse Dependabot PR title", title=gh_pr.title)
                continue
            pull_requests.append(pr)

        pull_requests.sort(key=_created_key, reverse=True)
        summary = calculate_summary(pull_requests)

        self.log.info(
            "Dependabot analysis complete",
            total=summary.total,
            mergeable=summary.mergeable,
            major=summary.major,
            minor=summary.minor,
            patch=summary.patch,
        )
        return DependabotResult(pull_requests=pull_requests, summary=summary)

    async def check_prerequisites(self, cwd: str | Path) -> DependabotError | None:
        for error_type, command, args in PREREQUISITES:
            if not await self._succeeds(command, args, cwd):
                self.log.error("Prerequisite check failed: {type}", type=error_type)
                return DependabotError(type=error_type, message=PREREQUISITE_MESSAGES[error_type])
        return None

    async def fetch_pull_requests(self, cwd: str | Path) -> list[GhPullRequest]:
        """List PRs for every Dependabot author name, deduplicated by number."""
        seen: set[int] = set()
        prs: list[GhPullRequest] = []

        for author in DEPENDABOT_AUTHORS:
            args = ["pr", "list", "--author", author, "--json", PR_FIELDS]
            try:
                result = await self.runner.run("gh", args, cwd=cwd)
            except CommandError as exc:
                self.log.debug("Failed to fetch PRs for {author}: {error}", author=author, error=str(exc))
                continue

            if result.exit_code != 0 or not result.stdout.strip():
                continue

            try:
                listed = _PR_LIST.validate_json(result.stdout)
            except ValidationError as exc:
                self.log.debug("Unexpected gh pr list output for {author}: {error}", author=author, error=exc)
                continue

            for pr in listed:
                if pr.number not in seen:
                    seen.add(pr.number)
                    prs.append(pr)

        return prs

    async def _succeeds(self, command: str, args: list[str], cwd: str | Path) -> bool:
        try:
            await self.runner.run_checked(command, args, cwd=cwd)
        except CommandError as exc:
            self.log.trace("{command} check failed: {error}", command=command, error=str(exc))
            return False
        return True
