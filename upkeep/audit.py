"""Security audit analysis."""

from pathlib import Path

from .detect import detect_package_manager
from .errors import CommandError
from .exec import CommandRunner
from .log import LogContext
from .models import AuditResult, AuditSummary
from .parse_audit import audit_command, parse_audit


class AuditAnalyzer:
    """Runs the package manager's audit and normalizes the report."""

    def __init__(self, runner: CommandRunner | None = None, logs: LogContext | None = None):
        self.logs = logs or LogContext()
        self.runner = runner or CommandRunner(logs=self.logs)
        self.log = self.logs.child("audit")

    async def analyze(self, cwd: str | Path = ".") -> AuditResult:
        """Audit a project for known vulnerabilities.

        Audit commands exit non-zero when they find vulnerabilities, so the
        output is parsed regardless of the exit code. An unreadable report
        is returned as an empty result.
        """
        self.log.info("Starting security audit in {cwd}", cwd=str(cwd))

        pm_info = detect_package_manager(cwd, self.logs)
        command, args = audit_command(pm_info.name)
        self.log.debug("Running security audit", pm=pm_info.name.value, command=command, args=args)

        try:
            completed = await self.runner.run(command, args, cwd=cwd)
            output = completed.stdout or completed.stderr
        except CommandError as exc:
            self.log.warning("{error}", error=str(exc))
            output = ""

        result = parse_audit(pm_info.name, output)
        if result is None:
            self.log.debug("No vulnerabilities found or unable to parse audit output")
            return AuditResult(vulnerabilities=[], summary=AuditSummary())

        self.log.info(
            "Security audit complete",
            total=result.summary.total,
            critical=result.summary.critical,
            high=result.summary.high,
        )
        return result
