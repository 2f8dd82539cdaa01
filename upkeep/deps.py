"""Dependency health analysis."""

from pathlib import Path

from .detect import detect_package_manager
from .errors import CommandError
from .exec import CommandRunner
from .log import LogContext
from .manifest import read_manifest
from .models import DepsAnalysis, PackageManagerName, SecuritySummary, UpdateType
from .parse_audit import audit_command, parse_audit, summarize_security
from .parse_outdated import outdated_command, parse_outdated


class DepsAnalyzer:
    """Runs the package manager's outdated (and optionally audit) check."""

    def __init__(self, runner: CommandRunner | None = None, logs: LogContext | None = None):
        """Initialize the analyzer.

        Args:
            runner: Command runner used for package manager calls
            logs: Log context used to create the component logger
        """
        self.logs = logs or LogContext()
        self.runner = runner or CommandRunner(logs=self.logs)
        self.log = self.logs.child("deps")

    async def analyze(self, cwd: str | Path = ".", include_security: bool = False) -> DepsAnalysis:
        """Analyze the dependencies of a project.

        Args:
            cwd: Project directory
            include_security: Also run a security audit

        Returns:
            Outdated counts, per-package details and optional security counts
        """
        self.log.info(
            "Starting dependency analysis in {cwd}", cwd=str(cwd), include_security=include_security
        )

        pm_info = detect_package_manager(cwd, self.logs)
        pm = pm_info.name
        self.log.debug("Detected package manager {pm}", pm=pm.value, lockfile=pm_info.lockfile)

        command, args = outdated_command(pm)
        output = await self._output_of(command, args, cwd)
        packages = parse_outdated(pm, output)
        self.log.debug("Parsed {count} outdated packages", count=len(packages))

        manifest = read_manifest(cwd)
        if manifest is None:
            self.log.warning("Failed to count dependencies from package.json", cwd=str(cwd))
        total = manifest.dependency_count() if manifest else 0

        security = await self.security_summary(pm, cwd) if include_security else None

        result = DepsAnalysis(
            total=total,
            outdated=len(packages),
            major=sum(1 for p in packages if p.update_type is UpdateType.MAJOR),
            minor=sum(1 for p in packages if p.update_type is UpdateType.MINOR),
            patch=sum(1 for p in packages if p.update_type is UpdateType.PATCH),
            security=security,
            packages=packages,
        )
        self.log.info(
            "Dependency analysis complete",
            total=result.total,
            outdated=result.outdated,
            major=result.major,
            minor=result.minor,
            patch=result.patch,
            has_security=security is not None,
        )
        return result

    async def security_summary(self, pm: PackageManagerName, cwd: str | Path) -> SecuritySummary | None:
        command, args = audit_command(pm)
        output = await self._output_of(command, args, cwd)
        security = summarize_security(parse_audit(pm, output))
        self.log.debug("Parsed security audit", security=security)
        return security

    async def _output_of(self, command: str, args: list[str], cwd: str | Path) -> str:
        """Run a command, preferring stdout and falling back to stderr.

        A command that cannot run is treated as producing no output.
        """
        self.log.debug("Running {command}", command=command, args=args)
        try:
            result = await self.runner.run(command, args, cwd=cwd)
        except CommandError as exc:
            self.log.warning("{error}", error=str(exc))
            return ""
        return result.stdout or result.stderr
