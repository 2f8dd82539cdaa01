"""Run external commands without a shell."""

import asyncio
import contextlib
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .config import DEFAULT_COMMAND_TIMEOUT
from .errors import CommandFailedError, CommandSpawnError, CommandTimeoutError
from .log import LogContext


@dataclass
class ExecResult:
    stdout: str
    stderr: str
    exit_code: int


class CommandRunner:
    """Runs commands with an argument vector and a hard timeout.

    A non-zero exit code is not an error here: audit and outdated commands
    exit non-zero when they find something, so callers inspect
    ``ExecResult.exit_code`` themselves.
    """

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT, logs: LogContext | None = None):
        """Initialize the runner.

        Args:
            timeout: Default time limit per command, in seconds
            logs: Log context used to create the component logger
        """
        self.timeout = timeout
        self.log = (logs or LogContext()).child("exec")

    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: str | Path | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ExecResult:
        """Run a command and capture its output.

        Args:
            command: Executable to run
            args: Arguments, passed through verbatim (never via a shell)
            cwd: Working directory, defaults to the current directory
            timeout: Time limit in seconds, defaults to the runner's limit
            env: Extra environment variables merged over the inherited ones

        Returns:
            Captured stdout, stderr and exit code

        Raises:
            CommandTimeoutError: The command ran past the time limit
            CommandSpawnError: The command could not be started
        """
        args = list(args)
        workdir = str(cwd) if cwd is not None else os.getcwd()
        limit = self.timeout if timeout is None else timeout
        merged_env = {**os.environ, **env} if env else None

        self.log.debug("Executing command {command}", command=command, args=args, cwd=workdir)

        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=workdir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=merged_env,
            )
        except OSError as exc:
            self.log.error("Command execution failed: {command}", command=command, args=args)
            raise CommandSpawnError(command, args) from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            self.log.warning("Command timed out: {command}", command=command, timeout=limit)
            raise CommandTimeoutError(command, args, limit) from None

        result = ExecResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else -1,
        )
        self.log.debug(
            "Command completed with exit code {exit_code}",
            exit_code=result.exit_code,
            stdout_length=len(result.stdout),
            stderr_length=len(result.stderr),
        )
        return result

    async def run_checked(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: str | Path | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        """Run a command and return stdout, raising on a non-zero exit."""
        result = await self.run(command, args, cwd=cwd, timeout=timeout, env=env)
        if result.exit_code != 0:
            self.log.error(
                "Command failed with exit code {exit_code}",
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
            raise CommandFailedError(command, list(args), result.exit_code, result.stderr)
        return result.stdout
