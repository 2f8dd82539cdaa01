"""Exception hierarchy for Upkeep."""

from collections.abc import Sequence


class UpkeepError(Exception):
    """Base class for errors surfaced to the operator."""


class CommandError(UpkeepError):
    """An external command could not produce a result."""

    def __init__(self, message: str, command: str, args: Sequence[str]):
        super().__init__(message)
        self.command = command
        self.args_list = list(args)


def _display(command: str, args: Sequence[str]) -> str:
    return " ".join([command, *args])


class CommandTimeoutError(CommandError):
    """The command ran past its time limit and was killed."""

    def __init__(self, command: str, args: Sequence[str], timeout: float):
        super().__init__(
            f"Command timed out after {timeout:g}s: {_display(command, args)}",
            command,
            args,
        )
        self.timeout = timeout


class CommandSpawnError(CommandError):
    """The command could not be started (missing binary, bad cwd, ...)."""

    def __init__(self, command: str, args: Sequence[str]):
        super().__init__(
            f"Failed to execute command: {_display(command, args)}", command, args
        )


class CommandFailedError(CommandError):
    """The command exited non-zero where success was required."""

    def __init__(self, command: str, args: Sequence[str], exit_code: int, stderr: str = ""):
        super().__init__(
            f"Command failed with exit code {exit_code}: {_display(command, args)}",
            command,
            args,
        )
        self.exit_code = exit_code
        self.stderr = stderr


class PackageNotFoundError(UpkeepError):
    """The package is not declared in the project manifest."""

    def __init__(self, package: str):
        super().__init__(f'Package "{package}" not found in package.json')
        self.package = package


class VersionResolutionError(UpkeepError):
    """The latest published version of a package could not be resolved."""

    def __init__(self, package: str):
        super().__init__(f'Could not fetch latest version for "{package}"')
        self.package = package
