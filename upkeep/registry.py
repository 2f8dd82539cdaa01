"""Latest published version lookup."""

from pathlib import Path
from urllib.parse import quote

import httpx

from .config import DEFAULT_REGISTRY_URL
from .errors import CommandError
from .exec import CommandRunner
from .log import LogContext


class RegistryClient:
    """Resolves the latest version of an npm package.

    ``npm view`` is asked first so that the project's own registry
    configuration (``.npmrc``, scopes, auth) applies. When npm is missing or
    fails, the public registry is queried over HTTP.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        registry_url: str = DEFAULT_REGISTRY_URL,
        timeout: float = 30.0,
        logs: LogContext | None = None,
    ):
        """Initialize the client.

        Args:
            runner: Command runner used for ``npm view``
            registry_url: Base URL of the fallback registry
            timeout: HTTP request timeout in seconds
            logs: Log context used to create the component logger
        """
        logs = logs or LogContext()
        self.runner = runner or CommandRunner(logs=logs)
        self.registry_url = registry_url.rstrip("/")
        self.timeout = timeout
        self.log = logs.child("registry")
        self._cache: dict[str, str] = {}

    async def latest_version(self, package: str, cwd: str | Path = ".") -> str | None:
        """Return the latest published version, or None if it cannot be resolved."""
        if package in self._cache:
            return self._cache[package]

        version = await self._from_npm(package, cwd)
        if version is None:
            version = await self._from_registry(package)

        if version is not None:
            self._cache[package] = version
        return version

    async def _from_npm(self, package: str, cwd: str | Path) -> str | None:
        try:
            result = await self.runner.run("npm", ["view", package, "version"], cwd=cwd)
        except CommandError as exc:
            self.log.debug("npm view unavailable: {error}", error=str(exc))
            return None

        if result.exit_code != 0:
            self.log.debug("npm view failed", package=package, stderr=result.stderr)
            return None
        return result.stdout.strip() or None

    async def _from_registry(self, package: str) -> str | None:
        url = f"{self.registry_url}/{quote(package, safe='@')}/latest"
        self.log.debug("Fetching {url}", url=url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            self.log.debug("Registry lookup failed for {package}: {error}", package=package, error=exc)
            return None
        except ValueError:
            self.log.debug("Registry returned invalid JSON for {package}", package=package)
            return None

        version = data.get("version") if isinstance(data, dict) else None
        return version if isinstance(version, str) and version else None
