"""package.json and tsconfig.json models."""

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class PackageManifest(BaseModel):
    """The parts of package.json that Upkeep reads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    package_manager: str | None = Field(default=None, alias="packageManager")
    scripts: dict[str, str] = Field(default_factory=dict)
    eslint_config: Any = Field(default=None, alias="eslintConfig")
    prettier: Any = None
    nyc: Any = None
    c8: Any = None

    def all_dependencies(self) -> dict[str, str]:
        return {**self.dependencies, **self.dev_dependencies}

    def dependency_count(self) -> int:
        return len(self.dependencies) + len(self.dev_dependencies)

    def version_of(self, package: str) -> str | None:
        """Declared version range of a package, checking dependencies first."""
        return self.dependencies.get(package) or self.dev_dependencies.get(package)


class CompilerOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    strict: bool = False
    no_unchecked_indexed_access: bool = Field(default=False, alias="noUncheckedIndexedAccess")
    no_implicit_returns: bool = Field(default=False, alias="noImplicitReturns")
    no_fallthrough_cases_in_switch: bool = Field(default=False, alias="noFallthroughCasesInSwitch")
    exact_optional_property_types: bool = Field(default=False, alias="exactOptionalPropertyTypes")
    no_implicit_override: bool = Field(default=False, alias="noImplicitOverride")
    no_unused_locals: bool = Field(default=False, alias="noUnusedLocals")
    no_unused_parameters: bool = Field(default=False, alias="noUnusedParameters")


class TsConfig(BaseModel):
    """The parts of tsconfig.json that Upkeep reads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    compiler_options: CompilerOptions = Field(default_factory=CompilerOptions, alias="compilerOptions")
    extends: str | list[str] | None = None


_STRING = r'("(?:\\.|[^"\\])*")'
_COMMENT = re.compile(_STRING + r"|//[^\n]*|/\*.*?\*/", re.DOTALL)
_TRAILING_COMMA = re.compile(_STRING + r"|,(?=\s*[}\]])")


def _keep_string(match: re.Match) -> str:
    return match.group(1) or ""


def strip_json_comments(content: str) -> str:
    """Remove comments and trailing commas allowed in tsconfig files.

    String literals are matched first and copied through, so globs such as
    ``"src/**/*.ts"`` and URLs keep their slashes.
    """
    content = _COMMENT.sub(_keep_string, content)
    return _TRAILING_COMMA.sub(_keep_string, content)


def read_manifest(project_dir: str | Path) -> PackageManifest | None:
    """Read package.json from a project directory.

    Returns:
        The parsed manifest, or None if it is missing or malformed
    """
    path = Path(project_dir) / "package.json"
    try:
        return PackageManifest.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError):
        return None


def read_tsconfig(project_dir: str | Path) -> TsConfig | None:
    """Read tsconfig.json, tolerating comments and trailing commas."""
    path = Path(project_dir) / "tsconfig.json"
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None

    try:
        return TsConfig.model_validate_json(strip_json_comments(content))
    except ValidationError:
        return None
