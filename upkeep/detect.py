"""Package manager and project configuration detection."""

import re
from dataclasses import dataclass
from pathlib import Path

from .log import LogContext
from .manifest import read_manifest
from .models import DetectResult, PackageManagerInfo, PackageManagerName


@dataclass(frozen=True)
class PackageManagerConfig:
    """Static facts about one package manager."""

    name: PackageManagerName
    lockfiles: tuple[str, ...]
    install_command: str
    upgrade_command: str


# Priority order: when several lockfiles exist, the first match wins.
PACKAGE_MANAGERS: tuple[PackageManagerConfig, ...] = (
    PackageManagerConfig(
        PackageManagerName.BUN, ("bun.lock", "bun.lockb"), "bun install", "bun update"
    ),
    PackageManagerConfig(
        PackageManagerName.PNPM, ("pnpm-lock.yaml",), "pnpm install", "pnpm update"
    ),
    PackageManagerConfig(PackageManagerName.YARN, ("yarn.lock",), "yarn install", "yarn upgrade"),
    PackageManagerConfig(
        PackageManagerName.NPM, ("package-lock.json",), "npm install", "npm update"
    ),
)

_CONFIG_BY_NAME = {config.name: config for config in PACKAGE_MANAGERS}
_CONFIG_BY_LOCKFILE = {
    lockfile: config for config in PACKAGE_MANAGERS for lockfile in config.lockfiles
}

COREPACK_PATTERN = re.compile(r"^(bun|pnpm|yarn|npm)@")


def parse_corepack_spec(spec: str) -> PackageManagerName | None:
    """Extract the manager from a ``name@version`` packageManager field."""
    match = COREPACK_PATTERN.match(spec)
    return PackageManagerName(match.group(1)) if match else None


def detect_lockfiles(project_dir: str | Path, logs: LogContext | None = None) -> list[str]:
    """Return the lockfiles present, one per manager, in priority order."""
    log = (logs or LogContext()).child("package-manager")
    root = Path(project_dir)
    detected: list[str] = []

    for config in PACKAGE_MANAGERS:
        for lockfile in config.lockfiles:
            exists = (root / lockfile).is_file()
            log.trace("Checking lockfile {lockfile}", lockfile=lockfile, exists=exists)
            if exists:
                detected.append(lockfile)
                break  # bun.lock and bun.lockb count once

    log.debug("Lockfile scan complete", detected=detected)
    return detected


def detect_package_manager(
    project_dir: str | Path = ".", logs: LogContext | None = None
) -> PackageManagerInfo:
    """Detect the package manager used in a project.

    Detection priority:
    1. Lockfile presence (bun > pnpm > yarn > npm)
    2. Corepack ``packageManager`` field in package.json
    3. npm as the default

    Args:
        project_dir: Path to the project directory
        logs: Log context used to create the component logger

    Returns:
        Package manager information
    """
    log = (logs or LogContext()).child("package-manager")
    log.debug("Starting package manager detection in {path}", path=str(project_dir))

    lockfiles = detect_lockfiles(project_dir, logs)
    manifest = read_manifest(project_dir)
    corepack_spec = manifest.package_manager if manifest else None

    if not lockfiles:
        corepack_pm = parse_corepack_spec(corepack_spec) if corepack_spec else None
        if corepack_pm is not None:
            config = _CONFIG_BY_NAME[corepack_pm]
            log.info("Package manager detected from corepack: {name}", name=config.name.value)
            return PackageManagerInfo(
                name=config.name,
                lockfile=None,
                install_command=config.install_command,
                upgrade_command=config.upgrade_command,
                corepack_spec=corepack_spec,
            )

        log.info("No package manager detected, using npm")
        default = _CONFIG_BY_NAME[PackageManagerName.NPM]
        return PackageManagerInfo(
            name=default.name,
            lockfile=None,
            install_command=default.install_command,
            upgrade_command=default.upgrade_command,
            corepack_spec=corepack_spec,
        )

    primary = lockfiles[0]
    config = _CONFIG_BY_LOCKFILE[primary]

    if len(lockfiles) > 1:
        log.warning(
            "Multiple lockfiles detected ({lockfiles}), using {name}",
            lockfiles=", ".join(lockfiles),
            name=config.name.value,
        )
    else:
        log.info("Package manager detected from lockfile {lockfile}", lockfile=primary)

    return PackageManagerInfo(
        name=config.name,
        lockfile=primary,
        install_command=config.install_command,
        upgrade_command=config.upgrade_command,
        has_multiple_lockfiles=len(lockfiles) > 1,
        detected_lockfiles=lockfiles,
        corepack_spec=corepack_spec,
    )


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------

BIOME_CONFIGS = ("biome.json", "biome.jsonc")

PRETTIER_CONFIGS = (
    ".prettierrc",
    ".prettierrc.js",
    ".prettierrc.cjs",
    ".prettierrc.mjs",
    ".prettierrc.json",
    ".prettierrc.yaml",
    ".prettierrc.yml",
    ".prettierrc.toml",
    "prettier.config.js",
    "prettier.config.mjs",
    "prettier.config.cjs",
    "prettier.config.ts",
)

VITEST_CONFIGS = ("vitest.config.ts", "vitest.config.js", "vitest.config.mts", "vitest.config.mjs")
JEST_CONFIGS = (
    "jest.config.ts",
    "jest.config.js",
    "jest.config.mjs",
    "jest.config.cjs",
    "jest.config.json",
)
COVERAGE_CONFIGS = (".nycrc", ".nycrc.json", ".nycrc.yml", ".nycrc.yaml", ".c8rc", ".c8rc.json", "coverage")
COVERAGE_PACKAGES = ("nyc", "c8", "@vitest/coverage-v8", "@vitest/coverage-istanbul")

# Checked in order against the test script, then devDependencies.
TEST_SCRIPT_RUNNERS = (
    ("vitest", "vitest"),
    ("jest", "jest"),
    ("mocha", "mocha"),
    ("ava", "ava"),
    ("tap", "tap"),
    ("bun test", "bun"),
)
TEST_RUNNER_PACKAGES = ("vitest", "jest", "mocha", "ava", "tap")

CI_FILES = (
    (".gitlab-ci.yml", "gitlab-ci"),
    (".circleci/config.yml", "circleci"),
    (".travis.yml", "travis-ci"),
    ("Jenkinsfile", "jenkins"),
    ("azure-pipelines.yml", "azure-pipelines"),
)


def any_file_exists(root: Path, names: tuple[str, ...]) -> bool:
    return any((root / name).exists() for name in names)


def detect_test_runner(root: Path) -> str | None:
    if any_file_exists(root, VITEST_CONFIGS):
        return "vitest"
    if any_file_exists(root, JEST_CONFIGS):
        return "jest"

    manifest = read_manifest(root)
    if manifest is None:
        return None

    test_script = manifest.scripts.get("test", "")
    for needle, runner in TEST_SCRIPT_RUNNERS:
        if needle in test_script:
            return runner

    for package in TEST_RUNNER_PACKAGES:
        if package in manifest.dev_dependencies:
            return package

    return None


def detect_coverage(root: Path) -> bool:
    if any_file_exists(root, COVERAGE_CONFIGS):
        return True

    manifest = read_manifest(root)
    if manifest is None:
        return False

    if manifest.nyc or manifest.c8:
        return True
    if any(package in manifest.dev_dependencies for package in COVERAGE_PACKAGES):
        return True
    return any("coverage" in script for script in manifest.scripts.values())


def detect_ci(root: Path) -> str | None:
    workflows = root / ".github" / "workflows"
    if workflows.is_dir() and any(
        path.suffix in (".yml", ".yaml") for path in workflows.iterdir()
    ):
        return "github-actions"

    for name, ci in CI_FILES:
        if (root / name).exists():
            return ci

    return None


def detect_project(project_dir: str | Path = ".", logs: LogContext | None = None) -> DetectResult:
    """Detect package manager, tooling and CI configuration of a project."""
    log = (logs or LogContext()).child("detect")
    root = Path(project_dir)

    pm_info = detect_package_manager(root, logs)
    result = DetectResult(
        package_manager=pm_info.name.value,
        lockfile=pm_info.lockfile,
        typescript=(root / "tsconfig.json").exists(),
        biome=any_file_exists(root, BIOME_CONFIGS),
        prettier=any_file_exists(root, PRETTIER_CONFIGS),
        test_runner=detect_test_runner(root),
        coverage=detect_coverage(root),
        ci=detect_ci(root),
    )
    log.debug("Detection complete", result=result)
    return result
