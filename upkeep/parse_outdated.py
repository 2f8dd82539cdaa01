"""Normalize ``outdated`` output from npm, pnpm, yarn and bun.

Every parser takes the raw command output and returns a list of
``OutdatedPackage``. Empty, malformed or unrecognized output yields an
empty list; parsers never raise.
"""

import json
from typing import Any

from .log import LogContext
from .models import OutdatedPackage, PackageManagerName
from .semver import get_update_type

log = LogContext().child("deps")


def outdated_command(pm: PackageManagerName) -> tuple[str, list[str]]:
    """Return the command and argument vector for an outdated check."""
    if pm is PackageManagerName.NPM:
        return "npm", ["outdated", "--json"]
    if pm is PackageManagerName.PNPM:
        return "pnpm", ["outdated", "--format", "json"]
    if pm is PackageManagerName.YARN:
        return "yarn", ["outdated", "--json"]
    return "bun", ["outdated"]


def _package(name: str, current: Any, latest: Any, is_dev_dep: bool) -> OutdatedPackage | None:
    if not name or not isinstance(current, str) or not isinstance(latest, str):
        return None
    if not current or not latest:
        return None
    return OutdatedPackage(
        name=name,
        current=current,
        latest=latest,
        update_type=get_update_type(current, latest),
        is_dev_dep=is_dev_dep,
    )


def _load_object(output: str, pm: str) -> dict | None:
    if not output.strip():
        return None
    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        log.warning("Failed to parse {pm} outdated output", pm=pm)
        return None
    if not isinstance(data, dict):
        log.warning("Unexpected {pm} outdated output shape", pm=pm)
        return None
    return data


def parse_npm_outdated(output: str) -> list[OutdatedPackage]:
    """Parse ``npm outdated --json``.

    The output is keyed by package name::

        {"lodash": {"current": "4.17.20", "wanted": "4.17.21", "latest": "4.17.21"}}

    npm does not say whether a package is a devDependency here, so
    ``is_dev_dep`` is always False.
    """
    data = _load_object(output, "npm")
    if data is None:
        return []

    packages = []
    for name, info in data.items():
        if not isinstance(info, dict):
            continue
        package = _package(name, info.get("current"), info.get("latest"), False)
        if package is not None:
            packages.append(package)
    return packages


def parse_pnpm_outdated(output: str) -> list[OutdatedPackage]:
    """Parse ``pnpm outdated --format json``.

    Same shape as npm with an added ``dependencyType`` field.
    """
    data = _load_object(output, "pnpm")
    if data is None:
        return []

    packages = []
    for name, info in data.items():
        if not isinstance(info, dict):
            continue
        is_dev = info.get("dependencyType") == "devDependencies"
        package = _package(name, info.get("current"), info.get("latest"), is_dev)
        if package is not None:
            packages.append(package)
    return packages


def _column(head: list, name: str) -> int:
    try:
        return head.index(name)
    except ValueError:
        return -1


def _cell(row: list, index: int) -> Any:
    return row[index] if 0 <= index < len(row) else None


def parse_yarn_outdated(output: str) -> list[OutdatedPackage]:
    """Parse ``yarn outdated --json`` (NDJSON).

    Only ``table`` records matter::

        {"type": "table", "data": {"head": ["Package", "Current", ...], "body": [[...]]}}

    Columns are located by header name, so reordered columns still parse.
    """
    if not output.strip():
        return []

    packages = []
    for line in output.strip().splitlines():
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            log.trace("Skipping non-JSON line in yarn outdated output", line=line)
            continue

        if not isinstance(record, dict) or record.get("type") != "table":
            continue

        data = record.get("data")
        if not isinstance(data, dict):
            continue
        head = data.get("head") or []
        body = data.get("body") or []
        if not isinstance(head, list) or not isinstance(body, list):
            continue

        package_idx = _column(head, "Package")
        current_idx = _column(head, "Current")
        latest_idx = _column(head, "Latest")
        type_idx = _column(head, "Package Type")
        if -1 in (package_idx, current_idx, latest_idx):
            continue

        for row in body:
            if not isinstance(row, list):
                continue
            name = _cell(row, package_idx)
            package_type = _cell(row, type_idx) if type_idx != -1 else "dependencies"
            package = _package(
                name if isinstance(name, str) else "",
                _cell(row, current_idx),
                _cell(row, latest_idx),
                package_type == "devDependencies",
            )
            if package is not None:
                packages.append(package)

    return packages


def parse_bun_outdated(output: str) -> list[OutdatedPackage]:
    """Parse the table printed by ``bun outdated``::

        | Package          | Current | Update | Latest  |
        |------------------|---------|--------|---------|
        | lodash           | 4.17.0  | 4.17.0 | 4.17.21 |
        | typescript (dev) | 5.9.2   | 5.9.2  | 5.9.3   |
    """
    packages = []

    for line in output.splitlines():
        if "|" not in line or "Package" in line or "---" in line:
            continue

        cells = [cell.strip() for cell in line.split("|")]
        cells = [cell for cell in cells if cell]
        if len(cells) < 4:
            continue

        name_cell, current, latest = cells[0], cells[1], cells[3]
        is_dev_dep = "(dev)" in name_cell
        name = name_cell.replace("(dev)", "").strip()

        package = _package(name, current, latest, is_dev_dep)
        if package is not None:
            packages.append(package)

    return packages


_PARSERS = {
    PackageManagerName.NPM: parse_npm_outdated,
    PackageManagerName.PNPM: parse_pnpm_outdated,
    PackageManagerName.YARN: parse_yarn_outdated,
    PackageManagerName.BUN: parse_bun_outdated,
}


def parse_outdated(pm: PackageManagerName, output: str) -> list[OutdatedPackage]:
    """Dispatch to the parser for ``pm``."""
    return _PARSERS[pm](output)
