"""Find where a package is imported in a JS/TS source tree.

Files are parsed with tree-sitter using the TypeScript grammar for ``.ts``
and the TSX grammar for everything else, so JSX in ``.js``/``.jsx`` files
parses cleanly.
"""

import os
from collections.abc import Iterator, Sequence
from pathlib import Path

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from .log import LogContext
from .models import FileImportInfo, ImportBreakdown, ImportInfo, ImportsAnalysis

DEFAULT_EXTENSIONS = ("ts", "tsx", "js", "jsx", "mjs", "cjs")

DEFAULT_EXCLUDE_DIRS = (
    "node_modules",
    "dist",
    "build",
    ".git",
    "coverage",
    ".next",
    ".nuxt",
    ".output",
    "out",
    ".cache",
)

_PARSERS: dict[str, Parser] = {}


def _get_parser(filename: str) -> Parser:
    """Return a cached parser for the grammar matching the file extension."""
    grammar = "typescript" if filename.endswith(".ts") else "tsx"
    if grammar not in _PARSERS:
        if grammar == "typescript":
            lang = Language(tree_sitter_typescript.language_typescript())
        else:
            lang = Language(tree_sitter_typescript.language_tsx())
        _PARSERS[grammar] = Parser(lang)
    return _PARSERS[grammar]


def matches_package(module_specifier: str, target_package: str) -> bool:
    """True for the package itself or any of its subpaths (``pkg/sub``)."""
    return module_specifier == target_package or module_specifier.startswith(f"{target_package}/")


def extract_subpath(module_specifier: str, target_package: str) -> str | None:
    if module_specifier.startswith(f"{target_package}/"):
        return module_specifier[len(target_package) + 1 :]
    return None


def _text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf8")


def _string_value(node: Node | None) -> str | None:
    """Value of a string literal node, without its quotes."""
    if node is None or node.type != "string":
        return None
    return _text(node)[1:-1]


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _walk(root: Node) -> Iterator[Node]:
    """Yield every node in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _import_statement(node: Node, target: str) -> ImportInfo | None:
    module = _string_value(node.child_by_field_name("source"))
    if module is None or not matches_package(module, target):
        return None

    clause = next((c for c in node.named_children if c.type == "import_clause"), None)
    if clause is None:
        # import "pkg"
        return ImportInfo(line=_line(node), type="named", specifiers=[])

    kind = "named"
    specifiers: list[str] = []
    has_default = False

    for child in clause.named_children:
        if child.type == "identifier":
            has_default = True
            kind = "default"
            specifiers.append(_text(child))
        elif child.type == "namespace_import":
            kind = "namespace"
            name = next((c for c in child.named_children if c.type == "identifier"), None)
            specifiers.append(f"* as {_text(name)}")
        elif child.type == "named_imports":
            kind = "default" if has_default else "named"
            for spec in child.named_children:
                if spec.type != "import_specifier":
                    continue
                name = spec.child_by_field_name("name")
                specifiers.append(_string_value(name) or _text(name))

    subpath = extract_subpath(module, target)
    if subpath and not specifiers:
        specifiers.append(subpath)

    return ImportInfo(line=_line(node), type=kind, specifiers=specifiers)


def _export_statement(node: Node, target: str) -> ImportInfo | None:
    module = _string_value(node.child_by_field_name("source"))
    if module is None or not matches_package(module, target):
        return None

    specifiers: list[str] = []
    clause = next((c for c in node.named_children if c.type == "export_clause"), None)
    if clause is not None:
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            name = spec.child_by_field_name("name")
            specifiers.append(_string_value(name) or _text(name))

    return ImportInfo(line=_line(node), type="reexport", specifiers=specifiers)


def _first_string_argument(node: Node) -> str | None:
    arguments = node.child_by_field_name("arguments")
    if arguments is None:
        return None
    first = next(iter(arguments.named_children), None)
    return _string_value(first)


def _call_expression(node: Node, target: str) -> ImportInfo | None:
    function = node.child_by_field_name("function")
    if function is None:
        return None

    is_require = function.type == "identifier" and _text(function) == "require"
    is_dynamic = function.type == "import"
    if not (is_require or is_dynamic):
        return None

    module = _first_string_argument(node)
    if module is None or not matches_package(module, target):
        return None

    subpath = extract_subpath(module, target)
    specifiers: list[str] = []

    if is_dynamic:
        if subpath:
            specifiers.append(subpath)
        return ImportInfo(line=_line(node), type="dynamic", specifiers=specifiers)

    parent = node.parent
    if parent is not None and parent.type == "variable_declarator":
        name = parent.child_by_field_name("name")
        if name is not None and name.type == "identifier":
            specifiers.append(_text(name))
    if subpath and not specifiers:
        specifiers.append(subpath)

    return ImportInfo(line=_line(node), type="require", specifiers=specifiers)


_HANDLERS = {
    "import_statement": _import_statement,
    "export_statement": _export_statement,
    "call_expression": _call_expression,
}


def find_imports_in_file(code: str | bytes, filename: str, target_package: str) -> list[ImportInfo]:
    """Find every import of ``target_package`` in one source file.

    For named imports and re-exports the original (pre-alias) name is
    recorded, so ``import { debounce as d }`` yields ``debounce``.

    Args:
        code: File contents
        filename: File name, used to pick the grammar
        target_package: Package name to look for

    Returns:
        Import records in source order
    """
    source = code.encode("utf8") if isinstance(code, str) else code
    tree = _get_parser(filename).parse(source)

    imports = []
    for node in _walk(tree.root_node):
        handler = _HANDLERS.get(node.type)
        if handler is None:
            continue
        info = handler(node, target_package)
        if info is not None:
            imports.append(info)
    return imports


def find_files(
    cwd: str | Path,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
) -> list[str]:
    """List source files below ``cwd`` as sorted, ``/``-separated relative paths."""
    root = Path(cwd)
    suffixes = {f".{ext}" for ext in extensions}
    excluded = set(exclude_dirs)
    files = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in excluded]
        for filename in filenames:
            if os.path.splitext(filename)[1] in suffixes:
                files.append((Path(dirpath) / filename).relative_to(root).as_posix())

    return sorted(files)


class ImportScanner:
    """Aggregates the import sites of a package across a project."""

    def __init__(
        self,
        logs: LogContext | None = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
    ):
        self.log = (logs or LogContext()).child("imports")
        self.extensions = extensions
        self.exclude_dirs = exclude_dirs

    def scan(self, package: str, cwd: str | Path = ".") -> ImportsAnalysis:
        """Scan a project for imports of ``package``.

        Args:
            package: Package name, e.g. ``lodash`` or ``@tanstack/react-query``
            cwd: Project directory

        Returns:
            Per-file import sites plus a breakdown across the project
        """
        self.log.info("Starting import analysis for {package}", package=package, cwd=str(cwd))

        files = find_files(cwd, self.extensions, self.exclude_dirs)
        self.log.debug("Found {count} files to analyze", count=len(files))

        file_imports: list[FileImportInfo] = []
        named: set[str] = set()
        default_count = 0
        namespace_count = 0
        total = 0

        for relative in files:
            try:
                content = (Path(cwd) / relative).read_bytes()
            except OSError as exc:
                self.log.warning("Failed to analyze file {file}: {error}", file=relative, error=exc)
                continue

            imports = find_imports_in_file(content, relative, package)
            if not imports:
                continue

            specifiers: list[str] = []
            for info in imports:
                total += 1
                if info.type == "default":
                    default_count += 1
                elif info.type == "namespace":
                    namespace_count += 1
                for spec in info.specifiers:
                    if not spec.startswith("* as "):
                        named.add(spec)
                        specifiers.append(spec)

            file_imports.append(
                FileImportInfo(
                    path=relative,
                    imports=specifiers,
                    lines=[info.line for info in imports],
                )
            )

        self.log.info(
            "Import analysis complete",
            package=package,
            file_count=len(file_imports),
            total_imports=total,
        )

        return ImportsAnalysis(
            package=package,
            total_imports=total,
            files=file_imports,
            breakdown=ImportBreakdown(
                named_imports=sorted(named),
                default_imports=default_count,
                namespace_imports=namespace_count,
            ),
        )
