"""Language adapters: tree-sitter based top-level import and declaration scanners.

Each adapter only walks the top-level children of a syntax tree.  It never
attempts expression or type analysis; symbol kinds come from the shape of
the declaration alone (``type X interface`` vs ``type X struct``, a class
deriving from ``Protocol`` vs a plain class, ...).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tree_sitter import Language, Parser

if TYPE_CHECKING:
    from collections.abc import Callable

    from tree_sitter import Node as TSNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportDecl:
    """A raw import declaration as written in the source."""

    raw: str  # import path with any alias discarded
    line: int  # 1-based
    members: tuple[str, ...] = ()  # names pulled from the target (Python ``from x import a``)


@dataclass(frozen=True)
class Symbol:
    """A declared top-level symbol."""

    name: str
    kind: str  # interface | struct | class | function | type
    file: str
    line: int


class ExtractionError(Exception):
    """Raised by an adapter when a file cannot be scanned."""


@dataclass(frozen=True)
class LanguageAdapter:
    """Tree-sitter configuration and top-level scanner for one language."""

    name: str
    extensions: tuple[str, ...]
    load_language: Callable[[], Language]
    scan: Callable[[TSNode, str], tuple[list[ImportDecl], list[Symbol]]]


def _text(node: TSNode | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def _line(node: TSNode) -> int:
    return node.start_point.row + 1


def _unquote(text: str) -> str:
    return text.strip().strip("\"'`")


# ---------------------------------------------------------------------------
# Go
# ---------------------------------------------------------------------------

_GO_TYPE_KINDS: dict[str, str] = {
    "struct_type": "struct",
    "interface_type": "interface",
}


def _load_go() -> Language:
    import tree_sitter_go as tsgo

    return Language(tsgo.language())


def _go_import_specs(decl: TSNode) -> list[TSNode]:
    specs: list[TSNode] = []
    for sub in decl.children:
        if sub.type == "import_spec":
            specs.append(sub)
        elif sub.type == "import_spec_list":
            specs.extend(s for s in sub.children if s.type == "import_spec")
    return specs


def _scan_go(root: TSNode, file_path: str) -> tuple[list[ImportDecl], list[Symbol]]:
    imports: list[ImportDecl] = []
    symbols: list[Symbol] = []

    for child in root.children:
        if child.type == "import_declaration":
            # Grouped blocks and aliases (`alias "x"`, `_ "x"`, `. "x"`) alike:
            # only the path field is kept.
            for spec in _go_import_specs(child):
                raw = _unquote(_text(spec.child_by_field_name("path")))
                if raw:
                    imports.append(ImportDecl(raw=raw, line=_line(spec)))

        elif child.type == "type_declaration":
            for spec in child.children:
                if spec.type not in ("type_spec", "type_alias"):
                    continue
                name = _text(spec.child_by_field_name("name"))
                if not name:
                    continue
                type_node = spec.child_by_field_name("type")
                kind = _GO_TYPE_KINDS.get(type_node.type if type_node is not None else "", "type")
                symbols.append(Symbol(name=name, kind=kind, file=file_path, line=_line(spec)))

        elif child.type == "function_declaration":
            name = _text(child.child_by_field_name("name"))
            if name:
                symbols.append(
                    Symbol(name=name, kind="function", file=file_path, line=_line(child))
                )

    return imports, symbols


# ---------------------------------------------------------------------------
# Python
# ---------------------------------------------------------------------------

# Bases that make a class an interface.
_PY_INTERFACE_BASES: frozenset[str] = frozenset(
    {"Protocol", "typing.Protocol", "ABC", "abc.ABC"}
)


def _load_python() -> Language:
    import tree_sitter_python as tspython

    return Language(tspython.language())


def _py_is_interface(class_node: TSNode) -> bool:
    bases = class_node.child_by_field_name("superclasses")
    if bases is None:
        return False
    for arg in bases.children:
        if arg.type == "keyword_argument":
            if _text(arg.child_by_field_name("name")) == "metaclass" and _text(
                arg.child_by_field_name("value")
            ).endswith("ABCMeta"):
                return True
            continue
        base = _text(arg)
        if base.split("[", 1)[0] in _PY_INTERFACE_BASES:
            return True
    return False


def _scan_python(root: TSNode, file_path: str) -> tuple[list[ImportDecl], list[Symbol]]:
    imports: list[ImportDecl] = []
    symbols: list[Symbol] = []

    for child in root.children:
        if child.type == "import_statement":
            for name_node in child.children_by_field_name("name"):
                target = name_node
                if name_node.type == "aliased_import":
                    target = name_node.child_by_field_name("name") or name_node
                raw = _text(target)
                if raw:
                    imports.append(ImportDecl(raw=raw, line=_line(child)))

        elif child.type == "import_from_statement":
            raw = _text(child.child_by_field_name("module_name"))
            if not raw:
                continue
            members: list[str] = []
            for name_node in child.children_by_field_name("name"):
                if name_node.type == "aliased_import":
                    name_node = name_node.child_by_field_name("name") or name_node
                members.append(_text(name_node))
            imports.append(
                ImportDecl(raw=raw, line=_line(child), members=tuple(m for m in members if m))
            )

        else:
            node = child
            if child.type == "decorated_definition":
                node = child.child_by_field_name("definition") or child
            if node.type == "class_definition":
                kind = "interface" if _py_is_interface(node) else "class"
            elif node.type == "function_definition":
                kind = "function"
            else:
                continue
            name = _text(node.child_by_field_name("name"))
            if name:
                symbols.append(Symbol(name=name, kind=kind, file=file_path, line=_line(child)))

    return imports, symbols


# ---------------------------------------------------------------------------
# TypeScript / JavaScript
# ---------------------------------------------------------------------------

_TS_DECL_KINDS: dict[str, str] = {
    "interface_declaration": "interface",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "type_alias_declaration": "type",
    "enum_declaration": "type",
}


def _load_typescript() -> Language:
    import tree_sitter_typescript as tstypescript

    return Language(tstypescript.language_typescript())


def _load_tsx() -> Language:
    import tree_sitter_typescript as tstypescript

    return Language(tstypescript.language_tsx())


def _scan_typescript(root: TSNode, file_path: str) -> tuple[list[ImportDecl], list[Symbol]]:
    imports: list[ImportDecl] = []
    symbols: list[Symbol] = []

    for child in root.children:
        if child.type in ("import_statement", "export_statement"):
            source = child.child_by_field_name("source")
            if source is not None:
                raw = _unquote(_text(source))
                if raw:
                    imports.append(ImportDecl(raw=raw, line=_line(child)))

        decl = child
        if child.type == "export_statement":
            decl = child.child_by_field_name("declaration") or child
        kind = _TS_DECL_KINDS.get(decl.type)
        if kind is None:
            continue
        name = _text(decl.child_by_field_name("name"))
        if name:
            symbols.append(Symbol(name=name, kind=kind, file=file_path, line=_line(child)))

    return imports, symbols


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

GO = LanguageAdapter("go", (".go",), _load_go, _scan_go)
PYTHON = LanguageAdapter("python", (".py",), _load_python, _scan_python)
TYPESCRIPT = LanguageAdapter("typescript", (".ts",), _load_typescript, _scan_typescript)
# Plain JavaScript may carry JSX, which only the TSX grammar accepts.
TSX = LanguageAdapter("typescript", (".tsx", ".jsx", ".js", ".mjs"), _load_tsx, _scan_typescript)

_ADAPTERS: tuple[LanguageAdapter, ...] = (GO, PYTHON, TYPESCRIPT, TSX)

_BY_EXTENSION: dict[str, LanguageAdapter] = {
    ext: adapter for adapter in _ADAPTERS for ext in adapter.extensions
}

# Loaded grammars keyed by extension (None: grammar package not installed).
_LANG_CACHE: dict[str, Language | None] = {}


def supported_extensions() -> frozenset[str]:
    """Return every file extension that has an adapter."""
    return frozenset(_BY_EXTENSION)


def get_adapter(extension: str) -> LanguageAdapter | None:
    """Return the adapter registered for *extension* (e.g. ``".go"``)."""
    return _BY_EXTENSION.get(extension.lower())


def _get_language(extension: str, adapter: LanguageAdapter) -> Language | None:
    if extension not in _LANG_CACHE:
        try:
            _LANG_CACHE[extension] = adapter.load_language()
        except ImportError:
            logger.warning("No tree-sitter grammar installed for %s files", extension)
            _LANG_CACHE[extension] = None
    return _LANG_CACHE[extension]


def clear_cache() -> None:
    """Forget loaded grammars (used by tests)."""
    _LANG_CACHE.clear()


def extract(
    source: bytes, file_path: str, extension: str
) -> tuple[str, list[ImportDecl], list[Symbol]]:
    """Scan *source* and return ``(language, imports, symbols)``.

    Raises :class:`ExtractionError` when there is no adapter or grammar for
    the file, or when the syntax tree contains errors.
    """
    adapter = get_adapter(extension)
    if adapter is None:
        msg = f"no adapter for '{extension}' files"
        raise ExtractionError(msg)
    language = _get_language(extension.lower(), adapter)
    if language is None:
        msg = f"tree-sitter grammar for {adapter.name} is not installed"
        raise ExtractionError(msg)

    tree = Parser(language).parse(source)
    root = tree.root_node
    if root.has_error:
        bad = next((c for c in root.children if c.has_error or c.type == "ERROR"), root)
        msg = f"syntax error near line {_line(bad)}"
        raise ExtractionError(msg)

    imports, symbols = adapter.scan(root, file_path)
    return adapter.name, imports, symbols
