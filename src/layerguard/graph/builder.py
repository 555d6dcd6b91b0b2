"""Dependency graph builder: fold classified files and resolved imports into a graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from layerguard.graph.classifier import ModuleClassifier
from layerguard.graph.resolver import ImportResolver

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from layerguard.errors import ExtractionWarning
    from layerguard.graph.classifier import UnclassifiedFile
    from layerguard.scanning.adapters import Symbol
    from layerguard.scanning.scanner import ScanResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Module:
    """A node of the dependency graph."""

    id: str
    files: tuple[str, ...] = ()
    symbols: tuple[Symbol, ...] = ()
    template: str | None = None
    captures: tuple[tuple[str, str], ...] = ()
    external: bool = False
    stdlib: bool = False

    @property
    def kinds(self) -> frozenset[str]:
        """Kind tags of the declared symbols (interface, struct, function, ...)."""
        if self.external:
            return frozenset({"external"})
        return frozenset(s.kind for s in self.symbols)

    @property
    def capture_map(self) -> dict[str, str]:
        return dict(self.captures)


@dataclass(frozen=True)
class ImportEdge:
    """A module-level dependency with the import that caused it."""

    source: str
    target: str
    file: str
    line: int
    raw: str


@dataclass(frozen=True)
class UnresolvedImport:
    """A project-local import whose target is neither scanned nor classifiable."""

    file: str
    line: int
    raw: str
    target: str


@dataclass(frozen=True, eq=False)
class DependencyGraph:
    """Immutable module dependency graph.

    ``edges`` are sorted by (source, target, file, line).  There is at most
    one edge per (file, target) and never an edge from a module to itself.
    """

    modules: Mapping[str, Module]
    edges: tuple[ImportEdge, ...]
    unclassified: tuple[UnclassifiedFile, ...] = ()
    warnings: tuple[ExtractionWarning, ...] = ()
    unresolved: tuple[UnresolvedImport, ...] = ()
    _outgoing: Mapping[str, tuple[ImportEdge, ...]] = field(
        default_factory=dict, repr=False
    )
    _incoming: Mapping[str, tuple[ImportEdge, ...]] = field(
        default_factory=dict, repr=False
    )

    def module_ids(self, *, include_external: bool = True) -> list[str]:
        return sorted(
            mid for mid, mod in self.modules.items() if include_external or not mod.external
        )

    def outgoing(self, module_id: str) -> tuple[ImportEdge, ...]:
        return self._outgoing.get(module_id, ())

    def incoming(self, module_id: str) -> tuple[ImportEdge, ...]:
        return self._incoming.get(module_id, ())

    def successors(self, module_id: str) -> tuple[str, ...]:
        """Distinct targets of *module_id*, sorted."""
        return tuple(dict.fromkeys(e.target for e in self.outgoing(module_id)))

    def predecessors(self, module_id: str) -> tuple[str, ...]:
        return tuple(sorted({e.source for e in self.incoming(module_id)}))

    def capture_values(self, variable: str) -> tuple[str, ...]:
        """Sorted distinct values bound to *variable* by the classifying templates."""
        values = {
            value
            for mod in self.modules.values()
            for name, value in mod.captures
            if name == variable
        }
        return tuple(sorted(values))


def build_graph(
    project_root: Path,
    scan: ScanResult,
    *,
    templates: Sequence[str] = (),
) -> DependencyGraph:
    """Classify the scanned files and fold their imports into a :class:`DependencyGraph`.

    This is the single writer of the graph: it runs after every file has
    been extracted and returns a value that is never mutated afterwards.

    Raises :class:`~layerguard.errors.SetupError` when a template is malformed.
    """
    classifier = ModuleClassifier(templates)
    classified, unclassified = classifier.classify(scan)

    files_by_module: dict[str, list[str]] = {}
    symbols_by_module: dict[str, list[Symbol]] = {}
    classification_of: dict[str, tuple[str, tuple[tuple[str, str], ...]]] = {}
    for source, cls in classified:
        files_by_module.setdefault(cls.module_id, []).append(source.path)
        symbols_by_module.setdefault(cls.module_id, []).extend(source.symbols)
        classification_of[cls.module_id] = (cls.template, cls.captures)

    modules: dict[str, Module] = {
        mid: Module(
            id=mid,
            files=tuple(sorted(paths)),
            symbols=tuple(sorted(symbols_by_module[mid], key=lambda s: (s.file, s.line, s.name))),
            template=classification_of[mid][0],
            captures=classification_of[mid][1],
        )
        for mid, paths in files_by_module.items()
    }

    known_paths = [f.path for f in scan.files] + [w.path for w in scan.warnings]
    resolver = ImportResolver(project_root, known_paths)

    first_line: dict[tuple[str, str], ImportEdge] = {}
    unresolved: list[UnresolvedImport] = []

    for source, cls in classified:
        for decl in source.imports:
            for resolved in resolver.resolve(decl, source.path, source.language):
                target = resolved.target
                if resolved.external:
                    if target not in modules:
                        modules[target] = Module(
                            id=target, external=True, stdlib=resolved.stdlib
                        )
                elif target not in modules:
                    target_cls = classifier.classify_module(target)
                    if target_cls is None:
                        logger.warning(
                            "Unresolved import %r in %s:%d", decl.raw, source.path, decl.line
                        )
                        unresolved.append(
                            UnresolvedImport(
                                file=source.path, line=decl.line, raw=decl.raw, target=target
                            )
                        )
                        continue
                    modules[target] = Module(
                        id=target, template=target_cls.template, captures=target_cls.captures
                    )

                if target == cls.module_id:
                    continue
                key = (source.path, target)
                existing = first_line.get(key)
                if existing is None or decl.line < existing.line:
                    first_line[key] = ImportEdge(
                        source=cls.module_id,
                        target=target,
                        file=source.path,
                        line=decl.line,
                        raw=decl.raw,
                    )

    edges = tuple(sorted(first_line.values(), key=lambda e: (e.source, e.target, e.file, e.line)))

    outgoing: dict[str, list[ImportEdge]] = {}
    incoming: dict[str, list[ImportEdge]] = {}
    for edge in edges:
        outgoing.setdefault(edge.source, []).append(edge)
        incoming.setdefault(edge.target, []).append(edge)

    logger.info(
        "Built graph: %d modules, %d edges, %d unclassified files",
        len(modules),
        len(edges),
        len(unclassified),
    )
    return DependencyGraph(
        modules=MappingProxyType(dict(sorted(modules.items()))),
        edges=edges,
        unclassified=tuple(unclassified),
        warnings=scan.warnings,
        unresolved=tuple(sorted(unresolved, key=lambda u: (u.file, u.line, u.raw))),
        _outgoing=MappingProxyType({k: tuple(v) for k, v in outgoing.items()}),
        _incoming=MappingProxyType({k: tuple(v) for k, v in incoming.items()}),
    )
