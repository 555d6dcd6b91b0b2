"""Graph domain: namespace patterns, classification, import resolution, build, export."""

from layerguard.graph.builder import (
    DependencyGraph,
    ImportEdge,
    Module,
    UnresolvedImport,
    build_graph,
)
from layerguard.graph.classifier import (
    Classification,
    ModuleClassifier,
    UnclassifiedFile,
)
from layerguard.graph.export import export_graph, format_dot, format_mermaid, graph_view
from layerguard.graph.namespace import NamespacePattern, compile_pattern
from layerguard.graph.resolver import ImportResolver, ResolvedImport

__all__ = [
    "Classification",
    "DependencyGraph",
    "ImportEdge",
    "ImportResolver",
    "Module",
    "ModuleClassifier",
    "NamespacePattern",
    "ResolvedImport",
    "UnclassifiedFile",
    "UnresolvedImport",
    "build_graph",
    "compile_pattern",
    "export_graph",
    "format_dot",
    "format_mermaid",
    "graph_view",
]
