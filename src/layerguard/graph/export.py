"""Graph exporter: render a dependency graph as DOT or Mermaid text.

Exporting is read-only; it only looks at the immutable graph value.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from layerguard.errors import SetupError

if TYPE_CHECKING:
    from layerguard.graph.builder import DependencyGraph

EXPORT_FORMATS: tuple[str, ...] = ("dot", "mermaid")

_MERMAID_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_]")


def neighborhood(graph: DependencyGraph, focus: str, depth: int = 1) -> set[str]:
    """Return *focus* plus every module within *depth* hops, in either direction."""
    if focus not in graph.modules:
        msg = f"Unknown module '{focus}'"
        raise SetupError(msg)
    seen = {focus}
    frontier = {focus}
    for _ in range(max(0, depth)):
        nxt: set[str] = set()
        for mid in frontier:
            nxt.update(graph.successors(mid))
            nxt.update(graph.predecessors(mid))
        frontier = nxt - seen
        seen |= frontier
        if not frontier:
            break
    return seen


def graph_view(
    graph: DependencyGraph,
    *,
    focus: str | None = None,
    depth: int = 1,
    include_external: bool = False,
) -> tuple[list[str], list[tuple[str, str]]]:
    """Return sorted ``(nodes, edges)`` where edges are distinct module pairs."""
    if focus is not None:
        selected = neighborhood(graph, focus, depth)
    else:
        selected = set(graph.modules)
    if not include_external:
        selected = {m for m in selected if not graph.modules[m].external or m == focus}

    nodes = sorted(selected)
    pairs = sorted(
        {(e.source, e.target) for e in graph.edges if e.source in selected and e.target in selected}
    )
    return nodes, pairs


def format_dot(nodes: list[str], edges: list[tuple[str, str]], *, focus: str | None = None) -> str:
    """Format nodes and edges as a Graphviz digraph."""
    lines = ["digraph modules {", "  rankdir=LR;"]
    for node in nodes:
        attrs = ' [style="bold"]' if node == focus else ""
        lines.append(f'  "{node}"{attrs};')
    for src, dst in edges:
        lines.append(f'  "{src}" -> "{dst}";')
    lines.append("}")
    return "\n".join(lines)


def format_mermaid(nodes: list[str], edges: list[tuple[str, str]]) -> str:
    """Format nodes and edges as a Mermaid flowchart."""
    ids = {node: f"n{i}_{_MERMAID_UNSAFE_RE.sub('_', node)}" for i, node in enumerate(nodes)}
    lines = ["graph LR"]
    for node in nodes:
        lines.append(f'    {ids[node]}["{node}"]')
    for src, dst in edges:
        lines.append(f"    {ids[src]} --> {ids[dst]}")
    return "\n".join(lines)


def export_graph(
    graph: DependencyGraph,
    *,
    focus: str | None = None,
    depth: int = 1,
    fmt: str = "dot",
    include_external: bool = False,
) -> str:
    """Render *graph* (or the neighborhood of *focus*) as text in *fmt*."""
    if fmt not in EXPORT_FORMATS:
        msg = f"Unknown export format '{fmt}', must be one of {list(EXPORT_FORMATS)}"
        raise SetupError(msg)
    nodes, edges = graph_view(graph, focus=focus, depth=depth, include_external=include_external)
    if fmt == "mermaid":
        return format_mermaid(nodes, edges)
    return format_dot(nodes, edges, focus=focus)
