"""MCP server: stdio-based tool server for AI agents."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import mcp
from mcp.server import Server
from mcp.types import TextContent

from layerguard import __version__
from layerguard.api import (
    check_isolation,
    check_layer_dependency,
    check_naming,
    export_graph,
    run_all,
)
from layerguard.errors import LayerguardError, SetupError
from layerguard.presets import NAMING_CONVENTIONS
from layerguard.report import report_to_dict, result_to_dict

if TYPE_CHECKING:
    from pathlib import Path


# --- Tool handler functions (sync, testable without transport) ---


def handle_check_layer_dependencies(
    project_root: Path,
    *,
    layer: str,
    forbidden: str,
) -> dict[str, Any]:
    """Check that *layer* modules do not depend on *forbidden* modules."""
    return result_to_dict(check_layer_dependency(project_root, layer, forbidden))


def handle_check_domain_isolation(
    project_root: Path,
    *,
    source: str,
    target: str,
) -> dict[str, Any]:
    """Check that *source* modules never import *target* modules."""
    return result_to_dict(check_isolation(project_root, source, target))


def handle_check_naming_conventions(
    project_root: Path,
    *,
    convention: str | None = None,
    namespace: str | None = None,
    suffix: str | None = None,
    kind: str | None = None,
) -> dict[str, Any]:
    """Check a named convention, or an explicit namespace/suffix/kind triple.

    Without any argument every built-in convention is checked.
    """
    if namespace or suffix or kind:
        if not (namespace and suffix and kind):
            msg = "namespace, suffix and kind must be given together"
            raise SetupError(msg)
        return result_to_dict(check_naming(project_root, namespace, suffix, kind))

    if convention is not None and convention not in NAMING_CONVENTIONS:
        msg = f"Unknown convention '{convention}', must be one of {sorted(NAMING_CONVENTIONS)}"
        raise SetupError(msg)
    names = [convention] if convention else sorted(NAMING_CONVENTIONS)

    results = []
    for key in names:
        conv = NAMING_CONVENTIONS[key]
        results.append(
            result_to_dict(check_naming(project_root, conv.namespace, conv.suffix, conv.kind))
        )
    return {
        "success": all(r["success"] for r in results),
        "results": results,
    }


def handle_run_all(
    project_root: Path,
    rules: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Run every configured rule (or *rules*, when given) and return the report."""
    report = run_all(project_root, rules)
    data = report_to_dict(report)
    data["exit_code"] = report.exit_code
    return data


def handle_generate_dependency_graph(
    project_root: Path,
    *,
    focus_module: str | None = None,
    depth: int = 1,
    fmt: str = "dot",
    include_external: bool = False,
) -> dict[str, Any]:
    """Render the module graph, or the neighborhood of *focus_module*."""
    text = export_graph(
        project_root,
        focus_module,
        depth=depth,
        fmt=fmt,
        include_external=include_external,
    )
    return {"format": fmt, "focus_module": focus_module, "graph": text}


# --- MCP Server setup ---

_TOOLS = [
    mcp.Tool(
        name="check_layer_dependencies",
        description=(
            "Check that modules in one namespace do not depend on modules in another. "
            "Patterns are namespace templates like 'internal/*/domain'. "
            "Returns every violating import with file and line."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "layer": {
                    "type": "string",
                    "description": "Namespace pattern of the layer being checked",
                },
                "forbidden": {
                    "type": "string",
                    "description": "Namespace pattern the layer must not depend on",
                },
            },
            "required": ["layer", "forbidden"],
        },
    ),
    mcp.Tool(
        name="check_domain_isolation",
        description=(
            "Check that one bounded context never imports another. "
            "Returns every cross-context import."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "source": {
                    "type": "string",
                    "description": "Namespace pattern of the isolated context",
                },
                "target": {
                    "type": "string",
                    "description": "Namespace pattern it must not import",
                },
            },
            "required": ["source", "target"],
        },
    ),
    mcp.Tool(
        name="check_naming_conventions",
        description=(
            "Check that symbols named with a suffix are of the required kind, "
            "e.g. '*Repository' types under domain packages are interfaces. "
            "Omit all arguments to check every built-in convention."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "convention": {
                    "type": "string",
                    "enum": sorted(NAMING_CONVENTIONS),
                    "description": "Built-in convention to check (optional)",
                },
                "namespace": {
                    "type": "string",
                    "description": "Namespace pattern (with suffix and kind)",
                },
                "suffix": {
                    "type": "string",
                    "description": "Name suffix, e.g. 'Repository'",
                },
                "kind": {
                    "type": "string",
                    "enum": ["interface", "struct", "class", "function", "type"],
                    "description": "Required symbol kind",
                },
            },
        },
    ),
    mcp.Tool(
        name="run_all_architecture_tests",
        description=(
            "Run every rule from .layerguard/rules.yml and return the full report: "
            "status, per-rule results, violations and unclassified files."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "rules": {
                    "type": "array",
                    "items": {"type": "object"},
                    "description": "Rule definitions to run instead of the rules file",
                },
            },
        },
    ),
    mcp.Tool(
        name="generate_dependency_graph",
        description=(
            "Export the module dependency graph as DOT or Mermaid text. "
            "Pass focus_module to limit output to its neighborhood."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "focus_module": {
                    "type": "string",
                    "description": "Module id to center on (optional)",
                },
                "depth": {
                    "type": "integer",
                    "default": 1,
                    "description": "Neighborhood depth around focus_module",
                },
                "format": {
                    "type": "string",
                    "enum": ["dot", "mermaid"],
                    "default": "dot",
                },
                "include_external": {
                    "type": "boolean",
                    "default": False,
                    "description": "Include external and stdlib modules",
                },
            },
        },
    ),
]


def create_server(project_root: Path) -> Server:
    """Create and configure the MCP server for a project."""
    server = Server(
        name="layerguard",
        version=__version__,
        instructions="layerguard: architecture conformance checks for the project tree.",
    )

    @server.list_tools()  # type: ignore[no-untyped-call,untyped-decorator]
    async def _list_tools() -> list[mcp.Tool]:
        return _TOOLS

    @server.call_tool()  # type: ignore[untyped-decorator]
    async def _call_tool(
        name: str,
        arguments: dict[str, Any] | None,
    ) -> list[TextContent]:
        args = arguments or {}
        try:
            result = _dispatch_tool(project_root, name, args)
        except (LayerguardError, LookupError, ValueError) as exc:
            return [TextContent(type="text", text=f"Error: {exc}")]
        return [
            TextContent(
                type="text",
                text=json.dumps(result, ensure_ascii=False, indent=2),
            )
        ]

    return server


def _dispatch_tool(
    project_root: Path,
    name: str,
    args: dict[str, Any],
) -> Any:
    """Route tool call to the appropriate handler."""
    if name == "check_layer_dependencies":
        return handle_check_layer_dependencies(
            project_root, layer=args["layer"], forbidden=args["forbidden"]
        )
    if name == "check_domain_isolation":
        return handle_check_domain_isolation(
            project_root, source=args["source"], target=args["target"]
        )
    if name == "check_naming_conventions":
        return handle_check_naming_conventions(
            project_root,
            convention=args.get("convention"),
            namespace=args.get("namespace"),
            suffix=args.get("suffix"),
            kind=args.get("kind"),
        )
    if name == "run_all_architecture_tests":
        return handle_run_all(project_root, args.get("rules"))
    if name == "generate_dependency_graph":
        return handle_generate_dependency_graph(
            project_root,
            focus_module=args.get("focus_module"),
            depth=args.get("depth", 1),
            fmt=args.get("format", "dot"),
            include_external=args.get("include_external", False),
        )

    msg = f"Unknown tool: {name}"
    raise ValueError(msg)
