"""Tests for layerguard.mcp_server — MCP tool handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from layerguard.errors import SetupError
from layerguard.mcp_server import (
    _TOOLS,
    _dispatch_tool,
    create_server,
    handle_check_domain_isolation,
    handle_check_layer_dependencies,
    handle_check_naming_conventions,
    handle_generate_dependency_graph,
    handle_run_all,
)

if TYPE_CHECKING:
    from pathlib import Path


class TestMcpToolHandlers:
    """Test MCP tool handler functions directly (without transport)."""

    def test_check_layer_dependencies(self, go_project: Path) -> None:
        result = handle_check_layer_dependencies(
            go_project, layer="internal/*/domain", forbidden="internal/*/infrastructure"
        )
        assert result["success"] is False
        assert result["violations"][0]["target"] == "internal/user/infrastructure/db"

    def test_check_domain_isolation(self, go_project: Path) -> None:
        result = handle_check_domain_isolation(
            go_project, source="internal/user/", target="internal/order/"
        )
        assert result["success"] is True
        assert result["violations"] == []

    def test_check_naming_all_conventions(self, go_project: Path) -> None:
        result = handle_check_naming_conventions(go_project)
        assert result["success"] is False
        rules = [r["rule"] for r in result["results"]]
        assert rules == ["naming:*Handler", "naming:*Repository", "naming:*UseCase"]

    def test_check_naming_explicit(self, go_project: Path) -> None:
        result = handle_check_naming_conventions(
            go_project, namespace="internal/*/application", suffix="UseCase", kind="struct"
        )
        assert result["success"] is True

    def test_check_naming_partial_arguments(self, go_project: Path) -> None:
        with pytest.raises(SetupError, match="must be given together"):
            handle_check_naming_conventions(go_project, suffix="UseCase")

    def test_check_naming_unknown_convention(self, go_project: Path) -> None:
        with pytest.raises(SetupError, match="Unknown convention"):
            handle_check_naming_conventions(go_project, convention="controller")

    def test_run_all(self, go_project: Path) -> None:
        result = handle_run_all(
            go_project,
            [
                {
                    "name": "app-no-infra",
                    "that": {"resides_in_namespace": "internal/*/application"},
                    "should_not": {"has_dependency_on": "internal/*/infrastructure"},
                }
            ],
        )
        assert result["status"] == "passed"
        assert result["exit_code"] == 0

    def test_generate_dependency_graph(self, go_project: Path) -> None:
        result = handle_generate_dependency_graph(
            go_project, focus_module="cmd/api", fmt="mermaid"
        )
        assert result["format"] == "mermaid"
        assert result["graph"].startswith("graph LR")


class TestDispatch:
    def test_routes_by_name(self, go_project: Path) -> None:
        result = _dispatch_tool(
            go_project,
            "check_domain_isolation",
            {"source": "internal/order/", "target": "internal/user/"},
        )
        assert result["success"] is False

    def test_graph_defaults(self, go_project: Path) -> None:
        result = _dispatch_tool(go_project, "generate_dependency_graph", {})
        assert result["format"] == "dot"

    def test_unknown_tool(self, go_project: Path) -> None:
        with pytest.raises(ValueError, match="Unknown tool"):
            _dispatch_tool(go_project, "nope", {})

    def test_tool_names(self) -> None:
        assert {t.name for t in _TOOLS} == {
            "check_layer_dependencies",
            "check_domain_isolation",
            "check_naming_conventions",
            "run_all_architecture_tests",
            "generate_dependency_graph",
        }

    def test_create_server(self, go_project: Path) -> None:
        server = create_server(go_project)
        assert server is not None
