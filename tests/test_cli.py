"""Tests for the layerguard CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from layerguard import __version__
from layerguard.cli import main
from layerguard.config import default_rules_path
from layerguard.errors import RunCancelled
from layerguard.report import cancelled_report

if TYPE_CHECKING:
    from pathlib import Path


class TestChecks:
    def test_check_layer_porcelain(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "check-layer",
                "internal/*/domain",
                "internal/*/infrastructure",
                "--project",
                str(go_project),
            ],
        )
        assert result.exit_code == 1, result.output
        assert (
            "layer:internal/*/domain:internal/user/domain/entity:"
            "internal/user/domain/entity/user.go:5:internal/user/infrastructure/db:"
        ) in result.output

    def test_check_isolation_passes(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["check-isolation", "internal/user/", "internal/order/", "--project", str(go_project)],
        )
        assert result.exit_code == 0, result.output
        assert result.output.strip() == ""

    def test_check_naming_json(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "check-naming",
                "internal/*/domain",
                "Repository",
                "interface",
                "--format",
                "json",
                "--project",
                str(go_project),
            ],
        )
        assert result.exit_code == 1, result.output
        data = json.loads(result.output)
        assert data["results"][0]["violations"][0]["symbol"] == "UserRepository"

    def test_bad_pattern_exits_two(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["check-layer", "internal//x", "y", "--project", str(go_project)]
        )
        assert result.exit_code == 2
        assert "Malformed namespace pattern" in result.output

    def test_invalid_kind_is_rejected(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["check-naming", "a", "Repository", "enum", "--project", str(go_project)]
        )
        assert result.exit_code != 0


class TestInitAndRun:
    def test_init_writes_preset(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["init", "--project", str(go_project)])
        assert result.exit_code == 0, result.output
        text = default_rules_path(go_project).read_text(encoding="utf-8")
        assert "domain-no-infrastructure" in text

    def test_init_refuses_overwrite(self, go_project: Path) -> None:
        runner = CliRunner()
        runner.invoke(main, ["init", "--project", str(go_project)])
        result = runner.invoke(main, ["init", "--project", str(go_project)])
        assert result.exit_code == 1
        assert "already exists" in result.output
        forced = runner.invoke(main, ["init", "--force", "--project", str(go_project)])
        assert forced.exit_code == 0

    def test_run_reports_violations(self, go_project: Path) -> None:
        runner = CliRunner()
        runner.invoke(main, ["init", "--project", str(go_project)])
        result = runner.invoke(main, ["run", "--format", "json", "--project", str(go_project)])
        assert result.exit_code == 1, result.output
        data = json.loads(result.output)
        assert data["status"] == "failed"
        failed = {r["rule"] for r in data["results"] if not r["success"]}
        assert "repository-naming" in failed

    def test_run_clean_project(self, clean_go_project: Path) -> None:
        runner = CliRunner()
        runner.invoke(main, ["init", "--project", str(clean_go_project)])
        result = runner.invoke(
            main, ["run", "--format", "rich", "--project", str(clean_go_project)]
        )
        assert result.exit_code == 0, result.output
        assert "rules passed" in result.output

    def test_run_malformed_rules_exits_two(self, go_project: Path) -> None:
        rules = default_rules_path(go_project)
        rules.parent.mkdir(parents=True)
        rules.write_text("version: 9\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["run", "--project", str(go_project)])
        assert result.exit_code == 2
        assert "unsupported version" in result.output


class TestCancellation:
    def test_cancelled_run_exits_three(
        self, go_project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "layerguard.api.run_all", lambda *args, **kwargs: cancelled_report("Scan cancelled")
        )
        runner = CliRunner()
        result = runner.invoke(main, ["run", "--project", str(go_project)])
        assert result.exit_code == 3
        assert "Cancelled: Scan cancelled" in result.output
        assert "Error:" not in result.output

    @pytest.mark.parametrize(
        ("command", "target"),
        [(["graph"], "layerguard.api.export_graph"), (["modules"], "layerguard.api.scan_project")],
    )
    def test_cancelled_graph_commands_exit_three(
        self,
        go_project: Path,
        monkeypatch: pytest.MonkeyPatch,
        command: list[str],
        target: str,
    ) -> None:
        def _cancel(*args: object, **kwargs: object) -> None:
            msg = "Scan cancelled"
            raise RunCancelled(msg)

        monkeypatch.setattr(target, _cancel)
        runner = CliRunner()
        result = runner.invoke(main, [*command, "--project", str(go_project)])
        assert result.exit_code == 3
        assert "Cancelled: Scan cancelled" in result.output


class TestGraphAndModules:
    def test_graph_dot(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["graph", "--project", str(go_project)])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("digraph modules {")

    def test_graph_to_file(self, go_project: Path, tmp_path: Path) -> None:
        out = tmp_path / "graph.mmd"
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "graph",
                "--format",
                "mermaid",
                "--focus",
                "cmd/api",
                "--output",
                str(out),
                "--project",
                str(go_project),
            ],
        )
        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8").startswith("graph LR")

    def test_graph_unknown_focus(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["graph", "--focus", "nope", "--project", str(go_project)])
        assert result.exit_code == 2

    def test_modules_table(self, go_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["modules", "--project", str(go_project)])
        assert result.exit_code == 0, result.output
        assert "internal/user/domain/entity" in result.output


class TestGlobalOptions:
    def test_version(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_mcp_serve_command_exists(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["mcp-serve", "--help"])
        assert result.exit_code == 0
        assert "MCP" in result.output
