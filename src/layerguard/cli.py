"""layerguard CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import click

from layerguard import __version__

_PROJECT_OPTION = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)


def _format_option(default: str | None = None) -> Any:
    return click.option(
        "--format",
        "fmt",
        type=click.Choice(["rich", "json", "porcelain"]),
        default=default,
        help="Output format (default: rich if TTY, porcelain if piped).",
    )


@click.group()
@click.version_option(version=__version__, prog_name="layerguard")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """layerguard - architecture conformance checks for namespaced source trees."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _emit(report: object, fmt: str | None) -> None:
    from layerguard.report import FORMATTERS

    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"
    output = FORMATTERS[fmt](report)  # type: ignore[operator]
    if output:
        click.echo(output)


def _run_check(check: object, fmt: str | None, *args: str, project: Path | None) -> None:
    """Run a single-rule check and exit with the report's code."""
    from layerguard.errors import RunCancelled, SetupError
    from layerguard.report import Report, RunStatus

    project_root = project or Path.cwd()
    try:
        result = check(project_root, *args)  # type: ignore[operator]
    except SetupError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    except RunCancelled as exc:
        click.echo(f"Cancelled: {exc}", err=True)
        sys.exit(3)

    status = RunStatus.PASSED if result.success else RunStatus.FAILED
    report = Report(status=status, results=(result,))
    _emit(report, fmt)
    sys.exit(report.exit_code)


@main.command("check-layer")
@click.argument("layer_pattern")
@click.argument("forbidden_pattern")
@_format_option()
@_PROJECT_OPTION
def check_layer(
    layer_pattern: str, forbidden_pattern: str, *, fmt: str | None, project: Path | None
) -> None:
    """Check that LAYER_PATTERN modules do not depend on FORBIDDEN_PATTERN modules."""
    from layerguard.api import check_layer_dependency

    _run_check(check_layer_dependency, fmt, layer_pattern, forbidden_pattern, project=project)


@main.command("check-isolation")
@click.argument("source_pattern")
@click.argument("target_pattern")
@_format_option()
@_PROJECT_OPTION
def check_isolation(
    source_pattern: str, target_pattern: str, *, fmt: str | None, project: Path | None
) -> None:
    """Check that SOURCE_PATTERN modules never import TARGET_PATTERN modules."""
    from layerguard.api import check_isolation as do_check

    _run_check(do_check, fmt, source_pattern, target_pattern, project=project)


@main.command("check-naming")
@click.argument("namespace_pattern")
@click.argument("suffix")
@click.argument(
    "required_kind",
    type=click.Choice(["interface", "struct", "class", "function", "type"]),
)
@_format_option()
@_PROJECT_OPTION
def check_naming(
    namespace_pattern: str,
    suffix: str,
    required_kind: str,
    *,
    fmt: str | None,
    project: Path | None,
) -> None:
    """Check that symbols named *SUFFIX in NAMESPACE_PATTERN are REQUIRED_KIND."""
    from layerguard.api import check_naming as do_check

    _run_check(do_check, fmt, namespace_pattern, suffix, required_kind, project=project)


@main.command()
@_format_option()
@click.option(
    "--rules",
    "rules_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Rules file (default: .layerguard/rules.yml).",
)
@_PROJECT_OPTION
def run(*, fmt: str | None, rules_path: Path | None, project: Path | None) -> None:
    """Run every rule of the rules file.

    Exit codes: 0 = all rules passed, 1 = violations, 2 = setup error,
    3 = cancelled.
    """
    from layerguard.api import run_all
    from layerguard.config import load_config
    from layerguard.errors import SetupError
    from layerguard.report import RunStatus

    project_root = project or Path.cwd()
    try:
        config = load_config(project_root, rules_path)
    except SetupError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    report = run_all(project_root, config=config)
    if report.status is RunStatus.CANCELLED:
        click.echo(f"Cancelled: {report.error}", err=True)
    elif report.error is not None:
        click.echo(f"Error: {report.error}", err=True)
    else:
        _emit(report, fmt)
    sys.exit(report.exit_code)


@main.command()
@click.option("--focus", default=None, help="Only show this module and its neighbors.")
@click.option("--depth", default=1, type=int, help="Neighborhood depth around --focus.")
@click.option(
    "--format", "fmt", type=click.Choice(["dot", "mermaid"]), default="dot", help="Output format."
)
@click.option("--external", is_flag=True, help="Include external modules.")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to a file instead of stdout.",
)
@_PROJECT_OPTION
def graph(
    *,
    focus: str | None,
    depth: int,
    fmt: str,
    external: bool,
    output: Path | None,
    project: Path | None,
) -> None:
    """Export the module dependency graph (DOT or Mermaid)."""
    from layerguard.api import export_graph
    from layerguard.errors import RunCancelled, SetupError

    project_root = project or Path.cwd()
    try:
        text = export_graph(
            project_root, focus, depth=depth, fmt=fmt, include_external=external
        )
    except SetupError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    except RunCancelled as exc:
        click.echo(f"Cancelled: {exc}", err=True)
        sys.exit(3)

    if output is not None:
        output.write_text(text + "\n", encoding="utf-8")
        click.echo(f"Graph written to {output}")
    else:
        click.echo(text)


@main.command()
@click.option("--external", is_flag=True, help="Include external modules.")
@_PROJECT_OPTION
def modules(*, external: bool, project: Path | None) -> None:
    """List discovered modules with their template, captures and kinds."""
    from rich.console import Console
    from rich.table import Table

    from layerguard.api import scan_project
    from layerguard.errors import RunCancelled, SetupError

    project_root = project or Path.cwd()
    try:
        dep_graph = scan_project(project_root)
    except SetupError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    except RunCancelled as exc:
        click.echo(f"Cancelled: {exc}", err=True)
        sys.exit(3)

    console = Console()
    table = Table(title="Modules", box=None, padding=(0, 1))
    table.add_column("Module", style="bold")
    table.add_column("Template")
    table.add_column("Captures")
    table.add_column("Files", justify="right")
    table.add_column("Kinds")
    table.add_column("Deps", justify="right")
    for mid in dep_graph.module_ids(include_external=external):
        mod = dep_graph.modules[mid]
        captures = ", ".join(f"{k}={v}" for k, v in mod.captures)
        table.add_row(
            mid,
            mod.template or "-",
            captures or "-",
            str(len(mod.files)),
            ", ".join(sorted(mod.kinds)) or "-",
            str(len(dep_graph.successors(mid))),
        )
    console.print(table)

    if dep_graph.unclassified:
        console.print(f"[yellow]{len(dep_graph.unclassified)} unclassified files[/yellow]")
        for item in dep_graph.unclassified:
            console.print(f"  {item.path} ({item.reason})")


@main.command()
@click.option(
    "--preset",
    type=click.Choice(["hexagonal"]),
    default="hexagonal",
    help="Rule preset to start from.",
)
@click.option("--force", is_flag=True, help="Overwrite an existing rules file.")
@_PROJECT_OPTION
def init(*, preset: str, force: bool, project: Path | None) -> None:
    """Write a starter .layerguard/rules.yml."""
    from layerguard.config import default_rules_path
    from layerguard.presets import render_preset

    project_root = project or Path.cwd()
    rules_path = default_rules_path(project_root)
    if rules_path.exists() and not force:
        click.echo(f"Error: {rules_path} already exists (use --force to overwrite)", err=True)
        sys.exit(1)

    rules_path.parent.mkdir(parents=True, exist_ok=True)
    rules_path.write_text(render_preset(preset), encoding="utf-8")
    click.echo(f"Created {rules_path} from preset '{preset}'")


@main.command("mcp-serve")
@_PROJECT_OPTION
def mcp_serve(*, project: Path | None) -> None:
    """Run the layerguard MCP server (stdio transport)."""
    import anyio

    from layerguard.mcp_server import create_server

    project_root = project or Path.cwd()
    server = create_server(project_root)

    async def _run() -> None:
        from mcp import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )

    anyio.run(_run)
