"""Entry points: each call is a fresh scan -> build -> evaluate pipeline.

No graph is cached between calls; every invocation rescans the tree.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from layerguard.config import ProjectConfig, load_config
from layerguard.errors import RunCancelled, SetupError
from layerguard.graph.builder import build_graph
from layerguard.graph.export import export_graph as render_graph
from layerguard.report import aggregate, cancelled_report, error_report
from layerguard.rules.evaluator import evaluate, evaluate_all
from layerguard.rules.loader import expand_definitions, parse_rules
from layerguard.rules.predicates import (
    all_of,
    has_dependency_on,
    has_name_ending_with,
    is_of_kind,
    resides_in_namespace,
    that,
)
from layerguard.scanning.scanner import check_root, scan

if TYPE_CHECKING:
    import threading
    from collections.abc import Sequence

    from layerguard.graph.builder import DependencyGraph
    from layerguard.report import Report
    from layerguard.rules.evaluator import RuleResult
    from layerguard.rules.predicates import Rule

logger = logging.getLogger(__name__)


def _config(root: Path, config: ProjectConfig | None) -> ProjectConfig:
    return config if config is not None else load_config(root)


def scan_project(
    project_root: Path | str,
    *,
    config: ProjectConfig | None = None,
    cancel: threading.Event | None = None,
) -> DependencyGraph:
    """Scan *project_root* and build its dependency graph.

    Raises :class:`SetupError` or :class:`RunCancelled`.
    """
    root = check_root(Path(project_root))
    cfg = _config(root, config)
    result = scan(
        root,
        include=cfg.include,
        exclude=cfg.exclude,
        workers=cfg.workers,
        cancel=cancel,
    )
    return build_graph(root, result, templates=cfg.namespaces)


def _check_rule(
    project_root: Path | str,
    rule: Rule,
    config: ProjectConfig | None,
    cancel: threading.Event | None,
) -> RuleResult:
    root = check_root(Path(project_root))
    cfg = _config(root, config)
    graph = scan_project(root, config=cfg, cancel=cancel)
    return evaluate(graph, rule, empty_selection=cfg.empty_selection)


def check_layer_dependency(
    project_root: Path | str,
    layer_pattern: str,
    forbidden_pattern: str,
    *,
    config: ProjectConfig | None = None,
    cancel: threading.Event | None = None,
) -> RuleResult:
    """Modules in *layer_pattern* must not depend on modules in *forbidden_pattern*."""
    rule = that(resides_in_namespace(layer_pattern)).should_not(
        has_dependency_on(forbidden_pattern),
        name=f"layer:{layer_pattern}",
        description=f"{layer_pattern} must not depend on {forbidden_pattern}",
    )
    return _check_rule(project_root, rule, config, cancel)


def check_isolation(
    project_root: Path | str,
    source_pattern: str,
    target_pattern: str,
    *,
    config: ProjectConfig | None = None,
    cancel: threading.Event | None = None,
) -> RuleResult:
    """Modules in *source_pattern* must be isolated from modules in *target_pattern*."""
    rule = that(resides_in_namespace(source_pattern)).should_not(
        has_dependency_on(target_pattern),
        name=f"isolation:{source_pattern}",
        description=f"{source_pattern} must be isolated from {target_pattern}",
    )
    return _check_rule(project_root, rule, config, cancel)


def check_naming(
    project_root: Path | str,
    namespace_pattern: str,
    suffix: str,
    required_kind: str,
    *,
    config: ProjectConfig | None = None,
    cancel: threading.Event | None = None,
) -> RuleResult:
    """Symbols named ``*<suffix>`` in *namespace_pattern* must be of *required_kind*."""
    rule = that(
        all_of(resides_in_namespace(namespace_pattern), has_name_ending_with(suffix))
    ).should(
        is_of_kind(required_kind),
        name=f"naming:*{suffix}",
        description=f"*{suffix} in {namespace_pattern} must be {required_kind}s",
    )
    return _check_rule(project_root, rule, config, cancel)


def build_rules(definitions: Sequence[Any], graph: DependencyGraph) -> list[Rule]:
    """Expand parameterized definitions with the graph's captures and parse them all."""
    return parse_rules(expand_definitions(definitions, graph.capture_values))


def validate_definitions(definitions: Sequence[Any]) -> None:
    """Parse *definitions* without a graph, so malformed rules fail before scanning."""
    parse_rules(expand_definitions(definitions, lambda _variable: ("_a", "_b")))


def run_all(
    project_root: Path | str,
    rule_definitions: Sequence[Any] | None = None,
    *,
    config: ProjectConfig | None = None,
    cancel: threading.Event | None = None,
) -> Report:
    """Run every rule and return the aggregated report.

    *rule_definitions* default to the ``rules`` of the project's rules file.
    Setup errors and cancellation are reported through ``Report.status``
    (``error`` / ``cancelled``) rather than raised; ``Report.exit_code`` is 0
    only for a completed run with no violations.
    """
    start = time.monotonic()
    try:
        root = check_root(Path(project_root))
        cfg = _config(root, config)
        definitions = list(cfg.rules if rule_definitions is None else rule_definitions)
        validate_definitions(definitions)
        graph = scan_project(root, config=cfg, cancel=cancel)
        rules = build_rules(definitions, graph)
        results = evaluate_all(graph, rules, empty_selection=cfg.empty_selection)
    except SetupError as exc:
        logger.error("Setup error: %s", exc)
        return error_report(str(exc))
    except RunCancelled as exc:
        logger.warning("Run cancelled: %s", exc)
        return cancelled_report(str(exc))

    report = aggregate(results, graph)
    logger.info(
        "Evaluated %d rules in %.1fms: %s",
        len(results),
        (time.monotonic() - start) * 1000,
        report.status.value,
    )
    return report


def export_graph(
    project_root: Path | str,
    focus_module: str | None = None,
    *,
    depth: int = 1,
    fmt: str = "dot",
    include_external: bool = False,
    config: ProjectConfig | None = None,
    cancel: threading.Event | None = None,
) -> str:
    """Scan the project and render its graph (or *focus_module*'s neighborhood) as text."""
    graph = scan_project(project_root, config=config, cancel=cancel)
    return render_graph(
        graph,
        focus=focus_module,
        depth=depth,
        fmt=fmt,
        include_external=include_external,
    )
