"""Report aggregator and formatters."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from layerguard.errors import ExtractionWarning
    from layerguard.graph.builder import DependencyGraph
    from layerguard.graph.classifier import UnclassifiedFile
    from layerguard.rules.evaluator import RuleResult


class RunStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ERROR = "error"


# Process exit code per terminal status.
EXIT_CODES: dict[RunStatus, int] = {
    RunStatus.PASSED: 0,
    RunStatus.FAILED: 1,
    RunStatus.ERROR: 2,
    RunStatus.CANCELLED: 3,
}


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class Report:
    """Write-once outcome of a full run."""

    status: RunStatus
    results: tuple[RuleResult, ...] = ()
    unclassified: tuple[UnclassifiedFile, ...] = ()
    warnings: tuple[ExtractionWarning, ...] = ()
    modules_count: int = 0
    edges_count: int = 0
    error: str | None = None
    created_at: str = field(default_factory=_now)

    @property
    def success(self) -> bool:
        """True only for a completed run where every rule passed."""
        return self.status is RunStatus.PASSED

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.status]

    @property
    def violations_count(self) -> int:
        return sum(len(r.violations) for r in self.results)


def aggregate(results: Iterable[RuleResult], graph: DependencyGraph) -> Report:
    """Combine rule results: overall success is the AND of every rule."""
    collected = tuple(results)
    passed = all(r.success for r in collected)
    return Report(
        status=RunStatus.PASSED if passed else RunStatus.FAILED,
        results=collected,
        unclassified=graph.unclassified,
        warnings=graph.warnings,
        modules_count=len(graph.modules),
        edges_count=len(graph.edges),
    )


def error_report(message: str) -> Report:
    return Report(status=RunStatus.ERROR, error=message)


def cancelled_report(message: str) -> Report:
    return Report(status=RunStatus.CANCELLED, error=message)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_rich(report: Report) -> str:
    """Format a Report as human-readable text.

    Example output::

        Modules: 12, edges: 31

        ✗ domain-no-infrastructure
          The domain layer must not depend on the infrastructure layer
          internal/user/domain/entity/user.go:5 → depends on 'internal/user/infrastructure/db'

        ✓ application-no-infrastructure

        1 violation in 1 of 2 rules
    """
    if report.status is RunStatus.ERROR:
        return f"Error: {report.error}"
    if report.status is RunStatus.CANCELLED:
        return f"Cancelled: {report.error or 'run aborted'} (no verdict)"

    lines: list[str] = [f"Modules: {report.modules_count}, edges: {report.edges_count}", ""]

    for result in report.results:
        mark = "✓" if result.success else "✗"
        lines.append(f"{mark} {result.rule}")
        if not result.success and result.description:
            lines.append(f"  {result.description}")
        for v in result.violations:
            if v.file is not None:
                loc = v.file if v.line is None else f"{v.file}:{v.line}"
                lines.append(f"  {loc} → {v.reason}")
            else:
                lines.append(f"  {v.module or '<selection>'} → {v.reason}")
        for warning in result.warnings:
            lines.append(f"  ! {warning}")
        lines.append("")

    if report.unclassified:
        lines.append(f"Unclassified files: {len(report.unclassified)}")
        for item in report.unclassified:
            lines.append(f"  {item.path} ({item.reason})")
        lines.append("")

    failed = sum(1 for r in report.results if not r.success)
    count = report.violations_count
    if report.success:
        lines.append(f"✓ All {len(report.results)} rules passed")
    else:
        noun = "violation" if count == 1 else "violations"
        lines.append(f"{count} {noun} in {failed} of {len(report.results)} rules")
    return "\n".join(lines)


def result_to_dict(result: RuleResult) -> dict[str, object]:
    return {
        "rule": result.rule,
        "description": result.description,
        "success": result.success,
        "selected": result.selected,
        "warnings": list(result.warnings),
        "violations": [
            {
                "module": v.module,
                "file": v.file,
                "line": v.line,
                "target": v.target,
                "symbol": v.symbol,
                "reason": v.reason,
            }
            for v in result.violations
        ],
    }


def report_to_dict(report: Report) -> dict[str, object]:
    return {
        "status": report.status.value,
        "success": report.success,
        "created_at": report.created_at,
        "error": report.error,
        "results": [result_to_dict(r) for r in report.results],
        "unclassified": [{"path": u.path, "reason": u.reason} for u in report.unclassified],
        "summary": {
            "rules_evaluated": len(report.results),
            "violations_count": report.violations_count,
            "modules": report.modules_count,
            "edges": report.edges_count,
        },
    }


def format_json(report: Report) -> str:
    """Format a Report as structured JSON."""
    return json.dumps(report_to_dict(report), indent=2)


def format_porcelain(report: Report) -> str:
    """One line per violation: ``rule:module:file:line:target:symbol``.

    Missing fields are empty strings.  Returns an empty string when there
    are no violations.
    """
    lines: list[str] = []
    for result in report.results:
        for v in result.violations:
            line = str(v.line) if v.line is not None else ""
            lines.append(
                f"{v.rule}:{v.module or ''}:{v.file or ''}:{line}:{v.target or ''}:{v.symbol or ''}"
            )
    return "\n".join(lines)


FORMATTERS = {
    "rich": format_rich,
    "json": format_json,
    "porcelain": format_porcelain,
}
