"""layerguard: namespace-based architecture conformance checks."""

from layerguard.api import (
    check_isolation,
    check_layer_dependency,
    check_naming,
    export_graph,
    run_all,
    scan_project,
)
from layerguard.errors import ExtractionWarning, LayerguardError, RunCancelled, SetupError
from layerguard.report import Report, RunStatus
from layerguard.rules.evaluator import EmptySelection, RuleResult, Violation, evaluate

__version__ = "0.4.0"

__all__ = [
    "EmptySelection",
    "ExtractionWarning",
    "LayerguardError",
    "Report",
    "RuleResult",
    "RunCancelled",
    "RunStatus",
    "SetupError",
    "Violation",
    "__version__",
    "check_isolation",
    "check_layer_dependency",
    "check_naming",
    "evaluate",
    "export_graph",
    "run_all",
    "scan_project",
]
