"""Rules domain: predicate AST, definition loader, evaluator."""

from layerguard.rules.evaluator import (
    EmptySelection,
    RuleResult,
    Violation,
    evaluate,
    evaluate_all,
)
from layerguard.rules.loader import (
    expand_definitions,
    isolation_definitions,
    parse_rule,
    parse_rules,
    rule_to_dict,
)
from layerguard.rules.predicates import (
    Quantifier,
    Rule,
    all_modules,
    all_of,
    any_of,
    describe_rule,
    has_dependency_on,
    has_name_ending_with,
    is_interface_kind,
    is_of_kind,
    names_end_with,
    not_,
    only_depends_on,
    resides_in_namespace,
    that,
)

__all__ = [
    "EmptySelection",
    "Quantifier",
    "Rule",
    "RuleResult",
    "Violation",
    "all_modules",
    "all_of",
    "any_of",
    "describe_rule",
    "evaluate",
    "evaluate_all",
    "expand_definitions",
    "has_dependency_on",
    "has_name_ending_with",
    "is_interface_kind",
    "is_of_kind",
    "isolation_definitions",
    "names_end_with",
    "not_",
    "only_depends_on",
    "parse_rule",
    "parse_rules",
    "resides_in_namespace",
    "rule_to_dict",
    "that",
]
