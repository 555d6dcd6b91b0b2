"""Rule evaluator: interpret a rule AST against an immutable dependency graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from layerguard.errors import SetupError
from layerguard.graph.builder import DependencyGraph
from layerguard.graph.namespace import compile_pattern
from layerguard.rules.predicates import (
    AllModules,
    AllOf,
    AnyOf,
    HasDependencyOn,
    HasNameEndingWith,
    IsOfKind,
    NamesEndWith,
    Not,
    OnlyDependsOn,
    Quantifier,
    ResidesInNamespace,
    Rule,
    describe_rule,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from layerguard.graph.builder import Module
    from layerguard.rules.predicates import Assertion, Selector
    from layerguard.scanning.adapters import Symbol

logger = logging.getLogger(__name__)


class EmptySelection(str, Enum):
    """What a rule whose selector matches nothing reports."""

    PASS = "pass"  # vacuous truth
    WARN = "warn"  # success, with a warning attached
    FAIL = "fail"  # failure, with one selection violation


def parse_empty_selection(value: EmptySelection | str) -> EmptySelection:
    try:
        return EmptySelection(value)
    except ValueError:
        valid = [p.value for p in EmptySelection]
        msg = f"Invalid empty_selection policy '{value}', must be one of {valid}"
        raise SetupError(msg) from None


@dataclass(frozen=True)
class Violation:
    """A concrete case where a module, edge or symbol breaks a rule."""

    rule: str
    module: str | None
    reason: str
    file: str | None = None
    line: int | None = None
    target: str | None = None
    symbol: str | None = None


@dataclass(frozen=True)
class RuleResult:
    """Verdict of one rule: success plus the complete violation list."""

    rule: str
    success: bool
    violations: tuple[Violation, ...] = ()
    selected: int = 0
    description: str = ""
    warnings: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class _Selected:
    scope: frozenset[Symbol] | None  # None: every symbol of the module
    captures: dict[str, str]


# ---------------------------------------------------------------------------
# Selector resolution
# ---------------------------------------------------------------------------


def _internal(graph: DependencyGraph) -> Iterable[Module]:
    return (m for m in graph.modules.values() if not m.external)


def _merge_scope(
    left: frozenset[Symbol] | None, right: frozenset[Symbol] | None
) -> frozenset[Symbol] | None:
    if left is None:
        return right
    if right is None:
        return left
    return left & right


def _select(graph: DependencyGraph, selector: Selector) -> dict[str, _Selected]:
    if isinstance(selector, ResidesInNamespace):
        pattern = compile_pattern(selector.pattern)
        chosen: dict[str, _Selected] = {}
        for mod in graph.modules.values():
            ok, captures = pattern.match(mod.id)
            if ok:
                chosen[mod.id] = _Selected(scope=None, captures=captures)
        return chosen

    if isinstance(selector, HasNameEndingWith):
        chosen = {}
        for mod in _internal(graph):
            scope = frozenset(s for s in mod.symbols if s.name.endswith(selector.suffix))
            if scope:
                chosen[mod.id] = _Selected(scope=scope, captures={})
        return chosen

    if isinstance(selector, AllModules):
        return {mod.id: _Selected(scope=None, captures={}) for mod in _internal(graph)}

    if isinstance(selector, AllOf):
        result = _select(graph, selector.operands[0])
        for operand in selector.operands[1:]:
            other = _select(graph, operand)
            merged: dict[str, _Selected] = {}
            for mid, sel in result.items():
                if mid not in other:
                    continue
                scope = _merge_scope(sel.scope, other[mid].scope)
                if scope is not None and not scope:
                    continue
                merged[mid] = _Selected(
                    scope=scope, captures={**other[mid].captures, **sel.captures}
                )
            result = merged
        return result

    if isinstance(selector, AnyOf):
        result = {}
        for operand in selector.operands:
            for mid, sel in _select(graph, operand).items():
                prev = result.get(mid)
                if prev is None:
                    result[mid] = sel
                    continue
                scope = None if prev.scope is None or sel.scope is None else prev.scope | sel.scope
                result[mid] = _Selected(scope=scope, captures={**sel.captures, **prev.captures})
        return result

    if isinstance(selector, Not):
        excluded = _select(graph, selector.operand)
        return {
            mod.id: _Selected(scope=None, captures={})
            for mod in _internal(graph)
            if mod.id not in excluded
        }

    msg = f"Unknown selector node {selector!r}"
    raise SetupError(msg)


# ---------------------------------------------------------------------------
# Assertions
# ---------------------------------------------------------------------------


@dataclass
class _Outcome:
    failures: list[Violation]  # reported under `should`
    witnesses: list[Violation]  # reported under `should_not`


def _assert(
    graph: DependencyGraph, rule: str, mod: Module, sel: _Selected, assertion: Assertion
) -> _Outcome:
    if isinstance(assertion, HasDependencyOn):
        pattern = compile_pattern(assertion.pattern).bind(sel.captures)
        hits = [e for e in graph.outgoing(mod.id) if pattern.matches(e.target)]
        witnesses = [
            Violation(
                rule=rule,
                module=mod.id,
                file=e.file,
                line=e.line,
                target=e.target,
                reason=f"depends on '{e.target}' (import \"{e.raw}\")",
            )
            for e in hits
        ]
        failures = []
        if not hits:
            failures.append(
                Violation(
                    rule=rule,
                    module=mod.id,
                    reason=f"has no dependency on a module matching '{pattern.source}'",
                )
            )
        return _Outcome(failures=failures, witnesses=witnesses)

    if isinstance(assertion, OnlyDependsOn):
        allowed = [compile_pattern(p).bind(sel.captures) for p in assertion.patterns]
        offending = []
        for edge in graph.outgoing(mod.id):
            target = graph.modules[edge.target]
            if assertion.allow_stdlib and target.stdlib:
                continue
            if any(p.matches(edge.target) for p in allowed):
                continue
            offending.append(edge)
        failures = [
            Violation(
                rule=rule,
                module=mod.id,
                file=e.file,
                line=e.line,
                target=e.target,
                reason=f"depends on '{e.target}' which is not an allowed dependency",
            )
            for e in offending
        ]
        witnesses = []
        if not offending:
            witnesses.append(
                Violation(rule=rule, module=mod.id, reason="depends only on allowed modules")
            )
        return _Outcome(failures=failures, witnesses=witnesses)

    symbols = sorted(
        mod.symbols if sel.scope is None else sel.scope, key=lambda s: (s.file, s.line, s.name)
    )
    if isinstance(assertion, IsOfKind):
        ok = [s for s in symbols if s.kind == assertion.kind]
        bad = [s for s in symbols if s.kind != assertion.kind]
        return _Outcome(
            failures=[
                _symbol_violation(rule, mod, s, f"{s.name} is a {s.kind}, not a {assertion.kind}")
                for s in bad
            ],
            witnesses=[_symbol_violation(rule, mod, s, f"{s.name} is a {s.kind}") for s in ok],
        )

    if isinstance(assertion, NamesEndWith):
        ok = [s for s in symbols if s.name.endswith(assertion.suffix)]
        bad = [s for s in symbols if not s.name.endswith(assertion.suffix)]
        return _Outcome(
            failures=[
                _symbol_violation(rule, mod, s, f"{s.name} does not end with '{assertion.suffix}'")
                for s in bad
            ],
            witnesses=[
                _symbol_violation(rule, mod, s, f"{s.name} ends with '{assertion.suffix}'")
                for s in ok
            ],
        )

    msg = f"Unknown assertion node {assertion!r}"
    raise SetupError(msg)


def _symbol_violation(rule: str, mod: Module, symbol: Symbol, reason: str) -> Violation:
    return Violation(
        rule=rule,
        module=mod.id,
        file=symbol.file,
        line=symbol.line,
        symbol=symbol.name,
        reason=reason,
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def evaluate(
    graph: DependencyGraph | None,
    rule: Rule,
    *,
    empty_selection: EmptySelection | str = EmptySelection.PASS,
) -> RuleResult:
    """Evaluate *rule* against *graph*.

    Every selected module is checked; there is no fail-fast, so the result
    always carries the complete violation list.  Under ``should`` a module
    contributes one violation per failing condition; under ``should_not``
    one violation per offending edge or symbol.  For structural assertions
    (kinds, names) the symbols in scope are quantified individually.

    Raises :class:`SetupError` when the graph is missing or the rule is not
    a :class:`Rule`.
    """
    if not isinstance(graph, DependencyGraph):
        msg = "Cannot evaluate rules without a dependency graph"
        raise SetupError(msg)
    if not isinstance(rule, Rule):
        msg = f"Expected a Rule, got {type(rule).__name__}"
        raise SetupError(msg)
    policy = parse_empty_selection(empty_selection)

    selection = _select(graph, rule.selector)
    description = rule.description or describe_rule(rule)

    if not selection:
        logger.debug("Rule %s selected no modules (policy: %s)", rule.name, policy.value)
        if policy is EmptySelection.FAIL:
            violation = Violation(rule=rule.name, module=None, reason="selector matched no modules")
            return RuleResult(
                rule=rule.name, success=False, violations=(violation,), description=description
            )
        warnings: tuple[str, ...] = ()
        if policy is EmptySelection.WARN:
            warnings = (f"Rule '{rule.name}' selected no modules; check its namespace pattern",)
        return RuleResult(rule=rule.name, success=True, description=description, warnings=warnings)

    violations: list[Violation] = []
    for mid in sorted(selection):
        outcome = _assert(graph, rule.name, graph.modules[mid], selection[mid], rule.assertion)
        if rule.quantifier is Quantifier.SHOULD:
            violations.extend(outcome.failures)
        else:
            violations.extend(outcome.witnesses)

    return RuleResult(
        rule=rule.name,
        success=not violations,
        violations=tuple(violations),
        selected=len(selection),
        description=description,
    )


def evaluate_all(
    graph: DependencyGraph | None,
    rules: Iterable[Rule],
    *,
    empty_selection: EmptySelection | str = EmptySelection.PASS,
) -> list[RuleResult]:
    """Evaluate every rule, in the given order."""
    return [evaluate(graph, rule, empty_selection=empty_selection) for rule in rules]
