"""Predicate engine: an immutable rule AST and the pure builders that produce it.

A rule is a selector (which modules are under test), a quantifier and an
assertion (what must hold for each selected module)::

    rule = that(resides_in_namespace("internal/*/domain")).should_not(
        has_dependency_on("internal/*/infrastructure"),
        name="domain-no-infrastructure",
    )

Building a rule never touches a graph.  Patterns are compiled while the
node is constructed, so a malformed pattern fails here with
:class:`~layerguard.errors.SetupError` rather than during evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from layerguard.errors import SetupError
from layerguard.graph.namespace import compile_pattern

VALID_SYMBOL_KINDS: frozenset[str] = frozenset(
    {"interface", "struct", "class", "function", "type"}
)


class Quantifier(str, Enum):
    SHOULD = "should"  # assertion holds for every selected module
    SHOULD_NOT = "should_not"  # assertion holds for no selected module


# ---------------------------------------------------------------------------
# Selector nodes
# ---------------------------------------------------------------------------


class _SelectorOps:
    """``&``, ``|`` and ``~`` combinators shared by all selector nodes."""

    def __and__(self, other: Selector) -> AllOf:
        return all_of(self, other)  # type: ignore[arg-type]

    def __or__(self, other: Selector) -> AnyOf:
        return any_of(self, other)  # type: ignore[arg-type]

    def __invert__(self) -> Not:
        return not_(self)  # type: ignore[arg-type]


@dataclass(frozen=True)
class ResidesInNamespace(_SelectorOps):
    """Modules whose id lies inside *pattern*."""

    pattern: str

    def __post_init__(self) -> None:
        compile_pattern(self.pattern)


@dataclass(frozen=True)
class HasNameEndingWith(_SelectorOps):
    """Modules declaring a symbol whose name ends with *suffix*.

    Narrows the symbols seen by structural assertions to the matching ones.
    """

    suffix: str

    def __post_init__(self) -> None:
        if not self.suffix:
            msg = "has_name_ending_with: suffix must be a non-empty string"
            raise SetupError(msg)


@dataclass(frozen=True)
class AllModules(_SelectorOps):
    """Every internal module."""


@dataclass(frozen=True)
class AllOf(_SelectorOps):
    operands: tuple[Selector, ...]

    def __post_init__(self) -> None:
        _check_operands("all_of", self.operands)


@dataclass(frozen=True)
class AnyOf(_SelectorOps):
    operands: tuple[Selector, ...]

    def __post_init__(self) -> None:
        _check_operands("any_of", self.operands)


@dataclass(frozen=True)
class Not(_SelectorOps):
    """Internal modules not chosen by *operand* (symbol narrowing is dropped)."""

    operand: Selector

    def __post_init__(self) -> None:
        _check_operands("not", (self.operand,))


Selector = ResidesInNamespace | HasNameEndingWith | AllModules | AllOf | AnyOf | Not

_SELECTOR_TYPES = (ResidesInNamespace, HasNameEndingWith, AllModules, AllOf, AnyOf, Not)


def _check_operands(op: str, operands: tuple[object, ...]) -> None:
    if not operands:
        msg = f"{op}: at least one selector is required"
        raise SetupError(msg)
    for operand in operands:
        if not isinstance(operand, _SELECTOR_TYPES):
            msg = f"{op}: expected a selector, got {type(operand).__name__}"
            raise SetupError(msg)


# ---------------------------------------------------------------------------
# Assertion nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HasDependencyOn:
    """At least one outgoing edge targets a module matching *pattern*.

    ``{name}`` segments are bound to the selected module's captures.
    """

    pattern: str

    def __post_init__(self) -> None:
        compile_pattern(self.pattern)


@dataclass(frozen=True)
class OnlyDependsOn:
    """Every outgoing edge targets a module matching one of *patterns*.

    Standard-library modules are always allowed when *allow_stdlib* is set.
    """

    patterns: tuple[str, ...]
    allow_stdlib: bool = True

    def __post_init__(self) -> None:
        for pattern in self.patterns:
            compile_pattern(pattern)


@dataclass(frozen=True)
class IsOfKind:
    """Every symbol in scope is declared with *kind*."""

    kind: str

    def __post_init__(self) -> None:
        if self.kind not in VALID_SYMBOL_KINDS:
            msg = f"Invalid symbol kind '{self.kind}', must be one of {sorted(VALID_SYMBOL_KINDS)}"
            raise SetupError(msg)


@dataclass(frozen=True)
class NamesEndWith:
    """Every symbol in scope has a name ending with *suffix*."""

    suffix: str

    def __post_init__(self) -> None:
        if not self.suffix:
            msg = "names_end_with: suffix must be a non-empty string"
            raise SetupError(msg)


Assertion = HasDependencyOn | OnlyDependsOn | IsOfKind | NamesEndWith

_ASSERTION_TYPES = (HasDependencyOn, OnlyDependsOn, IsOfKind, NamesEndWith)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    """An immutable architecture rule."""

    name: str
    selector: Selector
    quantifier: Quantifier
    assertion: Assertion
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.selector, _SELECTOR_TYPES):
            msg = f"Rule '{self.name}': invalid selector {self.selector!r}"
            raise SetupError(msg)
        if not isinstance(self.assertion, _ASSERTION_TYPES):
            msg = f"Rule '{self.name}': invalid assertion {self.assertion!r}"
            raise SetupError(msg)


@dataclass(frozen=True)
class RuleBuilder:
    """Intermediate value returned by :func:`that`."""

    selector: Selector

    def _build(
        self, quantifier: Quantifier, assertion: Assertion, name: str | None, description: str
    ) -> Rule:
        draft = Rule(
            name=name or "",
            selector=self.selector,
            quantifier=quantifier,
            assertion=assertion,
            description=description,
        )
        if name:
            return draft
        return Rule(
            name=describe_rule(draft),
            selector=self.selector,
            quantifier=quantifier,
            assertion=assertion,
            description=description,
        )

    def should(
        self, assertion: Assertion, *, name: str | None = None, description: str = ""
    ) -> Rule:
        return self._build(Quantifier.SHOULD, assertion, name, description)

    def should_not(
        self, assertion: Assertion, *, name: str | None = None, description: str = ""
    ) -> Rule:
        return self._build(Quantifier.SHOULD_NOT, assertion, name, description)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def that(selector: Selector) -> RuleBuilder:
    _check_operands("that", (selector,))
    return RuleBuilder(selector)


def resides_in_namespace(pattern: str) -> ResidesInNamespace:
    return ResidesInNamespace(pattern)


def has_name_ending_with(suffix: str) -> HasNameEndingWith:
    return HasNameEndingWith(suffix)


def all_modules() -> AllModules:
    return AllModules()


def all_of(*selectors: Selector) -> AllOf:
    return AllOf(tuple(selectors))


def any_of(*selectors: Selector) -> AnyOf:
    return AnyOf(tuple(selectors))


def not_(selector: Selector) -> Not:
    return Not(selector)


def has_dependency_on(pattern: str) -> HasDependencyOn:
    return HasDependencyOn(pattern)


def only_depends_on(*patterns: str, allow_stdlib: bool = True) -> OnlyDependsOn:
    return OnlyDependsOn(tuple(patterns), allow_stdlib=allow_stdlib)


def is_of_kind(kind: str) -> IsOfKind:
    return IsOfKind(kind)


def is_interface_kind() -> IsOfKind:
    return IsOfKind("interface")


def names_end_with(suffix: str) -> NamesEndWith:
    return NamesEndWith(suffix)


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


def describe_selector(selector: Selector) -> str:
    if isinstance(selector, ResidesInNamespace):
        return f"in '{selector.pattern}'"
    if isinstance(selector, HasNameEndingWith):
        return f"declaring *{selector.suffix}"
    if isinstance(selector, AllModules):
        return "all"
    if isinstance(selector, AllOf):
        return " and ".join(describe_selector(s) for s in selector.operands)
    if isinstance(selector, AnyOf):
        return "(" + " or ".join(describe_selector(s) for s in selector.operands) + ")"
    return f"not ({describe_selector(selector.operand)})"


def describe_assertion(assertion: Assertion) -> str:
    if isinstance(assertion, HasDependencyOn):
        return f"depend on '{assertion.pattern}'"
    if isinstance(assertion, OnlyDependsOn):
        allowed = ", ".join(f"'{p}'" for p in assertion.patterns)
        suffix = " (plus stdlib)" if assertion.allow_stdlib else ""
        return f"only depend on [{allowed}]{suffix}"
    if isinstance(assertion, IsOfKind):
        return f"be {assertion.kind}s"
    return f"have names ending with '{assertion.suffix}'"


def describe_rule(rule: Rule) -> str:
    """Return a one-line human description, e.g. ``modules in 'a' should not depend on 'b'``."""
    verb = "should" if rule.quantifier is Quantifier.SHOULD else "should not"
    return (
        f"modules {describe_selector(rule.selector)} {verb} {describe_assertion(rule.assertion)}"
    )
