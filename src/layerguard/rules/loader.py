"""Rule definitions: parse mappings (from YAML or callers) into rules, and back.

A rule definition looks like::

    name: domain-no-infrastructure
    description: Domain must not depend on infrastructure
    that: {resides_in_namespace: internal/*/domain}
    should_not: {has_dependency_on: internal/*/infrastructure}

Parameterized definitions carry ``for_each_pair: <variable>``; they expand
into one rule per ordered pair of distinct values captured for that
variable, with ``{source}`` and ``{target}`` substituted in every string.
"""

from __future__ import annotations

import glob
import itertools
from typing import TYPE_CHECKING, Any

from layerguard.errors import SetupError
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
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from layerguard.rules.predicates import Assertion, Selector

SELECTOR_KEYS: frozenset[str] = frozenset(
    {"resides_in_namespace", "has_name_ending_with", "all", "all_of", "any_of", "not"}
)
ASSERTION_KEYS: frozenset[str] = frozenset(
    {"has_dependency_on", "only_depends_on", "is_of_kind", "is_interface", "names_end_with"}
)
RULE_KEYS: frozenset[str] = frozenset(
    {"name", "description", "that", "should", "should_not"}
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _single_key(data: object, valid: frozenset[str], context: str) -> tuple[str, Any]:
    if not isinstance(data, dict) or len(data) != 1:
        msg = f"{context}: must be a mapping with exactly one of {sorted(valid)}"
        raise SetupError(msg)
    key, value = next(iter(data.items()))
    if key not in valid:
        msg = f"{context}: unknown key '{key}', must be one of {sorted(valid)}"
        raise SetupError(msg)
    return str(key), value


def _string(value: object, context: str) -> str:
    if not isinstance(value, str) or not value.strip():
        msg = f"{context}: expected a non-empty string"
        raise SetupError(msg)
    return value


def parse_selector(data: object, context: str = "that") -> Selector:
    """Build a selector node from its mapping form."""
    key, value = _single_key(data, SELECTOR_KEYS, context)
    if key == "resides_in_namespace":
        return ResidesInNamespace(_string(value, f"{context}.{key}"))
    if key == "has_name_ending_with":
        return HasNameEndingWith(_string(value, f"{context}.{key}"))
    if key == "all":
        return AllModules()
    if key == "not":
        return Not(parse_selector(value, f"{context}.not"))
    if not isinstance(value, list) or not value:
        msg = f"{context}.{key}: expected a non-empty list of selectors"
        raise SetupError(msg)
    operands = tuple(parse_selector(item, f"{context}.{key}[{i}]") for i, item in enumerate(value))
    return AllOf(operands) if key == "all_of" else AnyOf(operands)


def parse_assertion(data: object, context: str = "assertion") -> Assertion:
    """Build an assertion node from its mapping form."""
    key, value = _single_key(data, ASSERTION_KEYS, context)
    if key == "has_dependency_on":
        return HasDependencyOn(_string(value, f"{context}.{key}"))
    if key == "is_of_kind":
        return IsOfKind(_string(value, f"{context}.{key}"))
    if key == "is_interface":
        return IsOfKind("interface")
    if key == "names_end_with":
        return NamesEndWith(_string(value, f"{context}.{key}"))

    # only_depends_on: a list of patterns, or {patterns: [...], allow_stdlib: bool}
    allow_stdlib = True
    patterns = value
    if isinstance(value, dict):
        patterns = value.get("patterns", [])
        allow_stdlib = bool(value.get("allow_stdlib", True))
    if isinstance(patterns, str):
        patterns = [patterns]
    if not isinstance(patterns, list):
        msg = f"{context}.only_depends_on: expected a list of patterns"
        raise SetupError(msg)
    return OnlyDependsOn(
        tuple(_string(p, f"{context}.only_depends_on") for p in patterns),
        allow_stdlib=allow_stdlib,
    )


def parse_rule(data: object, index: int = 0) -> Rule:
    """Build a :class:`Rule` from one definition mapping."""
    if not isinstance(data, dict):
        msg = f"Rule at index {index} must be a mapping"
        raise SetupError(msg)
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        msg = f"Rule at index {index} missing required 'name' field"
        raise SetupError(msg)
    if "for_each_pair" in data:
        msg = f"Rule '{name}': for_each_pair definitions must be expanded before parsing"
        raise SetupError(msg)
    unknown = set(data) - RULE_KEYS
    if unknown:
        msg = f"Rule '{name}': unknown fields {sorted(unknown)}"
        raise SetupError(msg)

    has_should = "should" in data
    has_should_not = "should_not" in data
    if has_should == has_should_not:
        msg = f"Rule '{name}': must have exactly one of 'should' or 'should_not'"
        raise SetupError(msg)
    if "that" not in data:
        msg = f"Rule '{name}': missing required 'that' selector"
        raise SetupError(msg)

    quantifier = Quantifier.SHOULD if has_should else Quantifier.SHOULD_NOT
    return Rule(
        name=name,
        description=str(data.get("description", "") or ""),
        selector=parse_selector(data["that"], f"Rule '{name}' that"),
        quantifier=quantifier,
        assertion=parse_assertion(data[quantifier.value], f"Rule '{name}' {quantifier.value}"),
    )


def parse_rules(definitions: Sequence[object]) -> list[Rule]:
    """Parse already-expanded definitions, rejecting duplicate names."""
    if not isinstance(definitions, (list, tuple)):
        msg = "Rule definitions must be a list"
        raise SetupError(msg)
    rules: list[Rule] = []
    seen: set[str] = set()
    for idx, data in enumerate(definitions):
        rule = parse_rule(data, idx)
        if rule.name in seen:
            msg = f"Duplicate rule name '{rule.name}'"
            raise SetupError(msg)
        seen.add(rule.name)
        rules.append(rule)
    return rules


# ---------------------------------------------------------------------------
# Parameterized expansion
# ---------------------------------------------------------------------------


def _substitute(value: Any, mapping: dict[str, str]) -> Any:
    if isinstance(value, str):
        for placeholder, replacement in mapping.items():
            value = value.replace(placeholder, replacement)
        return value
    if isinstance(value, list):
        return [_substitute(v, mapping) for v in value]
    if isinstance(value, dict):
        return {k: _substitute(v, mapping) for k, v in value.items()}
    return value


_TEXT_KEYS = frozenset({"name", "description"})


def expand_pairs(definition: dict[str, Any], values: Sequence[str]) -> list[dict[str, Any]]:
    """Expand one ``for_each_pair`` definition over ordered pairs of *values*."""
    template = {k: v for k, v in definition.items() if k != "for_each_pair"}
    expanded: list[dict[str, Any]] = []
    for source, target in itertools.permutations(sorted(set(values)), 2):
        # Pattern fields get glob-escaped values; name and description stay readable.
        plain = {"{source}": source, "{target}": target}
        escaped = {"{source}": glob.escape(source), "{target}": glob.escape(target)}
        item = {
            k: _substitute(v, plain if k in _TEXT_KEYS else escaped) for k, v in template.items()
        }
        if item.get("name") == template.get("name"):
            item["name"] = f"{template.get('name')}:{source}->{target}"
        expanded.append(item)
    return expanded


def expand_definitions(
    definitions: Sequence[object],
    values_for: Callable[[str], Sequence[str]],
) -> list[object]:
    """Expand every ``for_each_pair`` definition using *values_for(variable)*.

    Plain definitions pass through unchanged.
    """
    result: list[object] = []
    for data in definitions:
        if isinstance(data, dict) and "for_each_pair" in data:
            variable = data["for_each_pair"]
            if not isinstance(variable, str) or not variable:
                msg = f"Rule '{data.get('name')}': for_each_pair must name a capture variable"
                raise SetupError(msg)
            result.extend(expand_pairs(data, values_for(variable)))
        else:
            result.append(data)
    return result


def isolation_definitions(
    variable: str, source_template: str, target_template: str, *, name: str = "isolation"
) -> list[dict[str, Any]]:
    """Return a ``for_each_pair`` definition isolating every value of *variable* from the others.

    Templates use ``{source}`` / ``{target}``, e.g. ``internal/{source}/``.
    """
    return [
        {
            "name": f"{name}-{{source}}-{{target}}",
            "description": f"{source_template} must not depend on {target_template}",
            "for_each_pair": variable,
            "that": {"resides_in_namespace": source_template},
            "should_not": {"has_dependency_on": target_template},
        }
    ]


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def selector_to_dict(selector: Selector) -> dict[str, Any]:
    if isinstance(selector, ResidesInNamespace):
        return {"resides_in_namespace": selector.pattern}
    if isinstance(selector, HasNameEndingWith):
        return {"has_name_ending_with": selector.suffix}
    if isinstance(selector, AllModules):
        return {"all": True}
    if isinstance(selector, AllOf):
        return {"all_of": [selector_to_dict(s) for s in selector.operands]}
    if isinstance(selector, AnyOf):
        return {"any_of": [selector_to_dict(s) for s in selector.operands]}
    return {"not": selector_to_dict(selector.operand)}


def assertion_to_dict(assertion: Assertion) -> dict[str, Any]:
    if isinstance(assertion, HasDependencyOn):
        return {"has_dependency_on": assertion.pattern}
    if isinstance(assertion, OnlyDependsOn):
        return {
            "only_depends_on": {
                "patterns": list(assertion.patterns),
                "allow_stdlib": assertion.allow_stdlib,
            }
        }
    if isinstance(assertion, IsOfKind):
        return {"is_of_kind": assertion.kind}
    return {"names_end_with": assertion.suffix}


def rule_to_dict(rule: Rule) -> dict[str, Any]:
    """Serialize *rule* to the definition form accepted by :func:`parse_rule`."""
    data: dict[str, Any] = {"name": rule.name}
    if rule.description:
        data["description"] = rule.description
    data["that"] = selector_to_dict(rule.selector)
    data[rule.quantifier.value] = assertion_to_dict(rule.assertion)
    return data
