"""Built-in rule presets.

The ``hexagonal`` preset encodes the usual ports-and-adapters layout::

    internal/<domain>/domain          entities, repository interfaces
    internal/<domain>/application     use cases
    internal/<domain>/infrastructure  adapters (db, http, ...)
    internal/shared                   shared kernel
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import yaml

from layerguard.errors import SetupError


@dataclass(frozen=True)
class NamingConvention:
    """Symbols ending with *suffix* under *namespace* must be of *kind*."""

    namespace: str
    suffix: str
    kind: str


# Layer -> layers it must not depend on (same domain).
LAYER_FORBIDDEN: dict[str, tuple[str, ...]] = {
    "domain": ("application", "infrastructure"),
    "application": ("infrastructure",),
}

NAMING_CONVENTIONS: dict[str, NamingConvention] = {
    "repository": NamingConvention("internal/*/domain", "Repository", "interface"),
    "usecase": NamingConvention("internal/*/application/usecase", "UseCase", "struct"),
    "handler": NamingConvention("internal/*/infrastructure/http", "Handler", "struct"),
}

HEXAGONAL_NAMESPACES: tuple[str, ...] = (
    "internal/shared",
    "internal/{domain}/domain",
    "internal/{domain}/application",
    "internal/{domain}/infrastructure",
    "internal/{domain}",
    "cmd/*",
    "pkg/**",
)


def layer_definitions() -> list[dict[str, Any]]:
    definitions: list[dict[str, Any]] = []
    for layer, forbidden in LAYER_FORBIDDEN.items():
        for other in forbidden:
            definitions.append(
                {
                    "name": f"{layer}-no-{other}",
                    "description": f"The {layer} layer must not depend on the {other} layer",
                    "that": {"resides_in_namespace": f"internal/{{domain}}/{layer}"},
                    "should_not": {"has_dependency_on": f"internal/{{domain}}/{other}"},
                }
            )
    return definitions


def naming_definitions() -> list[dict[str, Any]]:
    return [
        {
            "name": f"{key}-naming",
            "description": (
                f"Types named *{conv.suffix} under {conv.namespace} must be {conv.kind}s"
            ),
            "that": {
                "all_of": [
                    {"resides_in_namespace": conv.namespace},
                    {"has_name_ending_with": conv.suffix},
                ]
            },
            "should": {"is_of_kind": conv.kind},
        }
        for key, conv in NAMING_CONVENTIONS.items()
    ]


def hexagonal_definitions() -> list[dict[str, Any]]:
    """All rule definitions of the hexagonal preset."""
    return [
        *layer_definitions(),
        {
            "name": "domain-purity",
            "description": "Domain code depends only on itself, the shared kernel and stdlib",
            "that": {"resides_in_namespace": "internal/{domain}/domain"},
            "should": {
                "only_depends_on": {
                    "patterns": ["internal/{domain}/domain", "internal/shared"],
                    "allow_stdlib": True,
                }
            },
        },
        {
            "name": "isolation-{source}-{target}",
            "description": "Bounded contexts must not import each other",
            "for_each_pair": "domain",
            "that": {"resides_in_namespace": "internal/{source}/"},
            "should_not": {"has_dependency_on": "internal/{target}/"},
        },
        *naming_definitions(),
    ]


PRESETS: dict[str, tuple[tuple[str, ...], Any]] = {
    "hexagonal": (HEXAGONAL_NAMESPACES, hexagonal_definitions),
}


def render_preset(name: str) -> str:
    """Return the YAML text of a ``rules.yml`` for preset *name*."""
    if name not in PRESETS:
        msg = f"Unknown preset '{name}', must be one of {sorted(PRESETS)}"
        raise SetupError(msg)
    namespaces, definitions = PRESETS[name]
    document = {
        "version": 1,
        "namespaces": list(namespaces),
        "empty_selection": "pass",
        "rules": definitions(),
    }
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)
