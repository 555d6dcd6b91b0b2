"""Namespace patterns: path-like globs with captured wildcard segments.

A pattern is a ``/``-separated list of segments matched against a module id
(a project-relative POSIX directory):

- ``*`` matches exactly one segment and captures it positionally (``"0"``, ``"1"``, ...)
- ``{name}`` matches exactly one segment and captures it as ``name``
- ``**`` matches zero or more segments
- any other segment is an ``fnmatch`` glob confined to one segment

A pattern matches a module when it matches the module id or one of its
ancestor prefixes, so ``internal/*/domain`` matches
``internal/user/domain/entity``.  Patterns prefixed with ``external:`` only
match external modules and compare the remainder as a single glob.

Patterns are compiled once (:func:`compile_pattern` is cached) into a
:class:`NamespacePattern` whose :meth:`~NamespacePattern.match` returns
``(is_match, captures)``.
"""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING

from layerguard.errors import SetupError

if TYPE_CHECKING:
    from collections.abc import Mapping

EXTERNAL_PREFIX = "external:"

_NAMED_RE = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")
_GLOB_CHARS = frozenset("*?[")

_LITERAL = "literal"
_GLOB = "glob"
_STAR = "star"
_NAMED = "named"
_DOUBLE = "double"


@dataclass(frozen=True)
class _Segment:
    kind: str
    text: str
    capture: str | None = None

    def accepts(self, part: str) -> bool:
        if self.kind == _LITERAL:
            return part == self.text
        if self.kind == _GLOB:
            return fnmatch.fnmatchcase(part, self.text)
        return True


@dataclass(frozen=True)
class NamespacePattern:
    """A compiled namespace pattern."""

    source: str
    segments: tuple[_Segment, ...] = field(repr=False)
    external: bool = False

    @property
    def variables(self) -> tuple[str, ...]:
        """Names of the captures this pattern produces, in segment order."""
        return tuple(s.capture for s in self.segments if s.capture is not None)

    @property
    def specificity(self) -> tuple[int, int]:
        """(literal segment count, total segment count); higher is more specific."""
        literals = sum(1 for s in self.segments if s.kind == _LITERAL)
        return literals, len(self.segments)

    def match(self, module_id: str) -> tuple[bool, dict[str, str]]:
        """Return ``(is_match, captures)`` for *module_id*."""
        is_external = module_id.startswith(EXTERNAL_PREFIX)
        if self.external:
            if not is_external:
                return False, {}
            rest = module_id[len(EXTERNAL_PREFIX) :]
            return fnmatch.fnmatchcase(rest, self.segments[0].text), {}
        if is_external:
            return False, {}

        parts = [] if module_id in ("", ".") else module_id.split("/")
        captures = _match_segments(self.segments, 0, parts, 0, {})
        if captures is None:
            return False, {}
        return True, captures

    def matches(self, module_id: str) -> bool:
        return self.match(module_id)[0]

    def bind(self, values: Mapping[str, str]) -> NamespacePattern:
        """Return a pattern with ``{name}`` segments replaced by bound *values*.

        Variables without a value stay wildcards.
        """
        if self.external or not any(
            s.kind == _NAMED and s.capture in values for s in self.segments
        ):
            return self
        segments: list[_Segment] = []
        for seg in self.segments:
            if seg.kind == _NAMED and seg.capture in values:
                # Bound values are directory names, never globs.
                segments.append(_Segment(_LITERAL, values[seg.capture]))
            else:
                segments.append(seg)
        source = "/".join(s.text for s in segments)
        return NamespacePattern(source=source, segments=tuple(segments))


def _match_segments(
    segments: tuple[_Segment, ...],
    i: int,
    parts: list[str],
    j: int,
    captures: dict[str, str],
) -> dict[str, str] | None:
    if i == len(segments):
        # Prefix semantics: the remaining parts reside inside the namespace.
        return captures
    seg = segments[i]
    if seg.kind == _DOUBLE:
        for k in range(j, len(parts) + 1):
            found = _match_segments(segments, i + 1, parts, k, captures)
            if found is not None:
                return found
        return None
    if j == len(parts):
        return None
    part = parts[j]
    if not seg.accepts(part):
        return None
    if seg.capture is not None:
        captures = {**captures, seg.capture: part}
    return _match_segments(segments, i + 1, parts, j + 1, captures)


def _parse_segment(text: str, pattern: str, star_index: int) -> _Segment:
    if text == "**":
        return _Segment(_DOUBLE, text)
    if "**" in text:
        msg = f"Malformed namespace pattern '{pattern}': '**' must be a whole segment"
        raise SetupError(msg)
    if text == "*":
        return _Segment(_STAR, text, capture=str(star_index))
    if "{" in text or "}" in text:
        named = _NAMED_RE.match(text)
        if named is None:
            msg = (
                f"Malformed namespace pattern '{pattern}': "
                f"'{text}' is not a valid '{{name}}' capture segment"
            )
            raise SetupError(msg)
        return _Segment(_NAMED, text, capture=named.group(1))
    if text.count("[") != text.count("]"):
        msg = f"Malformed namespace pattern '{pattern}': unbalanced brackets in '{text}'"
        raise SetupError(msg)
    if _GLOB_CHARS.intersection(text):
        return _Segment(_GLOB, text)
    return _Segment(_LITERAL, text)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> NamespacePattern:
    """Compile *pattern* into a :class:`NamespacePattern`.

    Raises :class:`~layerguard.errors.SetupError` on malformed syntax.
    """
    if not isinstance(pattern, str) or not pattern.strip():
        msg = "Malformed namespace pattern: pattern must be a non-empty string"
        raise SetupError(msg)
    text = pattern.strip()

    if text.startswith(EXTERNAL_PREFIX):
        rest = text[len(EXTERNAL_PREFIX) :]
        if not rest:
            msg = f"Malformed namespace pattern '{pattern}': missing external root"
            raise SetupError(msg)
        return NamespacePattern(source=text, segments=(_Segment(_GLOB, rest),), external=True)

    if text.startswith("/"):
        msg = f"Malformed namespace pattern '{pattern}': must be project-relative"
        raise SetupError(msg)

    body = text.rstrip("/")
    if not body:
        msg = f"Malformed namespace pattern '{pattern}': no segments"
        raise SetupError(msg)

    segments: list[_Segment] = []
    seen: set[str] = set()
    star_index = 0
    for raw in body.split("/"):
        if raw in ("", ".", ".."):
            msg = f"Malformed namespace pattern '{pattern}': invalid segment '{raw}'"
            raise SetupError(msg)
        seg = _parse_segment(raw, pattern, star_index)
        if seg.kind == _STAR:
            star_index += 1
        if seg.kind == _NAMED and seg.capture is not None:
            if seg.capture in seen:
                msg = f"Malformed namespace pattern '{pattern}': duplicate capture '{seg.capture}'"
                raise SetupError(msg)
            seen.add(seg.capture)
        segments.append(seg)

    return NamespacePattern(source=text, segments=tuple(segments))


def most_specific(
    templates: tuple[NamespacePattern, ...], module_id: str
) -> tuple[NamespacePattern, dict[str, str]] | None:
    """Pick the most specific template matching *module_id*.

    Most literal segments wins, then most segments, then declaration order.
    Returns ``None`` when no template matches.
    """
    best: tuple[NamespacePattern, dict[str, str]] | None = None
    for template in templates:
        ok, captures = template.match(module_id)
        if not ok:
            continue
        if best is None or template.specificity > best[0].specificity:
            best = (template, captures)
    return best
