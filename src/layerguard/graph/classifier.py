"""Module classifier: assign files to modules through namespace templates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from layerguard.graph.namespace import compile_pattern, most_specific

if TYPE_CHECKING:
    from collections.abc import Sequence

    from layerguard.scanning.scanner import ScanResult, SourceFile

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: tuple[str, ...] = ("**",)

UNMATCHED = "classification:unmatched"


@dataclass(frozen=True)
class Classification:
    """The module a directory belongs to and the template that claimed it."""

    module_id: str
    template: str
    captures: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class UnclassifiedFile:
    """A scanned file that belongs to no module."""

    path: str
    reason: str  # "classification:unmatched" | "extraction:<message>"


class ModuleClassifier:
    """Maps module ids (file directories) to the most specific matching template.

    Templates are compiled once at construction, so a malformed template
    fails fast with :class:`~layerguard.errors.SetupError`.
    """

    def __init__(self, templates: Sequence[str] = DEFAULT_TEMPLATES) -> None:
        self.templates = tuple(compile_pattern(t) for t in (templates or DEFAULT_TEMPLATES))
        self._cache: dict[str, Classification | None] = {}

    def classify_module(self, module_id: str) -> Classification | None:
        if module_id not in self._cache:
            best = most_specific(self.templates, module_id)
            if best is None:
                self._cache[module_id] = None
            else:
                template, captures = best
                self._cache[module_id] = Classification(
                    module_id=module_id,
                    template=template.source,
                    captures=tuple(sorted(captures.items())),
                )
        return self._cache[module_id]

    def classify(
        self, scan: ScanResult
    ) -> tuple[list[tuple[SourceFile, Classification]], list[UnclassifiedFile]]:
        """Split scanned files into classified ones and diagnostics.

        Every input file lands in exactly one of the two lists; files with an
        extraction warning are never classified.
        """
        classified: list[tuple[SourceFile, Classification]] = []
        unclassified = [
            UnclassifiedFile(path=w.path, reason=f"extraction:{w.message}") for w in scan.warnings
        ]
        for source in scan.files:
            classification = self.classify_module(source.directory)
            if classification is None:
                logger.debug("No namespace template matches %s", source.path)
                unclassified.append(UnclassifiedFile(path=source.path, reason=UNMATCHED))
            else:
                classified.append((source, classification))
        unclassified.sort(key=lambda u: u.path)
        return classified, unclassified
