"""Exception hierarchy and recoverable diagnostics."""

from __future__ import annotations

from dataclasses import dataclass


class LayerguardError(Exception):
    """Base class for all layerguard errors."""


class SetupError(LayerguardError):
    """Raised when a run cannot start: unreadable root, malformed rule or pattern."""


class RunCancelled(LayerguardError):
    """Raised when the caller's cancellation signal is set during a scan.

    A cancelled run carries no verdict: it is neither a pass nor a failure.
    """


@dataclass(frozen=True)
class ExtractionWarning:
    """A file whose imports could not be extracted.

    The file is excluded from graph edges and reported in the diagnostics.
    """

    path: str
    message: str
