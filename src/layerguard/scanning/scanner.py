"""Source scanner: walk a project tree and extract per-file imports and symbols."""

from __future__ import annotations

import fnmatch
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from layerguard.errors import ExtractionWarning, RunCancelled, SetupError
from layerguard.scanning.adapters import (
    ExtractionError,
    ImportDecl,
    Symbol,
    extract,
    supported_extensions,
)

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

# Vendored, generated and tool directories never scanned.
DEFAULT_EXCLUDE_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        ".hg",
        ".layerguard",
        ".venv",
        "venv",
        "__pycache__",
        "node_modules",
        "vendor",
        "third_party",
        "testdata",
        "build",
        "dist",
    }
)

# Generated source files.
DEFAULT_EXCLUDE_GLOBS: tuple[str, ...] = (
    "*.pb.go",
    "*_gen.go",
    "*.generated.*",
    "*_pb2.py",
    "*.d.ts",
)

DEFAULT_WORKERS = 4
DEFAULT_BATCH_SIZE = 64


@dataclass(frozen=True)
class SourceFile:
    """Imports and declarations extracted from one file."""

    path: str  # project-relative POSIX path
    language: str
    imports: tuple[ImportDecl, ...]
    symbols: tuple[Symbol, ...]

    @property
    def directory(self) -> str:
        """The file's directory, which is its module id (``"."`` at the root)."""
        parent = Path(self.path).parent.as_posix()
        return parent or "."


@dataclass(frozen=True)
class ScanResult:
    """Outcome of a scan: extracted files plus recoverable warnings, both sorted by path."""

    files: tuple[SourceFile, ...]
    warnings: tuple[ExtractionWarning, ...]


def _matches_any(rel_path: str, patterns: Iterable[str]) -> bool:
    name = rel_path.rsplit("/", 1)[-1]
    return any(
        fnmatch.fnmatchcase(rel_path, pat) or fnmatch.fnmatchcase(name, pat) for pat in patterns
    )


def check_root(project_root: Path) -> Path:
    """Return the resolved *project_root* or raise SetupError if it cannot be read."""
    root = Path(project_root)
    if not root.is_dir():
        msg = f"Project root is not a directory: {root}"
        raise SetupError(msg)
    if not os.access(root, os.R_OK | os.X_OK):
        msg = f"Project root is not readable: {root}"
        raise SetupError(msg)
    return root.resolve()


def discover_files(
    project_root: Path,
    *,
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
) -> list[str]:
    """Return sorted project-relative paths of every file an adapter can scan.

    *include* globs, when given, restrict the result; *exclude* globs are
    applied on top of the default exclusions.  Globs are matched against the
    relative path and against the bare file name.
    """
    root = check_root(project_root)
    extensions = supported_extensions()
    excluded = (*DEFAULT_EXCLUDE_GLOBS, *exclude)
    found: list[str] = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in DEFAULT_EXCLUDE_DIRS and not d.startswith(".")
        )
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        for filename in sorted(filenames):
            if os.path.splitext(filename)[1].lower() not in extensions:
                continue
            rel_path = filename if rel_dir == "." else f"{rel_dir}/{filename}"
            if _matches_any(rel_path, excluded):
                continue
            if include and not _matches_any(rel_path, include):
                continue
            found.append(rel_path)

    found.sort()
    return found


def _extract_one(root: Path, rel_path: str) -> SourceFile | ExtractionWarning:
    try:
        source = (root / rel_path).read_bytes()
        language, imports, symbols = extract(source, rel_path, os.path.splitext(rel_path)[1])
    except (OSError, UnicodeDecodeError, ExtractionError) as exc:
        return ExtractionWarning(path=rel_path, message=str(exc))
    return SourceFile(
        path=rel_path,
        language=language,
        imports=tuple(imports),
        symbols=tuple(symbols),
    )


def scan(
    project_root: Path,
    *,
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
    workers: int = DEFAULT_WORKERS,
    batch_size: int = DEFAULT_BATCH_SIZE,
    cancel: threading.Event | None = None,
) -> ScanResult:
    """Scan *project_root* and extract every supported file.

    Files are processed in batches on a bounded thread pool.  Each worker
    only produces a local :class:`SourceFile`; the merged result is sorted by
    path so thread completion order never shows in the output.

    Raises
    ------
    SetupError
        When the root is missing or unreadable.
    RunCancelled
        When *cancel* is set; checked before each batch.
    """
    root = check_root(project_root)
    paths = discover_files(root, include=include, exclude=exclude)
    logger.debug("Scanning %d files under %s", len(paths), root)

    files: list[SourceFile] = []
    warnings: list[ExtractionWarning] = []
    batch_size = max(1, batch_size)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        for start in range(0, len(paths), batch_size):
            if cancel is not None and cancel.is_set():
                msg = f"Scan cancelled after {start} of {len(paths)} files"
                raise RunCancelled(msg)
            batch = paths[start : start + batch_size]
            for outcome in pool.map(lambda p: _extract_one(root, p), batch):
                if isinstance(outcome, ExtractionWarning):
                    logger.warning("Skipping %s: %s", outcome.path, outcome.message)
                    warnings.append(outcome)
                else:
                    files.append(outcome)

    if cancel is not None and cancel.is_set():
        msg = "Scan cancelled"
        raise RunCancelled(msg)

    files.sort(key=lambda f: f.path)
    warnings.sort(key=lambda w: w.path)
    return ScanResult(files=tuple(files), warnings=tuple(warnings))
