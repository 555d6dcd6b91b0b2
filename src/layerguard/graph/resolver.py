"""Import resolution: map raw import strings to local module ids or external roots."""

from __future__ import annotations

import logging
import posixpath
import re
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from layerguard.graph.namespace import EXTERNAL_PREFIX

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from layerguard.scanning.adapters import ImportDecl

logger = logging.getLogger(__name__)

_GO_MODULE_RE = re.compile(r"^\s*module\s+(\S+)", re.MULTILINE)

# Well-known TS/JS path aliases mapped to directory names.
_TS_ALIAS_MAP: dict[str, str] = {
    "@/": "src/",
    "~/": "src/",
}

# Directories searched for absolute Python imports, in order.
_PY_IMPORT_ROOTS: tuple[str, ...] = ("", "src/")

_PY_STDLIB: frozenset[str] = frozenset(getattr(sys, "stdlib_module_names", ()))


@dataclass(frozen=True)
class ResolvedImport:
    """Where an import points: a local module id or an ``external:<root>`` id."""

    target: str
    external: bool = False
    stdlib: bool = False


def external_id(root: str) -> str:
    return f"{EXTERNAL_PREFIX}{root}"


def read_go_module(project_root: Path) -> str | None:
    """Return the module path declared in ``go.mod``, if any."""
    go_mod = project_root / "go.mod"
    if not go_mod.is_file():
        return None
    try:
        match = _GO_MODULE_RE.search(go_mod.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError):
        logger.warning("Cannot read %s", go_mod)
        return None
    return match.group(1).strip('"') if match else None


def _parent(path: str) -> str:
    parent = posixpath.dirname(path)
    return parent or "."


class ImportResolver:
    """Resolve imports against the set of files found by the scanner.

    Resolution never touches the filesystem beyond ``go.mod``; local targets
    are recognised from the scanned file list.
    """

    def __init__(self, project_root: Path, file_paths: Iterable[str]) -> None:
        self.go_module = read_go_module(project_root)
        self._files: frozenset[str] = frozenset(file_paths)
        dirs: set[str] = set()
        for path in self._files:
            parent = _parent(path)
            while parent != ".":
                dirs.add(parent)
                parent = _parent(parent)
        self._dirs: frozenset[str] = frozenset(dirs)

    def resolve(self, decl: ImportDecl, file_path: str, language: str) -> list[ResolvedImport]:
        """Resolve *decl* made in *file_path*; may yield several targets (Python members)."""
        if language == "go":
            return [self._resolve_go(decl.raw)]
        if language == "python":
            return self._resolve_python(decl, file_path)
        if language == "typescript":
            return [self._resolve_typescript(decl.raw, file_path)]
        return []

    # -- Go ----------------------------------------------------------------

    def _resolve_go(self, raw: str) -> ResolvedImport:
        mod = self.go_module
        if mod is not None and (raw == mod or raw.startswith(mod + "/")):
            return ResolvedImport(target=raw[len(mod) + 1 :] or ".")
        if mod is None and raw in self._dirs:
            return ResolvedImport(target=raw)

        parts = raw.split("/")
        if "." not in parts[0]:
            # Standard library paths have no host segment.
            return ResolvedImport(target=external_id(parts[0]), external=True, stdlib=True)
        return ResolvedImport(target=external_id("/".join(parts[:3])), external=True)

    # -- Python ------------------------------------------------------------

    def _local_python(self, candidate: str) -> str | None:
        if candidate in self._dirs:
            return candidate
        if f"{candidate}.py" in self._files:
            return _parent(candidate)
        return None

    def _resolve_python(self, decl: ImportDecl, file_path: str) -> list[ResolvedImport]:
        raw = decl.raw
        if raw.startswith("."):
            dots = len(raw) - len(raw.lstrip("."))
            base = _parent(file_path)
            for _ in range(dots - 1):
                if base == ".":
                    return [ResolvedImport(target=external_id(raw), external=True)]
                base = _parent(base)
            rest = raw[dots:].replace(".", "/")
            joined = posixpath.join(base, rest) if rest else base
            candidates = [posixpath.normpath(joined)]
        else:
            rel = raw.replace(".", "/")
            candidates = [f"{prefix}{rel}" for prefix in _PY_IMPORT_ROOTS]

        for candidate in candidates:
            # `from pkg import sub` where `sub` is itself a module or package.
            member_hits = []
            for member in decl.members:
                hit = self._local_python(posixpath.join(candidate, member))
                if hit is not None and hit not in member_hits:
                    member_hits.append(hit)
            if member_hits:
                return [ResolvedImport(target=t) for t in member_hits]
            local = self._local_python(candidate)
            if local is not None:
                return [ResolvedImport(target=local)]

        if raw.startswith("."):
            # Relative import of something that was not scanned: keep it local.
            return [ResolvedImport(target=candidates[0])]
        top = raw.split(".", 1)[0]
        return [ResolvedImport(target=external_id(top), external=True, stdlib=top in _PY_STDLIB)]

    # -- TypeScript / JavaScript ---------------------------------------------

    def _resolve_typescript(self, raw: str, file_path: str) -> ResolvedImport:
        local: str | None = None
        if raw.startswith("./") or raw.startswith("../") or raw in (".", ".."):
            local = posixpath.normpath(posixpath.join(_parent(file_path), raw))
        else:
            for alias, directory in _TS_ALIAS_MAP.items():
                if raw.startswith(alias):
                    local = posixpath.normpath(directory + raw[len(alias) :])
                    break

        if local is not None:
            if local == ".." or local.startswith("../"):
                return ResolvedImport(target=external_id(local), external=True)
            if local in self._dirs:
                return ResolvedImport(target=local)
            # A file import (`./user` -> `./user.ts`) belongs to its directory.
            return ResolvedImport(target=_parent(local))

        if raw.startswith("node:"):
            builtin = raw[len("node:") :].split("/", 1)[0]
            return ResolvedImport(target=external_id(builtin), external=True, stdlib=True)
        parts = raw.split("/")
        package = "/".join(parts[:2]) if raw.startswith("@") else parts[0]
        return ResolvedImport(target=external_id(package), external=True)
