"""Project configuration: ``.layerguard/rules.yml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from layerguard.errors import SetupError
from layerguard.graph.classifier import DEFAULT_TEMPLATES
from layerguard.graph.namespace import compile_pattern
from layerguard.rules.evaluator import EmptySelection, parse_empty_selection
from layerguard.scanning.scanner import DEFAULT_WORKERS

logger = logging.getLogger(__name__)

CONFIG_DIR = ".layerguard"
RULES_FILE = "rules.yml"
SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})

_TOP_LEVEL_KEYS: frozenset[str] = frozenset(
    {"version", "namespaces", "include", "exclude", "workers", "empty_selection", "rules"}
)


@dataclass(frozen=True)
class ProjectConfig:
    """Scan settings, namespace templates and raw rule definitions."""

    namespaces: tuple[str, ...] = DEFAULT_TEMPLATES
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    workers: int = DEFAULT_WORKERS
    empty_selection: EmptySelection = EmptySelection.PASS
    rules: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    source: Path | None = None


def default_rules_path(project_root: Path) -> Path:
    return Path(project_root) / CONFIG_DIR / RULES_FILE


def _string_list(data: dict[str, Any], key: str) -> tuple[str, ...]:
    raw = data.get(key, [])
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        msg = f"{RULES_FILE}: '{key}' must be a list of strings"
        raise SetupError(msg)
    return tuple(raw)


def parse_config(data: object, source: Path | None = None) -> ProjectConfig:
    """Validate a parsed YAML document and return a :class:`ProjectConfig`."""
    if data is None:
        return ProjectConfig(source=source)
    if not isinstance(data, dict):
        msg = f"{RULES_FILE} must be a YAML mapping"
        raise SetupError(msg)

    version = data.get("version")
    if version is None:
        msg = f"{RULES_FILE}: missing required 'version' field"
        raise SetupError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"{RULES_FILE}: unsupported version {version}, expected one of {expected}"
        raise SetupError(msg)

    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        logger.warning("%s: ignoring unknown keys %s", RULES_FILE, sorted(unknown))

    namespaces = _string_list(data, "namespaces") or DEFAULT_TEMPLATES
    for template in namespaces:
        compile_pattern(template)

    workers_raw = data.get("workers", DEFAULT_WORKERS)
    if not isinstance(workers_raw, int) or isinstance(workers_raw, bool) or workers_raw < 1:
        msg = f"{RULES_FILE}: 'workers' must be a positive integer"
        raise SetupError(msg)

    rules_raw = data.get("rules", []) or []
    if not isinstance(rules_raw, list):
        msg = f"{RULES_FILE}: 'rules' must be a list"
        raise SetupError(msg)

    return ProjectConfig(
        namespaces=namespaces,
        include=_string_list(data, "include"),
        exclude=_string_list(data, "exclude"),
        workers=workers_raw,
        empty_selection=parse_empty_selection(data.get("empty_selection", "pass")),
        rules=tuple(rules_raw),
        source=source,
    )


def load_config(project_root: Path, rules_path: Path | None = None) -> ProjectConfig:
    """Load the project's rules file; a missing file yields the defaults.

    Raises :class:`SetupError` when the file exists but is not valid.
    """
    path = rules_path or default_rules_path(project_root)
    if not path.is_file():
        if rules_path is not None:
            msg = f"Rules file not found: {rules_path}"
            raise SetupError(msg)
        logger.debug("No rules file at %s, using defaults", path)
        return ProjectConfig()

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Cannot read {path}: {exc}"
        raise SetupError(msg) from exc
    return parse_config(data, source=path)
