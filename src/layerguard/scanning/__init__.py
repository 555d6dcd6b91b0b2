"""Source scanning: file discovery and per-language import extraction."""

from layerguard.scanning.adapters import (
    ImportDecl,
    LanguageAdapter,
    Symbol,
    get_adapter,
    supported_extensions,
)
from layerguard.scanning.scanner import (
    DEFAULT_EXCLUDE_DIRS,
    ScanResult,
    SourceFile,
    discover_files,
    scan,
)

__all__ = [
    "DEFAULT_EXCLUDE_DIRS",
    "ImportDecl",
    "LanguageAdapter",
    "ScanResult",
    "SourceFile",
    "Symbol",
    "discover_files",
    "get_adapter",
    "scan",
    "supported_extensions",
]
