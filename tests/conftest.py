"""Shared test fixtures for layerguard."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from layerguard.errors import ExtractionWarning
from layerguard.graph.builder import DependencyGraph, build_graph
from layerguard.scanning.adapters import ImportDecl, Symbol
from layerguard.scanning.scanner import ScanResult, SourceFile

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

GO_MODULE = "example.com/shop"


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write *files* (relative path -> content) under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


# Layered Go service with one layer violation, one naming violation and a
# cross-context import.
GO_SHOP: dict[str, str] = {
    "go.mod": f"module {GO_MODULE}\n\ngo 1.22\n",
    "internal/user/domain/entity/user.go": (
        "package entity\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        f'\t"{GO_MODULE}/internal/user/infrastructure/db"\n'
        ")\n"
        "\n"
        "type User struct {\n"
        "\tID string\n"
        "}\n"
        "\n"
        "func (u User) String() string { return fmt.Sprint(db.Name, u.ID) }\n"
    ),
    "internal/user/domain/repository/user_repository.go": (
        "package repository\n"
        "\n"
        "type UserRepository struct{}\n"
    ),
    "internal/user/infrastructure/db/postgres.go": (
        "package db\n"
        "\n"
        'import "database/sql"\n'
        "\n"
        'const Name = "postgres"\n'
        "\n"
        "type Postgres struct {\n"
        "\tconn *sql.DB\n"
        "}\n"
        "\n"
        "func Open() *Postgres { return &Postgres{} }\n"
    ),
    "internal/user/application/usecase/create_user.go": (
        "package usecase\n"
        "\n"
        f'import "{GO_MODULE}/internal/user/domain/entity"\n'
        "\n"
        "type CreateUserUseCase struct {\n"
        "\tlast entity.User\n"
        "}\n"
    ),
    "internal/order/domain/order.go": (
        "package domain\n"
        "\n"
        f'import "{GO_MODULE}/internal/user/domain/entity"\n'
        "\n"
        "type Order struct {\n"
        "\tOwner entity.User\n"
        "}\n"
        "\n"
        "type OrderRepository interface {\n"
        "\tSave(o Order) error\n"
        "}\n"
    ),
    "cmd/api/main.go": (
        "package main\n"
        "\n"
        "import (\n"
        f'\t"{GO_MODULE}/internal/user/application/usecase"\n'
        '\t"github.com/gin-gonic/gin/binding"\n'
        ")\n"
        "\n"
        "var _ = binding.JSON\n"
        "var _ usecase.CreateUserUseCase\n"
        "\n"
        "func main() {}\n"
    ),
}


@pytest.fixture()
def go_project(tmp_path: Path) -> Path:
    """A Go project laid out as internal/<domain>/<layer>."""
    pytest.importorskip("tree_sitter_go")
    project = tmp_path / "shop"
    project.mkdir()
    return write_tree(project, GO_SHOP)


@pytest.fixture()
def clean_go_project(tmp_path: Path) -> Path:
    """The same layout without any rule violation."""
    pytest.importorskip("tree_sitter_go")
    project = tmp_path / "clean"
    project.mkdir()
    files = dict(GO_SHOP)
    files["internal/user/domain/entity/user.go"] = (
        "package entity\n\nimport \"fmt\"\n\ntype User struct{}\n\n"
        "func (u User) String() string { return fmt.Sprint(\"user\") }\n"
    )
    files["internal/user/domain/repository/user_repository.go"] = (
        "package repository\n\ntype UserRepository interface {\n\tFind(id string) error\n}\n"
    )
    files["internal/order/domain/order.go"] = (
        "package domain\n\ntype Order struct{}\n\n"
        "type OrderRepository interface {\n\tSave(o Order) error\n}\n"
    )
    return write_tree(project, files)


@pytest.fixture()
def make_graph(tmp_path: Path) -> Callable[..., DependencyGraph]:
    """Build a graph from hand-written Go files, without parsing anything.

    Each entry maps a file path to ``{"imports": [...], "symbols": [(name, kind)]}``;
    import strings are taken as written, so local ones carry the module prefix.
    """

    def _make(
        files: dict[str, dict[str, Any]],
        *,
        templates: tuple[str, ...] = (),
        warnings: tuple[ExtractionWarning, ...] = (),
    ) -> DependencyGraph:
        (tmp_path / "go.mod").write_text(f"module {GO_MODULE}\n", encoding="utf-8")
        sources = []
        for path, spec in sorted(files.items()):
            imports = tuple(
                ImportDecl(raw=raw, line=i + 3) for i, raw in enumerate(spec.get("imports", []))
            )
            symbols = tuple(
                Symbol(name=name, kind=kind, file=path, line=10 + i)
                for i, (name, kind) in enumerate(spec.get("symbols", []))
            )
            sources.append(SourceFile(path=path, language="go", imports=imports, symbols=symbols))
        scan = ScanResult(files=tuple(sources), warnings=warnings)
        return build_graph(tmp_path, scan, templates=templates)

    return _make
