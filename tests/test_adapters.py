"""Tests for layerguard.scanning.adapters — tree-sitter import/declaration scanners."""

from __future__ import annotations

import pytest

from layerguard.scanning.adapters import (
    ExtractionError,
    extract,
    get_adapter,
    supported_extensions,
)


def _kinds(symbols: list) -> dict[str, str]:  # type: ignore[type-arg]
    return {s.name: s.kind for s in symbols}


class TestRegistry:
    def test_supported_extensions(self) -> None:
        assert {".go", ".py", ".ts", ".tsx", ".js"} <= supported_extensions()

    def test_get_adapter_is_case_insensitive(self) -> None:
        adapter = get_adapter(".GO")
        assert adapter is not None
        assert adapter.name == "go"

    def test_unknown_extension(self) -> None:
        assert get_adapter(".rs") is None
        with pytest.raises(ExtractionError, match="no adapter"):
            extract(b"fn main() {}", "main.rs", ".rs")


class TestGo:
    @pytest.fixture(autouse=True)
    def _grammar(self) -> None:
        pytest.importorskip("tree_sitter_go")

    def test_imports_single_grouped_and_aliased(self) -> None:
        source = (
            b"package main\n"
            b"\n"
            b'import "fmt"\n'
            b"\n"
            b"import (\n"
            b'\tlog "github.com/sirupsen/logrus"\n'
            b'\t_ "github.com/lib/pq"\n'
            b'\t"example.com/shop/internal/user/domain"\n'
            b")\n"
        )
        language, imports, _ = extract(source, "main.go", ".go")
        assert language == "go"
        assert [(i.raw, i.line) for i in imports] == [
            ("fmt", 3),
            ("github.com/sirupsen/logrus", 6),
            ("github.com/lib/pq", 7),
            ("example.com/shop/internal/user/domain", 8),
        ]

    def test_symbol_kinds(self) -> None:
        source = (
            b"package domain\n"
            b"\n"
            b"type UserRepository interface {\n"
            b"\tFind(id string) (*User, error)\n"
            b"}\n"
            b"\n"
            b"type User struct {\n"
            b"\tID string\n"
            b"}\n"
            b"\n"
            b"type UserID string\n"
            b"\n"
            b"func NewUser(id string) *User { return &User{ID: id} }\n"
        )
        _, _, symbols = extract(source, "internal/user/domain/user.go", ".go")
        assert _kinds(symbols) == {
            "UserRepository": "interface",
            "User": "struct",
            "UserID": "type",
            "NewUser": "function",
        }
        assert symbols[0].file == "internal/user/domain/user.go"
        assert symbols[0].line == 3

    def test_syntax_error(self) -> None:
        with pytest.raises(ExtractionError, match="syntax error"):
            extract(b"package x\n\nfunc {{{\n", "bad.go", ".go")


class TestPython:
    @pytest.fixture(autouse=True)
    def _grammar(self) -> None:
        pytest.importorskip("tree_sitter_python")

    def test_imports(self) -> None:
        source = (
            b"import os\n"
            b"import app.domain.user as user\n"
            b"from app.infra import db, cache as c\n"
            b"from . import sibling\n"
            b"from ..shared import clock\n"
        )
        language, imports, _ = extract(source, "app/service.py", ".py")
        assert language == "python"
        assert [(i.raw, i.members) for i in imports] == [
            ("os", ()),
            ("app.domain.user", ()),
            ("app.infra", ("db", "cache")),
            (".", ("sibling",)),
            ("..shared", ("clock",)),
        ]

    def test_symbol_kinds(self) -> None:
        source = (
            b"from abc import ABC\n"
            b"from typing import Protocol\n"
            b"\n"
            b"class UserRepository(Protocol):\n"
            b"    def find(self, uid: str) -> None: ...\n"
            b"\n"
            b"class Base(ABC):\n"
            b"    pass\n"
            b"\n"
            b"class User:\n"
            b"    pass\n"
            b"\n"
            b"@decorator\n"
            b"def create_user() -> User:\n"
            b"    return User()\n"
        )
        _, _, symbols = extract(source, "app/domain.py", ".py")
        assert _kinds(symbols) == {
            "UserRepository": "interface",
            "Base": "interface",
            "User": "class",
            "create_user": "function",
        }


class TestTypeScript:
    @pytest.fixture(autouse=True)
    def _grammar(self) -> None:
        pytest.importorskip("tree_sitter_typescript")

    def test_imports_and_reexports(self) -> None:
        source = (
            b"import { Injectable } from '@nestjs/common';\n"
            b'import * as db from "../infra/db";\n'
            b"export { User } from './user';\n"
        )
        language, imports, _ = extract(source, "src/user/service.ts", ".ts")
        assert language == "typescript"
        assert [i.raw for i in imports] == ["@nestjs/common", "../infra/db", "./user"]

    def test_symbol_kinds(self) -> None:
        source = (
            b"export interface UserRepository {\n"
            b"  find(id: string): Promise<User>;\n"
            b"}\n"
            b"export class User {}\n"
            b"export type UserId = string;\n"
            b"function helper(): void {}\n"
        )
        _, _, symbols = extract(source, "src/user/domain.ts", ".ts")
        assert _kinds(symbols) == {
            "UserRepository": "interface",
            "User": "class",
            "UserId": "type",
            "helper": "function",
        }

    def test_tsx(self) -> None:
        source = b"import React from 'react';\nexport function App() { return <div />; }\n"
        _, imports, symbols = extract(source, "src/App.tsx", ".tsx")
        assert [i.raw for i in imports] == ["react"]
        assert _kinds(symbols) == {"App": "function"}

    def test_js_with_jsx(self) -> None:
        source = (
            b"import { api } from '../api/client';\n"
            b"export function Button({ label }) {\n"
            b"  return <button onClick={() => api.click()}>{label}</button>;\n"
            b"}\n"
        )
        language, imports, symbols = extract(source, "src/components/Button.js", ".js")
        assert language == "typescript"
        assert [(i.raw, i.line) for i in imports] == [("../api/client", 1)]
        assert _kinds(symbols) == {"Button": "function"}
