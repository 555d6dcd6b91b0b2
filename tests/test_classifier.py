"""Tests for layerguard.graph.classifier — module classification."""

from __future__ import annotations

import pytest

from layerguard.errors import ExtractionWarning, SetupError
from layerguard.graph.classifier import UNMATCHED, ModuleClassifier
from layerguard.scanning.scanner import ScanResult, SourceFile


def _source(path: str) -> SourceFile:
    return SourceFile(path=path, language="go", imports=(), symbols=())


class TestClassifyModule:
    def test_default_template_claims_everything(self) -> None:
        classifier = ModuleClassifier()
        cls = classifier.classify_module("internal/user/domain")
        assert cls is not None
        assert cls.template == "**"
        assert cls.captures == ()

    def test_most_specific_template_and_captures(self) -> None:
        classifier = ModuleClassifier(["internal/{domain}", "internal/{domain}/domain"])
        cls = classifier.classify_module("internal/user/domain/entity")
        assert cls is not None
        assert cls.template == "internal/{domain}/domain"
        assert cls.captures == (("domain", "user"),)

    def test_unmatched_returns_none(self) -> None:
        classifier = ModuleClassifier(["internal/*"])
        assert classifier.classify_module("cmd/api") is None

    def test_malformed_template_fails_fast(self) -> None:
        with pytest.raises(SetupError):
            ModuleClassifier(["internal//x"])


class TestClassify:
    def test_every_file_lands_exactly_once(self) -> None:
        scan = ScanResult(
            files=(
                _source("cmd/api/main.go"),
                _source("internal/user/domain/user.go"),
                _source("tools/gen.go"),
            ),
            warnings=(ExtractionWarning(path="internal/user/broken.go", message="syntax error"),),
        )
        classified, unclassified = ModuleClassifier(["internal/*", "cmd/*"]).classify(scan)

        classified_paths = {source.path for source, _ in classified}
        unclassified_paths = {u.path for u in unclassified}
        assert classified_paths == {"cmd/api/main.go", "internal/user/domain/user.go"}
        assert unclassified_paths == {"tools/gen.go", "internal/user/broken.go"}
        assert not classified_paths & unclassified_paths

    def test_reasons(self) -> None:
        scan = ScanResult(
            files=(_source("tools/gen.go"),),
            warnings=(ExtractionWarning(path="a/b.go", message="syntax error near line 3"),),
        )
        _, unclassified = ModuleClassifier(["internal/*"]).classify(scan)
        reasons = {u.path: u.reason for u in unclassified}
        assert reasons == {
            "a/b.go": "extraction:syntax error near line 3",
            "tools/gen.go": UNMATCHED,
        }

    def test_root_files_belong_to_dot_module(self) -> None:
        classified, unclassified = ModuleClassifier().classify(
            ScanResult(files=(_source("main.go"),), warnings=())
        )
        assert not unclassified
        assert classified[0][1].module_id == "."
