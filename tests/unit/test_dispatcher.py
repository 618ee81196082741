"""Unit tests for backend routing and availability gating."""

import threading
from pathlib import Path

import pytest

from repograph.core.dispatcher import backend_for, parse_code_graph, parse_code_graph_safe
from repograph.core.exceptions import (
    LanguageUnsupportedError,
    ParseCancelledError,
    RuntimeUnavailableError,
)
from repograph.core.models import Language
from repograph.languages import php, ruby
from repograph.languages.php import PhpBackend
from repograph.languages.ruby import RubyBackend
from repograph.languages.typescript import TypeScriptBackend


class TestBackendFor:
    """Tests for backend routing."""

    @pytest.mark.parametrize(
        ("language", "backend_type"),
        [
            (Language.TYPESCRIPT, TypeScriptBackend),
            (Language.JAVASCRIPT, TypeScriptBackend),
            (Language.PHP, PhpBackend),
            (Language.RUBY, RubyBackend),
        ],
    )
    def test_routes(self, language: Language, backend_type: type) -> None:
        backend = backend_for(language)

        assert isinstance(backend, backend_type)
        assert backend.language == language

    def test_mixed_unsupported(self) -> None:
        with pytest.raises(LanguageUnsupportedError):
            backend_for(Language.MIXED)


class TestAvailabilityGating:
    """Tests that missing runtimes fail the parse without a partial schema."""

    @pytest.fixture
    def php_repo(self, tmp_path: Path) -> Path:
        (tmp_path / "composer.json").write_text("{}")
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / "User.php").write_text("<?php\nclass User {}\n")
        return tmp_path

    @pytest.fixture
    def ruby_repo(self, tmp_path: Path) -> Path:
        (tmp_path / "Gemfile").write_text("source 'https://rubygems.org'\n")
        (tmp_path / "app.rb").write_text("class App; end\n")
        return tmp_path

    def test_php_unavailable_raises(
        self, monkeypatch: pytest.MonkeyPatch, php_repo: Path
    ) -> None:
        monkeypatch.setattr(php, "is_php_available", lambda: False)

        with pytest.raises(RuntimeUnavailableError) as exc_info:
            parse_code_graph(php_repo)

        assert exc_info.value.runtime == "PHP"

    def test_php_unavailable_safe(self, monkeypatch: pytest.MonkeyPatch, php_repo: Path) -> None:
        monkeypatch.setattr(php, "is_php_available", lambda: False)

        result = parse_code_graph_safe(php_repo)

        assert result.success is False
        assert result.data is None
        assert result.message
        assert "PHP is not available" in result.message

    def test_ruby_gem_missing_safe(
        self, monkeypatch: pytest.MonkeyPatch, ruby_repo: Path
    ) -> None:
        monkeypatch.setattr(ruby, "is_ruby_available", lambda: True)
        monkeypatch.setattr(ruby, "has_parser_gem", lambda: False)

        result = parse_code_graph_safe(ruby_repo)

        assert result.success is False
        assert "gem install parser" in result.message


class TestCancellation:
    """Tests for cancelling a parse."""

    def test_cancelled_before_start(self, tmp_path: Path) -> None:
        (tmp_path / "tsconfig.json").write_text("{}")
        (tmp_path / "a.ts").write_text("export class A {}\n")
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(ParseCancelledError):
            parse_code_graph(tmp_path, cancel=cancel)

    def test_cancelled_safe(self, tmp_path: Path) -> None:
        (tmp_path / "a.ts").write_text("export class A {}\n")
        cancel = threading.Event()
        cancel.set()

        result = parse_code_graph_safe(tmp_path, cancel=cancel)

        assert result.success is False
        assert result.message == "Parse cancelled"
