"""Tests for error handling paths."""

import tempfile
from pathlib import Path

import pytest

from repograph.core.dispatcher import parse_code_graph, parse_code_graph_safe
from repograph.core.exceptions import (
    FileProcessingError,
    LanguageUnsupportedError,
    MalformedProjectError,
    ParseCancelledError,
    RepographError,
    RuntimeUnavailableError,
)
from repograph.core.models import ParseOptions
from repograph.languages.typescript import TypeScriptBackend


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


class TestExceptionHierarchy:
    """Tests for the exception types themselves."""

    @pytest.mark.parametrize(
        "error",
        [
            RuntimeUnavailableError("PHP", "Install PHP."),
            LanguageUnsupportedError("mixed"),
            FileProcessingError("a.ts", "Syntax error near line 3"),
            MalformedProjectError("Directory not found: /nope"),
            ParseCancelledError("Parse cancelled"),
        ],
    )
    def test_all_errors_share_base(self, error: Exception) -> None:
        """Test that every error can be caught as RepographError."""
        assert isinstance(error, RepographError)
        assert str(error)

    def test_runtime_unavailable_carries_hint(self) -> None:
        """Test that the install hint is part of the message."""
        error = RuntimeUnavailableError("Ruby", "Run `gem install parser`.")

        assert error.runtime == "Ruby"
        assert error.hint == "Run `gem install parser`."
        assert "Ruby is not available" in str(error)
        assert "gem install parser" in str(error)

    def test_language_unsupported_names_language(self) -> None:
        """Test that the unsupported language is in the message."""
        assert "mixed" in str(LanguageUnsupportedError("mixed"))

    def test_file_processing_error_fields(self) -> None:
        """Test that the file path and message are kept separately."""
        error = FileProcessingError("src/a.ts", "Cannot read file")

        assert error.file_path == "src/a.ts"
        assert error.message == "Cannot read file"
        assert str(error) == "src/a.ts: Cannot read file"


class TestParserErrors:
    """Tests for per-file parser error handling."""

    def test_parse_syntax_error(self, temp_dir: Path) -> None:
        """Test that syntax errors raise FileProcessingError."""
        file_path = temp_dir / "bad_syntax.ts"
        file_path.write_text("export class Broken {\n  method( {\n")

        with pytest.raises(FileProcessingError) as exc_info:
            TypeScriptBackend().parse_file(file_path, "bad_syntax.ts")

        assert "Syntax error" in str(exc_info.value)

    def test_parse_encoding_error(self, temp_dir: Path) -> None:
        """Test that encoding errors raise FileProcessingError."""
        file_path = temp_dir / "bad_encoding.ts"
        file_path.write_bytes(b"\xff\xfe invalid utf-8 \x80\x81")

        with pytest.raises(FileProcessingError) as exc_info:
            TypeScriptBackend().parse_file(file_path, "bad_encoding.ts")

        assert "Cannot read" in str(exc_info.value)

    def test_parse_empty_file(self, temp_dir: Path) -> None:
        """Test that empty files parse without error."""
        file_path = temp_dir / "empty.ts"
        file_path.write_text("")

        result = TypeScriptBackend().parse_file(file_path, "empty.ts")

        assert result.symbols == []
        assert result.references == []

    def test_bad_file_is_skipped_not_fatal(self, temp_dir: Path) -> None:
        """Test that one broken file does not abort the run."""
        (temp_dir / "tsconfig.json").write_text("{}")
        (temp_dir / "good.ts").write_text("export class Good {}\n")
        (temp_dir / "bad.ts").write_text("export class {{{\n")

        schema = parse_code_graph(temp_dir)

        assert "good.ts#Good" in schema.node_ids
        assert "bad.ts" not in schema.node_ids
        assert [e.file_path for e in schema.skipped_files] == ["bad.ts"]
        assert "Syntax error" in schema.skipped_files[0].message


class TestProjectErrors:
    """Tests for errors that abort a parse."""

    def test_missing_root(self, temp_dir: Path) -> None:
        """Test that a missing root raises MalformedProjectError."""
        with pytest.raises(MalformedProjectError) as exc_info:
            parse_code_graph(temp_dir / "nope")

        assert "not found" in str(exc_info.value)

    def test_root_is_a_file(self, temp_dir: Path) -> None:
        """Test that a file root raises MalformedProjectError."""
        file_path = temp_dir / "file.ts"
        file_path.write_text("")

        with pytest.raises(MalformedProjectError):
            parse_code_graph(file_path)

    def test_safe_parse_reports_message(self, temp_dir: Path) -> None:
        """Test that the safe wrapper turns errors into a result."""
        result = parse_code_graph_safe(temp_dir / "nope", ParseOptions())

        assert result.success is False
        assert result.data is None
        assert result.message
        assert result.to_dict() == {"success": False, "message": result.message}
