"""Parse entry points: detect the language, pick a backend, build the graph."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from repograph.core.detector import detect_language, detect_language_safe, ensure_directory
from repograph.core.exceptions import LanguageUnsupportedError, RuntimeUnavailableError
from repograph.core.models import CodeGraphSchema, Language, ParseOptions, ParseResult
from repograph.languages.base import LanguageBackend, ProgressCallback
from repograph.languages.php import PhpBackend
from repograph.languages.ruby import RubyBackend
from repograph.languages.typescript import TypeScriptBackend

logger = logging.getLogger(__name__)

__all__ = [
    "backend_for",
    "detect_language_safe",
    "parse_code_graph",
    "parse_code_graph_safe",
]


def backend_for(language: Language) -> LanguageBackend:
    """Return a fresh backend for ``language``.

    Raises:
        LanguageUnsupportedError: If no backend handles the language.
    """
    if language in (Language.TYPESCRIPT, Language.JAVASCRIPT):
        return TypeScriptBackend(language)
    if language == Language.PHP:
        return PhpBackend()
    if language == Language.RUBY:
        return RubyBackend()
    raise LanguageUnsupportedError(language.value)


def parse_code_graph(
    repo_path: Path | str,
    options: ParseOptions | None = None,
    *,
    on_progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
) -> CodeGraphSchema:
    """Parse a repository into a code graph.

    Args:
        repo_path: Root directory of the repository
        options: Parse options, defaults apply when omitted
        on_progress: Called as ``(file, current, total)`` after each file
        cancel: Set to stop the run; running interpreters are killed

    Returns:
        A new CodeGraphSchema

    Raises:
        MalformedProjectError: If the root does not exist or is not a directory
        LanguageUnsupportedError: If no backend handles the detected language
        RuntimeUnavailableError: If the backend's runtime is missing
        ParseCancelledError: If ``cancel`` was set during the run
    """
    root = ensure_directory(repo_path)
    options = options or ParseOptions()
    language = detect_language(root)
    backend = backend_for(language)
    logger.info("Parsing %s as %s", root, language.value)

    availability = backend.probe(root)
    if not availability.available:
        raise RuntimeUnavailableError(availability.runtime, availability.hint)

    schema = backend.parse(root, options, on_progress=on_progress, cancel=cancel)
    logger.info(
        "Parsed %s: %d nodes, %d edges, %d skipped files",
        root,
        len(schema.nodes),
        len(schema.edges),
        len(schema.skipped_files),
    )
    return schema


def parse_code_graph_safe(
    repo_path: Path | str,
    options: ParseOptions | None = None,
    *,
    on_progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
) -> ParseResult:
    """Like parse_code_graph, but reports failures in the result instead of raising."""
    try:
        schema = parse_code_graph(repo_path, options, on_progress=on_progress, cancel=cancel)
    except Exception as e:
        logger.debug("Parse of %s failed", repo_path, exc_info=True)
        return ParseResult(success=False, message=str(e) or type(e).__name__)
    return ParseResult(success=True, data=schema)
