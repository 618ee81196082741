"""Repograph custom exceptions."""

from __future__ import annotations


class RepographError(Exception):
    """Base exception for Repograph errors."""


class RuntimeUnavailableError(RepographError):
    """The external interpreter or library a backend needs is missing."""

    def __init__(self, runtime: str, hint: str) -> None:
        self.runtime = runtime
        self.hint = hint
        super().__init__(f"{runtime} is not available on this system. {hint}")


class LanguageUnsupportedError(RepographError):
    """Detection produced a language that has no backend."""

    def __init__(self, language: str) -> None:
        self.language = language
        super().__init__(f"Unsupported language: {language}")


class MalformedProjectError(RepographError):
    """The repository root cannot be inspected at all."""


class ParseCancelledError(RepographError):
    """A parse run was cancelled before it completed."""


class FileProcessingError(RepographError):
    """A single source file could not be processed.

    Backends catch this per file, record it and move on.
    """

    def __init__(self, file_path: str, message: str) -> None:
        self.file_path = file_path
        self.message = message
        super().__init__(f"{file_path}: {message}")
