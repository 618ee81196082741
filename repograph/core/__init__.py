"""
Core module: data models, exceptions, detection and graph building.

Models (models.py):
    - CodeNode: A file or a declaration inside a file
    - CodeEdge: A directed relationship between two nodes
    - CodeGraphSchema: The complete, immutable output of one parse run
    - ParseOptions: Per-call options shared by every backend

Exceptions (exceptions.py):
    - RepographError: Base exception for all repograph errors
    - RuntimeUnavailableError: A backend's interpreter or parser library is missing
    - LanguageUnsupportedError: No backend handles the detected language
    - FileProcessingError: A single file could not be processed
    - MalformedProjectError: The repository root cannot be parsed at all

The parse entry points live in repograph.core.dispatcher.
"""

from repograph.core.exceptions import (
    FileProcessingError,
    LanguageUnsupportedError,
    MalformedProjectError,
    ParseCancelledError,
    RepographError,
    RuntimeUnavailableError,
)
from repograph.core.models import (
    PARSER_VERSION,
    CodeEdge,
    CodeGraphSchema,
    CodeGraphStats,
    CodeNode,
    EdgeKind,
    FileError,
    Language,
    LanguageResult,
    NodeKind,
    ParseOptions,
    ParseResult,
)

__all__ = [
    # Models
    "PARSER_VERSION",
    "CodeNode",
    "CodeEdge",
    "CodeGraphSchema",
    "CodeGraphStats",
    "FileError",
    "Language",
    "NodeKind",
    "EdgeKind",
    "ParseOptions",
    "ParseResult",
    "LanguageResult",
    # Exceptions
    "RepographError",
    "RuntimeUnavailableError",
    "LanguageUnsupportedError",
    "FileProcessingError",
    "MalformedProjectError",
    "ParseCancelledError",
]
