"""Data models for backend extraction results."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from repograph.core.models import EdgeKind, FileError, Language, NodeKind


@dataclass
class ParsedSymbol:
    """A declaration extracted from source code (before resolution)."""

    name: str
    kind: NodeKind
    line: int
    end_line: int | None
    qualified_name: str
    namespace: str | None = None
    exported: bool = True


@dataclass
class ParsedReference:
    """A textual reference to another file or symbol (before resolution)."""

    kind: EdgeKind
    specifier: str
    line: int | None
    # Qualified name of the declaring symbol; None means the file itself.
    source_symbol: str | None = None
    type_only: bool = False
    # Specifier is a path relative to the referencing file's directory.
    relative: bool = False


@dataclass
class ImportBinding:
    """A local name introduced by an import."""

    local_name: str
    # Exported name in the target module, "default" or "*" for namespace imports.
    imported_name: str
    specifier: str


@dataclass
class FileExtraction:
    """Everything a backend extracted from one file."""

    file: Path
    rel_path: str
    language: Language
    symbols: list[ParsedSymbol] = field(default_factory=list)
    references: list[ParsedReference] = field(default_factory=list)
    bindings: list[ImportBinding] = field(default_factory=list)
    # export ... from "m": local_name is the exported name, or "*" for export *.
    re_exports: list[ImportBinding] = field(default_factory=list)


FileOutcome = Union[FileExtraction, FileError]


def split_outcomes(
    outcomes: Iterable[FileOutcome],
) -> tuple[list[FileExtraction], list[FileError]]:
    """Fold per-file outcomes into successes and failures."""
    extracted: list[FileExtraction] = []
    failed: list[FileError] = []
    for outcome in outcomes:
        if isinstance(outcome, FileError):
            failed.append(outcome)
        else:
            extracted.append(outcome)
    return extracted, failed


def symbol_node_id(rel_path: str, symbol_key: str) -> str:
    return f"{rel_path}#{symbol_key}"
