"""Data models for Repograph."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Bump whenever the schema shape or the extraction rules change.
PARSER_VERSION = "1.1.0"


class Language(Enum):
    """Languages a schema can be produced for."""

    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PHP = "php"
    RUBY = "ruby"
    MIXED = "mixed"


class NodeKind(Enum):
    """Kinds of nodes in the code graph."""

    FILE = "file"
    CLASS = "class"
    INTERFACE = "interface"
    FUNCTION = "function"
    MODULE = "module"
    TRAIT = "trait"
    ENUM = "enum"


class EdgeKind(Enum):
    """Kinds of relationships between nodes."""

    IMPORTS = "imports"
    EXTENDS = "extends"
    IMPLEMENTS = "implements"
    INCLUDES = "includes"
    EXPORTS = "exports"


class ChangeStatus(Enum):
    """Git change status, set by a diff overlay and never by a backend."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass
class Position:
    """Layout coordinate written by a renderer."""

    x: float
    y: float


@dataclass
class CodeNode:
    """A file or a named symbol inside a file.

    Only ``position`` and ``change_status`` may be written after the schema
    has been returned; everything else is structural.
    """

    id: str
    kind: NodeKind
    name: str
    display_name: str
    file_path: str
    language: Language
    line: int | None = None
    end_line: int | None = None
    namespace: str | None = None
    exported: bool | None = None
    position: Position | None = None
    change_status: ChangeStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire shape."""
        result: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "displayName": self.display_name,
            "filePath": self.file_path,
            "language": self.language.value,
        }
        if self.line is not None:
            result["line"] = self.line
        if self.end_line is not None:
            result["endLine"] = self.end_line
        if self.namespace is not None:
            result["namespace"] = self.namespace
        if self.exported is not None:
            result["exported"] = self.exported
        if self.position is not None:
            result["position"] = {"x": self.position.x, "y": self.position.y}
        if self.change_status is not None:
            result["changeStatus"] = self.change_status.value
        return result


@dataclass(frozen=True)
class CodeEdge:
    """A directed relationship between two nodes."""

    id: str
    kind: EdgeKind
    source: str
    target: str
    resolved: bool
    line: int | None = None
    specifier: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire shape."""
        result: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "source": self.source,
            "target": self.target,
            "resolved": self.resolved,
        }
        if self.line is not None:
            result["line"] = self.line
        if self.specifier is not None:
            result["specifier"] = self.specifier
        return result


@dataclass(frozen=True)
class FileError:
    """A file that was skipped during a parse run."""

    file_path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"filePath": self.file_path, "message": self.message}


@dataclass(frozen=True)
class CodeGraphSchema:
    """The complete output of one parse run."""

    nodes: tuple[CodeNode, ...]
    edges: tuple[CodeEdge, ...]
    language: Language
    root_path: str
    parsed_at: str
    parser_version: str = PARSER_VERSION
    skipped_files: tuple[FileError, ...] = ()

    def get_node(self, node_id: str) -> CodeNode | None:
        """Look up a node by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @property
    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "language": self.language.value,
            "rootPath": self.root_path,
            "parsedAt": self.parsed_at,
            "parserVersion": self.parser_version,
            "skippedFiles": [error.to_dict() for error in self.skipped_files],
        }


@dataclass(frozen=True)
class ParseOptions:
    """Options that apply uniformly across backends."""

    include_node_modules: bool = False
    include_tests: bool = False
    include_type_imports: bool = False
    max_depth: int = 10
    exclude_patterns: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ParseOptions:
        """Build options from the camelCase wire shape; unknown keys are ignored."""
        if not data:
            return cls()
        defaults = cls()
        patterns = data.get("excludePatterns") or ()
        if isinstance(patterns, str):
            patterns = (patterns,)
        return cls(
            include_node_modules=bool(
                data.get("includeNodeModules", defaults.include_node_modules)
            ),
            include_tests=bool(data.get("includeTests", defaults.include_tests)),
            include_type_imports=bool(
                data.get("includeTypeImports", defaults.include_type_imports)
            ),
            max_depth=int(data.get("maxDepth", defaults.max_depth)),
            exclude_patterns=tuple(patterns),
        )


@dataclass
class ParseResult:
    """Non-throwing result of a parse."""

    success: bool
    data: CodeGraphSchema | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data.to_dict()
        if self.message is not None:
            result["message"] = self.message
        return result


@dataclass
class LanguageResult:
    """Non-throwing result of language detection."""

    success: bool
    data: Language | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data.value
        if self.message is not None:
            result["message"] = self.message
        return result


@dataclass
class CodeGraphStats:
    """Statistics about a parsed code graph."""

    total_files: int = 0
    total_nodes: int = 0
    total_edges: int = 0
    nodes_by_kind: dict[str, int] = field(default_factory=dict)
    edges_by_kind: dict[str, int] = field(default_factory=dict)
    unresolved_imports: int = 0
    skipped_files: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "nodesByKind": dict(self.nodes_by_kind),
            "edgesByKind": dict(self.edges_by_kind),
            "unresolvedImports": self.unresolved_imports,
            "skippedFiles": self.skipped_files,
        }
