"""Accumulates nodes and edges into a CodeGraphSchema."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import PurePosixPath

from repograph.core.models import (
    PARSER_VERSION,
    CodeEdge,
    CodeGraphSchema,
    CodeNode,
    EdgeKind,
    FileError,
    Language,
    NodeKind,
)

logger = logging.getLogger(__name__)

_EXTERNAL_PREFIX = "external:"
_UNRESOLVED_PREFIX = "unresolved:"


def normalize_specifier(specifier: str) -> str:
    """Normalize a raw specifier before it is turned into a placeholder."""
    return specifier.strip().lstrip("\\")


def placeholder_id(specifier: str) -> str:
    """Deterministic target id for a reference that did not resolve.

    Path-like specifiers (``./x``, ``../x``, ``/x``) become ``unresolved:<spec>``,
    everything else (package names, namespaces, constants) ``external:<spec>``.
    The id depends on the specifier text only.
    """
    spec = normalize_specifier(specifier)
    if spec.startswith((".", "/")):
        return f"{_UNRESOLVED_PREFIX}{spec}"
    return f"{_EXTERNAL_PREFIX}{spec}"


def edge_id(source: str, kind: EdgeKind, target: str) -> str:
    return f"{source}--{kind.value}--{target}"


def file_node(rel_path: str, language: Language) -> CodeNode:
    """Create the node for a source file."""
    name = PurePosixPath(rel_path).name
    return CodeNode(
        id=rel_path,
        kind=NodeKind.FILE,
        name=name,
        display_name=name,
        file_path=rel_path,
        language=language,
        line=1,
    )


class GraphBuilder:
    """Collects nodes, edges and skipped files for one parse run.

    Node ids are kept unique (first declaration wins) and edges are
    de-duplicated on ``source--kind--target``.
    """

    def __init__(self, root_path: str, language: Language) -> None:
        self.root_path = root_path
        self.language = language
        self._nodes: dict[str, CodeNode] = {}
        self._edges: dict[str, CodeEdge] = {}
        self._skipped: list[FileError] = []

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def add_node(self, node: CodeNode) -> bool:
        """Add a node; returns False if the id already exists."""
        if node.id in self._nodes:
            logger.debug("Duplicate node id %s ignored", node.id)
            return False
        self._nodes[node.id] = node
        return True

    def add_edge(
        self,
        kind: EdgeKind,
        source: str,
        target: str | None,
        *,
        specifier: str | None = None,
        line: int | None = None,
    ) -> CodeEdge | None:
        """Add an edge from an existing node.

        A ``target`` of None, or one that is not a node of this run, is
        replaced by the placeholder derived from ``specifier``.
        """
        if source not in self._nodes:
            logger.debug("Dropping %s edge from unknown node %s", kind.value, source)
            return None

        resolved = target is not None and target in self._nodes
        if target is None or not resolved:
            target = placeholder_id(specifier if specifier is not None else target or "")

        key = edge_id(source, kind, target)
        if key in self._edges:
            return self._edges[key]

        edge = CodeEdge(
            id=key,
            kind=kind,
            source=source,
            target=target,
            resolved=resolved,
            line=line,
            specifier=specifier,
        )
        self._edges[key] = edge
        return edge

    def skip(self, error: FileError) -> None:
        logger.warning("Skipped %s: %s", error.file_path, error.message)
        self._skipped.append(error)

    def build(self) -> CodeGraphSchema:
        """Freeze the collected data into a schema."""
        return CodeGraphSchema(
            nodes=tuple(self._nodes.values()),
            edges=tuple(self._edges.values()),
            language=self.language,
            root_path=self.root_path,
            parsed_at=datetime.now(timezone.utc).isoformat(),
            parser_version=PARSER_VERSION,
            skipped_files=tuple(sorted(self._skipped, key=lambda e: e.file_path)),
        )
