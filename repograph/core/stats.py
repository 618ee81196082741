"""Summary statistics for a parsed code graph."""

from __future__ import annotations

from collections import Counter

from repograph.core.models import CodeGraphSchema, CodeGraphStats, EdgeKind, NodeKind


def compute_stats(schema: CodeGraphSchema) -> CodeGraphStats:
    """Count nodes and edges by kind, unresolved imports and skipped files."""
    nodes_by_kind = Counter(node.kind.value for node in schema.nodes)
    edges_by_kind = Counter(edge.kind.value for edge in schema.edges)
    unresolved = sum(
        1 for edge in schema.edges if edge.kind == EdgeKind.IMPORTS and not edge.resolved
    )
    return CodeGraphStats(
        total_files=nodes_by_kind.get(NodeKind.FILE.value, 0),
        total_nodes=len(schema.nodes),
        total_edges=len(schema.edges),
        nodes_by_kind=dict(sorted(nodes_by_kind.items())),
        edges_by_kind=dict(sorted(edges_by_kind.items())),
        unresolved_imports=unresolved,
        skipped_files=len(schema.skipped_files),
    )
