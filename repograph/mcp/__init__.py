"""
MCP server for Repograph.

Exposes code graph construction to LLMs via the Model Context Protocol.

Tools:
    - repograph_parse: Parse a repository into a code graph
    - repograph_detect: Detect a repository's primary language
    - repograph_probe: Report which external runtimes are available
    - repograph_stats: Summarize a repository's code graph

Usage:
    Install: pip install repograph
    Run: repograph-mcp
"""

import asyncio

from repograph.mcp.server import serve as _serve


def serve() -> None:
    """Entry point for the MCP server."""
    asyncio.run(_serve())


__all__ = ["serve"]
