"""MCP server implementation for Repograph."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from repograph.core.dispatcher import detect_language_safe, parse_code_graph_safe
from repograph.core.models import ParseOptions
from repograph.core.stats import compute_stats
from repograph.languages.php import find_php_parser_autoload, is_php_available
from repograph.languages.ruby import has_parser_gem, is_ruby_available

logger = logging.getLogger(__name__)

server = Server("repograph")

_PATH_PROPERTY = {
    "type": "string",
    "description": "Repository root (default: current directory)",
}

_OPTIONS_PROPERTY = {
    "type": "object",
    "description": "Parse options",
    "properties": {
        "includeNodeModules": {"type": "boolean", "default": False},
        "includeTests": {"type": "boolean", "default": False},
        "includeTypeImports": {"type": "boolean", "default": False},
        "maxDepth": {"type": "integer", "default": 10},
        "excludePatterns": {"type": "array", "items": {"type": "string"}},
    },
}


def _repo_path(arguments: dict[str, Any]) -> Path:
    return Path(arguments.get("path") or Path.cwd())


@server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="repograph_parse",
            description=(
                "Parse a TypeScript, JavaScript, PHP or Ruby repository into a code graph. "
                "Returns nodes (files, classes, interfaces, modules...) and edges "
                "(imports, exports, extends, implements, includes)."
            ),
            inputSchema={
                "type": "object",
                "properties": {"path": _PATH_PROPERTY, "options": _OPTIONS_PROPERTY},
            },
        ),
        Tool(
            name="repograph_detect",
            description="Detect the primary language of a repository.",
            inputSchema={"type": "object", "properties": {"path": _PATH_PROPERTY}},
        ),
        Tool(
            name="repograph_probe",
            description=(
                "Check whether the PHP and Ruby runtimes and their parser libraries "
                "are installed."
            ),
            inputSchema={"type": "object", "properties": {"path": _PATH_PROPERTY}},
        ),
        Tool(
            name="repograph_stats",
            description="Parse a repository and return node and edge counts by kind.",
            inputSchema={
                "type": "object",
                "properties": {"path": _PATH_PROPERTY, "options": _OPTIONS_PROPERTY},
            },
        ),
    ]


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "repograph_parse":
            result = await asyncio.to_thread(_handle_parse, arguments)
        elif name == "repograph_detect":
            result = _handle_detect(arguments)
        elif name == "repograph_probe":
            result = await asyncio.to_thread(_handle_probe, arguments)
        elif name == "repograph_stats":
            result = await asyncio.to_thread(_handle_stats, arguments)
        else:
            result = {"success": False, "message": f"Unknown tool: {name}"}

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    except Exception as e:
        logger.exception("Tool %s failed", name)
        return [TextContent(type="text", text=json.dumps({"success": False, "message": str(e)}))]


def _handle_parse(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handle repograph_parse tool."""
    options = ParseOptions.from_dict(arguments.get("options"))
    return parse_code_graph_safe(_repo_path(arguments), options).to_dict()


def _handle_detect(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handle repograph_detect tool."""
    return detect_language_safe(_repo_path(arguments)).to_dict()


def _handle_probe(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handle repograph_probe tool."""
    php = is_php_available()
    autoload = find_php_parser_autoload(_repo_path(arguments).resolve()) if php else None
    ruby = is_ruby_available()
    return {
        "success": True,
        "data": {
            "phpAvailable": php,
            "phpParser": autoload is not None,
            "rubyAvailable": ruby,
            "parserGem": has_parser_gem() if ruby else False,
        },
    }


def _handle_stats(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handle repograph_stats tool."""
    options = ParseOptions.from_dict(arguments.get("options"))
    result = parse_code_graph_safe(_repo_path(arguments), options)
    if not result.success or result.data is None:
        return result.to_dict()
    return {
        "success": True,
        "data": {"language": result.data.language.value, **compute_stats(result.data).to_dict()},
    }


async def serve() -> None:
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
