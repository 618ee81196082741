"""
Repograph: Code dependency graphs for TypeScript, JavaScript, PHP and Ruby projects.

Repograph detects the language of a repository, parses its source files and
emits a normalized graph of files, declarations and their relationships
(imports, exports, inheritance, mixins), ready for a renderer to lay out.

Usage:
    from repograph.core.dispatcher import parse_code_graph

    schema = parse_code_graph(Path("."))
    print(len(schema.nodes), len(schema.edges))
"""

__version__ = "0.1.0"
