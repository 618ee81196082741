"""
Language backends: Turn a repository into nodes and edges.

Components:
    - LanguageBackend: Protocol every backend satisfies
    - TypeScriptBackend: In-process tree-sitter backend for TypeScript and JavaScript
    - PhpBackend: Runs nikic/php-parser through a bundled PHP script
    - RubyBackend: Runs the parser gem through a bundled Ruby script

Every backend works in two phases: extract declarations and references from
all files first, then resolve references against the full set of declarations.

Adding a new language:
    1. Create a backend class implementing the LanguageBackend protocol
    2. Implement probe() to report missing runtimes with an install hint
    3. Route the language to it in repograph.core.dispatcher.backend_for
"""

from repograph.languages.base import Availability, LanguageBackend
from repograph.languages.php import PhpBackend, has_php_parser, is_php_available
from repograph.languages.ruby import RubyBackend, has_parser_gem, is_ruby_available
from repograph.languages.typescript import TypeScriptBackend

__all__ = [
    "Availability",
    "LanguageBackend",
    "PhpBackend",
    "RubyBackend",
    "TypeScriptBackend",
    "has_parser_gem",
    "has_php_parser",
    "is_php_available",
    "is_ruby_available",
]
