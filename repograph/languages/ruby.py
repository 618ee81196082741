"""Ruby backend driving the ``parser`` gem through the bundled extractor script."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Any

from repograph import config
from repograph.core.builder import GraphBuilder, file_node
from repograph.core.models import CodeNode, EdgeKind, Language, NodeKind, ParseOptions
from repograph.core.walker import WalkRules
from repograph.languages.base import Availability
from repograph.languages.models import (
    FileExtraction,
    ParsedReference,
    ParsedSymbol,
    symbol_node_id,
)
from repograph.languages.process_pool import run_process
from repograph.languages.subprocess_backend import SubprocessBackend

logger = logging.getLogger(__name__)

SCRIPT_NAME = "ruby_extract.rb"

RULES = WalkRules(
    extensions=frozenset({".rb"}),
    exclude_dirs=frozenset({"node_modules", "tmp", "log", "coverage", "db", "config"}),
    dependency_dirs=frozenset({"vendor", ".bundle"}),
    test_dirs=frozenset({"spec", "test"}),
    test_files=("*_spec.rb", "*_test.rb"),
)

RUBY_HINT = (
    "Install Ruby and make sure `ruby` is on PATH, "
    "or point REPOGRAPH_RUBY_BINARY at the interpreter."
)
PARSER_GEM_HINT = "Run `gem install parser`."

# Directories ``require`` is resolved against, in order.
LOAD_PATH = ("lib", "")


def is_ruby_available() -> bool:
    """Check whether the Ruby interpreter can be started."""
    outcome = run_process([config.RUBY_BINARY, "--version"], config.PROBE_TIMEOUT)
    if not outcome.ok:
        logger.debug("Ruby probe failed: %s", outcome.describe())
    return outcome.ok


def has_parser_gem() -> bool:
    """Check whether the ``parser`` gem can be required."""
    outcome = run_process(
        [config.RUBY_BINARY, "-e", "require 'parser/current'"], config.PROBE_TIMEOUT
    )
    return outcome.ok


def _with_extension(path: str) -> str:
    return path if path.endswith(".rb") else f"{path}.rb"


class ConstantIndex:
    """Looks up constant paths the way Ruby's lexical scoping does."""

    def __init__(self) -> None:
        self._by_path: dict[str, list[str]] = {}
        self._by_name: dict[str, set[str]] = {}

    def add(self, qualified: str, node_id: str) -> None:
        self._by_path.setdefault(qualified, []).append(node_id)
        self._by_name.setdefault(qualified.rsplit("::", 1)[-1], set()).add(qualified)

    def _pick(self, qualified: str, rel_path: str) -> str:
        # A reopened class has one node per file; prefer the local one.
        node_ids = self._by_path[qualified]
        local = symbol_node_id(rel_path, qualified)
        return local if local in node_ids else sorted(node_ids)[0]

    def resolve(self, name: str, scope: str | None, rel_path: str) -> str | None:
        """Resolve ``name`` referenced inside ``scope`` (a constant path or None)."""
        if name.startswith("::"):
            absolute = name[2:]
            return self._pick(absolute, rel_path) if absolute in self._by_path else None

        parts = scope.split("::") if scope else []
        while True:
            candidate = "::".join([*parts, name])
            if candidate in self._by_path:
                return self._pick(candidate, rel_path)
            if not parts:
                break
            parts.pop()

        paths = self._by_name.get(name.rsplit("::", 1)[-1], set())
        if len(paths) == 1:
            return self._pick(next(iter(paths)), rel_path)
        return None


class RubyBackend(SubprocessBackend):
    """Builds the graph of a Ruby project out of process."""

    language = Language.RUBY
    rules = RULES

    @property
    def script(self) -> Path:
        return config.SCRIPTS_DIR / SCRIPT_NAME

    def _probe(self, root: Path) -> Availability:
        if not is_ruby_available():
            return Availability(available=False, runtime="Ruby", hint=RUBY_HINT)
        if not has_parser_gem():
            return Availability(available=False, runtime="parser gem", hint=PARSER_GEM_HINT)
        if not self.script.is_file():
            return Availability(
                available=False,
                runtime="repograph Ruby extractor",
                hint=f"Reinstall repograph; {self.script} is missing.",
            )
        return Availability(available=True, runtime="Ruby")

    def command(self, root: Path, files: list[Path]) -> list[str]:
        return [config.RUBY_BINARY, str(self.script), *map(str, files)]

    def read_entry(self, file: Path, rel_path: str, entry: dict[str, Any]) -> FileExtraction:
        extraction = FileExtraction(file=file, rel_path=rel_path, language=Language.RUBY)
        for require in entry.get("requires") or []:
            extraction.references.append(
                ParsedReference(
                    kind=EdgeKind.IMPORTS,
                    specifier=require["specifier"],
                    line=require.get("line"),
                    relative=require.get("method") == "require_relative",
                )
            )

        for decl in entry.get("declarations") or []:
            qualified = decl["qualifiedName"]
            extraction.symbols.append(
                ParsedSymbol(
                    name=decl["name"],
                    kind=NodeKind.CLASS if decl["kind"] == "class" else NodeKind.MODULE,
                    line=decl["line"],
                    end_line=decl.get("endLine"),
                    qualified_name=qualified,
                    namespace=decl.get("namespace") or None,
                )
            )
            if decl.get("superclass"):
                extraction.references.append(
                    ParsedReference(
                        EdgeKind.EXTENDS, decl["superclass"], decl["line"], source_symbol=qualified
                    )
                )
            for mixin in decl.get("mixins") or []:
                extraction.references.append(
                    ParsedReference(
                        EdgeKind.INCLUDES, mixin["name"], mixin.get("line"), source_symbol=qualified
                    )
                )
        return extraction

    def assemble(
        self,
        builder: GraphBuilder,
        root: Path,
        extractions: list[FileExtraction],
        options: ParseOptions,
    ) -> None:
        constants = ConstantIndex()
        namespaces: dict[str, str | None] = {}

        for extraction in extractions:
            builder.add_node(file_node(extraction.rel_path, Language.RUBY))
            for symbol in extraction.symbols:
                node_id = symbol_node_id(extraction.rel_path, symbol.qualified_name)
                added = builder.add_node(
                    CodeNode(
                        id=node_id,
                        kind=symbol.kind,
                        name=symbol.name,
                        display_name=symbol.qualified_name,
                        file_path=extraction.rel_path,
                        language=Language.RUBY,
                        line=symbol.line,
                        end_line=symbol.end_line,
                        namespace=symbol.namespace,
                        exported=True,
                    )
                )
                if added:
                    constants.add(symbol.qualified_name, node_id)
                    namespaces[node_id] = symbol.namespace

        for extraction in extractions:
            rel_path = extraction.rel_path
            for ref in extraction.references:
                if ref.kind == EdgeKind.IMPORTS:
                    target = self._resolve_require(builder, root, rel_path, ref, options)
                    builder.add_edge(
                        ref.kind, rel_path, target, specifier=ref.specifier, line=ref.line
                    )
                    continue

                source = symbol_node_id(rel_path, ref.source_symbol or "")
                if ref.kind == EdgeKind.EXTENDS:
                    # The superclass is looked up outside the class body.
                    scope = namespaces.get(source)
                else:
                    scope = ref.source_symbol
                target = constants.resolve(ref.specifier, scope, rel_path)
                builder.add_edge(ref.kind, source, target, specifier=ref.specifier, line=ref.line)

    def _resolve_require(
        self,
        builder: GraphBuilder,
        root: Path,
        rel_path: str,
        ref: ParsedReference,
        options: ParseOptions,
    ) -> str | None:
        if ref.relative:
            candidate = posixpath.join(posixpath.dirname(rel_path), _with_extension(ref.specifier))
            return self.add_file_if_present(builder, root, candidate, options)
        for base in LOAD_PATH:
            candidate = posixpath.join(base, _with_extension(ref.specifier))
            found = self.add_file_if_present(builder, root, candidate, options)
            if found is not None:
                return found
        return None
