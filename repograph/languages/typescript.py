"""TypeScript/JavaScript backend built on tree-sitter grammars."""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language as TSLanguage
from tree_sitter import Node, Parser

from repograph.core.builder import GraphBuilder, file_node
from repograph.core.exceptions import FileProcessingError
from repograph.core.models import (
    CodeGraphSchema,
    CodeNode,
    EdgeKind,
    FileError,
    Language,
    NodeKind,
    ParseOptions,
)
from repograph.core.walker import WalkRules, discover_files, in_dependency_dir, to_relative
from repograph.languages.base import Availability, ProgressCallback, raise_if_cancelled
from repograph.languages.models import (
    FileExtraction,
    ImportBinding,
    ParsedReference,
    ParsedSymbol,
    symbol_node_id,
)

logger = logging.getLogger(__name__)

_GRAMMAR_BY_EXTENSION = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

# Order in which extensionless specifiers are completed.
RESOLVE_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs")

_JS_TO_TS = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}

TSCONFIG_NAMES = ("tsconfig.json", "tsconfig.app.json", "tsconfig.build.json", "jsconfig.json")

RULES = WalkRules(
    extensions=frozenset(_GRAMMAR_BY_EXTENSION),
    exclude_dirs=frozenset({"dist", "build", "coverage"}),
    dependency_dirs=frozenset({"node_modules"}),
    exclude_files=("*.d.ts", "*.d.mts", "*.d.cts"),
    test_dirs=frozenset({"test", "tests", "__tests__"}),
    test_files=("*.test.*", "*.spec.*"),
)

_FUNCTION_VALUES = frozenset({"arrow_function", "function_expression", "function"})
_CLASS_DECLARATIONS = frozenset({"class_declaration", "abstract_class_declaration"})
_NAMESPACE_DECLARATIONS = frozenset({"internal_module", "module"})
_GENERIC_ARGS = re.compile(r"<.*>", re.S)
_JSONC_TOKENS = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', re.S)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def _create_parsers() -> dict[str, Parser]:
    return {
        "typescript": Parser(TSLanguage(tree_sitter_typescript.language_typescript())),
        "tsx": Parser(TSLanguage(tree_sitter_typescript.language_tsx())),
        "javascript": Parser(TSLanguage(tree_sitter_javascript.language())),
    }


def language_for_path(path: str) -> Language:
    """TypeScript for .ts-family files, JavaScript otherwise."""
    suffix = os.path.splitext(path)[1].lower()
    if suffix in (".ts", ".tsx", ".mts", ".cts"):
        return Language.TYPESCRIPT
    return Language.JAVASCRIPT


def _text(node: Node) -> str:
    return (node.text or b"").decode("utf-8", errors="replace")


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _end_line(node: Node) -> int:
    return node.end_point[0] + 1


def _named(node: Node) -> list[Node]:
    """Named children without comments."""
    return [child for child in node.named_children if child.type != "comment"]


def _has_token(node: Node, token: str) -> bool:
    return any(not child.is_named and child.type == token for child in node.children)


def _string_value(node: Node | None) -> str | None:
    if node is None or node.type not in ("string", "template_string"):
        return None
    text = _text(node)
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return None


def _type_name(node: Node) -> str:
    """Name of a heritage type with generic arguments stripped."""
    if node.type == "generic_type":
        name = node.child_by_field_name("name")
        if name is not None:
            return _text(name)
    return "".join(_GENERIC_ARGS.sub("", _text(node)).split())


def _first_error_line(node: Node) -> int:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return _line(current)
        stack.extend(reversed([c for c in current.children if c.has_error or c.is_missing]))
    return _line(node)


class _TypeScriptExtractor:
    """Walks one syntax tree and collects declarations and references."""

    def __init__(self, extraction: FileExtraction) -> None:
        self.extraction = extraction
        self.default_export: str | None = None

    def extract(self, root: Node) -> None:
        for child in _named(root):
            self._visit_statement(child, namespace=None, exported=False)
        self._collect_calls(root)

    def _visit_statement(self, node: Node, namespace: str | None, exported: bool) -> None:
        kind = node.type
        if kind == "import_statement":
            self._visit_import(node)
        elif kind == "export_statement":
            self._visit_export(node, namespace)
        elif kind in _CLASS_DECLARATIONS:
            self._visit_class(node, namespace, exported)
        elif kind == "interface_declaration":
            self._visit_interface(node, namespace, exported)
        elif kind == "enum_declaration":
            self._add_named(node, NodeKind.ENUM, namespace, exported)
        elif kind in ("function_declaration", "generator_function_declaration"):
            if exported:
                self._add_named(node, NodeKind.FUNCTION, namespace, exported)
        elif kind in ("lexical_declaration", "variable_declaration"):
            if exported:
                self._visit_variables(node, namespace)
        elif kind in _NAMESPACE_DECLARATIONS:
            self._visit_namespace(node, namespace, exported)
        elif kind in ("expression_statement", "ambient_declaration"):
            for child in _named(node):
                self._visit_statement(child, namespace, exported)

    def _add_symbol(
        self, name: str, kind: NodeKind, node: Node, namespace: str | None, exported: bool
    ) -> str:
        qualified = f"{namespace}.{name}" if namespace else name
        self.extraction.symbols.append(
            ParsedSymbol(
                name=name,
                kind=kind,
                line=_line(node),
                end_line=_end_line(node),
                qualified_name=qualified,
                namespace=namespace,
                exported=exported,
            )
        )
        return qualified

    def _add_named(
        self, node: Node, kind: NodeKind, namespace: str | None, exported: bool
    ) -> str | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        return self._add_symbol(_text(name_node), kind, node, namespace, exported)

    def _add_reference(
        self,
        kind: EdgeKind,
        specifier: str,
        node: Node,
        source_symbol: str | None = None,
        type_only: bool = False,
    ) -> None:
        self.extraction.references.append(
            ParsedReference(
                kind=kind,
                specifier=specifier,
                line=_line(node),
                source_symbol=source_symbol,
                type_only=type_only,
            )
        )

    def _visit_import(self, node: Node) -> None:
        """Handle: import x from "m", import {a as b} from "m", import * as ns, import "m"."""
        source = _string_value(node.child_by_field_name("source"))
        type_only = _has_token(node, "type")

        if source is None:
            # import x = require("m")
            for child in _named(node):
                if child.type == "import_require_clause":
                    source = _string_value(child.child_by_field_name("source"))
                    local = child.child_by_field_name("name") or next(
                        (c for c in _named(child) if c.type == "identifier"), None
                    )
                    if source is not None and local is not None:
                        self._bind(_text(local), "*", source)
        if source is None:
            return

        specifiers = 0
        type_specifiers = 0
        has_value_binding = False
        for clause in _named(node):
            if clause.type != "import_clause":
                continue
            for part in _named(clause):
                if part.type == "identifier":
                    self._bind(_text(part), "default", source)
                    has_value_binding = True
                elif part.type == "namespace_import":
                    local = next((c for c in _named(part) if c.type == "identifier"), None)
                    if local is not None:
                        self._bind(_text(local), "*", source)
                    has_value_binding = True
                elif part.type == "named_imports":
                    for spec in _named(part):
                        if spec.type != "import_specifier":
                            continue
                        name = spec.child_by_field_name("name")
                        alias = spec.child_by_field_name("alias")
                        if name is None:
                            continue
                        imported = _string_value(name) or _text(name)
                        self._bind(_text(alias) if alias else imported, imported, source)
                        specifiers += 1
                        if _has_token(spec, "type"):
                            type_specifiers += 1

        if specifiers and specifiers == type_specifiers and not has_value_binding:
            type_only = True
        self._add_reference(EdgeKind.IMPORTS, source, node, type_only=type_only)

    def _bind(self, local: str, imported: str, specifier: str) -> None:
        self.extraction.bindings.append(
            ImportBinding(local_name=local, imported_name=imported, specifier=specifier)
        )

    def _visit_export(self, node: Node, namespace: str | None) -> None:
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            before = len(self.extraction.symbols)
            self._visit_statement(declaration, namespace, exported=True)
            if _has_token(node, "default") and len(self.extraction.symbols) > before:
                self.default_export = self.extraction.symbols[before].qualified_name
            return

        source = _string_value(node.child_by_field_name("source"))
        if source is None:
            value = node.child_by_field_name("value")
            if value is not None and value.type == "identifier" and _has_token(node, "default"):
                # export default Foo;
                self.default_export = _text(value)
            return

        type_only = _has_token(node, "type")
        clause = next((c for c in _named(node) if c.type == "export_clause"), None)
        if clause is not None:
            specs = [c for c in _named(clause) if c.type == "export_specifier"]
            if specs and all(_has_token(s, "type") for s in specs):
                type_only = True
            for spec in specs:
                name = spec.child_by_field_name("name")
                alias = spec.child_by_field_name("alias")
                if name is None:
                    continue
                exported = _string_value(name) or _text(name)
                self._re_export(_text(alias) if alias else exported, exported, source)
        else:
            # export * from "m", export * as ns from "m"
            ns = next((c for c in _named(node) if c.type == "namespace_export"), None)
            names = _named(ns) if ns is not None else []
            exported = (_string_value(names[0]) or _text(names[0])) if names else "*"
            self._re_export(exported, "*", source)
        self._add_reference(EdgeKind.EXPORTS, source, node, type_only=type_only)

    def _re_export(self, exported: str, original: str, specifier: str) -> None:
        self.extraction.re_exports.append(
            ImportBinding(local_name=exported, imported_name=original, specifier=specifier)
        )

    def _visit_class(self, node: Node, namespace: str | None, exported: bool) -> None:
        name = self._add_named(node, NodeKind.CLASS, namespace, exported)
        if name is None:
            return

        for child in _named(node):
            if child.type != "class_heritage":
                continue
            for clause in _named(child):
                if clause.type == "extends_clause":
                    for value in _named(clause):
                        if value.type != "type_arguments":
                            self._add_reference(
                                EdgeKind.EXTENDS, _type_name(value), clause, source_symbol=name
                            )
                elif clause.type == "implements_clause":
                    for value in _named(clause):
                        self._add_reference(
                            EdgeKind.IMPLEMENTS, _type_name(value), clause, source_symbol=name
                        )
                else:
                    # javascript grammar: class_heritage holds the expression directly
                    self._add_reference(
                        EdgeKind.EXTENDS, _type_name(clause), child, source_symbol=name
                    )

    def _visit_interface(self, node: Node, namespace: str | None, exported: bool) -> None:
        name = self._add_named(node, NodeKind.INTERFACE, namespace, exported)
        if name is None:
            return

        for child in _named(node):
            if child.type not in ("extends_type_clause", "extends_clause"):
                continue
            for value in _named(child):
                if value.type != "type_arguments":
                    self._add_reference(
                        EdgeKind.EXTENDS, _type_name(value), child, source_symbol=name
                    )

    def _visit_variables(self, node: Node, namespace: str | None) -> None:
        """Handle: export const handler = () => {}"""
        for declarator in _named(node):
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if name is None or value is None or name.type != "identifier":
                continue
            if value.type in _FUNCTION_VALUES:
                self._add_symbol(_text(name), NodeKind.FUNCTION, declarator, namespace, True)

    def _visit_namespace(self, node: Node, namespace: str | None, exported: bool) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.type == "string":
            # declare module "x" augments a package and declares nothing local
            return
        name = _text(name_node)
        self._add_symbol(name, NodeKind.MODULE, node, namespace, exported)

        body = node.child_by_field_name("body")
        if body is None:
            return
        inner = f"{namespace}.{name}" if namespace else name
        for child in _named(body):
            self._visit_statement(child, inner, exported=False)

    def _collect_calls(self, root: Node) -> None:
        """Handle: require("m") and import("m") anywhere in the file."""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                function = node.child_by_field_name("function")
                arguments = node.child_by_field_name("arguments")
                if (
                    function is not None
                    and arguments is not None
                    and (function.type == "import" or _text(function) == "require")
                ):
                    args = _named(arguments)
                    spec = _string_value(args[0]) if len(args) == 1 else None
                    if spec is not None:
                        self._add_reference(EdgeKind.IMPORTS, spec, node)
            stack.extend(reversed(node.children))


@dataclass
class CompilerOptions:
    """The parts of a tsconfig that affect module resolution."""

    base_url: Path | None = None
    paths: dict[str, list[str]] = field(default_factory=dict)
    paths_base: Path | None = None


def _read_jsonc(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    text = _JSONC_TOKENS.sub(lambda m: m.group(1) or "", text)
    text = _TRAILING_COMMA.sub(r"\1", text)
    data = json.loads(text)
    return data if isinstance(data, dict) else {}


def _load_config_chain(path: Path, seen: set[Path]) -> CompilerOptions:
    resolved = path.resolve()
    if resolved in seen:
        return CompilerOptions()
    seen.add(resolved)

    data = _read_jsonc(path)
    options = CompilerOptions()

    parents = data.get("extends")
    if isinstance(parents, str):
        parents = [parents]
    for parent in parents or []:
        if not isinstance(parent, str) or not parent.startswith("."):
            continue
        parent_path = (path.parent / parent).resolve()
        if parent_path.suffix != ".json":
            parent_path = parent_path.with_name(parent_path.name + ".json")
        if parent_path.is_file():
            inherited = _load_config_chain(parent_path, seen)
            options.base_url = inherited.base_url or options.base_url
            if inherited.paths:
                options.paths = inherited.paths
                options.paths_base = inherited.paths_base

    compiler = data.get("compilerOptions") or {}
    base_url = compiler.get("baseUrl")
    if isinstance(base_url, str):
        options.base_url = (path.parent / base_url).resolve()
    paths = compiler.get("paths")
    if isinstance(paths, dict):
        options.paths = {
            str(k): [str(t) for t in v] for k, v in paths.items() if isinstance(v, list)
        }
        options.paths_base = options.base_url or path.parent.resolve()
    return options


def load_compiler_options(root: Path) -> CompilerOptions:
    """Read module-resolution settings from the project's tsconfig/jsconfig."""
    for name in TSCONFIG_NAMES:
        config = root / name
        if not config.is_file():
            continue
        try:
            options = _load_config_chain(config, set())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %s", config, e)
            return CompilerOptions()
        if options.base_url is not None and not options.paths_base:
            options.paths_base = options.base_url
        return options
    return CompilerOptions()


class ModuleResolver:
    """Maps import specifiers to repository files.

    Order: relative to the importing file, then tsconfig ``paths`` aliases,
    then ``baseUrl``. Anything else is left unresolved.
    """

    def __init__(self, root: Path, options: ParseOptions, compiler: CompilerOptions) -> None:
        self._root = root
        self._root_str = str(root)
        self._options = options
        self._compiler = compiler
        self._cache: dict[tuple[str, str], str | None] = {}

    def resolve(self, specifier: str, from_rel: str) -> str | None:
        """Return the repository-relative path the specifier points at, or None."""
        from_dir = os.path.dirname(from_rel)
        key = (specifier, from_dir)
        if key not in self._cache:
            self._cache[key] = self._resolve(specifier, from_dir)
        return self._cache[key]

    def _resolve(self, specifier: str, from_dir: str) -> str | None:
        if specifier in (".", "..") or specifier.startswith(("./", "../")):
            return self._try_path(self._root / from_dir / specifier)
        if specifier.startswith("/"):
            return None

        for target in self._alias_targets(specifier):
            found = self._try_path(target)
            if found is not None:
                return found

        if self._compiler.base_url is not None:
            return self._try_path(self._compiler.base_url / specifier)
        return None

    def _alias_targets(self, specifier: str) -> list[Path]:
        paths = self._compiler.paths
        base = self._compiler.paths_base
        if not paths or base is None:
            return []

        if specifier in paths:
            return [base / target for target in paths[specifier]]

        best: tuple[int, list[str], str] | None = None
        for pattern, targets in paths.items():
            if pattern.count("*") != 1:
                continue
            prefix, suffix = pattern.split("*")
            if (
                specifier.startswith(prefix)
                and specifier.endswith(suffix)
                and len(specifier) >= len(prefix) + len(suffix)
            ):
                captured = specifier[len(prefix) : len(specifier) - len(suffix)]
                if best is None or len(prefix) > best[0]:
                    best = (len(prefix), targets, captured)

        if best is None:
            return []
        _, targets, captured = best
        return [base / target.replace("*", captured) for target in targets]

    def _candidates(self, path: Path) -> list[Path]:
        candidates: list[Path] = []
        suffix = path.suffix.lower()
        if suffix in _GRAMMAR_BY_EXTENSION:
            candidates.append(path)
        candidates.extend(Path(str(path) + ext) for ext in RESOLVE_EXTENSIONS)
        for ext in _JS_TO_TS.get(suffix, ()):
            candidates.append(path.with_suffix(ext))
        candidates.extend(path / f"index{ext}" for ext in RESOLVE_EXTENSIONS)
        return candidates

    def _try_path(self, path: Path) -> str | None:
        for candidate in self._candidates(path):
            normalized = os.path.normpath(candidate)
            if not normalized.startswith(self._root_str + os.sep):
                continue
            if not os.path.isfile(normalized):
                continue
            rel = Path(os.path.relpath(normalized, self._root_str)).as_posix()
            if not self._options.include_node_modules and in_dependency_dir(rel, RULES):
                return None
            return rel
        return None


class TypeScriptBackend:
    """In-process backend for TypeScript and JavaScript projects."""

    def __init__(self, language: Language = Language.TYPESCRIPT) -> None:
        self.language = language

    def probe(self, root: Path) -> Availability:
        """The grammars ship with the package, so this backend is always available."""
        return Availability(available=True, runtime="tree-sitter")

    def parse(
        self,
        root: Path,
        options: ParseOptions,
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> CodeGraphSchema:
        """Parse every source file, then resolve imports and heritage clauses.

        Extraction of all files completes before any resolution happens, so
        the result does not depend on file order.
        """
        root = root.resolve()
        parsers = _create_parsers()
        files = discover_files(root, RULES, options)
        builder = GraphBuilder(str(root), self.language)
        extractions: list[tuple[FileExtraction, str | None]] = []

        for i, file in enumerate(files, start=1):
            raise_if_cancelled(cancel)
            rel_path = to_relative(root, file)
            try:
                extractions.append(self._extract_file(parsers, file, rel_path))
            except FileProcessingError as e:
                builder.skip(FileError(rel_path, e.message))
            if on_progress:
                on_progress(file, i, len(files))

        resolver = ModuleResolver(root, options, load_compiler_options(root))
        _GraphAssembler(builder, resolver, options).assemble(extractions)
        return builder.build()

    def parse_file(self, file: Path, rel_path: str) -> FileExtraction:
        """Extract declarations and references from a single file."""
        extraction, _ = self._extract_file(_create_parsers(), file, rel_path)
        return extraction

    def _extract_file(
        self, parsers: dict[str, Parser], file: Path, rel_path: str
    ) -> tuple[FileExtraction, str | None]:
        grammar = _GRAMMAR_BY_EXTENSION.get(file.suffix.lower())
        if grammar is None:
            raise FileProcessingError(rel_path, "Unsupported file type")
        try:
            source = file.read_bytes()
            source.decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileProcessingError(rel_path, f"Cannot read file: {e}") from e

        tree = parsers[grammar].parse(source)
        if tree.root_node.has_error:
            line = _first_error_line(tree.root_node)
            raise FileProcessingError(rel_path, f"Syntax error near line {line}")

        extraction = FileExtraction(
            file=file, rel_path=rel_path, language=language_for_path(rel_path)
        )
        extractor = _TypeScriptExtractor(extraction)
        extractor.extract(tree.root_node)
        return extraction, extractor.default_export


class _GraphAssembler:
    """Turns extractions into nodes and resolved edges."""

    def __init__(
        self, builder: GraphBuilder, resolver: ModuleResolver, options: ParseOptions
    ) -> None:
        self._builder = builder
        self._resolver = resolver
        self._options = options
        self._symbols: dict[str, set[str]] = {}
        self._defaults: dict[str, str] = {}
        self._by_name: dict[str, list[str]] = {}
        self._re_exports: dict[str, list[ImportBinding]] = {}

    def assemble(self, extractions: list[tuple[FileExtraction, str | None]]) -> None:
        for extraction, default_export in extractions:
            self._add_nodes(extraction, default_export)
        for extraction, _ in extractions:
            self._add_module_edges(extraction)
        for extraction, _ in extractions:
            self._add_heritage_edges(extraction)

    def _add_nodes(self, extraction: FileExtraction, default_export: str | None) -> None:
        rel_path = extraction.rel_path
        self._builder.add_node(file_node(rel_path, extraction.language))
        names = self._symbols.setdefault(rel_path, set())
        self._re_exports[rel_path] = extraction.re_exports
        if default_export:
            self._defaults[rel_path] = default_export

        for symbol in extraction.symbols:
            node_id = symbol_node_id(rel_path, symbol.qualified_name)
            added = self._builder.add_node(
                CodeNode(
                    id=node_id,
                    kind=symbol.kind,
                    name=symbol.name,
                    display_name=symbol.qualified_name,
                    file_path=rel_path,
                    language=extraction.language,
                    line=symbol.line,
                    end_line=symbol.end_line,
                    namespace=symbol.namespace,
                    exported=symbol.exported,
                )
            )
            if added:
                names.add(symbol.qualified_name)
                self._by_name.setdefault(symbol.name, []).append(node_id)

    def _ensure_file_node(self, rel_path: str) -> None:
        if not self._builder.has_node(rel_path):
            self._builder.add_node(file_node(rel_path, language_for_path(rel_path)))

    def _add_module_edges(self, extraction: FileExtraction) -> None:
        for ref in extraction.references:
            if ref.kind not in (EdgeKind.IMPORTS, EdgeKind.EXPORTS):
                continue
            if ref.type_only and not self._options.include_type_imports:
                continue
            target = self._resolver.resolve(ref.specifier, extraction.rel_path)
            if target is not None:
                self._ensure_file_node(target)
            self._builder.add_edge(
                ref.kind, extraction.rel_path, target, specifier=ref.specifier, line=ref.line
            )

    def _add_heritage_edges(self, extraction: FileExtraction) -> None:
        bindings = {b.local_name: b for b in extraction.bindings}
        for ref in extraction.references:
            if ref.kind not in (EdgeKind.EXTENDS, EdgeKind.IMPLEMENTS) or not ref.source_symbol:
                continue
            source = symbol_node_id(extraction.rel_path, ref.source_symbol)
            scope = ref.source_symbol.rpartition(".")[0]
            target = self._resolve_symbol(extraction.rel_path, ref.specifier, scope, bindings)
            self._builder.add_edge(
                ref.kind, source, target, specifier=ref.specifier, line=ref.line
            )

    def _resolve_local(self, rel_path: str, name: str, scope: str) -> str | None:
        """Look ``name`` up from ``scope`` outwards through enclosing namespaces."""
        declared = self._symbols.get(rel_path, ())
        parts = scope.split(".") if scope else []
        while True:
            candidate = ".".join([*parts, name])
            if candidate in declared:
                return symbol_node_id(rel_path, candidate)
            if not parts:
                return None
            parts.pop()

    def _unique(self, name: str) -> str | None:
        candidates = sorted(self._by_name.get(name, []))
        return candidates[0] if len(candidates) == 1 else None

    def _resolve_symbol(
        self, rel_path: str, name: str, scope: str, bindings: dict[str, ImportBinding]
    ) -> str | None:
        local = self._resolve_local(rel_path, name, scope)
        if local is not None:
            return local

        head, _, rest = name.partition(".")
        binding = bindings.get(head)
        if binding is None:
            return None if rest else self._unique(name)

        target_file = self._resolver.resolve(binding.specifier, rel_path)
        if target_file is None:
            return None

        if binding.imported_name == "*":
            if not rest:
                return None
            wanted = rest
        elif rest:
            return None
        elif binding.imported_name == "default":
            # anonymous default export: fall back to the local name
            wanted = self._defaults.get(target_file, name)
        else:
            wanted = binding.imported_name

        found = self._find_export(target_file, wanted, set())
        if found is None and "." not in wanted:
            found = self._unique(wanted)
        return found

    def _find_export(self, rel_path: str, wanted: str, seen: set[str]) -> str | None:
        """Find the declaration ``rel_path`` exports as ``wanted``, following re-exports."""
        if rel_path in seen:
            return None
        seen.add(rel_path)

        if wanted == "default":
            wanted = self._defaults.get(rel_path, wanted)
        if wanted in self._symbols.get(rel_path, ()):
            return symbol_node_id(rel_path, wanted)

        head, _, rest = wanted.partition(".")
        for entry in self._re_exports.get(rel_path, ()):
            if entry.local_name == "*":
                original = wanted
            elif entry.local_name == head and entry.imported_name == "*" and rest:
                # export * as ns from "m"
                original = rest
            elif entry.local_name == wanted and entry.imported_name != "*":
                original = entry.imported_name
            else:
                continue
            target = self._resolver.resolve(entry.specifier, rel_path)
            if target is None:
                continue
            found = self._find_export(target, original, seen)
            if found is not None:
                return found
        return None
