"""PHP backend driving nikic/php-parser through the bundled extractor script."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from repograph import config
from repograph.core.builder import GraphBuilder, file_node, normalize_specifier
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

SCRIPT_NAME = "php_extract.php"
PARSER_PACKAGE = "nikic/php-parser"

RULES = WalkRules(
    extensions=frozenset({".php"}),
    exclude_dirs=frozenset(
        {"node_modules", "storage", "cache", "database", "resources", "public", "bootstrap"}
    ),
    dependency_dirs=frozenset({"vendor"}),
    test_dirs=frozenset({"tests"}),
    test_files=("*Test.php",),
)

_KINDS = {
    "class": NodeKind.CLASS,
    "interface": NodeKind.INTERFACE,
    "trait": NodeKind.TRAIT,
    "enum": NodeKind.ENUM,
}

PHP_HINT = (
    "Install PHP 8 and make sure `php` is on PATH, "
    "or point REPOGRAPH_PHP_BINARY at the interpreter."
)
PARSER_HINT = (
    f"Run `composer global require {PARSER_PACKAGE}`, or set REPOGRAPH_PHP_AUTOLOAD "
    "to a vendor/autoload.php that provides it."
)


def is_php_available() -> bool:
    """Check whether the PHP interpreter can be started."""
    outcome = run_process([config.PHP_BINARY, "--version"], config.PROBE_TIMEOUT)
    if not outcome.ok:
        logger.debug("PHP probe failed: %s", outcome.describe())
    return outcome.ok


def _php_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _provides_parser(autoload: Path) -> bool:
    if not autoload.is_file():
        return False
    code = (
        f"require {_php_string(str(autoload))}; "
        "exit(class_exists('PhpParser\\ParserFactory') ? 0 : 1);"
    )
    return run_process([config.PHP_BINARY, "-r", code], config.PROBE_TIMEOUT).ok


def _autoload_candidates(repo_path: Path | None) -> list[Path]:
    candidates: list[Path] = []
    if config.PHP_AUTOLOAD:
        candidates.append(Path(config.PHP_AUTOLOAD).expanduser())
    if repo_path is not None:
        lock = repo_path / "composer.lock"
        if lock.is_file() and PARSER_PACKAGE in lock.read_text(encoding="utf-8", errors="replace"):
            candidates.append(repo_path / "vendor" / "autoload.php")
    for home in config.COMPOSER_HOMES:
        if home is not None:
            candidates.append(home / "vendor" / "autoload.php")
    return candidates


def find_php_parser_autoload(repo_path: Path | None = None) -> Path | None:
    """Locate an autoloader that provides ``PhpParser\\ParserFactory``.

    Looks at REPOGRAPH_PHP_AUTOLOAD, then the repository's own vendor
    directory (only when its composer.lock pins the parser), then the
    global Composer homes.
    """
    seen: set[Path] = set()
    for candidate in _autoload_candidates(repo_path):
        if candidate in seen:
            continue
        seen.add(candidate)
        if _provides_parser(candidate):
            return candidate
    return None


def has_php_parser(repo_path: Path | None = None) -> bool:
    """Check whether nikic/php-parser can be loaded."""
    return find_php_parser_autoload(repo_path) is not None


def qualified_name(namespace: str | None, name: str) -> str:
    return f"{namespace}\\{name}" if namespace else name


def short_name(name: str) -> str:
    return normalize_specifier(name).rsplit("\\", 1)[-1]


class PhpBackend(SubprocessBackend):
    """Builds the graph of a PHP project out of process."""

    language = Language.PHP
    rules = RULES

    def __init__(self) -> None:
        super().__init__()
        self._autoload: Path | None = None

    @property
    def script(self) -> Path:
        return config.SCRIPTS_DIR / SCRIPT_NAME

    def _probe(self, root: Path) -> Availability:
        if not is_php_available():
            return Availability(available=False, runtime="PHP", hint=PHP_HINT)
        self._autoload = find_php_parser_autoload(root)
        if self._autoload is None:
            return Availability(available=False, runtime=PARSER_PACKAGE, hint=PARSER_HINT)
        if not self.script.is_file():
            return Availability(
                available=False,
                runtime="repograph PHP extractor",
                hint=f"Reinstall repograph; {self.script} is missing.",
            )
        logger.debug("Using php-parser autoloader %s", self._autoload)
        return Availability(available=True, runtime="PHP")

    def command(self, root: Path, files: list[Path]) -> list[str]:
        return [config.PHP_BINARY, str(self.script), str(self._autoload), *map(str, files)]

    def read_entry(self, file: Path, rel_path: str, entry: dict[str, Any]) -> FileExtraction:
        extraction = FileExtraction(file=file, rel_path=rel_path, language=Language.PHP)
        for use in entry.get("uses") or []:
            extraction.references.append(
                ParsedReference(kind=EdgeKind.IMPORTS, specifier=use["name"], line=use.get("line"))
            )

        for decl in entry.get("declarations") or []:
            kind = _KINDS.get(decl["kind"])
            if kind is None:
                continue
            name = decl["name"]
            namespace = decl.get("namespace") or None
            owner = qualified_name(namespace, name)
            line = decl["line"]
            extraction.symbols.append(
                ParsedSymbol(
                    name=name,
                    kind=kind,
                    line=line,
                    end_line=decl.get("endLine"),
                    qualified_name=owner,
                    namespace=namespace,
                )
            )
            for parent in decl.get("extends") or []:
                extraction.references.append(
                    ParsedReference(EdgeKind.EXTENDS, parent, line, source_symbol=owner)
                )
            for interface in decl.get("implements") or []:
                extraction.references.append(
                    ParsedReference(EdgeKind.IMPLEMENTS, interface, line, source_symbol=owner)
                )
            for trait in decl.get("traits") or []:
                extraction.references.append(
                    ParsedReference(
                        EdgeKind.INCLUDES, trait["name"], trait.get("line"), source_symbol=owner
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
        by_fqn: dict[str, str] = {}
        by_short: dict[str, set[str]] = {}
        # Declarations whose node was kept; a later one with the same short name is dropped.
        owners: dict[tuple[str, str], str] = {}

        for extraction in extractions:
            builder.add_node(file_node(extraction.rel_path, Language.PHP))
            for symbol in extraction.symbols:
                node_id = symbol_node_id(extraction.rel_path, symbol.name)
                added = builder.add_node(
                    CodeNode(
                        id=node_id,
                        kind=symbol.kind,
                        name=symbol.name,
                        display_name=symbol.qualified_name,
                        file_path=extraction.rel_path,
                        language=Language.PHP,
                        line=symbol.line,
                        end_line=symbol.end_line,
                        namespace=symbol.namespace,
                        exported=True,
                    )
                )
                if added:
                    # PHP class names are case-insensitive.
                    by_fqn.setdefault(symbol.qualified_name.casefold(), node_id)
                    by_short.setdefault(symbol.name.casefold(), set()).add(node_id)
                    owners[(extraction.rel_path, symbol.qualified_name)] = node_id
                else:
                    logger.debug(
                        "Duplicate declaration %s in %s ignored",
                        symbol.qualified_name,
                        extraction.rel_path,
                    )

        def resolve(name: str, allow_short: bool) -> str | None:
            fqn = normalize_specifier(name).casefold()
            if fqn in by_fqn:
                return by_fqn[fqn]
            if allow_short:
                matches = by_short.get(short_name(name).casefold(), set())
                if len(matches) == 1:
                    return next(iter(matches))
            return None

        for extraction in extractions:
            for ref in extraction.references:
                if ref.source_symbol is None:
                    source = extraction.rel_path
                    target = resolve(ref.specifier, allow_short=False)
                else:
                    owner = owners.get((extraction.rel_path, ref.source_symbol))
                    if owner is None:
                        continue
                    source = owner
                    target = resolve(ref.specifier, allow_short=True)
                builder.add_edge(
                    ref.kind,
                    source,
                    target,
                    specifier=normalize_specifier(ref.specifier),
                    line=ref.line,
                )
