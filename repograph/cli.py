"""CLI entry point for Repograph."""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from repograph.core.detector import detect_language, ensure_directory
from repograph.core.dispatcher import parse_code_graph
from repograph.core.exceptions import RepographError
from repograph.core.models import CodeGraphSchema, Language, ParseOptions
from repograph.core.stats import compute_stats
from repograph.languages.php import find_php_parser_autoload, is_php_available
from repograph.languages.ruby import has_parser_gem, is_ruby_available

app = typer.Typer(
    name="repograph",
    help="Code dependency graphs for TypeScript, JavaScript, PHP and Ruby projects.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

_MAX_SKIPPED_DISPLAY = 20


def configure_logging(verbose: bool) -> None:
    """Route library logging through rich when --verbose is given."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def fail(error: Exception) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {error}")
    return typer.Exit(code=1)


def run_parse(path: Path, options: ParseOptions) -> CodeGraphSchema:
    """Parse with a progress bar on stderr."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"Parsing [cyan]{path.name}[/]", total=None)

        def on_progress(file: Path, current: int, total: int) -> None:
            progress.update(task, total=total, completed=current)
            try:
                rel_path: Path | str = file.relative_to(path)
            except ValueError:
                rel_path = file.name
            progress.update(task, description=f"[cyan]{rel_path}[/]")

        return parse_code_graph(path, options, on_progress=on_progress)


@app.command()
def parse(
    path: Annotated[Path, typer.Argument(help="Repository root to parse")] = Path("."),
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write the schema JSON to a file")
    ] = None,
    include_node_modules: Annotated[
        bool, typer.Option("--include-node-modules", help="Parse dependency directories too")
    ] = False,
    include_tests: Annotated[
        bool, typer.Option("--include-tests", help="Parse test files too")
    ] = False,
    include_type_imports: Annotated[
        bool, typer.Option("--include-type-imports", help="Keep TypeScript type-only imports")
    ] = False,
    max_depth: Annotated[
        int, typer.Option("--max-depth", "-d", help="Maximum directory depth")
    ] = 10,
    exclude: Annotated[
        list[str] | None, typer.Option("--exclude", "-e", help="Patterns to exclude")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """Parse a repository and print its code graph as JSON."""
    configure_logging(verbose)
    options = ParseOptions(
        include_node_modules=include_node_modules,
        include_tests=include_tests,
        include_type_imports=include_type_imports,
        max_depth=max_depth,
        exclude_patterns=tuple(exclude or ()),
    )

    try:
        root = ensure_directory(path)
        schema = run_parse(root, options)
    except RepographError as e:
        raise fail(e) from e

    payload = json.dumps(schema.to_dict(), indent=2)
    if output is None:
        print(payload)
    else:
        output.write_text(payload + "\n", encoding="utf-8")
        err_console.print(f"[green]Done![/green] Wrote {output}")
        err_console.print(f"  Nodes: {len(schema.nodes)}")
        err_console.print(f"  Edges: {len(schema.edges)}")

    if schema.skipped_files:
        err_console.print(f"  [yellow]Skipped: {len(schema.skipped_files)} files[/yellow]")
        for error in schema.skipped_files[:_MAX_SKIPPED_DISPLAY]:
            err_console.print(f"    [dim]{error.file_path}: {error.message}[/]")
        if len(schema.skipped_files) > _MAX_SKIPPED_DISPLAY:
            remaining = len(schema.skipped_files) - _MAX_SKIPPED_DISPLAY
            err_console.print(f"    [dim]... and {remaining} more[/]")


@app.command()
def detect(
    path: Annotated[Path, typer.Argument(help="Repository root")] = Path("."),
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Detect the primary language of a repository."""
    try:
        language = detect_language(path)
    except RepographError as e:
        raise fail(e) from e

    if output_json:
        print(json.dumps({"language": language.value}))
    else:
        console.print(f"Language: [cyan]{language.value}[/cyan]")


@app.command()
def probe(
    path: Annotated[
        Path | None, typer.Argument(help="Repository whose vendor/ may provide php-parser")
    ] = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Check which external runtimes are available."""
    php = is_php_available()
    autoload = find_php_parser_autoload(path.resolve() if path else None) if php else None
    ruby = is_ruby_available()
    parser_gem = has_parser_gem() if ruby else False

    result = {
        Language.TYPESCRIPT.value: True,
        Language.JAVASCRIPT.value: True,
        "phpAvailable": php,
        "phpParser": autoload is not None,
        "phpParserAutoload": str(autoload) if autoload else None,
        "rubyAvailable": ruby,
        "parserGem": parser_gem,
    }

    if output_json:
        print(json.dumps(result))
        return

    def mark(ok: bool) -> str:
        return "[green]yes[/green]" if ok else "[red]no[/red]"

    console.print(f"TypeScript / JavaScript: {mark(True)}")
    console.print(f"PHP: {mark(php)}")
    console.print(f"  nikic/php-parser: {mark(autoload is not None)}")
    if autoload:
        console.print(f"  [dim]{autoload}[/]")
    console.print(f"Ruby: {mark(ruby)}")
    console.print(f"  parser gem: {mark(parser_gem)}")


@app.command()
def stats(
    path: Annotated[Path, typer.Argument(help="Repository root to parse")] = Path("."),
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Parse a repository and show graph statistics."""
    try:
        root = ensure_directory(path)
        schema = run_parse(root, ParseOptions())
    except RepographError as e:
        raise fail(e) from e

    result = compute_stats(schema)
    if output_json:
        print(json.dumps({"language": schema.language.value, **result.to_dict()}))
        return

    console.print(f"Language: [cyan]{schema.language.value}[/cyan]")
    console.print(f"Files: {result.total_files}")
    console.print(f"Nodes: {result.total_nodes}")
    for kind, count in result.nodes_by_kind.items():
        console.print(f"  {kind}: {count}")
    console.print(f"Edges: {result.total_edges}")
    for kind, count in result.edges_by_kind.items():
        console.print(f"  {kind}: {count}")
    console.print(f"Unresolved imports: {result.unresolved_imports}")
    if result.skipped_files:
        console.print(f"[yellow]Skipped files: {result.skipped_files}[/yellow]")


if __name__ == "__main__":
    app()
