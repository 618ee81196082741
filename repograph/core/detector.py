"""Repository language detection."""

from __future__ import annotations

import logging
import os
from collections import Counter, deque
from pathlib import Path

from repograph.core.exceptions import MalformedProjectError
from repograph.core.models import Language, LanguageResult

logger = logging.getLogger(__name__)

CENSUS_MAX_DEPTH = 3

CENSUS_SKIP_DIRS = frozenset({"node_modules", "vendor", ".git", "dist", "build", "coverage"})

_CENSUS_EXTENSIONS = frozenset({"ts", "tsx", "js", "jsx", "php", "rb"})


def ensure_directory(repo_path: Path | str) -> Path:
    """Resolve a repository root, raising if it cannot be inspected."""
    root = Path(repo_path).expanduser()
    if not root.exists():
        raise MalformedProjectError(f"Directory not found: {repo_path}")
    if not root.is_dir():
        raise MalformedProjectError(f"Not a directory: {repo_path}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise MalformedProjectError(f"Directory is not readable: {repo_path}")
    return root.resolve()


def count_files_by_extension(root: Path, max_depth: int = CENSUS_MAX_DEPTH) -> Counter[str]:
    """Breadth-first count of source file extensions below ``root``."""
    counts: Counter[str] = Counter()
    queue: deque[tuple[Path, int]] = deque([(root, 0)])

    while queue:
        directory, depth = queue.popleft()
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            logger.debug("Census skipping %s: %s", directory, e)
            continue

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name not in CENSUS_SKIP_DIRS and depth < max_depth:
                        queue.append((Path(entry.path), depth + 1))
                elif entry.is_file():
                    ext = Path(entry.name).suffix.lower().lstrip(".")
                    if ext in _CENSUS_EXTENSIONS:
                        counts[ext] += 1
            except OSError:
                continue

    return counts


def language_from_counts(counts: Counter[str]) -> Language | None:
    """Pick the dominant language; ties resolve TypeScript > JavaScript > PHP > Ruby."""
    ts = counts["ts"] + counts["tsx"]
    js = counts["js"] + counts["jsx"]
    php = counts["php"]
    rb = counts["rb"]

    if ts > php and ts > rb:
        return Language.TYPESCRIPT
    if js > php and js > rb:
        return Language.JAVASCRIPT
    if php > rb:
        return Language.PHP
    if rb > 0:
        return Language.RUBY
    return None


def detect_language(repo_path: Path | str) -> Language:
    """Detect the primary language of a repository.

    Project markers win over file counts: ``tsconfig.json`` (TypeScript),
    ``composer.json``/``artisan`` (PHP), ``Gemfile``/``config/application.rb``
    (Ruby), then ``package.json`` (JavaScript). Without markers, a bounded
    extension census decides, and TypeScript is the default.

    Raises:
        MalformedProjectError: If the root does not exist or is not a directory.
    """
    root = ensure_directory(repo_path)

    if (root / "tsconfig.json").is_file():
        return Language.TYPESCRIPT
    if (root / "composer.json").is_file() or (root / "artisan").is_file():
        return Language.PHP
    if (root / "Gemfile").is_file() or (root / "config" / "application.rb").is_file():
        return Language.RUBY
    if (root / "package.json").is_file():
        return Language.JAVASCRIPT

    counts = count_files_by_extension(root)
    logger.debug("Extension census for %s: %s", root, dict(counts))
    return language_from_counts(counts) or Language.TYPESCRIPT


def detect_language_safe(repo_path: Path | str) -> LanguageResult:
    """Like detect_language, but returns a result object instead of raising."""
    try:
        return LanguageResult(success=True, data=detect_language(repo_path))
    except Exception as e:
        return LanguageResult(success=False, message=str(e) or "Unknown error detecting language")
