"""Source file discovery shared by all backends."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from repograph.core.models import ParseOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalkRules:
    """What a backend considers a source file and what it never looks at."""

    extensions: frozenset[str]
    exclude_dirs: frozenset[str] = frozenset()
    dependency_dirs: frozenset[str] = frozenset()
    exclude_files: tuple[str, ...] = ()
    test_dirs: frozenset[str] = frozenset()
    test_files: tuple[str, ...] = ()


def matches_glob(relative_path: str, pattern: str) -> bool:
    """Match a POSIX relative path against a glob pattern.

    Patterns match the whole path, the path with a leading ``**/`` dropped,
    or any single path component (so ``"fixtures"`` excludes every
    ``fixtures`` directory).
    """
    if fnmatch.fnmatch(relative_path, pattern):
        return True
    if pattern.startswith("**/") and fnmatch.fnmatch(relative_path, pattern[3:]):
        return True
    if "/" not in pattern:
        return any(fnmatch.fnmatch(part, pattern) for part in relative_path.split("/"))
    return False


def to_relative(root: Path, file: Path) -> str:
    """Return ``file`` relative to ``root`` as a POSIX string."""
    return file.relative_to(root).as_posix()


def is_test_file(relative_path: str, rules: WalkRules) -> bool:
    parts = relative_path.split("/")
    if any(part in rules.test_dirs for part in parts[:-1]):
        return True
    return any(fnmatch.fnmatch(parts[-1], pattern) for pattern in rules.test_files)


def in_dependency_dir(relative_path: str, rules: WalkRules) -> bool:
    return any(part in rules.dependency_dirs for part in relative_path.split("/")[:-1])


def _skip_dir(name: str, rel_dir: str, rules: WalkRules, options: ParseOptions) -> bool:
    if name.startswith("."):
        return True
    if name in rules.exclude_dirs:
        return True
    if name in rules.dependency_dirs and not options.include_node_modules:
        return True
    if name in rules.test_dirs and not options.include_tests:
        return True
    return any(matches_glob(rel_dir, pattern) for pattern in options.exclude_patterns)


def _skip_file(rel_path: str, rules: WalkRules, options: ParseOptions) -> bool:
    name = rel_path.rsplit("/", 1)[-1]
    if name.startswith("."):
        return True
    if any(fnmatch.fnmatch(name, pattern) for pattern in rules.exclude_files):
        return True
    if not options.include_tests and is_test_file(rel_path, rules):
        return True
    return any(matches_glob(rel_path, pattern) for pattern in options.exclude_patterns)


def has_source_extension(name: str, extensions: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(lowered.endswith(ext) for ext in extensions)


def discover_files(root: Path, rules: WalkRules, options: ParseOptions) -> list[Path]:
    """Find source files under ``root`` in a stable, sorted order.

    Directories deeper than ``options.max_depth`` below the root are not
    entered. Unreadable directories are skipped.
    """
    found: list[Path] = []

    def on_error(error: OSError) -> None:
        logger.debug("Skipping unreadable directory %s: %s", error.filename, error)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        rel_dir = "" if current == root else to_relative(root, current)
        depth = 0 if not rel_dir else rel_dir.count("/") + 1

        kept = []
        for name in sorted(dirnames):
            child = f"{rel_dir}/{name}" if rel_dir else name
            if depth + 1 > options.max_depth:
                continue
            if _skip_dir(name, child, rules, options):
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            if not has_source_extension(name, rules.extensions):
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _skip_file(rel_path, rules, options):
                continue
            found.append(current / name)

    return sorted(found, key=lambda p: to_relative(root, p))
