"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return max(1, int(value))
    except ValueError:
        return default


PHP_BINARY = os.environ.get("REPOGRAPH_PHP_BINARY", "php")
RUBY_BINARY = os.environ.get("REPOGRAPH_RUBY_BINARY", "ruby")

# Explicit vendor/autoload.php that provides nikic/php-parser.
PHP_AUTOLOAD = os.environ.get("REPOGRAPH_PHP_AUTOLOAD") or None

# Global Composer homes searched for nikic/php-parser after the repository itself.
COMPOSER_HOMES = [
    Path(os.environ["COMPOSER_HOME"]) if os.environ.get("COMPOSER_HOME") else None,
    Path.home() / ".composer",
    Path.home() / ".config" / "composer",
]

# Concurrently running interpreter processes per parse run.
WORKERS = _env_int("REPOGRAPH_WORKERS", min(4, os.cpu_count() or 1))

# Seconds before a single interpreter invocation is killed.
TIMEOUT = _env_int("REPOGRAPH_TIMEOUT", 120)

# Files handed to one interpreter invocation.
BATCH_SIZE = _env_int("REPOGRAPH_BATCH_SIZE", 50)

# Seconds allowed for availability probes.
PROBE_TIMEOUT = _env_int("REPOGRAPH_PROBE_TIMEOUT", 15)

SCRIPTS_DIR = Path(__file__).parent / "languages" / "scripts"
