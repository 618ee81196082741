"""Protocol for language backends."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from repograph.core.exceptions import ParseCancelledError

if TYPE_CHECKING:
    from repograph.core.models import CodeGraphSchema, Language, ParseOptions

ProgressCallback = Callable[[Path, int, int], None]


@dataclass(frozen=True)
class Availability:
    """Outcome of a backend probe."""

    available: bool
    runtime: str
    hint: str = ""


class LanguageBackend(Protocol):
    """Protocol for language backends."""

    language: Language

    def probe(self, root: Path) -> Availability:
        """Check that every external runtime the backend needs is present."""
        ...

    def parse(
        self,
        root: Path,
        options: ParseOptions,
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> CodeGraphSchema:
        """Parse the repository rooted at ``root`` into a schema."""
        ...


def raise_if_cancelled(cancel: threading.Event | None) -> None:
    """Stop a run between units of work once cancellation was requested."""
    if cancel is not None and cancel.is_set():
        raise ParseCancelledError("Parse cancelled")
