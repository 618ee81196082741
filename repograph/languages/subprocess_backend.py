"""Shared machinery for backends that shell out to another interpreter."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from repograph import config
from repograph.core.builder import GraphBuilder, file_node
from repograph.core.exceptions import RuntimeUnavailableError
from repograph.core.models import CodeGraphSchema, FileError, Language, ParseOptions
from repograph.core.walker import WalkRules, discover_files, in_dependency_dir, to_relative
from repograph.languages.base import Availability, ProgressCallback
from repograph.languages.models import FileExtraction, FileOutcome, split_outcomes
from repograph.languages.process_pool import ProcessOutcome, ProcessPool

logger = logging.getLogger(__name__)


class BatchFailure(Exception):
    """An interpreter invocation produced no usable per-file output."""


class SubprocessBackend:
    """Base for the PHP and Ruby backends.

    Subclasses describe how to invoke the interpreter, how to read one
    file's entry from its JSON output and how to turn the collected
    extractions into nodes and edges.
    """

    language: Language
    rules: WalkRules

    def __init__(self) -> None:
        self._verified_root: Path | None = None

    def probe(self, root: Path) -> Availability:
        availability = self._probe(root)
        self._verified_root = root if availability.available else None
        return availability

    def parse(
        self,
        root: Path,
        options: ParseOptions,
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> CodeGraphSchema:
        """Extract every file out of process, then resolve references in-process.

        Raises:
            RuntimeUnavailableError: If the interpreter or its parser library is missing.
        """
        root = root.resolve()
        if self._verified_root != root:
            availability = self.probe(root)
            if not availability.available:
                raise RuntimeUnavailableError(availability.runtime, availability.hint)

        files = discover_files(root, self.rules, options)
        builder = GraphBuilder(str(root), self.language)

        extracted, failed = split_outcomes(self.extract(root, files, on_progress, cancel))
        for error in failed:
            builder.skip(error)

        self.assemble(builder, root, extracted, options)
        return builder.build()

    def extract(
        self,
        root: Path,
        files: list[Path],
        on_progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> list[FileOutcome]:
        """Run the interpreter over ``files`` in bounded batches.

        A batch whose process crashes, times out or prints garbage is retried
        one file per process, so only the offending file ends up skipped.
        """
        pool = ProcessPool(config.WORKERS, config.TIMEOUT, cancel)
        size = config.BATCH_SIZE
        batches = [files[i : i + size] for i in range(0, len(files), size)]
        results: dict[Path, FileOutcome] = {}
        retry: list[Path] = []
        done = 0

        def record(batch: list[Path], outcomes: Mapping[Path, FileOutcome]) -> None:
            nonlocal done
            for file in batch:
                results[file] = outcomes[file]
                done += 1
                if on_progress:
                    on_progress(file, done, len(files))

        commands = [self.command(root, batch) for batch in batches]
        for index, outcome in pool.run(commands):
            batch = batches[index]
            try:
                record(batch, self._decode(root, batch, outcome))
            except BatchFailure as e:
                if len(batch) > 1:
                    logger.info("Batch of %d files failed (%s), retrying one by one", len(batch), e)
                    retry.extend(batch)
                else:
                    record(batch, {batch[0]: FileError(to_relative(root, batch[0]), str(e))})

        singles = [self.command(root, [file]) for file in retry]
        for index, outcome in pool.run(singles):
            file = retry[index]
            try:
                record([file], self._decode(root, [file], outcome))
            except BatchFailure as e:
                record([file], {file: FileError(to_relative(root, file), str(e))})

        return [results[file] for file in files]

    def _decode(
        self, root: Path, batch: list[Path], outcome: ProcessOutcome
    ) -> dict[Path, FileOutcome]:
        if not outcome.stdout.strip():
            raise BatchFailure(outcome.describe())
        try:
            data = json.loads(outcome.stdout)
        except ValueError as e:
            raise BatchFailure(f"Unreadable parser output: {e}") from e
        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("message") if isinstance(data, dict) else None
            raise BatchFailure(message or outcome.describe())

        entries = {entry.get("path"): entry for entry in data.get("files") or []}
        decoded: dict[Path, FileOutcome] = {}
        for file in batch:
            rel_path = to_relative(root, file)
            entry = entries.get(str(file))
            if entry is None:
                decoded[file] = FileError(rel_path, "No parser output for file")
            elif not entry.get("ok"):
                decoded[file] = FileError(rel_path, entry.get("error") or "Parse error")
            else:
                try:
                    decoded[file] = self.read_entry(file, rel_path, entry)
                except (KeyError, TypeError, ValueError) as e:
                    decoded[file] = FileError(rel_path, f"Malformed parser output: {e}")
        return decoded

    def add_file_if_present(self, builder: GraphBuilder, root: Path, rel_path: str, options: ParseOptions) -> str | None:
        """Return ``rel_path`` if it is a file inside the repository, adding its node."""
        rel_path = os.path.normpath(rel_path).replace(os.sep, "/")
        if rel_path.startswith("../") or rel_path == ".." or os.path.isabs(rel_path):
            return None
        if not options.include_node_modules and in_dependency_dir(rel_path, self.rules):
            return None
        if builder.has_node(rel_path):
            return rel_path
        if (root / rel_path).is_file():
            builder.add_node(file_node(rel_path, self.language))
            return rel_path
        return None

    def _probe(self, root: Path) -> Availability:
        raise NotImplementedError

    def command(self, root: Path, files: list[Path]) -> list[str]:
        raise NotImplementedError

    def read_entry(self, file: Path, rel_path: str, entry: dict[str, Any]) -> FileExtraction:
        raise NotImplementedError

    def assemble(
        self,
        builder: GraphBuilder,
        root: Path,
        extractions: list[FileExtraction],
        options: ParseOptions,
    ) -> None:
        raise NotImplementedError
