"""Repository scan: extraction, categorization, transitive enrichment, aggregation.

Files of one repository are analysed over a bounded worker pool.  Each
repository gets its own resolver and a fresh transitive cache pair; nothing
mutable is shared across repositories or across scans.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dsadopt import __version__
from dsadopt.categorizer import categorize_usage
from dsadopt.imports import read_import_specifiers
from dsadopt.metrics.aggregator import RepoScanData, aggregate_results
from dsadopt.transitive import TransitiveCaches, TransitiveResolver

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from dsadopt.collaborators import ImportResolver, UsageExtractor
    from dsadopt.config import AdoptionConfig
    from dsadopt.models.metrics import ScanReport
    from dsadopt.models.usage import CategorizedUsage

    ProgressCallback = Callable[[int, int, str], None]

logger = logging.getLogger(__name__)


class ScanCancelledError(Exception):
    """Raised when a scan was stopped before every file was analysed."""


@dataclass
class RepositoryInput:
    """Everything needed to scan one repository."""

    name: str
    path: str
    files: list[str]
    extractor: UsageExtractor
    resolver: ImportResolver
    files_scanned: int | None = None
    """Overrides ``len(files)`` when discovery counted more files than were analysed."""


@dataclass
class ScanProgress:
    total: int
    callback: ProgressCallback | None
    done: int = 0

    def advance(self, repository_name: str) -> None:
        self.done += 1
        if self.callback is not None:
            self.callback(self.done, self.total, repository_name)


async def analyze_files(
    repository: RepositoryInput,
    config: AdoptionConfig,
    *,
    stop: asyncio.Event | None = None,
    progress: ScanProgress | None = None,
) -> list[CategorizedUsage]:
    """Extract and categorize every file of *repository*.

    At most ``config.scan.concurrency`` extractions are in flight.  Once
    *stop* is set no new file is started; files already running complete and
    ``ScanCancelledError`` is raised.  Results keep file order regardless of
    completion order.
    """
    semaphore = asyncio.Semaphore(config.scan.concurrency)
    per_file: list[list[CategorizedUsage]] = [[] for _ in repository.files]
    stopped = False

    async def _analyze(index: int, file_path: str) -> None:
        nonlocal stopped
        async with semaphore:
            if stop is not None and stop.is_set():
                stopped = True
                return
            try:
                records = await asyncio.to_thread(repository.extractor.extract, file_path)
            except Exception as exc:
                logger.warning("Failed to extract usages from %s: %s", file_path, exc)
                records = []
            per_file[index] = [
                categorize_usage(record, config, repository.resolver) for record in records
            ]
            if progress is not None:
                progress.advance(repository.name)

    await asyncio.gather(*(_analyze(i, path) for i, path in enumerate(repository.files)))
    if stopped:
        raise ScanCancelledError(f"Scan of {repository.name} was stopped")
    return [usage for usages in per_file for usage in usages]


async def scan_repository(
    repository: RepositoryInput,
    config: AdoptionConfig,
    *,
    reader: Callable[[str], list[str]] = read_import_specifiers,
    search_roots: Sequence[str | Path] | None = None,
    stop: asyncio.Event | None = None,
    progress: ScanProgress | None = None,
) -> RepoScanData:
    """Scan one repository into its final categorized usages."""
    started = time.monotonic()
    usages = await analyze_files(repository, config, stop=stop, progress=progress)

    resolver = TransitiveResolver(
        config,
        repository.path,
        caches=TransitiveCaches(),
        reader=reader,
        search_roots=search_roots,
    )
    usages = await resolver.enrich(usages)
    logger.debug(
        "%s: transitive pass inspected %d files and %d packages",
        repository.name,
        resolver.caches.files.size,
        resolver.caches.packages.size,
    )

    logger.info(
        "Scanned %s: %d files, %d usages in %.0fms",
        repository.name,
        len(repository.files),
        len(usages),
        (time.monotonic() - started) * 1000,
    )
    return RepoScanData(
        name=repository.name,
        path=repository.path,
        usages=usages,
        files_scanned=(
            repository.files_scanned
            if repository.files_scanned is not None
            else len(repository.files)
        ),
    )


async def run_scan(
    repositories: Sequence[RepositoryInput],
    config: AdoptionConfig,
    *,
    reader: Callable[[str], list[str]] = read_import_specifiers,
    on_progress: ProgressCallback | None = None,
    stop: asyncio.Event | None = None,
    version: str = __version__,
) -> ScanReport:
    """Scan repositories one at a time and aggregate the results."""
    started = time.monotonic()
    progress = ScanProgress(total=sum(len(r.files) for r in repositories), callback=on_progress)

    scanned: list[RepoScanData] = []
    for repository in repositories:
        scanned.append(
            await scan_repository(repository, config, reader=reader, stop=stop, progress=progress)
        )

    return aggregate_results(
        scanned,
        config,
        scan_duration_ms=(time.monotonic() - started) * 1000,
        version=version,
    )
