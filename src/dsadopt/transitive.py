"""Find design-system backing behind non-DS components.

Two passes run over a repository's categorized usages:

1. ``local-library`` usages without an annotation: the referenced file's own
   imports are inspected; any design-system import marks the component as
   fully backed (coverage ``1.0``).
2. ``third-party`` usages carrying a ``declared`` annotation whose rule has no
   explicit coverage: the dependency's installed sources are sampled and the
   share of files importing the backing design system becomes the coverage.

Explicit declared coverage is never touched.  Unreadable files and packages
that cannot be located count as "no evidence" and leave the usage unannotated.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Final

from dsadopt.imports import read_import_specifiers
from dsadopt.matching import find_design_system, find_transitive_rule, matches_package
from dsadopt.models.usage import Category, Provenance, TransitiveAnnotation
from dsadopt.utils.cache import MemoCache

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from dsadopt.config import AdoptionConfig, DesignSystemDef
    from dsadopt.models.usage import CategorizedUsage

    ImportReader = Callable[[str], list[str]]

logger = logging.getLogger(__name__)


class _Unknown(enum.Enum):
    UNKNOWN = "unknown"


UNKNOWN: Final = _Unknown.UNKNOWN
"""Package coverage could not be determined (distinct from a computed ``0.0``)."""

PackageCoverage = float | _Unknown

# Candidate source directories inside an installed package, hand-written first.
_SOURCE_DIR_PREFERENCE: tuple[str, ...] = (
    "src",
    "source",
    "lib",
    "es",
    "esm",
    "dist",
    "build",
    "cjs",
)

_SOURCE_SUFFIXES: frozenset[str] = frozenset({".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"})

_SKIP_DIRS: frozenset[str] = frozenset(
    {
        "node_modules",
        "__tests__",
        "__mocks__",
        "test",
        "tests",
        "coverage",
        ".git",
    }
)

_SKIP_MARKERS: tuple[str, ...] = (".test.", ".spec.", ".stories.")


@dataclass
class TransitiveCaches:
    """Per-file and per-dependency caches for one repository scan."""

    files: MemoCache[TransitiveAnnotation | None] = field(
        default_factory=lambda: MemoCache("transitive-file")
    )
    packages: MemoCache[PackageCoverage] = field(
        default_factory=lambda: MemoCache("transitive-package")
    )


# ── Per-file detection (local-library) ──────────────────────────


def detect_from_file(
    resolved_path: str,
    design_systems: Sequence[DesignSystemDef],
    reader: ImportReader = read_import_specifiers,
) -> TransitiveAnnotation | None:
    """Inspect one component file and return an annotation if it imports a design system."""
    try:
        specifiers = reader(resolved_path)
    except Exception as exc:
        logger.debug("Cannot inspect %s for transitive backing: %s", resolved_path, exc)
        return None

    for specifier in specifiers:
        design_system_name = find_design_system(specifier, design_systems)
        if design_system_name is not None:
            return TransitiveAnnotation(
                design_system_name=design_system_name,
                coverage=1.0,
                provenance=Provenance.AUTO_DETECTED,
            )
    return None


# ── Per-package detection (third-party) ─────────────────────────


def default_search_roots(repo_root: str | Path) -> list[Path]:
    """Directories whose ``node_modules`` may hold a repository's dependencies.

    The repository root and its ancestors (hoisted workspace installs), then
    the current working directory.
    """
    root = Path(repo_root).resolve()
    roots = [root, *root.parents]
    cwd = Path.cwd()
    if cwd not in roots:
        roots.append(cwd)
    return roots


def find_package_root(package_name: str, search_roots: Iterable[str | Path]) -> Path | None:
    """Return the first installed directory for *package_name*."""
    for search_root in search_roots:
        candidate = Path(search_root) / "node_modules" / package_name
        if candidate.is_dir():
            return candidate
    return None


def _is_source_file(name: str) -> bool:
    if name.endswith(".d.ts") or name.endswith(".min.js"):
        return False
    if any(marker in name for marker in _SKIP_MARKERS):
        return False
    return os.path.splitext(name)[1] in _SOURCE_SUFFIXES


def _collect_source_files(directory: Path, limit: int) -> list[Path]:
    """Walk *directory* in sorted order, returning up to *limit* source files."""
    files: list[Path] = []
    for current, dirnames, filenames in os.walk(directory):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS and not d.startswith("."))
        for name in sorted(filenames):
            if _is_source_file(name):
                files.append(Path(current) / name)
                if len(files) >= limit:
                    return files
    return files


def select_source_files(package_dir: Path, limit: int) -> list[Path]:
    """Pick representative source files of an installed package.

    The first preferred subdirectory that holds any source wins, so
    hand-written ``src`` beats compiled ``dist``; the package root is the
    last resort.
    """
    for sub in _SOURCE_DIR_PREFERENCE:
        candidate = package_dir / sub
        if candidate.is_dir():
            files = _collect_source_files(candidate, limit)
            if files:
                return files
    return _collect_source_files(package_dir, limit)


def detect_package_coverage(
    package_name: str,
    design_system: DesignSystemDef | None,
    search_roots: Iterable[str | Path],
    *,
    reader: ImportReader = read_import_specifiers,
    sample_size: int = 50,
) -> PackageCoverage:
    """Fraction of a package's sampled source files that import *design_system*.

    Returns ``UNKNOWN`` when the design system is not configured, the package
    is not installed, or none of its sources could be read.
    """
    if design_system is None:
        logger.warning("Transitive rule for %s names an unknown design system", package_name)
        return UNKNOWN

    package_dir = find_package_root(package_name, search_roots)
    if package_dir is None:
        logger.warning("Package directory for %s not found, coverage unknown", package_name)
        return UNKNOWN

    inspected = 0
    backed = 0
    for source_file in select_source_files(package_dir, sample_size):
        try:
            specifiers = reader(str(source_file))
        except Exception as exc:
            logger.debug("Skipping unreadable %s: %s", source_file, exc)
            continue
        inspected += 1
        if any(
            matches_package(specifier, pattern)
            for specifier in specifiers
            for pattern in design_system.packages
        ):
            backed += 1

    if inspected == 0:
        logger.warning("No readable sources in %s, coverage unknown", package_dir)
        return UNKNOWN

    coverage = backed / inspected
    logger.debug(
        "%s: %d/%d files import %s (coverage %.2f)",
        package_name,
        backed,
        inspected,
        design_system.name,
        coverage,
    )
    return coverage


# ── Resolver ─────────────────────────────────────────────────────


class TransitiveResolver:
    """Enriches one repository's categorized usages with transitive annotations.

    Args:
        config: Resolved configuration.
        repo_root: Repository root, used to locate installed dependencies.
        caches: Cache pair for this scan; a fresh pair is created when omitted.
        reader: Import-table reader for referenced files.
        search_roots: Override for the ``node_modules`` search locations.
    """

    def __init__(
        self,
        config: AdoptionConfig,
        repo_root: str | Path,
        *,
        caches: TransitiveCaches | None = None,
        reader: ImportReader = read_import_specifiers,
        search_roots: Sequence[str | Path] | None = None,
    ) -> None:
        self._config = config
        self._caches = caches if caches is not None else TransitiveCaches()
        self._reader = reader
        self._search_roots = (
            list(search_roots) if search_roots is not None else default_search_roots(repo_root)
        )

    @property
    def caches(self) -> TransitiveCaches:
        return self._caches

    async def enrich(self, usages: Sequence[CategorizedUsage]) -> list[CategorizedUsage]:
        """Return *usages* with annotations added, replaced, or dropped.

        Output order matches input order.  When auto-detection is disabled the
        usages are returned unchanged.
        """
        if not self._config.transitive_adoption.enabled:
            return list(usages)
        return list(await asyncio.gather(*(self._enrich_one(usage) for usage in usages)))

    async def _enrich_one(self, usage: CategorizedUsage) -> CategorizedUsage:
        if (
            usage.category is Category.LOCAL_LIBRARY
            and usage.transitive is None
            and usage.resolved_path
        ):
            detection = await self.detect_file(usage.resolved_path)
            return usage.with_transitive(detection) if detection is not None else usage

        annotation = usage.transitive
        if (
            usage.category is Category.THIRD_PARTY
            and annotation is not None
            and annotation.provenance is Provenance.DECLARED
            and usage.dependency_name
        ):
            rule = find_transitive_rule(usage.dependency_name, self._config.transitive_rules)
            if rule is None or rule.has_explicit_coverage:
                return usage

            coverage = await self.package_coverage(usage.dependency_name, rule.backed_by)
            if coverage is UNKNOWN or coverage == 0:
                return usage.with_transitive(None)
            return usage.with_transitive(
                TransitiveAnnotation(
                    design_system_name=rule.backed_by,
                    coverage=coverage,
                    provenance=Provenance.AUTO_DETECTED,
                )
            )

        return usage

    async def detect_file(self, resolved_path: str) -> TransitiveAnnotation | None:
        """Cached per-file detection; each path is inspected at most once."""
        return await self._caches.files.get_or_compute(
            resolved_path,
            lambda: asyncio.to_thread(
                detect_from_file, resolved_path, self._config.design_systems, self._reader
            ),
        )

    async def package_coverage(self, package_name: str, backed_by: str) -> PackageCoverage:
        """Cached per-dependency coverage; each package is sampled at most once."""
        return await self._caches.packages.get_or_compute(
            package_name,
            lambda: asyncio.to_thread(
                detect_package_coverage,
                package_name,
                self._config.get_design_system(backed_by),
                self._search_roots,
                reader=self._reader,
                sample_size=self._config.scan.package_sample_size,
            ),
        )
