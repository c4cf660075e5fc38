"""Interfaces to the extraction and module-resolution collaborators."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from dsadopt.matching import extract_package_name
from dsadopt.models.usage import ResolvedImport

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dsadopt.models.usage import UsageRecord

logger = logging.getLogger(__name__)


class ImportResolver(Protocol):
    """Turns an import specifier into a file path or dependency package."""

    def resolve(self, specifier: str, containing_file: str) -> ResolvedImport: ...


class UsageExtractor(Protocol):
    """Produces the usage records found in one source file."""

    def extract(self, file_path: str) -> list[UsageRecord]: ...


def is_relative_specifier(specifier: str) -> bool:
    """True for ``./x``, ``../x`` and absolute ``/x`` specifiers."""
    return specifier.startswith((".", "/"))


class StaticResolver:
    """Resolver backed by a table of already-resolved imports.

    Entries recorded with an empty containing file apply to every file.
    Specifiers with no entry resolve conservatively: bare specifiers are
    treated as dependencies named after their package, relative ones stay
    unresolved.
    """

    def __init__(self, entries: Iterable[tuple[str, str, ResolvedImport]] = ()) -> None:
        self._table: dict[tuple[str, str], ResolvedImport] = {}
        for specifier, containing_file, resolved in entries:
            self.add(specifier, containing_file, resolved)

    def add(self, specifier: str, containing_file: str, resolved: ResolvedImport) -> None:
        self._table[(specifier, containing_file)] = resolved

    def __len__(self) -> int:
        return len(self._table)

    def resolve(self, specifier: str, containing_file: str) -> ResolvedImport:
        found = self._table.get((specifier, containing_file)) or self._table.get((specifier, ""))
        if found is not None:
            return found
        if not specifier or is_relative_specifier(specifier):
            logger.debug("Unresolved import %r from %s", specifier, containing_file)
            return ResolvedImport(specifier=specifier)
        return ResolvedImport(
            specifier=specifier,
            is_dependency=True,
            dependency_name=extract_package_name(specifier),
        )
