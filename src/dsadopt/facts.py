"""Usage-facts documents: the recorded output of the extraction and resolution steps.

A facts document is YAML (or JSON, which YAML also reads)::

    repositories:
      - name: web
        path: /work/web
        files_scanned: 120          # optional, defaults to the number of files
        files: [src/Empty.tsx]      # optional, files without usages
        usages:
          - component: Button
            local_name: Btn         # optional, defaults to component
            import: {specifier: "@acme/ui", kind: named, imported_name: Button}
            file: /work/web/src/App.tsx
            line: 12
            column: 4
            props: [variant, size]
            spread: false
        resolutions:
          - specifier: "@acme/ui"
            file: ""                # empty or omitted: applies to every file
            resolved_path: null
            is_dependency: true
            dependency_name: "@acme/ui"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from dsadopt.collaborators import StaticResolver
from dsadopt.models.usage import ImportFact, ImportKind, ResolvedImport, UsageRecord
from dsadopt.scanner import RepositoryInput

logger = logging.getLogger(__name__)


class FactsError(Exception):
    """Raised when a facts document is missing or malformed."""


class FactsExtractor:
    """Extractor that replays recorded usages per file."""

    def __init__(self, usages_by_file: dict[str, list[UsageRecord]]) -> None:
        self._usages_by_file = usages_by_file

    def extract(self, file_path: str) -> list[UsageRecord]:
        return list(self._usages_by_file.get(file_path, []))


@dataclass
class RepositoryFacts:
    """Recorded facts for one repository."""

    name: str
    path: str
    usages_by_file: dict[str, list[UsageRecord]] = field(default_factory=dict)
    resolver: StaticResolver = field(default_factory=StaticResolver)
    files_scanned: int | None = None

    @property
    def files(self) -> list[str]:
        return list(self.usages_by_file)

    def to_input(self) -> RepositoryInput:
        return RepositoryInput(
            name=self.name,
            path=self.path,
            files=self.files,
            extractor=FactsExtractor(self.usages_by_file),
            resolver=self.resolver,
            files_scanned=self.files_scanned,
        )


def _parse_import(raw: Any, where: str) -> ImportFact | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return ImportFact(specifier=raw)
    if not isinstance(raw, dict) or not raw.get("specifier"):
        raise FactsError(f"{where}: import must be a specifier string or mapping")
    try:
        kind = ImportKind(str(raw.get("kind", ImportKind.NAMED.value)))
    except ValueError as exc:
        raise FactsError(f"{where}: unknown import kind {raw.get('kind')!r}") from exc
    return ImportFact(
        specifier=str(raw["specifier"]),
        kind=kind,
        imported_name=str(raw.get("imported_name", "")),
    )


def _parse_usage(raw: Any, where: str) -> UsageRecord:
    if not isinstance(raw, dict):
        raise FactsError(f"{where}: usage must be a mapping")
    component = raw.get("component")
    file_path = raw.get("file")
    if not component or not file_path:
        raise FactsError(f"{where}: usage requires 'component' and 'file'")

    props = raw.get("props", [])
    return UsageRecord(
        component_name=str(component),
        local_name=str(raw.get("local_name", component)),
        import_fact=_parse_import(raw.get("import"), where),
        file_path=str(file_path),
        line=int(raw.get("line", 0)),
        column=int(raw.get("column", 0)),
        prop_names=tuple(str(p) for p in props) if isinstance(props, list) else (),
        has_spread_props=bool(raw.get("spread", False)),
    )


def _parse_resolution(raw: Any, where: str) -> tuple[str, str, ResolvedImport]:
    if not isinstance(raw, dict) or not raw.get("specifier"):
        raise FactsError(f"{where}: resolution requires 'specifier'")
    specifier = str(raw["specifier"])
    resolved_path = raw.get("resolved_path")
    dependency_name = raw.get("dependency_name")
    return (
        specifier,
        str(raw.get("file") or ""),
        ResolvedImport(
            specifier=specifier,
            resolved_path=str(resolved_path) if resolved_path else None,
            is_dependency=bool(raw.get("is_dependency", False)),
            dependency_name=str(dependency_name) if dependency_name else None,
        ),
    )


def _parse_repository(raw: Any, index: int) -> RepositoryFacts:
    where = f"repositories[{index}]"
    if not isinstance(raw, dict) or not raw.get("name"):
        raise FactsError(f"{where}: repository requires 'name'")

    usages_by_file: dict[str, list[UsageRecord]] = {}
    for extra in raw.get("files", []) or []:
        usages_by_file.setdefault(str(extra), [])
    for u_index, usage_raw in enumerate(raw.get("usages", []) or []):
        usage = _parse_usage(usage_raw, f"{where}.usages[{u_index}]")
        usages_by_file.setdefault(usage.file_path, []).append(usage)

    resolver = StaticResolver(
        _parse_resolution(entry, f"{where}.resolutions[{r_index}]")
        for r_index, entry in enumerate(raw.get("resolutions", []) or [])
    )

    files_scanned = raw.get("files_scanned")
    return RepositoryFacts(
        name=str(raw["name"]),
        path=str(raw.get("path", "")),
        usages_by_file=usages_by_file,
        resolver=resolver,
        files_scanned=int(files_scanned) if files_scanned is not None else None,
    )


def parse_facts(data: Any) -> list[RepositoryFacts]:
    """Parse an already-loaded facts document."""
    if not isinstance(data, dict) or not isinstance(data.get("repositories"), list):
        raise FactsError("facts document must be a mapping with a 'repositories' list")
    try:
        return [_parse_repository(raw, i) for i, raw in enumerate(data["repositories"])]
    except (TypeError, ValueError) as exc:
        raise FactsError(f"malformed facts document: {exc}") from exc


def load_facts(path: str | Path) -> list[RepositoryFacts]:
    """Load a YAML/JSON facts document from *path*."""
    facts_path = Path(path)
    try:
        data = yaml.safe_load(facts_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise FactsError(f"Cannot read facts file {facts_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise FactsError(f"Invalid facts file {facts_path}: {exc}") from exc

    repositories = parse_facts(data)
    logger.info("Loaded facts for %d repositories from %s", len(repositories), facts_path)
    return repositories
