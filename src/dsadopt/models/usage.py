"""Component instantiations, import facts, and their categories.

A ``UsageRecord`` is produced once by the extraction collaborator and never
changes.  The categorizer derives exactly one ``CategorizedUsage`` from it, and
the transitive resolver may swap its ``transitive`` annotation at most once.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Category(Enum):
    """Mutually exclusive component categories."""

    DESIGN_SYSTEM = "design-system"
    LOCAL_LIBRARY = "local-library"
    THIRD_PARTY = "third-party"
    LOCAL = "local"
    HTML_NATIVE = "html-native"


class ImportKind(Enum):
    """How an identifier was brought into a file."""

    NAMED = "named"
    DEFAULT = "default"
    NAMESPACE = "namespace"


class Provenance(Enum):
    """Where a transitive annotation came from."""

    DECLARED = "declared"
    AUTO_DETECTED = "auto-detected"


@dataclass(frozen=True)
class ImportFact:
    """The import statement a tag's root identifier was bound by."""

    specifier: str
    """Module specifier (e.g. ``"@acme/ui"``, ``"./Card"``)."""

    kind: ImportKind = ImportKind.NAMED

    imported_name: str = ""
    """Original exported name (``"default"`` for default imports)."""


@dataclass(frozen=True)
class ResolvedImport:
    """Outcome of resolving a specifier from a containing file."""

    specifier: str
    resolved_path: str | None = None
    """Absolute path of the target file, when resolvable."""

    is_dependency: bool = False
    """``True`` when the target lives in an installed dependency package."""

    dependency_name: str | None = None


@dataclass(frozen=True)
class UsageRecord:
    """One markup-tag instantiation of a component."""

    component_name: str
    """Tag name as written, e.g. ``"Button"`` or ``"Select.Option"``."""

    local_name: str
    """Local binding used in code (``"Btn"``, ``"DS.Button"``)."""

    import_fact: ImportFact | None
    """``None`` when the identifier is declared in the same file."""

    file_path: str
    line: int = 0
    column: int = 0
    prop_names: tuple[str, ...] = ()
    has_spread_props: bool = False

    @property
    def root_identifier(self) -> str:
        return self.component_name.split(".", 1)[0]


@dataclass(frozen=True)
class TransitiveAnnotation:
    """Design-system backing attached to a local-library or third-party usage."""

    design_system_name: str
    coverage: float
    """Fraction in ``[0, 1]`` of the component attributable to the design system."""

    provenance: Provenance


@dataclass(frozen=True)
class CategorizedUsage:
    """A usage record together with its category and attribution."""

    usage: UsageRecord
    category: Category
    design_system_name: str | None = None
    dependency_name: str | None = None
    resolved_path: str | None = None
    transitive: TransitiveAnnotation | None = None

    @property
    def component_name(self) -> str:
        return self.usage.component_name

    @property
    def file_path(self) -> str:
        return self.usage.file_path

    @property
    def prop_names(self) -> tuple[str, ...]:
        return self.usage.prop_names

    @property
    def specifier(self) -> str | None:
        fact = self.usage.import_fact
        return fact.specifier if fact is not None else None

    def with_transitive(self, annotation: TransitiveAnnotation | None) -> CategorizedUsage:
        """Return a copy carrying *annotation* (``None`` drops it); category is kept."""
        return replace(self, transitive=annotation)
