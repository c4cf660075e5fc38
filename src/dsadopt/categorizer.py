"""Assign exactly one category to each component usage.

Rules are evaluated top to bottom and the first matching rule decides:

1. lower-case root identifier          -> html-native
2. no import fact (same-file binding)  -> local
3. specifier owned by a design system  -> design-system
4. specifier/path matches a local glob -> local-library (+ declared rule)
5. bare specifier from a dependency    -> third-party (+ declared rule)
6. anything else                       -> local

Categorization never raises: an unexpected failure yields ``local``.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

from dsadopt.collaborators import is_relative_specifier
from dsadopt.matching import extract_package_name, find_design_system, find_transitive_rule
from dsadopt.models.usage import (
    CategorizedUsage,
    Category,
    Provenance,
    ResolvedImport,
    TransitiveAnnotation,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from dsadopt.collaborators import ImportResolver
    from dsadopt.config import AdoptionConfig, TransitiveRule
    from dsadopt.models.usage import UsageRecord

logger = logging.getLogger(__name__)


@dataclass
class RuleContext:
    """Per-usage evaluation state shared by the rule predicates and outcomes."""

    usage: UsageRecord
    config: AdoptionConfig
    resolver: ImportResolver

    @property
    def specifier(self) -> str:
        fact = self.usage.import_fact
        return fact.specifier if fact is not None else ""

    @functools.cached_property
    def resolved(self) -> ResolvedImport:
        """Resolution of the import, resolved lazily and at most once."""
        try:
            return self.resolver.resolve(self.specifier, self.usage.file_path)
        except Exception as exc:
            logger.warning(
                "Resolving %r from %s failed: %s", self.specifier, self.usage.file_path, exc
            )
            return ResolvedImport(specifier=self.specifier)

    @functools.cached_property
    def design_system_name(self) -> str | None:
        return find_design_system(self.specifier, self.config.design_systems)


class CategoryRule(NamedTuple):
    name: str
    predicate: Callable[[RuleContext], bool]
    outcome: Callable[[RuleContext], CategorizedUsage]


# ── Predicates ───────────────────────────────────────────────────


def _is_html_native(ctx: RuleContext) -> bool:
    root = ctx.usage.root_identifier
    return bool(root) and root[0].isalpha() and not root[0].isupper()


def _has_no_import(ctx: RuleContext) -> bool:
    return ctx.usage.import_fact is None or not ctx.specifier


def _matches_design_system(ctx: RuleContext) -> bool:
    return ctx.design_system_name is not None


def _matches_local_library(ctx: RuleContext) -> bool:
    return ctx.config.local_library_matcher.matches(ctx.specifier, ctx.resolved.resolved_path)


def _is_dependency_import(ctx: RuleContext) -> bool:
    return not is_relative_specifier(ctx.specifier) and ctx.resolved.is_dependency


def _always(_ctx: RuleContext) -> bool:
    return True


# ── Outcomes ─────────────────────────────────────────────────────


def _as_html_native(ctx: RuleContext) -> CategorizedUsage:
    return CategorizedUsage(usage=ctx.usage, category=Category.HTML_NATIVE)


def _as_same_file_local(ctx: RuleContext) -> CategorizedUsage:
    return CategorizedUsage(usage=ctx.usage, category=Category.LOCAL)


def _as_design_system(ctx: RuleContext) -> CategorizedUsage:
    resolved = ctx.resolved
    return CategorizedUsage(
        usage=ctx.usage,
        category=Category.DESIGN_SYSTEM,
        design_system_name=ctx.design_system_name,
        dependency_name=resolved.dependency_name or extract_package_name(ctx.specifier),
        resolved_path=resolved.resolved_path,
    )


def _as_local_library(ctx: RuleContext) -> CategorizedUsage:
    resolved = ctx.resolved
    categorized = CategorizedUsage(
        usage=ctx.usage,
        category=Category.LOCAL_LIBRARY,
        dependency_name=resolved.dependency_name if resolved.is_dependency else None,
        resolved_path=resolved.resolved_path,
    )
    return apply_declared_rule(categorized, ctx.config.transitive_rules)


def _as_third_party(ctx: RuleContext) -> CategorizedUsage:
    categorized = CategorizedUsage(
        usage=ctx.usage,
        category=Category.THIRD_PARTY,
        dependency_name=ctx.resolved.dependency_name or extract_package_name(ctx.specifier),
    )
    return apply_declared_rule(categorized, ctx.config.transitive_rules)


def _as_unmatched_local(ctx: RuleContext) -> CategorizedUsage:
    return CategorizedUsage(
        usage=ctx.usage,
        category=Category.LOCAL,
        resolved_path=ctx.resolved.resolved_path,
    )


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule("html-native", _is_html_native, _as_html_native),
    CategoryRule("same-file", _has_no_import, _as_same_file_local),
    CategoryRule("design-system", _matches_design_system, _as_design_system),
    CategoryRule("local-library", _matches_local_library, _as_local_library),
    CategoryRule("third-party", _is_dependency_import, _as_third_party),
    CategoryRule("fallback", _always, _as_unmatched_local),
)


def apply_declared_rule(
    categorized: CategorizedUsage, rules: Sequence[TransitiveRule]
) -> CategorizedUsage:
    """Attach a ``declared`` annotation from the first matching transitive rule."""
    if not rules:
        return categorized

    package_name = categorized.dependency_name
    if package_name is None and categorized.specifier:
        package_name = extract_package_name(categorized.specifier)
    if not package_name:
        return categorized

    rule = find_transitive_rule(package_name, rules)
    if rule is None:
        return categorized

    return categorized.with_transitive(
        TransitiveAnnotation(
            design_system_name=rule.backed_by,
            coverage=rule.coverage if rule.coverage is not None else 1.0,
            provenance=Provenance.DECLARED,
        )
    )


def categorize_usage(
    usage: UsageRecord,
    config: AdoptionConfig,
    resolver: ImportResolver,
) -> CategorizedUsage:
    """Assign *usage* to exactly one category."""
    ctx = RuleContext(usage=usage, config=config, resolver=resolver)
    try:
        for rule in CATEGORY_RULES:
            if rule.predicate(ctx):
                logger.debug(
                    "%s in %s:%d -> %s", usage.component_name, usage.file_path, usage.line, rule.name
                )
                return rule.outcome(ctx)
    except Exception as exc:
        logger.warning(
            "Falling back to local for %s in %s: %s", usage.component_name, usage.file_path, exc
        )
    return CategorizedUsage(usage=usage, category=Category.LOCAL)
