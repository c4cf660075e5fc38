"""Specifier and path matching shared by the categorizer and transitive resolver.

Package patterns understand three forms only:

- exact: ``"@acme/ui"`` matches ``"@acme/ui"``
- wildcard: ``"@acme/ui/*"`` matches ``"@acme/ui"`` and any ``"@acme/ui/..."``
- subpath: ``"@acme/ui"`` also matches ``"@acme/ui/button"``

Local-library patterns are globs (``**``, ``*``, ``?``, ``[...]``, ``{a,b}``)
where ``*`` never crosses a ``/`` and dot-files are matched like any other name.
"""

from __future__ import annotations

import functools
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from dsadopt.config import DesignSystemDef, TransitiveRule

# Rewrites "/abs/checkout/src/..." to "src/..." for patterns written against a
# repository layout.
_SOURCE_ROOT_RE = re.compile(r"^.*?/src/")


def _is_subpath(specifier: str, prefix: str) -> bool:
    """``specifier`` starts with ``prefix + "/"`` without building that string."""
    size = len(prefix)
    return len(specifier) > size and specifier[size] == "/" and specifier.startswith(prefix)


def matches_package(specifier: str, pattern: str) -> bool:
    """Return True when *specifier* belongs to the package *pattern*."""
    if specifier == pattern:
        return True
    if pattern.endswith("/*"):
        prefix = pattern[:-2]
        return specifier == prefix or _is_subpath(specifier, prefix)
    return _is_subpath(specifier, pattern)


def extract_package_name(specifier: str) -> str:
    """Derive a package name from a bare specifier.

    Scoped names keep two segments (``"@acme/ui/button"`` -> ``"@acme/ui"``),
    everything else keeps one (``"lodash/get"`` -> ``"lodash"``).
    """
    if specifier.startswith("@"):
        return "/".join(specifier.split("/")[:2])
    return specifier.split("/", 1)[0]


def find_design_system(specifier: str, design_systems: Sequence[DesignSystemDef]) -> str | None:
    """Name of the first configured design system owning *specifier*, if any.

    Configuration order is the tie-break when package patterns overlap.
    """
    for design_system in design_systems:
        for pattern in design_system.packages:
            if matches_package(specifier, pattern):
                return design_system.name
    return None


def find_transitive_rule(
    package_name: str, rules: Sequence[TransitiveRule]
) -> TransitiveRule | None:
    """First declared transitive rule whose package pattern matches *package_name*."""
    for rule in rules:
        if matches_package(package_name, rule.package):
            return rule
    return None


@functools.lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob into a regex meant for ``fullmatch``."""
    out: list[str] = []
    i, n = 0, len(pattern)
    brace_depth = 0
    while i < n:
        char = pattern[i]
        if char == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            globstar = j - i > 1
            at_segment_start = i == 0 or pattern[i - 1] == "/"
            at_segment_end = j == n or pattern[j] == "/"
            if globstar and at_segment_start and at_segment_end:
                if j < n:
                    out.append("(?:[^/]*/)*")
                    j += 1
                else:
                    out.append(".*")
            else:
                out.append("[^/]*")
            i = j
            continue
        if char == "?":
            out.append("[^/]")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1 : end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end + 1
                continue
        elif char == "{":
            brace_depth += 1
            out.append("(?:")
        elif char == "}" and brace_depth:
            brace_depth -= 1
            out.append(")")
        elif char == "," and brace_depth:
            out.append("|")
        else:
            out.append(re.escape(char))
        i += 1
    # An unclosed brace group runs to the end of the pattern.
    source = "".join(out) + ")" * brace_depth
    return re.compile(source)


class LocalLibraryMatcher:
    """Matches specifiers and resolved paths against local-library globs."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self._patterns = tuple(patterns)
        self._regexes = tuple(compile_glob(p) for p in self._patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def matches(self, specifier: str, resolved_path: str | None = None) -> bool:
        """True when either target matches any pattern."""
        if not self._regexes:
            return False
        targets = [specifier]
        if resolved_path:
            normalized = resolved_path.replace("\\", "/")
            targets.append(normalized)
            portable = _SOURCE_ROOT_RE.sub("src/", normalized, count=1)
            if portable != normalized:
                targets.append(portable)
        return any(regex.fullmatch(target) for regex in self._regexes for target in targets)
