"""Lightweight import-table reader used to inspect referenced source files.

The transitive resolver only needs the module specifiers a file imports, not
a full syntax tree, so a regex scan over the text is enough.  Comments are
stripped first so commented-out imports do not count.
"""

from __future__ import annotations

import re
from pathlib import Path

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"(?<![:\"'\w])//[^\n]*")

_IMPORT_PATTERNS = (
    # import X from 'y' / import { X } from "y" / import * as X from 'y'
    re.compile(r"\bimport\s+(?:type\s+)?[\w$*{}\s,]+?\s+from\s*['\"]([^'\"\n]+)['\"]"),
    # import 'side-effect'
    re.compile(r"\bimport\s*['\"]([^'\"\n]+)['\"]"),
    # export { X } from 'y' / export * from 'y'
    re.compile(r"\bexport\s+(?:type\s+)?[\w$*{}\s,]+?\s+from\s*['\"]([^'\"\n]+)['\"]"),
    # require('y') / import('y')
    re.compile(r"\b(?:require|import)\s*\(\s*['\"]([^'\"\n]+)['\"]\s*\)"),
)


def extract_import_specifiers(source: str) -> list[str]:
    """Return import specifiers in order of first appearance, de-duplicated."""
    text = _LINE_COMMENT_RE.sub("", _BLOCK_COMMENT_RE.sub("", source))
    found: list[tuple[int, str]] = []
    for pattern in _IMPORT_PATTERNS:
        found.extend((match.start(), match.group(1)) for match in pattern.finditer(text))
    found.sort(key=lambda item: item[0])

    seen: set[str] = set()
    specifiers: list[str] = []
    for _, specifier in found:
        if specifier not in seen:
            seen.add(specifier)
            specifiers.append(specifier)
    return specifiers


def read_import_specifiers(path: str | Path) -> list[str]:
    """Read *path* and return its import specifiers.

    Raises:
        OSError: The file cannot be read.
        UnicodeDecodeError: The file is not UTF-8 text.
    """
    return extract_import_specifiers(Path(path).read_text(encoding="utf-8"))
