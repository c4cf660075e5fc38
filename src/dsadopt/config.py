"""Configuration parsing from ``.dsadopt.yml``."""

from __future__ import annotations

import functools
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from dsadopt.matching import LocalLibraryMatcher

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".dsadopt.yml"

DEFAULT_HISTORY_DIR = ".dsadopt-history"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_MAX_PERCENTAGE = 100.0

DEFAULT_INCLUDE: list[str] = ["src/**/*.{ts,tsx,js,jsx}"]

DEFAULT_EXCLUDE: list[str] = [
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/.next/**",
    "**/coverage/**",
    "**/__tests__/**",
    "**/__mocks__/**",
    "**/*.test.*",
    "**/*.spec.*",
    "**/*.stories.*",
    "**/*.d.ts",
]


class ConfigError(Exception):
    """Raised when a configuration file cannot be loaded at all."""


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_value(value: Any) -> Any:
    if isinstance(value, str):
        return _resolve_env_vars(value)
    if isinstance(value, dict):
        return _resolve_dict(value)
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]
    return value


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    return {key: _resolve_value(value) for key, value in data.items()}


@dataclass
class DesignSystemDef:
    """A named group of package identifiers or patterns."""

    name: str
    packages: list[str] = field(default_factory=list)
    """Patterns in ``matches_package`` syntax (exact, ``pkg/*``, or subpath prefix)."""


@dataclass
class TransitiveRule:
    """Declared hint: packages matching ``package`` are built on ``backed_by``."""

    package: str
    backed_by: str
    """Name of one of the configured design systems."""

    coverage: float | None = None
    """Explicit coverage in ``[0, 1]``; ``None`` lets auto-detection decide."""

    @property
    def has_explicit_coverage(self) -> bool:
        return self.coverage is not None


@dataclass
class TransitiveAdoptionConfig:
    """Transitive-adoption auto-detection settings."""

    enabled: bool = False
    """Scan local-library sources and dependency packages for design-system imports."""


@dataclass
class ThresholdConfig:
    """Quality gates checked after a scan."""

    min_adoption_rate: float | None = None
    max_custom_components: int | None = None
    """Upper bound on unique local + local-library components."""

    per_design_system: dict[str, float] = field(default_factory=dict)
    """Minimum adoption rate per design-system name."""


@dataclass
class ScanConfig:
    """Scan execution settings."""

    concurrency: int = 16
    """Maximum number of in-flight file analyses per repository."""

    package_sample_size: int = 50
    """Maximum number of source files inspected per dependency package."""


@dataclass
class AdoptionConfig:
    """Complete configuration from ``.dsadopt.yml``."""

    design_systems: list[DesignSystemDef] = field(default_factory=list)
    repositories: list[str] = field(default_factory=list)
    include: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    local_library_patterns: list[str] = field(default_factory=list)
    transitive_rules: list[TransitiveRule] = field(default_factory=list)
    transitive_adoption: TransitiveAdoptionConfig = field(default_factory=TransitiveAdoptionConfig)
    exclude_local_from_adoption: bool = False
    """Drop same-tree ``local`` usages from the adoption denominator."""

    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    history_dir: str = DEFAULT_HISTORY_DIR
    """Scan history location; relative paths resolve against the config file's directory."""

    config_path: str = ""
    """File the configuration was loaded from (empty for in-memory configs)."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""

    @functools.cached_property
    def local_library_matcher(self) -> LocalLibraryMatcher:
        return LocalLibraryMatcher(self.local_library_patterns)

    def get_design_system(self, name: str) -> DesignSystemDef | None:
        for design_system in self.design_systems:
            if design_system.name == name:
                return design_system
        return None

    @property
    def design_system_names(self) -> list[str]:
        return [ds.name for ds in self.design_systems]

    @property
    def history_path(self) -> Path:
        path = Path(self.history_dir)
        if path.is_absolute() or not self.config_path:
            return path
        return Path(self.config_path).parent / path


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key, {})
    return value if isinstance(value, dict) else {}


def _parse_design_systems(raw: dict[str, Any]) -> list[DesignSystemDef]:
    entries = raw.get("design_systems", [])
    if not isinstance(entries, list):
        return []
    result: list[DesignSystemDef] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Ignoring malformed design_systems entry: %r", entry)
            continue
        result.append(
            DesignSystemDef(
                name=str(entry.get("name", "")),
                packages=_str_list(entry.get("packages", [])),
            )
        )
    return result


def _parse_transitive_rules(raw: dict[str, Any]) -> list[TransitiveRule]:
    entries = raw.get("transitive_rules", [])
    if not isinstance(entries, list):
        return []
    rules: list[TransitiveRule] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning("Ignoring malformed transitive_rules entry: %r", entry)
            continue
        coverage_raw = entry.get("coverage")
        rules.append(
            TransitiveRule(
                package=str(entry.get("package", "")),
                backed_by=str(entry.get("backed_by", "")),
                coverage=float(coverage_raw) if coverage_raw is not None else None,
            )
        )
    return rules


def _parse_thresholds(raw: dict[str, Any]) -> ThresholdConfig:
    thresholds_raw = _section(raw, "thresholds")
    per_ds_raw = thresholds_raw.get("per_design_system", {})
    per_design_system: dict[str, float] = {}
    if isinstance(per_ds_raw, dict):
        for name, value in per_ds_raw.items():
            if isinstance(value, dict):
                value = value.get("min_adoption_rate")
            if value is not None:
                per_design_system[str(name)] = float(value)

    min_rate = thresholds_raw.get("min_adoption_rate")
    max_custom = thresholds_raw.get("max_custom_components")
    return ThresholdConfig(
        min_adoption_rate=float(min_rate) if min_rate is not None else None,
        max_custom_components=int(max_custom) if max_custom is not None else None,
        per_design_system=per_design_system,
    )


def _parse_scan_config(raw: dict[str, Any]) -> ScanConfig:
    scan_raw = _section(raw, "scan")
    return ScanConfig(
        concurrency=int(scan_raw.get("concurrency", 16)),
        package_sample_size=int(scan_raw.get("package_sample_size", 50)),
    )


def parse_config(raw: dict[str, Any], *, config_path: str = "") -> AdoptionConfig:
    """Build an ``AdoptionConfig`` from an already-parsed mapping."""
    raw = _resolve_dict(raw)
    include = raw.get("include")
    exclude = raw.get("exclude")
    return AdoptionConfig(
        design_systems=_parse_design_systems(raw),
        repositories=_str_list(raw.get("repositories", [])),
        include=_str_list(include) if include is not None else list(DEFAULT_INCLUDE),
        exclude=_str_list(exclude) if exclude is not None else list(DEFAULT_EXCLUDE),
        local_library_patterns=_str_list(raw.get("local_library_patterns", [])),
        transitive_rules=_parse_transitive_rules(raw),
        transitive_adoption=TransitiveAdoptionConfig(
            enabled=bool(_section(raw, "transitive_adoption").get("enabled", False)),
        ),
        exclude_local_from_adoption=bool(raw.get("exclude_local_from_adoption", False)),
        thresholds=_parse_thresholds(raw),
        scan=_parse_scan_config(raw),
        history_dir=str(raw.get("history_dir") or DEFAULT_HISTORY_DIR),
        config_path=config_path,
        raw=raw,
    )


def find_config_file(root: str | Path) -> Path | None:
    """Return ``<root>/.dsadopt.yml`` if it exists."""
    candidate = Path(root).resolve() / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def load_config(path: str | Path) -> AdoptionConfig:
    """Load configuration from a project directory or an explicit YAML file.

    A directory without ``.dsadopt.yml`` yields the defaults.  An explicit
    file that is missing, unreadable YAML, or not a mapping raises
    ``ConfigError``.
    """
    target = Path(path).resolve()
    if target.is_dir():
        found = find_config_file(target)
        if found is None:
            logger.info("No %s found in %s, using defaults", CONFIG_FILE_NAME, target)
            return AdoptionConfig()
        target = found
    elif not target.is_file():
        raise ConfigError(f"Config file not found: {target}")

    try:
        parsed = yaml.safe_load(target.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config from {target}: {exc}") from exc

    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        raise ConfigError(f"Invalid config at {target}: top level must be a mapping")

    return parse_config(parsed, config_path=str(target))


def _validate_design_systems(design_systems: list[DesignSystemDef]) -> list[str]:
    errors: list[str] = []
    if not design_systems:
        errors.append("design_systems must be a non-empty list")
        return errors

    seen: set[str] = set()
    for index, design_system in enumerate(design_systems):
        if not design_system.name:
            errors.append(f"design_systems[{index}] is missing name")
        elif design_system.name in seen:
            errors.append(f"design_systems name {design_system.name!r} is declared twice")
        seen.add(design_system.name)
        if not design_system.packages:
            errors.append(
                f"design system {design_system.name!r} must have at least one package"
            )
    return errors


def _validate_transitive_rules(config: AdoptionConfig) -> list[str]:
    errors: list[str] = []
    known = set(config.design_system_names)
    for index, rule in enumerate(config.transitive_rules):
        prefix = f"transitive_rules[{index}]"
        if not rule.package:
            errors.append(f"{prefix}.package is required")
        if rule.backed_by not in known:
            errors.append(
                f"{prefix}.backed_by must name a configured design system (got: {rule.backed_by!r})"
            )
        if rule.coverage is not None and not 0.0 <= rule.coverage <= 1.0:
            errors.append(f"{prefix}.coverage must be between 0 and 1 (got: {rule.coverage})")
    return errors


def _validate_thresholds(thresholds: ThresholdConfig, known: set[str]) -> list[str]:
    errors: list[str] = []
    if thresholds.min_adoption_rate is not None and not (
        0.0 <= thresholds.min_adoption_rate <= _MAX_PERCENTAGE
    ):
        errors.append(
            f"thresholds.min_adoption_rate must be between 0 and 100 "
            f"(got: {thresholds.min_adoption_rate})"
        )
    if thresholds.max_custom_components is not None and thresholds.max_custom_components < 0:
        errors.append(
            f"thresholds.max_custom_components must be non-negative "
            f"(got: {thresholds.max_custom_components})"
        )
    for name, rate in thresholds.per_design_system.items():
        if name not in known:
            errors.append(f"thresholds.per_design_system references unknown design system {name!r}")
        if not 0.0 <= rate <= _MAX_PERCENTAGE:
            errors.append(
                f"thresholds.per_design_system.{name} must be between 0 and 100 (got: {rate})"
            )
    return errors


def _validate_scan_config(scan: ScanConfig) -> list[str]:
    errors: list[str] = []
    if scan.concurrency < 1:
        errors.append(f"scan.concurrency must be at least 1 (got: {scan.concurrency})")
    if scan.package_sample_size < 1:
        errors.append(
            f"scan.package_sample_size must be at least 1 (got: {scan.package_sample_size})"
        )
    return errors


def validate_config(config: AdoptionConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []
    errors.extend(_validate_design_systems(config.design_systems))
    errors.extend(_validate_transitive_rules(config))
    errors.extend(_validate_thresholds(config.thresholds, set(config.design_system_names)))
    errors.extend(_validate_scan_config(config.scan))
    return errors
