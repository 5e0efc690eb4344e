from __future__ import annotations

import fnmatch
import re
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any


class ConfigError(ValueError):
    """Raised when smellscope configuration is invalid."""


DetectorId = str

ENABLED_KEY = "enabled"
EXCLUDE_KEY = "exclude"
FORCE_KEY = "force"
SCOPES_KEY = "scopes"
ALL_DETECTORS = "all"

# Every detector's default configuration starts from these values.
BASE_CONFIG: Mapping[str, Any] = MappingProxyType({ENABLED_KEY: True, EXCLUDE_KEY: (), FORCE_KEY: ()})

_EMPTY: Mapping[str, Any] = MappingProxyType({})

_GLOB_RE = re.compile(r"\[[^\]]*\]|[*?]")


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list | tuple | frozenset | set) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value)


def _validate_value(key: str, value: Any, default: Any, *, field_name: str) -> Any:
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"`{field_name}` must be a boolean.")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{field_name}` must be an integer.")
        if value < 0:
            raise ConfigError(f"`{field_name}` must be >= 0.")
        return value
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, int | float):
            raise ConfigError(f"`{field_name}` must be a number.")
        return float(value)
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigError(f"`{field_name}` must be a string.")
        return value
    if isinstance(default, tuple):
        return _validate_str_list(value, field_name=field_name)
    raise ConfigError(f"`{field_name}` has an unsupported default type for key {key!r}.")  # pragma: no cover


@dataclass(frozen=True, slots=True)
class ConfigLayer:
    """
    One immutable set of option values, optionally bound to a scope pattern.

    `schema` maps every accepted key to its default value; values are
    checked against the default's type when the layer is built, so a bad
    value never reaches an analysis. Without a schema only the universal
    keys (`enabled`, `exclude`, `force`) are accepted.
    """

    values: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    pattern: str | None = None
    schema: Mapping[str, Any] | None = field(default=None, compare=False, repr=False)
    origin: str = field(default="", compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.values, Mapping):
            raise ConfigError(f"`{self.origin or 'layer'}` must be a table.")
        if self.pattern is not None and (not isinstance(self.pattern, str) or not self.pattern.strip()):
            raise ConfigError(f"`{self.origin or 'layer'}` scope pattern must be a non-empty string.")

        schema = self.schema if self.schema is not None else BASE_CONFIG
        validated: dict[str, Any] = {}
        for key, value in self.values.items():
            field_name = f"{self.origin}.{key}" if self.origin else str(key)
            if key not in schema:
                valid = ", ".join(sorted(schema))
                raise ConfigError(f"`{field_name}` is not a recognized option (expected one of: {valid}).")
            validated[key] = _validate_value(key, value, schema[key], field_name=field_name)
        object.__setattr__(self, "values", MappingProxyType(validated))

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def matches(self, full_name: str) -> bool:
        if self.pattern is None:
            return True
        return fnmatch.fnmatchcase(full_name, self.pattern)

    def names_in(self, key: str) -> frozenset[str]:
        return frozenset(self.values.get(key, ()))


@dataclass(frozen=True, slots=True)
class ScopeOverride:
    pattern: str
    common: ConfigLayer | None = None
    detectors: Mapping[DetectorId, ConfigLayer] = field(default_factory=lambda: MappingProxyType({}))

    def matches(self, full_name: str) -> bool:
        return fnmatch.fnmatchcase(full_name, self.pattern)

    @property
    def specificity(self) -> tuple[bool, int]:
        """Exact names rank above globs; among globs, more literal text ranks higher."""

        literal = _GLOB_RE.sub("", self.pattern)
        return literal == self.pattern, len(literal)


@dataclass(frozen=True, slots=True)
class SmellConfig:
    """
    Validated detector overrides: global layers plus scope-bound ones.

    Layers are returned outermost first; the resolution stack lets later
    layers win. Scope overrides matching the same name are ordered by
    specificity, so an exact name beats a glob whatever the declaration order.
    """

    common: ConfigLayer | None = None
    detectors: Mapping[DetectorId, ConfigLayer] = field(default_factory=lambda: MappingProxyType({}))
    scopes: tuple[ScopeOverride, ...] = ()

    def global_layers(self, detector_id: DetectorId) -> list[ConfigLayer]:
        layers = [self.common, self.detectors.get(detector_id)]
        return [layer for layer in layers if layer is not None]

    def scope_layers(self, full_name: str, detector_id: DetectorId) -> list[ConfigLayer]:
        layers: list[ConfigLayer] = []
        matched = sorted((s for s in self.scopes if s.matches(full_name)), key=lambda s: s.specificity)
        for scope in matched:
            if scope.common is not None:
                layers.append(scope.common)
            layer = scope.detectors.get(detector_id)
            if layer is not None:
                layers.append(layer)
        return layers


def parse_smell_config(
    raw: Mapping[str, Any] | None,
    *,
    catalog: Mapping[DetectorId, Mapping[str, Any]],
    field_name: str = "detectors",
) -> SmellConfig:
    """
    Build a `SmellConfig` from an already-deserialized override mapping.

    `catalog` maps each known detector id to its default configuration; it
    doubles as the schema for that detector's options.

    Shape::

        {
          "exclude": ["DataClump"],
          "UtilityFunction": {"max_helper_calls": 1},
          "scopes": {"billing.*": {"force": ["DataClump"], "LongParameterList": {"max_params": 5}}},
        }
    """

    if raw is None:
        return SmellConfig()
    if not isinstance(raw, Mapping):
        raise ConfigError(f"`{field_name}` must be a table.")

    common, detectors = _parse_level(raw, catalog=catalog, pattern=None, field_name=field_name, allow_scopes=True)

    scopes_raw = raw.get(SCOPES_KEY, {})
    if not isinstance(scopes_raw, Mapping):
        raise ConfigError(f"`{field_name}.{SCOPES_KEY}` must be a table.")
    scopes: list[ScopeOverride] = []
    for pattern, table in scopes_raw.items():
        scope_field = f"{field_name}.{SCOPES_KEY}.{pattern}"
        if not isinstance(pattern, str) or not pattern.strip():
            raise ConfigError(f"`{field_name}.{SCOPES_KEY}` keys must be non-empty strings.")
        if not isinstance(table, Mapping):
            raise ConfigError(f"`{scope_field}` must be a table.")
        scope_common, scope_detectors = _parse_level(
            table, catalog=catalog, pattern=pattern.strip(), field_name=scope_field, allow_scopes=False
        )
        scopes.append(ScopeOverride(pattern=pattern.strip(), common=scope_common, detectors=scope_detectors))

    return SmellConfig(common=common, detectors=detectors, scopes=tuple(scopes))


def _parse_level(
    table: Mapping[str, Any],
    *,
    catalog: Mapping[DetectorId, Mapping[str, Any]],
    pattern: str | None,
    field_name: str,
    allow_scopes: bool,
) -> tuple[ConfigLayer | None, Mapping[DetectorId, ConfigLayer]]:
    common_values: dict[str, Any] = {}
    detectors: dict[DetectorId, ConfigLayer] = {}

    for key, value in table.items():
        if key == SCOPES_KEY:
            if not allow_scopes:
                raise ConfigError(f"`{field_name}.{SCOPES_KEY}` cannot be nested inside a scope.")
            continue
        if key in (EXCLUDE_KEY, FORCE_KEY):
            ids = _validate_str_list(value, field_name=f"{field_name}.{key}")
            common_values[key] = expand_detector_ids(ids, known=catalog, field_name=f"{field_name}.{key}")
            continue
        if key == ENABLED_KEY:
            common_values[key] = value
            continue
        if key not in catalog:
            known = ", ".join(sorted(catalog))
            raise ConfigError(f"`{field_name}.{key}` names an unknown detector (known: {known}).")
        if not isinstance(value, Mapping):
            raise ConfigError(f"`{field_name}.{key}` must be a table.")
        layer_values = dict(value)
        for list_key in (EXCLUDE_KEY, FORCE_KEY):
            if list_key in layer_values:
                list_field = f"{field_name}.{key}.{list_key}"
                ids = _validate_str_list(layer_values[list_key], field_name=list_field)
                expanded = expand_detector_ids(ids, known=catalog, field_name=list_field)
                # A detector table only reaches its own stack.
                foreign = sorted(set(expanded) - {key})
                if foreign:
                    raise ConfigError(
                        f"`{list_field}` may only name {key}; move {', '.join(foreign)} to `{field_name}.{list_key}`."
                    )
                layer_values[list_key] = expanded
        detectors[key] = ConfigLayer(layer_values, pattern=pattern, schema=catalog[key], origin=f"{field_name}.{key}")

    common = ConfigLayer(common_values, pattern=pattern, origin=field_name) if common_values else None
    return common, MappingProxyType(detectors)


def expand_detector_ids(
    ids: Iterable[str],
    *,
    known: Iterable[DetectorId],
    field_name: str,
) -> tuple[DetectorId, ...]:
    """Resolve `all` and case-insensitive spellings to canonical detector ids."""

    canonical = {d.lower(): d for d in known}
    out: list[DetectorId] = []
    for raw_id in ids:
        token = raw_id.strip()
        if not token:
            continue
        if token.lower() == ALL_DETECTORS:
            out.extend(sorted(canonical.values()))
            continue
        resolved = canonical.get(token.lower())
        if resolved is None:
            raise ConfigError(f"`{field_name}` names an unknown detector: {token!r}.")
        out.append(resolved)
    return tuple(dict.fromkeys(out))


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SmellscopeConfig:
    workers: int | None = None
    plugins: tuple[str, ...] = ()
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    # Raw override mapping; resolved by `parse_smell_config` once plugin
    # detectors are registered.
    detectors: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


def load_config(project_dir: Path | str = ".") -> SmellscopeConfig:
    """
    Load smellscope configuration from `pyproject.toml` within `project_dir`.

    If no file / no `[tool.smellscope]` table exists, returns defaults.
    """

    pyproject_path = Path(project_dir) / "pyproject.toml"
    if not pyproject_path.exists():
        return SmellscopeConfig()

    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {pyproject_path}: {exc}") from exc

    tool_table = data.get("tool", {})
    if not isinstance(tool_table, dict):
        return SmellscopeConfig()

    table = tool_table.get("smellscope", {})
    if not isinstance(table, dict) or not table:
        return SmellscopeConfig()

    return parse_smellscope_table(table)


def parse_smellscope_table(table: Mapping[str, Any]) -> SmellscopeConfig:
    workers = table.get("workers")
    if workers is not None and (isinstance(workers, bool) or not isinstance(workers, int) or workers < 0):
        raise ConfigError("`tool.smellscope.workers` must be an integer >= 0.")

    plugins = _validate_str_list(table.get("plugins", []), field_name="tool.smellscope.plugins")

    ignore_raw = table.get("ignore", {})
    if not isinstance(ignore_raw, dict):
        raise ConfigError("`tool.smellscope.ignore` must be a table.")
    ignore = IgnoreConfig(paths=_validate_str_list(ignore_raw.get("paths", []), field_name="tool.smellscope.ignore.paths"))

    detectors = table.get("detectors", {})
    if not isinstance(detectors, dict):
        raise ConfigError("`tool.smellscope.detectors` must be a table.")

    return SmellscopeConfig(
        workers=workers,
        plugins=tuple(p for p in plugins if p),
        ignore=ignore,
        detectors=MappingProxyType(detectors),
    )


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches any ignore patterns.

    Patterns are evaluated against the POSIX-style path relative to
    `project_root`: a trailing "/" marks a directory prefix, patterns
    without a slash match basenames, others match the full relative path.
    """

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        return False

    rel_posix = relative.as_posix()
    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/").removeprefix("./")
        if not pattern:
            continue
        if pattern.endswith("/"):
            if rel_posix.startswith(pattern):
                return True
        elif "/" in pattern:
            if fnmatch.fnmatch(rel_posix, pattern):
                return True
        elif fnmatch.fnmatch(relative.name, pattern) or fnmatch.fnmatch(rel_posix, pattern):
            return True
    return False
