from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

ALL = "all"


@dataclass(frozen=True, slots=True)
class Suppressions:
    """
    Scope directives extracted from source comments.

    Supported directives (case-insensitive keywords, detector ids as written):
    - `smellscope: disable-file=UtilityFunction` (the whole unit)
    - `smellscope: disable=UtilityFunction,DataClump` (the scope opened on that line)
    - `smellscope: disable-next-line=UtilityFunction` (the scope opened on the next line)
    - `smellscope: force=...` / `force-next-line=...` (re-enable inside an excluded scope)
    """

    disabled_in_file: frozenset[str]
    disabled_on_line: Mapping[int, frozenset[str]]
    forced_on_line: Mapping[int, frozenset[str]]

    def disabled_at(self, line: int | None) -> frozenset[str]:
        if line is None:
            return frozenset()
        return self.disabled_on_line.get(line, frozenset())

    def forced_at(self, line: int | None) -> frozenset[str]:
        if line is None:
            return frozenset()
        return self.forced_on_line.get(line, frozenset())

    def __bool__(self) -> bool:
        return bool(self.disabled_in_file or self.disabled_on_line or self.forced_on_line)


_IDS = r"(?P<ids>[a-z0-9_]+(?:\s*,\s*[a-z0-9_]+)*)"
_DISABLE_FILE_RE = re.compile(r"smellscope:\s*disable[-_]?file\s*=\s*" + _IDS, re.IGNORECASE)
_LINE_RE = re.compile(r"smellscope:\s*(?P<verb>disable|force)(?P<next>-next-line)?\s*=\s*" + _IDS, re.IGNORECASE)


def parse_suppressions(lines: Sequence[str]) -> Suppressions:
    disabled_in_file: set[str] = set()
    disabled_on_line: dict[int, set[str]] = {}
    forced_on_line: dict[int, set[str]] = {}

    for idx, line in enumerate(lines, start=1):
        if "smellscope" not in line.lower():
            continue

        match_file = _DISABLE_FILE_RE.search(line)
        if match_file:
            disabled_in_file.update(_parse_ids(match_file.group("ids")))
            continue

        for match in _LINE_RE.finditer(line):
            target = idx + 1 if match.group("next") else idx
            bucket = disabled_on_line if match.group("verb").lower() == "disable" else forced_on_line
            bucket.setdefault(target, set()).update(_parse_ids(match.group("ids")))

    return Suppressions(
        disabled_in_file=frozenset(sorted(disabled_in_file)),
        disabled_on_line=_freeze(disabled_on_line),
        forced_on_line=_freeze(forced_on_line),
    )


def _freeze(by_line: dict[int, set[str]]) -> Mapping[int, frozenset[str]]:
    return MappingProxyType({line: frozenset(ids) for line, ids in by_line.items()})


def _parse_ids(value: str) -> set[str]:
    ids = set()
    for token in re.split(r"[,\s]+", value.strip()):
        if not token:
            continue
        ids.add(ALL if token.lower() == ALL else token)
    return ids
