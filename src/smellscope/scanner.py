from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from smellscope.config import SmellscopeConfig, load_config, path_is_ignored
from smellscope.engine.context import SourceError, SourceUnit
from smellscope.utils import safe_relpath

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    ".venv",
    "venv",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
    "node_modules",
    "dist",
    "build",
    "__pycache__",
}

PYTHON_SUFFIXES = {".py", ".pyi"}

SMELLSCOPE_WORKERS_ENV = "SMELLSCOPE_WORKERS"
DEFAULT_MAX_WORKERS = 32


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_path: Path
    config: SmellscopeConfig


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"auto" fall back to the default
    - Values <= 0 or non-integers fall back to the default
    - Values above `max_workers` are clamped
    """

    cpu = os.cpu_count() or 1
    resolved_default = min(max(1, default if default is not None else cpu), max_workers)
    if raw_value is None:
        return resolved_default

    normalized = raw_value.strip().lower()
    if not normalized or normalized in {"auto", "default"}:
        return resolved_default

    try:
        workers = int(normalized)
    except ValueError:
        return resolved_default

    if workers <= 0:
        return resolved_default
    return min(workers, max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(SMELLSCOPE_WORKERS_ENV), default=default)


def prepare_target(scan_path: Path) -> ScanTarget:
    """
    Resolve the project root and load its configuration.

    The project root is the closest directory (starting at `scan_path`)
    that contains a `pyproject.toml`; without one, the scanned directory
    itself (or the file's parent).
    """

    scan_path = scan_path.resolve()
    project_root = _detect_project_root(scan_path)
    config = load_config(project_root)
    return ScanTarget(project_root=project_root, scan_path=scan_path, config=config)


def discover_files(target: ScanTarget) -> list[Path]:
    scan_path = target.scan_path
    root = target.project_root
    ignore_patterns = target.config.ignore.paths

    if scan_path.is_file():
        if scan_path.suffix.lower() not in PYTHON_SUFFIXES:
            return []
        if path_is_ignored(scan_path, project_root=root, ignore_patterns=ignore_patterns):
            return []
        return [scan_path]

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(scan_path, topdown=True):
        dirnames[:] = [d for d in dirnames if d not in DEFAULT_SKIP_DIRS]
        base = Path(dirpath)

        for filename in filenames:
            path = base / filename
            if path.suffix.lower() not in PYTHON_SUFFIXES:
                continue
            if path_is_ignored(path, project_root=root, ignore_patterns=ignore_patterns):
                continue
            files.append(path)

    return sorted(set(files))


def load_source(path: Path, *, project_root: Path) -> SourceUnit | None:
    try:
        return SourceUnit.from_path(path, desc=safe_relpath(path, project_root))
    except SourceError as exc:
        logger.warning("skipping %s", exc)
        return None


def load_sources(
    paths: list[Path],
    *,
    project_root: Path,
    workers: int = 1,
) -> list[SourceUnit]:
    """
    Parse `paths` into source units, optionally in parallel.

    Ordering is deterministic: units follow the input `paths` order, with
    unreadable and unparsable files left out (and logged).
    """

    units: list[SourceUnit] = []
    if workers <= 1 or len(paths) <= 1:
        for path in paths:
            unit = load_source(path, project_root=project_root)
            if unit is not None:
                units.append(unit)
        return units

    max_workers = min(max(1, workers), len(paths))
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        load = partial(load_source, project_root=project_root)
        for unit in executor.map(load, paths):
            if unit is not None:
                units.append(unit)
    return units


def _detect_project_root(start: Path) -> Path:
    base = start if start.is_dir() else start.parent
    for candidate in [base, *base.parents]:
        if (candidate / "pyproject.toml").exists():
            return candidate
    return base
