from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from smellscope.config import ConfigError, SmellConfig, parse_smell_config
from smellscope.detectors.plugins import PluginLoadError, load_plugin_detectors
from smellscope.detectors.registry import all_detectors, default_configs, set_extra_detectors
from smellscope.engine.session import AnalysisSession, SessionSet
from smellscope.scanner import ScanTarget, discover_files, load_sources, prepare_target, worker_count_from_env

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditResult:
    target: ScanTarget
    files: tuple[Path, ...]
    sessions: SessionSet

    @property
    def files_analyzed(self) -> int:
        return len(self.sessions.sessions())


def audit_path(scan_path: Path, *, workers: int | None = None) -> AuditResult:
    """
    Analyze every Python file under `scan_path` as one composite.

    Plugin detectors named in the project configuration are registered
    before the override table is validated, so overrides may configure them.
    """

    target = prepare_target(scan_path)
    files = discover_files(target)
    return audit_files(target, files=files, workers=workers)


def audit_files(target: ScanTarget, *, files: list[Path], workers: int | None = None) -> AuditResult:
    try:
        plugin_detectors = load_plugin_detectors(target.config.plugins)
    except PluginLoadError as exc:
        raise RuntimeError(f"Failed to load smellscope plugins: {exc}") from exc
    set_extra_detectors(plugin_detectors)

    smell_config = build_smell_config(target)
    if workers is None:
        workers = target.config.workers or worker_count_from_env()

    units = load_sources(files, project_root=target.project_root, workers=workers)
    detectors = all_detectors()
    sessions = SessionSet(
        (AnalysisSession(unit, config=smell_config, detectors=detectors) for unit in units),
        desc=target.scan_path.as_posix(),
    )
    logger.debug("analyzing %d file(s) with %d worker(s)", len(sessions), workers)
    sessions.analyze(workers=workers)

    return AuditResult(target=target, files=tuple(files), sessions=sessions)


def build_smell_config(target: ScanTarget) -> SmellConfig:
    try:
        return parse_smell_config(target.config.detectors, catalog=default_configs(), field_name="tool.smellscope.detectors")
    except ConfigError as exc:
        raise ConfigError(f"{target.project_root / 'pyproject.toml'}: {exc}") from exc
