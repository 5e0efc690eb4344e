from __future__ import annotations

from pathlib import Path

import pytest

from smellscope.audit import audit_path
from smellscope.config import ConfigError
from smellscope.scanner import SMELLSCOPE_WORKERS_ENV

SMELLY = """
class Greeter:
    \"\"\"Says hello.\"\"\"

    def greet(self, name):
        return format_name(name).upper()
"""


def _write(root: Path, rel: str, text: str) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text.lstrip(), encoding="utf-8")


def test_audit_path_builds_one_session_per_file(tmp_path: Path) -> None:
    _write(tmp_path, "pyproject.toml", "[tool.smellscope]\n")
    _write(tmp_path, "src/greeter.py", SMELLY)
    _write(tmp_path, "src/clean.py", "VALUE = 1\n")
    _write(tmp_path, "src/broken.py", "def broken(:\n")

    result = audit_path(tmp_path)

    assert result.files_analyzed == 2
    assert len(result.files) == 3
    assert [s.desc for s in result.sessions.sessions()] == ["src/clean.py", "src/greeter.py"]
    assert [(w.source, w.smell_type, w.context) for w in result.sessions.warnings()] == [
        ("src/greeter.py", "UtilityFunction", "Greeter.greet"),
    ]


def test_audit_applies_pyproject_overrides(tmp_path: Path) -> None:
    _write(
        tmp_path,
        "pyproject.toml",
        """
[tool.smellscope.detectors.scopes."Greeter"]
exclude = ["UtilityFunction"]
""",
    )
    _write(tmp_path, "greeter.py", SMELLY)

    result = audit_path(tmp_path)
    assert result.sessions.has_smells() is False


def test_audit_rejects_invalid_overrides(tmp_path: Path) -> None:
    _write(tmp_path, "pyproject.toml", "[tool.smellscope.detectors.UtilityFunction]\nmax_helper_calls = 'x'\n")
    _write(tmp_path, "greeter.py", SMELLY)

    with pytest.raises(ConfigError, match="tool.smellscope.detectors.UtilityFunction.max_helper_calls"):
        audit_path(tmp_path)


def test_audit_reports_plugin_failures(tmp_path: Path) -> None:
    _write(tmp_path, "pyproject.toml", '[tool.smellscope]\nplugins = ["smellscope_missing_plugin_987"]\n')
    with pytest.raises(RuntimeError, match="Failed to load smellscope plugins"):
        audit_path(tmp_path)


def test_audit_parallel_matches_serial(tmp_path: Path, monkeypatch) -> None:
    _write(tmp_path, "pyproject.toml", "[tool.smellscope]\n")
    for name in ("alpha", "beta", "gamma", "delta"):
        _write(tmp_path, f"src/{name}.py", SMELLY)

    monkeypatch.setenv(SMELLSCOPE_WORKERS_ENV, "1")
    serial = audit_path(tmp_path)

    monkeypatch.setenv(SMELLSCOPE_WORKERS_ENV, "4")
    parallel = audit_path(tmp_path)

    assert serial.sessions.warnings() == parallel.sessions.warnings()
    assert serial.sessions.smell_count() == 4
