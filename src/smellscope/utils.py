from __future__ import annotations

from pathlib import Path


def safe_relpath(path: Path, root: Path) -> str:
    """
    POSIX-style path of `path` relative to `root`, used as a unit description.

    Falls back to `path.as_posix()` when the path is outside the root or
    cannot be resolved.
    """

    try:
        resolved_path = path.resolve()
        resolved_root = root.resolve()
    except OSError:
        return path.as_posix()

    try:
        return resolved_path.relative_to(resolved_root).as_posix()
    except ValueError:
        return path.as_posix()
