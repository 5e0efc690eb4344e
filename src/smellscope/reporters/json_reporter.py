from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from smellscope import __version__
from smellscope.engine.types import SmellWarning

REPORT_SCHEMA_VERSION = 1


def render_json(warnings: Sequence[SmellWarning], *, files_analyzed: int) -> str:
    payload = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": {"name": "smellscope", "version": __version__},
        "files_analyzed": files_analyzed,
        "smell_count": len(warnings),
        "smells": [warning_to_dict(w) for w in warnings],
    }
    return json.dumps(payload, indent=2, sort_keys=False)


def warning_to_dict(w: SmellWarning) -> dict[str, Any]:
    return {
        "smell_type": w.smell_type,
        "category": w.category,
        "source": w.source,
        "context": w.context,
        "lines": list(w.lines),
        "message": w.message,
        "parameters": _plain(w.parameters),
    }


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, list | tuple | set | frozenset):
        return [_plain(v) for v in value]
    return value
