from __future__ import annotations

import json

from rich.console import Console

from smellscope import __version__
from smellscope.engine.types import SmellWarning
from smellscope.reporters.json_reporter import render_json
from smellscope.reporters.terminal import render_terminal

WARNINGS = (
    SmellWarning(
        smell_type="UtilityFunction",
        category="LowCohesion",
        context="Greeter.greet",
        lines=[3],
        message="doesn't depend on instance state",
        parameters={"name": "Greeter.greet"},
        source="src/greeter.py",
    ),
    SmellWarning(
        smell_type="DuplicateMethodBody",
        category="Duplication",
        context="Pricing.gross",
        lines=[2, 8],
        message="has the same body as Pricing.net",
        parameters={"duplicates": ["Pricing.net"], "count": 2},
        source="src/pricing.py",
    ),
)


def test_render_json_payload() -> None:
    data = json.loads(render_json(WARNINGS, files_analyzed=2))

    assert data["tool"] == {"name": "smellscope", "version": __version__}
    assert data["files_analyzed"] == 2
    assert data["smell_count"] == 2
    assert data["smells"][0] == {
        "smell_type": "UtilityFunction",
        "category": "LowCohesion",
        "source": "src/greeter.py",
        "context": "Greeter.greet",
        "lines": [3],
        "message": "doesn't depend on instance state",
        "parameters": {"name": "Greeter.greet"},
    }
    assert data["smells"][1]["parameters"] == {"duplicates": ["Pricing.net"], "count": 2}


def test_render_terminal_groups_by_source() -> None:
    console = Console(record=True, width=120)
    render_terminal(WARNINGS, files_analyzed=2, console=console)
    out = console.export_text()

    assert "Analyzed 2 files" in out
    assert "src/greeter.py" in out
    assert "Greeter.greet doesn't depend on instance state" in out
    assert "(2, 8)" in out
    assert out.index("src/greeter.py") < out.index("src/pricing.py")
    assert "2 smell(s)" in out
    assert "Duplication=1, LowCohesion=1" in out


def test_render_terminal_summary_only() -> None:
    console = Console(record=True, width=120)
    render_terminal(WARNINGS, files_analyzed=2, console=console, show_details=False)
    out = console.export_text()
    assert "Greeter.greet" not in out
    assert "2 smell(s)" in out


def test_render_terminal_without_smells() -> None:
    console = Console(record=True, width=120)
    render_terminal((), files_analyzed=0, console=console)
    assert "No smells found." in console.export_text()
