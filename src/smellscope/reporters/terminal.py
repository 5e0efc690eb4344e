from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from smellscope import __version__
from smellscope.engine.types import SmellWarning


def render_terminal(
    warnings: Sequence[SmellWarning],
    *,
    files_analyzed: int,
    console: Console,
    show_details: bool = True,
) -> None:
    header = Text()
    header.append("smellscope ", style="bold")
    header.append(f"v{__version__}", style="dim")

    console.print(
        Panel(
            header,
            subtitle=f"Analyzed {files_analyzed} files",
            border_style="cyan",
        )
    )

    if show_details:
        by_source: dict[str, list[SmellWarning]] = defaultdict(list)
        for w in warnings:
            by_source[w.source or "<unknown>"].append(w)

        for source in sorted(by_source):
            console.print(Text(source, style="bold"))
            for w in sorted(by_source[source], key=SmellWarning.sort_key):
                _print_warning(console, w)
            console.print()

    _print_summary(warnings, console=console)


def _print_warning(console: Console, w: SmellWarning) -> None:
    line = Text()
    line.append("  ⚠ ", style="yellow")
    line.append(w.smell_type, style="bold")
    if w.lines:
        line.append(f"  ({', '.join(str(n) for n in w.lines)})", style="dim")
    line.append(f"  {w.context} {w.message}")
    console.print(line)


def _print_summary(warnings: Sequence[SmellWarning], *, console: Console) -> None:
    console.print(Text("─" * 60, style="dim"))
    if not warnings:
        console.print(Text("No smells found.", style="bold green"))
    else:
        console.print(Text(f"{len(warnings)} smell(s)", style="bold"))
        by_category = Counter(w.category for w in warnings)
        breakdown = ", ".join(f"{name}={count}" for name, count in sorted(by_category.items()))
        console.print(Text(f"By category: {breakdown}", style="dim"))
    console.print(Text("─" * 60, style="dim"))
