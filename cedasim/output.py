"""Rich console output and markdown file save for debate transcripts."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from cedasim.models import (
    SECTORS,
    FramedIssue,
    MetaAnalysis,
    SimulationState,
)
from cedasim.timeline import EventType, TimelineEvent, project_timeline

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_SIDE_STYLE = {"pro": "blue", "con": "red", "user": "green", "center": "magenta"}
_SIDE_NAME = {"pro": "Affirmative", "con": "Negative", "user": "You", "center": ""}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def print_issue(issue: FramedIssue) -> None:
    body = (
        f"[bold]{issue.refined_issue}[/bold]\n\n"
        f"{issue.definition}\n\n"
        f"[dim]Scope:[/dim] {issue.scope.country or '-'} / {issue.scope.timeframe or '-'}\n"
        f"[blue]Pro:[/blue] {issue.positions.pro}\n"
        f"[red]Con:[/red] {issue.positions.con}"
    )
    console.print(Panel(body, title="Debate Issue", border_style="cyan"))


def print_evidence_board(state: SimulationState) -> None:
    """Evidence count and mean score per sector."""
    evidence = state.evidence_board or ()
    table = Table(title="Evidence Board")
    table.add_column("Sector")
    table.add_column("Status")
    table.add_column("Items", justify="right")
    table.add_column("Avg score", justify="right")
    for sector in SECTORS:
        items = [e for e in evidence if e.sector is sector]
        avg = f"{sum(e.score for e in items) / len(items):.0f}" if items else "-"
        table.add_row(sector.value, state.sector_statuses[sector].value, str(len(items)), avg)
    console.print(table)


def print_event(event: TimelineEvent) -> None:
    """Render one timeline event; loading placeholders are not printed."""
    style = _SIDE_STYLE.get(event.side, "white")
    if event.type is EventType.LOADING:
        return
    if event.type is EventType.DIVIDER:
        console.print(Rule(f"[bold {style}]{event.content}[/bold {style}]"))
        return
    if event.type is EventType.ANALYZING:
        console.print(Text(event.content, style="dim italic"))
        return
    if event.type is EventType.USER_QUERY:
        console.print(Panel(event.content, title="[bold]Your question[/bold]", border_style=style))
        return

    parts: list[str] = []
    if event.defense:
        parts.append(f"[italic]Defense:[/italic] {event.defense}\n")
    parts.append(event.content)
    if event.meta.get("value"):
        parts.append(f"\n[dim]Value criterion:[/dim] {event.meta['value']}")
    if event.evidence:
        parts.append(f"\n[dim]Evidence: {', '.join(event.evidence)}[/dim]")

    title = event.title or event.label or _SIDE_NAME.get(event.side, "")
    if event.ref_id:
        title = f"Re: {event.ref_id}"
    console.print(
        Panel(
            "\n".join(parts),
            title=f"[bold]{_SIDE_NAME.get(event.side, '')}[/bold] {title}",
            subtitle=event.sector or None,
            border_style=style,
        )
    )


def print_analysis(analysis: MetaAnalysis) -> None:
    """Print the meta-analysis to the console using Rich markdown."""
    console.print(Rule("[bold green]Meta-Analysis[/bold green]"))
    console.print(Markdown(_analysis_markdown(analysis)))


def _bullets(items: tuple[str, ...]) -> list[str]:
    return [f"- {item}" for item in items] or ["- (none)"]


def _analysis_markdown(analysis: MetaAnalysis) -> str:
    lines: list[str] = ["### Issue map", ""]
    for sector, points in analysis.issue_map.items():
        lines.append(f"**{sector}**")
        lines.append("")
        for p in points:
            lines.append(f"- *{p.issue}*: Pro: {p.pro_argument} / Con: {p.con_argument}")
            if p.rebuttal_note:
                lines.append(f"  - {p.rebuttal_note}")
        lines.append("")
    evaluation = analysis.evidence_evaluation
    lines += [
        f"### Evidence evaluation ({evaluation.score:g})",
        "",
        evaluation.description,
        "",
        "### Key agreements",
        *_bullets(analysis.key_agreements),
        "",
        "### Key disagreements",
        *_bullets(analysis.key_disagreements),
        "",
        "### Uncertainties",
        *_bullets(analysis.uncertainties),
        "",
        "### Reflection prompts",
        *_bullets(analysis.reflection_prompts),
    ]
    return "\n".join(lines)


def _event_markdown(event: TimelineEvent) -> list[str]:
    if event.type is EventType.DIVIDER:
        return [f"## {event.content}", ""]
    if event.type is EventType.USER_QUERY:
        return [f"### Question: {event.content}", ""]
    speaker = _SIDE_NAME.get(event.side, event.side)
    heading = event.title or event.label or ""
    if event.ref_id:
        heading = f"Rebuttal to \"{event.ref_id}\""
    lines = [f"### {speaker}: {heading}".rstrip(": "), ""]
    if event.defense:
        lines += [f"*Defense:* {event.defense}", ""]
    lines += [event.content, ""]
    if event.evidence:
        lines += [f"*Evidence: {', '.join(event.evidence)}*", ""]
    return lines


def save_to_file(state: SimulationState, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the debate transcript, evidence board and analysis as markdown.

    Args:
        state: Final simulation state.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the topic.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(state.original_topic)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    issue = state.framed_issue
    evidence = state.evidence_board or ()
    lines: list[str] = [
        f"# CEDA Debate: {(issue.refined_issue if issue else state.original_topic)[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Topic:** {state.original_topic}",
        f"**Status:** {state.status.value}",
    ]
    if issue is not None:
        lines += [
            f"**Pro position:** {issue.positions.pro}",
            f"**Con position:** {issue.positions.con}",
        ]
    if state.error:
        lines.append(f"**Error:** {state.error}")
    lines += ["", "---", "", "## Evidence", ""]
    for item in evidence:
        lines.append(f"- **{item.id}** ({item.reliability}, {item.score}) {item.content}: {item.detail} <{item.url}>")
    lines.append("")

    for event in project_timeline(state, step_ready=True):
        if event.type in (EventType.LOADING, EventType.ANALYZING):
            continue
        lines += _event_markdown(event)

    if state.analysis is not None:
        lines += ["## Meta-Analysis", "", _analysis_markdown(state.analysis), ""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath