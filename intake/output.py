"""Rich console output for terminal interviews and stored records."""

import logging

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from intake.answers import QUALITY_THRESHOLD, is_satisfied
from intake.models import AnswerState, Question, SessionRecord

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _quality_style(quality: int) -> str:
    if quality >= 4:
        return "green"
    if quality >= QUALITY_THRESHOLD:
        return "yellow"
    return "red"


def _preview(text: str, words: int = 12) -> str:
    """Return the first N words of an answer."""
    all_words = text.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def progress_line(answers: AnswerState, questions: list[Question]) -> str:
    done = sum(1 for q in questions if is_satisfied(answers.get(q.key)))
    return f"{done}/{len(questions)} answered"


def answers_table(answers: AnswerState, questions: list[Question], focus: str | None = None) -> Table:
    table = Table(title=progress_line(answers, questions), show_lines=False)
    table.add_column("", width=1)
    table.add_column("Question")
    table.add_column("Answer")
    table.add_column("Quality", justify="right")
    for q in questions:
        answer = answers.get(q.key)
        marker = ">" if q.id == focus else ""
        if answer is None:
            table.add_row(marker, q.text, Text("-", style="dim"), "")
        else:
            table.add_row(
                marker,
                q.text,
                _preview(answer.text),
                Text(str(answer.quality), style=_quality_style(answer.quality)),
            )
    return table


def print_assistant(text: str) -> None:
    console.print(Panel(text, title="[bold cyan]Interviewer[/bold cyan]", border_style="cyan"))


def print_answers(answers: AnswerState, questions: list[Question], focus: str | None = None) -> None:
    console.print(answers_table(answers, questions, focus))


def print_summary(summary: str, tags: dict[str, str]) -> None:
    console.print(Rule("[bold green]Interview Summary[/bold green]"))
    if tags:
        console.print(
            Text(
                f"Business unit: {tags.get('business_unit') or '?'} | "
                f"Category: {tags.get('category') or '?'} | "
                f"Urgency: {tags.get('urgency') or '?'}",
                style="dim",
            )
        )
    console.print(Markdown(summary))


def print_records(records: list[SessionRecord]) -> None:
    if not records:
        console.print("[dim]No stored records.[/dim]")
        return
    table = Table(title=f"{len(records)} stored interview(s)")
    table.add_column("Created")
    table.add_column("Session")
    table.add_column("Business unit")
    table.add_column("Category")
    table.add_column("Urgency")
    for r in records:
        table.add_row(
            r.created_at.strftime("%Y-%m-%d %H:%M"),
            r.session_id,
            r.tags.get("business_unit", ""),
            r.tags.get("category", ""),
            r.tags.get("urgency", ""),
        )
    console.print(table)
