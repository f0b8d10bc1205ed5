"""
Typer CLI for the lingua progression engine.

Commands:
    lingua profile German --level B1-B2   - Set the learner profile
    lingua roadmap roadmap.json           - Load a learning roadmap
    lingua lessons                        - Show the roadmap with completion marks
    lingua next                           - Recommend the next lesson
    lingua begin L1                       - Enter the first section of a lesson
    lingua submit L1 grammar 1101111011   - Submit a section run
    lingua review Apfel --correct         - Record a word repetition
    lingua due                            - List words due for review
    lingua new-words                      - List words on stage 0
    lingua mistake grammar "..." "..."    - Archive a mistake
    lingua mistakes                       - Show the mistake archive
    lingua stats                          - Show learning statistics

Usage:
    lingua --help
    lingua --learner anna next
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from config import get_settings
from src.integrations.content_client import HttpContentGenerator
from src.progression import (
    Decision,
    JsonStateStore,
    LearnerProfile,
    LearningRoadmap,
    ProficiencyLevel,
    ProgressEngine,
    ProgressionError,
    Reason,
    SectionKind,
)

app = typer.Typer(
    name="lingua",
    help="lingua: adaptive language-learning progression engine",
    no_args_is_help=True,
)
console = Console()

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "warning": "bold yellow",
}

_TRUE_MARKS = {"1", "y", "t", "+"}
_FALSE_MARKS = {"0", "n", "f", "-"}


# ========================================
# Context Builder (Dependency Injection)
# ========================================


class CLIContext:
    """Lazily builds the engine for the selected learner."""

    def __init__(self, learner: str | None = None):
        self.settings = get_settings()
        self.learner = learner or self.settings.default_learner
        self._engine: ProgressEngine | None = None

    @property
    def engine(self) -> ProgressEngine:
        if self._engine is None:
            self._engine = ProgressEngine(
                JsonStateStore(self.settings.state_dir),
                config=self.settings.get_engine_config(),
                content_generator=HttpContentGenerator(
                    self.settings.content_api_url,
                    timeout_ms=self.settings.content_api_timeout_ms,
                    retry_attempts=self.settings.content_api_retry_attempts,
                ),
            )
        return self._engine


def _ctx(ctx: typer.Context) -> CLIContext:
    return ctx.obj


def _fail(error: Exception) -> NoReturn:
    console.print(f"[{STYLES['incorrect']}]Error:[/] {error}")
    raise typer.Exit(1)


def parse_outcomes(raw: str) -> list[bool]:
    """
    Parse a run of outcomes like "1101", "y,n,y" or "+-+".

    Raises:
        typer.BadParameter: On an unknown mark
    """
    outcomes = []
    for mark in raw.replace(",", "").replace(" ", "").lower():
        if mark in _TRUE_MARKS:
            outcomes.append(True)
        elif mark in _FALSE_MARKS:
            outcomes.append(False)
        else:
            raise typer.BadParameter(f"Unknown outcome mark {mark!r}; use 1/0, y/n, t/f or +/-")
    return outcomes


@app.callback()
def main_callback(
    ctx: typer.Context,
    learner: Optional[str] = typer.Option(None, "--learner", "-u", help="Learner id"),
):
    """Adaptive progression engine for language learners."""
    ctx.obj = CLIContext(learner)


# ========================================
# Profile & Roadmap
# ========================================


@app.command()
def profile(
    ctx: typer.Context,
    target_language: Optional[str] = typer.Argument(None, help="Language being learned"),
    level: ProficiencyLevel = typer.Option(ProficiencyLevel.BEGINNER, "--level", "-l", help="Proficiency band"),
    goal: str = typer.Option("", "--goal", "-g", help="Personal learning goal"),
    interface: str = typer.Option("en", "--interface", "-i", help="Interface language code"),
) -> None:
    """Set the learner profile."""
    c = _ctx(ctx)
    new_profile = LearnerProfile(
        target_language=target_language or c.settings.default_target_language,
        proficiency_level=level,
        goal=goal,
        interface_language=interface,
    )
    try:
        c.engine.set_profile(c.learner, new_profile)
    except ProgressionError as e:
        _fail(e)
    console.print(
        f"[green]Profile saved:[/green] {new_profile.target_language} "
        f"({new_profile.proficiency_level.value})"
    )


@app.command()
def roadmap(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Roadmap JSON file"),
) -> None:
    """Load a learning roadmap from a JSON file."""
    c = _ctx(ctx)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        new_roadmap = LearningRoadmap.from_dict(data)
    except (OSError, KeyError, TypeError, AttributeError, ValueError) as e:
        _fail(e)

    try:
        c.engine.set_roadmap(c.learner, new_roadmap)
    except ProgressionError as e:
        _fail(e)
    console.print(f"[green]Roadmap loaded with {len(new_roadmap.lessons)} lessons[/green]")


@app.command()
def lessons(ctx: typer.Context) -> None:
    """Show the roadmap with completion marks."""
    c = _ctx(ctx)
    try:
        state = c.engine.get_state(c.learner)
    except ProgressionError as e:
        _fail(e)
    if state.roadmap is None or not state.roadmap.lessons:
        console.print("[yellow]No roadmap loaded.[/yellow]")
        return

    table = Table(title="Learning Roadmap")
    table.add_column("ID")
    table.add_column("Level")
    table.add_column("Title")
    table.add_column("Done")

    completed = state.completed
    for lesson in state.roadmap.lessons:
        mark = "[green]✓[/green]" if lesson.id in completed else ""
        table.add_row(lesson.id, lesson.level, lesson.title, mark)
    console.print(table)


# ========================================
# Progression
# ========================================


@app.command("next")
def next_lesson_cmd(ctx: typer.Context) -> None:
    """Recommend the next lesson."""
    c = _ctx(ctx)
    try:
        recommendation = c.engine.get_next_lesson(c.learner)
    except ProgressionError as e:
        _fail(e)
    if recommendation.reason == Reason.EMPTY_ROADMAP:
        console.print("[yellow]No roadmap loaded.[/yellow]")
    elif recommendation.reason == Reason.ALL_LESSONS_COMPLETE:
        console.print("[green]All lessons complete![/green]")
    else:
        lesson = recommendation.lesson
        console.print(Panel(
            f"[bold]{lesson.title}[/bold] ({lesson.level})\n\n{lesson.description}",
            title=f"Next lesson: {lesson.id}",
            border_style="cyan",
        ))


@app.command()
def begin(ctx: typer.Context, lesson_id: str = typer.Argument(..., help="Lesson id")) -> None:
    """Enter the first section of a lesson."""
    c = _ctx(ctx)
    try:
        position = c.engine.begin_lesson(c.learner, lesson_id)
    except (ProgressionError, ValueError) as e:
        _fail(e)
    console.print(f"[cyan]Now in[/cyan] {position.describe()}")


@app.command()
def submit(
    ctx: typer.Context,
    lesson_id: str = typer.Argument(..., help="Lesson id"),
    section: SectionKind = typer.Argument(..., help="Section kind"),
    outcomes: str = typer.Argument("", help="Outcomes, e.g. 1101110111"),
) -> None:
    """Submit the outcomes of one exercise set."""
    c = _ctx(ctx)
    try:
        result = c.engine.submit_section_result(c.learner, lesson_id, section, parse_outcomes(outcomes))
    except ProgressionError as e:
        _fail(e)

    if result.decision == Decision.NOT_EVALUATED:
        console.print("[yellow]No outcomes submitted; nothing to evaluate.[/yellow]")
        return

    score = f"{result.percentage:.0f}%"
    if result.decision == Decision.RETRY:
        console.print(f"[{STYLES['incorrect']}]{score}[/] - repeat {section.value} with a new exercise set")
    elif result.decision == Decision.ADVANCE_SECTION:
        console.print(f"[{STYLES['correct']}]{score}[/] - continue with {result.next_section.value}")
    else:
        console.print(f"[{STYLES['correct']}]{score}[/] - lesson {lesson_id} finished")
        if result.next_lesson is not None:
            console.print(f"Next lesson: [bold]{result.next_lesson.id}[/bold] {result.next_lesson.title}")
        else:
            console.print("[green]All lessons complete![/green]")


@app.command()
def complete(ctx: typer.Context, lesson_id: str = typer.Argument(..., help="Lesson id")) -> None:
    """Mark a lesson as completed."""
    c = _ctx(ctx)
    try:
        c.engine.mark_lesson_complete(c.learner, lesson_id)
    except ProgressionError as e:
        _fail(e)
    console.print(f"[green]Lesson {lesson_id} marked complete[/green]")


@app.command()
def uncomplete(ctx: typer.Context, lesson_id: str = typer.Argument(..., help="Lesson id")) -> None:
    """Remove a lesson from the completed set."""
    c = _ctx(ctx)
    try:
        c.engine.unmark_lesson_complete(c.learner, lesson_id)
    except ProgressionError as e:
        _fail(e)
    console.print(f"[green]Lesson {lesson_id} marked not complete[/green]")


@app.command()
def content(
    ctx: typer.Context,
    lesson_id: str = typer.Argument(..., help="Lesson id"),
    section: SectionKind = typer.Argument(..., help="Section kind"),
    topic: Optional[str] = typer.Option(None, "--topic", help="Override the lesson topic"),
) -> None:
    """Generate material for one section of a lesson."""
    c = _ctx(ctx)
    try:
        material = c.engine.generate_section_content(c.learner, lesson_id, section, topic)
    except ProgressionError as e:
        _fail(e)

    console.print(Panel(material.explanation or "(no explanation)", title=material.title or material.topic))
    for index, exercise in enumerate(material.exercises, start=1):
        console.print(f"[bold]{index}.[/bold] {exercise.prompt}")
        for option in exercise.options:
            console.print(f"    - {option}")
    if material.words:
        console.print(_words_table(material.words))


@app.command("practice-done")
def practice_done(ctx: typer.Context) -> None:
    """Count one finished free-practice set."""
    c = _ctx(ctx)
    try:
        total = c.engine.record_practice_set(c.learner)
    except ProgressionError as e:
        _fail(e)
    console.print(f"[green]Practice sets completed: {total}[/green]")


# ========================================
# Vocabulary
# ========================================


@app.command()
def review(
    ctx: typer.Context,
    word: str = typer.Argument(..., help="Word that was reviewed"),
    correct: bool = typer.Option(..., "--correct/--incorrect", help="Whether the learner knew it"),
    language: Optional[str] = typer.Option(None, "--lang", help="Target language (defaults to profile)"),
    translation: str = typer.Option("", "--translation", "-t", help="Translation for new words"),
) -> None:
    """Record one word repetition."""
    c = _ctx(ctx)
    try:
        item = c.engine.submit_repetition(
            c.learner, word, correct, target_language=language, translation=translation
        )
    except (ProgressionError, ValueError) as e:
        _fail(e)

    style = STYLES["correct"] if correct else STYLES["incorrect"]
    console.print(
        f"[{style}]{item.word}[/] stage {item.learning_stage}, "
        f"next review {item.next_review_due_at:%Y-%m-%d %H:%M}"
    )


def _items_table(title: str, items) -> Table:
    table = Table(title=title)
    table.add_column("Word")
    table.add_column("Translation")
    table.add_column("Stage", justify="right")
    table.add_column("Due")
    for item in sorted(items, key=lambda i: i.next_review_due_at):
        table.add_row(item.word, item.translation, str(item.learning_stage), f"{item.next_review_due_at:%Y-%m-%d}")
    return table


def _words_table(words) -> Table:
    table = Table(title="Words")
    table.add_column("Word")
    table.add_column("Translation")
    table.add_column("Example")
    for w in words:
        table.add_row(w.word, w.translation, w.example_sentence or "")
    return table


@app.command()
def due(ctx: typer.Context) -> None:
    """List words due for review."""
    c = _ctx(ctx)
    try:
        items = c.engine.get_due_items(c.learner)
    except ProgressionError as e:
        _fail(e)
    if not items:
        console.print("[green]Nothing due.[/green]")
        return
    console.print(_items_table(f"Due for review ({len(items)})", items))


@app.command("new-words")
def new_words(ctx: typer.Context) -> None:
    """List words on stage 0."""
    c = _ctx(ctx)
    try:
        items = c.engine.get_new_items(c.learner)
    except ProgressionError as e:
        _fail(e)
    if not items:
        console.print("[green]No words on stage 0.[/green]")
        return
    console.print(_items_table(f"New words ({len(items)})", items))


# ========================================
# Mistakes
# ========================================


@app.command()
def mistake(
    ctx: typer.Context,
    module: str = typer.Argument(..., help="Section or module the mistake came from"),
    context: str = typer.Argument(..., help="Task description or sentence"),
    attempt: str = typer.Argument(..., help="What the learner answered"),
    answer: Optional[str] = typer.Option(None, "--answer", "-a", help="Correct answer"),
) -> None:
    """Archive a mistake."""
    c = _ctx(ctx)
    try:
        c.engine.record_mistake(c.learner, module, context, attempt, answer)
    except ProgressionError as e:
        _fail(e)
    console.print("[green]Mistake archived[/green]")


@app.command()
def mistakes(
    ctx: typer.Context,
    oldest_first: bool = typer.Option(False, "--oldest-first", help="Show in archive order"),
) -> None:
    """Show the mistake archive (newest first)."""
    c = _ctx(ctx)
    try:
        records = c.engine.get_mistakes(c.learner)
    except ProgressionError as e:
        _fail(e)
    if not records:
        console.print("[green]No mistakes archived.[/green]")
        return
    if not oldest_first:
        records = list(reversed(records))

    table = Table(title=f"Mistake Archive ({len(records)})")
    table.add_column("When")
    table.add_column("Module")
    table.add_column("Context")
    table.add_column("Attempt", style="red")
    table.add_column("Correct", style="green")
    for r in records:
        table.add_row(f"{r.occurred_at:%Y-%m-%d %H:%M}", r.module, r.context, r.user_attempt, r.correct_answer or "")
    console.print(table)


@app.command("clear-mistakes")
def clear_mistakes(
    ctx: typer.Context,
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Empty the mistake archive."""
    if not confirm and not Confirm.ask("Clear the mistake archive?", default=False):
        raise typer.Exit(0)
    c = _ctx(ctx)
    try:
        c.engine.clear_mistakes(c.learner)
    except ProgressionError as e:
        _fail(e)
    console.print("[green]Mistake archive cleared.[/green]")


# ========================================
# Stats & Reset
# ========================================


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show learning statistics and progress."""
    c = _ctx(ctx)
    try:
        data = c.engine.get_stats(c.learner)
    except ProgressionError as e:
        _fail(e)

    console.print(f"\n[{STYLES['info']}]Learning Statistics[/] ({c.learner})")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Words tracked", str(data["items_tracked"]))
    table.add_row("Words due now", str(data["items_due"]))
    table.add_row("Words at top stage", str(data["items_at_max_stage"]))
    table.add_row("Lessons completed", f"{data['lessons_completed']}/{data['lessons_total']}")
    table.add_row("Practice sets", str(data["practice_sets_completed"]))
    table.add_row("Mistakes archived", str(data["mistakes_archived"]))
    table.add_row("Position", data["position"])
    console.print(table)

    if data["items_by_stage"]:
        stage_table = Table(title="Words by stage")
        stage_table.add_column("Stage", justify="right")
        stage_table.add_column("Words", justify="right")
        for stage, count in data["items_by_stage"].items():
            stage_table.add_row(str(stage), str(count))
        console.print(stage_table)


@app.command()
def reset(
    ctx: typer.Context,
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Wipe learning progress (profile and roadmap are kept)."""
    if not confirm and not Confirm.ask("Reset ALL learning progress? This cannot be undone!", default=False):
        raise typer.Exit(0)
    c = _ctx(ctx)
    try:
        c.engine.reset_progress(c.learner)
    except ProgressionError as e:
        _fail(e)
    console.print("[green]All learning progress has been reset.[/green]")


# ========================================
# Entry Point
# ========================================


def main() -> None:
    """CLI entry point."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
