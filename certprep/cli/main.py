"""
certprep CLI - certification exam study sessions in the terminal.

Usage:
    certprep profiles                                 # List exam profiles
    certprep objectives aws-cloud-practitioner        # Objectives and weights
    certprep start aws-cloud-practitioner             # Practice session
    certprep start cfa-l1 --mode efficient            # Shortened diagnostic
    certprep start aws-saa --mode mock                # Full timed mock exam
    certprep start aws-cloud-practitioner --offline   # Questions built from the catalog
    certprep resume aws-saa --mode mock               # Pick up a saved session
    certprep results aws-saa --mode mock              # Report for a finished session
    certprep history aws-cloud-practitioner           # Answered questions

During a session, answer with the option number or use:
    f  flashcards     h  history     o  choose objective
    b  take break     e  end session q  save and quit
"""

from __future__ import annotations

import asyncio
import sys
from typing import Annotated

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from certprep import __version__
from certprep.analytics.results import SessionResults
from certprep.catalog.profiles import CatalogReader, ExamProfile
from certprep.config import Settings, get_settings
from certprep.core.exceptions import CertPrepError
from certprep.core.models import (
    BreakState,
    ExamMode,
    FlashcardRating,
    FlashcardSource,
    PresentationMode,
    SessionConfig,
)
from certprep.generation.client import ContentGenerator, HttpContentGenerator, StaticContentGenerator
from certprep.session.engine import StudySessionEngine
from certprep.session.store import create_store

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="certprep",
    help="Certification exam study sessions: practice, efficient assessment and mock exams",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[red]✗ {error}[/red]")
    return typer.Exit(code=1)


def _format_seconds(seconds: float | None) -> str:
    if seconds is None:
        return "-"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def _build_engine(settings: Settings, profile: ExamProfile | None = None, offline: bool = False) -> StudySessionEngine:
    generator: ContentGenerator | None = None
    if profile is not None:
        if offline:
            generator = StaticContentGenerator(profile)
        else:
            generator = HttpContentGenerator.from_settings(settings)
    return StudySessionEngine(
        catalog=CatalogReader(settings=settings),
        store=create_store(settings),
        generator=generator,
        settings=settings,
    )


# =============================================================================
# Rendering
# =============================================================================


def _render_status(engine: StudySessionEngine) -> None:
    session = engine.session
    objective = engine.current_objective
    progress = engine.current_progress
    totals = engine.totals
    if session is None or objective is None:
        return

    budget = session.conditions.total_questions
    answered = f"{totals.questions_answered}/{budget}" if budget else str(totals.questions_answered)
    parts = [
        f"[bold]{session.exam_mode.display_name}[/bold]",
        f"Objective: [cyan]{objective.title}[/cyan]",
        f"Answered: {answered}",
        f"Score: {totals.session_score:.1f}%",
    ]
    if progress is not None and progress.mastery_level is not None:
        level = progress.mastery_level
        parts.append(f"Mastery: [{level.color}]{level.display_name}[/]")
    if session.conditions.is_timed:
        parts.append(f"Time left: {_format_seconds(engine.time_remaining)}")
    console.print(" │ ".join(parts))


def _render_notices(engine: StudySessionEngine) -> None:
    for notice in engine.drain_notices():
        style = "yellow" if notice.level == "warning" else "dim"
        console.print(f"[{style}]⚠ {notice.message}[/{style}]")


def _render_history(engine: StudySessionEngine, objective_id: str | None = None) -> None:
    attempts = engine.history(objective_id)
    if not attempts:
        console.print("[dim]No questions answered yet.[/dim]")
        return

    titles = {o.id: o.title for o in engine.objectives}
    table = Table(title="Answered Questions", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Objective", style="cyan")
    table.add_column("Result")
    table.add_column("Try", justify="right")
    table.add_column("Time", justify="right")
    for attempt in attempts:
        table.add_row(
            str(attempt.sequence),
            titles.get(attempt.objective_id, attempt.objective_id),
            "[green]correct[/green]" if attempt.correct else "[red]incorrect[/red]",
            str(attempt.attempt_number),
            f"{attempt.time_spent:.0f}s",
        )
    console.print(table)


def _render_results(results: SessionResults, engine: StudySessionEngine) -> None:
    verdict = "[green]PASS[/green]" if results.passed else "[red]BELOW PASSING[/red]"
    reason = results.end_reason.value.replace("_", " ") if results.end_reason else "-"
    console.print(
        Panel(
            f"[bold]{results.overall_score:.1f}%[/bold] {verdict} (pass mark {results.pass_threshold:.0f}%)\n"
            f"{results.correct_answers}/{results.total_questions} correct │ ended: {reason}",
            title=f"{results.exam_mode.value.title()} Results",
            border_style="cyan",
        )
    )

    if results.objectives:
        table = Table(title="By Objective", box=box.ROUNDED)
        table.add_column("Objective", style="cyan")
        table.add_column("Answered", justify="right")
        table.add_column("Accuracy", justify="right")
        table.add_column("Mastery")
        table.add_column("Trend")
        table.add_column("Priority")
        for item in results.objectives:
            level = item.mastery_level
            mastery = f"[{level.color}]{level.display_name}[/]" if level else "-"
            table.add_row(
                item.title,
                str(item.questions_attempted),
                f"{item.accuracy:.1f}%",
                mastery,
                item.trend.value,
                item.priority.value,
            )
        console.print(table)

    titles = {o.id: o.title for o in engine.objectives}
    if results.strengths:
        console.print("[green]Strengths:[/green] " + ", ".join(titles.get(s, s) for s in results.strengths))
    if results.weaknesses:
        console.print("[red]Weaknesses:[/red] " + ", ".join(titles.get(w, w) for w in results.weaknesses))

    timing = results.time_analysis
    if timing is not None and timing.efficiency is not None:
        console.print(
            f"Time: {_format_seconds(timing.total_time)} answering, "
            f"{timing.average_per_question:.0f}s per question ({timing.efficiency.value})"
        )
        if timing.elapsed_seconds is not None:
            console.print(f"[dim]Session clock: {_format_seconds(timing.elapsed_seconds)}[/dim]")

    if results.prediction is not None:
        p = results.prediction
        console.print(
            f"Predicted full exam: [bold]{p.full_exam_score:.1f}%[/bold] "
            f"(confidence {p.confidence:.0%}, pass likelihood {p.pass_likelihood:.0%})"
        )

    for rec in results.recommendations:
        suffix = f" [dim](try: {rec.suggested_mode.value})[/dim]" if rec.suggested_mode else ""
        console.print(f"→ {rec.message}{suffix}")


# =============================================================================
# Interactive loop
# =============================================================================


def _choose_objective(engine: StudySessionEngine) -> None:
    objectives = engine.objectives
    for i, objective in enumerate(objectives, 1):
        progress = engine.session.progress_for(objective.id) if engine.session else None
        seen = f"{progress.questions_attempted} answered" if progress else "not started"
        console.print(f"  {i}. {objective.title} [dim]({seen})[/dim]")
    choice = Prompt.ask("Objective", choices=[str(i) for i in range(1, len(objectives) + 1)])
    engine.select_objective(objectives[int(choice) - 1].id)


def _take_break(engine: StudySessionEngine) -> None:
    engine.start_break()
    console.print(
        Panel(
            f"Exam clock paused. Break ends in {_format_seconds(engine.break_remaining)}.",
            title="Break",
            border_style="green",
        )
    )
    Prompt.ask("[dim]Press Enter to resume[/dim]", default="")
    engine.tick()
    if engine.break_state is BreakState.ACTIVE:
        engine.end_break()


async def _flashcard_turn(engine: StudySessionEngine) -> bool:
    """One flashcard review. Returns False when the learner quits."""
    card = await engine.generate_flashcard()
    _render_notices(engine)
    if card is None:
        return not engine.is_complete

    console.print(Panel(card.title, title="Flashcard", border_style="magenta"))
    Prompt.ask("[dim]Press Enter to reveal[/dim]", default="")
    console.print(Panel(card.content, border_style="dim"))

    ratings = {r.value[0]: r for r in FlashcardRating}
    labels = " ".join(f"{k}={r.value} ({r.interval_label})" for k, r in ratings.items())
    console.print(f"[dim]{labels} │ x=quiz on this card  z=back to quiz  q=quit[/dim]")
    choice = Prompt.ask("Rating", choices=[*ratings, "x", "z", "q"], default="g")
    if choice == "q":
        return False
    if choice == "z":
        engine.switch_mode(PresentationMode.QUIZ)
        return True

    if not card.flashcard_id.startswith("placeholder-"):
        engine.record_flashcard_attempt(
            card.flashcard_id, card.objective_id, ratings.get(choice, FlashcardRating.GOOD), time_spent=0.0
        )
    if choice == "x":
        source = FlashcardSource(card.flashcard_id, card.objective_id, card.title, card.content)
        engine.switch_mode(PresentationMode.FLASHCARD_QUESTION, source)
    return True


async def _question_turn(engine: StudySessionEngine) -> bool:
    """One question. Returns False when the learner quits."""
    if engine.break_state is BreakState.AVAILABLE and Confirm.ask(
        "[green]Halfway there. Take your break now?[/green]", default=True
    ):
        _take_break(engine)
        if engine.is_complete:
            return True

    question = await engine.generate_question()
    _render_notices(engine)
    if question is None:
        return not engine.is_complete

    _render_status(engine)
    console.print(Panel(question.text, border_style="cyan"))
    for i, option in enumerate(question.options, 1):
        console.print(f"  {i}. {option}")

    numbers = [str(i) for i in range(1, len(question.options) + 1)]
    commands = ["f", "h", "o", "e", "q"]
    if engine.break_state is BreakState.AVAILABLE:
        commands.append("b")
    choice = Prompt.ask("Answer", choices=numbers + commands)

    if choice == "q":
        return False
    if choice == "e":
        if engine.session and engine.session.exam_mode is ExamMode.PRACTICE:
            engine.exit()
        else:
            engine.end_early()
        return True
    if choice == "f":
        engine.switch_mode(PresentationMode.FLASHCARDS)
        return True
    if choice == "h":
        _render_history(engine)
        Prompt.ask("[dim]Press Enter to continue[/dim]", default="")
        return True
    if choice == "o":
        _choose_objective(engine)
        return True
    if choice == "b":
        _take_break(engine)
        return True

    engine.select_option(int(choice) - 1)
    outcome = engine.submit_answer()
    if outcome.correct:
        console.print("[green]✓ Correct[/green]")
    else:
        console.print(f"[red]✗ Incorrect[/red], answer: {question.options[outcome.correct_index]}")
    console.print(f"[dim]{outcome.explanation}[/dim]")
    if outcome.advanced_to:
        console.print(f"[cyan]→ Next objective: {outcome.advanced_to}[/cyan]")
    if not outcome.recorded:
        console.print("[dim]Not scored.[/dim]")

    if engine.active_mode is PresentationMode.FLASHCARD_QUESTION and not engine.is_complete:
        engine.switch_mode(PresentationMode.FLASHCARDS)
    return True


async def _study_loop(engine: StudySessionEngine) -> None:
    try:
        while not engine.is_complete:
            mode = engine.active_mode
            if mode is PresentationMode.HISTORY:
                _render_history(engine)
                engine.switch_mode(PresentationMode.default_for(engine.session.exam_mode))
                continue
            if mode is PresentationMode.FLASHCARDS:
                keep_going = await _flashcard_turn(engine)
            else:
                keep_going = await _question_turn(engine)
            if not keep_going:
                console.print("[dim]Session saved. Resume with 'certprep resume'.[/dim]")
                return
    finally:
        if isinstance(engine.generator, HttpContentGenerator):
            await engine.generator.close()

    results = engine.results
    if results is not None:
        _render_results(results, engine)


# =============================================================================
# Commands
# =============================================================================


@app.command("profiles")
def list_profiles() -> None:
    """List the exam profiles in the catalog."""
    settings = get_settings()
    try:
        profiles = CatalogReader(settings=settings).list_profiles()
    except CertPrepError as e:
        raise _fail(e) from e

    table = Table(title="Exam Profiles", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Objectives", justify="right")
    table.add_column("Questions", justify="right")
    table.add_column("Time", justify="right")
    for profile in profiles:
        table.add_row(
            profile.id,
            profile.name,
            str(len(profile.objectives)),
            str(profile.constraints.total_questions),
            f"{profile.constraints.time_minutes} min",
        )
    console.print(table)


@app.command("objectives")
def list_objectives(
    profile_id: Annotated[str, typer.Argument(help="Exam profile id")],
) -> None:
    """Show a profile's objectives and exam weights."""
    settings = get_settings()
    try:
        profile = CatalogReader(settings=settings).get_profile(profile_id)
    except CertPrepError as e:
        raise _fail(e) from e

    table = Table(title=profile.name, box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Weight", justify="right")
    table.add_column("Difficulty")
    for objective in profile.objectives:
        table.add_row(objective.id, objective.title, f"{objective.weight:g}%", objective.difficulty)
    console.print(table)


@app.command()
def start(
    profile_id: Annotated[str, typer.Argument(help="Exam profile id")],
    mode: Annotated[ExamMode, typer.Option("--mode", "-m", help="practice, efficient or mock")] = ExamMode.PRACTICE,
    per_objective: Annotated[
        int | None, typer.Option("--per-objective", "-n", help="Questions per objective visit")
    ] = None,
    budget: Annotated[int | None, typer.Option("--budget", "-b", help="Total questions (efficient/mock)")] = None,
    objective: Annotated[
        list[str] | None, typer.Option("--objective", "-o", help="Limit to these objective ids")
    ] = None,
    offline: Annotated[bool, typer.Option("--offline", help="Build questions from the catalog")] = False,
) -> None:
    """
    Start a new study session. Replaces any saved session for the same profile and mode.

    Examples:
        certprep start aws-cloud-practitioner
        certprep start cfa-l1 --mode efficient --budget 20
        certprep start aws-saa --mode mock --offline
    """
    settings = get_settings()
    try:
        profile = CatalogReader(settings=settings).get_profile(profile_id)
        engine = _build_engine(settings, profile, offline)
        config = SessionConfig(
            profile_id=profile_id,
            exam_mode=mode,
            questions_per_objective=per_objective,
            question_budget=budget,
            target_objective_ids=objective or None,
        )
        session = engine.start(config)
    except (CertPrepError, ValueError) as e:
        raise _fail(e) from e

    conditions = session.conditions
    console.print(
        Panel(
            f"[bold cyan]{profile.name}[/bold cyan]\n"
            f"Mode: {mode.display_name}\n"
            f"Objectives: {len(session.objective_ids)}\n"
            f"Questions: {conditions.total_questions or 'unlimited'}\n"
            f"Time limit: {_format_seconds(conditions.time_budget_seconds) if conditions.is_timed else 'none'}",
            border_style="cyan",
        )
    )
    try:
        asyncio.run(_study_loop(engine))
    except CertPrepError as e:
        raise _fail(e) from e


@app.command()
def resume(
    profile_id: Annotated[str, typer.Argument(help="Exam profile id")],
    mode: Annotated[ExamMode, typer.Option("--mode", "-m")] = ExamMode.PRACTICE,
    offline: Annotated[bool, typer.Option("--offline", help="Build questions from the catalog")] = False,
) -> None:
    """Resume the saved session for a profile and mode."""
    settings = get_settings()
    try:
        profile = CatalogReader(settings=settings).get_profile(profile_id)
        engine = _build_engine(settings, profile, offline)
        session = engine.resume(profile_id, mode)
    except CertPrepError as e:
        raise _fail(e) from e
    _render_notices(engine)

    if session is None:
        console.print(f"[yellow]No saved {mode.value} session for {profile_id}.[/yellow]")
        raise typer.Exit(code=1)

    console.print(
        f"[cyan]Resuming[/cyan] session started {session.started_at:%Y-%m-%d %H:%M} "
        f"({session.total_questions_answered} answered, {session.session_score:.1f}%)"
    )
    try:
        asyncio.run(_study_loop(engine))
    except CertPrepError as e:
        raise _fail(e) from e


@app.command()
def results(
    profile_id: Annotated[str, typer.Argument(help="Exam profile id")],
    mode: Annotated[ExamMode, typer.Option("--mode", "-m")] = ExamMode.PRACTICE,
) -> None:
    """Show the report for the last finished session."""
    engine = _build_engine(get_settings())
    try:
        session = engine.resume(profile_id, mode)
    except CertPrepError as e:
        raise _fail(e) from e

    if session is None:
        console.print(f"[yellow]No saved {mode.value} session for {profile_id}.[/yellow]")
        raise typer.Exit(code=1)
    report = engine.results
    if report is None:
        console.print("[yellow]That session is still running. Resume it or end it first.[/yellow]")
        raise typer.Exit(code=1)
    _render_results(report, engine)


@app.command()
def history(
    profile_id: Annotated[str, typer.Argument(help="Exam profile id")],
    mode: Annotated[ExamMode, typer.Option("--mode", "-m")] = ExamMode.PRACTICE,
    objective: Annotated[str | None, typer.Option("--objective", "-o")] = None,
) -> None:
    """List the questions answered in the saved session."""
    engine = _build_engine(get_settings())
    try:
        session = engine.resume(profile_id, mode)
    except CertPrepError as e:
        raise _fail(e) from e

    if session is None:
        console.print(f"[yellow]No saved {mode.value} session for {profile_id}.[/yellow]")
        raise typer.Exit(code=1)
    _render_history(engine, objective)


@app.command("version")
def show_version() -> None:
    """Show version information."""
    console.print(f"[bold]certprep[/bold] v{__version__}")


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Certification exam study sessions in the terminal."""
    level = "DEBUG" if verbose else get_settings().log_level
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )


def main() -> None:
    """CLI entry point."""
    logger.remove()
    logger.add(sys.stderr, level="WARNING", format="<level>{message}</level>")
    app()


if __name__ == "__main__":
    main()
