"""
Typer CLI for the LearnFlow progression engine.

Commands:
    learnflow db init                 - Create tables and seed achievements and daily challenges
    learnflow achievements list       - Show the achievement catalog
    learnflow progress show USER_ID   - Show a user's progress and earned achievements
    learnflow progress reset USER_ID  - Zero a user's progress (asks for confirmation)
    learnflow leaderboard             - Show the top learners
    learnflow version                 - Show version

Usage:
    learnflow --help
    learnflow --database-url sqlite:///learnflow.db db init
    learnflow leaderboard --limit 10
"""

from __future__ import annotations

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from learnflow import __version__
from learnflow.core.logging import setup_logging
from learnflow.db.database import configure_engine, init_db, session_scope
from learnflow.progression import (
    AchievementEvaluator,
    DailyChallengeTracker,
    ProgressLedger,
    StreakState,
    is_at_risk,
    level_progress,
    seed_catalog,
    seed_challenges,
)

console = Console()

app = typer.Typer(
    help="LearnFlow CLI: progression engine administration",
    no_args_is_help=True,
)

RARITY_COLORS = {
    "common": "white",
    "rare": "cyan",
    "epic": "magenta",
    "legendary": "yellow",
}


@app.callback()
def main(
    database_url: str = typer.Option(
        None,
        "--database-url",
        envvar="DATABASE_URL",
        help="Database URL (defaults to settings)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show info-level logs"),
) -> None:
    setup_logging(level="INFO" if verbose else "WARNING")
    if database_url:
        configure_engine(database_url)


@app.command("version")
def version() -> None:
    """Show version."""
    rprint(f"learnflow [bold]{__version__}[/bold]")


# ========================================
# Database
# ========================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Create tables and insert missing default achievements and daily challenges.

    Safe to run multiple times (idempotent).
    """
    try:
        init_db()
        with session_scope() as session:
            inserted = seed_catalog(session)
            challenges = seed_challenges(session)
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")
        rprint(f"[red]✗[/red] Database initialization failed: {e}")
        raise typer.Exit(code=1)

    rprint("[green]✓[/green] Database initialized!")
    rprint(f"[green]✓[/green] Seeded {inserted} new achievements")
    rprint(f"[green]✓[/green] Seeded {challenges} new daily challenges")


# ========================================
# Achievements
# ========================================

achievements_app = typer.Typer(help="Achievement catalog")
app.add_typer(achievements_app, name="achievements")


@achievements_app.command("list")
def achievements_list() -> None:
    """Show the achievement catalog."""
    with session_scope() as session:
        catalog = AchievementEvaluator(session).catalog()

        if not catalog:
            rprint("[yellow]No achievements found. Run 'learnflow db init' first.[/yellow]")
            return

        table = Table(title="Achievements")
        table.add_column("ID", style="dim")
        table.add_column("Name")
        table.add_column("Category")
        table.add_column("Criterion")
        table.add_column("Rarity")
        table.add_column("XP", justify="right")
        for achievement in catalog:
            color = RARITY_COLORS.get(achievement.rarity, "white")
            table.add_row(
                achievement.id,
                achievement.name,
                achievement.category,
                f"{achievement.metric} >= {achievement.threshold}",
                f"[{color}]{achievement.rarity}[/{color}]",
                str(achievement.xp_reward),
            )
        console.print(table)


# ========================================
# Progress
# ========================================

progress_app = typer.Typer(help="Inspect and administer user progress")
app.add_typer(progress_app, name="progress")


@progress_app.command("show")
def progress_show(user_id: str = typer.Argument(..., help="User id")) -> None:
    """Show a user's XP, level, streak, counters and achievements."""
    from datetime import date

    with session_scope() as session:
        progress = ProgressLedger(session).get_progress(user_id)
        earned = AchievementEvaluator(session).earned(user_id)
        breakdown = level_progress(progress.total_xp)
        streak = StreakState(progress.current_streak, progress.longest_streak, progress.last_activity_date)

        rprint(f"[bold]{user_id}[/bold]")
        rprint(
            f"  Level [cyan]{progress.level}[/cyan]  {progress.total_xp} XP  "
            f"({breakdown.xp_to_next_level} XP to level {progress.level + 1})"
        )
        at_risk = " [yellow](at risk)[/yellow]" if is_at_risk(streak, date.today()) else ""
        rprint(f"  Streak {progress.current_streak} days (longest {progress.longest_streak}){at_risk}")

        table = Table(title="Counters", show_header=False)
        for name in (
            "lessons_completed",
            "paths_completed",
            "quizzes_completed",
            "quizzes_passed",
            "resources_completed",
            "certificates_earned",
            "total_study_time",
        ):
            table.add_row(name.replace("_", " "), str(getattr(progress, name)))
        console.print(table)

        if earned:
            rprint("  Achievements: " + ", ".join(item.achievement.name for item in earned))
        else:
            rprint("  [dim]No achievements yet[/dim]")

        for status in DailyChallengeTracker(session).for_day(user_id, date.today()):
            mark = "[green]✓[/green]" if status.is_completed else "[dim]·[/dim]"
            rprint(f"  {mark} {status.challenge.title} ({status.progress}/{status.target})")


@progress_app.command("reset")
def progress_reset(
    user_id: str = typer.Argument(..., help="User id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Zero a user's progress and remove their XP history and achievements."""
    if not yes and not typer.confirm(f"Reset all progress for {user_id}?"):
        raise typer.Abort()

    with session_scope() as session:
        ProgressLedger(session).reset(user_id)
    rprint(f"[green]✓[/green] Progress reset for {user_id}")


# ========================================
# Leaderboard
# ========================================


@app.command("leaderboard")
def leaderboard(
    limit: int = typer.Option(None, "--limit", "-n", min=1, help="Number of entries"),
) -> None:
    """Show the top learners by total XP."""
    settings = get_settings()
    limit = min(limit or settings.leaderboard_default_limit, settings.leaderboard_max_limit)

    with session_scope() as session:
        entries = ProgressLedger(session).leaderboard(limit)

    if not entries:
        rprint("[yellow]Leaderboard is empty[/yellow]")
        return

    table = Table(title="Leaderboard")
    table.add_column("#", justify="right")
    table.add_column("User")
    table.add_column("Level", justify="right")
    table.add_column("XP", justify="right")
    table.add_column("This week", justify="right")
    table.add_column("Streak", justify="right")
    for entry in entries:
        table.add_row(
            str(entry.rank),
            entry.username if entry.username != "Anonymous" else f"[dim]{entry.user_id}[/dim]",
            str(entry.level),
            str(entry.total_xp),
            str(entry.weekly_xp),
            str(entry.current_streak),
        )
    console.print(table)


if __name__ == "__main__":
    app()
