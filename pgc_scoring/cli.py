"""
Command-line interface for PGC team scoring.
Built with Click and Rich.
"""

import sys
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import click
import pandas as pd
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from .config import get_config
from .database import Database, DatabaseError, CycleInProgressError
from .errors import InsufficientDataError
from .models import TeamResult, TourCard
from .snapshot import load_snapshot
from .updater import TeamUpdater, compute_team_results

console = Console()


def _fmt(value, places: int = 1) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:+.{places}f}" if places == 1 else f"{value:,.{places}f}"
    return str(value)


def _results_table(title: str, results: List[TeamResult]) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Pos", style="cyan")
    table.add_column("Team", justify="right")
    table.add_column("Tour Card")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Today", justify="right")
    table.add_column("Thru", justify="right")
    table.add_column("R1", justify="right")
    table.add_column("R2", justify="right")
    table.add_column("R3", justify="right")
    table.add_column("R4", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Earnings", justify="right")

    def order(r: TeamResult):
        return (r.score is None, r.is_cut, r.score or 0, r.id)

    for r in sorted(results, key=order):
        table.add_row(
            r.position or "-", str(r.id), r.tour_card_id,
            _fmt(r.score), _fmt(r.today), _fmt(r.thru, 0) if r.thru is not None else "-",
            _fmt(r.round_one, 0), _fmt(r.round_two, 0), _fmt(r.round_three, 0), _fmt(r.round_four, 0),
            _fmt(r.points, 0), f"${r.earnings:,.2f}",
        )
    return table


@click.group()
@click.version_option(version="1.0.0", prog_name="PGC Team Scoring")
@click.option("--db", "db_path", type=click.Path(path_type=Path), default=None,
              help="Database file (default from PGC_DB_PATH)")
@click.pass_context
def cli(ctx, db_path: Optional[Path]):
    """PGC Team Scoring - score fantasy golf teams and standings."""
    config = get_config()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO), format="%(message)s")
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path


def _database(ctx) -> Database:
    try:
        return Database(db_path=ctx.obj.get("db_path"))
    except DatabaseError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)


@cli.command()
@click.pass_context
def init(ctx):
    """Create the database schema."""
    db = _database(ctx)
    console.print(f"[green]Database ready at {db.db_path}[/]")


@cli.command("import-snapshot")
@click.argument("snapshot_file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def import_snapshot(ctx, snapshot_file: Path):
    """Load a tournament snapshot JSON file into the database."""
    try:
        snapshot = load_snapshot(snapshot_file)
    except InsufficientDataError as e:
        console.print(f"[red]Invalid snapshot: {e}[/]")
        sys.exit(1)
    db = _database(ctx)
    db.save_tournament(snapshot.tournament)
    for card in snapshot.tour_cards:
        db.save_tour_card(card)
    console.print(
        f"[green]Imported {snapshot.tournament.name}: {len(snapshot.tournament.golfers)} golfers, "
        f"{len(snapshot.tournament.teams)} teams, {len(snapshot.tour_cards)} tour cards[/]"
    )


@cli.command()
@click.option("--now", default=None, help="Score as of this ISO date/time (default: now)")
@click.pass_context
def update(ctx, now: Optional[str]):
    """Score the current tournament and save every team."""
    at = datetime.fromisoformat(now) if now else None
    updater = TeamUpdater(_database(ctx))
    try:
        summary = updater.run(at)
    except InsufficientDataError as e:
        console.print(f"[yellow]Nothing to score: {e}[/]")
        return
    except CycleInProgressError as e:
        console.print(f"[yellow]{e}[/]")
        return
    except DatabaseError as e:
        console.print(f"[red]Update failed: {e}[/]")
        sys.exit(1)

    event = f", playoff event {summary.event_index}" if summary.event_index else ""
    console.print(Panel(
        f"Round: {summary.round} ({'live' if summary.live_play else 'not live'}{event})\n"
        f"Teams computed: {summary.teams_computed}\n"
        f"Teams updated: {summary.teams_updated} ({summary.fields_updated} fields)\n"
        f"Skipped: {len(summary.skipped_teams)}\n"
        f"Duration: {summary.duration_seconds:.2f}s",
        title=summary.tournament_name,
        border_style="cyan",
    ))


@cli.command()
@click.argument("snapshot_file", type=click.Path(exists=True, path_type=Path))
def score(snapshot_file: Path):
    """Score a snapshot JSON file without touching the database."""
    try:
        snapshot = load_snapshot(snapshot_file)
        results = compute_team_results(snapshot.tournament, snapshot.tour_cards, snapshot.playoff)
    except InsufficientDataError as e:
        console.print(f"[yellow]Nothing to score: {e}[/]")
        return
    console.print(_results_table(snapshot.tournament.name, results))


@cli.command()
@click.argument("season_id")
@click.pass_context
def standings(ctx, season_id: str):
    """Recompute season standings from completed tournaments."""
    updater = TeamUpdater(_database(ctx))
    try:
        cards: List[TourCard] = updater.update_standings(season_id)
    except (InsufficientDataError, CycleInProgressError) as e:
        console.print(f"[yellow]{e}[/]")
        return

    table = Table(title=f"Season {season_id} Standings", box=box.ROUNDED)
    table.add_column("Tour", style="cyan")
    table.add_column("Pos")
    table.add_column("Member")
    table.add_column("Points", justify="right", style="green")
    table.add_column("Earnings", justify="right")
    table.add_column("Wins", justify="right")
    table.add_column("Top 10", justify="right")
    table.add_column("Cuts", justify="right")
    table.add_column("Apps", justify="right")
    for c in sorted(cards, key=lambda c: (c.tour_id, -c.points, c.id)):
        table.add_row(
            c.tour_id, c.position or "-", c.display_name or c.id, f"{c.points:,.0f}",
            f"${c.earnings:,.2f}", str(c.win), str(c.top_ten), str(c.made_cut), str(c.appearances),
        )
    console.print(table)


@cli.command()
@click.argument("tournament_id")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="CSV file (default: <tournament_id>-teams.csv)")
@click.pass_context
def export(ctx, tournament_id: str, output: Optional[Path]):
    """Export a tournament's stored team results to CSV."""
    db = _database(ctx)
    tournament = db.load_tournament(tournament_id)
    if not tournament:
        console.print(f"[red]Tournament '{tournament_id}' not found.[/]")
        sys.exit(1)

    data = [
        {"team_id": t.id, "tour_card_id": t.tour_card_id, "position": t.position,
         "past_position": t.past_position, "score": t.score, "today": t.today, "thru": t.thru,
         "round_one": t.round_one, "round_two": t.round_two, "round_three": t.round_three,
         "round_four": t.round_four, "points": t.points, "earnings": t.earnings}
        for t in tournament.teams
    ]
    df = pd.DataFrame(data)
    output = output or Path(f"{tournament_id}-teams.csv")
    df.to_csv(output, index=False)
    console.print(f"[green]Wrote {len(df)} teams to {output}[/]")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
