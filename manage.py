#!/usr/bin/env python3
"""
Prediction League Management CLI

Runs the scoring, completion, winner and cup jobs by hand and inspects
their results.
"""

import json
import logging

import click
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import create_app, db
from app.models import BettingRound, Fixture, Season, UserBet
from app.models.betting_round import ROUND_OPEN, ROUND_SCORING
from app.services import cron_jobs
from app.services.cup import (
    CupActivationDetectionService,
    CupActivationLogger,
    CupWinnerDeterminationService,
    get_cup_standings,
)
from app.services.round_completion_detector import RoundCompletionDetector
from app.services.scheduler_service import scheduler_service
from app.services.scoring_service import calculate_and_store_match_points
from app.services.season_completion_detector import SeasonCompletionDetector
from app.services.winner_determination_service import WinnerDeterminationService
from app.utils.email_service import EmailService
from app.utils.errors import ValidationError, error_messages

app = create_app()


def _echo_errors(errors):
    for message in error_messages(errors):
        click.echo(f"   ⚠️  {message}")


def _echo_winner_result(result):
    label = f"Season {result['season_id']}"
    if result["errors"]:
        click.echo(f"❌ {label}: failed")
        _echo_errors(result["errors"])
        return
    if result["is_season_already_determined"]:
        click.echo(f"ℹ️  {label}: winners already determined")
    else:
        click.echo(f"✅ {label}: {len(result['winners'])} winner(s) from {result['total_players']} players")
    for winner in result["winners"]:
        tied = " (tied)" if winner["is_tied"] else ""
        click.echo(f"   🏆 {winner['username']}: {winner['total_points']} pts{tied}")


@click.group()
def cli():
    """Prediction League Management CLI"""
    pass


# Round Commands
@cli.group()
def rounds():
    """Betting round commands"""
    pass


@rounds.command()
@click.option("--score/--no-score", default=True, help="Score detected rounds right away")
@with_appcontext
def detect(score):
    """Detect completed rounds (and score them)"""
    result = RoundCompletionDetector().detect_and_mark_completed_rounds()
    round_ids = result["completed_round_ids"]
    click.echo(f"🔍 {len(round_ids)} round(s) ready for scoring: {round_ids}")
    _echo_errors(result["errors"])

    if not score:
        return

    for round_id in round_ids:
        scoring = calculate_and_store_match_points(round_id)
        icon = "✅" if scoring["success"] else "❌"
        click.echo(f"{icon} {scoring['message']}")
        _echo_errors(scoring["errors"])


@rounds.command()
@click.argument("round_id", type=int)
@with_appcontext
def score(round_id):
    """Score one betting round"""
    result = calculate_and_store_match_points(round_id)
    icon = "✅" if result["success"] else "❌"
    click.echo(f"{icon} {result['message']}")
    click.echo(f"   Bets processed: {result['bets_processed']}, updated: {result['bets_updated']}")
    if result["scoring_incomplete"]:
        click.echo(f"   ⏳ Fixtures awaiting results: {result['skipped_fixture_ids']}")
    _echo_errors(result["errors"])


# Season Commands
@cli.group()
def season():
    """Season commands"""
    pass


@season.command()
@with_appcontext
def complete():
    """Mark finished seasons complete and determine their winners"""
    result = SeasonCompletionDetector().detect_and_mark_completed_seasons()
    click.echo(
        f"📅 {len(result['completed_season_ids'])} season(s) completed, "
        f"{result['skipped_count']} in progress"
    )
    _echo_errors(result["errors"])

    if result["completed_season_ids"]:
        for winner_result in WinnerDeterminationService().determine_winners_for_completed_seasons():
            _echo_winner_result(winner_result)


@season.command()
@click.argument("season_id", type=int, required=False)
@with_appcontext
def winners(season_id):
    """Determine league winners (all pending seasons without SEASON_ID)"""
    service = WinnerDeterminationService()
    if season_id is None:
        results = service.determine_winners_for_completed_seasons()
        if not results:
            click.echo("No completed seasons awaiting winners.")
        for result in results:
            _echo_winner_result(result)
    else:
        _echo_winner_result(service.determine_season_winners(season_id))


@season.command()
@click.argument("season_id", type=int)
@with_appcontext
def stats(season_id):
    """Show fixture progress for a season"""
    result = SeasonCompletionDetector().get_season_completion_stats(season_id)
    if result["errors"]:
        _echo_errors(result["errors"])
        return

    click.echo(f"📊 Season {season_id}")
    click.echo(
        f"   Fixtures: {result['finished_fixtures']}/{result['total_fixtures']} final "
        f"({result['completion_percentage']}%)"
    )
    click.echo(f"   Complete: {'yes' if result['is_complete'] else 'no'}")


@season.command("bonus-mode")
@click.argument("season_id", type=int)
@click.option("--on/--off", "enabled", required=True, help="Turn global bonus mode on or off")
@with_appcontext
def bonus_mode(season_id, enabled):
    """Toggle the season-wide bonus (double points)"""
    try:
        season_obj = db.session.get(Season, season_id)
        if not season_obj:
            click.echo(f"❌ Season {season_id} not found!")
            return

        season_obj.bonus_mode_active = enabled
        db.session.commit()
        click.echo(f"✅ Bonus mode {'ON' if enabled else 'OFF'} for {season_obj.name}")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error updating bonus mode: {str(e)}")
        logging.error(f"Bonus mode update failed - SQL error: {e}")


@season.command("set-current")
@click.argument("season_id", type=int)
@with_appcontext
def set_current(season_id):
    """Make SEASON_ID the season being played"""
    season_obj = db.session.get(Season, season_id)
    if not season_obj:
        click.echo(f"❌ Season {season_id} not found!")
        return

    try:
        season_obj.make_current()
        click.echo(f"✅ {season_obj.name} is now the current season")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error: {str(e)}")


# Cup Commands
@cli.group()
def cup():
    """Last Round Special (cup) commands"""
    pass


@cup.command()
@click.option("--threshold", type=float, help="Activation threshold in percent")
@click.option("--json", "as_json", is_flag=True, help="Print the full result as JSON")
@with_appcontext
def check(threshold, as_json):
    """Run the cup activation check once"""
    try:
        result = CupActivationDetectionService(threshold=threshold).detect_and_activate()
    except ValidationError as e:
        click.echo(f"❌ {e}")
        return

    if as_json:
        payload = {**result, "errors": error_messages(result["errors"])}
        click.echo(json.dumps(payload, indent=2, default=str))
        return

    icon = "✅" if result["success"] else "❌"
    click.echo(f"{icon} {result['action_taken']}")
    click.echo(f"   {result['reasoning']}")
    click.echo(f"   {result['summary']}")
    _echo_errors(result["errors"])


@cup.command("winners")
@click.argument("season_id", type=int, required=False)
@with_appcontext
def cup_winners(season_id):
    """Determine cup winners (all pending seasons without SEASON_ID)"""
    service = CupWinnerDeterminationService()
    if season_id is None:
        results = service.determine_winners_for_completed_seasons()
        if not results:
            click.echo("No completed cup seasons awaiting winners.")
        for result in results:
            _echo_winner_result(result)
    else:
        _echo_winner_result(service.determine_season_winners(season_id))


@cup.command()
@click.argument("season_id", type=int, required=False)
@with_appcontext
def standings(season_id):
    """Show cup standings (current season by default)"""
    rows = get_cup_standings(season_id)
    if rows is None:
        click.echo("❌ Could not load cup standings")
        return
    if not rows:
        click.echo("No cup points recorded.")
        return

    for row in rows:
        click.echo(
            f"  {row['position']:>3}. {row['username']}: {row['total_points']} pts "
            f"({row['rounds_participated']} rounds)"
        )


@cup.command()
@click.option("--season-id", type=int, help="Only checks for this season")
@click.option("--limit", default=10, show_default=True, help="Number of checks to show")
@with_appcontext
def history(season_id, limit):
    """Show recent cup activation checks from the audit log"""
    entries = CupActivationLogger().get_recent(limit=limit, season_id=season_id)
    if not entries:
        click.echo("No cup activation checks recorded.")
        return

    for entry in entries:
        icon = "⚠️ " if entry.errors else "📝"
        click.echo(f"{icon} {entry.created_at:%Y-%m-%d %H:%M} [{entry.session_id}] {entry.action_taken}")
        click.echo(f"   {entry.reasoning}")


# Job Commands
@cli.group()
def jobs():
    """Cron job commands"""
    pass


@jobs.command("run")
@click.argument("job_id", type=click.Choice(sorted(cron_jobs.JOBS)))
@with_appcontext
def run_job(job_id):
    """Run a cron job now, outside its schedule"""
    success, message = scheduler_service.force_run(job_id)
    icon = "✅" if success else "❌"
    click.echo(f"{icon} {job_id}: {message}")


@jobs.command("schedule")
@with_appcontext
def schedule():
    """Show the in-process scheduler state"""
    status = scheduler_service.get_status()
    click.echo(f"⏰ Scheduler running: {'yes' if status['is_running'] else 'no'}")
    for job in status["jobs"]:
        click.echo(f"   {job['id']}: next run {job['next_run']}")
    stats = status["stats"]
    click.echo(
        f"   Runs: {stats['total_runs']} ({stats['successful_runs']} ok, {stats['failed_runs']} failed)"
    )


@jobs.command("test-email")
@with_appcontext
def test_email():
    """Check the SMTP settings used for cron alerts"""
    ok, message = EmailService().test_email_configuration()
    click.echo(f"{'✅' if ok else '❌'} {message}")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Prediction League Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    current_season = Season.get_current_season()
    if not current_season:
        click.echo("⚠️  Current Season: None")
        return

    click.echo(f"✅ Current Season: {current_season.name}")
    click.echo(f"   Completed: {current_season.completed_at or 'no'}")
    click.echo(f"   Bonus mode: {'ON' if current_season.bonus_mode_active else 'off'}")
    click.echo(
        f"   Cup: {'active since ' + str(current_season.last_round_special_activated_at) if current_season.last_round_special_activated else 'inactive'}"
    )

    fixture_count = Fixture.query.filter_by(season_id=current_season.id).count()
    click.echo(f"⚽ Fixtures: {fixture_count}")

    for status_name in (ROUND_OPEN, ROUND_SCORING):
        count = BettingRound.query.filter_by(
            season_id=current_season.id, status=status_name
        ).count()
        click.echo(f"🎯 Rounds {status_name}: {count}")

    pending = (
        UserBet.query.join(BettingRound, BettingRound.id == UserBet.betting_round_id)
        .filter(
            BettingRound.season_id == current_season.id,
            UserBet.points_awarded.is_(None),
        )
        .count()
    )
    click.echo(f"📝 Unscored bets: {pending}")


if __name__ == "__main__":
    with app.app_context():
        cli()
