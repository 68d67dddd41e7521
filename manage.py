#!/usr/bin/env python3
"""
NRL Fan Hub Management CLI

Command-line management for users, fixtures, scoring and the database.
"""

import os

import click
from flask.cli import with_appcontext
from flask_migrate import migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fanhub import create_app, db
from fanhub.errors import FanHubError
from fanhub.models import Match, MatchStatus, Prediction, User, UserRole
from fanhub.services import leaderboard_service, match_service, prediction_service
from fanhub.services.user_service import update_user_role

app = create_app()


@click.group()
def cli():
    """NRL Fan Hub Management CLI"""
    pass


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command()
@click.argument("email")
@click.option("--revoke", is_flag=True, help="Demote back to a regular user")
@with_appcontext
def promote(email, revoke):
    """Grant (or revoke) the admin role"""
    u = User.query.filter_by(email=email).first()
    if not u:
        click.echo(f"❌ User {email} not found! They must sign in once first.")
        return

    role = UserRole.USER if revoke else UserRole.ADMIN
    try:
        update_user_role(u.id, role.value)
        click.echo(f"✅ {email} is now {role.value}")
    except FanHubError as e:
        click.echo(f"❌ {e.message}")


@user.command("list")
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.created_at.desc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        role = "👑" if u.is_admin else "👤"
        click.echo(f"  {role} {u.display_name} ({u.email}) - {u.predictions.count()} predictions")


# Match Commands
@cli.group()
def match():
    """Fixture management commands"""
    pass


@match.command()
@click.argument("home_team")
@click.argument("away_team")
@click.option(
    "--kickoff",
    required=True,
    type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"]),
    help="Kickoff time in UTC (YYYY-MM-DD HH:MM)",
)
@click.option("--round", "round_number", required=True, type=int, help="Round number")
@click.option("--season", required=True, type=int, help="Season year")
@click.option("--venue", help="Venue name")
@with_appcontext
def create(home_team, away_team, kickoff, round_number, season, venue):
    """Create an upcoming fixture"""
    try:
        m = match_service.create_match(
            home_team, away_team, kickoff, round=round_number, season=season, venue=venue
        )
        click.echo(f"✅ Created match {m.id}: {home_team} v {away_team} (Round {round_number})")
    except FanHubError as e:
        click.echo(f"❌ {e.message}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating match: {str(e)}")


@match.command("list")
@click.option("--round", "round_number", type=int, help="Only this round")
@click.option(
    "--status",
    type=click.Choice([s.value for s in MatchStatus], case_sensitive=False),
    help="Only matches with this status",
)
@click.option("--limit", default=20, show_default=True)
@with_appcontext
def list_matches(round_number, status, limit):
    """List fixtures in kickoff order"""
    matches = match_service.list_matches(round=round_number, status=status, limit=limit)

    if not matches:
        click.echo("No matches found.")
        return

    for m in matches:
        score = f"{m.home_score}-{m.away_score}" if m.has_scores else "-"
        click.echo(
            f"  [{m.id}] R{m.round} {m.home_team} v {m.away_team} "
            f"{m.kickoff_time:%Y-%m-%d %H:%M} {m.status.value} {score}"
        )


@match.command()
@click.argument("match_id", type=int)
@click.option("--home-score", type=int)
@click.option("--away-score", type=int)
@click.option("--status", type=click.Choice([s.value for s in MatchStatus], case_sensitive=False))
@click.option("--minute", type=int, help="Current match minute")
@with_appcontext
def update(match_id, home_score, away_score, status, minute):
    """Update score or status (no live broadcast from the CLI)"""
    changes = {
        "homeScore": home_score,
        "awayScore": away_score,
        "status": status,
        "currentMinute": minute,
    }
    try:
        m, events = match_service.update_match(match_id, changes)
        click.echo(f"✅ Updated match {m.id} ({len(events)} change event(s))")
    except FanHubError as e:
        click.echo(f"❌ {e.message}")


# Scoring Commands
@cli.group()
def points():
    """Prediction scoring commands"""
    pass


@points.command()
@click.argument("match_id", type=int)
@with_appcontext
def calculate(match_id):
    """Score every prediction on a completed match"""
    try:
        summary = prediction_service.calculate_match_points(match_id)
    except FanHubError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(
        f"✅ Scored {summary.updated} predictions: {summary.correct_predictions} correct, "
        f"{summary.total_points_awarded} points awarded"
    )


@points.command("calculate-completed")
@with_appcontext
def calculate_completed():
    """Score every completed match that still has unscored predictions"""
    matches = (
        Match.query.join(Prediction)
        .filter(Match.status == MatchStatus.COMPLETED, Prediction.is_correct.is_(None))
        .distinct()
        .all()
    )

    if not matches:
        click.echo("Nothing to score.")
        return

    for m in matches:
        try:
            summary = prediction_service.calculate_match_points(m.id)
            click.echo(f"  ✅ Match {m.id}: {summary.updated} predictions scored")
        except FanHubError as e:
            click.echo(f"  ❌ Match {m.id}: {e.message}")


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command()
@click.option(
    "--timeframe",
    type=click.Choice(leaderboard_service.TIMEFRAMES),
    default=leaderboard_service.ALL_TIME,
    show_default=True,
)
@click.option("--limit", default=10, show_default=True)
@with_appcontext
def show(timeframe, limit):
    """Print the top of the leaderboard"""
    try:
        entries = leaderboard_service.calculate_leaderboard(timeframe, limit=limit)
    except FanHubError as e:
        click.echo(f"❌ {e.message}")
        return

    if not entries:
        click.echo("No scored predictions yet.")
        return

    click.echo(f"🏉 {timeframe} leaderboard")
    for e in entries:
        click.echo(
            f"  {e.rank:>3}. {e.user_name:<24} {e.total_points:>5} pts "
            f"{e.correct_predictions}/{e.total_predictions} ({e.accuracy}%) streak {e.streak}"
        )


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init")
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


@db_cmd.command("migrate")
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    if not os.path.exists("migrations"):
        from flask_migrate import init as flask_migrate_init

        flask_migrate_init()
        click.echo("✅ Migrations repository initialized!")

    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_cmd.command("upgrade")
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏉 NRL Fan Hub Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    click.echo(f"👥 Users: {User.query.count()}")
    for s in MatchStatus:
        click.echo(f"🏟️  {s.value.title()} matches: {Match.query.filter_by(status=s).count()}")
    unscored = Prediction.query.filter(Prediction.is_correct.is_(None)).count()
    click.echo(f"🎯 Predictions: {Prediction.query.count()} ({unscored} unscored)")


if __name__ == "__main__":
    with app.app_context():
        cli()
