#!/usr/bin/env python3
"""
Pick'em Pool Management CLI

Command-line management for seasons, users, games and weekly scoring.
"""

import logging
import os

import click
from flask.cli import with_appcontext
from flask_migrate import migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pickem_pool import create_app, db
from pickem_pool.exceptions import PickemError
from pickem_pool.models import Game, Season, User
from pickem_pool.services import admin as admin_service
from pickem_pool.services.standings import season_standings
from pickem_pool.utils.scoring import ScoringEngine

app = create_app()


def _default_season():
    current = Season.get_current_season()
    if not current:
        raise click.ClickException("No active season; pass --season")
    return current.year


@click.group()
def cli():
    """Pick'em Pool Management CLI"""
    pass


# Season Management Commands
@cli.group()
def season():
    """Season management commands"""
    pass


@season.command("create")
@click.argument("year", type=int)
@click.option("--current-week", type=int, default=1, help="Starting current week")
@click.option("--activate", is_flag=True, help="Activate this season")
@with_appcontext
def create_season(year, current_week, activate):
    """Create a new season"""
    try:
        if Season.get_by_year(year):
            click.echo(f"Season {year} already exists!")
            return

        season = Season.create_season(year, current_week=current_week)
        db.session.commit()
        click.echo(f"✅ Created season {year}")

        if activate:
            season.activate()
            click.echo(f"✅ Activated season {year}")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Season {year} already exists!")
        logging.error(f"Season creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating season: {str(e)}")
        logging.error(f"Season creation failed - SQL error: {e}")


@season.command()
@click.argument("year", type=int)
@with_appcontext
def activate(year):
    """Activate a season"""
    try:
        season = Season.get_by_year(year)
        if not season:
            click.echo(f"❌ Season {year} not found!")
            return

        season.activate()
        click.echo(f"✅ Activated season {year}")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error activating season: {str(e)}")
        logging.error(f"Season activation failed - SQL error: {e}")


@season.command("list")
@with_appcontext
def list_seasons():
    """List all seasons"""
    seasons = Season.query.order_by(Season.year.desc()).all()

    if not seasons:
        click.echo("No seasons found.")
        return

    click.echo("Seasons:")
    for s in seasons:
        status = "🟢 ACTIVE" if s.is_active else "⚪ Inactive"
        complete = "✅ Complete" if s.is_complete else f"Week {s.current_week}"
        click.echo(f"  {s.year}: {status} - {complete}")


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


def _create_user(username, email, password, first_name, last_name, display_name, is_admin):
    try:
        admin_service.create_user(
            None,
            username,
            email,
            password,
            first_name=first_name,
            last_name=last_name,
            display_name=display_name,
            is_admin=is_admin,
        )
        role = "admin user" if is_admin else "user"
        click.echo(f"✅ Created {role} '{username}' ({email})")

    except PickemError as e:
        click.echo(f"❌ {e.message}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Error creating user: {str(e)}")


@user.command("create")
@click.argument("username")
@click.argument("email")
@click.argument("password")
@click.option("--first-name", help="First name")
@click.option("--last-name", help="Last name")
@click.option("--alias", "display_name", help="Name shown on leaderboards")
@with_appcontext
def create_player(username, email, password, first_name, last_name, display_name):
    """Create a player"""
    _create_user(username, email, password, first_name, last_name, display_name, False)


@user.command()
@click.argument("username")
@click.argument("email")
@click.argument("password")
@click.option("--first-name", help="First name")
@click.option("--last-name", help="Last name")
@click.option("--alias", "display_name", help="Name shown on leaderboards")
@with_appcontext
def create_admin(username, email, password, first_name, last_name, display_name):
    """Create an admin user"""
    _create_user(username, email, password, first_name, last_name, display_name, True)


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
        status = "🟢" if u.is_active else "🔴"
        role = "👑" if u.is_admin else "  "
        click.echo(f"  {status} {role} {u.username} ({u.email}) - {u.alias}")


# Game Commands
@cli.group()
def game():
    """Schedule and result commands"""
    pass


@game.command()
@click.argument("week", type=int)
@click.argument("away_team")
@click.argument("home_team")
@click.argument(
    "kickoff", type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"])
)
@click.option("--season", type=int, help="Season year (defaults to the active season)")
@click.option("--spread", type=float, help="Point spread (negative = home favored)")
@with_appcontext
def add(week, away_team, home_team, kickoff, season, spread):
    """Add a game; KICKOFF is local time in the configured TIMEZONE"""
    try:
        created = admin_service.create_game(
            None,
            season or _default_season(),
            week,
            home_team.upper(),
            away_team.upper(),
            kickoff,
            spread=spread,
        )
        click.echo(f"✅ Added game {created.id}: {created.away_team} @ {created.home_team}")
    except PickemError as e:
        click.echo(f"❌ {e.message}")


@game.command()
@click.argument("game_id", type=int)
@click.argument("home_score", type=int)
@click.argument("away_score", type=int)
@with_appcontext
def result(game_id, home_score, away_score):
    """Record a final score"""
    try:
        final = admin_service.record_game_result(None, game_id, home_score, away_score)
        click.echo(
            f"✅ Final: {final.away_team} {final.away_score} @ "
            f"{final.home_team} {final.home_score} (winner: {final.winning_team or 'tie'})"
        )
        click.echo(f"   Run 'scores recalculate {final.week}' to refresh the week")
    except PickemError as e:
        click.echo(f"❌ {e.message}")


# Scoring Commands
@cli.group()
def scores():
    """Weekly scoring commands"""
    pass


@scores.command()
@click.argument("week", type=int)
@click.option("--season", type=int, help="Season year (defaults to the active season)")
@with_appcontext
def recalculate(week, season):
    """Recompute a week's scores and ranks"""
    season = season or _default_season()
    try:
        result = ScoringEngine().recompute(week, season)
    except PickemError as e:
        click.echo(f"❌ {e.message}")
        return

    if result["users_updated"] == 0:
        click.echo(f"⚠️  No picks found for week {week} of {season}")
        return

    click.echo(f"✅ Week {week} of {season}: {result['users_updated']} users updated")
    for entry in result["leaderboard"]:
        click.echo(
            f"  {entry['weekly_rank']:>3}. {entry['alias']:<20} "
            f"{entry['total_points']:>4} pts  {entry['correct_picks']}/{entry['total_picks']}"
        )


@scores.command()
@click.option("--season", type=int, help="Season year (defaults to the active season)")
@with_appcontext
def standings(season):
    """Show season standings"""
    season = season or _default_season()
    entries = season_standings(season)

    if not entries:
        click.echo(f"No standings for {season}.")
        return

    click.echo(f"Standings {season}:")
    for entry in entries:
        click.echo(
            f"  {entry['season_rank']:>3}. {entry['alias']:<20} "
            f"{entry['total_points']:>5} pts  {entry['total_correct']}/{entry['total_games']} "
            f"({entry['season_win_percentage']}%)"
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


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    if os.path.exists("migrations"):
        click.echo("❌ Migrations directory already exists!")
        return

    from flask_migrate import init as flask_migrate_init

    flask_migrate_init()
    click.echo("✅ Migrations repository initialized!")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏈 Pick'em Pool Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    current_season = Season.get_current_season()
    if current_season:
        click.echo(
            f"✅ Current Season: {current_season.year} (Week {current_season.current_week})"
        )
    else:
        click.echo("⚠️  Current Season: None active")

    user_count = User.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    if current_season:
        game_count = Game.query.filter_by(season=current_season.year).count()
        final_count = Game.query.filter_by(
            season=current_season.year, status="final"
        ).count()
        click.echo(f"🏈 Games: {final_count}/{game_count} completed")

        pending = ScoringEngine.needs_rescore(
            current_season.current_week, current_season.year
        )
        click.echo(f"🧮 Current week needs rescore: {'yes' if pending else 'no'}")


if __name__ == "__main__":
    with app.app_context():
        cli()
