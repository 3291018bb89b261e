from datetime import datetime, timedelta, timezone

from pickem_pool import db


class Season(db.Model):
    """Season configuration: the single owner of the "current week" value.

    Routes read the active season once per request and pass ``week`` and
    ``season`` explicitly to the scoring services.
    """

    __tablename__ = "seasons"

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, nullable=False, unique=True, index=True)
    name = db.Column(db.String(50), nullable=False)  # e.g., "2025 Season"

    regular_season_weeks = db.Column(db.Integer, default=18, nullable=False)
    playoff_weeks = db.Column(db.Integer, default=4, nullable=False)

    # Status
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    is_complete = db.Column(db.Boolean, default=False, nullable=False)
    current_week = db.Column(db.Integer, default=1, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (db.Index("idx_season_active", "is_active"),)

    def __repr__(self):
        return f"<Season {self.year}>"

    @staticmethod
    def get_current_season():
        """Get the currently active season"""
        return Season.query.filter_by(is_active=True).first()

    @staticmethod
    def get_by_year(year):
        return Season.query.filter_by(year=year).first()

    @staticmethod
    def create_season(year, current_week=1):
        """Create a new season"""
        season = Season(year=year, name=f"{year} Season", current_week=current_week)
        db.session.add(season)
        return season

    def activate(self):
        """Activate this season (deactivates all others)"""
        Season.query.update({"is_active": False})
        self.is_active = True
        db.session.commit()

    @property
    def total_weeks(self):
        return self.regular_season_weeks + self.playoff_weeks

    def is_playoff_week(self, week):
        """Check if a week is a playoff week"""
        return week > self.regular_season_weeks

    def get_current_week_auto(self, now=None):
        """Determine the current week from the game schedule"""
        from pickem_pool.utils.timezone_utils import ensure_utc

        from .game import Game

        now = now or datetime.now(timezone.utc)

        all_games = (
            Game.query.filter_by(season=self.year)
            .order_by(Game.week, Game.game_time)
            .all()
        )

        if not all_games:
            return self.current_week or 1

        for week_num in range(1, self.total_weeks + 1):
            week_games = [game for game in all_games if game.week == week_num]
            if not week_games:
                continue

            first_game_time = ensure_utc(min(g.game_time for g in week_games))
            last_game_time = ensure_utc(max(g.game_time for g in week_games))

            # Within three days of the opening kickoff the week is open for picks
            if now < first_game_time:
                if first_game_time - now <= timedelta(days=3):
                    return week_num
                continue

            if now <= last_game_time:
                return week_num

            if any(not game.is_final for game in week_games):
                return week_num

        return max(game.week for game in all_games)

    def update_current_week(self):
        """Update the current_week field based on actual game schedule"""
        calculated_week = self.get_current_week_auto()
        if calculated_week != self.current_week:
            self.current_week = calculated_week
            db.session.commit()
        return self.current_week

    def to_dict(self):
        """Convert season to dictionary for API responses"""
        return {
            "id": self.id,
            "year": self.year,
            "name": self.name,
            "is_active": self.is_active,
            "is_complete": self.is_complete,
            "current_week": self.current_week,
            "regular_season_weeks": self.regular_season_weeks,
            "playoff_weeks": self.playoff_weeks,
        }
