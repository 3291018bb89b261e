from datetime import datetime, timezone

from pickem_pool import db

STATUS_SCHEDULED = "scheduled"
STATUS_IN_PROGRESS = "in_progress"
STATUS_FINAL = "final"
GAME_STATUSES = (STATUS_SCHEDULED, STATUS_IN_PROGRESS, STATUS_FINAL)


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)

    # Game identification
    season = db.Column(db.Integer, nullable=False)  # Season year
    week = db.Column(db.Integer, nullable=False)

    # Teams (abbreviations, e.g. "KC")
    home_team = db.Column(db.String(10), nullable=False)
    away_team = db.Column(db.String(10), nullable=False)

    # Kickoff, stored in UTC
    game_time = db.Column(db.DateTime, nullable=False)

    # Scores (set together with status=final)
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Point spread (negative = home team favored)
    spread = db.Column(db.Float)

    status = db.Column(db.String(20), nullable=False, default=STATUS_SCHEDULED)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    picks = db.relationship(
        "Pick", backref="game", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_game_season_week", "season", "week"),
        db.Index("idx_game_time", "game_time"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
        db.CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'final')", name="valid_status"
        ),
        db.CheckConstraint(
            "(status = 'final' AND home_score IS NOT NULL AND away_score IS NOT NULL)"
            " OR (status != 'final' AND home_score IS NULL AND away_score IS NULL)",
            name="scores_iff_final",
        ),
    )

    def __repr__(self):
        return f"<Game {self.away_team} @ {self.home_team} Week {self.week} {self.season}>"

    @property
    def is_final(self):
        return self.status == STATUS_FINAL

    @property
    def is_tie(self):
        """Check if game ended in a tie"""
        return self.is_final and self.home_score == self.away_score

    @property
    def winning_team(self):
        """Abbreviation of the winner (None if game not final or tie)"""
        if not self.is_final or self.home_score == self.away_score:
            return None
        return self.home_team if self.home_score > self.away_score else self.away_team

    @property
    def total_score(self):
        """Get total combined score"""
        if self.home_score is None or self.away_score is None:
            return None
        return self.home_score + self.away_score

    def has_team(self, team):
        return team in (self.home_team, self.away_team)

    def has_started(self, now=None):
        """Check if game has kicked off"""
        from pickem_pool.utils.timezone_utils import ensure_utc

        if not self.game_time:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= ensure_utc(self.game_time)

    def is_pickable(self, now=None):
        """Check if game is available for picks (hasn't started yet)"""
        return not self.has_started(now) and not self.is_final

    def record_result(self, home_score, away_score):
        """Store the final score and grade every pick on this game"""
        self.home_score = home_score
        self.away_score = away_score
        self.status = STATUS_FINAL

        # picks is lazy="dynamic", so we need .all() to get actual list
        for pick in self.picks.all():
            pick.update_result()

    def get_picks_count(self):
        """Get count of picks for each team"""
        home_picks = self.picks.filter_by(selected_team=self.home_team).count()
        away_picks = self.picks.filter_by(selected_team=self.away_team).count()

        return {
            "home_team": home_picks,
            "away_team": away_picks,
            "total": home_picks + away_picks,
        }

    @staticmethod
    def get_games_for_week(season, week):
        """Get all games for a week ordered by kickoff"""
        return (
            Game.query.filter_by(season=season, week=week)
            .order_by(Game.game_time, Game.id)
            .all()
        )

    def to_dict(self, include_picks_count=False):
        """Convert game to dictionary for API responses"""
        from pickem_pool.utils.timezone_utils import isoformat_utc

        data = {
            "game_id": self.id,
            "season": self.season,
            "week": self.week,
            "game_time": isoformat_utc(self.game_time),
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "spread": self.spread,
            "status": self.status,
            "winning_team": self.winning_team,
            "is_pickable": self.is_pickable(),
        }

        if include_picks_count:
            data["picks_count"] = self.get_picks_count()

        return data
