from datetime import datetime, timezone

from pickem_pool import db


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False)

    # Pick details
    selected_team = db.Column(db.String(10), nullable=False)
    confidence_points = db.Column(db.Integer, nullable=False, default=1)
    tiebreaker_points = db.Column(db.Integer)  # Total points guess for the final game

    # Results (populated once the game is final)
    is_correct = db.Column(db.Boolean)
    points_earned = db.Column(db.Integer)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("user_id", "game_id", name="unique_user_game_pick"),
        db.CheckConstraint("confidence_points >= 1", name="positive_confidence"),
        db.Index("idx_pick_user", "user_id"),
        db.Index("idx_pick_game", "game_id"),
    )

    def __repr__(self):
        return f"<Pick user_id={self.user_id} game_id={self.game_id} team={self.selected_team}>"

    @property
    def week(self):
        """Get the week number from the associated game"""
        return self.game.week if self.game else None

    def update_result(self):
        """Grade this pick against its game"""
        from pickem_pool.utils.scoring import pick_outcome

        if not self.game:
            return

        self.is_correct, self.points_earned = pick_outcome(self, self.game)

    def clear_result(self):
        self.is_correct = None
        self.points_earned = None

    def to_dict(self, include_game=False):
        """Convert pick to dictionary for API responses"""
        from pickem_pool.utils.timezone_utils import isoformat_utc

        data = {
            "pick_id": self.id,
            "user_id": self.user_id,
            "game_id": self.game_id,
            "week": self.week,
            "selected_team": self.selected_team,
            "confidence_points": self.confidence_points,
            "tiebreaker_points": self.tiebreaker_points,
            "is_correct": self.is_correct,
            "points_earned": self.points_earned,
            "pick_time": isoformat_utc(self.updated_at or self.created_at),
        }
        if include_game and self.game:
            data["game"] = self.game.to_dict()
        return data
