from datetime import datetime, timezone

from pickem_pool import db


class AdminAction(db.Model):
    __tablename__ = "admin_actions"

    id = db.Column(db.Integer, primary_key=True)

    admin_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    target_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    # 'record_result', 'create_game', 'set_game_status', 'calculate_scores', 'update_user'
    action_type = db.Column(db.String(50), nullable=False)
    action_description = db.Column(db.String(500), nullable=False)

    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=True)
    week = db.Column(db.Integer)
    season = db.Column(db.Integer)

    action_metadata = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    admin_user = db.relationship(
        "User", foreign_keys=[admin_user_id], backref="admin_actions_performed"
    )
    target_user = db.relationship("User", foreign_keys=[target_user_id])
    game = db.relationship("Game", backref="admin_actions")

    __table_args__ = (
        db.Index("idx_admin_action_admin", "admin_user_id"),
        db.Index("idx_admin_action_type", "action_type"),
        db.Index("idx_admin_action_created", "created_at"),
    )

    def __repr__(self):
        return f"<AdminAction {self.action_type} by {self.admin_user_id}>"

    @staticmethod
    def log_action(
        admin_user_id,
        action_type,
        description,
        target_user_id=None,
        game_id=None,
        week=None,
        season=None,
        action_metadata=None,
    ):
        """Log an admin action (caller commits)"""
        action = AdminAction(
            admin_user_id=admin_user_id,
            target_user_id=target_user_id,
            action_type=action_type,
            action_description=description,
            game_id=game_id,
            week=week,
            season=season,
            action_metadata=action_metadata or {},
        )

        db.session.add(action)
        return action

    @staticmethod
    def log_result_entry(admin_user_id, game):
        return AdminAction.log_action(
            admin_user_id=admin_user_id,
            action_type="record_result",
            description=(
                f"Final: {game.away_team} {game.away_score} @ "
                f"{game.home_team} {game.home_score} (Week {game.week})"
            ),
            game_id=game.id,
            week=game.week,
            season=game.season,
            action_metadata={
                "home_score": game.home_score,
                "away_score": game.away_score,
                "winner": game.winning_team,
            },
        )

    @staticmethod
    def log_score_calculation(admin_user_id, week, season, users_updated):
        return AdminAction.log_action(
            admin_user_id=admin_user_id,
            action_type="calculate_scores",
            description=f"Recalculated week {week} of {season} for {users_updated} users",
            week=week,
            season=season,
            action_metadata={"users_updated": users_updated},
        )

    @staticmethod
    def get_recent(limit=50):
        return (
            AdminAction.query.order_by(AdminAction.created_at.desc())
            .limit(limit)
            .all()
        )

    def to_dict(self):
        return {
            "id": self.id,
            "action_type": self.action_type,
            "description": self.action_description,
            "admin_username": self.admin_user.username if self.admin_user else None,
            "target_user_id": self.target_user_id,
            "game_id": self.game_id,
            "week": self.week,
            "season": self.season,
            "metadata": self.action_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
