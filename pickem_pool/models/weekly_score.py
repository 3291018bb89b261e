from datetime import datetime, timezone

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from pickem_pool import db

SCORE_FIELDS = (
    "correct_picks",
    "total_picks",
    "total_points",
    "possible_points",
    "win_percentage",
)


class WeeklyScore(db.Model):
    __tablename__ = "weekly_scores"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    week = db.Column(db.Integer, nullable=False)
    season = db.Column(db.Integer, nullable=False)

    correct_picks = db.Column(db.Integer, nullable=False, default=0)
    total_picks = db.Column(db.Integer, nullable=False, default=0)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    possible_points = db.Column(db.Integer, nullable=False, default=0)
    win_percentage = db.Column(db.Float, nullable=False, default=0.0)
    weekly_rank = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "week", "season", name="unique_user_week_season_score"
        ),
        db.Index("idx_weekly_score_season_week", "season", "week"),
    )

    def __repr__(self):
        return f"<WeeklyScore user_id={self.user_id} week={self.week} season={self.season} points={self.total_points}>"

    @staticmethod
    def upsert(user_id, week, season, **scores):
        """Insert or overwrite the (user, week, season) row

        Uses the dialect's INSERT .. ON CONFLICT DO UPDATE where available so
        the write is atomic on the unique key; other backends fall back to
        find-or-create inside the caller's transaction.
        """
        values = {field: scores[field] for field in SCORE_FIELDS}
        now = datetime.now(timezone.utc)
        dialect = db.engine.dialect.name

        if dialect in ("postgresql", "sqlite"):
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert(WeeklyScore).values(
                user_id=user_id,
                week=week,
                season=season,
                created_at=now,
                updated_at=now,
                **values,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "week", "season"],
                set_={**values, "updated_at": now},
            )
            db.session.execute(stmt)
            return

        row = WeeklyScore.query.filter_by(
            user_id=user_id, week=week, season=season
        ).first()
        if row is None:
            row = WeeklyScore(user_id=user_id, week=week, season=season)
            db.session.add(row)
        for field, value in values.items():
            setattr(row, field, value)
        db.session.flush()

    @staticmethod
    def for_week(week, season):
        """Fresh rows for a week (bypasses stale identity-map state after upserts)"""
        return (
            WeeklyScore.query.filter_by(week=week, season=season)
            .execution_options(populate_existing=True)
            .all()
        )

    def to_dict(self):
        data = {
            "user_id": self.user_id,
            "week": self.week,
            "season": self.season,
            "weekly_rank": self.weekly_rank,
        }
        data.update({field: getattr(self, field) for field in SCORE_FIELDS})
        return data
