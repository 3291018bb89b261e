"""
Pydantic schemas for JSON request bodies.

Routes call ``Schema.model_validate(request.get_json(silent=True) or {})``;
a failed validation raises ``pydantic.ValidationError``, which the app's
error handler renders as a 400 with per-field details.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pickem_pool.models.game import GAME_STATUSES

MAX_PICKS_PER_SUBMISSION = 16


def _team_code(value):
    return value.strip().upper()


# ========== PICKS ==========


class PickIn(BaseModel):
    """One pick inside a week submission"""

    model_config = ConfigDict(str_strip_whitespace=True)

    game_id: int = Field(gt=0)
    selected_team: str = Field(min_length=2, max_length=10)
    confidence_points: int = Field(default=1, ge=1)
    tiebreaker_points: int | None = Field(default=None, ge=0, le=200)

    @field_validator("selected_team")
    @classmethod
    def normalize_team(cls, value):
        return _team_code(value)


class PickSubmission(BaseModel):
    """Full-week submission; replaces the user's open picks for that week"""

    picks: list[PickIn] = Field(min_length=1, max_length=MAX_PICKS_PER_SUBMISSION)
    user_id: int | None = None  # admins may submit on behalf of another user


class PickUpdate(BaseModel):
    selected_team: str | None = Field(default=None, min_length=2, max_length=10)
    confidence_points: int | None = Field(default=None, ge=1)
    tiebreaker_points: int | None = Field(default=None, ge=0, le=200)

    @field_validator("selected_team")
    @classmethod
    def normalize_team(cls, value):
        return _team_code(value) if value is not None else value


# ========== GAMES ==========


class GameResult(BaseModel):
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)


class GameCreate(BaseModel):
    season: int = Field(ge=1900, le=2200)
    week: int = Field(ge=1, le=25)
    home_team: str = Field(min_length=2, max_length=10)
    away_team: str = Field(min_length=2, max_length=10)
    game_time: datetime
    spread: float | None = None

    @field_validator("home_team", "away_team")
    @classmethod
    def normalize_team(cls, value):
        return _team_code(value)

    @model_validator(mode="after")
    def check_teams_differ(self):
        if self.home_team == self.away_team:
            raise ValueError("home_team and away_team must differ")
        return self


class GameStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, value):
        if value not in GAME_STATUSES:
            raise ValueError(f"status must be one of {', '.join(GAME_STATUSES)}")
        return value


# ========== TRACKER ==========


class HypotheticalScore(BaseModel):
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)


class ForecastRequest(BaseModel):
    """Worksheet of hypothetical scores keyed by game id"""

    worksheet_scores: dict[int, HypotheticalScore]
    week: int = Field(gt=0)
    season: int | None = Field(default=None, gt=0)

    def score_map(self):
        return {
            game_id: score.model_dump()
            for game_id, score in self.worksheet_scores.items()
        }


# ========== USERS ==========


class UserUpdate(BaseModel):
    is_admin: bool | None = None
    is_active: bool | None = None
    display_name: str | None = Field(default=None, max_length=100)
