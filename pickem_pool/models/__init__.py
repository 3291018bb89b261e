from pickem_pool import db  # noqa: F401 - imported for model imports

from .admin_action import AdminAction
from .game import Game
from .pick import Pick
from .season import Season
from .user import User
from .weekly_score import WeeklyScore

__all__ = [
    "User",
    "Season",
    "Game",
    "Pick",
    "WeeklyScore",
    "AdminAction",
]
