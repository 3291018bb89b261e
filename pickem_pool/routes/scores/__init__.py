from flask import Blueprint

bp = Blueprint("scores", __name__)

from pickem_pool.routes.scores import routes  # noqa: E402, F401
