from flask import Blueprint

bp = Blueprint("tracker", __name__)

from pickem_pool.routes.tracker import routes  # noqa: E402, F401
