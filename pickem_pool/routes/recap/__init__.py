from flask import Blueprint

bp = Blueprint("recap", __name__)

from pickem_pool.routes.recap import routes  # noqa: E402, F401
