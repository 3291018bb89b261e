import logging

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from pickem_pool import db, limiter, login_manager
from pickem_pool.forms.auth import LoginForm
from pickem_pool.models import User
from pickem_pool.routes.auth import bp

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@bp.route("/csrf-token")
def csrf_token():
    """Token for the X-CSRFToken header on state-changing requests"""
    return jsonify({"csrf_token": generate_csrf()})


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify({"error": "Validation failed", "details": form.errors}), 400

    user = User.query.filter_by(username=form.username.data).first()

    if not user or not user.check_password(form.password.data):
        logger.warning(f"Failed login attempt for username '{form.username.data}'")
        return jsonify({"error": "Invalid username or password"}), 401

    if not user.is_active:
        return jsonify({"error": "Your account has been deactivated"}), 403

    login_user(user, remember=form.remember_me.data)
    user.update_last_login()
    logger.info(f"User {user.username} logged in")

    return jsonify({"message": "Login successful", "user": user.to_dict(include_private=True)})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})


@bp.route("/me")
@login_required
def me():
    return jsonify(current_user.to_dict(include_private=True))
