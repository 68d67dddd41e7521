import logging

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user

from fanhub import limiter
from fanhub.errors import AuthenticationError
from fanhub.routes.auth import bp
from fanhub.services.user_service import sync_user
from fanhub.utils.auth import identity_from_headers

logger = logging.getLogger(__name__)


@bp.route("/sync", methods=["POST"])
@limiter.limit("10 per minute")
def sync():
    """Create or refresh the user forwarded by the identity proxy and sign them in"""
    identity = identity_from_headers()
    if identity is None:
        raise AuthenticationError()

    user = sync_user(**identity)
    login_user(user)
    logger.info(f"User {user.id} signed in")

    return jsonify({"user": user.to_dict()})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logger.info(f"User {current_user.id} signed out")
    logout_user()
    return jsonify({"message": "Signed out"})


@bp.route("/profile")
@login_required
def profile():
    return jsonify({"user": current_user.to_dict()})
