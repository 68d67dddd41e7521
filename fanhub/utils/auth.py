"""
Authentication helpers

Users authenticate with an upstream identity proxy which forwards the
verified subject in a request header. Flask-Login resolves that subject (or
a session opened by /auth/sync) to a stored User.
"""

import functools
import logging

from flask import current_app, request
from flask_login import current_user

from fanhub import db, login_manager
from fanhub.errors import AuthenticationError, AuthorizationError
from fanhub.models import User

logger = logging.getLogger(__name__)


def identity_from_headers():
    """Identity claims forwarded by the proxy, or None when absent"""
    config = current_app.config
    subject = request.headers.get(config["AUTH_SUBJECT_HEADER"])
    if not subject:
        return None
    return {
        "auth_id": subject,
        "email": request.headers.get(config["AUTH_EMAIL_HEADER"]),
        "name": request.headers.get(config["AUTH_NAME_HEADER"]),
        "picture": request.headers.get(config["AUTH_PICTURE_HEADER"]),
    }


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.request_loader
def load_user_from_request(request):
    identity = identity_from_headers()
    if identity is None:
        return None
    return User.query.filter_by(auth_id=identity["auth_id"]).first()


@login_manager.unauthorized_handler
def unauthorized():
    raise AuthenticationError()


def admin_required(f):
    """Allow only authenticated users holding the ADMIN role"""

    @functools.wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            raise AuthenticationError()
        if not current_user.is_admin:
            logger.warning(f"User {current_user.id} denied admin access to {request.path}")
            raise AuthorizationError("Insufficient permissions")
        return f(*args, **kwargs)

    return decorated_function
