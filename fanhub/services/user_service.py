"""
User service for syncing identity-provider users with the database
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from fanhub import db
from fanhub.errors import NotFoundError, OperationFailedError, ValidationError
from fanhub.models import Prediction, User, UserRole

logger = logging.getLogger(__name__)


def get_user_by_auth_id(auth_id):
    if not auth_id:
        return None
    return User.query.filter_by(auth_id=auth_id).first()


def sync_user(auth_id, email, name=None, picture=None):
    """
    Create the user on first login, refresh profile fields afterwards

    Returns:
        The stored User
    """
    if not auth_id or not email:
        raise ValidationError("Identity subject and email are required")

    now = datetime.now(timezone.utc)
    user = get_user_by_auth_id(auth_id)

    if user is None:
        user = User(auth_id=auth_id, role=UserRole.USER)
        db.session.add(user)
        logger.info(f"Creating user for identity {auth_id}")

    user.email = email
    user.name = name
    user.picture = picture
    user.last_login_at = now

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"Error syncing user {auth_id}: {e}")
        raise OperationFailedError("Failed to sync user")

    return user


def update_user_role(user_id, role):
    try:
        role = UserRole(str(role).upper())
    except ValueError:
        raise ValidationError("Invalid role")

    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    user.role = role
    db.session.commit()
    logger.info(f"User {user.id} role set to {role.value}")
    return user


def list_users_with_prediction_counts():
    """All users, newest first, with how many predictions each has made"""
    rows = (
        db.session.query(User, func.count(Prediction.id))
        .outerjoin(Prediction, Prediction.user_id == User.id)
        .group_by(User.id)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    return [(user, count) for user, count in rows]
