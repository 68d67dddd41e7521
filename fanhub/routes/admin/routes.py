import logging

from flask import jsonify, request
from flask_login import current_user

from fanhub.routes.admin import bp
from fanhub.services import match_service, prediction_service, user_service
from fanhub.socketio_handlers import dispatch_match_events
from fanhub.utils.auth import admin_required
from fanhub.utils.cache_utils import invalidate_cache_prefix

logger = logging.getLogger(__name__)


@bp.route("/matches/<int:match_id>/calculate-points", methods=["POST"])
@admin_required
def calculate_points(match_id):
    """Score every prediction on a completed match"""
    summary = prediction_service.calculate_match_points(match_id)
    logger.info(f"Admin {current_user.id} calculated points for match {match_id}")

    return jsonify(
        {
            "message": "Points calculated successfully",
            "updated": summary.updated,
            "stats": summary.to_dict(),
        }
    )


@bp.route("/matches/<int:match_id>", methods=["PATCH"])
@admin_required
def update_match(match_id):
    """Update score, status or clock and push the change to live subscribers"""
    changes = request.get_json(silent=True) or {}

    match, events = match_service.update_match(match_id, changes)
    invalidate_cache_prefix("matches")
    broadcast = dispatch_match_events(events)

    return jsonify({"match": match.to_dict(), "eventsBroadcast": broadcast})


@bp.route("/users")
@admin_required
def users():
    rows = user_service.list_users_with_prediction_counts()

    result = []
    for user, prediction_count in rows:
        data = user.to_dict()
        data["predictionCount"] = prediction_count
        result.append(data)

    return jsonify({"users": result})


@bp.route("/users/<int:user_id>/role", methods=["PATCH"])
@admin_required
def update_user_role(user_id):
    data = request.get_json(silent=True) or {}
    user = user_service.update_user_role(user_id, data.get("role"))
    logger.info(f"Admin {current_user.id} set role of user {user.id} to {user.role.value}")

    return jsonify({"user": user.to_dict()})
