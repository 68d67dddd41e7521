import logging

from flask import current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from fanhub import limiter
from fanhub.errors import AuthorizationError, ValidationError
from fanhub.routes.api import bp
from fanhub.services import leaderboard_service, match_service, prediction_service
from fanhub.utils.achievements import ACHIEVEMENTS, CATEGORIES
from fanhub.utils.cache_utils import cached_route, invalidate_cache_prefix

logger = logging.getLogger(__name__)

LEADERBOARD_UNAVAILABLE = "Unable to load leaderboard. Please try again later."


def _int_arg(name, default=None):
    """
    Read an integer query parameter, rejecting anything non-numeric

    request.args.get(name, type=int) would quietly fall back to the default
    on bad input; a malformed value here is a 400 instead.
    """
    value = request.args.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def _prediction_rate_limit():
    return current_app.config.get("PREDICTION_RATE_LIMIT", "10 per minute")


def _current_user_rank(timeframe):
    """Rank of the signed-in user, or None when anonymous or unavailable"""
    try:
        if not current_user.is_authenticated:
            return None
        return leaderboard_service.get_user_rank(current_user.id, timeframe).to_dict()
    except SQLAlchemyError as e:
        logger.exception(f"Error fetching rank for current user: {e}")
        return None


@bp.route("/leaderboard")
def leaderboard():
    """Ranked leaderboard for the week or all time"""
    timeframe = request.args.get("timeframe", leaderboard_service.ALL_TIME)
    limit = _int_arg("limit", current_app.config.get("LEADERBOARD_DEFAULT_LIMIT", 100))
    offset = _int_arg("offset", 0)

    # Reject bad parameters before touching storage
    leaderboard_service.validate_leaderboard_params(timeframe, limit, offset)

    try:
        page = leaderboard_service.get_leaderboard_page(timeframe, limit=limit, offset=offset)
    except SQLAlchemyError as e:
        logger.exception(f"Error building {timeframe} leaderboard: {e}")
        return jsonify(
            {
                "leaderboard": [],
                "currentUserRank": None,
                "timeframe": timeframe,
                "pagination": {"limit": limit, "offset": offset, "hasMore": False},
                "error": LEADERBOARD_UNAVAILABLE,
            }
        )

    return jsonify(
        {
            "leaderboard": [entry.to_dict() for entry in page.entries],
            "currentUserRank": _current_user_rank(timeframe),
            "timeframe": timeframe,
            "pagination": {"limit": limit, "offset": offset, "hasMore": page.has_more},
        }
    )


@bp.route("/users/<int:user_id>/stats")
@login_required
def user_stats(user_id):
    """Detailed statistics, only for the signed-in user's own account"""
    if user_id != current_user.id:
        raise AuthorizationError()

    return jsonify(leaderboard_service.get_user_stats(user_id))


@bp.route("/matches")
@cached_route(timeout=60, key_prefix="matches")
def matches():
    """Fixtures with prediction counts"""
    limit = _int_arg("limit", current_app.config.get("MATCHES_DEFAULT_LIMIT", 20))
    if limit < 1:
        raise ValidationError("limit must be at least 1")

    match_list = match_service.list_matches(
        round=_int_arg("round"),
        status=request.args.get("status") or None,
        limit=limit,
    )
    # Plain dict so the cached value stays serialisable
    return {"matches": [m.to_dict(include_prediction_count=True) for m in match_list]}


@bp.route("/predictions")
@login_required
def predictions():
    """The signed-in user's predictions"""
    prediction_list = prediction_service.list_user_predictions(
        current_user,
        match_id=_int_arg("matchId"),
        status=request.args.get("status") or None,
    )
    return jsonify({"predictions": [p.to_dict(include_match=True) for p in prediction_list]})


@bp.route("/predictions/submit", methods=["POST"])
@login_required
@limiter.limit(_prediction_rate_limit)
def submit_prediction():
    """Submit a prediction for an upcoming match"""
    data = request.get_json(silent=True) or {}

    prediction = prediction_service.submit_prediction(
        current_user,
        data.get("matchId"),
        data.get("predictedWinner"),
    )
    # Cached match list carries prediction counts
    invalidate_cache_prefix("matches")
    match = prediction.match

    return (
        jsonify(
            {
                "message": "Prediction submitted successfully",
                "prediction": {
                    "id": prediction.id,
                    "predictedWinner": prediction.predicted_winner,
                    "match": {
                        "homeTeam": match.home_team,
                        "awayTeam": match.away_team,
                        "kickoffTime": (
                            match.kickoff_time.isoformat() if match.kickoff_time else None
                        ),
                    },
                },
            }
        ),
        201,
    )


@bp.route("/achievements")
def achievements():
    """The badge catalog"""
    return jsonify(
        {
            "categories": list(CATEGORIES),
            "achievements": [a.to_dict() for a in ACHIEVEMENTS],
        }
    )
