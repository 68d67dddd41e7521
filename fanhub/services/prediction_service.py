"""
Prediction submission and point calculation
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fanhub import db
from fanhub.errors import (
    NotFoundError,
    OperationFailedError,
    PreconditionError,
    ValidationError,
)
from fanhub.models import MatchStatus
from fanhub.services.repository import PredictionRepository

logger = logging.getLogger(__name__)

DUPLICATE_PREDICTION_MESSAGE = "You have already made a prediction for this match"


def parse_match_id(value):
    """Integer match id from JSON input; digit strings are accepted, booleans are not"""
    if isinstance(value, bool):
        raise ValidationError("matchId must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value)
    raise ValidationError("matchId must be an integer")


@dataclass
class PointsSummary:
    updated: int
    correct_predictions: int
    total_points_awarded: int

    def to_dict(self):
        return {
            "totalPredictions": self.updated,
            "correctPredictions": self.correct_predictions,
            "totalPointsAwarded": self.total_points_awarded,
        }


def submit_prediction(user, match_id, predicted_winner, now=None, repository=None):
    """
    Create a prediction for an upcoming match

    Checks run in order: required fields, field types, match exists, match
    is upcoming, kickoff not reached, predicted winner plays in the match,
    no earlier prediction by this user.

    Returns:
        The created Prediction
    """
    repository = repository or PredictionRepository()
    now = now or datetime.now(timezone.utc)

    if not match_id or not predicted_winner:
        raise ValidationError("Missing required fields: matchId, predictedWinner")

    match_id = parse_match_id(match_id)
    if not isinstance(predicted_winner, str):
        raise ValidationError("predictedWinner must be a team name")

    try:
        match = repository.get_match(match_id)
        if match is None:
            raise NotFoundError("Match not found")

        if match.status != MatchStatus.UPCOMING:
            raise PreconditionError("Predictions can only be made for upcoming matches")

        if match.has_started(now):
            raise PreconditionError("Predictions are locked - match has already started")

        if not match.has_team(predicted_winner):
            raise ValidationError("Predicted winner must be one of the match teams")

        if repository.find_prediction(user.id, match.id) is not None:
            raise PreconditionError(DUPLICATE_PREDICTION_MESSAGE)

        prediction = repository.add_prediction(user.id, match.id, predicted_winner)
        db.session.commit()
    except IntegrityError:
        # Lost a race against a concurrent submission for the same match
        db.session.rollback()
        raise PreconditionError(DUPLICATE_PREDICTION_MESSAGE)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"Error submitting prediction for user {user.id}: {e}")
        raise OperationFailedError("Failed to submit prediction")

    logger.info(
        f"User {user.id} predicted {predicted_winner} for match {match.id}"
    )
    return prediction


def calculate_match_points(match_id, repository=None):
    """
    Stamp every prediction on a completed match with correctness and points

    All updates are committed in a single transaction. Running it again on
    the same match produces the same result.

    Raises:
        NotFoundError: unknown match
        PreconditionError: match not completed or missing a score
        OperationFailedError: storage failure (nothing is written)
    """
    repository = repository or PredictionRepository()

    try:
        match = repository.get_match(match_id)
        if match is None:
            raise NotFoundError("Match not found")

        if match.status != MatchStatus.COMPLETED:
            raise PreconditionError("Points can only be calculated for completed matches")

        if not match.has_scores:
            raise PreconditionError("Match must have final scores to calculate points")

        predictions = repository.predictions_for_match(match.id)
        for prediction in predictions:
            prediction.apply_result(match)

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"Error calculating points for match {match_id}: {e}")
        raise OperationFailedError("Failed to calculate points")

    summary = PointsSummary(
        updated=len(predictions),
        correct_predictions=sum(1 for p in predictions if p.is_correct),
        total_points_awarded=sum(p.points for p in predictions),
    )
    logger.info(
        f"Calculated points for match {match.id}: {summary.updated} predictions, "
        f"{summary.correct_predictions} correct, {summary.total_points_awarded} points"
    )
    return summary


def list_user_predictions(user, match_id=None, status=None, repository=None):
    """The user's predictions, newest first, with their matches"""
    repository = repository or PredictionRepository()

    if status is not None:
        try:
            status = MatchStatus(status.upper())
        except ValueError:
            raise ValidationError("Invalid status. Must be upcoming, live or completed")

    try:
        return repository.predictions_for_user(user.id, match_id=match_id, status=status)
    except SQLAlchemyError as e:
        logger.exception(f"Error fetching predictions for user {user.id}: {e}")
        raise OperationFailedError("Failed to fetch predictions")
