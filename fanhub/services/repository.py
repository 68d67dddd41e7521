"""
Data access for the scoring and leaderboard services

All prediction queries the core needs live here so the ranking code works
on plain rows. Only resolved predictions (is_correct IS NOT NULL) count
towards points, totals and streaks. Nothing in this module commits; the
calling service owns the transaction.
"""

from dataclasses import dataclass

from sqlalchemy import func

from fanhub import db
from fanhub.models import Match, Prediction, User


@dataclass
class UserAggregate:
    user_id: int
    total_points: int
    total_predictions: int


class PredictionRepository:
    def __init__(self, session=None):
        self.session = session or db.session

    # Users and matches

    def get_user(self, user_id):
        return self.session.get(User, user_id)

    def get_users(self, user_ids):
        """Map user id to User for the given ids"""
        if not user_ids:
            return {}
        users = self.session.query(User).filter(User.id.in_(list(user_ids))).all()
        return {user.id: user for user in users}

    def get_match(self, match_id):
        return self.session.get(Match, match_id)

    # Predictions

    def find_prediction(self, user_id, match_id):
        return (
            self.session.query(Prediction)
            .filter_by(user_id=user_id, match_id=match_id)
            .first()
        )

    def add_prediction(self, user_id, match_id, predicted_winner):
        prediction = Prediction(
            user_id=user_id,
            match_id=match_id,
            predicted_winner=predicted_winner,
            points=0,
            is_correct=None,
        )
        self.session.add(prediction)
        return prediction

    def predictions_for_match(self, match_id):
        return (
            self.session.query(Prediction)
            .filter(Prediction.match_id == match_id)
            .order_by(Prediction.id)
            .all()
        )

    def predictions_for_user(self, user_id, match_id=None, status=None):
        query = self.session.query(Prediction).filter(Prediction.user_id == user_id)
        if match_id is not None:
            query = query.filter(Prediction.match_id == match_id)
        if status is not None:
            query = query.join(Match).filter(Match.status == status)
        return query.order_by(Prediction.created_at.desc(), Prediction.id.desc()).all()

    # Aggregates

    def _resolved_filter(self, since):
        filters = [Prediction.is_correct.isnot(None)]
        if since is not None:
            filters.append(Prediction.created_at >= since)
        return filters

    def aggregate_by_user(self, since=None):
        """Sum of points and count of resolved predictions per user"""
        rows = (
            self.session.query(
                Prediction.user_id,
                func.coalesce(func.sum(Prediction.points), 0),
                func.count(Prediction.id),
            )
            .filter(*self._resolved_filter(since))
            .group_by(Prediction.user_id)
            .all()
        )
        return [
            UserAggregate(user_id, int(total_points), int(total_predictions))
            for user_id, total_points, total_predictions in rows
        ]

    def correct_counts_by_user(self, since=None):
        """Map user id to number of correct predictions"""
        filters = [Prediction.is_correct.is_(True)]
        if since is not None:
            filters.append(Prediction.created_at >= since)
        rows = (
            self.session.query(Prediction.user_id, func.count(Prediction.id))
            .filter(*filters)
            .group_by(Prediction.user_id)
            .all()
        )
        return {user_id: int(count) for user_id, count in rows}

    def resolved_outcomes(self, user_id, limit=None):
        """is_correct flags of a user's resolved predictions, newest first"""
        query = (
            self.session.query(Prediction.is_correct)
            .filter(Prediction.user_id == user_id, Prediction.is_correct.isnot(None))
            .order_by(Prediction.created_at.desc(), Prediction.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [is_correct for (is_correct,) in query.all()]

    def sum_points(self, user_id, since=None):
        total = (
            self.session.query(func.coalesce(func.sum(Prediction.points), 0))
            .filter(Prediction.user_id == user_id, *self._resolved_filter(since))
            .scalar()
        )
        return int(total or 0)

    def count_users_above(self, points, since=None):
        """Number of users whose point sum is strictly greater than points"""
        ahead = (
            self.session.query(Prediction.user_id)
            .filter(*self._resolved_filter(since))
            .group_by(Prediction.user_id)
            .having(func.sum(Prediction.points) > points)
            .subquery()
        )
        return self.session.query(func.count()).select_from(ahead).scalar() or 0

    def count_ranked_users(self, since=None):
        """Number of distinct users with at least one resolved prediction"""
        return (
            self.session.query(func.count(func.distinct(Prediction.user_id)))
            .filter(*self._resolved_filter(since))
            .scalar()
            or 0
        )
