"""
Leaderboard Service for the Fan Hub

Rankings are computed on request from stamped predictions:

    window filter -> aggregate per user -> correct counts -> identity join
    -> streaks (all-time only) -> sort -> rank -> paginate

Only resolved predictions count. Ranking is by total points, then accuracy,
then number of resolved predictions; ranks are unique and sequential.
"""

import logging
from dataclasses import dataclass

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from fanhub.errors import NotFoundError, OperationFailedError, ValidationError
from fanhub.services.repository import PredictionRepository
from fanhub.utils.achievements import check_achievements, progress_summary
from fanhub.utils.performance import timer
from fanhub.utils.rounding import percentage
from fanhub.utils.streaks import best_streak, current_streak
from fanhub.utils.timezone_utils import get_week_start, to_db_time

logger = logging.getLogger(__name__)

WEEK = "week"
ALL_TIME = "all-time"
TIMEFRAMES = (WEEK, ALL_TIME)

MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_STREAK_LOOKBACK = 50
RECENT_FORM_LENGTH = 5


@dataclass
class LeaderboardEntry:
    user_id: int
    user_name: str
    user_picture: object
    total_points: int
    total_predictions: int
    correct_predictions: int
    accuracy: float
    rank: int = 0
    streak: int = 0

    def sort_key(self):
        return (
            -self.total_points,
            -self.accuracy,
            -self.total_predictions,
            self.user_id,
        )

    def to_dict(self):
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "userPicture": self.user_picture,
            "totalPoints": self.total_points,
            "totalPredictions": self.total_predictions,
            "correctPredictions": self.correct_predictions,
            "accuracy": self.accuracy,
            "rank": self.rank,
            "streak": self.streak,
        }


@dataclass
class LeaderboardPage:
    entries: list
    total: int
    limit: int
    offset: int

    @property
    def has_more(self):
        return self.offset + len(self.entries) < self.total


@dataclass
class RankInfo:
    rank: int
    total_users: int

    def to_dict(self):
        return {"rank": self.rank, "totalUsers": self.total_users}


def calculate_accuracy(correct, total, digits=1):
    return percentage(correct, total, digits)


def validate_timeframe(timeframe):
    if timeframe not in TIMEFRAMES:
        raise ValidationError('Invalid timeframe. Must be "week" or "all-time"')


def validate_leaderboard_params(timeframe, limit, offset):
    validate_timeframe(timeframe)

    if not isinstance(limit, int) or limit < MIN_LIMIT or limit > MAX_LIMIT:
        raise ValidationError(f"Limit must be between {MIN_LIMIT} and {MAX_LIMIT}")

    if not isinstance(offset, int) or offset < 0:
        raise ValidationError("Offset must be a non-negative integer")


def get_window_start(timeframe, now=None):
    """Earliest created_at counted for a timeframe, or None for all-time"""
    if timeframe == WEEK:
        return to_db_time(get_week_start(now))
    return None


def _streak_lookback():
    if has_app_context():
        return current_app.config.get("STREAK_LOOKBACK", DEFAULT_STREAK_LOOKBACK)
    return DEFAULT_STREAK_LOOKBACK


def rank_entries(entries):
    """Sort entries and assign ranks 1..N in sorted order"""
    ranked = sorted(entries, key=LeaderboardEntry.sort_key)
    for position, entry in enumerate(ranked, start=1):
        entry.rank = position
    return ranked


def paginate(entries, limit, offset):
    return entries[offset:offset + limit]


@timer
def build_leaderboard(timeframe=ALL_TIME, now=None, repository=None):
    """
    Compute the full ranked leaderboard for a timeframe

    Args:
        timeframe: "week" or "all-time"
        now: Reference time for the weekly window
        repository: PredictionRepository to read from

    Returns:
        list[LeaderboardEntry] sorted and ranked
    """
    validate_timeframe(timeframe)
    repository = repository or PredictionRepository()
    since = get_window_start(timeframe, now)

    aggregates = repository.aggregate_by_user(since)
    if not aggregates:
        return []

    correct_counts = repository.correct_counts_by_user(since)
    users = repository.get_users([aggregate.user_id for aggregate in aggregates])
    lookback = _streak_lookback()

    entries = []
    for aggregate in aggregates:
        user = users.get(aggregate.user_id)
        correct = correct_counts.get(aggregate.user_id, 0)

        streak = 0
        if timeframe == ALL_TIME:
            streak = current_streak(
                repository.resolved_outcomes(aggregate.user_id, limit=lookback)
            )

        entries.append(
            LeaderboardEntry(
                user_id=aggregate.user_id,
                user_name=(user.name if user and user.name else "Anonymous"),
                user_picture=(user.picture if user and user.picture else None),
                total_points=aggregate.total_points,
                total_predictions=aggregate.total_predictions,
                correct_predictions=correct,
                accuracy=calculate_accuracy(correct, aggregate.total_predictions),
                streak=streak,
            )
        )

    ranked = rank_entries(entries)
    logger.debug(f"Built {timeframe} leaderboard with {len(ranked)} entries")
    return ranked


def get_leaderboard_page(timeframe=ALL_TIME, limit=100, offset=0, now=None, repository=None):
    """Leaderboard slice plus the total number of ranked users"""
    validate_leaderboard_params(timeframe, limit, offset)
    ranked = build_leaderboard(timeframe, now=now, repository=repository)
    return LeaderboardPage(
        entries=paginate(ranked, limit, offset),
        total=len(ranked),
        limit=limit,
        offset=offset,
    )


def calculate_leaderboard(timeframe=ALL_TIME, limit=100, offset=0, now=None, repository=None):
    """Ranked leaderboard entries in [offset, offset + limit)"""
    return get_leaderboard_page(
        timeframe, limit=limit, offset=offset, now=now, repository=repository
    ).entries


def get_user_rank(user_id, timeframe=ALL_TIME, now=None, repository=None):
    """
    Rank of a single user without building the whole leaderboard

    Only points are compared: the rank is one more than the number of users
    with a strictly higher point sum, so users level on points share a rank
    here even though the full leaderboard separates them.

    Returns:
        RankInfo with rank and the number of users holding a resolved
        prediction in the window
    """
    validate_timeframe(timeframe)
    repository = repository or PredictionRepository()
    since = get_window_start(timeframe, now)

    user_points = repository.sum_points(user_id, since)
    ahead = repository.count_users_above(user_points, since)
    total_users = repository.count_ranked_users(since)

    return RankInfo(rank=ahead + 1, total_users=total_users)


def get_user_stats(user_id, now=None, repository=None):
    """
    Detailed statistics for one user across all resolved predictions

    Raises:
        NotFoundError: unknown user
        OperationFailedError: storage failure
    """
    repository = repository or PredictionRepository()

    try:
        if repository.get_user(user_id) is None:
            raise NotFoundError("User not found")

        outcomes = repository.resolved_outcomes(user_id)
        total_points = repository.sum_points(user_id)
        all_time_rank = get_user_rank(user_id, ALL_TIME, now=now, repository=repository)
        weekly_rank = get_user_rank(user_id, WEEK, now=now, repository=repository)
    except SQLAlchemyError as e:
        logger.exception(f"Error fetching stats for user {user_id}: {e}")
        raise OperationFailedError("Failed to fetch user stats")

    total_predictions = len(outcomes)
    correct_predictions = sum(1 for is_correct in outcomes if is_correct)

    stats = {
        "totalPoints": total_points,
        "totalPredictions": total_predictions,
        "correctPredictions": correct_predictions,
        "accuracy": calculate_accuracy(correct_predictions, total_predictions, digits=0),
        "currentStreak": current_streak(outcomes),
        "bestStreak": best_streak(outcomes),
        "rank": {
            "allTime": all_time_rank.rank,
            "weekly": weekly_rank.rank,
        },
        "recentForm": [bool(is_correct) for is_correct in outcomes[:RECENT_FORM_LENGTH]],
    }
    stats["achievements"] = [a.to_dict() for a in check_achievements(stats)]
    stats["nextAchievements"] = progress_summary(stats)

    return stats
