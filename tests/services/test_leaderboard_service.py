from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from fanhub.errors import NotFoundError, OperationFailedError, ValidationError
from fanhub.services.leaderboard_service import (
    ALL_TIME,
    WEEK,
    build_leaderboard,
    calculate_accuracy,
    calculate_leaderboard,
    get_leaderboard_page,
    get_user_rank,
    get_user_stats,
)
from fanhub.services.repository import PredictionRepository, UserAggregate
from fanhub.utils.rounding import round_half_up


@pytest.fixture
def repository():
    repo = MagicMock(spec=PredictionRepository)
    repo.correct_counts_by_user.return_value = {}
    repo.get_users.return_value = {}
    repo.resolved_outcomes.return_value = []
    return repo


@pytest.fixture
def scored_user(make_user, make_prediction):
    """Create a user with resolved predictions worth the given points each"""

    def _scored_user(name, results, created_at=None):
        user = make_user(name=name)
        for offset, points in enumerate(results):
            make_prediction(
                user,
                is_correct=points > 0,
                points=points,
                created_at=(created_at or datetime(2024, 4, 1)) + timedelta(hours=offset),
            )
        return user

    return _scored_user


class TestAccuracy:

    def test_rounds_half_up_to_one_decimal(self):
        assert calculate_accuracy(2, 3) == 66.7
        assert calculate_accuracy(1, 16) == 6.3
        assert calculate_accuracy(8, 10) == 80.0

    def test_no_predictions(self):
        assert calculate_accuracy(0, 0) == 0

    def test_whole_percent(self):
        assert round_half_up(62.5) == 63
        assert calculate_accuracy(1, 8, digits=0) == 13


class TestLeaderboardPipeline:

    def test_accuracy_breaks_points_tie(self, repository):
        repository.aggregate_by_user.return_value = [
            UserAggregate(user_id=2, total_points=100, total_predictions=15),
            UserAggregate(user_id=1, total_points=100, total_predictions=10),
        ]
        repository.correct_counts_by_user.return_value = {1: 8, 2: 9}
        repository.get_users.return_value = {
            1: SimpleNamespace(name="Alice", picture=None),
            2: SimpleNamespace(name="Bob", picture="https://img.example.com/bob.png"),
        }

        entries = build_leaderboard(ALL_TIME, repository=repository)

        assert [(e.user_name, e.rank) for e in entries] == [("Alice", 1), ("Bob", 2)]
        assert entries[0].accuracy == 80.0
        assert entries[1].accuracy == 60.0
        assert entries[1].user_picture == "https://img.example.com/bob.png"

    def test_prediction_count_breaks_remaining_tie(self, repository):
        repository.aggregate_by_user.return_value = [
            UserAggregate(user_id=1, total_points=50, total_predictions=10),
            UserAggregate(user_id=2, total_points=50, total_predictions=20),
        ]
        repository.correct_counts_by_user.return_value = {1: 5, 2: 10}

        entries = build_leaderboard(ALL_TIME, repository=repository)

        assert [e.user_id for e in entries] == [2, 1]

    def test_missing_user_shows_as_anonymous(self, repository):
        repository.aggregate_by_user.return_value = [UserAggregate(7, 10, 1)]

        entry = build_leaderboard(ALL_TIME, repository=repository)[0]

        assert entry.user_name == "Anonymous"
        assert entry.user_picture is None

    def test_all_time_streak_uses_bounded_history(self, repository):
        repository.aggregate_by_user.return_value = [UserAggregate(1, 30, 4)]
        repository.resolved_outcomes.return_value = [True, True, False, True]

        entry = build_leaderboard(ALL_TIME, repository=repository)[0]

        assert entry.streak == 2
        repository.resolved_outcomes.assert_called_once_with(1, limit=50)

    def test_weekly_entries_have_no_streak(self, repository):
        repository.aggregate_by_user.return_value = [UserAggregate(1, 30, 4)]
        repository.resolved_outcomes.return_value = [True, True, True]

        entry = build_leaderboard(WEEK, now=datetime(2024, 5, 15, 12, 0), repository=repository)[0]

        assert entry.streak == 0
        repository.resolved_outcomes.assert_not_called()

    def test_weekly_window_starts_monday(self, repository):
        repository.aggregate_by_user.return_value = []

        build_leaderboard(WEEK, now=datetime(2024, 5, 19, 23, 0), repository=repository)

        repository.aggregate_by_user.assert_called_once_with(datetime(2024, 5, 13, 0, 0))

    def test_empty_leaderboard(self, repository):
        repository.aggregate_by_user.return_value = []

        assert build_leaderboard(ALL_TIME, repository=repository) == []
        repository.get_users.assert_not_called()

    def test_invalid_timeframe_reads_nothing(self, repository):
        with pytest.raises(ValidationError):
            get_leaderboard_page("invalid", repository=repository)

        assert repository.method_calls == []

    @pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (10, -1)])
    def test_rejects_out_of_range_paging(self, repository, limit, offset):
        with pytest.raises(ValidationError):
            get_leaderboard_page(ALL_TIME, limit=limit, offset=offset, repository=repository)

        assert repository.method_calls == []


class TestLeaderboardWithDatabase:

    def test_sorted_and_ranked(self, scored_user):
        scored_user("Low", [10, 0, 0])
        scored_user("High", [15, 15, 10])
        scored_user("Middle A", [10, 10, 0, 0])
        scored_user("Middle B", [10, 10, 0])

        entries = calculate_leaderboard(ALL_TIME)

        assert [e.user_name for e in entries] == ["High", "Middle B", "Middle A", "Low"]
        assert [e.rank for e in entries] == [1, 2, 3, 4]
        for a, b in zip(entries, entries[1:]):
            assert (a.total_points, a.accuracy, a.total_predictions) >= (
                b.total_points,
                b.accuracy,
                b.total_predictions,
            )

    def test_unresolved_predictions_do_not_count(self, scored_user, make_user, make_prediction):
        counted = scored_user("Counted", [10, 0])
        make_prediction(counted, is_correct=None, points=0)
        pending = make_user(name="Pending")
        make_prediction(pending, is_correct=None, points=0)

        entries = calculate_leaderboard(ALL_TIME)

        assert [e.user_id for e in entries] == [counted.id]
        assert entries[0].total_predictions == 2
        assert entries[0].correct_predictions == 1
        assert entries[0].accuracy == 50.0

    def test_streak_uses_newest_predictions_first(self, make_user, make_prediction):
        user = make_user(name="Streaky")
        base = datetime(2024, 4, 1)
        for hours, is_correct in [(0, True), (1, False), (2, True), (3, True)]:
            make_prediction(user, is_correct=is_correct, points=10 if is_correct else 0,
                            created_at=base + timedelta(hours=hours))

        assert calculate_leaderboard(ALL_TIME)[0].streak == 2

    def test_pages_concatenate_to_full_list(self, scored_user):
        for n in range(5):
            scored_user(f"Fan {n}", [10] * (n + 1))

        full = calculate_leaderboard(ALL_TIME)
        pages = [get_leaderboard_page(ALL_TIME, limit=2, offset=offset) for offset in (0, 2, 4)]

        assert [e.user_id for page in pages for e in page.entries] == [e.user_id for e in full]
        assert [page.has_more for page in pages] == [True, True, False]
        assert pages[2].entries[0].rank == 5

    def test_full_last_page_has_no_more(self, scored_user):
        for n in range(4):
            scored_user(f"Fan {n}", [10] * (n + 1))

        page = get_leaderboard_page(ALL_TIME, limit=2, offset=2)

        assert len(page.entries) == 2
        assert page.has_more is False

    def test_weekly_window_boundary(self, make_user, make_prediction):
        inside = make_user(name="Monday")
        outside = make_user(name="Sunday")
        make_prediction(inside, is_correct=True, points=10, created_at=datetime(2024, 5, 13, 0, 0, 0))
        make_prediction(outside, is_correct=True, points=10,
                        created_at=datetime(2024, 5, 12, 23, 59, 59))

        weekly = calculate_leaderboard(WEEK, now=datetime(2024, 5, 15, 12, 0))
        all_time = calculate_leaderboard(ALL_TIME, now=datetime(2024, 5, 15, 12, 0))

        assert [e.user_name for e in weekly] == ["Monday"]
        assert len(all_time) == 2


class TestUserRank:

    def test_points_tie_shares_rank(self, scored_user):
        first = scored_user("First", [10, 10])
        second = scored_user("Second", [10, 10, 0])
        scored_user("Leader", [15, 15])

        assert get_user_rank(first.id).to_dict() == {"rank": 2, "totalUsers": 3}
        assert get_user_rank(second.id).rank == 2

    def test_user_without_resolved_predictions(self, scored_user, make_user):
        scored_user("A", [10])
        scored_user("B", [15])
        newcomer = make_user(name="Newcomer")

        rank = get_user_rank(newcomer.id)

        assert rank.rank == 3
        assert rank.total_users == 2

    def test_weekly_rank_only_counts_this_week(self, scored_user):
        old = scored_user("Old", [15, 15], created_at=datetime(2024, 4, 1))
        recent = scored_user("Recent", [10], created_at=datetime(2024, 5, 14))

        rank = get_user_rank(recent.id, WEEK, now=datetime(2024, 5, 15, 12, 0))

        assert rank.to_dict() == {"rank": 1, "totalUsers": 1}
        assert get_user_rank(old.id, WEEK, now=datetime(2024, 5, 15, 12, 0)).rank == 2

    def test_invalid_timeframe(self, app):
        with pytest.raises(ValidationError):
            get_user_rank(1, "month")


class TestUserStats:

    def test_stats(self, make_user, make_prediction):
        user = make_user(name="Stats")
        base = datetime(2024, 5, 1)
        results = [True, True, True, False, True, True]
        for hours, is_correct in enumerate(results):
            make_prediction(user, is_correct=is_correct, points=15 if is_correct else 0,
                            created_at=base + timedelta(hours=hours))
        make_prediction(user, is_correct=None, created_at=base + timedelta(days=1))

        stats = get_user_stats(user.id, now=datetime(2024, 5, 15, 12, 0))

        assert stats["totalPoints"] == 75
        assert stats["totalPredictions"] == 6
        assert stats["correctPredictions"] == 5
        assert stats["accuracy"] == 83
        assert stats["currentStreak"] == 2
        assert stats["bestStreak"] == 3
        assert stats["rank"] == {"allTime": 1, "weekly": 1}
        assert stats["recentForm"] == [True, True, False, True, True]
        assert [a["id"] for a in stats["achievements"]] == ["first_prediction"]
        assert stats["nextAchievements"]["predictions"]["achievement"]["id"] == "prediction_10"

    def test_new_user_ranks_after_everyone(self, make_user, make_prediction):
        make_prediction(make_user(name="Veteran"), is_correct=True, points=10)
        newcomer = make_user(name="Newcomer")

        stats = get_user_stats(newcomer.id, now=datetime(2024, 5, 15, 12, 0))

        assert stats["totalPredictions"] == 0
        assert stats["accuracy"] == 0
        assert stats["rank"]["allTime"] == 2

    def test_unknown_user(self, app):
        with pytest.raises(NotFoundError):
            get_user_stats(999)

    def test_storage_failure(self, repository):
        repository.get_user.side_effect = SQLAlchemyError("connection lost")

        with pytest.raises(OperationFailedError):
            get_user_stats(1, repository=repository)
