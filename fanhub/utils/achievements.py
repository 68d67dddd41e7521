"""
Achievement catalog and evaluation

Badges are grouped into four categories, each an ascending ladder of
thresholds. Accuracy badges additionally require a minimum number of
resolved predictions so a lucky 1-for-1 record does not count.
"""

from dataclasses import asdict, dataclass

from fanhub.utils.rounding import percentage

PREDICTIONS = "predictions"
ACCURACY = "accuracy"
STREAK = "streak"
POINTS = "points"

CATEGORIES = (PREDICTIONS, ACCURACY, STREAK, POINTS)


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    requirement: int
    category: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class NextAchievement:
    achievement: Achievement
    progress: int

    def to_dict(self):
        return {
            "achievement": self.achievement.to_dict(),
            "progress": min(self.progress, 100),
        }


ACHIEVEMENTS = [
    # Prediction milestones
    Achievement("first_prediction", "Getting Started", "Make your first prediction", "🎯", 1, PREDICTIONS),
    Achievement("prediction_10", "Regular", "Make 10 predictions", "📊", 10, PREDICTIONS),
    Achievement("prediction_50", "Dedicated Fan", "Make 50 predictions", "🏆", 50, PREDICTIONS),
    Achievement("prediction_100", "Century Maker", "Make 100 predictions", "💯", 100, PREDICTIONS),
    # Accuracy achievements
    Achievement("accuracy_50", "On Target", "Achieve 50% accuracy (min 10 predictions)", "🎪", 50, ACCURACY),
    Achievement("accuracy_70", "Sharp Shooter", "Achieve 70% accuracy (min 20 predictions)", "🎯", 70, ACCURACY),
    Achievement("accuracy_90", "Oracle", "Achieve 90% accuracy (min 30 predictions)", "🔮", 90, ACCURACY),
    # Streak achievements
    Achievement("streak_3", "Hot Streak", "Get 3 correct predictions in a row", "🔥", 3, STREAK),
    Achievement("streak_5", "On Fire", "Get 5 correct predictions in a row", "🚀", 5, STREAK),
    Achievement("streak_10", "Unstoppable", "Get 10 correct predictions in a row", "⭐", 10, STREAK),
    # Points achievements
    Achievement("points_100", "Points Collector", "Earn 100 total points", "💰", 100, POINTS),
    Achievement("points_500", "High Scorer", "Earn 500 total points", "💎", 500, POINTS),
    Achievement("points_1000", "Legend", "Earn 1000 total points", "👑", 1000, POINTS),
]


def minimum_predictions_for_accuracy(requirement):
    """Sample size needed before an accuracy badge can be earned"""
    if requirement < 70:
        return 10
    if requirement < 90:
        return 20
    return 30


def _category_value(stats, category):
    return {
        PREDICTIONS: stats["totalPredictions"],
        ACCURACY: stats["accuracy"],
        STREAK: stats["currentStreak"],
        POINTS: stats["totalPoints"],
    }[category]


def is_earned(achievement, stats):
    value = _category_value(stats, achievement.category)
    if achievement.category == ACCURACY:
        min_predictions = minimum_predictions_for_accuracy(achievement.requirement)
        return (
            stats["totalPredictions"] >= min_predictions
            and value >= achievement.requirement
        )
    return value >= achievement.requirement


def check_achievements(stats):
    """
    Check which achievements a user has earned

    Args:
        stats: Mapping with totalPredictions, accuracy, currentStreak
            and totalPoints

    Returns:
        Earned achievements in catalog order
    """
    return [achievement for achievement in ACHIEVEMENTS if is_earned(achievement, stats)]


def get_next_achievement(category, current_value):
    """
    Get progress towards the next achievement in a category

    Returns:
        The first threshold not yet reached with the rounded percentage of
        progress towards it, or None if the whole ladder is complete
    """
    if category not in CATEGORIES:
        raise ValueError(f"Unknown achievement category: {category}")

    ladder = sorted(
        (a for a in ACHIEVEMENTS if a.category == category),
        key=lambda a: a.requirement,
    )

    for achievement in ladder:
        if current_value < achievement.requirement:
            progress = percentage(current_value, achievement.requirement)
            return NextAchievement(achievement, progress)

    return None


def progress_summary(stats):
    """Next milestone per category, keyed by category name"""
    summary = {}
    for category in CATEGORIES:
        next_achievement = get_next_achievement(category, _category_value(stats, category))
        summary[category] = next_achievement.to_dict() if next_achievement else None
    return summary
