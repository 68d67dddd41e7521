"""
Streak calculations over resolved predictions

Both functions take outcomes ordered newest first. ``None`` entries stand
for unresolved predictions and are dropped before scanning.
"""


def _resolved(outcomes):
    return [outcome for outcome in outcomes if outcome is not None]


def current_streak(outcomes):
    """Count consecutive correct predictions starting from the most recent"""
    streak = 0
    for is_correct in _resolved(outcomes):
        if is_correct:
            streak += 1
        else:
            break
    return streak


def best_streak(outcomes):
    """Longest run of consecutive correct predictions anywhere in the history"""
    best = 0
    run = 0
    for is_correct in _resolved(outcomes):
        if is_correct:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best
