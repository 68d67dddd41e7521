"""
Scoring rules for match predictions

A prediction is correct when the predicted team name equals the team with
the higher final score. Draws and matches without both scores have no
winner, so every prediction on them is incorrect and earns nothing.

For aggregated statistics and leaderboards, see
fanhub/services/leaderboard_service.py
"""

CORRECT_WINNER_POINTS = 10
MARGIN_BONUS_POINTS = 5
MARGIN_BONUS_THRESHOLD = 12


def get_match_winner(match):
    """
    Get the winning team name for a match

    Args:
        match: Object with home_team, away_team, home_score and away_score

    Returns:
        Winning team name, or None for a draw or missing score
    """
    if match.home_score is None or match.away_score is None:
        return None

    if match.home_score == match.away_score:
        return None

    return match.home_team if match.home_score > match.away_score else match.away_team


def is_prediction_correct(predicted_winner, match):
    """Check whether predicted_winner won the match"""
    winner = get_match_winner(match)
    if winner is None:
        return False
    return predicted_winner == winner


def calculate_prediction_points(predicted_winner, match):
    """
    Calculate points for a single prediction.

    Returns:
        15 for a correct pick when the winning margin is 12 or more
        10 for any other correct pick
        0 for an incorrect pick, a draw, or a match without final scores
    """
    if not is_prediction_correct(predicted_winner, match):
        return 0

    points = CORRECT_WINNER_POINTS

    margin = abs(match.home_score - match.away_score)
    if margin >= MARGIN_BONUS_THRESHOLD:
        points += MARGIN_BONUS_POINTS

    return points
