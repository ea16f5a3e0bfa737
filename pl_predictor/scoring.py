EXACT_SCORE_POINTS = 3
CORRECT_OUTCOME_POINTS = 1
WRONG_POINTS = 0

HOME_WIN = "H"
AWAY_WIN = "A"
DRAW = "D"


class ScoreParseError(ValueError):
    """A score value that cannot be read as a non-negative integer."""


def parse_score(value) -> int:
    """
    Read a goal count from stored data.

    Accepts ints and digit-only strings (documents written by older clients
    stored scores as strings). Anything else is rejected rather than coerced.
    """
    if isinstance(value, bool) or value is None:
        raise ScoreParseError(f"Invalid score: {value!r}")

    if isinstance(value, int):
        goals = value
    elif isinstance(value, float) and value.is_integer():
        goals = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        goals = int(value.strip())
    else:
        raise ScoreParseError(f"Invalid score: {value!r}")

    if goals < 0:
        raise ScoreParseError(f"Negative score: {value!r}")
    return goals


def get_outcome(home_score: int, away_score: int) -> str:
    """Match outcome from the home side's perspective."""
    if home_score > away_score:
        return HOME_WIN
    if home_score < away_score:
        return AWAY_WIN
    return DRAW


def calculate_points(predicted_home, predicted_away, actual_home, actual_away) -> int:
    """
    Calculate points earned for a single prediction.

    Rules:
    - Exact score: 3 points
    - Correct outcome (home win / away win / draw): 1 point
    - Otherwise: 0 points
    """
    predicted_home = parse_score(predicted_home)
    predicted_away = parse_score(predicted_away)
    actual_home = parse_score(actual_home)
    actual_away = parse_score(actual_away)

    if predicted_home == actual_home and predicted_away == actual_away:
        return EXACT_SCORE_POINTS

    if get_outcome(predicted_home, predicted_away) == get_outcome(actual_home, actual_away):
        return CORRECT_OUTCOME_POINTS

    return WRONG_POINTS
