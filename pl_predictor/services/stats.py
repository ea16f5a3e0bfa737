from ..models.user import UserStats
from ..scoring import EXACT_SCORE_POINTS, CORRECT_OUTCOME_POINTS, WRONG_POINTS


def accuracy_rate(hits: int, processed: int) -> int:
    """Percentage of non-zero predictions, rounded half up."""
    if processed <= 0:
        return 0
    # Integer form of floor(100 * hits / processed + 0.5)
    return (200 * hits + processed) // (2 * processed)


def apply_points(stats: UserStats, points: int) -> UserStats:
    """
    Fold one scored prediction into a user's aggregate statistics.

    Counters are incremented, and the accuracy rate is recomputed from the
    counters rather than adjusted, so it never drifts.
    """
    exact = stats.exact_predictions
    correct = stats.correct_predictions
    wrong = stats.wrong_predictions

    if points == EXACT_SCORE_POINTS:
        exact += 1
    elif points == CORRECT_OUTCOME_POINTS:
        correct += 1
    elif points == WRONG_POINTS:
        wrong += 1
    else:
        raise ValueError(f"Unexpected points value: {points}")

    processed = exact + correct + wrong
    current_streak = stats.current_streak + 1 if points > 0 else 0

    return stats.model_copy(update={
        "total_points": stats.total_points + points,
        "exact_predictions": exact,
        "correct_predictions": correct,
        "wrong_predictions": wrong,
        "processed_predictions_count": processed,
        "accuracy_rate": accuracy_rate(exact + correct, processed),
        "current_streak": current_streak,
        "longest_streak": max(stats.longest_streak, current_streak),
    })
