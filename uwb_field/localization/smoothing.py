"""
Exponential smoothing (first-order low-pass) helpers.

Larger alpha tracks faster but passes more jitter; smaller alpha is
smoother but lags. Both coefficients are fixed tuning values.
"""

POSITION_ALPHA = 0.15
ERROR_ALPHA = 0.1


def low_pass(previous: float, raw: float, alpha: float) -> float:
    """
    One step of exponential smoothing.

    Args:
        previous: Previous smoothed value
        raw: New raw sample
        alpha: Weight of the new sample, in [0, 1]

    Returns:
        previous + alpha * (raw - previous)
    """
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"Alpha must be in [0,1]: {alpha}")
    return previous + alpha * (raw - previous)
