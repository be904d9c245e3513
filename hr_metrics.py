import numpy as np
import logging

logger = logging.getLogger(__name__)


def compute_rmssd(rr_intervals) -> float:
    """
    Root mean square of successive differences of RR intervals.

    Args:
        rr_intervals: ordered RR intervals in milliseconds

    Returns:
        RMSSD in milliseconds, exactly 0.0 when fewer than two intervals are given
    """
    rr = np.asarray(rr_intervals, dtype=float)
    if len(rr) < 2:
        return 0.0
    diff = np.diff(rr)
    return float(np.sqrt(np.mean(diff ** 2)))


def compute_average_hr(rr_count: int, duration_ms: int) -> float:
    """Beats per minute over a lap: beat count divided by lap duration in minutes.

    A zero-length lap has no defined rate and yields 0.0.
    """
    if duration_ms <= 0:
        return 0.0
    minute_duration = duration_ms / (60 * 1000)
    return rr_count / minute_duration


def compute_mean_rr(rr_intervals):
    if len(rr_intervals) < 1:
        return np.nan
    return float(np.mean(rr_intervals))


def compute_sdnn(rr_intervals):
    if len(rr_intervals) < 2:
        return np.nan
    return float(np.std(rr_intervals))


def compute_pnn50(rr_intervals):
    if len(rr_intervals) < 2:
        return np.nan
    diffs = np.abs(np.diff(np.asarray(rr_intervals, dtype=float)))
    return float(np.sum(diffs > 50) / len(diffs) * 100.0)


def compute_lap_metrics(rr_intervals, duration_ms: int) -> dict:
    """Compute the HR summary of a single lap.

    Returns a dict with keys: 'n_beats', 'average_hr', 'rmssd', 'mean_rr_ms', 'sdnn', 'pnn50'.
    average_hr and rmssd follow compute_average_hr / compute_rmssd; the descriptive
    extras are NaN when they cannot be computed.
    """
    return {
        'n_beats': len(rr_intervals),
        'average_hr': compute_average_hr(len(rr_intervals), duration_ms),
        'rmssd': compute_rmssd(rr_intervals),
        'mean_rr_ms': compute_mean_rr(rr_intervals),
        'sdnn': compute_sdnn(rr_intervals),
        'pnn50': compute_pnn50(rr_intervals),
    }
