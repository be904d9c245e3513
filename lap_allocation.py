import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from hr_metrics import compute_average_hr, compute_rmssd


@dataclass(frozen=True)
class Lap:
    # offsets in ms from the start of the first lap
    start: int
    finish: int
    duration: int
    assigned_rrs: Tuple[int, ...] = field(default_factory=tuple)
    average_hr: float = 0.0
    rmssd: float = 0.0


def round_ms(seconds: float) -> int:
    """Convert seconds to whole milliseconds, rounding halves up."""
    return int(math.floor(seconds * 1000 + 0.5))


def allocate_laps(lap_durations_sec: Sequence[float], rr_intervals: Sequence[int]) -> List[Lap]:
    """
    Partition an RR interval sequence across consecutive laps by elapsed time.

    Each RR interval goes to the lap in which its end time falls: intervals are
    consumed from the front while the running RR time still fits under the
    cumulative lap boundary. Intervals are never split or revisited, laps left
    without data get an empty assignment, and any RR time past the final lap
    boundary is dropped.

    Args:
        lap_durations_sec: elapsed time of each lap in (fractional) seconds
        rr_intervals: chronological RR intervals in milliseconds

    Returns:
        One Lap per input duration, in the same order
    """
    for d in lap_durations_sec:
        if d < 0:
            raise ValueError(f"Lap duration must be non-negative, got {d}")
    for rr in rr_intervals:
        if rr < 0:
            raise ValueError(f"RR interval must be non-negative, got {rr}")

    laps = []
    laps_elapsed_ms = 0
    rr_elapsed_ms = 0
    rr_pos = 0

    for duration_sec in lap_durations_sec:
        start = laps[-1].finish if laps else 0
        duration = round_ms(duration_sec)
        finish = start + duration
        laps_elapsed_ms += duration

        first = rr_pos
        while rr_pos < len(rr_intervals) and rr_elapsed_ms + rr_intervals[rr_pos] <= laps_elapsed_ms:
            rr_elapsed_ms += rr_intervals[rr_pos]
            rr_pos += 1
        lap_rrs = tuple(int(rr) for rr in rr_intervals[first:rr_pos])

        laps.append(Lap(
            start=start,
            finish=finish,
            duration=duration,
            assigned_rrs=lap_rrs,
            average_hr=compute_average_hr(len(lap_rrs), duration),
            rmssd=compute_rmssd(lap_rrs),
        ))

    return laps
