#!/usr/bin/env python3
"""
Session Reader

Turns decoded FIT records of an orthostatic test into per-phase lap results.
The device marks five laps in a fixed order; the first one only catches any
signal recorded before the lying stabilization starts.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from lap_allocation import Lap, allocate_laps, round_ms

logger = logging.getLogger(__name__)

PHASES = (
    'moreThanMax',
    'lyingStabilization',
    'lying',
    'standingStabilization',
    'standing',
)


class SessionNotFound(LookupError):
    """No lap-stop event exists to anchor the session start time."""


class LapCountError(ValueError):
    """The activity does not contain one lap per test phase."""


@dataclass(frozen=True)
class Session:
    start: int  # epoch ms
    laps: Tuple[Tuple[str, Lap], ...]

    @property
    def laps_by_phase(self) -> Dict[str, Lap]:
        return dict(self.laps)

    def __getitem__(self, phase: str) -> Lap:
        return self.laps_by_phase[phase]


def _to_epoch_ms(ts: datetime) -> int:
    # FIT timestamps are UTC; fitparse hands them back naive
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return int(round(ts.timestamp() * 1000))


def find_reference_start(session_records: List[dict]) -> int:
    for record in session_records:
        if record.get('event') == 'lap' and record.get('event_type') == 'stop':
            return _to_epoch_ms(record['start_time'])
    raise SessionNotFound('session not found')


def flatten_rr_intervals(hrv_records: List[dict]) -> List[int]:
    """Flatten HRV records into one RR sequence in ms, skipping absent values."""
    rrs = []
    for record in hrv_records:
        for value in record.get('time') or ():
            if value is None:
                continue
            rrs.append(round_ms(value))
    return rrs


def read_session(lap_records: List[dict], hrv_records: List[dict], session_records: List[dict]) -> Session:
    """
    Compute the labeled laps of an orthostatic test.

    Args:
        lap_records: lap messages, each with 'total_elapsed_time' in seconds
        hrv_records: hrv messages, each with a 'time' list of RR values in seconds (None for gaps)
        session_records: session messages with 'event', 'event_type' and 'start_time'

    Returns:
        Session anchored at the first lap-stop event's start time

    Raises:
        SessionNotFound: no lap-stop event in session_records
        LapCountError: lap_records does not hold exactly one lap per phase
        ValueError: a lap is missing its elapsed time
    """
    start = find_reference_start(session_records)

    if len(lap_records) != len(PHASES):
        raise LapCountError(f"Expected {len(PHASES)} laps, got {len(lap_records)}")

    durations = []
    for phase, lap in zip(PHASES, lap_records):
        elapsed = lap.get('total_elapsed_time')
        if elapsed is None:
            raise ValueError(f"Lap '{phase}' has no valid total_elapsed_time")
        durations.append(elapsed)

    rrs = flatten_rr_intervals(hrv_records)
    laps = allocate_laps(durations, rrs)

    assigned = sum(len(lap.assigned_rrs) for lap in laps)
    if assigned < len(rrs):
        logger.debug(f"Dropped {len(rrs) - assigned} RR intervals past the last lap")

    return Session(start=start, laps=tuple(zip(PHASES, laps)))
