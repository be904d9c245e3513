#!/usr/bin/env python3
"""
Result Export Module

Emits a computed orthostatic test session:
- as time-series points (one row per phase, timestamped at the lap finish),
  written to InfluxDB and optionally to CSV
- as the lying/standing wellness summary pushed to intervals.icu
"""

import base64
import logging
from pathlib import Path

import pandas as pd
import requests
from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from hr_metrics import compute_lap_metrics
from session_reader import Session

logger = logging.getLogger(__name__)

MEASUREMENT = 'orthostatic_test'
INTERVALS_BASE_URL = 'https://intervals.icu/api/v1'


def session_to_points(session: Session) -> pd.DataFrame:
    """
    Build the time-series points of a session.

    Returns:
        DataFrame with columns: measurement, phase, hr, rmssd, duration, n_beats,
        mean_rr_ms, sdnn, pnn50, timestamp.
        timestamp is the UTC time of session.start + lap.finish.
    """
    rows = []
    for phase, lap in session.laps:
        metrics = compute_lap_metrics(lap.assigned_rrs, lap.duration)
        rows.append({
            'measurement': MEASUREMENT,
            'phase': phase,
            'hr': float(metrics['average_hr']),
            'rmssd': float(metrics['rmssd']),
            'duration': int(lap.duration),
            'n_beats': metrics['n_beats'],
            'mean_rr_ms': metrics['mean_rr_ms'],
            'sdnn': metrics['sdnn'],
            'pnn50': metrics['pnn50'],
            'timestamp': pd.to_datetime(session.start + lap.finish, unit='ms', utc=True),
        })
    return pd.DataFrame(rows)


def write_points_csv(points: pd.DataFrame, output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    points.to_csv(output_path, index=False)
    logger.info(f"  Saved {len(points)} points to {output_path}")
    return output_path


def session_to_influx_points(session: Session) -> list:
    """One InfluxDB point per phase, tagged with the phase and stamped at the lap finish."""
    points = []
    for phase, lap in session.laps:
        point = (
            Point(MEASUREMENT)
            .tag('phase', phase)
            .field('hr', float(lap.average_hr))
            .field('rmssd', float(lap.rmssd))
            .field('duration', int(lap.duration))
            .time(session.start + lap.finish, WritePrecision.MS)
        )
        points.append(point)
    return points


def write_points_influx(session: Session, url: str, token: str, org: str, bucket: str) -> int:
    """
    Write the session points to an InfluxDB 2.x bucket.

    Returns:
        Number of points written
    """
    points = session_to_influx_points(session)
    with InfluxDBClient(url=url, token=token, org=org) as client:
        write_api = client.write_api(write_options=SYNCHRONOUS)
        write_api.write(bucket=bucket, org=org, record=points, write_precision=WritePrecision.MS)
    logger.info(f"  Wrote {len(points)} points to InfluxDB bucket {bucket}")
    return len(points)


def session_date(session: Session) -> str:
    return pd.to_datetime(session.start, unit='ms', utc=True).strftime('%Y-%m-%d')


def wellness_summary(session: Session) -> dict:
    lying = session['lying']
    standing = session['standing']
    return {
        'OrthostaticHrLying': lying.average_hr,
        'OrthostaticHrvLying': lying.rmssd,
        'OrthostaticHrStanding': standing.average_hr,
        'OrthostaticHrvStanding': standing.rmssd,
    }


def push_wellness(session: Session,
                  athlete_id: str,
                  api_key: str,
                  base_url: str = INTERVALS_BASE_URL,
                  timeout: float = 30.0) -> bool:
    """
    PUT the wellness summary of a session to intervals.icu.

    Args:
        session: computed session
        athlete_id: intervals.icu athlete id (e.g. 'i12345')
        api_key: intervals.icu API key
        base_url: API root
        timeout: request timeout in seconds

    Returns:
        True when the API answered 200, False otherwise
    """
    auth = base64.b64encode(f"API_KEY:{api_key}".encode()).decode()
    url = f"{base_url}/athlete/{athlete_id}/wellness/{session_date(session)}"
    headers = {
        'Content-Type': 'application/json',
        'Authorization': f"Basic {auth}",
    }
    response = requests.put(url, headers=headers, json=wellness_summary(session), timeout=timeout)
    if response.status_code != 200:
        logger.warning(f"  Sending to intervals.icu failed with status {response.status_code}")
        return False
    logger.info("  Wellness summary sent to intervals.icu")
    return True
