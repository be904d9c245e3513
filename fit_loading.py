#!/usr/bin/env python3
"""
FIT Loading Module

Utilities for locating and decoding the activity file of an orthostatic test.
Supports a bare .fit file, the .zip archive Garmin Connect hands out for
original activity downloads, or a directory holding either.
"""

import io
import logging
import zipfile
from pathlib import Path
from typing import Dict, List

from fitparse import FitFile, FitParseError

logger = logging.getLogger(__name__)

MESSAGE_TYPES = {
    'laps': 'lap',
    'hrv': 'hrv',
    'sessions': 'session',
}


class FitDecodeError(ValueError):
    """The FIT payload is not a valid FIT file or fails its integrity check."""


def _first_with_suffix(names, suffix: str):
    for name in names:
        if name.lower().endswith(suffix):
            return name
    return None


def find_fit_file(path: Path) -> Path:
    """
    Resolve the activity file to read.

    Args:
        path: a .fit file, a .zip archive, or a directory containing one

    Returns:
        Path to a .fit or .zip file
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Activity path not found: {path}")

    if path.is_dir():
        entries = sorted(p.name for p in path.iterdir() if p.is_file())
        name = _first_with_suffix(entries, '.fit') or _first_with_suffix(entries, '.zip')
        if name is None:
            raise FileNotFoundError(f"No .fit or .zip file found in directory: {path}")
        return path / name

    return path


def extract_fit_from_zip(data: bytes) -> bytes:
    """Return the first .fit member of a zip archive held in memory."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        member = _first_with_suffix(zf.namelist(), '.fit')
        if member is None:
            raise FileNotFoundError('fit not found')
        logger.info(f"  Extracting {member}")
        return zf.read(member)


def read_fit_bytes(path: Path) -> bytes:
    """Return the raw FIT bytes, pulling the first .fit member out of a zip archive."""
    path = find_fit_file(path)

    if path.suffix.lower() == '.zip':
        return extract_fit_from_zip(path.read_bytes())

    return path.read_bytes()


def decode_fit(data: bytes) -> Dict[str, List[dict]]:
    """
    Decode FIT bytes into lap, hrv and session records.

    Values keep the FIT profile field names, e.g. 'total_elapsed_time' on laps,
    'time' on hrv messages and 'event', 'event_type', 'start_time' on sessions.
    """
    try:
        fit = FitFile(io.BytesIO(data), check_crc=True)
        fit.parse()
        records = {
            key: [msg.get_values() for msg in fit.get_messages(name)]
            for key, name in MESSAGE_TYPES.items()
        }
    except FitParseError as e:
        raise FitDecodeError(f"Failed to decode FIT data: {e}") from e
    return records


def load_activity(path: Path) -> Dict[str, List[dict]]:
    """Load and decode the orthostatic test activity found at path."""
    return _decode_and_log(read_fit_bytes(path))


def load_activity_archive(data: bytes) -> Dict[str, List[dict]]:
    """Decode the activity inside a downloaded original-data zip archive."""
    return _decode_and_log(extract_fit_from_zip(data))


def _decode_and_log(data: bytes) -> Dict[str, List[dict]]:
    records = decode_fit(data)
    logger.info(
        f"  Decoded {len(records['laps'])} laps, {len(records['hrv'])} hrv messages, "
        f"{len(records['sessions'])} sessions"
    )
    return records
