#!/usr/bin/env python3
"""
Garmin Connect Download Module

Fetches the newest orthostatic test recorded on the watch. Activities are
scanned newest first; the scan stops at the activity recorded as last known
by the previous run, so an already analyzed test is never fetched twice.
"""

import logging
from itertools import count
from pathlib import Path
from typing import Optional

from garminconnect import Garmin

logger = logging.getLogger(__name__)


def read_last_known_activity(path: Path) -> Optional[int]:
    path = Path(path)
    if not path.exists():
        return None
    text = path.read_text().strip()
    return int(text) if text else None


def write_last_known_activity(path: Path, activity_id: int) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(str(activity_id))


def login(email: str, password: str, token_dir: Path) -> Garmin:
    """
    Log in to Garmin Connect, reusing stored session tokens when present.

    Fresh tokens are saved to token_dir after a credential login.
    """
    token_dir = Path(token_dir)
    api = Garmin(email, password)
    if token_dir.exists():
        logger.info(f"  Resuming Garmin Connect session from {token_dir}")
        api.login(str(token_dir))
    else:
        api.login()
        token_dir.mkdir(parents=True, exist_ok=True)
        api.garth.dump(str(token_dir))
        logger.info(f"  Saved Garmin Connect session to {token_dir}")
    return api


def find_new_activity(api: Garmin, activity_name: str, last_known_id: Optional[int]):
    """
    Scan activities newest first for one named activity_name.

    Returns:
        (matching activity dict or None, id of the newest activity seen or None)
    """
    newest_id = None
    for start in count():
        activities = api.get_activities(start, 1)
        if not activities:
            return None, newest_id
        for activity in activities:
            activity_id = activity['activityId']
            if newest_id is None:
                newest_id = activity_id
            if activity_id == last_known_id:
                return None, newest_id
            if activity.get('activityName') == activity_name:
                return activity, newest_id


def download_latest_activity(api: Garmin,
                             activity_name: str,
                             last_known_activity_file: Path) -> Optional[bytes]:
    """
    Download the original-data zip of the newest unseen activity named activity_name.

    The newest activity id seen is written to last_known_activity_file
    whether or not a match was found.

    Returns:
        zip archive bytes, or None when there is no new activity
    """
    last_known_id = read_last_known_activity(last_known_activity_file)
    activity, newest_id = find_new_activity(api, activity_name, last_known_id)

    data = None
    if activity is not None:
        logger.info(f"  Downloading activity {activity['activityId']} ({activity_name})")
        data = api.download_activity(
            activity['activityId'],
            dl_fmt=Garmin.ActivityDownloadFormat.ORIGINAL,
        )

    if newest_id is not None:
        write_last_known_activity(last_known_activity_file, newest_id)
    return data
