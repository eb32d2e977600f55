from typing import List, Optional
from datetime import datetime
from functools import lru_cache
from pathlib import Path
import json
import logging

from pydantic import ValidationError

from .schemas import ScheduleEntry
from .errors import ScheduleLoadError
from .utils import day_code

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE_PATH = Path(__file__).parent / "data" / "schedule.json"

def load_schedule(path: Optional[str] = None) -> List[ScheduleEntry]:
    """
    Load the static schedule fixture.

    The file is a JSON object with a ``trains`` array; each element is one
    train's stop at a corridor station.
    """
    schedule_path = Path(path) if path else DEFAULT_SCHEDULE_PATH

    try:
        with open(schedule_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ScheduleLoadError(f"Schedule fixture not found: {schedule_path}") from e
    except json.JSONDecodeError as e:
        raise ScheduleLoadError(f"Schedule fixture is not valid JSON: {schedule_path}: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("trains"), list):
        raise ScheduleLoadError(f"Schedule fixture must contain a 'trains' array: {schedule_path}")

    try:
        entries = [ScheduleEntry(**train) for train in raw["trains"]]
    except (TypeError, ValidationError) as e:
        raise ScheduleLoadError(f"Invalid schedule entry in {schedule_path}: {e}") from e

    logger.info(f"Loaded {len(entries)} schedule entries from {schedule_path}")
    return entries

@lru_cache(maxsize=None)
def get_default_schedule(path: Optional[str] = None) -> tuple:
    """Process-wide, read-only copy of the schedule fixture"""
    return tuple(load_schedule(path))

def trains_running_on(entries: List[ScheduleEntry], now: datetime) -> List[ScheduleEntry]:
    code = day_code(now)
    return [entry for entry in entries if code in entry.running_days]
