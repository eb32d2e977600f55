from typing import Optional
from datetime import date
import os

def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    return int(value)

class Settings:
    """Service settings, read from the environment once at import time"""

    APP_NAME: str = os.getenv("APP_NAME", "RailPulse DSS Engine")
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./railpulse.db")
    SCHEDULE_PATH: Optional[str] = os.getenv("SCHEDULE_PATH")

    DSS_RANDOM_SEED: Optional[int] = _optional_int(os.getenv("DSS_RANDOM_SEED"))
    DSS_ILLUSTRATIVE_EXAMPLES: bool = os.getenv("DSS_ILLUSTRATIVE_EXAMPLES", "true").lower() == "true"
    # "dashboard" for the fixed display figures, "window" to derive delays from the window
    DSS_KPI_SOURCE: str = os.getenv("DSS_KPI_SOURCE", "dashboard")

    # The dashboard replays the fixture on a fixed calendar day
    SIMULATION_DATE: date = date.fromisoformat(os.getenv("SIMULATION_DATE", "2025-09-22"))
    TICK_MINUTES: int = int(os.getenv("TICK_MINUTES", "3"))

settings = Settings()
