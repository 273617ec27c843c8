import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from dotenv import load_dotenv

load_dotenv()  # Load env vars from .env

DEFAULT_SLOT_TIMES = (
    "09:00 - 10:00",
    "10:00 - 11:00",
    "11:00 - 12:00",
    "12:00 - 13:00",
    "13:00 - 14:00",
    "14:00 - 15:00",
    "15:00 - 16:00",
    "16:00 - 17:00",
    "17:00 - 18:00",
    "18:00 - 19:00",
)


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, read once from the environment.

    Attributes:
        database_url (str): SQLAlchemy URL for batch persistence.
        reference_timezone (str): IANA zone in which every WeeklySlot is stored.
        slot_times (tuple): Catalog time labels ("HH:MM - HH:MM").
        slot_duration_minutes (int): Institutional slot length policy.
        max_weekly_slots (int): Weekdays (and slots) allowed per batch.
        max_preferences_per_course (int): Timing preferences per participant and course.
    """
    database_url: str = "sqlite:///./slot_scheduler.db"
    reference_timezone: str = "Asia/Kolkata"
    slot_times: Tuple[str, ...] = DEFAULT_SLOT_TIMES
    slot_duration_minutes: int = 60
    max_weekly_slots: int = 2
    max_preferences_per_course: int = 2
    log_level: str = "INFO"
    port: int = 8765


def _split_times(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    slot_times = os.getenv("SLOT_TIMES")
    return Settings(
        database_url=os.getenv("DATABASE_URL", Settings.database_url),
        reference_timezone=os.getenv("REFERENCE_TIMEZONE", Settings.reference_timezone),
        slot_times=_split_times(slot_times) if slot_times else DEFAULT_SLOT_TIMES,
        slot_duration_minutes=int(os.getenv("SLOT_DURATION_MINUTES", Settings.slot_duration_minutes)),
        max_weekly_slots=int(os.getenv("MAX_WEEKLY_SLOTS", Settings.max_weekly_slots)),
        max_preferences_per_course=int(
            os.getenv("MAX_PREFERENCES_PER_COURSE", Settings.max_preferences_per_course)
        ),
        log_level=os.getenv("LOG_LEVEL", Settings.log_level),
        port=int(os.environ.get("PORT", Settings.port)),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
    )
