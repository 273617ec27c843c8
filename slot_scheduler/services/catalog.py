import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from slot_scheduler.exceptions import CatalogMisconfiguredError
from slot_scheduler.models.schemas import TimeRange, Weekday, WeeklySlot
from slot_scheduler.settings import get_settings

logger = logging.getLogger(__name__)


class SlotCatalog:
    """
    The institution's fixed set of assignable weekly slots.

    Built once from configuration and never mutated. Construction enforces
    the policy that every entry has the same duration and that entries on a
    day never overlap; a violation is a deployment error, not a user error.

    Attributes:
        duration_minutes (int): Length of every catalog slot.
        days (tuple): Weekdays on which the catalog is offered.
    """
    def __init__(self, times: Iterable[str], days: Optional[Iterable[Weekday]] = None, duration_minutes: int = 60):
        self.duration_minutes = duration_minutes
        self.days: Tuple[Weekday, ...] = tuple(days) if days is not None else tuple(Weekday)

        ranges: List[TimeRange] = []
        for label in times:
            try:
                ranges.append(TimeRange.parse(label))
            except ValueError as e:
                raise CatalogMisconfiguredError(f"Invalid catalog entry {label!r}: {e}") from e

        if not ranges:
            raise CatalogMisconfiguredError("Slot catalog is empty")

        for r in ranges:
            if r.duration_minutes != duration_minutes:
                raise CatalogMisconfiguredError(
                    f"Catalog entry {r.label} lasts {r.duration_minutes} minutes, policy is {duration_minutes}"
                )

        ranges.sort(key=lambda r: r.start)
        for prev, cur in zip(ranges, ranges[1:]):
            if cur.start < prev.end:
                raise CatalogMisconfiguredError(f"Catalog entries {prev.label} and {cur.label} overlap")

        self._ranges: Tuple[TimeRange, ...] = tuple(ranges)
        self._by_day: Dict[Weekday, Tuple[TimeRange, ...]] = {d: self._ranges for d in self.days}

    def list_slots(self, day: Weekday) -> Tuple[TimeRange, ...]:
        return self._by_day.get(Weekday(day), ())

    def weekly_slots(self, day: Optional[Weekday] = None) -> List[WeeklySlot]:
        days = [Weekday(day)] if day is not None else list(self.days)
        return [WeeklySlot.of(d, r) for d in days for r in self.list_slots(d)]

    def is_valid_slot(self, slot: WeeklySlot) -> bool:
        return slot.time_range in self.list_slots(slot.day)

    def __len__(self):
        return sum(len(v) for v in self._by_day.values())


@lru_cache(maxsize=1)
def get_catalog() -> SlotCatalog:
    settings = get_settings()
    catalog = SlotCatalog(settings.slot_times, duration_minutes=settings.slot_duration_minutes)
    logger.info("Loaded slot catalog: %d slots across %d days", len(catalog), len(catalog.days))
    return catalog
