"""Canonical time model helpers and the timezone projector."""

import logging
from datetime import date, datetime, time, timedelta
from itertools import product
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from slot_scheduler.exceptions import InvalidSlotError, SchedulingError, UnknownTimezoneError
from slot_scheduler.models.schemas import (
    ErrorCode,
    LocalSlot,
    ProjectedSlot,
    ScheduleError,
    Weekday,
    WeeklySlot,
)
from slot_scheduler.settings import get_settings

logger = logging.getLogger(__name__)

# Zones offered first in timezone pickers
COMMON_TIMEZONES: List[dict] = [
    {"timezone": "Asia/Kolkata", "label": "IST (GMT+5:30) India"},
    {"timezone": "Europe/London", "label": "GMT/BST (GMT+0/1) London, Dublin"},
    {"timezone": "Europe/Berlin", "label": "CET/CEST (GMT+1/2) Berlin, Paris"},
    {"timezone": "Asia/Dubai", "label": "GST (GMT+4) Dubai"},
    {"timezone": "Asia/Singapore", "label": "SGT (GMT+8) Singapore"},
    {"timezone": "Australia/Sydney", "label": "AEST/AEDT (GMT+10/11) Sydney"},
    {"timezone": "America/New_York", "label": "ET (GMT-5/4) New York"},
    {"timezone": "America/Chicago", "label": "CT (GMT-6/5) Chicago"},
    {"timezone": "America/Denver", "label": "MT (GMT-7/6) Denver"},
    {"timezone": "America/Los_Angeles", "label": "PT (GMT-8/7) Los Angeles"},
    {"timezone": "Etc/GMT", "label": "GMT/UTC (GMT+0) Coordinated Universal Time"},
]


def today() -> date:
    return date.today()


def resolve_timezone(name: Optional[str]) -> Optional[ZoneInfo]:
    """
    Validates an untrusted IANA identifier.

    Returns:
        ZoneInfo or None when the identifier is empty, malformed or unknown.
    """
    if not name or not isinstance(name, str):
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def reference_zone() -> ZoneInfo:
    name = get_settings().reference_timezone
    zone = resolve_timezone(name)
    if zone is None:
        raise SchedulingError(f"Configured reference timezone {name!r} is not a valid IANA zone")
    return zone


def timezone_abbreviation(zone: ZoneInfo, when: datetime) -> str:
    return when.astimezone(zone).tzname() or zone.key


def _occurrence(day: Weekday, anchor: date) -> date:
    """First calendar date on or after ``anchor`` falling on ``day``."""
    return anchor + timedelta(days=(day.index - anchor.weekday()) % 7)


def _identity(slot: WeeklySlot, zone: ZoneInfo, anchor: date, error: Optional[ScheduleError] = None) -> ProjectedSlot:
    instant = datetime.combine(_occurrence(slot.day, anchor), slot.start, zone)
    label = f"{slot.label} {timezone_abbreviation(zone, instant)}"
    local = LocalSlot(day=slot.day, start=slot.start, end=slot.end, end_day=slot.day, timezone=zone.key)
    return ProjectedSlot(
        canonical=slot,
        local=local,
        reference_label=label,
        local_label=label,
        projected=error is None,
        error=error,
    )


def project(slot: WeeklySlot, target_timezone: str, anchor: Optional[date] = None) -> ProjectedSlot:
    """
    Projects a canonical slot into a display timezone.

    The canonical weekday is anchored to its next calendar occurrence (on or
    after ``anchor``) in the reference zone; start and end instants are then
    rendered in the target zone, so the local weekday comes from the actual
    date conversion and may roll over to the previous or following day.

    Args:
        slot (WeeklySlot): Canonical slot.
        target_timezone (str): IANA identifier (untrusted).
        anchor (date): Reference date for DST-dependent offsets. Defaults to today.

    Returns:
        ProjectedSlot: ``projected`` is False and ``error`` is UNKNOWN_TIMEZONE
        when the target could not be resolved; the reference rendering is used.
    """
    reference = reference_zone()
    anchor = anchor or today()
    target = resolve_timezone(target_timezone)

    if target is None:
        logger.warning("Could not project %s into unknown timezone %r", slot.label, target_timezone)
        error = ScheduleError(
            code=ErrorCode.UNKNOWN_TIMEZONE,
            message=f"Could not project into timezone {target_timezone!r}; showing {reference.key} time",
        )
        return _identity(slot, reference, anchor, error=error)

    if target.key == reference.key:
        return _identity(slot, reference, anchor)

    occurrence = _occurrence(slot.day, anchor)
    ref_start = datetime.combine(occurrence, slot.start, reference)
    ref_end = datetime.combine(occurrence, slot.end, reference)
    local_start = ref_start.astimezone(target)
    local_end = ref_end.astimezone(target)

    local = LocalSlot(
        day=Weekday.from_index(local_start.weekday()),
        start=local_start.time(),
        end=local_end.time(),
        end_day=Weekday.from_index(local_end.weekday()),
        timezone=target.key,
    )
    return ProjectedSlot(
        canonical=slot,
        local=local,
        reference_label=f"{slot.label} {timezone_abbreviation(reference, ref_start)}",
        local_label=f"{local.label} {timezone_abbreviation(target, local_start)}",
    )


def _to_reference(start_date: date, start: time, end_date: date, end: time, source: ZoneInfo, reference: ZoneInfo):
    """
    Reference-zone instants for a local range.

    A wall time repeated on a DST fall-back night is read with the fold that
    keeps the range as long as its wall-clock length. Folds already set on
    ``start`` and ``end`` are tried first.
    """
    wall_seconds = (datetime.combine(end_date, end) - datetime.combine(start_date, start)).total_seconds()
    readings = [
        (
            datetime.combine(start_date, start, source).replace(fold=start_fold),
            datetime.combine(end_date, end, source).replace(fold=end_fold),
        )
        for start_fold, end_fold in product((start.fold, 1 - start.fold), (end.fold, 1 - end.fold))
    ]
    local_start, local_end = next(
        ((s, e) for s, e in readings if e.timestamp() - s.timestamp() == wall_seconds),
        readings[0],
    )
    return local_start.astimezone(reference), local_end.astimezone(reference)


def to_canonical(day, start: time, end: time, source_timezone: str, anchor: Optional[date] = None) -> WeeklySlot:
    """
    Normalizes a slot entered in a local timezone into canonical form.

    Inverse of ``project`` for the same ``anchor``: the local weekday is
    matched to the occurrence whose reference date falls in the week starting
    at ``anchor``. A local range may cross midnight (end <= start).

    Raises:
        UnknownTimezoneError: ``source_timezone`` is not a valid zone.
        InvalidSlotError: the canonical range would span midnight.
    """
    source = resolve_timezone(source_timezone)
    if source is None:
        raise UnknownTimezoneError(source_timezone)
    day = Weekday(day)
    reference = reference_zone()
    anchor = anchor or today()

    try:
        if source.key == reference.key:
            return WeeklySlot(day=day, start=start, end=end)

        window_end = anchor + timedelta(days=6)
        first = _occurrence(day, anchor - timedelta(days=7))
        for weeks in range(3):
            local_date = first + timedelta(days=7 * weeks)
            end_date = local_date + timedelta(days=1) if end <= start else local_date
            ref_start, ref_end = _to_reference(local_date, start, end_date, end, source, reference)
            if anchor <= ref_start.date() <= window_end:
                break
        else:
            raise InvalidSlotError(f"Could not anchor {day.value} {start:%H:%M} in {source.key}")

        if ref_end.date() != ref_start.date():
            raise InvalidSlotError(
                f"{day.value} {start:%H:%M} - {end:%H:%M} ({source.key}) spans midnight in {reference.key}"
            )
        return WeeklySlot(
            day=Weekday.from_index(ref_start.weekday()),
            start=ref_start.time(),
            end=ref_end.time(),
        )
    except ValidationError as e:
        raise InvalidSlotError(str(e)) from e


def dual_label(slot: WeeklySlot, user_timezone: str, admin_view: bool = False, anchor: Optional[date] = None) -> str:
    """
    Reference and local renderings in one string.

    Admin view leads with the reference time, student view with the local
    time. Each part carries its own weekday.
    """
    projection = project(slot, user_timezone, anchor)
    if not projection.projected or projection.local_label == projection.reference_label:
        return projection.reference_label
    if admin_view:
        return f"{projection.reference_label} ({projection.local_label})"
    return f"{projection.local_label} ({projection.reference_label})"
