from datetime import date
from typing import Iterable, List, Optional

from slot_scheduler.models.schemas import Batch, CourseTimingPreference, ErrorCode, ScheduleError, WeeklySlot
from slot_scheduler.services.catalog import SlotCatalog
from slot_scheduler.services.conflicts import overlaps
from slot_scheduler.services.timezone import project, reference_zone, resolve_timezone


def validate_preference(
    existing: Iterable[CourseTimingPreference],
    candidate: CourseTimingPreference,
    catalog: SlotCatalog,
    max_per_course: int = 2,
) -> Optional[ScheduleError]:
    """
    Checks a new timing preference against the participant's current ones.

    Args:
        existing: Preferences already stored for ``candidate.participant_id``.
        candidate: Preference being added.
        catalog: Only catalog slots may be preferred.
        max_per_course: Preferences allowed per (participant, course).

    Returns:
        ScheduleError or None when the preference is acceptable.
    """
    slot = candidate.slot
    if not catalog.is_valid_slot(slot):
        return ScheduleError(
            code=ErrorCode.INVALID_SLOT,
            message=f"{slot.label} is not an offered class time",
            participant_id=candidate.participant_id,
        )

    mine = [p for p in existing if p.participant_id == candidate.participant_id]
    same_course = [p for p in mine if p.course_id == candidate.course_id]
    if len(same_course) >= max_per_course:
        return ScheduleError(
            code=ErrorCode.CAPACITY_EXCEEDED,
            message=f"At most {max_per_course} timing preferences per course",
            participant_id=candidate.participant_id,
        )

    for pref in mine:
        if overlaps(pref.slot, slot):
            return ScheduleError(
                code=ErrorCode.PREFERENCE_OVERLAP,
                message=f"{slot.label} is already preferred for course {pref.course_id}",
                participant_id=candidate.participant_id,
                existing_slot=pref.slot,
            )
    return None


def build_preference(
    participant_id: str,
    course_id: str,
    slot: WeeklySlot,
    timezone: Optional[str] = None,
    anchor: Optional[date] = None,
) -> CourseTimingPreference:
    """Preference with its display projection; unknown zones fall back to the reference zone."""
    zone = resolve_timezone(timezone)
    key = zone.key if zone else reference_zone().key
    return CourseTimingPreference(
        participant_id=participant_id,
        course_id=course_id,
        slot=slot,
        timezone=key,
        display=project(slot, key, anchor),
    )


def matching_batches(preferences: Iterable[CourseTimingPreference], batches: Iterable[Batch], course_id: str) -> List[Batch]:
    """Active batches of ``course_id`` meeting at any of the preferred times."""
    preferred = [p.slot for p in preferences if p.course_id == course_id]
    return [
        b for b in batches
        if b.course_id == course_id and b.is_active
        and any(overlaps(s, p) for s in b.slots for p in preferred)
    ]
