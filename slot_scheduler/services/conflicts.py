import logging
from itertools import combinations
from typing import Iterable, List, Optional, Tuple

from slot_scheduler.models.schemas import CheckResult, ErrorCode, Occupancy, ScheduleError, WeeklySlot
from slot_scheduler.services.availability import AvailabilityIndex

logger = logging.getLogger(__name__)


def overlaps(a: WeeklySlot, b: WeeklySlot) -> bool:
    """Same weekday and intersecting time ranges. Touching ranges do not overlap."""
    if a.day != b.day:
        return False
    return not (a.end <= b.start or b.end <= a.start)


def conflict_error(participant_id: str, proposed: WeeklySlot, occupancy: Occupancy) -> ScheduleError:
    code = ErrorCode.TEACHER_CONFLICT if occupancy.role == "teacher" else ErrorCode.PARTICIPANT_CONFLICT
    return ScheduleError(
        code=code,
        message=f"{participant_id} is already booked at {occupancy.slot.label} in batch {occupancy.batch_name or occupancy.batch_id}",
        participant_id=participant_id,
        existing_slot=occupancy.slot,
        batch_id=occupancy.batch_id,
    )


def check_assignment(
    index: AvailabilityIndex,
    participant_id: str,
    proposed: WeeklySlot,
    excluding_batch_id: Optional[str] = None,
) -> CheckResult:
    """
    Checks whether ``participant_id`` can take ``proposed``.

    Works for teachers and students alike; the error code follows the role
    the participant holds in the conflicting batch.

    Returns:
        CheckResult: ok, or the first conflicting occupancy (earliest in the week).
    """
    for occupancy in index.occupancy_records(participant_id, excluding_batch_id):
        if overlaps(occupancy.slot, proposed):
            logger.debug("Conflict for %s: %s overlaps %s", participant_id, proposed.label, occupancy.slot.label)
            return CheckResult(
                ok=False,
                conflict=occupancy,
                error=conflict_error(participant_id, proposed, occupancy),
            )
    return CheckResult(ok=True)


def find_conflicts(
    index: AvailabilityIndex,
    participant_id: str,
    slots: Iterable[WeeklySlot],
    excluding_batch_id: Optional[str] = None,
) -> List[ScheduleError]:
    """All conflicts of one participant against several proposed slots."""
    errors = []
    records = index.occupancy_records(participant_id, excluding_batch_id)
    for slot in slots:
        for occupancy in records:
            if overlaps(occupancy.slot, slot):
                errors.append(conflict_error(participant_id, slot, occupancy))
    return errors


def find_overlapping_pairs(slots: Iterable[WeeklySlot]) -> List[Tuple[WeeklySlot, WeeklySlot]]:
    return [(a, b) for a, b in combinations(list(slots), 2) if overlaps(a, b)]
