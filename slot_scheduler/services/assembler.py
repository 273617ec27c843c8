import logging
import uuid
from typing import Iterable, List, Optional

from slot_scheduler.models.schemas import (
    AssemblyResult,
    Batch,
    BatchDraft,
    ClassMode,
    ErrorCode,
    ParticipantStatus,
    ScheduleAssignment,
    ScheduleError,
    Weekday,
    WeeklySlot,
)
from slot_scheduler.services.availability import AvailabilityIndex
from slot_scheduler.services.catalog import SlotCatalog
from slot_scheduler.services.conflicts import check_assignment, find_conflicts

logger = logging.getLogger(__name__)


class BatchScheduleAssembler:
    """
    Builds a batch's weekly schedule one decision at a time.

    Every operation takes a draft and returns an AssemblyResult. A rejected
    operation returns the draft it was given, untouched, with a typed error;
    an accepted one returns a new draft. Drafts are never mutated in place.

    Policy enforced here:
    - At most ``max_days`` distinct weekdays, one catalog slot per weekday.
    - The batch teacher may not be booked at the same time in another batch.
    - Participant conflicts are reported; they block only when the caller
      does not pass ``allow_participant_conflict``.
    - Commit needs exactly ``max_days`` slots and at least one participant.

    Attributes:
        index (AvailabilityIndex): Snapshot of every persisted batch.
        catalog (SlotCatalog): Assignable slots.
        max_days (int): Weekly slot cap per batch.
    """
    def __init__(self, index: AvailabilityIndex, catalog: SlotCatalog, max_days: int = 2):
        self.index = index
        self.catalog = catalog
        self.max_days = max_days

    # --- DRAFT LIFECYCLE ---

    @staticmethod
    def start(batch: Optional[Batch] = None, course_id: str = "", **fields) -> BatchDraft:
        """Opens a draft on an existing batch (edit in place) or a new, empty one."""
        if batch is None:
            batch = Batch(id=fields.pop("id", None) or uuid.uuid4().hex, course_id=course_id, **fields)
        days = sorted({a.slot.day for a in batch.schedule}, key=lambda d: d.index)
        return BatchDraft(
            batch=batch.model_copy(deep=True),
            selected_days=days,
            roster=batch.participant_ids,
        )

    def _edit(self, draft: BatchDraft) -> BatchDraft:
        new = draft.model_copy(deep=True)
        new.committed = False
        return new

    @staticmethod
    def _sync_roster(draft: BatchDraft) -> BatchDraft:
        for assignment in draft.batch.schedule:
            assignment.participant_ids = list(draft.roster)
        return draft

    def _accept(self, draft: BatchDraft, warnings: Optional[List[ScheduleError]] = None) -> AssemblyResult:
        return AssemblyResult(ok=True, draft=self._sync_roster(draft), warnings=warnings or [])

    def _reject(self, draft: BatchDraft, error: ScheduleError) -> AssemblyResult:
        logger.info("Batch %s: rejected (%s) %s", draft.batch.id, error.code.value, error.message)
        return AssemblyResult(ok=False, draft=draft, error=error)

    def _capacity_error(self, draft: BatchDraft, day: Weekday) -> ScheduleError:
        chosen = ", ".join(d.full_name for d in draft.selected_days)
        return ScheduleError(
            code=ErrorCode.CAPACITY_EXCEEDED,
            message=f"Cannot add {day.full_name}: batch already meets on {chosen} "
                    f"(maximum {self.max_days} days per week)",
            batch_id=draft.batch.id,
        )

    # --- DAYS ---

    def select_day(self, draft: BatchDraft, day: Weekday) -> AssemblyResult:
        day = Weekday(day)
        if day in draft.selected_days:
            return AssemblyResult(ok=True, draft=draft)
        if len(draft.selected_days) >= self.max_days:
            return self._reject(draft, self._capacity_error(draft, day))

        new = self._edit(draft)
        new.selected_days = sorted(new.selected_days + [day], key=lambda d: d.index)
        return self._accept(new)

    def deselect_day(self, draft: BatchDraft, day: Weekday) -> AssemblyResult:
        """Removes the day and its assignment entirely."""
        day = Weekday(day)
        if day not in draft.selected_days and draft.batch.assignment_for(day) is None:
            return AssemblyResult(ok=True, draft=draft)

        new = self._edit(draft)
        new.selected_days = [d for d in new.selected_days if d != day]
        new.batch.schedule = [a for a in new.batch.schedule if a.slot.day != day]
        return self._accept(new)

    # --- SLOTS & TEACHER ---

    def _teacher_conflict(self, draft: BatchDraft, teacher_id: str, slots: Iterable[WeeklySlot]) -> Optional[ScheduleError]:
        for slot in slots:
            result = check_assignment(self.index, teacher_id, slot, excluding_batch_id=draft.batch.id)
            if not result.ok:
                return result.error.model_copy(update={"code": ErrorCode.TEACHER_CONFLICT})
        return None

    def select_slot(self, draft: BatchDraft, slot: WeeklySlot) -> AssemblyResult:
        """
        Sets the slot for ``slot.day``, replacing any earlier choice for that day.

        The day is selected implicitly when capacity allows. Roster conflicts
        with the new time come back as warnings.
        """
        if not self.catalog.is_valid_slot(slot):
            return self._reject(draft, ScheduleError(
                code=ErrorCode.INVALID_SLOT,
                message=f"{slot.label} is not an offered class time",
                batch_id=draft.batch.id,
            ))
        if slot.day not in draft.selected_days and len(draft.selected_days) >= self.max_days:
            return self._reject(draft, self._capacity_error(draft, slot.day))

        teacher_id = draft.batch.teacher_id
        if teacher_id:
            error = self._teacher_conflict(draft, teacher_id, [slot])
            if error:
                return self._reject(draft, error)

        new = self._edit(draft)
        if slot.day not in new.selected_days:
            new.selected_days = sorted(new.selected_days + [slot.day], key=lambda d: d.index)
        schedule = [a for a in new.batch.schedule if a.slot.day != slot.day]
        schedule.append(ScheduleAssignment(slot=slot))
        new.batch.schedule = sorted(schedule, key=lambda a: a.slot.sort_key)

        warnings = []
        for pid in new.roster:
            warnings.extend(self._participant_conflicts(new, pid, [slot]))
        return self._accept(new, warnings)

    def set_teacher(self, draft: BatchDraft, teacher_id: Optional[str]) -> AssemblyResult:
        if teacher_id:
            error = self._teacher_conflict(draft, teacher_id, draft.batch.slots)
            if error:
                return self._reject(draft, error)

        new = self._edit(draft)
        new.batch.teacher_id = teacher_id or None
        return self._accept(new)

    def set_mode(self, draft: BatchDraft, mode: ClassMode, location_id: Optional[str] = None) -> AssemblyResult:
        new = self._edit(draft)
        new.batch.mode = ClassMode(mode)
        # Online batches never keep a location
        new.batch.location_id = location_id if new.batch.mode == ClassMode.OFFLINE else None
        return self._accept(new)

    # --- PARTICIPANTS ---

    def _participant_conflicts(self, draft: BatchDraft, participant_id: str, slots: Iterable[WeeklySlot]) -> List[ScheduleError]:
        errors = find_conflicts(self.index, participant_id, slots, excluding_batch_id=draft.batch.id)
        return [e.model_copy(update={"code": ErrorCode.PARTICIPANT_CONFLICT}) for e in errors]

    def participant_status(self, draft: BatchDraft, participant_id: str) -> ParticipantStatus:
        conflicts = self._participant_conflicts(draft, participant_id, draft.batch.slots)
        return ParticipantStatus(participant_id=participant_id, has_conflict=bool(conflicts), conflicts=conflicts)

    def participant_statuses(self, draft: BatchDraft, candidate_ids: Iterable[str]) -> List[ParticipantStatus]:
        return [self.participant_status(draft, pid) for pid in candidate_ids]

    def assign_participant(
        self,
        draft: BatchDraft,
        participant_id: str,
        allow_participant_conflict: bool = False,
    ) -> AssemblyResult:
        """
        Adds a participant to every slot of the batch.

        The participant must be free at all of the batch's slots at once
        (ignoring this batch's own saved state). With
        ``allow_participant_conflict`` the participant is added anyway and the
        conflicts are returned as warnings.
        """
        if participant_id in draft.roster:
            return AssemblyResult(ok=True, draft=draft)

        status = self.participant_status(draft, participant_id)
        if status.has_conflict and not allow_participant_conflict:
            return self._reject(draft, status.conflicts[0])

        new = self._edit(draft)
        new.roster = new.roster + [participant_id]
        if status.has_conflict:
            logger.info("Batch %s: %s added despite %d conflict(s)", draft.batch.id, participant_id, len(status.conflicts))
        return self._accept(new, status.conflicts)

    def remove_participant(self, draft: BatchDraft, participant_id: str) -> AssemblyResult:
        if participant_id not in draft.roster:
            return AssemblyResult(ok=True, draft=draft)
        new = self._edit(draft)
        new.roster = [pid for pid in new.roster if pid != participant_id]
        return self._accept(new)

    def select_all_available(self, draft: BatchDraft, candidate_ids: Iterable[str]) -> AssemblyResult:
        """Bulk add: only candidates free at every slot of the batch are added."""
        new = self._edit(draft)
        for status in self.participant_statuses(draft, candidate_ids):
            if not status.has_conflict and status.participant_id not in new.roster:
                new.roster.append(status.participant_id)
        return self._accept(new)

    # --- COMMIT ---

    def commit(self, draft: BatchDraft) -> AssemblyResult:
        batch = draft.batch
        problems = []
        if len(batch.schedule) != self.max_days:
            problems.append(f"needs exactly {self.max_days} weekly slots, has {len(batch.schedule)}")
        unscheduled = [d.full_name for d in draft.selected_days if batch.assignment_for(d) is None]
        if unscheduled:
            problems.append(f"no time chosen for {', '.join(unscheduled)}")
        if not draft.roster:
            problems.append("has no participants")
        if batch.mode == ClassMode.OFFLINE and not batch.location_id:
            problems.append("is offline but has no location")
        if problems:
            return self._reject(draft, ScheduleError(
                code=ErrorCode.INCOMPLETE_SCHEDULE,
                message=f"Batch {batch.name or batch.id} " + "; ".join(problems),
                batch_id=batch.id,
            ))

        # Every slot must still be a catalog slot, whatever path the draft took
        for slot in batch.slots:
            if not self.catalog.is_valid_slot(slot):
                return self._reject(draft, ScheduleError(
                    code=ErrorCode.INVALID_SLOT,
                    message=f"{slot.label} is not an offered class time",
                    batch_id=batch.id,
                ))

        if batch.teacher_id:
            error = self._teacher_conflict(draft, batch.teacher_id, batch.slots)
            if error:
                return self._reject(draft, error)

        new = draft.model_copy(deep=True)
        new.committed = True
        logger.info("Batch %s committed with %d slots and %d participants", batch.id, len(batch.schedule), len(new.roster))
        return self._accept(new)

    # --- LOOKUPS ---

    def available_teachers(
        self,
        candidate_ids: Iterable[str],
        slots: Iterable[WeeklySlot],
        excluding_batch_id: Optional[str] = None,
    ) -> List[str]:
        """Candidates free at every one of ``slots``."""
        slots = list(slots)
        return [
            tid for tid in candidate_ids
            if all(check_assignment(self.index, tid, s, excluding_batch_id).ok for s in slots)
        ]
