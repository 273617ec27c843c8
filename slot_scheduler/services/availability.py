from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from slot_scheduler.models.schemas import Batch, Occupancy, WeeklySlot


class AvailabilityIndex:
    """
    Read-only view of who occupies which weekly slot.

    Built from a snapshot of batches taken at construction. A participant
    occupies every slot of a batch they teach, and every slot whose
    assignment lists them. Results are memoized per
    (participant, excluded batch) for the lifetime of the index; build a new
    index for every request rather than sharing one.
    """
    def __init__(self, batches: Iterable[Batch]):
        self.batches: Tuple[Batch, ...] = tuple(b.model_copy(deep=True) for b in batches)
        self._memo: Dict[Tuple[str, Optional[str]], Tuple[Occupancy, ...]] = {}

    def occupancy_records(self, participant_id: str, excluding_batch_id: Optional[str] = None) -> List[Occupancy]:
        """
        Every slot held by ``participant_id`` with the batch that holds it.

        Args:
            participant_id (str): Student or teacher id.
            excluding_batch_id (str): Batch being edited; its prior state is ignored.
        """
        key = (participant_id, excluding_batch_id)
        if key not in self._memo:
            records = []
            for batch in self.batches:
                if batch.id == excluding_batch_id:
                    continue
                is_teacher = batch.teacher_id is not None and batch.teacher_id == participant_id
                for assignment in batch.schedule:
                    if is_teacher or participant_id in assignment.participant_ids:
                        records.append(
                            Occupancy(
                                slot=assignment.slot,
                                batch_id=batch.id,
                                batch_name=batch.name,
                                course_id=batch.course_id,
                                role="teacher" if is_teacher else "student",
                            )
                        )
            records.sort(key=lambda r: r.slot.sort_key)
            self._memo[key] = tuple(records)
        return list(self._memo[key])

    def occupancy_of(self, participant_id: str, excluding_batch_id: Optional[str] = None) -> FrozenSet[WeeklySlot]:
        return frozenset(r.slot for r in self.occupancy_records(participant_id, excluding_batch_id))

    def is_free(self, participant_id: str, slot: WeeklySlot, excluding_batch_id: Optional[str] = None) -> bool:
        return slot not in self.occupancy_of(participant_id, excluding_batch_id)

    def busy_slots_by_course(self, participant_id: str, excluding_batch_id: Optional[str] = None) -> Dict[WeeklySlot, str]:
        """Slot -> course id occupying it, for course-timing pickers."""
        return {r.slot: r.course_id for r in self.occupancy_records(participant_id, excluding_batch_id)}

    def batches_for_course(self, course_id: str) -> List[Batch]:
        return [b for b in self.batches if b.course_id == course_id]
