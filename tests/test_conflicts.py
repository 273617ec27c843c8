import unittest

from slot_scheduler.models.schemas import Batch, ErrorCode, ScheduleAssignment, WeeklySlot
from slot_scheduler.services.availability import AvailabilityIndex
from slot_scheduler.services.conflicts import check_assignment, find_conflicts, find_overlapping_pairs, overlaps


def _slot(label):
    return WeeklySlot.parse(label)


class TestOverlaps(unittest.TestCase):

    def test_symmetric_and_reflexive(self):
        a = _slot("Mon 09:00 - 10:00")
        b = _slot("Mon 09:30 - 10:30")
        self.assertTrue(overlaps(a, a))
        self.assertTrue(overlaps(a, b))
        self.assertTrue(overlaps(b, a))

    def test_touching_ranges_do_not_overlap(self):
        self.assertFalse(overlaps(_slot("Mon 09:00 - 10:00"), _slot("Mon 10:00 - 11:00")))

    def test_different_weekdays_never_overlap(self):
        self.assertFalse(overlaps(_slot("Mon 09:00 - 10:00"), _slot("Tue 09:00 - 10:00")))

    def test_find_overlapping_pairs(self):
        slots = [_slot("Mon 09:00 - 10:00"), _slot("Mon 09:30 - 10:30"), _slot("Mon 10:30 - 11:30")]
        pairs = find_overlapping_pairs(slots)
        self.assertEqual(pairs, [(slots[0], slots[1])])


class TestCheckAssignment(unittest.TestCase):

    def setUp(self):
        # Batch A: teacher T1, student S1, Mon + Wed mornings
        self.batch_a = Batch(
            id="A",
            name="Batch A",
            course_id="C1",
            teacher_id="T1",
            schedule=[
                ScheduleAssignment(slot=_slot("Wed 09:00 - 10:00"), participant_ids=["S1"]),
                ScheduleAssignment(slot=_slot("Mon 09:00 - 10:00"), participant_ids=["S1"]),
            ],
        )
        self.index = AvailabilityIndex([self.batch_a])

    def test_free_participant(self):
        result = check_assignment(self.index, "S2", _slot("Mon 09:00 - 10:00"))
        self.assertTrue(result.ok)
        self.assertIsNone(result.error)

    def test_student_conflict(self):
        result = check_assignment(self.index, "S1", _slot("Mon 09:00 - 10:00"))
        self.assertFalse(result.ok)
        self.assertEqual(result.error.code, ErrorCode.PARTICIPANT_CONFLICT)
        self.assertEqual(result.error.batch_id, "A")
        self.assertEqual(result.error.existing_slot, _slot("Mon 09:00 - 10:00"))
        self.assertIn("Batch A", result.error.message)

    def test_teacher_conflict_on_partial_overlap(self):
        result = check_assignment(self.index, "T1", _slot("Wed 09:30 - 10:30"))
        self.assertFalse(result.ok)
        self.assertEqual(result.error.code, ErrorCode.TEACHER_CONFLICT)
        self.assertEqual(result.conflict.role, "teacher")

    def test_own_batch_is_excluded(self):
        result = check_assignment(self.index, "S1", _slot("Mon 09:00 - 10:00"), excluding_batch_id="A")
        self.assertTrue(result.ok)

    def test_find_conflicts_reports_every_slot(self):
        errors = find_conflicts(self.index, "S1", [_slot("Mon 09:00 - 10:00"), _slot("Wed 09:00 - 10:00"), _slot("Fri 09:00 - 10:00")])
        self.assertEqual([e.existing_slot.day.value for e in errors], ["Mon", "Wed"])


if __name__ == '__main__':
    unittest.main()
