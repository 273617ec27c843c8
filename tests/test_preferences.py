from datetime import date

from slot_scheduler.models.schemas import CourseTimingPreference, ErrorCode, Weekday, WeeklySlot
from slot_scheduler.services.preferences import build_preference, matching_batches, validate_preference


def _pref(course_id, label, participant_id="S1"):
    return CourseTimingPreference(
        participant_id=participant_id,
        course_id=course_id,
        slot=WeeklySlot.parse(label),
        timezone="Asia/Kolkata",
    )


def test_first_preference_is_accepted(catalog):
    assert validate_preference([], _pref("MATH", "Mon 09:00 - 10:00"), catalog) is None


def test_at_most_two_preferences_per_course(catalog):
    existing = [_pref("MATH", "Mon 09:00 - 10:00"), _pref("MATH", "Wed 09:00 - 10:00")]
    error = validate_preference(existing, _pref("MATH", "Fri 09:00 - 10:00"), catalog)
    assert error.code == ErrorCode.CAPACITY_EXCEEDED


def test_preferences_across_courses_may_not_overlap(catalog):
    existing = [_pref("MATH", "Mon 09:00 - 10:00")]
    error = validate_preference(existing, _pref("ART", "Mon 09:00 - 10:00"), catalog)
    assert error.code == ErrorCode.PREFERENCE_OVERLAP
    assert error.existing_slot == WeeklySlot.parse("Mon 09:00 - 10:00")


def test_other_participants_do_not_count(catalog):
    existing = [_pref("MATH", "Mon 09:00 - 10:00", participant_id="S2")]
    assert validate_preference(existing, _pref("MATH", "Mon 09:00 - 10:00"), catalog) is None


def test_preference_must_be_catalog_slot(catalog):
    error = validate_preference([], _pref("MATH", "Mon 07:00 - 08:00"), catalog)
    assert error.code == ErrorCode.INVALID_SLOT


def test_build_preference_projects_for_display():
    pref = build_preference("S1", "MATH", WeeklySlot.parse("Mon 09:00 - 10:00"), "America/Los_Angeles", date(2024, 7, 1))
    assert pref.timezone == "America/Los_Angeles"
    assert pref.display.local.day == Weekday.SUN


def test_build_preference_unknown_zone_uses_reference():
    pref = build_preference("S1", "MATH", WeeklySlot.parse("Mon 09:00 - 10:00"), "Nowhere/Land")
    assert pref.timezone == "Asia/Kolkata"
    assert pref.display.local.day == Weekday.MON


def test_matching_batches(make_batch):
    batches = [
        make_batch("A", ["Mon 09:00 - 10:00", "Wed 09:00 - 10:00"], course_id="MATH"),
        make_batch("B", ["Tue 09:00 - 10:00", "Thu 09:00 - 10:00"], course_id="MATH"),
        make_batch("C", ["Mon 09:00 - 10:00", "Wed 09:00 - 10:00"], course_id="ART"),
        make_batch("D", ["Mon 09:00 - 10:00", "Fri 09:00 - 10:00"], course_id="MATH", is_active=False),
    ]
    prefs = [_pref("MATH", "Mon 09:00 - 10:00"), _pref("ART", "Thu 09:00 - 10:00")]

    assert [b.id for b in matching_batches(prefs, batches, "MATH")] == ["A"]
