from datetime import date, time

import pytest

from slot_scheduler.exceptions import InvalidSlotError, UnknownTimezoneError
from slot_scheduler.models.schemas import ErrorCode, LocalSlot, Weekday, WeeklySlot
from slot_scheduler.services.timezone import (
    COMMON_TIMEZONES,
    dual_label,
    project,
    resolve_timezone,
    to_canonical,
)

SUMMER = date(2024, 7, 1)  # Monday, Los Angeles on PDT
WINTER = date(2024, 1, 1)  # Monday, Los Angeles on PST
FALL_BACK = date(2024, 10, 28)  # Monday; the following Sunday Los Angeles repeats 01:00-02:00


def test_projection_into_reference_is_identity():
    slot = WeeklySlot.parse("Wed 14:00 - 15:00")
    projection = project(slot, "Asia/Kolkata", SUMMER)

    assert projection.projected
    assert projection.error is None
    assert projection.local.day == Weekday.WED
    assert projection.local.start == slot.start
    assert projection.local.end == slot.end
    assert projection.local_label == projection.reference_label == "Wed 14:00 - 15:00 IST"


@pytest.mark.parametrize("anchor, expected_start", [
    (SUMMER, time(11, 0)),
    (WINTER, time(10, 0)),
])
def test_late_sunday_keeps_true_local_weekday(anchor, expected_start):
    slot = WeeklySlot(day=Weekday.SUN, start=time(23, 30), end=time(23, 59))
    projection = project(slot, "America/Los_Angeles", anchor)

    assert projection.local.day == Weekday.SUN
    assert projection.local.start == expected_start


def test_monday_morning_rolls_back_to_sunday():
    slot = WeeklySlot.parse("Mon 09:00 - 10:00")
    projection = project(slot, "America/Los_Angeles", SUMMER)

    assert projection.local.day == Weekday.SUN
    assert projection.local.start == time(20, 30)
    assert projection.local.end == time(21, 30)
    assert projection.local_label == "Sun 20:30 - 21:30 PDT"
    assert projection.reference_label == "Mon 09:00 - 10:00 IST"


def test_evening_rolls_forward_to_next_day():
    slot = WeeklySlot.parse("Mon 22:00 - 23:00")
    projection = project(slot, "Asia/Tokyo", SUMMER)

    assert projection.local.day == Weekday.TUE
    assert projection.local.start == time(1, 30)


def test_local_range_may_cross_midnight():
    slot = WeeklySlot.parse("Mon 18:00 - 19:00")
    projection = project(slot, "Pacific/Noumea", SUMMER)

    assert projection.local.day == Weekday.MON
    assert projection.local.end_day == Weekday.TUE
    assert projection.local.start == time(23, 30)
    assert projection.local.end == time(0, 30)


@pytest.mark.parametrize("zone", ["America/Los_Angeles", "Asia/Tokyo", "Europe/London", "Pacific/Noumea", "Asia/Kolkata"])
@pytest.mark.parametrize("label", ["Mon 09:00 - 10:00", "Sun 18:00 - 19:00", "Thu 13:00 - 14:00"])
def test_round_trip_reproduces_canonical_slot(zone, label):
    slot = WeeklySlot.parse(label)
    for anchor in (SUMMER, WINTER, FALL_BACK):
        local = project(slot, zone, anchor).local
        assert to_canonical(local.day, local.start, local.end, zone, anchor) == slot


def test_round_trip_through_json_on_fall_back_night():
    slot = WeeklySlot.parse("Sun 15:00 - 16:00")
    local = project(slot, "America/Los_Angeles", FALL_BACK).local
    assert local.start == time(1, 30)

    # JSON drops the fold, so the repeated 01:30 arrives unmarked
    local = LocalSlot.model_validate_json(local.model_dump_json())
    assert to_canonical(local.day, local.start, local.end, "America/Los_Angeles", FALL_BACK) == slot


def test_unknown_timezone_falls_back_to_reference():
    slot = WeeklySlot.parse("Mon 09:00 - 10:00")
    projection = project(slot, "Mars/Olympus_Mons", SUMMER)

    assert not projection.projected
    assert projection.error.code == ErrorCode.UNKNOWN_TIMEZONE
    assert projection.local.timezone == "Asia/Kolkata"
    assert projection.local.day == Weekday.MON


@pytest.mark.parametrize("name", [None, "", "Mars/Olympus_Mons", "../../etc/passwd"])
def test_resolve_timezone_rejects_untrusted_input(name):
    assert resolve_timezone(name) is None


def test_to_canonical_unknown_timezone_raises():
    with pytest.raises(UnknownTimezoneError):
        to_canonical("Mon", time(9, 0), time(10, 0), "Not/AZone", SUMMER)


def test_to_canonical_spanning_reference_midnight_raises():
    # Sun 10:00-12:00 PDT is Sun 22:30 - Mon 00:30 IST
    with pytest.raises(InvalidSlotError):
        to_canonical("Sunday", time(10, 0), time(12, 0), "America/Los_Angeles", SUMMER)


def test_to_canonical_accepts_day_names():
    slot = to_canonical("sunday", time(20, 30), time(21, 30), "America/Los_Angeles", SUMMER)
    assert slot == WeeklySlot.parse("Mon 09:00 - 10:00")


def test_dual_label_order_depends_on_view():
    slot = WeeklySlot.parse("Mon 09:00 - 10:00")

    admin = dual_label(slot, "America/Los_Angeles", admin_view=True, anchor=SUMMER)
    student = dual_label(slot, "America/Los_Angeles", anchor=SUMMER)

    assert admin == "Mon 09:00 - 10:00 IST (Sun 20:30 - 21:30 PDT)"
    assert student == "Sun 20:30 - 21:30 PDT (Mon 09:00 - 10:00 IST)"


def test_dual_label_collapses_for_reference_zone():
    slot = WeeklySlot.parse("Mon 09:00 - 10:00")
    assert dual_label(slot, "Asia/Kolkata", anchor=SUMMER) == "Mon 09:00 - 10:00 IST"


def test_common_timezones_are_resolvable():
    assert COMMON_TIMEZONES[0]["timezone"] == "Asia/Kolkata"
    for entry in COMMON_TIMEZONES:
        assert resolve_timezone(entry["timezone"]) is not None
