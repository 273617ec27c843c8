import pytest

from slot_scheduler.database import BatchDB
from slot_scheduler.exceptions import CorruptBatchError, StaleBatchError
from slot_scheduler.models.schemas import CourseTimingPreference, ErrorCode, ScheduleError, WeeklySlot
from slot_scheduler.services.directory import Directory, describe_error
from slot_scheduler.services.repository import BatchRepository, PreferenceRepository, snapshot_token


def test_save_and_load_batch(db_session, make_batch):
    repo = BatchRepository(db_session)
    saved = repo.save_batch(make_batch("A", ["Mon 09:00 - 10:00", "Wed 09:00 - 10:00"], teacher_id="T", participants=["S1"]), expected_version=0)

    assert saved.version == 1
    loaded = repo.get_batch("A")
    assert loaded == saved
    assert loaded.slots == [WeeklySlot.parse("Mon 09:00 - 10:00"), WeeklySlot.parse("Wed 09:00 - 10:00")]
    assert [b.id for b in repo.load_all_batches()] == ["A"]


def test_stale_version_is_refused(db_session, make_batch):
    repo = BatchRepository(db_session)
    batch = make_batch("A", ["Mon 09:00 - 10:00"])
    repo.save_batch(batch, expected_version=0)
    repo.save_batch(batch, expected_version=1)

    with pytest.raises(StaleBatchError) as exc:
        repo.save_batch(batch, expected_version=1)
    assert exc.value.actual_version == 2


def test_inactive_batches_hidden_by_default(db_session, make_batch):
    repo = BatchRepository(db_session)
    repo.save_batch(make_batch("A", ["Mon 09:00 - 10:00"]))
    repo.save_batch(make_batch("B", ["Tue 09:00 - 10:00"], is_active=False))

    assert [b.id for b in repo.load_all_batches()] == ["A"]
    assert [b.id for b in repo.load_all_batches(active_only=False)] == ["A", "B"]


def test_delete_batch(db_session, make_batch):
    repo = BatchRepository(db_session)
    repo.save_batch(make_batch("A", ["Mon 09:00 - 10:00"]))

    assert repo.delete_batch("A")
    assert repo.get_batch("A") is None
    assert not repo.delete_batch("A")


def test_corrupt_schedule_raises(db_session):
    db_session.add(BatchDB(id="X", course_id="C1", schedule_json=[{"slot": {"day": "Someday"}}], version=1, is_active=True))
    db_session.commit()

    with pytest.raises(CorruptBatchError):
        BatchRepository(db_session).get_batch("X")


def test_snapshot_token_tracks_versions(make_batch):
    a = make_batch("A", ["Mon 09:00 - 10:00"])
    b = make_batch("B", ["Tue 09:00 - 10:00"])

    assert snapshot_token([a, b]) == snapshot_token([b, a])
    assert snapshot_token([a, b]) != snapshot_token([a, b.model_copy(update={"version": 1})])


def test_preference_repository(db_session):
    repo = PreferenceRepository(db_session)
    saved = repo.add(CourseTimingPreference(
        participant_id="S1",
        course_id="MATH",
        slot=WeeklySlot.parse("Mon 09:00 - 10:00"),
        timezone="Asia/Kolkata",
    ))

    assert saved.id is not None
    assert [p.slot for p in repo.list_for_participant("S1")] == [WeeklySlot.parse("Mon 09:00 - 10:00")]
    assert repo.delete(saved.id)
    assert repo.list_for_participant("S1") == []


def test_directory_falls_back_to_identifier(db_session):
    directory = Directory(db_session)
    directory.save("person", "T1", "Ms. Rao", role="teacher", courses=["MATH"])

    assert directory.person_name("T1") == "Ms. Rao"
    assert directory.person_name("T9") == "T9"
    assert directory.people_for_course("MATH", "teacher") == ["T1"]

    error = ScheduleError(
        code=ErrorCode.TEACHER_CONFLICT,
        message="",
        participant_id="T1",
        existing_slot=WeeklySlot.parse("Mon 09:00 - 10:00"),
        batch_id="A",
    )
    assert describe_error(error, directory, {"A": "Morning Math"}) == "Teacher Ms. Rao already teaches Morning Math on Mon 09:00 - 10:00."
