from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from slot_scheduler.database import DirectoryEntryDB
from slot_scheduler.models.schemas import ErrorCode, ScheduleError

KINDS = ("course", "person", "location")


class Directory:
    """
    Name lookups for courses, people and locations.

    Only used to make messages readable: a missing entry falls back to the
    raw identifier.
    """
    def __init__(self, db: Session):
        self.db = db
        self._cache: Dict[tuple, Optional[DirectoryEntryDB]] = {}

    def get(self, kind: str, ref_id: str) -> Optional[DirectoryEntryDB]:
        key = (kind, ref_id)
        if key not in self._cache:
            self._cache[key] = (
                self.db.query(DirectoryEntryDB)
                .filter(DirectoryEntryDB.kind == kind, DirectoryEntryDB.ref_id == ref_id)
                .first()
            )
        return self._cache[key]

    def name_of(self, kind: str, ref_id: Optional[str]) -> str:
        if not ref_id:
            return ""
        entry = self.get(kind, ref_id)
        return entry.name if entry and entry.name else ref_id

    def course_name(self, course_id: Optional[str]) -> str:
        return self.name_of("course", course_id)

    def person_name(self, person_id: Optional[str]) -> str:
        return self.name_of("person", person_id)

    def location_name(self, location_id: Optional[str]) -> str:
        return self.name_of("location", location_id)

    def people_for_course(self, course_id: str, role: str) -> List[str]:
        """Students enrolled in, or teachers with expertise for, ``course_id``."""
        rows = (
            self.db.query(DirectoryEntryDB)
            .filter(DirectoryEntryDB.kind == "person", DirectoryEntryDB.role == role)
            .order_by(DirectoryEntryDB.ref_id)
            .all()
        )
        return [r.ref_id for r in rows if course_id in (r.courses_json or [])]

    def save(self, kind: str, ref_id: str, name: str, role: Optional[str] = None, courses: Optional[List[str]] = None) -> DirectoryEntryDB:
        if kind not in KINDS:
            raise ValueError(f"Unknown directory kind {kind!r}")
        entry = self.get(kind, ref_id)
        if entry is None:
            entry = DirectoryEntryDB(kind=kind, ref_id=ref_id)
            self.db.add(entry)
        entry.name = name
        entry.role = role
        entry.courses_json = list(courses or [])
        self.db.commit()
        self.db.refresh(entry)
        self._cache[(kind, ref_id)] = entry
        return entry


def describe_error(error: ScheduleError, directory: Directory, batch_names: Optional[Dict[str, str]] = None) -> str:
    """
    Human-readable message naming the person, slot and batch involved.
    """
    batch_names = batch_names or {}
    who = directory.person_name(error.participant_id)
    batch = batch_names.get(error.batch_id or "", error.batch_id or "another batch")
    slot = error.existing_slot.label if error.existing_slot else ""

    if error.code == ErrorCode.TEACHER_CONFLICT:
        return f"Teacher {who} already teaches {batch} on {slot}."
    if error.code == ErrorCode.PARTICIPANT_CONFLICT:
        return f"{who} is already enrolled in {batch} on {slot}."
    if error.code == ErrorCode.PREFERENCE_OVERLAP:
        return f"{who} already prefers {slot} for another course."
    return error.message
