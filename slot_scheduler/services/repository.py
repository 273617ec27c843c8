import hashlib
import logging
from typing import Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from slot_scheduler.database import BatchDB, CourseTimingPreferenceDB
from slot_scheduler.exceptions import CorruptBatchError, StaleBatchError
from slot_scheduler.models.schemas import Batch, CourseTimingPreference, ProjectedSlot, WeeklySlot

logger = logging.getLogger(__name__)


def snapshot_token(batches: Iterable[Batch]) -> str:
    """Fingerprint of a batch snapshot; changes whenever any batch is saved or deleted."""
    parts = sorted(f"{b.id}:{b.version}" for b in batches)
    return hashlib.sha1("|".join(parts).encode()).hexdigest()


class BatchRepository:
    """
    Batch persistence boundary.

    Schedules are stored as a JSON blob per batch. ``save_batch`` performs an
    optimistic version check so two editors cannot silently overwrite each
    other.
    """
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _to_batch(row: BatchDB) -> Batch:
        try:
            return Batch(
                id=row.id,
                name=row.name or "",
                description=row.description or "",
                course_id=row.course_id,
                teacher_id=row.teacher_id,
                mode=row.mode or "Online",
                location_id=row.location_id,
                schedule=row.schedule_json or [],
                version=row.version or 0,
                is_active=bool(row.is_active),
            )
        except ValidationError as e:
            logger.error("Batch %s failed validation on load: %s", row.id, e)
            raise CorruptBatchError(row.id, str(e)) from e

    def load_all_batches(self, active_only: bool = True) -> List[Batch]:
        query = self.db.query(BatchDB)
        if active_only:
            query = query.filter(BatchDB.is_active == True)  # noqa: E712
        return [self._to_batch(row) for row in query.order_by(BatchDB.id).all()]

    def get_batch(self, batch_id: str) -> Optional[Batch]:
        row = self.db.query(BatchDB).filter(BatchDB.id == batch_id).first()
        return self._to_batch(row) if row else None

    def save_batch(self, batch: Batch, expected_version: Optional[int] = None) -> Batch:
        """
        Creates or updates a batch and bumps its version.

        Args:
            batch (Batch): Batch to persist.
            expected_version (int): Version the caller edited. None skips the check;
                0 means "must not exist yet".

        Raises:
            StaleBatchError: the stored version differs from ``expected_version``.
        """
        row = self.db.query(BatchDB).filter(BatchDB.id == batch.id).first()
        actual = row.version if row else 0
        if expected_version is not None and actual != expected_version:
            raise StaleBatchError(batch.id, expected_version, actual)

        if row is None:
            row = BatchDB(id=batch.id, version=0)
            self.db.add(row)

        row.name = batch.name
        row.description = batch.description
        row.course_id = batch.course_id
        row.teacher_id = batch.teacher_id
        row.mode = batch.mode.value
        row.location_id = batch.location_id
        row.schedule_json = [a.model_dump(mode="json") for a in batch.schedule]
        row.is_active = batch.is_active
        row.version = actual + 1

        self.db.commit()
        self.db.refresh(row)
        logger.info("Saved batch %s (version %d)", row.id, row.version)
        return self._to_batch(row)

    def delete_batch(self, batch_id: str) -> bool:
        row = self.db.query(BatchDB).filter(BatchDB.id == batch_id).first()
        if not row:
            return False
        self.db.delete(row)
        self.db.commit()
        logger.info("Deleted batch %s", batch_id)
        return True


class PreferenceRepository:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _to_preference(row: CourseTimingPreferenceDB) -> CourseTimingPreference:
        return CourseTimingPreference(
            id=row.id,
            participant_id=row.participant_id,
            course_id=row.course_id,
            slot=WeeklySlot.model_validate(row.slot_json),
            timezone=row.timezone,
            display=ProjectedSlot.model_validate(row.display_json) if row.display_json else None,
        )

    def list_for_participant(self, participant_id: str) -> List[CourseTimingPreference]:
        rows = (
            self.db.query(CourseTimingPreferenceDB)
            .filter(CourseTimingPreferenceDB.participant_id == participant_id)
            .order_by(CourseTimingPreferenceDB.id)
            .all()
        )
        return [self._to_preference(r) for r in rows]

    def add(self, preference: CourseTimingPreference) -> CourseTimingPreference:
        row = CourseTimingPreferenceDB(
            participant_id=preference.participant_id,
            course_id=preference.course_id,
            slot_json=preference.slot.model_dump(mode="json"),
            timezone=preference.timezone,
            display_json=preference.display.model_dump(mode="json") if preference.display else None,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self._to_preference(row)

    def delete(self, preference_id: int) -> bool:
        row = self.db.query(CourseTimingPreferenceDB).filter(CourseTimingPreferenceDB.id == preference_id).first()
        if not row:
            return False
        self.db.delete(row)
        self.db.commit()
        return True
