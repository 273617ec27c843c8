from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from slot_scheduler.exceptions import CorruptBatchError
from slot_scheduler.models.schemas import AssemblyResult, Batch, ScheduleError
from slot_scheduler.services.assembler import BatchScheduleAssembler
from slot_scheduler.services.availability import AvailabilityIndex
from slot_scheduler.services.catalog import get_catalog
from slot_scheduler.services.directory import Directory, describe_error
from slot_scheduler.services.repository import BatchRepository
from slot_scheduler.settings import get_settings


def load_snapshot(db: Session) -> List[Batch]:
    try:
        return BatchRepository(db).load_all_batches()
    except CorruptBatchError as e:
        raise HTTPException(status_code=500, detail=str(e))


def build_assembler(db: Session, batches: Optional[List[Batch]] = None) -> BatchScheduleAssembler:
    """Fresh index over the current snapshot; never shared between requests."""
    if batches is None:
        batches = load_snapshot(db)
    return BatchScheduleAssembler(
        AvailabilityIndex(batches),
        get_catalog(),
        max_days=get_settings().max_weekly_slots,
    )


def error_detail(error: ScheduleError, db: Session, batches: Optional[List[Batch]] = None) -> dict:
    names = {b.id: b.name or b.id for b in (batches or [])}
    detail = error.model_dump(mode="json")
    detail["description"] = describe_error(error, Directory(db), names)
    return detail


def result_payload(result: AssemblyResult) -> dict:
    return {
        "ok": result.ok,
        "state": result.state.value,
        "draft": result.draft.model_dump(mode="json"),
        "warnings": [w.model_dump(mode="json") for w in result.warnings],
    }


def respond(result: AssemblyResult, db: Session, assembler: BatchScheduleAssembler) -> dict:
    """Accepted results go back as-is; rejections become a 422 carrying the typed error."""
    if not result.ok:
        raise HTTPException(
            status_code=422,
            detail=error_detail(result.error, db, list(assembler.index.batches)),
        )
    return result_payload(result)
