from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from slot_scheduler.api.common import load_snapshot
from slot_scheduler.database import get_db
from slot_scheduler.models.schemas import WeeklySlot
from slot_scheduler.services.availability import AvailabilityIndex
from slot_scheduler.services.conflicts import check_assignment
from slot_scheduler.services.directory import Directory, describe_error
from slot_scheduler.services.timezone import dual_label

router = APIRouter(prefix="/availability", tags=["Availability"])


class AvailabilityRequest(BaseModel):
    participant_id: str
    slot: WeeklySlot
    excluding_batch_id: Optional[str] = None


@router.post("/check")
async def check_availability(payload: AvailabilityRequest, db: Session = Depends(get_db)):
    index = AvailabilityIndex(load_snapshot(db))
    free = index.is_free(payload.participant_id, payload.slot, payload.excluding_batch_id)
    return {"participant_id": payload.participant_id, "slot": payload.slot.label, "free": free}


@router.post("/check-assignment")
async def check_assignment_route(payload: AvailabilityRequest, db: Session = Depends(get_db)):
    """
    Overlap-aware check; a conflict comes back with the batch holding the slot.
    """
    batches = load_snapshot(db)
    result = check_assignment(
        AvailabilityIndex(batches),
        payload.participant_id,
        payload.slot,
        excluding_batch_id=payload.excluding_batch_id,
    )
    body = result.model_dump(mode="json")
    if result.error:
        names = {b.id: b.name or b.id for b in batches}
        body["description"] = describe_error(result.error, Directory(db), names)
    return body


@router.get("/occupancy/{participant_id}")
async def get_occupancy(
    participant_id: str,
    excluding_batch_id: Optional[str] = None,
    timezone: Optional[str] = None,
    admin_view: bool = False,
    db: Session = Depends(get_db),
):
    index = AvailabilityIndex(load_snapshot(db))
    records = index.occupancy_records(participant_id, excluding_batch_id)
    items = []
    for r in records:
        item = r.model_dump(mode="json")
        item["label"] = dual_label(r.slot, timezone, admin_view=admin_view) if timezone else r.slot.label
        items.append(item)
    return {"participant_id": participant_id, "occupancy": items}
