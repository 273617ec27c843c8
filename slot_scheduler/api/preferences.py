from datetime import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from slot_scheduler.api.common import error_detail, load_snapshot
from slot_scheduler.database import get_db
from slot_scheduler.exceptions import InvalidSlotError, UnknownTimezoneError
from slot_scheduler.models.schemas import Weekday, WeeklySlot
from slot_scheduler.services.catalog import get_catalog
from slot_scheduler.services.preferences import build_preference, matching_batches, validate_preference
from slot_scheduler.services.repository import PreferenceRepository
from slot_scheduler.services.timezone import to_canonical
from slot_scheduler.settings import get_settings

router = APIRouter(prefix="/preferences", tags=["Preferences"])


class PreferenceRequest(BaseModel):
    participant_id: str
    course_id: str
    day: Weekday
    start: time
    end: time
    timezone: Optional[str] = None  # zone the time was picked in; reference zone when omitted
    local: bool = False  # True when day/start/end are in ``timezone`` rather than canonical


@router.get("/{participant_id}")
async def list_preferences(participant_id: str, db: Session = Depends(get_db)):
    prefs = PreferenceRepository(db).list_for_participant(participant_id)
    return [p.model_dump(mode="json") for p in prefs]


@router.post("/")
async def add_preference(payload: PreferenceRequest, db: Session = Depends(get_db)):
    """
    Stores a course timing preference.

    Returns:
        dict: The stored preference, with its projection for the participant's zone.
    """
    try:
        if payload.local and payload.timezone:
            slot = to_canonical(payload.day, payload.start, payload.end, payload.timezone)
        else:
            slot = WeeklySlot(day=payload.day, start=payload.start, end=payload.end)
    except (UnknownTimezoneError, InvalidSlotError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    repo = PreferenceRepository(db)
    candidate = build_preference(payload.participant_id, payload.course_id, slot, payload.timezone)
    error = validate_preference(
        repo.list_for_participant(payload.participant_id),
        candidate,
        get_catalog(),
        max_per_course=get_settings().max_preferences_per_course,
    )
    if error:
        raise HTTPException(status_code=422, detail=error_detail(error, db))

    saved = repo.add(candidate)
    return {"status": "success", "preference": saved.model_dump(mode="json")}


@router.delete("/{preference_id}")
async def delete_preference(preference_id: int, db: Session = Depends(get_db)):
    if not PreferenceRepository(db).delete(preference_id):
        raise HTTPException(status_code=404, detail="Preference not found")
    return {"status": "deleted", "id": preference_id}


@router.get("/{participant_id}/matching-batches")
async def get_matching_batches(participant_id: str, course_id: str, db: Session = Depends(get_db)):
    prefs = PreferenceRepository(db).list_for_participant(participant_id)
    matches = matching_batches(prefs, load_snapshot(db), course_id)
    return [b.model_dump(mode="json") for b in matches]
