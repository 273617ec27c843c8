from datetime import date, time
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from slot_scheduler.exceptions import InvalidSlotError, UnknownTimezoneError
from slot_scheduler.models.schemas import Weekday, WeeklySlot
from slot_scheduler.services.timezone import COMMON_TIMEZONES, dual_label, project, to_canonical

router = APIRouter(prefix="/timezone", tags=["Timezone"])


class ProjectRequest(BaseModel):
    slot: WeeklySlot
    timezone: str
    anchor: Optional[date] = None


class LocalSlotRequest(BaseModel):
    day: Weekday
    start: time
    end: time
    timezone: str
    anchor: Optional[date] = None


class LabelRequest(ProjectRequest):
    admin_view: bool = False


@router.get("/common")
async def common_timezones():
    return COMMON_TIMEZONES


@router.post("/project")
async def project_slot(payload: ProjectRequest):
    return project(payload.slot, payload.timezone, payload.anchor).model_dump(mode="json")


@router.post("/to-canonical")
async def to_canonical_slot(payload: LocalSlotRequest):
    try:
        slot = to_canonical(payload.day, payload.start, payload.end, payload.timezone, payload.anchor)
    except (UnknownTimezoneError, InvalidSlotError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"slot": slot.model_dump(mode="json"), "label": slot.label}


@router.post("/label")
async def slot_label(payload: LabelRequest):
    label = dual_label(payload.slot, payload.timezone, admin_view=payload.admin_view, anchor=payload.anchor)
    return {"label": label}
