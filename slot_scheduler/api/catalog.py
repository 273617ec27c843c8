from typing import Optional

from fastapi import APIRouter, HTTPException

from slot_scheduler.models.schemas import Weekday
from slot_scheduler.services.catalog import get_catalog

router = APIRouter(prefix="/catalog", tags=["Catalog"])


@router.get("/slots")
async def list_slots(day: Optional[str] = None):
    """
    Catalog time ranges, for one weekday or the whole week.

    Accepts "Mon", "Monday" or "MO" for ``day``.
    """
    catalog = get_catalog()
    if day is None:
        return {
            "days": [
                {"day": d.value, "slots": [r.label for r in catalog.list_slots(d)]}
                for d in catalog.days
            ]
        }
    try:
        weekday = Weekday(day)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown weekday {day!r}")
    return {"day": weekday.value, "slots": [r.label for r in catalog.list_slots(weekday)]}
