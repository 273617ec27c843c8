from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from slot_scheduler.database import get_db
from slot_scheduler.services.directory import KINDS, Directory

router = APIRouter(prefix="/directory", tags=["Directory"])


class DirectoryItem(BaseModel):
    kind: str
    ref_id: str
    name: str
    role: Optional[str] = None
    courses: List[str] = []


@router.post("/save")
async def save_entry(item: DirectoryItem, db: Session = Depends(get_db)):
    if item.kind not in KINDS:
        raise HTTPException(status_code=422, detail=f"kind must be one of {', '.join(KINDS)}")
    Directory(db).save(item.kind, item.ref_id, item.name, role=item.role, courses=item.courses)
    return {"status": "saved", "kind": item.kind, "ref_id": item.ref_id}


@router.get("/{kind}/{ref_id}")
async def get_entry(kind: str, ref_id: str, db: Session = Depends(get_db)):
    directory = Directory(db)
    entry = directory.get(kind, ref_id)
    if not entry:
        return {"kind": kind, "ref_id": ref_id, "name": ref_id, "role": None, "courses": []}
    return {
        "kind": kind,
        "ref_id": ref_id,
        "name": entry.name,
        "role": entry.role,
        "courses": entry.courses_json or [],
    }
