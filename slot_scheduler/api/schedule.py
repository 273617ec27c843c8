from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from slot_scheduler.api.common import build_assembler, respond
from slot_scheduler.database import get_db
from slot_scheduler.exceptions import InvalidSlotError, UnknownTimezoneError
from slot_scheduler.models.schemas import BatchDraft, ClassMode, Weekday, WeeklySlot
from slot_scheduler.services.assembler import BatchScheduleAssembler
from slot_scheduler.services.directory import Directory
from slot_scheduler.services.timezone import to_canonical

router = APIRouter(prefix="/schedule", tags=["Schedule"])


class StartRequest(BaseModel):
    batch_id: Optional[str] = None
    course_id: str = ""
    name: str = ""
    description: str = ""
    teacher_id: Optional[str] = None
    mode: ClassMode = ClassMode.ONLINE
    location_id: Optional[str] = None


class DayRequest(BaseModel):
    draft: BatchDraft
    day: Weekday


class SlotRequest(BaseModel):
    draft: BatchDraft
    slot: WeeklySlot
    timezone: Optional[str] = None  # slot entered in this zone; canonical when omitted


class TeacherRequest(BaseModel):
    draft: BatchDraft
    teacher_id: Optional[str] = None


class ModeRequest(BaseModel):
    draft: BatchDraft
    mode: ClassMode
    location_id: Optional[str] = None


class ParticipantRequest(BaseModel):
    draft: BatchDraft
    participant_id: str
    allow_participant_conflict: bool = False


class CandidatesRequest(BaseModel):
    draft: BatchDraft
    participant_ids: List[str] = []


class AvailableTeachersRequest(BaseModel):
    slots: List[WeeklySlot]
    course_id: Optional[str] = None
    candidate_ids: List[str] = []
    excluding_batch_id: Optional[str] = None


def _candidates(ids: List[str], course_id: str, role: str, db: Session) -> List[str]:
    # Without an explicit list, everyone the directory links to the course
    return ids or Directory(db).people_for_course(course_id, role)


@router.post("/start")
async def start_draft(payload: StartRequest, db: Session = Depends(get_db)):
    """
    Opens a draft, either on a persisted batch (edit in place) or a new one.
    """
    assembler = build_assembler(db)
    if payload.batch_id:
        batch = next((b for b in assembler.index.batches if b.id == payload.batch_id), None)
        if batch is None:
            raise HTTPException(status_code=404, detail="Batch not found")
        draft = BatchScheduleAssembler.start(batch)
    else:
        draft = BatchScheduleAssembler.start(
            course_id=payload.course_id,
            name=payload.name,
            description=payload.description,
            teacher_id=payload.teacher_id,
            mode=payload.mode,
            location_id=payload.location_id,
        )
    return {"state": draft.state.value, "draft": draft.model_dump(mode="json")}


@router.post("/select-day")
async def select_day(payload: DayRequest, db: Session = Depends(get_db)):
    assembler = build_assembler(db)
    return respond(assembler.select_day(payload.draft, payload.day), db, assembler)


@router.post("/deselect-day")
async def deselect_day(payload: DayRequest, db: Session = Depends(get_db)):
    assembler = build_assembler(db)
    return respond(assembler.deselect_day(payload.draft, payload.day), db, assembler)


@router.post("/select-slot")
async def select_slot(payload: SlotRequest, db: Session = Depends(get_db)):
    """
    Proposes a slot for one weekday of the draft.

    A slot entered in the user's own timezone is normalized to canonical
    form first.
    """
    slot = payload.slot
    if payload.timezone:
        try:
            slot = to_canonical(slot.day, slot.start, slot.end, payload.timezone)
        except (UnknownTimezoneError, InvalidSlotError) as e:
            raise HTTPException(status_code=422, detail=str(e))
    assembler = build_assembler(db)
    return respond(assembler.select_slot(payload.draft, slot), db, assembler)


@router.post("/set-teacher")
async def set_teacher(payload: TeacherRequest, db: Session = Depends(get_db)):
    assembler = build_assembler(db)
    return respond(assembler.set_teacher(payload.draft, payload.teacher_id), db, assembler)


@router.post("/set-mode")
async def set_mode(payload: ModeRequest, db: Session = Depends(get_db)):
    assembler = build_assembler(db)
    return respond(assembler.set_mode(payload.draft, payload.mode, payload.location_id), db, assembler)


@router.post("/assign-participant")
async def assign_participant(payload: ParticipantRequest, db: Session = Depends(get_db)):
    assembler = build_assembler(db)
    result = assembler.assign_participant(
        payload.draft,
        payload.participant_id,
        allow_participant_conflict=payload.allow_participant_conflict,
    )
    return respond(result, db, assembler)


@router.post("/remove-participant")
async def remove_participant(payload: ParticipantRequest, db: Session = Depends(get_db)):
    assembler = build_assembler(db)
    return respond(assembler.remove_participant(payload.draft, payload.participant_id), db, assembler)


@router.post("/select-all-available")
async def select_all_available(payload: CandidatesRequest, db: Session = Depends(get_db)):
    assembler = build_assembler(db)
    candidates = _candidates(payload.participant_ids, payload.draft.batch.course_id, "student", db)
    return respond(assembler.select_all_available(payload.draft, candidates), db, assembler)


@router.post("/participant-status")
async def participant_status(payload: CandidatesRequest, db: Session = Depends(get_db)):
    """
    Conflict status of each candidate against the draft's current slots.
    """
    assembler = build_assembler(db)
    candidates = _candidates(payload.participant_ids, payload.draft.batch.course_id, "student", db)
    statuses = assembler.participant_statuses(payload.draft, candidates)
    return [s.model_dump(mode="json") for s in statuses]


@router.post("/available-teachers")
async def available_teachers(payload: AvailableTeachersRequest, db: Session = Depends(get_db)):
    assembler = build_assembler(db)
    candidates = _candidates(payload.candidate_ids, payload.course_id or "", "teacher", db)
    free = assembler.available_teachers(candidates, payload.slots, payload.excluding_batch_id)
    directory = Directory(db)
    return {"teachers": [{"id": tid, "name": directory.person_name(tid)} for tid in free]}
