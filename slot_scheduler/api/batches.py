import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from slot_scheduler.api.common import build_assembler, error_detail, load_snapshot
from slot_scheduler.database import get_db
from slot_scheduler.exceptions import CorruptBatchError, StaleBatchError
from slot_scheduler.models.schemas import BatchDraft
from slot_scheduler.services.repository import BatchRepository, snapshot_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/batches", tags=["Batches"])


class CommitRequest(BaseModel):
    draft: BatchDraft
    snapshot_token: Optional[str] = None


@router.get("/")
async def list_batches(db: Session = Depends(get_db)):
    """
    Lists active batches together with the snapshot token a later commit
    should echo back.
    """
    batches = load_snapshot(db)
    return {
        "snapshot_token": snapshot_token(batches),
        "batches": [b.model_dump(mode="json") for b in batches],
    }


@router.get("/{batch_id}")
async def get_batch(batch_id: str, db: Session = Depends(get_db)):
    try:
        batch = BatchRepository(db).get_batch(batch_id)
    except CorruptBatchError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not batch:
        raise HTTPException(status_code=404, detail="Batch not found")
    return batch.model_dump(mode="json")


@router.delete("/{batch_id}")
async def delete_batch(batch_id: str, db: Session = Depends(get_db)):
    if not BatchRepository(db).delete_batch(batch_id):
        raise HTTPException(status_code=404, detail="Batch not found")
    return {"status": "deleted", "id": batch_id}


@router.post("/commit")
async def commit_batch(payload: CommitRequest, db: Session = Depends(get_db)):
    """
    Validates a finished draft against the current snapshot and saves it.

    Processing:
    - Rejects with 409 when the snapshot changed since the caller read it.
    - Runs the assembler's commit checks (422 on failure).
    - Saves with an optimistic version check (409 on a concurrent edit).
    """
    batches = load_snapshot(db)
    if payload.snapshot_token and payload.snapshot_token != snapshot_token(batches):
        raise HTTPException(status_code=409, detail="Batches changed since this draft was opened; reload and retry")

    assembler = build_assembler(db, batches)
    result = assembler.commit(payload.draft)
    if not result.ok:
        raise HTTPException(status_code=422, detail=error_detail(result.error, db, batches))

    batch = result.draft.batch
    try:
        saved = BatchRepository(db).save_batch(batch, expected_version=payload.draft.batch.version)
    except StaleBatchError as e:
        logger.warning("Commit of batch %s refused: %s", batch.id, e)
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "status": "success",
        "batch": saved.model_dump(mode="json"),
        "warnings": [w.model_dump(mode="json") for w in result.warnings],
    }
