import logging
from fastapi import APIRouter, Depends, HTTPException, status

from quizplatform.deps import get_store, require_role, to_http
from quizplatform.routers.schemas import DraftSyncRequest
from quizplatform.services import drafts as draft_sync
from quizplatform.services.errors import QuizError, ValidationError
from quizplatform.services.models import Identity, Role
from quizplatform.services.storage import DocumentStore

router = APIRouter(prefix="/api/teacher/drafts", tags=["Teacher Drafts"])
verify_teacher_access = require_role(Role.TEACHER)

logger = logging.getLogger("teacher_drafts")
logger.setLevel(logging.INFO)


def _drafts_of(record) -> list:
    drafts = (record or {}).get("drafts")
    return drafts if isinstance(drafts, list) else []


@router.get("")
async def get_drafts(
    teacher: Identity = Depends(verify_teacher_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        saved = await store.get_teacher_draft(teacher.id)
        return {"drafts": _drafts_of(saved)}
    except Exception as e:
        logger.error(f"Error fetching drafts for teacher {teacher.id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_FETCH_DRAFTS")


@router.put("")
async def sync_drafts(
    payload: DraftSyncRequest,
    teacher: Identity = Depends(verify_teacher_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        if payload.mode == "full":
            if payload.drafts is None:
                raise ValidationError("drafts must be an array")
            saved = await store.save_teacher_draft(teacher.id, {"drafts": payload.drafts, "draft_sync": None})
            return {"message": "Drafts synced", "drafts": _drafts_of(saved), "updated_at": saved.get("updated_at")}

        if payload.mode == "chunk_init":
            state = draft_sync.start_sync(payload.session_id, payload.total_chunks)
            await store.save_teacher_draft(teacher.id, {"draft_sync": state})
            return {"message": "Draft sync session initialized"}

        if payload.mode == "chunk_part":
            saved = await store.get_teacher_draft(teacher.id)
            state = draft_sync.add_chunk(
                (saved or {}).get("draft_sync"),
                payload.session_id,
                payload.chunk_index,
                payload.total_chunks,
                payload.drafts,
            )
            await store.save_teacher_draft(teacher.id, {"draft_sync": state})
            return {
                "message": "Draft chunk received",
                "received_chunks": len(state["chunks"]),
                "total_chunks": state["total_chunks"],
            }

        if payload.mode == "chunk_finalize":
            saved = await store.get_teacher_draft(teacher.id)
            merged = draft_sync.finalize_sync((saved or {}).get("draft_sync"), payload.session_id)
            saved = await store.save_teacher_draft(teacher.id, {"drafts": merged, "draft_sync": None})
            logger.info(f"Teacher {teacher.id} finalized draft sync with {len(merged)} drafts")
            return {"message": "Draft sync finalized", "drafts": _drafts_of(saved), "updated_at": saved.get("updated_at")}

        raise ValidationError("Invalid mode")
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error syncing drafts for teacher {teacher.id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_SYNC_DRAFTS")
