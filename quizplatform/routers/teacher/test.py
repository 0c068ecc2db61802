import logging
from fastapi import APIRouter, Depends, HTTPException, status

from quizplatform.config import TEST_PAYLOAD_LIMIT_BYTES
from quizplatform.deps import get_store, require_role, to_http
from quizplatform.routers.schemas import ComposeChunkRequest, ComposeTestRequest, UpdateTestRequest
from quizplatform.services import test_groups
from quizplatform.services.errors import QuizError
from quizplatform.services.models import Identity, Role
from quizplatform.services.storage import DocumentStore

router = APIRouter(prefix="/api/teacher/test", tags=["Teacher Tests"])
verify_teacher_access = require_role(Role.TEACHER)

logger = logging.getLogger("teacher_test")
logger.setLevel(logging.INFO)


# ----------------------------
# Teacher Submit Test (always custom, goes to coordinator review)
# ----------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_test(
    payload: ComposeTestRequest,
    teacher: Identity = Depends(verify_teacher_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        created = await test_groups.create_composed_test(
            store, teacher, payload.model_dump(exclude_none=True), TEST_PAYLOAD_LIMIT_BYTES
        )
        logger.info(f"Teacher {teacher.id} submitted test {created[0].id} ({len(created)} part(s))")
        return {"status": "success", "tests": [t.model_dump(mode="json") for t in created]}
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error creating test: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_CREATE_TEST")


@router.post("/chunk", status_code=status.HTTP_201_CREATED)
async def create_test_chunk(
    payload: ComposeChunkRequest,
    teacher: Identity = Depends(verify_teacher_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        created = await test_groups.create_chunk_part(store, teacher, payload.model_dump(exclude_none=True))
        return created.model_dump(mode="json")
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error creating test chunk: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_CREATE_TEST")


# ----------------------------
# Teacher Edit / Resubmit
# ----------------------------
@router.patch("/{id}")
async def update_test(
    id: str,
    payload: UpdateTestRequest,
    teacher: Identity = Depends(verify_teacher_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        updated = await test_groups.update_test(
            store, teacher, id, payload.model_dump(exclude_none=True), TEST_PAYLOAD_LIMIT_BYTES
        )
        return updated.model_dump(mode="json")
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error updating test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_UPDATE_TEST")


@router.delete("/{id}")
async def delete_test(
    id: str,
    teacher: Identity = Depends(verify_teacher_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        deleted = await test_groups.delete_test(store, teacher, id)
        return {"status": "success", "message": "Test deleted successfully", "deleted": deleted}
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error deleting test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_DELETE_TEST")
