import logging
from fastapi import APIRouter, Depends, HTTPException, status

from quizplatform.config import TEST_PAYLOAD_LIMIT_BYTES
from quizplatform.deps import get_store, require_role, to_http
from quizplatform.routers.schemas import (
    ComposeChunkRequest,
    ComposeTestRequest,
    ReviewRequest,
    UpdateTestRequest,
)
from quizplatform.services import test_groups
from quizplatform.services.errors import QuizError
from quizplatform.services.models import Identity, Role
from quizplatform.services.storage import DocumentStore

router = APIRouter(prefix="/api/coordinator/test", tags=["Coordinator Tests"])
verify_coordinator_access = require_role(Role.COORDINATOR)

logger = logging.getLogger("coordinator_test")
logger.setLevel(logging.INFO)


# ----------------------------
# Compose Test (split into parts when over the payload limit)
# ----------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_test(
    payload: ComposeTestRequest,
    coordinator: Identity = Depends(verify_coordinator_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        created = await test_groups.create_composed_test(
            store, coordinator, payload.model_dump(exclude_none=True), TEST_PAYLOAD_LIMIT_BYTES
        )
        message = (
            f"Test created successfully in {len(created)} parts and sent for approval"
            if len(created) > 1 else "Test created successfully and sent for approval"
        )
        return {"status": "success", "message": message, "tests": [t.model_dump(mode="json") for t in created]}
    except QuizError as e:
        logger.warning(f"Test composition rejected: {e.message}")
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error creating test: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_CREATE_TEST")


@router.post("/chunk", status_code=status.HTTP_201_CREATED)
async def create_test_chunk(
    payload: ComposeChunkRequest,
    coordinator: Identity = Depends(verify_coordinator_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        created = await test_groups.create_chunk_part(store, coordinator, payload.model_dump(exclude_none=True))
        return created.model_dump(mode="json")
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error creating test chunk: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_CREATE_TEST")


# ----------------------------
# Edit, activation and answer key toggles
# ----------------------------
@router.patch("/{id}")
async def update_test(
    id: str,
    payload: UpdateTestRequest,
    coordinator: Identity = Depends(verify_coordinator_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        updated = await test_groups.update_test(
            store, coordinator, id, payload.model_dump(exclude_none=True), TEST_PAYLOAD_LIMIT_BYTES
        )
        return updated.model_dump(mode="json")
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error updating test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_UPDATE_TEST")


# ----------------------------
# Review a teacher submission
# ----------------------------
@router.patch("/{id}/review")
async def review_test(
    id: str,
    payload: ReviewRequest,
    coordinator: Identity = Depends(verify_coordinator_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        reviewed = await test_groups.review_teacher_submission(
            store, coordinator, id, payload.decision, payload.comment
        )
        return reviewed.model_dump(mode="json")
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error reviewing test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_REVIEW_TEST")


@router.delete("/{id}")
async def delete_test(
    id: str,
    coordinator: Identity = Depends(verify_coordinator_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        deleted = await test_groups.delete_test(store, coordinator, id)
        return {"status": "success", "message": "Test deleted successfully", "deleted": deleted}
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error deleting test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_DELETE_TEST")
