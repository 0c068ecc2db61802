import logging
from fastapi import APIRouter, Depends, HTTPException, status

from quizplatform.config import TEST_PAYLOAD_LIMIT_BYTES
from quizplatform.deps import get_store, require_role, to_http
from quizplatform.routers.schemas import UpdateTestRequest
from quizplatform.services import test_groups
from quizplatform.services.errors import QuizError
from quizplatform.services.models import Identity, Role
from quizplatform.services.storage import DocumentStore

router = APIRouter(prefix="/api/admin/test", tags=["Admin Tests"])
verify_admin_access = require_role(Role.ADMIN)

# Set up logging (configure handlers/levels as needed)
logger = logging.getLogger("admin_test")
logger.setLevel(logging.INFO)


@router.patch("/{id}")
async def update_test(
    id: str,
    payload: UpdateTestRequest,
    admin: Identity = Depends(verify_admin_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        updated = await test_groups.update_test(
            store, admin, id, payload.model_dump(exclude_none=True), TEST_PAYLOAD_LIMIT_BYTES
        )
        return updated.model_dump(mode="json")
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error updating test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_UPDATE_TEST")


# ----------------------------
# Approve (all parts of a split test together)
# ----------------------------
@router.patch("/{id}/approve")
async def approve_test(
    id: str,
    admin: Identity = Depends(verify_admin_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        approved = await test_groups.approve_test(store, admin, id)
        return {"status": "success", "message": "Test approved", "test": approved.model_dump(mode="json")}
    except QuizError as e:
        logger.warning(f"Approval of test {id} rejected: {e.message}")
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error approving test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_APPROVE_TEST")


@router.delete("/{id}")
async def delete_test(
    id: str,
    admin: Identity = Depends(verify_admin_access),
    store: DocumentStore = Depends(get_store),
):
    try:
        deleted = await test_groups.delete_test(store, admin, id)
        logger.info(f"Admin {admin.id} deleted test {id} ({deleted} document(s))")
        return {"status": "success", "message": "Test deleted successfully", "deleted": deleted}
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error deleting test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_DELETE_TEST")
