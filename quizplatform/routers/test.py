import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from typing import Dict, Optional

from quizplatform.config import SUBMISSION_LIST_LIMIT
from quizplatform.deps import get_current_user, get_store, to_http
from quizplatform.services import submissions, test_groups
from quizplatform.services.errors import QuizError
from quizplatform.services.models import Identity, Role
from quizplatform.services.storage import DocumentStore

router = APIRouter(prefix="/api/test")

# Set up logging (configure handlers/levels as needed)
logger = logging.getLogger("test")
logger.setLevel(logging.INFO)


class SubmitAttemptRequest(BaseModel):
    # keyed by "<subject>_<question index>", e.g. "physics_0"
    answers: Dict[str, Optional[int]]


# ─────────────────────────────────────────────────────────
# GET /api/test/list  (chunk groups collapsed into one test)
# ─────────────────────────────────────────────────────────
@router.get("/list")
async def list_tests(
    user: Identity = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    try:
        tests = await test_groups.list_logical_tests(store, user)
        return {
            "status": "success",
            "tests": [test_groups.summary(t) for t in tests],
        }
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error listing tests: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_FETCH_TESTS")


# ─────────────────────────────────────────────────────────
# GET /api/test/submission/list
# ─────────────────────────────────────────────────────────
@router.get("/submission/list")
async def list_submissions(
    test_id: Optional[str] = Query(None),
    student_id: Optional[str] = Query(None),
    limit: int = Query(SUBMISSION_LIST_LIMIT, ge=1, le=1000),
    user: Identity = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    try:
        results = await submissions.list_submissions(
            store, user, test_id=test_id, student_id=student_id, limit=limit
        )
        return {"status": "success", "submissions": results}
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error listing submissions: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_FETCH_SUBMISSIONS")


# ─────────────────────────────────────────────────────────
# GET /api/test/submission/{id}
# ─────────────────────────────────────────────────────────
@router.get("/submission/{id}")
async def get_submission(
    id: str,
    user: Identity = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    try:
        submission = await submissions.get_submission(store, user, id)
        return {"status": "success", "submission": submission}
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error retrieving submission {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_FETCH_SUBMISSION")


# ─────────────────────────────────────────────────────────
# GET /api/test/{id}  (merged test; answers hidden from students)
# ─────────────────────────────────────────────────────────
@router.get("/{id}")
async def get_test(
    id: str,
    user: Identity = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    try:
        test = await test_groups.get_logical_test(store, user, id)
        if user.role == Role.STUDENT:
            return test_groups.student_view(test)
        return test.model_dump(mode="json")
    except QuizError as e:
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error fetching test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_FETCH_TEST")


# ----------------------------
# Student Submit Test Endpoint
# ----------------------------
@router.post("/{id}/submit", status_code=status.HTTP_201_CREATED)
async def submit_test(
    id: str,
    payload: SubmitAttemptRequest,
    user: Identity = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
):
    try:
        return await submissions.submit_attempt(store, user, id, payload.answers)
    except QuizError as e:
        logger.warning(f"Submission rejected for test {id}: {e.message}")
        raise to_http(e)
    except Exception as e:
        logger.error(f"Error submitting test {id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="FAILED_TO_SUBMIT_TEST")
