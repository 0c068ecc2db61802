"""
Prisma-backed DocumentStore (MongoDB datasource, see schema.prisma).
"""
import logging
from typing import Any, Dict, List, Optional

from prisma import errors as prisma_errors
from prisma.fields import Json
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .services.models import ComposedTest, Identity, Submission
from .services.storage import DocumentStore

logger = logging.getLogger(__name__)

# Transient failures only; constraint violations are answers, not outages.
transient_retry = retry(
    wait=wait_exponential(multiplier=1, min=4, max=10),
    stop=stop_after_attempt(3),
    retry=(
        retry_if_exception_type(prisma_errors.PrismaError)
        & retry_if_not_exception_type(
            (prisma_errors.UniqueViolationError, prisma_errors.RecordNotFoundError, prisma_errors.DataError)
        )
    ),
    reraise=True,
)

TEST_JSON_FIELDS = ("sections", "section_timings", "chunk_info")
SUBMISSION_JSON_FIELDS = ("answers", "section_results")
DRAFT_JSON_FIELDS = ("drafts", "draft_sync")


def _wrap_json(data: Dict[str, Any], fields) -> Dict[str, Any]:
    wrapped = dict(data)
    for field in fields:
        if field in wrapped and wrapped[field] is not None:
            wrapped[field] = Json(wrapped[field])
    return wrapped


class PrismaStore(DocumentStore):
    def __init__(self, client):
        self.client = client

    @transient_retry
    async def find_test(self, test_id: str) -> Optional[ComposedTest]:
        record = await self.client.test.find_unique(where={"id": test_id})
        return ComposedTest.model_validate(record.model_dump()) if record else None

    @transient_retry
    async def find_tests(self, where: Dict[str, Any]) -> List[ComposedTest]:
        records = await self.client.test.find_many(where=where, order={"created_at": "desc"})
        return [ComposedTest.model_validate(r.model_dump()) for r in records]

    @transient_retry
    async def create_test(self, data: Dict[str, Any]) -> ComposedTest:
        record = await self.client.test.create(data=_wrap_json(data, TEST_JSON_FIELDS))
        return ComposedTest.model_validate(record.model_dump())

    @transient_retry
    async def update_tests(self, ids: List[str], data: Dict[str, Any]) -> int:
        return await self.client.test.update_many(
            where={"id": {"in": ids}},
            data=_wrap_json(data, TEST_JSON_FIELDS),
        )

    @transient_retry
    async def delete_tests(self, ids: List[str]) -> int:
        return await self.client.test.delete_many(where={"id": {"in": ids}})

    @transient_retry
    async def find_submission(self, where: Dict[str, Any]) -> Optional[Submission]:
        record = await self.client.testsubmission.find_first(where=where)
        return Submission.model_validate(record.model_dump()) if record else None

    @transient_retry
    async def find_submissions(self, where: Dict[str, Any], limit: int = 200) -> List[Submission]:
        records = await self.client.testsubmission.find_many(
            where=where,
            order={"submitted_at": "desc"},
            take=limit,
        )
        return [Submission.model_validate(r.model_dump()) for r in records]

    @transient_retry
    async def create_submission(self, data: Dict[str, Any]) -> Submission:
        record = await self.client.testsubmission.create(data=_wrap_json(data, SUBMISSION_JSON_FIELDS))
        return Submission.model_validate(record.model_dump())

    @transient_retry
    async def find_user_by_auth0_id(self, auth0_id: str) -> Optional[Identity]:
        user = await self.client.user.find_first(where={"auth0_id": auth0_id})
        if not user:
            return None
        return Identity(
            id=user.id,
            role=user.role,
            approved=user.approved,
            course_id=user.course_id,
            assigned_subjects=user.assigned_subjects or [],
        )

    @transient_retry
    async def get_teacher_draft(self, teacher_id: str) -> Optional[Dict[str, Any]]:
        record = await self.client.teacherdraft.find_unique(where={"teacher_id": teacher_id})
        return record.model_dump() if record else None

    @transient_retry
    async def save_teacher_draft(self, teacher_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        wrapped = _wrap_json(data, DRAFT_JSON_FIELDS)
        record = await self.client.teacherdraft.upsert(
            where={"teacher_id": teacher_id},
            data={
                "create": {"teacher_id": teacher_id, "drafts": Json([]), **wrapped},
                "update": wrapped,
            },
        )
        return record.model_dump()
