import logging
from typing import Any, Dict, List, Mapping, Optional

from .chunker import merge_chunk_group
from .errors import AccessDeniedError, AlreadySubmittedError, NotFoundError, ValidationError
from .grader import can_view_answer_key, redact_for_student, score_submission
from .models import ComposedTest, Identity, Role
from .storage import DocumentStore
from .test_groups import can_read, resolve_group

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 200


async def submit_attempt(
    store: DocumentStore,
    identity: Identity,
    test_id: str,
    answers: Mapping[str, Any],
) -> Dict[str, Any]:
    """Score and store a student's only attempt at a test."""
    if identity.role != Role.STUDENT:
        raise AccessDeniedError("Only students can submit tests")
    if not isinstance(answers, Mapping):
        raise ValidationError("answers must be an object")

    test = merge_chunk_group(await resolve_group(store, test_id))
    if not can_read(identity, test):
        raise AccessDeniedError("Test is not available")

    existing = await store.find_submission({"test_id": test.id, "student_id": identity.id})
    if existing:
        raise AlreadySubmittedError("You have already submitted this test")

    scored = score_submission(test, answers)
    data = scored.model_dump(mode="json", exclude={"id", "submitted_at"})
    data["student_id"] = identity.id
    submission = await store.create_submission(data)
    logger.info(
        f"Student {identity.id} submitted test {test.id}: "
        f"{submission.total_score}/{submission.total_max_score} ({submission.percentage}%)"
    )
    return redact_for_student(submission, can_view_answer_key(submission, test))


async def _tests_by_id(store: DocumentStore, test_ids) -> Dict[str, Optional[ComposedTest]]:
    return {test_id: await store.find_test(test_id) for test_id in set(test_ids)}


async def list_submissions(
    store: DocumentStore,
    identity: Identity,
    test_id: Optional[str] = None,
    student_id: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, Any]]:
    where: Dict[str, Any] = {}

    if test_id:
        doc = await store.find_test(test_id)
        test_id = doc.root_id if doc else test_id

    if identity.role == Role.STUDENT:
        where["student_id"] = identity.id
    elif identity.role == Role.TEACHER:
        own = {d.root_id for d in await store.find_tests({"teacher_id": identity.id})}
        if test_id and test_id not in own:
            return []
        where["test_id"] = {"in": sorted(own)}
    elif student_id:
        where["student_id"] = student_id

    if test_id:
        where["test_id"] = test_id

    submissions = await store.find_submissions(where, limit=limit)
    if identity.role != Role.STUDENT:
        return [s.model_dump(mode="json") for s in submissions]

    tests = await _tests_by_id(store, [s.test_id for s in submissions])
    return [redact_for_student(s, can_view_answer_key(s, tests.get(s.test_id))) for s in submissions]


async def get_submission(store: DocumentStore, identity: Identity, submission_id: str) -> Dict[str, Any]:
    submission = await store.find_submission({"id": submission_id})
    if not submission:
        raise NotFoundError("Submission not found")

    if identity.role == Role.STUDENT:
        if submission.student_id != identity.id:
            raise AccessDeniedError("Access denied")
        test = await store.find_test(submission.test_id)
        return redact_for_student(submission, can_view_answer_key(submission, test))

    if identity.role == Role.TEACHER:
        test = await store.find_test(submission.test_id)
        if not test or test.teacher_id != identity.id:
            raise AccessDeniedError("Access denied")
    return submission.model_dump(mode="json")
