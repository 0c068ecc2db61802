import asyncio
import copy
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from quizplatform.deps import get_current_user, get_store
from quizplatform.routers import health, test as test_routes
from quizplatform.routers.admin import test as admin_test
from quizplatform.routers.coordinator import test as coordinator_test
from quizplatform.routers.teacher import drafts as teacher_drafts, test as teacher_test
from quizplatform.services.models import ComposedTest, Identity, Role, Submission
from quizplatform.services.storage import DocumentStore

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _matches(doc: Dict[str, Any], where: Dict[str, Any]) -> bool:
    for key, expected in where.items():
        if isinstance(expected, dict) and "in" in expected:
            if doc.get(key) not in expected["in"]:
                return False
        elif doc.get(key) != expected:
            return False
    return True


class MemoryStore(DocumentStore):
    """Dict-backed store with the same filter shape as the Prisma one."""

    def __init__(self):
        self.tests: Dict[str, Dict[str, Any]] = {}
        self.submissions: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Identity] = {}
        self.drafts: Dict[str, Dict[str, Any]] = {}
        self.update_calls: List[List[str]] = []
        self._ids = itertools.count(1)

    def _next(self, prefix: str):
        n = next(self._ids)
        return f"{prefix}{n}", EPOCH + timedelta(seconds=n)

    async def find_test(self, test_id: str) -> Optional[ComposedTest]:
        doc = self.tests.get(test_id)
        return ComposedTest.model_validate(copy.deepcopy(doc)) if doc else None

    async def find_tests(self, where: Dict[str, Any]) -> List[ComposedTest]:
        docs = [d for d in self.tests.values() if _matches(d, where)]
        docs.sort(key=lambda d: d["created_at"], reverse=True)
        return [ComposedTest.model_validate(copy.deepcopy(d)) for d in docs]

    async def create_test(self, data: Dict[str, Any]) -> ComposedTest:
        test_id, now = self._next("t")
        doc = {**copy.deepcopy(data), "id": test_id, "created_at": now, "updated_at": now}
        self.tests[test_id] = doc
        return ComposedTest.model_validate(copy.deepcopy(doc))

    async def update_tests(self, ids: List[str], data: Dict[str, Any]) -> int:
        self.update_calls.append(list(ids))
        count = 0
        for test_id in ids:
            if test_id in self.tests:
                self.tests[test_id].update(copy.deepcopy(data))
                count += 1
        return count

    async def delete_tests(self, ids: List[str]) -> int:
        return sum(1 for test_id in ids if self.tests.pop(test_id, None) is not None)

    async def find_submission(self, where: Dict[str, Any]) -> Optional[Submission]:
        for doc in self.submissions.values():
            if _matches(doc, where):
                return Submission.model_validate(copy.deepcopy(doc))
        return None

    async def find_submissions(self, where: Dict[str, Any], limit: int = 200) -> List[Submission]:
        docs = [d for d in self.submissions.values() if _matches(d, where)]
        docs.sort(key=lambda d: d["submitted_at"], reverse=True)
        return [Submission.model_validate(copy.deepcopy(d)) for d in docs[:limit]]

    async def create_submission(self, data: Dict[str, Any]) -> Submission:
        submission_id, now = self._next("s")
        doc = {**copy.deepcopy(data), "id": submission_id, "submitted_at": now}
        self.submissions[submission_id] = doc
        return Submission.model_validate(copy.deepcopy(doc))

    async def find_user_by_auth0_id(self, auth0_id: str) -> Optional[Identity]:
        return self.users.get(auth0_id)

    async def get_teacher_draft(self, teacher_id: str) -> Optional[Dict[str, Any]]:
        record = self.drafts.get(teacher_id)
        return copy.deepcopy(record) if record else None

    async def save_teacher_draft(self, teacher_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        _, now = self._next("d")
        record = self.drafts.setdefault(teacher_id, {"teacher_id": teacher_id, "drafts": [], "draft_sync": None})
        record.update(copy.deepcopy(data))
        record["updated_at"] = now
        return copy.deepcopy(record)


# ----------------------------
# Builders
# ----------------------------

def question(correct: int = 0, text: str = "What is it?", options=("A", "B", "C", "D"), **extra) -> Dict[str, Any]:
    return {"text": text, "options": list(options), "correct_index": correct, **extra}


def section(subject: str, count: int = 2, correct: int = 0, **extra) -> Dict[str, Any]:
    return {
        "subject": subject,
        "questions": [question(correct, text=f"{subject} question {i}") for i in range(count)],
        **extra,
    }


def composition(*subjects: str, test_type: str = "custom", count: int = 2, **extra) -> Dict[str, Any]:
    return {
        "title": "Weekly Test",
        "course_id": "course-1",
        "test_type": test_type,
        "sections": [section(s, count) for s in subjects],
        **extra,
    }


def identity(role: Role, user_id: Optional[str] = None, **extra) -> Identity:
    return Identity(id=user_id or f"{role.value}-1", role=role, approved=extra.pop("approved", True), **extra)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(store):
    app = FastAPI()
    for module in (health, test_routes, teacher_test, teacher_drafts, coordinator_test, admin_test):
        app.include_router(module.router)
    app.dependency_overrides[get_store] = lambda: store
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def login(app):
    """Make every following request come from `user`."""
    def _login(user: Identity) -> Identity:
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    return _login
