from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import ComposedTest, Identity, Submission


class DocumentStore(ABC):
    """
    What the services need from persistence.

    `where` filters use Prisma's shape: `{"field": value}` or
    `{"field": {"in": [...]}}`. Writes touching several documents are separate
    document writes, not a transaction.
    """

    @abstractmethod
    async def find_test(self, test_id: str) -> Optional[ComposedTest]: ...

    @abstractmethod
    async def find_tests(self, where: Dict[str, Any]) -> List[ComposedTest]: ...

    async def find_chunk_children(self, root_id: str) -> List[ComposedTest]:
        return await self.find_tests({"parent_test_id": root_id})

    @abstractmethod
    async def create_test(self, data: Dict[str, Any]) -> ComposedTest: ...

    @abstractmethod
    async def update_tests(self, ids: List[str], data: Dict[str, Any]) -> int: ...

    @abstractmethod
    async def delete_tests(self, ids: List[str]) -> int: ...

    @abstractmethod
    async def find_submission(self, where: Dict[str, Any]) -> Optional[Submission]: ...

    @abstractmethod
    async def find_submissions(self, where: Dict[str, Any], limit: int = 200) -> List[Submission]: ...

    @abstractmethod
    async def create_submission(self, data: Dict[str, Any]) -> Submission: ...

    @abstractmethod
    async def find_user_by_auth0_id(self, auth0_id: str) -> Optional[Identity]: ...

    @abstractmethod
    async def get_teacher_draft(self, teacher_id: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    async def save_teacher_draft(self, teacher_id: str, data: Dict[str, Any]) -> Dict[str, Any]: ...
