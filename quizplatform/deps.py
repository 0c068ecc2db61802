import logging
from fastapi import Depends, HTTPException, Security, status

from .auth.auth import VerifyToken
from .services.errors import QuizError
from .services.models import Identity, Role
from .services.storage import DocumentStore

logger = logging.getLogger("deps")
auth = VerifyToken()


def get_store() -> DocumentStore:
    # the Prisma client package is generated at build time (`prisma generate`)
    from .singleton import prisma
    from .store import PrismaStore
    return PrismaStore(prisma)


async def get_current_user(
    auth_result: dict = Security(auth.verify),
    store: DocumentStore = Depends(get_store),
) -> Identity:
    user = await store.find_user_by_auth0_id(auth_result["sub"])
    if not user:
        logger.warning(f"User not found in database: {auth_result['sub']}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="USER_NOT_FOUND")
    return user


def require_role(*roles: Role):
    """Dependency that admits only users with one of `roles`."""
    async def verify_role_access(user: Identity = Depends(get_current_user)) -> Identity:
        if user.role not in roles:
            logger.warning(f"User {user.id} ({user.role.value}) denied access, requires {[r.value for r in roles]}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user
    return verify_role_access


def to_http(error: QuizError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
