"""FastAPI dependencies for authentication and authorization."""
import hmac
from collections.abc import Callable
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.config import get_settings
from teamdesk.core.database import get_db
from teamdesk.core.permissions import Permission, has_permission, role_satisfies
from teamdesk.core.security import decode_token
from teamdesk.models.enums import UserRole
from teamdesk.models.user import User
from teamdesk.services.event_dispatcher import EventDispatcher
from teamdesk.services.invitation_service import InvitationService
from teamdesk.services.notification_service import Notifier, get_notifier

# HTTP Bearer token security scheme
security = HTTPBearer()


def get_client_ip(request: Request) -> str | None:
    """Extract client IP address, preferring the first X-Forwarded-For hop."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from JWT token.

    Raises:
        HTTPException: 401 if token is invalid or user not found
        HTTPException: 403 if the account has been removed
    """
    payload = decode_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        ) from None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    return user


def require_role(required_role: UserRole) -> Callable:
    """Dependency factory for role checks.

    Uses the role superset table, so an owner passes every check and a
    super admin passes admin, manager and agent checks.

    Example:
        @router.patch("/tenants/me")
        async def update_tenant(user: User = Depends(require_role(UserRole.ADMIN))):
            ...
    """

    async def check_role(
        current_user: User = Depends(get_current_user),
    ) -> User:
        if not role_satisfies(current_user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Requires {required_role.value} role.",
            )
        return current_user

    return check_role


def require_admin() -> Callable:
    return require_role(UserRole.ADMIN)


def require_permission(permission: Permission) -> Callable:
    """Dependency factory for named permission checks."""

    async def check_permission(
        current_user: User = Depends(get_current_user),
    ) -> User:
        if not has_permission(current_user, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission.value}",
            )
        return current_user

    return check_permission


async def require_bootstrap_token(
    x_bootstrap_token: str | None = Header(default=None, alias="X-Bootstrap-Token"),
) -> None:
    """Guard tenant bootstrap behind the operator-held BOOTSTRAP_TOKEN."""
    expected = get_settings().bootstrap_token
    if not expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Bootstrap is disabled")
    if not x_bootstrap_token or not hmac.compare_digest(x_bootstrap_token, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid bootstrap token")


async def get_invitation_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> InvitationService:
    return InvitationService(db, notifier=notifier)


async def get_event_dispatcher(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> EventDispatcher:
    return EventDispatcher(db, ip_address=get_client_ip(request))
