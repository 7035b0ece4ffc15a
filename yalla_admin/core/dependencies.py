"""FastAPI dependencies"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.errors import ErrorCode, ForbiddenException, UnauthorizedException
from yalla_admin.models.database import get_db
from yalla_admin.models.enums import UserRole
from yalla_admin.schemas.auth import CurrentUser
from yalla_admin.services.token_service import token_service

ACCESS_TOKEN_COOKIE = "X-Access-Token"
REFRESH_TOKEN_COOKIE = "X-Refresh-Token"

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}
# Endpoints an impersonated (read-only) session may still call
READ_ONLY_ALLOWED_PATHS = ("/auth/stop-impersonation", "/auth/logout")

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]


def extract_access_token(request: Request) -> str | None:
    """Bearer token from the Authorization header, else the access token cookie"""
    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


async def get_current_user(request: Request) -> CurrentUser:
    """
    Resolve the authenticated user from the access token

    Impersonated sessions are read-only: mutating requests are rejected.

    Raises:
        UnauthorizedException: Missing, expired or invalid token
        ForbiddenException: Write attempt in an impersonated session
    """
    token = extract_access_token(request)
    if not token:
        raise UnauthorizedException(ErrorCode.AUTH_UNAUTHORIZED)

    payload = token_service.decode_access_token(token)
    user = CurrentUser(
        user_id=payload.sub,
        phone=payload.phone,
        role=payload.role,
        company_id=payload.company_id,
        project_id=payload.project_id,
        project_name=payload.project_name,
        is_headquarters=payload.is_headquarters,
        impersonated_by=payload.impersonated_by,
    )

    if (
        user.is_impersonating
        and request.method not in SAFE_METHODS
        and not request.url.path.endswith(READ_ONLY_ALLOWED_PATHS)
    ):
        raise ForbiddenException(ErrorCode.AUTH_READ_ONLY_SESSION)

    request.state.user_id = user.user_id
    return user


AuthUser = Annotated[CurrentUser, Depends(get_current_user)]


async def get_company_user(user: AuthUser) -> CurrentUser:
    """Authenticated user that belongs to a company"""
    if not user.company_id:
        raise ForbiddenException(ErrorCode.FORBIDDEN, "Пользователь не привязан к компании")
    return user


CompanyUser = Annotated[CurrentUser, Depends(get_company_user)]


def require_roles(*roles: UserRole):
    """Dependency factory that allows only the given roles"""
    allowed = {role.value for role in roles}

    async def dependency(user: AuthUser) -> CurrentUser:
        if user.role not in allowed:
            raise ForbiddenException(ErrorCode.AUTH_FORBIDDEN)
        return user

    return dependency


SuperAdmin = Annotated[CurrentUser, Depends(require_roles(UserRole.SUPER_ADMIN))]
CompanyAdmin = Annotated[CurrentUser, Depends(require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN))]


def get_client_ip(request: Request) -> str | None:
    """Get client IP address (X-Forwarded-For aware)"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else None


def scoped_project_id(user: CurrentUser, project_id: str | None = None) -> str | None:
    """
    Project a request works on

    Headquarters users may pick any project of the company (or none for the
    whole company); other users are pinned to their own project.
    """
    if user.is_headquarters or not user.project_id:
        return project_id
    return user.project_id


def ensure_project_access(user: CurrentUser, project_id: str) -> str:
    """
    Reject access to a project other than the user's own

    Raises:
        ForbiddenException: The user is pinned to another project
    """
    pinned = scoped_project_id(user, project_id)
    if pinned != project_id:
        raise ForbiddenException(ErrorCode.AUTH_FORBIDDEN, "Нет доступа к этому проекту")
    return project_id
