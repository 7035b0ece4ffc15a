"""Authentication endpoints"""

from fastapi import APIRouter, Request, Response

from yalla_admin.core.config import settings
from yalla_admin.core.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    AuthUser,
    DBSession,
    SuperAdmin,
    get_client_ip,
)
from yalla_admin.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserInfo,
)
from yalla_admin.schemas.common import MessageResponse
from yalla_admin.services.auth_service import auth_service

router = APIRouter()


def _set_auth_cookies(response: Response, login: LoginResponse) -> None:
    """Store both tokens in HttpOnly cookies"""
    cookie_options = {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": "lax",
        "path": "/",
    }
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        login.token,
        max_age=settings.jwt_expiration_hours * 3600,
        **cookie_options,
    )
    if login.refresh_token:
        response.set_cookie(
            REFRESH_TOKEN_COOKIE,
            login.refresh_token,
            max_age=settings.refresh_token_days * 86400,
            **cookie_options,
        )


def _clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE, path="/")
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path="/")


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, request: Request, response: Response, db: DBSession):
    """
    Log in with phone and password

    Tokens are returned in the body and set as HttpOnly cookies.
    """
    result = await auth_service.login(
        db,
        data.phone,
        data.password,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    _set_auth_cookies(response, result)
    return result


@router.post("/refresh", response_model=LoginResponse)
async def refresh(
    request: Request,
    response: Response,
    db: DBSession,
    data: RefreshRequest | None = None,
):
    """Rotate the refresh token; it may come from the body or the cookie"""
    token = (data.refresh_token if data else None) or request.cookies.get(REFRESH_TOKEN_COOKIE)
    result = await auth_service.refresh(
        db,
        token,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    _set_auth_cookies(response, result)
    return result


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    user: AuthUser,
    db: DBSession,
    data: RefreshRequest | None = None,
):
    token = (data.refresh_token if data else None) or request.cookies.get(REFRESH_TOKEN_COOKIE)
    await auth_service.logout(
        db,
        user.user_id,
        refresh_token=token,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    _clear_auth_cookies(response)
    return MessageResponse(message="Вы вышли из системы")


@router.get("/me", response_model=UserInfo)
async def me(user: AuthUser, db: DBSession):
    return await auth_service.get_user_info(db, user.user_id, impersonated_by=user.impersonated_by)


@router.put("/profile", response_model=UserInfo)
async def update_profile(data: UpdateProfileRequest, user: AuthUser, db: DBSession):
    return await auth_service.update_profile(db, user.user_id, data)


@router.post("/change-password", response_model=UserInfo)
async def change_password(data: ChangePasswordRequest, user: AuthUser, db: DBSession):
    return await auth_service.change_password(db, user.user_id, data.current_password, data.new_password)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(data: ForgotPasswordRequest, db: DBSession):
    return MessageResponse(message=await auth_service.forgot_password(db, data.email))


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(data: ResetPasswordRequest, db: DBSession):
    return MessageResponse(message=await auth_service.reset_password(db, data.token, data.new_password))


@router.post("/impersonate/{user_id}", response_model=LoginResponse)
async def impersonate(user_id: str, request: Request, response: Response, user: SuperAdmin, db: DBSession):
    """Log in as another user; the session is read-only"""
    result = await auth_service.impersonate(
        db,
        user,
        user_id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    _set_auth_cookies(response, result)
    return result


@router.post("/stop-impersonation", response_model=LoginResponse)
async def stop_impersonation(request: Request, response: Response, user: AuthUser, db: DBSession):
    result = await auth_service.stop_impersonation(
        db,
        user,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    _set_auth_cookies(response, result)
    return result
