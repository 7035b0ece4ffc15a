"""Pydantic schemas"""

from yalla_admin.schemas.auth import AccessTokenPayload, CurrentUser, LoginResponse, UserInfo
from yalla_admin.schemas.common import CamelModel, MessageResponse, Money, PagedResponse

__all__ = [
    # Common
    "CamelModel",
    "Money",
    "PagedResponse",
    "MessageResponse",
    # Auth
    "AccessTokenPayload",
    "CurrentUser",
    "LoginResponse",
    "UserInfo",
]
