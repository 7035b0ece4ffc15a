"""Authentication schemas"""

from pydantic import BaseModel, Field

from yalla_admin.schemas.common import CamelModel


class AccessTokenPayload(BaseModel):
    """Access token payload (JWT claims)"""

    iss: str = Field(..., description="Issuer")
    aud: str = Field(..., description="Audience")
    sub: str = Field(..., description="Subject (admin user id)")
    exp: int = Field(..., description="Expiration time (Unix timestamp)")
    iat: int = Field(..., description="Issued at (Unix timestamp)")
    jti: str = Field(..., description="JWT ID (unique identifier)")
    type: str = "access"
    phone: str
    role: str
    company_id: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    is_headquarters: bool = False
    impersonated_by: str | None = None


class LoginRequest(CamelModel):
    phone: str = Field(..., min_length=1, max_length=32)
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(CamelModel):
    refresh_token: str | None = None


class ForgotPasswordRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=255)


class ResetPasswordRequest(CamelModel):
    token: str
    new_password: str


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


class UpdateProfileRequest(CamelModel):
    full_name: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = None
    email: str | None = None


class UserInfo(CamelModel):
    """Authenticated user with company and project context"""

    id: str
    full_name: str
    phone: str
    email: str | None = None
    role: str
    status: str
    company_id: str | None = None
    company_name: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    is_headquarters: bool = False
    permissions: list[str] = []
    impersonated_by: str | None = None


class LoginResponse(CamelModel):
    token: str
    refresh_token: str | None = None
    expires_at: int
    user: UserInfo


class CurrentUser(BaseModel):
    """Claims of the authenticated request"""

    user_id: str
    phone: str
    role: str
    company_id: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    is_headquarters: bool = False
    impersonated_by: str | None = None

    @property
    def is_impersonating(self) -> bool:
        return self.impersonated_by is not None
