"""Token service for JWT operations"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from yalla_admin.core.config import logger, settings
from yalla_admin.core.errors import ErrorCode, UnauthorizedException
from yalla_admin.models.company import Project
from yalla_admin.models.user import AdminUser
from yalla_admin.schemas.auth import AccessTokenPayload

RESET_TOKEN_TYPE = "password_reset"


class TokenService:
    """Service for creating and validating HS256 JWT tokens"""

    def __init__(self):
        self.algorithm = settings.jwt_algorithm

    def create_access_token(
        self,
        user: AdminUser,
        project: Project | None = None,
        impersonated_by: str | None = None,
        lifetime: timedelta | None = None,
    ) -> tuple[str, AccessTokenPayload]:
        """
        Create an access token

        Args:
            user: Authenticated admin user (subject)
            project: User's project, adds project claims
            impersonated_by: Id of the super admin acting as the user
            lifetime: Token lifetime (default from settings)

        Returns:
            Tuple of (token string, payload)
        """
        if lifetime is None:
            lifetime = timedelta(hours=settings.jwt_expiration_hours)

        now = datetime.now(timezone.utc)
        payload = AccessTokenPayload(
            iss=settings.jwt_issuer,
            aud=settings.jwt_audience,
            sub=user.id,
            exp=int((now + lifetime).timestamp()),
            iat=int(now.timestamp()),
            jti=str(uuid.uuid4()),
            phone=user.phone,
            role=user.role,
            company_id=user.company_id,
            project_id=project.id if project else user.project_id,
            project_name=project.name if project else None,
            is_headquarters=bool(project.is_headquarters) if project else False,
            impersonated_by=impersonated_by,
        )

        token = jwt.encode(
            payload.model_dump(exclude_none=True),
            settings.jwt_secret,
            algorithm=self.algorithm,
        )
        return token, payload

    def decode_access_token(self, token: str) -> AccessTokenPayload:
        """
        Decode and validate an access token

        Args:
            token: JWT string

        Returns:
            Validated payload

        Raises:
            UnauthorizedException: If the token is expired or invalid
        """
        try:
            claims = jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[self.algorithm],
                audience=settings.jwt_audience,
                issuer=settings.jwt_issuer,
            )
        except ExpiredSignatureError:
            raise UnauthorizedException(ErrorCode.AUTH_TOKEN_EXPIRED)
        except JWTError as e:
            logger.debug(f"Access token rejected: {e}")
            raise UnauthorizedException(ErrorCode.AUTH_TOKEN_INVALID)

        if claims.get("type") != "access":
            raise UnauthorizedException(ErrorCode.AUTH_TOKEN_INVALID)
        return AccessTokenPayload(**claims)

    def create_reset_token(self, user: AdminUser) -> str:
        """Create a short-lived password reset token"""
        now = datetime.now(timezone.utc)
        claims = {
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "sub": user.id,
            "type": RESET_TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=settings.password_reset_minutes)).timestamp()),
            # Token becomes invalid once the password changes
            "pwd": user.password_hash[-12:],
        }
        return jwt.encode(claims, settings.jwt_secret, algorithm=self.algorithm)

    def decode_reset_token(self, token: str) -> dict:
        """
        Decode a password reset token

        Raises:
            UnauthorizedException: If the token is invalid or expired
        """
        try:
            claims = jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[self.algorithm],
                audience=settings.jwt_audience,
                issuer=settings.jwt_issuer,
            )
        except JWTError:
            raise UnauthorizedException(ErrorCode.AUTH_RESET_TOKEN_INVALID)

        if claims.get("type") != RESET_TOKEN_TYPE:
            raise UnauthorizedException(ErrorCode.AUTH_RESET_TOKEN_INVALID)
        return claims


# Global instance
token_service = TokenService()
