"""Authentication service: login, token rotation, passwords and impersonation"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger, settings
from yalla_admin.core.errors import (
    ConflictException,
    ErrorCode,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from yalla_admin.models.company import Company, Project
from yalla_admin.models.enums import AVAILABLE_ROUTES, UserRole, UserStatus
from yalla_admin.models.user import AdminUser, RefreshToken
from yalla_admin.schemas.auth import CurrentUser, LoginResponse, UpdateProfileRequest, UserInfo
from yalla_admin.services.audit_service import AuditAction, audit_service
from yalla_admin.services.rate_limiter import rate_limiter
from yalla_admin.services.token_service import token_service
from yalla_admin.utils.crypto import generate_refresh_token, hash_password, hash_token, verify_password
from yalla_admin.utils.validators import normalize_phone, validate_email, validate_password

FORGOT_PASSWORD_MESSAGE = "Если email существует, мы отправили инструкцию по сбросу"


class AuthService:
    """Service for authentication flows"""

    async def login(
        self,
        db: AsyncSession,
        phone: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResponse:
        """
        Authenticate an admin user by phone and password

        Args:
            db: Database session
            phone: Phone number
            password: Plain text password
            ip_address: Client IP address
            user_agent: Client user agent

        Returns:
            Access token, refresh token and user info

        Raises:
            UnauthorizedException: Invalid credentials or deleted account
            ForbiddenException: Blocked user or too many failed attempts
        """
        phone = normalize_phone(phone)
        client_ip = ip_address or "unknown"

        is_locked, reason = await rate_limiter.is_locked_out(phone, client_ip)
        if is_locked:
            logger.warning(f"Login locked out: {reason}")
            await audit_service.log_event(
                db,
                AuditAction.LOGIN_FAILED,
                success=False,
                new_values={"phone": phone, "reason": "locked_out"},
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise ForbiddenException(ErrorCode.AUTH_TOO_MANY_ATTEMPTS)

        result = await db.execute(select(AdminUser).where(AdminUser.phone == phone))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            await rate_limiter.record_failed_login(phone, client_ip)
            await audit_service.log_event(
                db,
                AuditAction.LOGIN_FAILED,
                success=False,
                user_id=user.id if user else None,
                new_values={"phone": phone, "reason": "invalid_credentials"},
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise UnauthorizedException(ErrorCode.AUTH_INVALID_CREDENTIALS)

        if user.is_deleted:
            await audit_service.log_event(
                db,
                AuditAction.LOGIN_FAILED,
                success=False,
                user_id=user.id,
                new_values={"reason": "deleted"},
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise UnauthorizedException(ErrorCode.AUTH_USER_DELETED)

        if user.status == UserStatus.BLOCKED.value:
            await audit_service.log_event(
                db,
                AuditAction.LOGIN_FAILED,
                success=False,
                user_id=user.id,
                new_values={"reason": "blocked"},
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise ForbiddenException(ErrorCode.AUTH_USER_BLOCKED)

        await rate_limiter.reset_failed_logins(phone, client_ip)
        user.last_login_at = datetime.now(timezone.utc)

        response = await self._issue_tokens(db, user, ip_address, user_agent)
        await audit_service.log_event(
            db,
            AuditAction.LOGIN,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"User logged in: {user.id}", extra={"user_id": user.id, "role": user.role})
        return response

    async def refresh(
        self,
        db: AsyncSession,
        refresh_token: str | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResponse:
        """
        Exchange a refresh token for a new token pair (the old token is revoked)

        Raises:
            UnauthorizedException: If the token is unknown, expired or revoked
        """
        if not refresh_token:
            raise UnauthorizedException(ErrorCode.AUTH_REFRESH_TOKEN_INVALID)

        result = await db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == hash_token(refresh_token))
        )
        stored = result.scalar_one_or_none()
        if stored is None:
            raise UnauthorizedException(ErrorCode.AUTH_REFRESH_TOKEN_INVALID)
        if not stored.is_valid:
            raise UnauthorizedException(
                ErrorCode.AUTH_REFRESH_TOKEN_INVALID,
                "Refresh token истек или был отозван",
            )

        user = await db.get(AdminUser, stored.user_id)
        if user is None or user.is_deleted or user.status == UserStatus.BLOCKED.value:
            raise UnauthorizedException(ErrorCode.AUTH_REFRESH_TOKEN_INVALID, "Пользователь недоступен")

        stored.revoked_at = datetime.now(timezone.utc)
        response = await self._issue_tokens(db, user, ip_address, user_agent)
        logger.info(f"Refresh token rotated for user {user.id}")
        return response

    async def logout(
        self,
        db: AsyncSession,
        user_id: str,
        refresh_token: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Revoke the given refresh token (or every token of the user)"""
        query = update(RefreshToken).where(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
        )
        if refresh_token:
            query = query.where(RefreshToken.token_hash == hash_token(refresh_token))
        await db.execute(query.values(revoked_at=datetime.now(timezone.utc)))
        await audit_service.log_event(
            db,
            AuditAction.LOGOUT,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    async def forgot_password(self, db: AsyncSession, email: str) -> str:
        """
        Start the password reset flow

        The response never reveals whether the email exists. The reset link
        is written to the log until an email provider is connected.
        """
        result = await db.execute(
            select(AdminUser).where(AdminUser.email == email.strip().lower(), AdminUser.deleted_at.is_(None))
        )
        user = result.scalar_one_or_none()
        if user is not None:
            reset_token = token_service.create_reset_token(user)
            logger.info(
                f"Password reset requested for user {user.id}",
                extra={"user_id": user.id, "reset_link": f"{settings.frontend_url}/reset-password?token={reset_token}"},
            )
        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(self, db: AsyncSession, token: str, new_password: str) -> str:
        """
        Set a new password using a reset token

        Raises:
            ValidationException: Weak password
            UnauthorizedException: Invalid or expired token
        """
        self._check_password_strength(new_password)
        claims = token_service.decode_reset_token(token)

        user = await db.get(AdminUser, claims["sub"])
        if user is None or user.is_deleted or claims.get("pwd") != user.password_hash[-12:]:
            raise UnauthorizedException(ErrorCode.AUTH_RESET_TOKEN_INVALID)

        user.password_hash = hash_password(new_password)
        if user.status == UserStatus.INACTIVE.value:
            user.status = UserStatus.ACTIVE.value
        await self._revoke_all_tokens(db, user.id)
        await audit_service.log_event(db, AuditAction.PASSWORD_RESET, user_id=user.id)
        return "Пароль успешно обновлен"

    async def change_password(
        self,
        db: AsyncSession,
        user_id: str,
        current_password: str,
        new_password: str,
    ) -> UserInfo:
        """
        Change the password of the authenticated user and revoke all sessions

        Raises:
            ValidationException: Weak password
            UnauthorizedException: Wrong current password
        """
        user = await self._get_active_user(db, user_id)
        self._check_password_strength(new_password)
        if not verify_password(current_password, user.password_hash):
            raise UnauthorizedException(ErrorCode.AUTH_PASSWORD_INCORRECT)

        user.password_hash = hash_password(new_password)
        if user.status == UserStatus.INACTIVE.value:
            user.status = UserStatus.ACTIVE.value
        await self._revoke_all_tokens(db, user.id)
        await audit_service.log_event(db, AuditAction.PASSWORD_CHANGE, user_id=user.id)
        return await self.get_user_info(db, user.id)

    async def get_user_info(
        self,
        db: AsyncSession,
        user_id: str,
        impersonated_by: str | None = None,
    ) -> UserInfo:
        """Current user with company and project names"""
        user = await self._get_active_user(db, user_id)
        company = await db.get(Company, user.company_id) if user.company_id else None
        project = await db.get(Project, user.project_id) if user.project_id else None
        return UserInfo(
            id=user.id,
            full_name=user.full_name,
            phone=user.phone,
            email=user.email,
            role=user.role,
            status=user.status,
            company_id=user.company_id,
            company_name=company.name if company else None,
            project_id=user.project_id,
            project_name=project.name if project else None,
            is_headquarters=bool(project.is_headquarters) if project else False,
            permissions=self.effective_permissions(user),
            impersonated_by=impersonated_by,
        )

    async def update_profile(
        self,
        db: AsyncSession,
        user_id: str,
        data: UpdateProfileRequest,
    ) -> UserInfo:
        """
        Update own name, phone or email

        Raises:
            ConflictException: If the phone belongs to another user
            ValidationException: If the email is malformed
        """
        user = await self._get_active_user(db, user_id)

        if data.phone is not None:
            phone = normalize_phone(data.phone)
            if phone != user.phone:
                result = await db.execute(
                    select(AdminUser.id).where(AdminUser.phone == phone, AdminUser.id != user.id)
                )
                if result.first() is not None:
                    raise ConflictException(
                        ErrorCode.USER_PHONE_EXISTS,
                        "Телефон уже используется другим пользователем",
                    )
                user.phone = phone

        if data.email is not None:
            email = data.email.strip().lower() or None
            if email:
                is_valid, error = validate_email(email)
                if not is_valid:
                    raise ValidationException(ErrorCode.VALIDATION_ERROR, error)
            user.email = email

        if data.full_name is not None:
            user.full_name = data.full_name.strip()

        await db.commit()
        return await self.get_user_info(db, user.id)

    async def impersonate(
        self,
        db: AsyncSession,
        current: CurrentUser,
        target_user_id: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResponse:
        """
        Issue a read-only access token for another user (SUPER_ADMIN only)

        Raises:
            ForbiddenException: Caller is not a super admin or target is blocked
            NotFoundException: Target user does not exist
        """
        if current.role != UserRole.SUPER_ADMIN.value or current.is_impersonating:
            raise ForbiddenException(ErrorCode.AUTH_IMPERSONATION_NOT_ALLOWED)

        target = await db.get(AdminUser, target_user_id)
        if target is None or target.is_deleted:
            raise NotFoundException(ErrorCode.USER_NOT_FOUND)
        if target.status == UserStatus.BLOCKED.value:
            raise ForbiddenException(
                ErrorCode.AUTH_IMPERSONATION_NOT_ALLOWED,
                "Невозможно войти под заблокированным пользователем",
            )

        project = await db.get(Project, target.project_id) if target.project_id else None
        token, payload = token_service.create_access_token(
            target,
            project=project,
            impersonated_by=current.user_id,
        )
        await audit_service.log_event(
            db,
            AuditAction.IMPERSONATE,
            user_id=current.user_id,
            entity_type="AdminUser",
            entity_id=target.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.warning(f"Super admin {current.user_id} impersonates user {target.id}")
        return LoginResponse(
            token=token,
            expires_at=payload.exp * 1000,
            user=await self.get_user_info(db, target.id, impersonated_by=current.user_id),
        )

    async def stop_impersonation(
        self,
        db: AsyncSession,
        current: CurrentUser,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResponse:
        """Return to the super admin's own session"""
        if not current.is_impersonating:
            raise ValidationException(ErrorCode.VALIDATION_ERROR, "Сессия не является входом под другим пользователем")

        admin = await self._get_active_user(db, current.impersonated_by)
        await audit_service.log_event(
            db,
            AuditAction.STOP_IMPERSONATION,
            user_id=admin.id,
            entity_type="AdminUser",
            entity_id=current.user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return await self._issue_tokens(db, admin, ip_address, user_agent)

    @staticmethod
    def effective_permissions(user: AdminUser) -> list[str]:
        """Admins see every section, managers only granted ones"""
        if user.role in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value):
            return list(AVAILABLE_ROUTES)
        return user.routes

    async def _issue_tokens(
        self,
        db: AsyncSession,
        user: AdminUser,
        ip_address: str | None,
        user_agent: str | None,
    ) -> LoginResponse:
        project = await db.get(Project, user.project_id) if user.project_id else None
        access_token, payload = token_service.create_access_token(user, project=project)

        refresh_token = generate_refresh_token()
        db.add(
            RefreshToken(
                user_id=user.id,
                token_hash=hash_token(refresh_token),
                expires_at=datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_days),
                ip_address=ip_address,
                device_info=user_agent,
            )
        )
        await db.commit()

        return LoginResponse(
            token=access_token,
            refresh_token=refresh_token,
            expires_at=payload.exp * 1000,
            user=await self.get_user_info(db, user.id),
        )

    async def _get_active_user(self, db: AsyncSession, user_id: str | None) -> AdminUser:
        user = await db.get(AdminUser, user_id) if user_id else None
        if user is None or user.is_deleted:
            raise NotFoundException(ErrorCode.USER_NOT_FOUND)
        return user

    async def _revoke_all_tokens(self, db: AsyncSession, user_id: str) -> None:
        await db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=datetime.now(timezone.utc))
        )

    @staticmethod
    def _check_password_strength(password: str) -> None:
        errors = validate_password(password)
        if errors:
            raise ValidationException(
                ErrorCode.AUTH_PASSWORD_WEAK,
                details={"errors": errors},
            )


# Global instance
auth_service = AuthService()
