"""Admin user management service"""

import secrets
from datetime import datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import (
    BusinessRuleException,
    ConflictException,
    ErrorCode,
    FieldError,
    ForbiddenException,
    MultiValidationException,
    NotFoundException,
    ValidationException,
)
from yalla_admin.models.company import Company
from yalla_admin.models.enums import AVAILABLE_ROUTES, ROLE_NAMES, UserRole, UserStatus
from yalla_admin.models.user import AdminUser, UserPermission
from yalla_admin.schemas.auth import CurrentUser
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.user import OptionItem, UserCreate, UserResponse, UserUpdate
from yalla_admin.services.audit_service import AuditAction, audit_service
from yalla_admin.services.queries import get_company_project, like_pattern, paginate
from yalla_admin.utils.crypto import hash_password
from yalla_admin.utils.validators import normalize_phone, validate_email, validate_password, validate_phone

ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)
# Rank used to detect a role downgrade
ROLE_RANK = {UserRole.MANAGER.value: 0, UserRole.ADMIN.value: 1, UserRole.SUPER_ADMIN.value: 2}


def sanitize_permissions(role: str, permissions: list[str] | None) -> list[str]:
    """
    Routes a user of the role may be granted

    Admins always get every section. Managers keep only known routes, without
    duplicates and without user management.
    """
    if role in ADMIN_ROLES:
        return list(AVAILABLE_ROUTES)
    result = []
    for route in permissions or []:
        if route in AVAILABLE_ROUTES and route != "users" and route not in result:
            result.append(route)
    return result


class UserService:
    """Dashboard users of a company"""

    async def list_users(
        self,
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        role: str | None = None,
        status: str | None = None,
    ) -> PagedResponse[UserResponse]:
        query = select(AdminUser).where(AdminUser.company_id == company_id, AdminUser.deleted_at.is_(None))
        if search:
            pattern = like_pattern(search)
            query = query.where(
                or_(
                    AdminUser.full_name.ilike(pattern),
                    AdminUser.phone.ilike(pattern),
                    AdminUser.email.ilike(pattern),
                )
            )
        if role:
            query = query.where(AdminUser.role == role.upper())
        if status:
            query = query.where(AdminUser.status == status)

        rows, total = await paginate(db, query.order_by(AdminUser.created_at.desc()), page, page_size)
        return PagedResponse.build([self._to_response(user) for user in rows], total, page, page_size)

    async def get_user(self, db: AsyncSession, company_id: str, user_id: str) -> UserResponse:
        return self._to_response(await self._get(db, company_id, user_id))

    async def create_user(
        self,
        db: AsyncSession,
        current: CurrentUser,
        data: UserCreate,
    ) -> UserResponse:
        """
        Create a dashboard user in the caller's company

        A password is generated when none is given.

        Raises:
            ForbiddenException: Attempt to create a SUPER_ADMIN
            MultiValidationException: Invalid fields
            ConflictException: USER_PHONE_EXISTS, USER_PHONE_DELETED
        """
        role = data.role.upper()
        if role == UserRole.SUPER_ADMIN.value or role not in ROLE_NAMES:
            raise ForbiddenException(ErrorCode.AUTH_FORBIDDEN, "Недопустимая роль пользователя")

        errors = self._validate_contacts(data.phone, data.email)
        password = data.password or secrets.token_urlsafe(12)
        if data.password:
            for message in validate_password(data.password):
                errors.append(FieldError("password", ErrorCode.AUTH_PASSWORD_WEAK, message))
        if errors:
            raise MultiValidationException(errors)

        phone = normalize_phone(data.phone)
        await self._ensure_phone_free(db, phone)
        if data.project_id:
            await get_company_project(db, current.company_id, data.project_id)

        user = AdminUser(
            company_id=current.company_id,
            project_id=data.project_id,
            full_name=data.full_name.strip(),
            phone=phone,
            email=data.email.strip() if data.email else None,
            password_hash=hash_password(password),
            role=role,
            status=UserStatus.ACTIVE.value,
        )
        user.permissions = [UserPermission(route=route) for route in sanitize_permissions(role, data.permissions)]
        db.add(user)
        await db.commit()

        await audit_service.log_event(
            db,
            AuditAction.CREATE,
            user_id=current.user_id,
            entity_type="AdminUser",
            entity_id=user.id,
            new_values={"phone": user.phone, "role": user.role},
        )
        logger.info(f"Admin user created: {user.id} ({user.role})", extra={"company_id": current.company_id})
        return self._to_response(user)

    async def update_user(
        self,
        db: AsyncSession,
        current: CurrentUser,
        user_id: str,
        data: UserUpdate,
    ) -> UserResponse:
        """
        Update a user of the caller's company

        Raises:
            BusinessRuleException: USER_CANNOT_DEMOTE_SELF, USER_LAST_ADMIN
        """
        user = await self._get(db, current.company_id, user_id)
        old_values = {"role": user.role, "status": user.status, "phone": user.phone}

        errors = self._validate_contacts(data.phone, data.email) if (data.phone or data.email) else []
        if errors:
            raise MultiValidationException(errors)

        if data.role is not None:
            role = data.role.upper()
            if role == UserRole.SUPER_ADMIN.value or role not in ROLE_NAMES:
                raise ForbiddenException(ErrorCode.AUTH_FORBIDDEN, "Недопустимая роль пользователя")
            if user.id == current.user_id and ROLE_RANK[role] < ROLE_RANK.get(user.role, 0):
                raise BusinessRuleException(ErrorCode.USER_CANNOT_DEMOTE_SELF)
            if user.role == UserRole.ADMIN.value and role != UserRole.ADMIN.value:
                await self._ensure_not_last_admin(db, user)
            user.role = role

        if data.phone is not None:
            phone = normalize_phone(data.phone)
            if phone != user.phone:
                await self._ensure_phone_free(db, phone)
                user.phone = phone
        if data.full_name is not None:
            user.full_name = data.full_name.strip()
        if data.email is not None:
            user.email = data.email.strip() or None
        if data.status is not None:
            if data.status not in {status.value for status in UserStatus}:
                raise ValidationException(ErrorCode.VALIDATION_ERROR, "Неизвестный статус пользователя")
            user.status = data.status
        if data.project_id is not None:
            if data.project_id:
                await get_company_project(db, current.company_id, data.project_id)
            user.project_id = data.project_id or None

        if data.permissions is not None or data.role is not None:
            routes = sanitize_permissions(user.role, data.permissions if data.permissions is not None else user.routes)
            user.permissions = [UserPermission(route=route) for route in routes]

        await db.commit()
        await audit_service.log_event(
            db,
            AuditAction.UPDATE,
            user_id=current.user_id,
            entity_type="AdminUser",
            entity_id=user.id,
            old_values=old_values,
            new_values={"role": user.role, "status": user.status, "phone": user.phone},
        )
        logger.info(f"Admin user updated: {user.id}")
        return self._to_response(user)

    async def delete_user(self, db: AsyncSession, current: CurrentUser, user_id: str) -> None:
        """
        Soft delete a user

        Raises:
            BusinessRuleException: USER_CANNOT_DELETE_SELF, USER_LAST_ADMIN
        """
        if user_id == current.user_id:
            raise BusinessRuleException(ErrorCode.USER_CANNOT_DELETE_SELF)
        user = await self._get(db, current.company_id, user_id)
        if user.role == UserRole.ADMIN.value:
            await self._ensure_not_last_admin(db, user)

        user.deleted_at = datetime.now(timezone.utc)
        user.status = UserStatus.INACTIVE.value
        await db.commit()

        await audit_service.log_event(
            db,
            AuditAction.DELETE,
            user_id=current.user_id,
            entity_type="AdminUser",
            entity_id=user.id,
        )
        logger.info(f"Admin user deleted: {user.id}")

    async def get_all_admins(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
    ) -> PagedResponse[UserResponse]:
        """Company admins across all companies, for super admins"""
        query = (
            select(AdminUser, Company.name)
            .outerjoin(Company, Company.id == AdminUser.company_id)
            .where(AdminUser.role == UserRole.ADMIN.value, AdminUser.deleted_at.is_(None))
        )
        if search:
            pattern = like_pattern(search)
            query = query.where(
                or_(
                    AdminUser.full_name.ilike(pattern),
                    AdminUser.phone.ilike(pattern),
                    Company.name.ilike(pattern),
                )
            )

        total = await db.scalar(select(func.count()).select_from(query.subquery()))
        result = await db.execute(
            query.order_by(Company.name, AdminUser.full_name).offset((page - 1) * page_size).limit(page_size)
        )
        items = [self._to_response(user, company_name) for user, company_name in result.all()]
        return PagedResponse.build(items, int(total or 0), page, page_size)

    @staticmethod
    def get_available_routes() -> list[OptionItem]:
        return [OptionItem(value=route, label=label) for route, label in AVAILABLE_ROUTES.items()]

    @staticmethod
    def get_statuses() -> list[OptionItem]:
        return [OptionItem(value=status.value, label=status.value) for status in UserStatus]

    @staticmethod
    def get_roles() -> list[OptionItem]:
        return [
            OptionItem(value=role, label=label)
            for role, label in ROLE_NAMES.items()
            if role != UserRole.SUPER_ADMIN.value
        ]

    @staticmethod
    def _to_response(user: AdminUser, company_name: str | None = None) -> UserResponse:
        return UserResponse(
            id=user.id,
            full_name=user.full_name,
            phone=user.phone,
            email=user.email,
            role=user.role,
            status=user.status,
            company_id=user.company_id,
            company_name=company_name,
            project_id=user.project_id,
            permissions=sanitize_permissions(user.role, user.routes),
            last_login_at=user.last_login_at,
            created_at=user.created_at,
        )

    @staticmethod
    def _validate_contacts(phone: str | None, email: str | None) -> list[FieldError]:
        errors = []
        if phone is not None:
            valid, message = validate_phone(phone)
            if not valid:
                errors.append(FieldError("phone", ErrorCode.EMP_INVALID_PHONE_FORMAT, message))
        if email:
            valid, message = validate_email(email)
            if not valid:
                errors.append(FieldError("email", ErrorCode.VALIDATION_ERROR, message))
        return errors

    @staticmethod
    async def _ensure_phone_free(db: AsyncSession, phone: str) -> None:
        existing = await db.scalar(select(AdminUser).where(AdminUser.phone == phone))
        if existing is None:
            return
        if existing.is_deleted:
            raise ConflictException(ErrorCode.USER_PHONE_DELETED)
        raise ConflictException(ErrorCode.USER_PHONE_EXISTS)

    @staticmethod
    async def _ensure_not_last_admin(db: AsyncSession, user: AdminUser) -> None:
        others = await db.scalar(
            select(func.count(AdminUser.id)).where(
                AdminUser.company_id == user.company_id,
                AdminUser.role == UserRole.ADMIN.value,
                AdminUser.deleted_at.is_(None),
                AdminUser.id != user.id,
            )
        )
        if not others:
            raise BusinessRuleException(ErrorCode.USER_LAST_ADMIN)

    @staticmethod
    async def _get(db: AsyncSession, company_id: str | None, user_id: str) -> AdminUser:
        user = await db.scalar(
            select(AdminUser).where(
                AdminUser.id == user_id,
                AdminUser.company_id == company_id,
                AdminUser.deleted_at.is_(None),
            )
        )
        if user is None:
            raise NotFoundException(ErrorCode.USER_NOT_FOUND)
        return user


# Global instance
user_service = UserService()
