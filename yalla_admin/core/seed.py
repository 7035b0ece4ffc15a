"""Database seeding with default data"""

import secrets
import string

from sqlalchemy import select

from yalla_admin.core.config import logger, settings
from yalla_admin.models import AdminUser
from yalla_admin.models.database import async_session_maker
from yalla_admin.models.enums import UserRole, UserStatus
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.utils.crypto import hash_password
from yalla_admin.utils.validators import normalize_phone


def generate_secure_password(length: int = 16) -> str:
    """Generate a secure random password"""
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*"
    return "".join(secrets.choice(alphabet) for _ in range(length))


async def seed_default_data():
    """Seed business settings and the initial super admin"""
    async with async_session_maker() as db:
        try:
            await business_config_service.seed_defaults(db)
            await _create_super_admin(db)
            await db.commit()
        except Exception as e:
            logger.error(f"Failed to seed default data: {e}")
            await db.rollback()
            raise


async def _create_super_admin(db):
    if not settings.super_admin_phone:
        logger.debug("SUPER_ADMIN_PHONE not set, skipping super admin creation")
        return

    phone = normalize_phone(settings.super_admin_phone)
    existing = await db.scalar(select(AdminUser).where(AdminUser.phone == phone))
    if existing:
        logger.debug("Super admin already exists")
        return

    if settings.super_admin_password:
        password = settings.super_admin_password
    else:
        password = generate_secure_password()
        logger.warning("=" * 80)
        logger.warning("SUPER_ADMIN_PASSWORD not set! Generated random password:")
        logger.warning(f"Phone: {phone}")
        logger.warning(f"Password: {password}")
        logger.warning("PLEASE SAVE THIS PASSWORD - IT WILL NOT BE SHOWN AGAIN!")
        logger.warning("=" * 80)

    db.add(
        AdminUser(
            full_name=settings.super_admin_name,
            phone=phone,
            password_hash=hash_password(password),
            role=UserRole.SUPER_ADMIN.value,
            status=UserStatus.ACTIVE.value,
        )
    )
    logger.info("Super admin created")
