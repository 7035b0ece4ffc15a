"""Business configuration service with an in-process cache"""

import time
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import ErrorCode, NotFoundException
from yalla_admin.models.content import BusinessConfig

DEFAULT_CONFIG: dict[str, tuple[Any, str]] = {
    "max_freezes_per_week": (2, "Максимум заморозок на сотрудника в неделю"),
    "min_subscription_days": (5, "Минимальный период подписки в днях"),
    "allow_overdraft": (True, "Разрешить уход бюджета в минус в пределах овердрафта"),
    "low_budget_threshold_percent": (20, "Порог предупреждения о низком бюджете, %"),
    "default_cutoff_time": ("10:30", "Время отсечки заказов по умолчанию"),
}

CACHE_TTL_SECONDS = 300


class BusinessConfigService:
    """Typed access to business settings stored in the business_config table"""

    def __init__(self):
        self._cache: dict[str, Any] | None = None
        self._loaded_at = 0.0

    async def _load(self, db: AsyncSession) -> dict[str, Any]:
        if self._cache is not None and time.monotonic() - self._loaded_at < CACHE_TTL_SECONDS:
            return self._cache

        result = await db.execute(select(BusinessConfig))
        values = {key: default for key, (default, _) in DEFAULT_CONFIG.items()}
        values.update({row.key: row.value for row in result.scalars().all()})
        self._cache = values
        self._loaded_at = time.monotonic()
        return values

    async def get(self, db: AsyncSession, key: str, default: Any = None) -> Any:
        values = await self._load(db)
        return values.get(key, default)

    async def get_int(self, db: AsyncSession, key: str, default: int = 0) -> int:
        value = await self.get(db, key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Business config {key}={value!r} is not an integer, using {default}")
            return default

    async def get_bool(self, db: AsyncSession, key: str, default: bool = False) -> bool:
        value = await self.get(db, key, default)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    async def get_all(self, db: AsyncSession) -> dict[str, Any]:
        """All settings merged with defaults (public view)"""
        return dict(await self._load(db))

    async def get_raw(self, db: AsyncSession) -> list[BusinessConfig]:
        """Stored rows, without defaults"""
        result = await db.execute(select(BusinessConfig).order_by(BusinessConfig.key))
        return list(result.scalars().all())

    async def set(
        self,
        db: AsyncSession,
        key: str,
        value: Any,
        description: str | None = None,
        user_id: str | None = None,
    ) -> BusinessConfig:
        """
        Create or update a setting

        Args:
            db: Database session
            key: Setting key
            value: JSON-serializable value
            description: Optional human-readable description
            user_id: User making the change

        Returns:
            Stored setting
        """
        item = await db.get(BusinessConfig, key)
        if item is None:
            if key not in DEFAULT_CONFIG and description is None:
                raise NotFoundException(ErrorCode.CONFIG_NOT_FOUND, f"Настройка '{key}' не найдена")
            item = BusinessConfig(
                key=key,
                description=description or DEFAULT_CONFIG.get(key, (None, None))[1],
            )
            db.add(item)
        elif description is not None:
            item.description = description

        item.value = value
        item.updated_by_user_id = user_id
        await db.commit()
        await db.refresh(item)
        self.clear_cache()

        logger.info(f"Business config updated: {key}={value!r}", extra={"user_id": user_id})
        return item

    async def seed_defaults(self, db: AsyncSession) -> None:
        """Insert missing default settings"""
        for key, (value, description) in DEFAULT_CONFIG.items():
            if await db.get(BusinessConfig, key) is None:
                db.add(BusinessConfig(key=key, value=value, description=description))
        await db.commit()
        self.clear_cache()

    def clear_cache(self) -> None:
        self._cache = None
        self._loaded_at = 0.0


# Global instance
business_config_service = BusinessConfigService()
