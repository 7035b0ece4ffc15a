"""Business configuration endpoints"""

from fastapi import APIRouter

from yalla_admin.core.dependencies import DBSession, SuperAdmin
from yalla_admin.schemas.common import MessageResponse
from yalla_admin.schemas.content import ConfigItem, ConfigUpdate
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.utils.pricing import list_combos

router = APIRouter()


@router.get("")
async def get_config(db: DBSession):
    """Public settings grouped for the frontend"""
    config = await business_config_service.get_all(db)
    return {
        "subscription": {
            "minDays": config["min_subscription_days"],
            "maxFreezesPerWeek": config["max_freezes_per_week"],
        },
        "order": {"defaultCutoffTime": config["default_cutoff_time"]},
        "budget": {
            "allowOverdraft": config["allow_overdraft"],
            "lowBudgetThresholdPercent": config["low_budget_threshold_percent"],
        },
        "combo": {"prices": {combo["type"]: combo["price"] for combo in list_combos()}},
    }


@router.get("/raw", response_model=list[ConfigItem])
async def get_raw_config(user: SuperAdmin, db: DBSession):
    return await business_config_service.get_raw(db)


@router.put("/{key}", response_model=ConfigItem)
async def update_config(key: str, data: ConfigUpdate, user: SuperAdmin, db: DBSession):
    return await business_config_service.set(db, key, data.value, data.description, user_id=user.user_id)


@router.post("/clear-cache", response_model=MessageResponse)
async def clear_cache(user: SuperAdmin):
    business_config_service.clear_cache()
    return MessageResponse(message="Кэш настроек очищен")
