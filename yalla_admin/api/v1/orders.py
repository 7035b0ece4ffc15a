"""Order freeze endpoints"""

from datetime import date

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyUser, DBSession
from yalla_admin.schemas.employee import EmployeeOrderItem
from yalla_admin.schemas.order import FreezeInfo, FreezeOrderRequest, FreezePeriodRequest, FreezeResult
from yalla_admin.services.freeze_service import order_freeze_service

router = APIRouter()


@router.post("/{order_id}/freeze", response_model=FreezeResult)
async def freeze_order(order_id: str, user: CompanyUser, db: DBSession, data: FreezeOrderRequest | None = None):
    """
    Freeze an order; the meal moves to the next working day after the subscription end

    At most `max_freezes_per_week` freezes per employee per week.
    """
    return await order_freeze_service.freeze_order(db, user.company_id, order_id, data or FreezeOrderRequest())


@router.post("/{order_id}/unfreeze", response_model=FreezeResult)
async def unfreeze_order(order_id: str, user: CompanyUser, db: DBSession):
    return await order_freeze_service.unfreeze_order(db, user.company_id, order_id)


@router.post("/freeze-period", response_model=list[FreezeResult])
async def freeze_period(data: FreezePeriodRequest, user: CompanyUser, db: DBSession):
    return await order_freeze_service.freeze_period(db, user.company_id, data)


@router.get("/employee/{employee_id}/freeze-info", response_model=FreezeInfo)
async def get_freeze_info(
    employee_id: str,
    user: CompanyUser,
    db: DBSession,
    on_date: date | None = Query(None, alias="date"),
):
    return await order_freeze_service.get_employee_freeze_info(db, user.company_id, employee_id, on_date)


@router.get("/employee/{employee_id}", response_model=list[EmployeeOrderItem])
async def get_employee_orders(
    employee_id: str,
    user: CompanyUser,
    db: DBSession,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
):
    return await order_freeze_service.get_employee_orders(db, user.company_id, employee_id, start_date, end_date)
