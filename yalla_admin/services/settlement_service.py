"""Daily settlement of lunch orders and its background runner"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.models.company import Project
from yalla_admin.models.enums import OrderStatus, TransactionType
from yalla_admin.models.order import Order
from yalla_admin.services.budget_service import budget_service
from yalla_admin.utils.dates import is_cutoff_passed, local_date
from yalla_admin.utils.order_state import transition


@dataclass
class SettlementResult:
    project_id: str
    orders: int
    amount: Decimal


class SettlementService:
    """
    Completes lunch orders once they can no longer change

    Today's orders settle after the project's cutoff time, orders of earlier
    days whenever they are found still active. Each run writes one
    LUNCH_DEDUCTION transaction per project.
    """

    async def settle_project(
        self,
        db: AsyncSession,
        project: Project,
        now: datetime | None = None,
    ) -> SettlementResult:
        today = local_date(project.timezone, now)
        date_condition = Order.order_date < today
        if is_cutoff_passed(project.cutoff_time, project.timezone, now):
            date_condition = or_(date_condition, Order.order_date == today)

        result = await db.execute(
            select(Order).where(
                Order.project_id == project.id,
                Order.status == OrderStatus.ACTIVE.value,
                date_condition,
            )
        )
        orders = result.scalars().all()
        if not orders:
            return SettlementResult(project.id, 0, Decimal("0"))

        total = Decimal("0")
        for order in orders:
            order.status = transition(order.status, OrderStatus.COMPLETED).value
            total += order.price

        # Meals were already delivered, so the charge may take the budget past the overdraft
        await budget_service.charge_project(
            db,
            project,
            total,
            TransactionType.LUNCH_DEDUCTION,
            description=f"Обеды: {len(orders)} шт.",
            enforce=False,
        )
        await db.commit()

        logger.info(
            f"Settled {len(orders)} orders for project {project.id}, amount {total}",
            extra={"project_id": project.id},
        )
        return SettlementResult(project.id, len(orders), total)

    async def settle_all(self, db: AsyncSession, now: datetime | None = None) -> list[SettlementResult]:
        result = await db.execute(select(Project).where(Project.deleted_at.is_(None)))
        settled = []
        for project in result.scalars().all():
            outcome = await self.settle_project(db, project, now)
            if outcome.orders:
                settled.append(outcome)
        return settled


# Global instance
settlement_service = SettlementService()


class SettlementRunner:
    """
    Background task that runs the settlement on an interval

    Args:
        session_factory: Callable returning a new AsyncSession context manager
        interval_minutes: Pause between runs
    """

    def __init__(self, session_factory: Callable, interval_minutes: int = 30):
        self._session_factory = session_factory
        self._interval = interval_minutes
        self._task: asyncio.Task | None = None
        self._running = False

    async def start(self):
        if self._running:
            logger.warning("SettlementRunner already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(f"SettlementRunner started (interval={self._interval}m)")

    async def stop(self):
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("SettlementRunner stopped")

    def is_running(self) -> bool:
        return self._running

    async def run_once(self) -> list[SettlementResult]:
        async with self._session_factory() as db:
            return await settlement_service.settle_all(db)

    async def _loop(self):
        while self._running:
            try:
                await asyncio.sleep(self._interval * 60)
                settled = await self.run_once()
                if settled:
                    logger.info(f"Settlement run completed for {len(settled)} projects")
            except asyncio.CancelledError:
                logger.info("Settlement loop cancelled")
                break
            except Exception as e:
                # Keep the loop alive, the next run retries
                logger.error(f"Error in settlement loop: {e}", exc_info=True)
