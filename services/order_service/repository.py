from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select, update
from .models import Order

class OrderRepository:
    @staticmethod
    async def create_order(db: AsyncSession, order: Order):
        db.add(order)
        await db.commit()
        await db.refresh(order)
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int):
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_order_for_update(db: AsyncSession, order_id: int):
        """Row-locks the order until the session commits (no-op on SQLite)."""
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        fulfiller_id: str | None = None,
        requester_id: str | None = None,
        requester_email: str | None = None,
        statuses=None,
    ):
        stmt = select(Order)
        if fulfiller_id:
            stmt = stmt.where(Order.fulfiller_id == fulfiller_id)
        if requester_id:
            stmt = stmt.where(Order.requester_id == requester_id)
        if requester_email:
            stmt = stmt.where(Order.requester_email == requester_email)
        if statuses is not None:
            stmt = stmt.where(Order.status.in_([s.value for s in statuses]))
        result = await db.execute(stmt.order_by(Order.created_at.desc(), Order.id.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def apply_transition(
        db: AsyncSession,
        order: Order,
        expected_status: str,
        new_status: str,
        updated_at: datetime,
        **fields,
    ) -> bool:
        """
        Compare-and-set the status. Returns False when another writer changed
        the order since it was read, in which case nothing is written.
        """
        result = await db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == expected_status)
            .values(status=new_status, updated_at=updated_at, **fields)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            return False
        await db.commit()
        await db.refresh(order)
        return True

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: int) -> bool:
        result = await db.execute(delete(Order).where(Order.id == order_id))
        await db.commit()
        return result.rowcount > 0
