from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from .models import Message

class MessageRepository:
    @staticmethod
    async def create_message(db: AsyncSession, message: Message, commit: bool = True):
        db.add(message)
        if not commit:
            # Part of a larger unit of work; the caller commits
            await db.flush()
            return message
        await db.commit()
        await db.refresh(message)
        return message

    @staticmethod
    async def list_messages(db: AsyncSession, order_id: int, after_id: int | None = None):
        stmt = select(Message).where(Message.order_id == order_id)
        if after_id is not None:
            stmt = stmt.where(Message.id > after_id)
        result = await db.execute(stmt.order_by(Message.created_at, Message.id))
        return list(result.scalars().all())

    @staticmethod
    async def latest_created_at(db: AsyncSession, order_id: int):
        result = await db.execute(
            select(func.max(Message.created_at)).where(Message.order_id == order_id)
        )
        return result.scalar()
