from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from shared.config.database import Base, utcnow

class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        # Retrieval order within one conversation: (created_at, id)
        Index("ix_messages_order_created", "order_id", "created_at", "id"),
        {"schema": "message_schema"},
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, nullable=False) # refers to order_schema.orders, checked by the service
    sender_id = Column(String, nullable=False)
    sender_name = Column(String, nullable=True)
    sender_role = Column(String, nullable=False) # requester, fulfiller, system
    text = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="text") # text, payment_info, payment_confirmed, system
    created_at = Column(DateTime, nullable=False, default=utcnow)
