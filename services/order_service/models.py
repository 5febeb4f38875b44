from sqlalchemy import Column, DateTime, Float, Integer, JSON, String, Text
from shared.config.database import Base, utcnow

class Order(Base):
    __tablename__ = "orders"
    # We use a separate schema to simulate microservice isolation
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(String, nullable=False, index=True)
    requester_name = Column(String, nullable=False)
    requester_email = Column(String, nullable=True, index=True)
    fulfiller_id = Column(String, nullable=False, index=True)
    fulfiller_name = Column(String, nullable=True)

    items = Column(JSON, nullable=False) # [{"name", "price", "assignee"}]
    total = Column(Float, nullable=False) # calculated at creation
    special_instructions = Column(Text, nullable=True)
    shipping_address = Column(JSON, nullable=True)

    status = Column(String, nullable=False, default="pending")
    payment_instructions = Column(Text, nullable=True) # kept for audit after reject/cancel

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
