from fastapi import FastAPI
from shared.config.database import engine, Base, SERVICE_SCHEMAS, create_schemas

# IMPORTANT: import models so they register with Base
from services.order_service import models as order_models
from services.message_service import models as message_models

from services.order_service.main import order_app
from services.message_service.main import message_app
from services.payment_service.main import payment_app
from services.notification_service.service import NotificationService

app = FastAPI(title="Marketplace Order Coordinator")

@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        # Create schemas
        await create_schemas(conn, *SERVICE_SCHEMAS)

        # Create all tables
        await conn.run_sync(Base.metadata.create_all)

@app.on_event("shutdown")
async def shutdown_event():
    # Give queued system-message retries a chance to land
    await NotificationService.drain(timeout=10)

@app.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "coordinator", "status": "running"}

app.mount("/orders", order_app)
app.mount("/messages", message_app)
app.mount("/payments", payment_app)
