from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.config.database import Base, create_schemas, engine
from shared.errors import register_exception_handlers
from shared.observability import setup_observability
from shared.security import limiter

from .models import Message
from .router import router, public_router

message_app = FastAPI(title="Conversation Log Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(message_app, "message_service")
register_exception_handlers(message_app)

# --- SECURITY SETUP ---
message_app.state.limiter = limiter
message_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

message_app.include_router(public_router)
message_app.include_router(router)

@message_app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await create_schemas(conn, "message_schema")
        await conn.run_sync(Base.metadata.create_all)
