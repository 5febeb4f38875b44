from fastapi import FastAPI

from shared.errors import register_exception_handlers
from shared.observability.setup import setup_observability

from .router import router, public_router


payment_app = FastAPI(title="Payment Handshake Service", version="1.0.0")

# Structured logs, OTLP traces to Jaeger, and /metrics
setup_observability(payment_app, "payment_service")
register_exception_handlers(payment_app)

payment_app.include_router(public_router)
payment_app.include_router(router)
