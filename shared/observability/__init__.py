from .setup import setup_observability
from .metrics import (
    market_order_transitions_total,
    market_transition_rejections_total,
    market_messages_appended_total,
    market_payment_handshake_total,
    market_notification_failures_total
)
