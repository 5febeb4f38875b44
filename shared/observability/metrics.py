from prometheus_client import Counter

# Business Metrics
market_order_transitions_total = Counter(
    "market_order_transitions_total",
    "Order status transitions committed",
    ["from_status", "to_status"]
)

market_transition_rejections_total = Counter(
    "market_transition_rejections_total",
    "Status changes refused by the state machine or the handshake",
    ["reason"] # Labels: 'invalid_transition', 'invalid_handshake_state', 'concurrent_update'
)

market_messages_appended_total = Counter(
    "market_messages_appended_total",
    "Messages appended to conversation logs",
    ["type"] # Labels: 'text', 'payment_info', 'payment_confirmed', 'system'
)

market_payment_handshake_total = Counter(
    "market_payment_handshake_total",
    "Payment handshake steps completed",
    ["step"] # Labels: 'payment_info', 'payment_confirmed'
)

market_notification_failures_total = Counter(
    "market_notification_failures_total",
    "System notifications that could not be appended",
    ["stage"] # Labels: 'initial', 'retry', 'abandoned'
)
