from services.order_service.state_machine import OrderStatus

# One fixed sentence per edge of the transition table.
# accepted -> payment_pending has none: the payment_info message narrates it.
TRANSITION_TEMPLATES = {
    (OrderStatus.PENDING, OrderStatus.ACCEPTED): "Request accepted.",
    (OrderStatus.PENDING, OrderStatus.REJECTED): "Request rejected.",
    (OrderStatus.PAYMENT_PENDING, OrderStatus.ACCEPTED): "Payment confirmed, the order is back in progress.",
    (OrderStatus.ACCEPTED, OrderStatus.SHIPPED): "Order marked as shipped.",
    (OrderStatus.ACCEPTED, OrderStatus.CANCELLED): "Request cancelled.",
    (OrderStatus.PAYMENT_PENDING, OrderStatus.CANCELLED): "Request cancelled while awaiting payment.",
    (OrderStatus.SHIPPED, OrderStatus.COMPLETED): "Order completed.",
    (OrderStatus.REJECTED, OrderStatus.PENDING): "Request restored by the requester.",
    (OrderStatus.CANCELLED, OrderStatus.PENDING): "Request restored by the requester.",
}


def render_notification(previous, new, actor_role=None) -> str | None:
    return TRANSITION_TEMPLATES.get((OrderStatus(previous), OrderStatus(new)))
