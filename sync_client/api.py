"""
Async HTTP wrapper around the coordinator's order, message and payment
endpoints, used by the sync client. Error bodies are mapped back onto the
shared error taxonomy; timeouts and connection failures become TransientIO.
"""
import httpx
import structlog

from services.order_service.state_machine import OrderStatus
from shared.config import settings
from shared.errors import ERRORS_BY_CODE, CoordinatorError, NotFound, TransientIO, ValidationError
from shared.security.api_key import INTERNAL_API_KEY
from .cache import MessageView

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "X-Internal-API-Key"


def _error_from_response(resp: httpx.Response) -> CoordinatorError:
    try:
        body = resp.json()
    except ValueError:
        body = {}
    code = body.get("error") if isinstance(body, dict) else None
    detail = body.get("detail") if isinstance(body, dict) else None
    detail = str(detail or resp.text or resp.reason_phrase)

    error_cls = ERRORS_BY_CODE.get(code)
    if error_cls is None:
        if resp.status_code == 404:
            error_cls = NotFound
        elif resp.status_code == 422:
            error_cls = ValidationError
        elif resp.status_code == 429 or resp.status_code >= 500:
            error_cls = TransientIO
        else:
            error_cls = CoordinatorError
    return error_cls(detail)


class MarketplaceAPI:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self._headers = {
            API_KEY_HEADER: api_key or INTERNAL_API_KEY
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url or settings.MARKETPLACE_API_URL)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs):
        try:
            resp = await self._client.request(
                method, path, headers=self._headers, timeout=self._timeout, **kwargs
            )
        except httpx.TimeoutException as exc:
            raise TransientIO(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise TransientIO(f"{method} {path} failed: {exc}") from exc

        if resp.is_error:
            raise _error_from_response(resp)
        try:
            return resp.json()
        except ValueError as exc:
            # A proxy or half-deployed upstream answered instead of the coordinator
            raise TransientIO(f"{method} {path} returned a non-JSON body") from exc

    # --- ORDERS ---

    async def create_order(self, payload: dict) -> dict:
        return await self._request("POST", "/orders/", json=payload)

    async def get_order(self, order_id: int) -> dict:
        return await self._request("GET", f"/orders/{order_id}")

    async def list_orders(self, **filters) -> list[dict]:
        params = {key: value for key, value in filters.items() if value is not None}
        return await self._request("GET", "/orders/", params=params)

    async def update_status(
        self,
        order_id: int,
        status: str,
        actor_role: str,
        actor_id: str | None = None,
        payment_instructions: str | None = None,
    ) -> dict:
        payload = {"status": status, "actor_role": actor_role, "actor_id": actor_id}
        if payment_instructions is not None:
            payload["payment_instructions"] = payment_instructions
        data = await self._request("PATCH", f"/orders/{order_id}/status", json=payload)
        return data["order"]

    async def restore(self, order_id: int) -> dict:
        data = await self._request("POST", f"/orders/{order_id}/restore")
        return data["order"]

    async def apply_transition(
        self,
        order_id: int,
        status: str,
        actor_role: str,
        actor_id: str | None = None,
        attempts: int = 2,
    ) -> dict:
        """
        Status change that survives timeouts without double-applying.

        A TransientIO failure does not mean the change did not happen, so the
        order is re-fetched first: if it already carries the target status the
        change is reported as done, otherwise it is retried.
        """
        target = OrderStatus(status).value
        for attempt in range(1, attempts + 1):
            try:
                return await self.update_status(order_id, target, actor_role, actor_id=actor_id)
            except TransientIO:
                order = await self.get_order(order_id)
                if order["status"] == target:
                    logger.info("transition_confirmed_after_failure", order_id=order_id, status=target)
                    return order
                if attempt == attempts:
                    raise
                logger.info("transition_retry", order_id=order_id, status=target, attempt=attempt)

    # --- MESSAGES ---

    async def list_messages(self, order_id: int) -> list[MessageView]:
        data = await self._request("GET", "/messages/", params={"order_id": order_id})
        return [MessageView.from_payload(item) for item in data]

    async def send_message(
        self,
        order_id: int,
        sender_id: str,
        sender_role: str,
        text: str,
        message_type: str = "text",
        sender_name: str | None = None,
    ) -> MessageView:
        payload = {
            "order_id": order_id,
            "sender_id": sender_id,
            "sender_name": sender_name,
            "sender_role": sender_role,
            "text": text,
            "type": message_type,
        }
        data = await self._request("POST", "/messages/", json=payload)
        return MessageView.from_payload(data)

    # --- PAYMENT HANDSHAKE ---

    async def send_payment_info(
        self, order_id: int, actor_id: str, instructions: str, actor_name: str | None = None
    ) -> dict:
        payload = {"actor_id": actor_id, "actor_name": actor_name, "instructions": instructions}
        return await self._request("POST", f"/payments/{order_id}/payment-info", json=payload)

    async def confirm_payment(
        self,
        order_id: int,
        actor_id: str,
        actor_role: str = "fulfiller",
        actor_name: str | None = None,
    ) -> dict:
        payload = {"actor_id": actor_id, "actor_name": actor_name, "actor_role": actor_role}
        return await self._request("POST", f"/payments/{order_id}/confirmation", json=payload)
