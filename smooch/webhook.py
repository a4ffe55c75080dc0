"""
Smooch Webhook Receiver.

Verifies inbound webhook requests against the static verify secret and fans the
decoded payload out to registered handlers, in registration order.

Endpoints (mounted by the application):
- POST {WEBHOOK_URL} → Verify, decode, acknowledge with 200, dispatch in background
"""

import hmac
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Mapping

from fastapi import APIRouter, BackgroundTasks, Request, Response, status
from pydantic import ValidationError
from starlette.requests import ClientDisconnect

from .models import Payload

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

WebhookEventHandler = Callable[[Payload], None | Awaitable[None]]


class WebhookDispatcher:
    """Holds webhook handlers and the verify secret."""

    def __init__(self, verify_secret: str | None = None) -> None:
        self._verify_secret = verify_secret
        self._handlers: list[WebhookEventHandler] = []

    @property
    def handlers(self) -> list[WebhookEventHandler]:
        return list(self._handlers)

    def add_handler(self, handler: WebhookEventHandler) -> None:
        self._handlers.append(handler)

    def verify_request(self, headers: Mapping[str, str]) -> bool:
        """
        Check the ``X-API-Key`` header against the verify secret.

        Without a configured secret every request is accepted.
        """
        if not self._verify_secret:
            return True

        api_key = headers.get(API_KEY_HEADER) or headers.get(API_KEY_HEADER.lower())
        if not api_key:
            return False
        return hmac.compare_digest(api_key.encode("utf-8"), self._verify_secret.encode("utf-8"))

    async def dispatch(self, payload: Payload) -> None:
        """Invoke every handler in registration order. Handler errors propagate."""
        for handler in self._handlers:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result

    def build_router(self, path: str = "/") -> APIRouter:
        """Build a FastAPI router exposing the webhook endpoint at ``path``."""
        router = APIRouter(tags=["smooch-webhook"])

        @router.post(path)
        async def handle_smooch_webhook(
            request: Request, background_tasks: BackgroundTasks
        ) -> Response:
            if not self.verify_request(request.headers):
                logger.warning("[SMOOCH WEBHOOK] Rejected request with invalid X-API-Key")
                return Response(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    media_type="application/json",
                )

            try:
                body = await request.body()
            except ClientDisconnect as e:
                logger.error(f"[SMOOCH WEBHOOK] request body read failed: {e}")
                return Response(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    media_type="application/json",
                )

            try:
                payload = Payload.model_validate(json.loads(body))
            except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
                logger.error(f"[SMOOCH WEBHOOK] could not decode payload: {e}")
                return Response(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    media_type="application/json",
                )

            logger.info(
                f"[SMOOCH WEBHOOK] Received '{payload.trigger}' "
                f"with {len(payload.messages)} message(s)"
            )

            background_tasks.add_task(self.dispatch, payload)
            return Response(status_code=status.HTTP_200_OK, media_type="application/json")

        return router
