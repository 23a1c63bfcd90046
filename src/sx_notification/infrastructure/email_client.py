"""HTTP client for the external email dispatcher.

POST {EMAIL_DISPATCH_URL} with ``{type, recipients, gameId, templateData}``.
Failures are logged, never retried: the caller's transaction has already
committed and email is best-effort.
"""

import logging

import httpx

from config.settings import settings
from src.sx_notification.domain.events import EmailRequest

logger = logging.getLogger(__name__)


class EmailDispatcher:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = base_url if base_url is not None else settings.EMAIL_DISPATCH_URL
        self._token = token if token is not None else settings.EMAIL_DISPATCH_TOKEN
        self._timeout_s = timeout_s or settings.EMAIL_DISPATCH_TIMEOUT_SECONDS
        self._transport = transport

    async def send(self, request: EmailRequest) -> bool:
        if not request.recipients:
            return False
        if not self._url:
            logger.info(
                "Email dispatch disabled; skipped %s for game %s (%d recipients)",
                request.email_type.value,
                request.game_id,
                len(request.recipients),
            )
            return False

        headers: dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            async with httpx.AsyncClient(headers=headers, transport=self._transport) as client:
                response = await client.post(
                    self._url,
                    json=request.to_body(),
                    timeout=float(self._timeout_s),
                )
                response.raise_for_status()
        except httpx.HTTPError:
            logger.warning(
                "Email dispatch failed: %s for game %s",
                request.email_type.value,
                request.game_id,
                exc_info=True,
            )
            return False
        return True
