"""
Envío de mensajes salientes.

Los identificadores con "@" (ej. 56912345678@c.us) son chats de
WhatsApp y salen por el gateway; los demás son usuarios del chat web
de Konecte y se responden por su endpoint.
"""

from typing import Optional, Protocol

import httpx
import structlog

from konecte.clients.exceptions import TransportError
from konecte.config import get_settings

logger = structlog.get_logger()


def is_web_user(identifier: str) -> bool:
    return "@" not in identifier


class MessagingTransport(Protocol):
    async def send_text(self, identifier: str, text: str) -> None: ...


class HttpMessagingTransport:
    """MessagingTransport sobre HTTP (gateway de WhatsApp + chat web)."""

    def __init__(
        self,
        gateway_url: Optional[str] = None,
        gateway_token: Optional[str] = None,
        web_reply_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.gateway_url = (gateway_url or settings.whatsapp_gateway_url or "").rstrip("/")
        self.gateway_token = gateway_token or settings.whatsapp_gateway_token
        self.web_reply_url = web_reply_url or settings.konecte_web_reply_url
        self.timeout = timeout or settings.http_timeout_seconds

    async def _post(self, url: str, payload: dict, headers: Optional[dict] = None) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"{url}: {e}") from e

    async def send_text(self, identifier: str, text: str) -> None:
        if is_web_user(identifier):
            await self._post(
                self.web_reply_url,
                {"userId": identifier, "messageText": text, "source": "bot"},
            )
            logger.info("Respuesta enviada al chat web", sender_id=identifier)
            return

        if not self.gateway_url:
            raise TransportError("WHATSAPP_GATEWAY_URL no configurada")

        headers = {"Authorization": f"Bearer {self.gateway_token}"} if self.gateway_token else None
        await self._post(
            f"{self.gateway_url}/messages",
            {"chatId": identifier, "text": text},
            headers=headers,
        )
        logger.info("Mensaje enviado por WhatsApp", sender_id=identifier, length=len(text))
