"""Creación de publicaciones en la plataforma Konecte."""

from typing import Any, Optional

import httpx
import structlog

from konecte.clients.exceptions import ListingsServiceError
from konecte.config import get_settings

logger = structlog.get_logger()


class ListingsService:
    """Envía a Konecte las propiedades armadas con el asistente de publicación."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        path: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.url = (api_url or settings.konecte_api_url).rstrip("/") + (path or settings.listings_api_path)
        self.timeout = timeout or settings.http_timeout_seconds

    async def create_listing(self, payload: dict[str, Any], sender_id: str) -> dict:
        """
        Raises:
            ListingsServiceError: Si la API rechaza la publicación o no responde.
        """
        body = {**payload, "senderId": sender_id}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=body)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ListingsServiceError(str(e)) from e

        logger.info("Publicación creada en Konecte", sender_id=sender_id, titulo=payload.get("titulo"))
        try:
            return response.json()
        except ValueError:
            return {}
