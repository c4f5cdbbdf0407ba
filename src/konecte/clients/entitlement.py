"""
Verificación de acceso contra la API de Konecte.

Un usuario web se consulta por id; un número de WhatsApp por teléfono
en formato +E164.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from konecte.clients.exceptions import EntitlementError
from konecte.clients.transport import is_web_user
from konecte.config import get_settings

logger = structlog.get_logger()


@dataclass
class AccessResult:
    has_access: bool
    reason: Optional[str] = None


class EntitlementService:
    """Consulta si un identificador tiene acceso al bot según su plan."""

    def __init__(self, api_url: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.api_url = (api_url or settings.konecte_api_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds

    def access_url(self, identifier: str) -> str:
        if is_web_user(identifier):
            return f"{self.api_url}/api/users/by-id/{identifier}/check-access"
        phone = identifier.split("@")[0]
        if not phone.startswith("+"):
            phone = f"+{phone}"
        return f"{self.api_url}/api/users/by-phone/{phone}"

    async def check_access(self, identifier: str) -> AccessResult:
        """
        Raises:
            EntitlementError: Si la API no responde o devuelve error.
        """
        url = self.access_url(identifier)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
                response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise EntitlementError(str(e)) from e

        if not isinstance(data, dict):
            raise EntitlementError("Respuesta de acceso inválida")

        return AccessResult(
            has_access=bool(data.get("hasWhatsAppAccess")),
            reason=data.get("reason"),
        )
