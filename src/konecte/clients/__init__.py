"""
Clientes de servicios externos.

- EntitlementService: verificación de acceso por plan
- ListingsService: creación de publicaciones en Konecte
- HttpMessagingTransport: envío de mensajes (WhatsApp / chat web)
"""

from konecte.clients.exceptions import (
    ClientError,
    EntitlementError,
    ListingsServiceError,
    TransportError,
)
from konecte.clients.entitlement import AccessResult, EntitlementService
from konecte.clients.listings_api import ListingsService
from konecte.clients.transport import HttpMessagingTransport, MessagingTransport, is_web_user

__all__ = [
    "ClientError",
    "EntitlementError",
    "ListingsServiceError",
    "TransportError",
    "AccessResult",
    "EntitlementService",
    "ListingsService",
    "HttpMessagingTransport",
    "MessagingTransport",
    "is_web_user",
]
