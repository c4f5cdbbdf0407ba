"""
Modelos de datos del bot.

- Listing: anuncio extraído de un mensaje (oferta, solicitud o información)
- SearchAlert: alerta de búsqueda persistida
- ConversationContext: estado de la conversación por remitente
"""

from konecte.models.listing import (
    ClassificationResult,
    Currency,
    Listing,
    ListingIntent,
    SenderInfo,
)
from konecte.models.alert import AlertStatus, SearchAlert, SearchCriteria
from konecte.models.conversation import ConversationContext, LastQuestion
from konecte.models.message import InboundMessage

__all__ = [
    # Anuncios
    "Listing",
    "ListingIntent",
    "Currency",
    "SenderInfo",
    "ClassificationResult",
    # Alertas
    "SearchAlert",
    "SearchCriteria",
    "AlertStatus",
    # Conversación
    "ConversationContext",
    "LastQuestion",
    "InboundMessage",
]
