"""
Ingesta de anuncios desde grupos de WhatsApp.

Incluye la caché de firmas que evita guardar reenvíos del mismo aviso.
"""

from konecte.ingestion.signature_cache import AdSignatureCache
from konecte.ingestion.group_handler import (
    GroupMessageIngestor,
    IngestionReport,
    is_real_estate_relevant,
)

__all__ = [
    "AdSignatureCache",
    "GroupMessageIngestor",
    "IngestionReport",
    "is_real_estate_relevant",
]
