"""
Ingesta de mensajes de grupos de WhatsApp.

Flujo por mensaje:
1. Clasificar con el LLM (None -> se descarta)
2. Sin anuncios: si el texto parece inmobiliario se guarda como "Información"
3. Por cada anuncio: normalizar ubicación, descartar duplicados recientes,
   guardar, recordar la firma y, si es oferta, cruzar contra alertas
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

import structlog

from konecte.analysis.classifier import ClassificationAdapter
from konecte.config import REAL_ESTATE_PATTERNS, get_settings
from konecte.database import ListingRepository, StoreError, StorePermissionError
from konecte.ingestion.signature_cache import AdSignatureCache
from konecte.location.normalizer import LocationNormalizer
from konecte.matching.engine import AlertMatcher
from konecte.models.listing import Listing, ListingIntent, SenderInfo
from konecte.models.message import InboundMessage

logger = structlog.get_logger()

_RELEVANCE_RE = re.compile("|".join(REAL_ESTATE_PATTERNS), re.IGNORECASE)


def is_real_estate_relevant(text: str) -> bool:
    """Heurística por palabras clave para mensajes sin anuncios detectados."""
    return bool(text and _RELEVANCE_RE.search(text))


@dataclass
class IngestionReport:
    saved: int = 0
    duplicates: int = 0
    failed: int = 0
    info_saved: bool = False
    classification_failed: bool = False
    permission_denied: bool = False


class GroupMessageIngestor:
    """Clasifica, deduplica y persiste anuncios publicados en grupos."""

    def __init__(
        self,
        classifier: ClassificationAdapter,
        listing_repo: ListingRepository,
        matcher: AlertMatcher,
        signature_cache: AdSignatureCache,
        location_normalizer: LocationNormalizer,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.classifier = classifier
        self.listing_repo = listing_repo
        self.matcher = matcher
        self.signature_cache = signature_cache
        self.location_normalizer = location_normalizer
        self._clock = clock or (lambda: datetime.now(ZoneInfo(get_settings().timezone)))

    def sender_info(self, sender_id: str, name: Optional[str] = None) -> SenderInfo:
        return SenderInfo.from_sender_id(sender_id, name=name, published_at=self._clock())

    async def handle(self, message: InboundMessage) -> IngestionReport:
        report = IngestionReport()
        text = message.text.strip()
        if not text:
            return report

        listings = await self.classifier.classify(text)
        if listings is None:
            logger.warning(
                "Mensaje de grupo no clasificado, se descarta",
                sender_id=message.sender_id,
                group_id=message.group_id,
                stage="classify",
            )
            report.classification_failed = True
            return report

        sender = self.sender_info(message.sender_id, message.sender_name)

        if not listings:
            if is_real_estate_relevant(text):
                try:
                    self.listing_repo.save(Listing.info(text), sender)
                    report.info_saved = True
                except StoreError as e:
                    logger.error(
                        "Error guardando mensaje informativo",
                        sender_id=message.sender_id,
                        stage="save_info",
                        error=str(e),
                    )
                    report.failed += 1
            else:
                logger.debug("Mensaje de grupo sin contenido inmobiliario", sender_id=message.sender_id)
            return report

        await self.ingest(listings, sender, report)
        logger.info(
            "Mensaje de grupo procesado",
            sender_id=message.sender_id,
            group_id=message.group_id,
            saved=report.saved,
            duplicates=report.duplicates,
            failed=report.failed,
        )
        return report

    async def ingest(
        self,
        listings: list[Listing],
        sender: SenderInfo,
        report: Optional[IngestionReport] = None,
    ) -> IngestionReport:
        """Persiste anuncios ya clasificados. Un fallo no corta el resto."""
        report = report or IngestionReport()
        for listing in listings:
            try:
                if await self._ingest_one(listing, sender):
                    report.saved += 1
                else:
                    report.duplicates += 1
            except Exception as e:
                logger.error(
                    "Error procesando anuncio",
                    sender_id=sender.uid,
                    stage="ingest",
                    error=str(e),
                )
                report.failed += 1
                if isinstance(e, StorePermissionError):
                    report.permission_denied = True
        return report

    async def _ingest_one(self, listing: Listing, sender: SenderInfo) -> bool:
        """Devuelve False si el anuncio es un duplicado reciente."""
        location = self.location_normalizer.normalize_location(listing.commune, listing.region)
        listing.set_commune(location.commune)
        listing.region = location.region

        signature = self.signature_cache.signature(listing)
        if self.signature_cache.seen_recently(signature):
            logger.info("Anuncio duplicado, no se guarda", sender_id=sender.uid, signature=signature[:12])
            return False

        self.listing_repo.save(listing, sender)
        self.signature_cache.remember(signature)

        if listing.intent == ListingIntent.OFFER:
            await self.matcher.find_matches_and_notify(listing, sender)
        return True
