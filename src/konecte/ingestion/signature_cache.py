"""
Caché de firmas de anuncios para no guardar dos veces el mismo aviso
reenviado en grupos de WhatsApp dentro de la ventana de 24 horas.
"""

import hashlib
import time
from typing import Callable, Optional

import structlog

from konecte.models.listing import Listing

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class AdSignatureCache:
    """
    Mapa firma -> timestamp (segundos) del último guardado.

    Se usa desde un único event loop; no necesita locks.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.time
        self._signatures: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._signatures)

    @staticmethod
    def signature(listing: Listing) -> str:
        """Hash estable sobre los campos principales del anuncio."""
        fields = [
            listing.intent.value,
            listing.operation_type,
            listing.property_category,
            listing.commune,
            listing.bedrooms,
            listing.bathrooms,
            listing.price,
            listing.currency.value if listing.currency else None,
        ]
        payload = "|".join(str(f or "").strip().lower() for f in fields)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def _expired(self, timestamp: float, now: float) -> bool:
        return now - timestamp >= self.ttl_seconds

    def seen_recently(self, signature: str) -> bool:
        """True si la firma se guardó dentro de la ventana; las vencidas se eliminan."""
        timestamp = self._signatures.get(signature)
        if timestamp is None:
            return False
        if self._expired(timestamp, self._clock()):
            del self._signatures[signature]
            return False
        return True

    def remember(self, signature: str) -> None:
        """Registra la firma (llamar solo tras un guardado exitoso)."""
        self._signatures[signature] = self._clock()
        self.sweep()

    def sweep(self) -> int:
        """Elimina todas las firmas vencidas. Devuelve cuántas se borraron."""
        now = self._clock()
        expired = [s for s, ts in self._signatures.items() if self._expired(ts, now)]
        for signature in expired:
            del self._signatures[signature]
        if expired:
            logger.debug("Firmas vencidas eliminadas", count=len(expired), remaining=len(self))
        return len(expired)
