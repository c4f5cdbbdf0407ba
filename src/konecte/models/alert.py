"""
Criterios de búsqueda y alertas de búsqueda.

Una alerta se crea cuando una búsqueda no tiene resultados y el usuario
acepta que se le notifique. Nunca se borra: pasa a estado "eliminada".
"""

import json
import random
import string
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from konecte.models.listing import Listing, clean_count, clean_text

# Columnas A..K de la hoja de alertas
ALERT_SHEET_HEADERS = [
    "IDAlerta",
    "SenderID",
    "TimestampCreacion",
    "TipoPropiedadBuscada",
    "RegionBuscada",
    "ComunaBuscada",
    "DormitoriosBuscados",
    "BanosBuscados",
    "OtrosCriterios",
    "EstadoAlerta",
    "UltimaNotificacionEnviada",
]

ALERT_STATUS_COLUMN = "J"
ALERT_LAST_NOTIFIED_COLUMN = "K"


class AlertStatus(str, Enum):
    ACTIVE = "activa"
    REMOVED = "eliminada"

    @classmethod
    def parse(cls, value: Any) -> "AlertStatus":
        text = str(value or "").strip().lower()
        if text in ("activa", "active", "activo"):
            return cls.ACTIVE
        return cls.REMOVED


class SearchCriteria(BaseModel):
    """Criterios extraídos de un mensaje de búsqueda."""

    operation_type: Optional[str] = None
    property_category: Optional[str] = None
    region: Optional[str] = None
    commune: Optional[str] = None
    bedrooms: Optional[str] = None
    bathrooms: Optional[str] = None
    max_price: Optional[str] = None
    currency: Optional[str] = None
    parking: Optional[str] = None
    storage: Optional[str] = None
    min_area_m2: Optional[str] = None

    @classmethod
    def from_listing(cls, listing: Listing) -> "SearchCriteria":
        return cls(
            operation_type=listing.operation_type,
            property_category=listing.property_category,
            region=listing.region,
            commune=listing.commune,
            bedrooms=listing.bedrooms,
            bathrooms=listing.bathrooms,
            max_price=listing.price,
            currency=listing.currency.value if listing.currency else None,
            parking=listing.parking,
            storage=listing.storage,
            min_area_m2=listing.area_m2,
        )

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


def new_alert_id() -> str:
    """ALERTA-<epoch ms>-<6 caracteres base36>."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"ALERTA-{int(time.time() * 1000)}-{suffix}"


class SearchAlert(BaseModel):
    """Alerta de búsqueda persistida en la hoja de alertas."""

    alert_id: str = Field(default_factory=new_alert_id)
    sender_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    property_category: Optional[str] = None
    region: Optional[str] = None
    commune: Optional[str] = None
    bedrooms_min: Optional[str] = None
    bathrooms_min: Optional[str] = None
    other_criteria: dict = Field(default_factory=dict)
    status: AlertStatus = AlertStatus.ACTIVE
    last_notified_at: Optional[str] = None

    # Fila 1-based en la hoja; solo presente en alertas leídas
    row_number: Optional[int] = Field(None, exclude=True)

    @classmethod
    def from_criteria(cls, sender_id: str, criteria: SearchCriteria) -> "SearchAlert":
        return cls(
            sender_id=sender_id,
            property_category=criteria.property_category,
            region=criteria.region,
            commune=criteria.commune,
            bedrooms_min=criteria.bedrooms,
            bathrooms_min=criteria.bathrooms,
            other_criteria={
                "precioMax": criteria.max_price,
                "moneda": criteria.currency,
                "estacionamiento": criteria.parking,
                "bodega": criteria.storage,
                "metrosCuadradosMin": criteria.min_area_m2,
                "tipoOperacion": criteria.operation_type,
            },
        )

    @property
    def budget(self) -> Optional[str]:
        return self.other_criteria.get("precioMax")

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE

    def describe(self) -> str:
        """Resumen corto para listar alertas al usuario."""
        parts = [self.property_category or "Propiedad"]
        if self.commune:
            parts.append(f"en {self.commune}")
        elif self.region:
            parts.append(f"en {self.region}")
        if self.bedrooms_min:
            parts.append(f"{self.bedrooms_min}+ dorm.")
        if self.budget:
            parts.append(f"hasta {self.budget} {self.other_criteria.get('moneda') or ''}".strip())
        return " ".join(parts)

    def to_sheet_row(self) -> list[str]:
        values = [
            self.alert_id,
            self.sender_id,
            self.created_at.isoformat(),
            self.property_category,
            self.region,
            self.commune,
            self.bedrooms_min,
            self.bathrooms_min,
            json.dumps(self.other_criteria, ensure_ascii=False),
            self.status.value,
            self.last_notified_at,
        ]
        return [v or "" for v in values]

    @classmethod
    def from_sheet_row(cls, row: list[str], row_number: Optional[int] = None) -> "SearchAlert":
        padded = list(row) + [""] * (len(ALERT_SHEET_HEADERS) - len(row))
        try:
            other = json.loads(padded[8]) if padded[8] else {}
        except json.JSONDecodeError:
            other = {}
        if not isinstance(other, dict):
            other = {}
        try:
            created_at = datetime.fromisoformat(padded[2])
        except ValueError:
            created_at = datetime.now(timezone.utc)
        return cls(
            alert_id=padded[0],
            sender_id=padded[1],
            created_at=created_at,
            property_category=clean_text(padded[3]),
            region=clean_text(padded[4]),
            commune=clean_text(padded[5]),
            bedrooms_min=clean_count(padded[6]),
            bathrooms_min=clean_count(padded[7]),
            other_criteria=other,
            status=AlertStatus.parse(padded[9]),
            last_notified_at=clean_text(padded[10]),
            row_number=row_number,
        )
