"""
Modelo Listing: un anuncio (oferta o solicitud) extraído de un mensaje.

Los alias en español son los nombres de campo que devuelve el LLM y las
cabeceras de la hoja de anuncios.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Valores que el LLM usa a veces en lugar de null
PLACEHOLDER_VALUES = {
    "",
    "n/d",
    "nd",
    "n/a",
    "na",
    "null",
    "none",
    "no especificado",
    "no especificada",
    "no aplica",
    "sin información",
    "sin informacion",
    "-",
}

NUMBER_WORDS = {
    "un": "1",
    "uno": "1",
    "una": "1",
    "dos": "2",
    "tres": "3",
    "cuatro": "4",
    "cinco": "5",
    "seis": "6",
    "siete": "7",
    "ocho": "8",
    "nueve": "9",
    "diez": "10",
}

MAX_COMMUNE_OPTIONS = 4

# Orden de columnas de la hoja de anuncios. Es el formato de intercambio con
# el dashboard: no reordenar.
LISTING_SHEET_HEADERS = [
    "busco_ofrezco",
    "tipo_operacion",
    "propiedad",
    "region",
    "ciudad",
    "opcion_comuna",
    "opcion_comuna_2",
    "opcion_comuna_3",
    "opcion_comuna_4",
    "dormitorios",
    "banos",
    "estacionamiento",
    "bodegas",
    "valor",
    "moneda",
    "gastos_comunes",
    "metros_cuadrados",
    "telefono",
    "correo_electronico",
    "telefono_remitente",
    "nombre_remitente",
    "fecha_publicacion",
    "hora_publicacion",
    "uid_remitente",
    "status",
]

LISTING_STATUS_ACTIVE = "Activo"


class ListingIntent(str, Enum):
    """Busco / Ofrezco / Información, tal como se guarda en la hoja."""

    OFFER = "Ofrezco"
    REQUEST = "Busco"
    INFO = "Información"

    @classmethod
    def parse(cls, value: Any) -> "ListingIntent":
        """Interpreta la intención; sin lenguaje de solicitud se asume oferta."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text in ("busco", "request", "solicitud", "necesito", "requiero"):
            return cls.REQUEST
        if text in ("información", "informacion", "info"):
            return cls.INFO
        return cls.OFFER


class Currency(str, Enum):
    CLP = "CLP"
    UF = "UF"


def clean_text(value: Any) -> Optional[str]:
    """Convierte a string limpio; placeholders y vacíos pasan a None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    if text.lower() in PLACEHOLDER_VALUES:
        return None
    return text


def clean_count(value: Any) -> Optional[str]:
    """Cantidades (dormitorios, baños...) como string numérico."""
    text = clean_text(value)
    if text is None:
        return None
    lowered = text.lower()
    word = re.match(r"[a-záéíóúñ]+", lowered)
    if word and word.group(0) in NUMBER_WORDS:
        return NUMBER_WORDS[word.group(0)]
    match = re.search(r"\d+", text)
    if match:
        return match.group(0)
    # "Sí" se acepta para estacionamiento/bodegas mencionados sin cantidad
    if lowered in ("si", "sí"):
        return "Sí"
    return None


def clean_amount(value: Any) -> Optional[str]:
    """Montos como string de solo dígitos."""
    text = clean_text(value)
    if text is None:
        return None
    digits = re.sub(r"\D", "", text)
    return digits or None


class Listing(BaseModel):
    """
    Anuncio individual detectado en un mensaje.

    Nunca se actualiza en la hoja: una re-publicación es una fila nueva
    salvo que la caché de firmas la filtre.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    intent: ListingIntent = Field(ListingIntent.OFFER, alias="busco_ofrezco")
    operation_type: Optional[str] = Field(None, alias="tipo_operacion")
    property_category: Optional[str] = Field(None, alias="propiedad")
    region: Optional[str] = None
    city: Optional[str] = Field(None, alias="ciudad")
    commune_options: list[str] = Field(default_factory=list, max_length=MAX_COMMUNE_OPTIONS)
    bedrooms: Optional[str] = Field(None, alias="dormitorios")
    bathrooms: Optional[str] = Field(None, alias="banos")
    parking: Optional[str] = Field(None, alias="estacionamiento")
    storage: Optional[str] = Field(None, alias="bodegas")
    price: Optional[str] = Field(None, alias="valor")
    currency: Optional[Currency] = Field(None, alias="moneda")
    common_expenses: Optional[str] = Field(None, alias="gastos_comunes")
    area_m2: Optional[str] = Field(None, alias="metros_cuadrados")
    contact_phone: Optional[str] = Field(None, alias="telefono")
    contact_email: Optional[str] = Field(None, alias="correo_electronico")
    source_text: str = Field("", alias="texto_original_fragmento_anuncio")

    @model_validator(mode="before")
    @classmethod
    def _collect_communes(cls, data: Any) -> Any:
        """Junta opcion_comuna..opcion_comuna_4 en commune_options."""
        if not isinstance(data, dict) or "commune_options" in data:
            return data
        data = dict(data)
        keys = ["opcion_comuna"] + [
            f"opcion_comuna_{i}" for i in range(2, MAX_COMMUNE_OPTIONS + 1)
        ]
        options = []
        for key in keys:
            value = clean_text(data.pop(key, None))
            if value:
                options.append(value)
        data["commune_options"] = options
        return data

    @field_validator("intent", mode="before")
    @classmethod
    def _parse_intent(cls, value: Any) -> ListingIntent:
        return ListingIntent.parse(value)

    @field_validator(
        "operation_type",
        "property_category",
        "region",
        "city",
        "contact_email",
        mode="before",
    )
    @classmethod
    def _clean_text(cls, value: Any) -> Optional[str]:
        return clean_text(value)

    @field_validator("commune_options", mode="before")
    @classmethod
    def _clean_communes(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        options = [c for c in (clean_text(v) for v in value) if c]
        return options[:MAX_COMMUNE_OPTIONS]

    @field_validator("bedrooms", "bathrooms", "parking", "storage", "area_m2", mode="before")
    @classmethod
    def _clean_count(cls, value: Any) -> Optional[str]:
        return clean_count(value)

    @field_validator("price", "common_expenses", "contact_phone", mode="before")
    @classmethod
    def _clean_amount(cls, value: Any) -> Optional[str]:
        return clean_amount(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _parse_currency(cls, value: Any) -> Optional[Currency]:
        text = (clean_text(value) or "").upper()
        if text in ("UF", "U.F.", "U.F"):
            return Currency.UF
        if text in ("CLP", "$", "PESOS", "PESO"):
            return Currency.CLP
        return None

    @field_validator("source_text", mode="before")
    @classmethod
    def _clean_source(cls, value: Any) -> str:
        return str(value or "").strip()

    @property
    def commune(self) -> Optional[str]:
        """Comuna principal del anuncio."""
        return self.commune_options[0] if self.commune_options else None

    def set_commune(self, value: Optional[str]) -> None:
        """Reemplaza la comuna principal conservando las alternativas."""
        rest = self.commune_options[1:]
        self.commune_options = ([value] if value else []) + rest

    @classmethod
    def info(cls, text: str) -> "Listing":
        """Registro genérico para mensajes relevantes sin anuncio detectado."""
        return cls(intent=ListingIntent.INFO, source_text=text)

    def to_sheet_row(self, sender: "SenderInfo") -> list[str]:
        """Fila en el orden de LISTING_SHEET_HEADERS."""
        communes = self.commune_options + [""] * (
            MAX_COMMUNE_OPTIONS - len(self.commune_options)
        )
        values = [
            self.intent.value,
            self.operation_type,
            self.property_category,
            self.region,
            self.city,
            *communes,
            self.bedrooms,
            self.bathrooms,
            self.parking,
            self.storage,
            self.price,
            self.currency.value if self.currency else None,
            self.common_expenses,
            self.area_m2,
            self.contact_phone,
            self.contact_email,
            sender.phone,
            sender.name,
            sender.published_date,
            sender.published_time,
            sender.uid,
            LISTING_STATUS_ACTIVE,
        ]
        return [v or "" for v in values]

    @classmethod
    def from_sheet_row(cls, row: list[str]) -> "Listing":
        """Reconstruye un Listing desde una fila de la hoja."""
        padded = list(row) + [""] * (len(LISTING_SHEET_HEADERS) - len(row))
        data = dict(zip(LISTING_SHEET_HEADERS, padded))
        return cls.model_validate(data)


@dataclass
class SenderInfo:
    """Datos del remitente que se guardan junto a cada anuncio."""

    uid: str
    phone: str = ""
    name: str = ""
    published_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_sender_id(
        cls,
        sender_id: str,
        name: Optional[str] = None,
        published_at: Optional[datetime] = None,
    ) -> "SenderInfo":
        return cls(
            uid=sender_id,
            phone=sender_id.split("@")[0] if "@" in sender_id else "",
            name=name or "",
            published_at=published_at or datetime.now(),
        )

    @property
    def published_date(self) -> str:
        return self.published_at.strftime("%d-%m-%Y")

    @property
    def published_time(self) -> str:
        return self.published_at.strftime("%H:%M:%S")


class ClassificationResult(BaseModel):
    """Esquema estricto de la respuesta del LLM."""

    model_config = ConfigDict(extra="ignore")

    is_multiple: bool = False
    anuncios: list[Listing]

    @field_validator("is_multiple", mode="before")
    @classmethod
    def _coerce_bool(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)
