"""
Repositorios sobre la planilla de Google Sheets.

Cada repositorio maneja una hoja y su esquema de columnas.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog

from konecte.config import get_settings
from konecte.database.sheets_client import SpreadsheetStore, get_spreadsheet_store, quote_sheet
from konecte.location.normalizer import normalize_text
from konecte.models.alert import (
    ALERT_LAST_NOTIFIED_COLUMN,
    ALERT_SHEET_HEADERS,
    ALERT_STATUS_COLUMN,
    AlertStatus,
    SearchAlert,
    SearchCriteria,
)
from konecte.models.listing import (
    LISTING_SHEET_HEADERS,
    Listing,
    ListingIntent,
    SenderInfo,
)

logger = structlog.get_logger()


class BaseRepository:
    """Clase base: una hoja dentro de una planilla."""

    HEADERS: list[str] = []
    LAST_COLUMN = "A"

    def __init__(
        self,
        sheet_name: str,
        store: Optional[SpreadsheetStore] = None,
        spreadsheet_id: Optional[str] = None,
    ):
        self._store = store or get_spreadsheet_store()
        self.spreadsheet_id = spreadsheet_id or get_settings().spreadsheet_id or ""
        self.sheet_name = sheet_name
        self._ready = False

    @property
    def store(self) -> SpreadsheetStore:
        return self._store

    def _ensure_sheet(self) -> None:
        """Crea la hoja con su fila de cabeceras la primera vez."""
        if self._ready:
            return
        if self.store.ensure_sheet_exists(self.spreadsheet_id, self.sheet_name):
            self.store.append_row(self.spreadsheet_id, self.sheet_name, list(self.HEADERS))
        self._ready = True

    def _data_range(self) -> str:
        return f"{quote_sheet(self.sheet_name)}!A2:{self.LAST_COLUMN}"

    def _read_rows(self) -> list[list[str]]:
        self._ensure_sheet()
        return self.store.read_range(self.spreadsheet_id, self._data_range())


@dataclass
class ListingRecord:
    """Anuncio leído de la hoja junto con los datos de quien lo publicó."""

    listing: Listing
    sender_phone: str = ""
    sender_name: str = ""
    published_date: str = ""

    @property
    def contact(self) -> str:
        return self.listing.contact_phone or self.sender_phone

    @classmethod
    def from_sheet_row(cls, row: list[str]) -> "ListingRecord":
        padded = list(row) + [""] * (len(LISTING_SHEET_HEADERS) - len(row))
        columns = dict(zip(LISTING_SHEET_HEADERS, padded))
        return cls(
            listing=Listing.from_sheet_row(row),
            sender_phone=columns["telefono_remitente"],
            sender_name=columns["nombre_remitente"],
            published_date=columns["fecha_publicacion"],
        )


class ListingRepository(BaseRepository):
    """Hoja de anuncios: una fila por anuncio, nunca se actualiza."""

    HEADERS = LISTING_SHEET_HEADERS
    LAST_COLUMN = "Y"

    def __init__(
        self,
        store: Optional[SpreadsheetStore] = None,
        spreadsheet_id: Optional[str] = None,
        sheet_name: Optional[str] = None,
    ):
        super().__init__(
            sheet_name=sheet_name or get_settings().listings_sheet_name,
            store=store,
            spreadsheet_id=spreadsheet_id,
        )

    def save(self, listing: Listing, sender: SenderInfo) -> None:
        """Agrega el anuncio como fila nueva."""
        self._ensure_sheet()
        self.store.append_row(self.spreadsheet_id, self.sheet_name, listing.to_sheet_row(sender))
        logger.info(
            "Anuncio guardado",
            intent=listing.intent.value,
            category=listing.property_category,
            commune=listing.commune,
            sender_id=sender.uid,
        )

    def find_offers(
        self,
        criteria: SearchCriteria,
        limit: Optional[int] = None,
    ) -> list[ListingRecord]:
        """
        Ofertas que cumplen los criterios, más recientes primero.

        Tipo de propiedad y de operación deben coincidir exactamente
        (normalizados); la comuna basta con que esté contenida.
        """
        category = normalize_text(criteria.property_category)
        operation = normalize_text(criteria.operation_type)
        commune = normalize_text(criteria.commune)

        results = []
        for row in reversed(self._read_rows()):
            if not any(cell.strip() for cell in row):
                continue
            record = ListingRecord.from_sheet_row(row)
            listing = record.listing
            if listing.intent != ListingIntent.OFFER:
                continue
            if category and normalize_text(listing.property_category) != category:
                continue
            if operation and normalize_text(listing.operation_type) != operation:
                continue
            if commune and not any(
                commune in normalize_text(option) for option in listing.commune_options
            ):
                continue
            results.append(record)
            if limit and len(results) >= limit:
                break

        logger.debug("Búsqueda de ofertas", criteria=criteria.model_dump(exclude_none=True), found=len(results))
        return results


class AlertRepository(BaseRepository):
    """Hoja de alertas de búsqueda."""

    HEADERS = ALERT_SHEET_HEADERS
    LAST_COLUMN = "K"

    def __init__(
        self,
        store: Optional[SpreadsheetStore] = None,
        spreadsheet_id: Optional[str] = None,
        sheet_name: Optional[str] = None,
    ):
        super().__init__(
            sheet_name=sheet_name or get_settings().alerts_sheet_name,
            store=store,
            spreadsheet_id=spreadsheet_id,
        )

    def create(self, alert: SearchAlert) -> SearchAlert:
        self._ensure_sheet()
        self.store.append_row(self.spreadsheet_id, self.sheet_name, alert.to_sheet_row())
        logger.info("Alerta creada", alert_id=alert.alert_id, sender_id=alert.sender_id)
        return alert

    def list_all(self) -> list[SearchAlert]:
        alerts = []
        for index, row in enumerate(self._read_rows()):
            if not row or not row[0].strip():
                continue
            # +2: fila 1 es la cabecera y las filas son 1-based
            alerts.append(SearchAlert.from_sheet_row(row, row_number=index + 2))
        return alerts

    def list_active(self) -> list[SearchAlert]:
        return [a for a in self.list_all() if a.is_active]

    def list_for_sender(self, sender_id: str) -> list[SearchAlert]:
        """Alertas activas de un remitente, en orden de creación."""
        return [a for a in self.list_active() if a.sender_id == sender_id]

    def _find(self, alert_id: str) -> Optional[SearchAlert]:
        for alert in self.list_all():
            if alert.alert_id == alert_id:
                return alert
        return None

    def _update_cell(self, alert: SearchAlert, column: str, value: str) -> None:
        range_name = f"{quote_sheet(self.sheet_name)}!{column}{alert.row_number}"
        self.store.update_range(self.spreadsheet_id, range_name, [[value]])

    def set_status(self, alert_id: str, status: AlertStatus) -> bool:
        """Cambia el estado de una alerta. False si no existe."""
        alert = self._find(alert_id)
        if alert is None:
            logger.warning("Alerta no encontrada", alert_id=alert_id)
            return False
        self._update_cell(alert, ALERT_STATUS_COLUMN, status.value)
        logger.info("Estado de alerta actualizado", alert_id=alert_id, status=status.value)
        return True

    def mark_notified(self, alert_id: str, when: Optional[datetime] = None) -> bool:
        alert = self._find(alert_id)
        if alert is None:
            logger.warning("Alerta no encontrada", alert_id=alert_id)
            return False
        when = when or datetime.now()
        self._update_cell(alert, ALERT_LAST_NOTIFIED_COLUMN, when.isoformat())
        return True
