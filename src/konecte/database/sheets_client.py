"""
Cliente de Google Sheets.

Expone la capacidad mínima que usa el bot (append, lectura por rango,
listado y creación de hojas, actualización por rango) detrás del
protocolo SpreadsheetStore.
"""

from functools import lru_cache
from typing import Optional, Protocol

import gspread
import structlog

from konecte.config import get_settings
from konecte.database.exceptions import StoreError, StorePermissionError, is_permission_error

logger = structlog.get_logger()


class SpreadsheetStore(Protocol):
    """Capacidad de almacenamiento sobre planillas, direccionada por rango A1."""

    def append_row(self, container_id: str, sheet_name: str, row: list[str]) -> None: ...

    def read_range(self, container_id: str, range_name: str) -> list[list[str]]: ...

    def list_sheet_names(self, container_id: str) -> list[str]: ...

    def ensure_sheet_exists(self, container_id: str, sheet_name: str) -> bool:
        """Crea la hoja si falta. Devuelve True si la creó."""
        ...

    def update_range(self, container_id: str, range_name: str, values: list[list[str]]) -> None: ...


def quote_sheet(sheet_name: str) -> str:
    """Nombre de hoja escapado para notación A1."""
    return "'" + sheet_name.replace("'", "''") + "'"


class GoogleSheetsStore:
    """SpreadsheetStore sobre gspread (service account)."""

    def __init__(self, client: gspread.Client):
        self._client = client
        self._spreadsheets: dict[str, gspread.Spreadsheet] = {}

    def _wrap(self, error: Exception, operation: str, **context) -> StoreError:
        logger.error("Error en Google Sheets", operation=operation, error=str(error), **context)
        if is_permission_error(error):
            return StorePermissionError(str(error))
        return StoreError(str(error))

    def _open(self, container_id: str) -> gspread.Spreadsheet:
        if container_id not in self._spreadsheets:
            self._spreadsheets[container_id] = self._client.open_by_key(container_id)
        return self._spreadsheets[container_id]

    def append_row(self, container_id: str, sheet_name: str, row: list[str]) -> None:
        try:
            self._open(container_id).values_append(
                f"{quote_sheet(sheet_name)}!A1",
                params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
                body={"values": [row]},
            )
        except Exception as e:
            raise self._wrap(e, "append_row", sheet=sheet_name) from e

    def read_range(self, container_id: str, range_name: str) -> list[list[str]]:
        try:
            response = self._open(container_id).values_get(range_name)
        except Exception as e:
            raise self._wrap(e, "read_range", range=range_name) from e
        return response.get("values", [])

    def list_sheet_names(self, container_id: str) -> list[str]:
        try:
            return [ws.title for ws in self._open(container_id).worksheets()]
        except Exception as e:
            raise self._wrap(e, "list_sheet_names") from e

    def ensure_sheet_exists(self, container_id: str, sheet_name: str) -> bool:
        if sheet_name in self.list_sheet_names(container_id):
            return False
        try:
            self._open(container_id).add_worksheet(title=sheet_name, rows=1000, cols=26)
        except Exception as e:
            raise self._wrap(e, "ensure_sheet_exists", sheet=sheet_name) from e
        logger.info("Hoja creada", sheet=sheet_name)
        return True

    def update_range(self, container_id: str, range_name: str, values: list[list[str]]) -> None:
        try:
            self._open(container_id).values_update(
                range_name,
                params={"valueInputOption": "USER_ENTERED"},
                body={"values": values},
            )
        except Exception as e:
            raise self._wrap(e, "update_range", range=range_name) from e


def _service_account_info(settings) -> Optional[dict]:
    if not settings.google_service_account_email or not settings.google_private_key:
        return None
    return {
        "type": "service_account",
        "client_email": settings.google_service_account_email,
        "private_key": settings.google_private_key.replace("\\n", "\n"),
        "token_uri": "https://oauth2.googleapis.com/token",
    }


@lru_cache
def get_spreadsheet_store() -> GoogleSheetsStore:
    """
    Obtiene el store de Google Sheets (singleton cacheado).

    Raises:
        ValueError: Si las credenciales no están configuradas
    """
    settings = get_settings()

    if settings.google_service_account_file:
        client = gspread.service_account(filename=settings.google_service_account_file)
    else:
        info = _service_account_info(settings)
        if info is None:
            raise ValueError(
                "GOOGLE_SERVICE_ACCOUNT_FILE o GOOGLE_SERVICE_ACCOUNT_EMAIL + "
                "GOOGLE_PRIVATE_KEY son requeridos."
            )
        client = gspread.service_account_from_dict(info)

    logger.info("Cliente de Google Sheets inicializado")
    return GoogleSheetsStore(client)
