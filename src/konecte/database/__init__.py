"""
Módulo de base de datos.

Persistencia en Google Sheets: hoja de anuncios y hoja de alertas.
"""

from konecte.database.exceptions import StoreError, StorePermissionError
from konecte.database.sheets_client import (
    GoogleSheetsStore,
    SpreadsheetStore,
    get_spreadsheet_store,
)
from konecte.database.repositories import (
    AlertRepository,
    ListingRecord,
    ListingRepository,
)

__all__ = [
    "StoreError",
    "StorePermissionError",
    "SpreadsheetStore",
    "GoogleSheetsStore",
    "get_spreadsheet_store",
    "ListingRepository",
    "ListingRecord",
    "AlertRepository",
]
