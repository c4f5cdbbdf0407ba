"""
Fakes en memoria para los colaboradores externos del bot.
"""

import asyncio
import json
import re
from datetime import datetime, timedelta
from typing import Optional

import pytest
from tenacity import wait_none

from konecte.analysis.classifier import ClassificationAdapter
from konecte.analysis.llm_providers import BaseLLMProvider, LLMResponse
from konecte.bot import BotReplyOrchestrator, CommandTable, ConversationStore, PublicationWizard
from konecte.clients.entitlement import AccessResult
from konecte.clients.exceptions import ListingsServiceError, TransportError
from konecte.database import AlertRepository, ListingRepository, StoreError
from konecte.ingestion import AdSignatureCache, GroupMessageIngestor
from konecte.location import LocationNormalizer
from konecte.matching import AlertMatcher

SPREADSHEET_ID = "sheet-test"

_RANGE_RE = re.compile(
    r"^'(?P<sheet>(?:[^']|'')+)'!(?P<col>[A-Z]+)(?P<row>\d+)(?::(?P<end_col>[A-Z]+)(?P<end_row>\d+)?)?$"
)


def _column_index(letters: str) -> int:
    index = 0
    for ch in letters:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def _parse_range(range_name: str):
    match = _RANGE_RE.match(range_name)
    if not match:
        raise ValueError(f"Rango no soportado: {range_name}")
    sheet = match.group("sheet").replace("''", "'")
    start_col = _column_index(match.group("col"))
    end_col = _column_index(match.group("end_col")) if match.group("end_col") else start_col
    return sheet, int(match.group("row")), start_col, end_col


class FakeStore:
    """SpreadsheetStore en memoria: {hoja: [filas]} incluyendo la cabecera."""

    def __init__(self):
        self.sheets: dict[str, list[list[str]]] = {}
        self.error: Optional[StoreError] = None
        self.append_error: Optional[StoreError] = None

    def _check(self):
        if self.error:
            raise self.error

    def append_row(self, container_id: str, sheet_name: str, row: list[str]) -> None:
        self._check()
        if self.append_error:
            raise self.append_error
        self.sheets.setdefault(sheet_name, []).append([str(v) for v in row])

    def read_range(self, container_id: str, range_name: str) -> list[list[str]]:
        self._check()
        sheet, start_row, start_col, end_col = _parse_range(range_name)
        rows = self.sheets.get(sheet, [])[start_row - 1:]
        return [row[start_col:end_col + 1] for row in rows]

    def list_sheet_names(self, container_id: str) -> list[str]:
        self._check()
        return list(self.sheets)

    def ensure_sheet_exists(self, container_id: str, sheet_name: str) -> bool:
        self._check()
        if sheet_name in self.sheets:
            return False
        self.sheets[sheet_name] = []
        return True

    def update_range(self, container_id: str, range_name: str, values: list[list[str]]) -> None:
        self._check()
        sheet, row_number, start_col, _ = _parse_range(range_name)
        rows = self.sheets.setdefault(sheet, [])
        for offset, new_values in enumerate(values):
            while len(rows) < row_number + offset:
                rows.append([])
            row = rows[row_number + offset - 1]
            for col_offset, value in enumerate(new_values):
                col = start_col + col_offset
                row.extend([""] * (col + 1 - len(row)))
                row[col] = str(value)

    def data_rows(self, sheet_name: str) -> list[list[str]]:
        return self.sheets.get(sheet_name, [])[1:]


class FakeTransport:
    """Registra los mensajes enviados; falla para los destinatarios en fail_for."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail_for: set[str] = set()

    async def send_text(self, identifier: str, text: str) -> None:
        if identifier in self.fail_for:
            raise TransportError(f"envío rechazado para {identifier}")
        self.sent.append((identifier, text))

    def messages_to(self, identifier: str) -> list[str]:
        return [text for recipient, text in self.sent if recipient == identifier]


class FakeProvider(BaseLLMProvider):
    """
    Proveedor LLM con respuestas en cola.

    Cada respuesta es un texto, una excepción a lanzar o un float con
    segundos de espera (para simular timeouts).
    """

    provider_name = "fake"
    model = "fake-model"

    def __init__(self, *responses, timeout_seconds: float = 1.0):
        self.responses = list(responses)
        self.timeout_seconds = timeout_seconds
        self.calls: list[str] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def _generate(self, system_prompt, user_prompt, temperature, max_tokens) -> LLMResponse:
        self.calls.append(user_prompt)
        if not self.responses:
            raise RuntimeError("sin respuestas en cola")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, float):
            await asyncio.sleep(response)
            response = llm_json()
        return LLMResponse(text=response, model=self.model, provider=self.provider_name)


class FakeEntitlement:
    def __init__(self, has_access: bool = True, error: Optional[Exception] = None):
        self.has_access = has_access
        self.error = error
        self.checked: list[str] = []

    async def check_access(self, identifier: str) -> AccessResult:
        self.checked.append(identifier)
        if self.error:
            raise self.error
        return AccessResult(has_access=self.has_access, reason=None if self.has_access else "plan")


class FakeListingsService:
    def __init__(self):
        self.calls: list[tuple[dict, str]] = []
        self.error: Optional[ListingsServiceError] = None

    async def create_listing(self, payload: dict, sender_id: str) -> dict:
        if self.error:
            raise self.error
        self.calls.append((payload, sender_id))
        return {"ok": True}


class FakeClock:
    """Reloj controlable: llamado devuelve datetime; time() devuelve epoch."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 5, 10, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def time(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def llm_json(*listings: dict, is_multiple: Optional[bool] = None) -> str:
    """Respuesta JSON tal como la devolvería el LLM."""
    if is_multiple is None:
        is_multiple = len(listings) > 1
    return json.dumps({"is_multiple": is_multiple, "anuncios": list(listings)}, ensure_ascii=False)


def offer_payload(**overrides) -> dict:
    data = {
        "busco_ofrezco": "Ofrezco",
        "tipo_operacion": "Arriendo",
        "propiedad": "Departamento",
        "region": "Metropolitana de Santiago",
        "opcion_comuna": "Ñuñoa",
        "dormitorios": "2",
        "banos": "1",
        "valor": "550000",
        "moneda": "CLP",
        "texto_original_fragmento_anuncio": "Arriendo depto 2D1B en Ñuñoa $550.000",
    }
    data.update(overrides)
    return data


def request_payload(**overrides) -> dict:
    data = {
        "busco_ofrezco": "Busco",
        "tipo_operacion": "Arriendo",
        "propiedad": "Departamento",
        "opcion_comuna": "Providencia",
        "dormitorios": "2",
        "texto_original_fragmento_anuncio": "Busco depto en Providencia",
    }
    data.update(overrides)
    return data


@pytest.fixture(scope="session")
def normalizer():
    return LocationNormalizer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def classifier(provider):
    return ClassificationAdapter(provider=provider, max_attempts=3, wait=wait_none())


@pytest.fixture
def listing_repo(store):
    return ListingRepository(store=store, spreadsheet_id=SPREADSHEET_ID, sheet_name="konecte")


@pytest.fixture
def alert_repo(store):
    return AlertRepository(store=store, spreadsheet_id=SPREADSHEET_ID, sheet_name="AlertasBusquedas")


@pytest.fixture
def matcher(alert_repo, transport):
    return AlertMatcher(alert_repo=alert_repo, transport=transport, threshold=3)


@pytest.fixture
def signature_cache(clock):
    return AdSignatureCache(ttl_seconds=24 * 3600, clock=clock.time)


@pytest.fixture
def ingestor(classifier, listing_repo, matcher, signature_cache, normalizer, clock):
    return GroupMessageIngestor(
        classifier=classifier,
        listing_repo=listing_repo,
        matcher=matcher,
        signature_cache=signature_cache,
        location_normalizer=normalizer,
        clock=clock,
    )


@pytest.fixture
def listings_service():
    return FakeListingsService()


@pytest.fixture
def wizard(listings_service, classifier, ingestor, normalizer):
    return PublicationWizard(
        listings_service=listings_service,
        classifier=classifier,
        ingestor=ingestor,
        location_normalizer=normalizer,
    )


@pytest.fixture
def conversations(clock):
    return ConversationStore(ttl=timedelta(minutes=30), clock=clock)


@pytest.fixture
def commands(transport, alert_repo, listing_repo, wizard):
    return CommandTable(
        transport=transport,
        alert_repo=alert_repo,
        listing_repo=listing_repo,
        wizard=wizard,
        max_results=5,
    )


@pytest.fixture
def entitlement():
    return FakeEntitlement()


@pytest.fixture
def orchestrator(
    entitlement,
    conversations,
    commands,
    wizard,
    classifier,
    listing_repo,
    alert_repo,
    ingestor,
    normalizer,
):
    return BotReplyOrchestrator(
        entitlement=entitlement,
        conversations=conversations,
        commands=commands,
        wizard=wizard,
        classifier=classifier,
        listing_repo=listing_repo,
        alert_repo=alert_repo,
        ingestor=ingestor,
        location_normalizer=normalizer,
        max_results=5,
    )
