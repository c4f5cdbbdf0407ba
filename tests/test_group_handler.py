from konecte.database import StoreError
from konecte.database.exceptions import StorePermissionError
from konecte.ingestion import is_real_estate_relevant
from konecte.models import InboundMessage, SearchAlert
from konecte.models.listing import LISTING_SHEET_HEADERS

from conftest import llm_json, offer_payload, request_payload

SHEET = "konecte"
SENDER = "56912345678@c.us"


def _message(text: str) -> InboundMessage:
    return InboundMessage.model_validate(
        {
            "senderId": SENDER,
            "text": text,
            "isGroupMessage": True,
            "groupId": "grupo-1@g.us",
            "senderName": "Carla",
        }
    )


def _column(row: list[str], name: str) -> str:
    return row[LISTING_SHEET_HEADERS.index(name)]


def test_relevance_heuristic():
    assert is_real_estate_relevant("Alguien sabe de un depto por 15 UF?")
    assert is_real_estate_relevant("Vendo CASA en Maipú")
    assert not is_real_estate_relevant("Buenos días a todos")
    assert not is_real_estate_relevant("")


async def test_classification_failure_drops_message(ingestor, provider, store):
    provider.queue("esto no es json", "tampoco", "nada")

    report = await ingestor.handle(_message("Arriendo depto en Ñuñoa"))

    assert report.classification_failed
    assert store.data_rows(SHEET) == []


async def test_empty_result_with_keywords_saves_info_row(ingestor, provider, store):
    provider.queue(llm_json())

    report = await ingestor.handle(_message("¿Alguien conoce un buen corredor de propiedades?"))

    assert report.info_saved
    [row] = store.data_rows(SHEET)
    assert _column(row, "busco_ofrezco") == "Información"
    assert _column(row, "telefono_remitente") == "56912345678"
    assert _column(row, "nombre_remitente") == "Carla"


async def test_empty_result_without_keywords_saves_nothing(ingestor, provider, store):
    provider.queue(llm_json())

    report = await ingestor.handle(_message("Feliz cumpleaños Juan!"))

    assert not report.info_saved
    assert store.data_rows(SHEET) == []


async def test_offer_is_saved_with_normalized_location(ingestor, provider, store, clock):
    provider.queue(llm_json(offer_payload(opcion_comuna="nunoa", region="Valparaíso")))

    report = await ingestor.handle(_message("Arriendo depto 2D1B nunoa"))

    assert report.saved == 1
    [row] = store.data_rows(SHEET)
    assert _column(row, "opcion_comuna") == "Ñuñoa"
    assert _column(row, "region") == "Metropolitana de Santiago"
    assert _column(row, "fecha_publicacion") == "10-05-2024"
    assert _column(row, "hora_publicacion") == "12:00:00"
    assert _column(row, "uid_remitente") == SENDER
    assert _column(row, "status") == "Activo"


async def test_repost_within_window_is_deduplicated(ingestor, provider, store, clock):
    provider.queue(llm_json(offer_payload()), llm_json(offer_payload()), llm_json(offer_payload()))

    first = await ingestor.handle(_message("Arriendo depto Ñuñoa"))
    second = await ingestor.handle(_message("Arriendo depto Ñuñoa (repost)"))
    clock.advance(hours=24, seconds=1)
    third = await ingestor.handle(_message("Arriendo depto Ñuñoa"))

    assert (first.saved, second.saved, second.duplicates, third.saved) == (1, 0, 1, 1)
    assert len(store.data_rows(SHEET)) == 2


async def test_duplicates_in_same_message_collapse(ingestor, provider, store):
    provider.queue(llm_json(offer_payload(), offer_payload()))

    report = await ingestor.handle(_message("dos veces el mismo aviso"))

    assert report.saved == 1
    assert report.duplicates == 1


async def test_failed_save_does_not_remember_signature(ingestor, provider, store, signature_cache):
    provider.queue(llm_json(offer_payload()), llm_json(offer_payload()))
    store.append_error = StoreError("quota")

    failed = await ingestor.handle(_message("Arriendo depto Ñuñoa"))

    assert failed.failed == 1
    assert len(signature_cache) == 0

    store.append_error = None
    retried = await ingestor.handle(_message("Arriendo depto Ñuñoa"))
    assert retried.saved == 1


async def test_permission_error_is_flagged(ingestor, provider, store):
    provider.queue(llm_json(offer_payload()))
    store.append_error = StorePermissionError("PERMISSION_DENIED")

    report = await ingestor.handle(_message("Arriendo depto Ñuñoa"))

    assert report.permission_denied


async def test_one_failure_does_not_abort_other_listings(ingestor, provider, store, monkeypatch):
    provider.queue(
        llm_json(
            offer_payload(opcion_comuna="Ñuñoa"),
            request_payload(opcion_comuna="Providencia"),
        )
    )
    original = ingestor.listing_repo.save
    calls = []

    def flaky_save(listing, sender):
        calls.append(listing.commune)
        if len(calls) == 1:
            raise StoreError("timeout")
        original(listing, sender)

    monkeypatch.setattr(ingestor.listing_repo, "save", flaky_save)

    report = await ingestor.handle(_message("dos avisos"))

    assert report.failed == 1
    assert report.saved == 1
    assert calls == ["Ñuñoa", "Providencia"]


async def test_offer_triggers_alert_notification(ingestor, provider, alert_repo, transport):
    owner = "56977777777@c.us"
    alert_repo.create(SearchAlert(sender_id=owner, commune="Ñuñoa"))
    provider.queue(llm_json(offer_payload()))

    await ingestor.handle(_message("Arriendo depto Ñuñoa"))

    assert len(transport.messages_to(owner)) == 1


async def test_request_does_not_trigger_matching(ingestor, provider, alert_repo, transport):
    alert_repo.create(SearchAlert(sender_id="56977777777@c.us", commune="Providencia"))
    provider.queue(llm_json(request_payload()))

    report = await ingestor.handle(_message("Busco depto en Providencia"))

    assert report.saved == 1
    assert transport.sent == []
