from datetime import datetime

from konecte.models import AlertStatus, Listing, SearchAlert, SearchCriteria, SenderInfo
from konecte.models.alert import ALERT_SHEET_HEADERS
from konecte.models.listing import LISTING_SHEET_HEADERS

from conftest import offer_payload, request_payload


def _save(listing_repo, payload, sender_id="56955555555@c.us"):
    listing_repo.save(Listing.model_validate(payload), SenderInfo.from_sender_id(sender_id))


def test_sheet_created_with_headers(listing_repo, store):
    _save(listing_repo, offer_payload())

    assert store.sheets["konecte"][0] == LISTING_SHEET_HEADERS
    assert len(store.sheets["konecte"][1]) == 25


def test_existing_sheet_is_not_given_new_headers(listing_repo, store):
    store.sheets["konecte"] = [list(LISTING_SHEET_HEADERS)]

    _save(listing_repo, offer_payload())

    assert len(store.sheets["konecte"]) == 2


def test_find_offers_filters_and_orders_newest_first(listing_repo):
    _save(listing_repo, offer_payload(valor="100", opcion_comuna="Ñuñoa"))
    _save(listing_repo, request_payload(opcion_comuna="Ñuñoa"))
    _save(listing_repo, offer_payload(valor="200", propiedad="Casa"))
    _save(listing_repo, offer_payload(valor="300", opcion_comuna="Santiago", opcion_comuna_2="Ñuñoa"))

    records = listing_repo.find_offers(
        SearchCriteria(property_category="departamento", operation_type="ARRIENDO", commune="nunoa")
    )

    assert [r.listing.price for r in records] == ["300", "100"]


def test_find_offers_limit(listing_repo):
    for price in range(4):
        _save(listing_repo, offer_payload(valor=str(price + 1)))

    records = listing_repo.find_offers(SearchCriteria(), limit=2)

    assert [r.listing.price for r in records] == ["4", "3"]


def test_listing_row_round_trip(listing_repo):
    _save(listing_repo, offer_payload(opcion_comuna_2="Providencia", telefono="+56 9 1234 5678"))

    [record] = listing_repo.find_offers(SearchCriteria())

    assert record.listing.commune_options == ["Ñuñoa", "Providencia"]
    assert record.contact == "56912345678"
    assert record.sender_phone == "56955555555"


def test_alert_row_round_trip(alert_repo, store):
    alert = SearchAlert.from_criteria(
        "56912345678@c.us",
        SearchCriteria(commune="Ñuñoa", max_price="600000", currency="CLP", operation_type="Arriendo"),
    )
    alert_repo.create(alert)

    assert store.sheets["AlertasBusquedas"][0] == ALERT_SHEET_HEADERS
    [loaded] = alert_repo.list_active()
    assert loaded.alert_id == alert.alert_id
    assert loaded.alert_id.startswith("ALERTA-")
    assert loaded.budget == "600000"
    assert loaded.other_criteria["tipoOperacion"] == "Arriendo"
    assert loaded.row_number == 2


def test_set_status_and_mark_notified(alert_repo, store):
    alert = alert_repo.create(SearchAlert(sender_id="56912345678@c.us", commune="Ñuñoa"))

    assert alert_repo.mark_notified(alert.alert_id, datetime(2024, 5, 10, 12, 0))
    assert alert_repo.set_status(alert.alert_id, AlertStatus.REMOVED)

    [row] = store.data_rows("AlertasBusquedas")
    assert row[9] == "eliminada"
    assert row[10] == "2024-05-10T12:00:00"
    assert alert_repo.list_active() == []


def test_set_status_unknown_alert(alert_repo):
    assert alert_repo.set_status("ALERTA-0-nada", AlertStatus.REMOVED) is False
