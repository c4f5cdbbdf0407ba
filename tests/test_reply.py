from konecte.bot import messages
from konecte.clients.exceptions import EntitlementError
from konecte.database import StoreError
from konecte.database.exceptions import StorePermissionError
from konecte.models import LastQuestion, Listing, SearchAlert, SenderInfo

from conftest import llm_json, offer_payload, request_payload

SENDER = "56912345678@c.us"
WEB_USER = "user_abc123"


def _seed_offer(listing_repo, **overrides):
    listing = Listing.model_validate(offer_payload(**overrides))
    listing_repo.save(listing, SenderInfo.from_sender_id("56955555555@c.us", name="Pedro"))


async def test_greeting_shows_menu(orchestrator):
    assert await orchestrator.reply("Hola", SENDER) == messages.MENU
    assert await orchestrator.reply("*buenas tardes*", SENDER) == messages.MENU


async def test_search_menu_option(orchestrator, conversations):
    assert await orchestrator.reply("1", SENDER) == messages.SEARCH_PROMPT
    assert conversations.get(SENDER).last_question == LastQuestion.AWAITING_SEARCH_DETAILS


async def test_access_denied(orchestrator, entitlement, provider):
    entitlement.has_access = False

    assert await orchestrator.reply("hola", SENDER) == messages.ACCESS_DENIED
    assert provider.calls == []


async def test_denied_senders_leave_no_state(orchestrator, entitlement, conversations):
    entitlement.has_access = False

    for n in range(50):
        await orchestrator.reply("hola", f"5690000{n:04d}@c.us")

    assert conversations.lock_count == 0
    assert "56900000001@c.us" not in conversations


async def test_access_check_failure(orchestrator, entitlement):
    entitlement.error = EntitlementError("timeout")

    assert await orchestrator.reply("hola", WEB_USER) == messages.ACCESS_ERROR
    assert entitlement.checked == [WEB_USER]


async def test_unrelated_text_gets_default_reply(orchestrator, provider):
    assert await orchestrator.reply("qué hora es?", SENDER) == messages.DEFAULT_REPLY
    assert provider.calls == []


async def test_empty_text_gets_no_reply(orchestrator):
    assert await orchestrator.reply("   ", SENDER) is None


async def test_search_with_results(orchestrator, provider, listing_repo):
    _seed_offer(listing_repo)
    _seed_offer(listing_repo, opcion_comuna="Vitacura")
    provider.queue(llm_json(request_payload(opcion_comuna="nunoa")))

    reply = await orchestrator.reply("busco depto en arriendo en ñuñoa", SENDER)

    assert reply.startswith("🏠 *Encontré 1 propiedades")
    assert "Ñuñoa" in reply
    assert "Vitacura" not in reply
    assert "56955555555" in reply


async def test_search_results_are_capped(orchestrator, provider, listing_repo):
    for price in range(7):
        _seed_offer(listing_repo, valor=str(500000 + price))
    provider.queue(llm_json(request_payload(opcion_comuna="Ñuñoa")))

    reply = await orchestrator.reply("busco depto en ñuñoa", SENDER)

    assert "*Propiedad 5:*" in reply
    assert "*Propiedad 6:*" not in reply
    assert "...y 2 propiedades más." in reply


async def test_no_results_then_yes_creates_alert(orchestrator, provider, alert_repo, conversations):
    provider.queue(llm_json(request_payload(opcion_comuna="Providencia", dormitorios="3")))

    reply = await orchestrator.reply("busco depto en providencia", SENDER)

    assert reply.startswith("😔 *No encontré propiedades ofrecidas*")
    assert conversations.get(SENDER).last_question == LastQuestion.CREATE_ALERT

    assert await orchestrator.reply("Sí", SENDER) == messages.ALERT_CREATED
    [alert] = alert_repo.list_active()
    assert alert.sender_id == SENDER
    assert alert.commune == "Providencia"
    assert alert.region == "Metropolitana de Santiago"
    assert alert.bedrooms_min == "3"
    assert alert.other_criteria["tipoOperacion"] == "Arriendo"
    assert conversations.get(SENDER).is_idle


async def test_no_results_then_no_declines(orchestrator, provider, alert_repo, conversations):
    provider.queue(llm_json(request_payload()))
    await orchestrator.reply("busco depto en providencia", SENDER)

    assert await orchestrator.reply("no", SENDER) == messages.ALERT_DECLINED
    assert alert_repo.list_active() == []
    assert conversations.get(SENDER).is_idle


async def test_yes_without_pending_question_falls_through(orchestrator, alert_repo):
    assert await orchestrator.reply("sí", SENDER) == messages.DEFAULT_REPLY
    assert alert_repo.list_active() == []


async def test_alert_store_permission_error(orchestrator, provider, store):
    provider.queue(llm_json(request_payload()))
    await orchestrator.reply("busco depto en providencia", SENDER)
    store.append_error = StorePermissionError("PERMISSION_DENIED")

    assert await orchestrator.reply("si", SENDER) == messages.STORE_PERMISSION_ERROR


async def test_search_store_error(orchestrator, provider, store):
    provider.queue(llm_json(request_payload()))
    store.error = StoreError("backend caído")

    assert await orchestrator.reply("busco depto en providencia", SENDER) == messages.SEARCH_ERROR


async def test_unclassifiable_search(orchestrator, provider):
    provider.queue(llm_json())

    assert await orchestrator.reply("busco algo", SENDER) == messages.NO_CRITERIA


async def test_direct_offer_is_registered(orchestrator, provider, store):
    provider.queue(llm_json(offer_payload()), llm_json(offer_payload()))

    assert await orchestrator.reply("ofrezco depto en ñuñoa", SENDER) == messages.OFFER_RECEIVED
    assert len(store.data_rows("konecte")) == 1

    assert await orchestrator.reply("ofrezco depto en ñuñoa", SENDER) == messages.OFFER_DUPLICATE
    assert len(store.data_rows("konecte")) == 1


async def test_unexpected_error_returns_default_reply(orchestrator, provider, listing_repo, monkeypatch):
    provider.queue(llm_json(request_payload()))

    def boom(criteria, limit=None):
        raise RuntimeError("bug")

    monkeypatch.setattr(listing_repo, "find_offers", boom)

    assert await orchestrator.reply("busco depto en providencia", SENDER) == messages.DEFAULT_REPLY


async def test_command_replies_through_transport(orchestrator, transport):
    assert await orchestrator.reply("!ayuda", SENDER) is None
    assert transport.messages_to(SENDER) == [messages.WELCOME]


async def test_unknown_command(orchestrator, transport):
    assert await orchestrator.reply("!nada", SENDER) == messages.UNKNOWN_COMMAND
    assert transport.sent == []


async def test_command_failure_is_reported(orchestrator, store):
    store.error = StoreError("backend caído")

    assert await orchestrator.reply("!misalertas", SENDER) == messages.COMMAND_ERROR


async def test_command_takes_priority_over_wizard(orchestrator, conversations, transport):
    await orchestrator.reply("publicar", SENDER)

    assert await orchestrator.reply("!cancelar", SENDER) is None
    assert conversations.get(SENDER).is_idle
    assert transport.messages_to(SENDER) == [messages.CANCELLED]


async def test_conversations_are_per_sender(orchestrator):
    await orchestrator.reply("publicar", SENDER)

    assert await orchestrator.reply("hola", WEB_USER) == messages.MENU
    assert await orchestrator.reply("1", SENDER) == messages.PROP_TITLE


async def test_search_description_is_never_published(
    orchestrator, provider, listing_repo, alert_repo, store, transport, conversations, monkeypatch
):
    _seed_offer(listing_repo, opcion_comuna="Vitacura")
    alert_repo.create(SearchAlert(sender_id="56900000000@c.us", commune="Ñuñoa"))
    provider.queue(llm_json(offer_payload()))
    searched = []
    find_offers = listing_repo.find_offers

    def recording_find_offers(criteria, limit=None):
        searched.append(criteria)
        return find_offers(criteria, limit)

    monkeypatch.setattr(listing_repo, "find_offers", recording_find_offers)

    assert await orchestrator.reply("buscar", SENDER) == messages.SEARCH_PROMPT
    reply = await orchestrator.reply("departamento en ñuñoa 2 dormitorios", SENDER)

    [criteria] = searched
    assert criteria.commune == "Ñuñoa"
    assert reply == messages.no_results(criteria)
    assert len(store.data_rows("konecte")) == 1
    assert transport.sent == []
    assert conversations.get(SENDER).last_question == LastQuestion.CREATE_ALERT


async def test_property_text_without_offer_word_is_a_search(orchestrator, provider, listing_repo, store):
    _seed_offer(listing_repo)
    provider.queue(llm_json(offer_payload()))

    reply = await orchestrator.reply("depto 2 dormitorios en ñuñoa", SENDER)

    assert reply.startswith("🏠 *Encontré 1 propiedades")
    assert len(store.data_rows("konecte")) == 1
