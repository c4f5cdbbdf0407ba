import pytest

from konecte.bot import messages
from konecte.bot.commands import parse_command
from konecte.models import ConversationContext, LastQuestion, Listing, SearchAlert, SenderInfo

from conftest import offer_payload

SENDER = "56912345678@c.us"


def _seed_offer(listing_repo, **overrides):
    listing = Listing.model_validate(offer_payload(**overrides))
    listing_repo.save(listing, SenderInfo.from_sender_id("56955555555@c.us"))


@pytest.mark.parametrize(
    "text, expected",
    [
        ("!EliminarAlerta 2", ("!eliminaralerta", ["2"])),
        ("!propiedades venta las condes", ("!propiedades", ["venta", "las", "condes"])),
        ("  !ayuda  ", ("!ayuda", [])),
        ("", ("", [])),
    ],
)
def test_parse_command(text, expected):
    assert parse_command(text) == expected


async def test_unknown_command_is_not_handled(commands, transport):
    assert await commands.dispatch("!nada", SENDER, ConversationContext()) is False
    assert transport.sent == []


async def test_publish_enters_wizard(commands, transport):
    context = ConversationContext()

    assert await commands.dispatch("!publicar", SENDER, context)

    assert context.last_question == LastQuestion.AWAITING_PUBLICATION_TYPE
    assert transport.messages_to(SENDER) == [messages.PUBLICATION_TYPE_PROMPT]


async def test_my_alerts_without_alerts(commands, transport):
    await commands.dispatch("!misalertas", SENDER, ConversationContext())

    assert transport.messages_to(SENDER) == [messages.NO_ALERTS]


async def test_my_alerts_lists_only_own_active_alerts(commands, alert_repo, transport):
    alert_repo.create(SearchAlert(sender_id=SENDER, property_category="Casa", commune="Las Condes"))
    alert_repo.create(SearchAlert(sender_id="56900000000@c.us", commune="Ñuñoa"))
    alert_repo.create(SearchAlert(sender_id=SENDER, commune="Providencia", bedrooms_min="2"))

    await commands.dispatch("!misalertas", SENDER, ConversationContext())

    [text] = transport.messages_to(SENDER)
    assert "1. Casa en Las Condes" in text
    assert "2. Propiedad en Providencia 2+ dorm." in text
    assert "Ñuñoa" not in text


async def test_remove_alert(commands, alert_repo, transport):
    alert_repo.create(SearchAlert(sender_id=SENDER, commune="Las Condes"))
    second = alert_repo.create(SearchAlert(sender_id=SENDER, commune="Providencia"))

    await commands.dispatch("!eliminaralerta 2", SENDER, ConversationContext())

    remaining = alert_repo.list_for_sender(SENDER)
    assert [a.commune for a in remaining] == ["Las Condes"]
    assert second.alert_id not in {a.alert_id for a in remaining}
    assert transport.messages_to(SENDER) == [messages.alert_removed(second)]


@pytest.mark.parametrize("text", ["!eliminaralerta", "!eliminaralerta dos"])
async def test_remove_alert_usage(commands, transport, text):
    await commands.dispatch(text, SENDER, ConversationContext())

    assert transport.messages_to(SENDER) == [messages.REMOVE_ALERT_USAGE]


async def test_remove_alert_out_of_range(commands, alert_repo, transport):
    alert_repo.create(SearchAlert(sender_id=SENDER, commune="Las Condes"))

    await commands.dispatch("!eliminaralerta 5", SENDER, ConversationContext())

    assert transport.messages_to(SENDER) == [messages.alert_not_found(5, 1)]
    assert len(alert_repo.list_for_sender(SENDER)) == 1


async def test_properties_with_filters(commands, listing_repo, transport):
    _seed_offer(listing_repo, tipo_operacion="Venta", opcion_comuna="Las Condes")
    _seed_offer(listing_repo, tipo_operacion="Arriendo", opcion_comuna="Las Condes")
    _seed_offer(listing_repo, tipo_operacion="Venta", opcion_comuna="Ñuñoa")

    await commands.dispatch("!propiedades venta las condes", SENDER, ConversationContext())

    [text] = transport.messages_to(SENDER)
    assert text.startswith("🏠 *Últimas propiedades publicadas (1):*")
    assert "Las Condes" in text


async def test_properties_without_results(commands, transport):
    await commands.dispatch("!propiedades arriendo", SENDER, ConversationContext())

    assert transport.messages_to(SENDER) == [messages.NO_PROPERTIES]


async def test_cancel_when_idle(commands, transport):
    await commands.dispatch("!cancelar", SENDER, ConversationContext())

    assert transport.messages_to(SENDER) == [messages.NOTHING_TO_CANCEL]
