"""
Comandos con prefijo "!".

Cada handler envía su propia respuesta por el transporte; el
orquestador devuelve None para no responder dos veces.
"""

from typing import Awaitable, Callable, Optional

import structlog

from konecte.bot import messages
from konecte.bot.wizard import PublicationWizard
from konecte.clients.transport import MessagingTransport
from konecte.database import AlertRepository, ListingRepository
from konecte.models.alert import AlertStatus, SearchCriteria
from konecte.models.conversation import ConversationContext

logger = structlog.get_logger()

CommandHandler = Callable[[list[str], str, ConversationContext], Awaitable[None]]

OPERATION_FILTERS = {"arriendo": "Arriendo", "venta": "Venta"}


def parse_command(text: str) -> tuple[str, list[str]]:
    """'!eliminaralerta 2' -> ('!eliminaralerta', ['2'])."""
    parts = text.strip().split()
    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


class CommandTable:
    """Tabla de comandos disponibles para los usuarios."""

    def __init__(
        self,
        transport: MessagingTransport,
        alert_repo: AlertRepository,
        listing_repo: ListingRepository,
        wizard: PublicationWizard,
        max_results: int = 5,
    ):
        self.transport = transport
        self.alert_repo = alert_repo
        self.listing_repo = listing_repo
        self.wizard = wizard
        self.max_results = max_results
        self._handlers: dict[str, CommandHandler] = {
            "!ayuda": self.help,
            "!publicar": self.publish,
            "!misalertas": self.my_alerts,
            "!eliminaralerta": self.remove_alert,
            "!propiedades": self.properties,
            "!cancelar": self.cancel,
        }

    def get(self, command: str) -> Optional[CommandHandler]:
        return self._handlers.get(command)

    async def dispatch(self, text: str, sender_id: str, context: ConversationContext) -> bool:
        """
        Ejecuta el comando. Devuelve False si el comando no existe.

        Los errores de los handlers se propagan al orquestador.
        """
        command, args = parse_command(text)
        handler = self.get(command)
        if handler is None:
            logger.info("Comando desconocido", sender_id=sender_id, command=command)
            return False
        logger.info("Comando recibido", sender_id=sender_id, command=command)
        await handler(args, sender_id, context)
        return True

    async def help(self, args: list[str], sender_id: str, context: ConversationContext) -> None:
        await self.transport.send_text(sender_id, messages.WELCOME)

    async def publish(self, args: list[str], sender_id: str, context: ConversationContext) -> None:
        await self.transport.send_text(sender_id, self.wizard.start(context))

    async def my_alerts(self, args: list[str], sender_id: str, context: ConversationContext) -> None:
        alerts = self.alert_repo.list_for_sender(sender_id)
        if not alerts:
            await self.transport.send_text(sender_id, messages.NO_ALERTS)
            return
        await self.transport.send_text(sender_id, messages.alert_list(alerts))

    async def remove_alert(self, args: list[str], sender_id: str, context: ConversationContext) -> None:
        if not args or not args[0].isdigit():
            await self.transport.send_text(sender_id, messages.REMOVE_ALERT_USAGE)
            return

        number = int(args[0])
        alerts = self.alert_repo.list_for_sender(sender_id)
        if not 1 <= number <= len(alerts):
            await self.transport.send_text(sender_id, messages.alert_not_found(number, len(alerts)))
            return

        alert = alerts[number - 1]
        self.alert_repo.set_status(alert.alert_id, AlertStatus.REMOVED)
        await self.transport.send_text(sender_id, messages.alert_removed(alert))

    async def properties(self, args: list[str], sender_id: str, context: ConversationContext) -> None:
        operation = None
        if args and args[0].lower() in OPERATION_FILTERS:
            operation = OPERATION_FILTERS[args[0].lower()]
            args = args[1:]
        commune = " ".join(args) or None

        records = self.listing_repo.find_offers(
            SearchCriteria(operation_type=operation, commune=commune)
        )
        if not records:
            await self.transport.send_text(sender_id, messages.NO_PROPERTIES)
            return

        shown = records[: self.max_results]
        title = f"🏠 *Últimas propiedades publicadas ({len(records)}):*"
        await self.transport.send_text(
            sender_id, messages.search_results(shown, len(records), title=title)
        )

    async def cancel(self, args: list[str], sender_id: str, context: ConversationContext) -> None:
        if context.is_idle:
            await self.transport.send_text(sender_id, messages.NOTHING_TO_CANCEL)
            return
        context.clear()
        await self.transport.send_text(sender_id, messages.CANCELLED)
