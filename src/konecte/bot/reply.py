"""
Orquestador de respuestas del bot.

Recibe el texto de un chat directo (WhatsApp o web), verifica acceso y
decide la respuesta. Prioridad estricta en idle:

1. Comando (!...)
2. Saludo -> menú
3. Opción de menú (buscar / publicar)
4. Sí/No a la pregunta de crear alerta
5. Descripción pedida por el menú de búsqueda -> búsqueda con IA
6. Texto con palabras inmobiliarias -> búsqueda con IA (u oferta si el
   texto la declara: "ofrezco", "vendo"...)
7. Ayuda por defecto

Devuelve None cuando un handler ya envió su propia respuesta.
"""

from typing import Optional

import structlog

from konecte.analysis.classifier import ClassificationAdapter
from konecte.bot import messages
from konecte.bot.commands import CommandTable
from konecte.bot.parsing import (
    clean_input,
    declares_offer,
    is_greeting,
    is_no,
    is_publish_menu,
    is_search_menu,
    is_yes,
    mentions_property,
)
from konecte.bot.state import ConversationStore
from konecte.bot.wizard import PublicationWizard
from konecte.clients.entitlement import EntitlementService
from konecte.database import AlertRepository, ListingRepository, StoreError, StorePermissionError
from konecte.ingestion.group_handler import GroupMessageIngestor
from konecte.location.normalizer import LocationNormalizer
from konecte.models.alert import SearchAlert, SearchCriteria
from konecte.models.conversation import ConversationContext, LastQuestion
from konecte.models.listing import Listing, ListingIntent, SenderInfo

logger = structlog.get_logger()


class BotReplyOrchestrator:
    """Punto de entrada de los mensajes directos."""

    def __init__(
        self,
        entitlement: EntitlementService,
        conversations: ConversationStore,
        commands: CommandTable,
        wizard: PublicationWizard,
        classifier: ClassificationAdapter,
        listing_repo: ListingRepository,
        alert_repo: AlertRepository,
        ingestor: GroupMessageIngestor,
        location_normalizer: LocationNormalizer,
        max_results: int = 5,
    ):
        self.entitlement = entitlement
        self.conversations = conversations
        self.commands = commands
        self.wizard = wizard
        self.classifier = classifier
        self.listing_repo = listing_repo
        self.alert_repo = alert_repo
        self.ingestor = ingestor
        self.location_normalizer = location_normalizer
        self.max_results = max_results

    async def reply(
        self,
        text: str,
        sender_id: str,
        sender_name: Optional[str] = None,
    ) -> Optional[str]:
        """
        Respuesta para un mensaje directo. Nunca lanza excepciones.

        Returns:
            Texto a enviar, o None si ya se respondió (comandos).
        """
        try:
            denial = await self._check_access(sender_id)
            if denial:
                return denial

            raw = (text or "").strip()
            cleaned = clean_input(raw)
            if not cleaned:
                return None

            async with self.conversations.lock(sender_id):
                return await self._reply(raw, cleaned, sender_id, sender_name)
        except Exception as e:
            logger.exception(
                "Error inesperado respondiendo mensaje",
                sender_id=sender_id,
                stage="reply",
                error=str(e),
            )
            return messages.DEFAULT_REPLY

    async def _check_access(self, sender_id: str) -> Optional[str]:
        """Mensaje de rechazo, o None si el remitente tiene acceso."""
        try:
            result = await self.entitlement.check_access(sender_id)
        except Exception as e:
            logger.error("Error verificando acceso", sender_id=sender_id, stage="access", error=str(e))
            return messages.ACCESS_ERROR

        if not result.has_access:
            logger.info("Acceso denegado", sender_id=sender_id, reason=result.reason)
            return messages.ACCESS_DENIED
        return None

    async def _reply(
        self, raw: str, cleaned: str, sender_id: str, sender_name: Optional[str]
    ) -> Optional[str]:
        context = self.conversations.get(sender_id)
        sender = self.ingestor.sender_info(sender_id, sender_name)
        logger.debug(
            "Mensaje directo",
            sender_id=sender_id,
            last_question=context.last_question.value if context.last_question else None,
        )

        if cleaned.startswith("!"):
            return await self._command(cleaned, sender_id, context)

        if context.in_wizard:
            return await self.wizard.handle(context, raw, cleaned, sender)

        if is_greeting(cleaned):
            return messages.MENU

        if is_search_menu(cleaned):
            context.clear()
            context.last_question = LastQuestion.AWAITING_SEARCH_DETAILS
            return messages.SEARCH_PROMPT

        if is_publish_menu(cleaned):
            return self.wizard.start(context)

        if context.last_question == LastQuestion.CREATE_ALERT:
            if is_yes(cleaned):
                return self._create_alert(context, sender_id)
            if is_no(cleaned):
                context.clear()
                return messages.ALERT_DECLINED

        if context.last_question == LastQuestion.AWAITING_SEARCH_DETAILS:
            context.clear()
            return await self._search(context, raw, sender)

        if mentions_property(cleaned):
            return await self._search(context, raw, sender, accept_offers=declares_offer(cleaned))

        return messages.DEFAULT_REPLY

    async def _command(self, cleaned: str, sender_id: str, context: ConversationContext) -> Optional[str]:
        try:
            handled = await self.commands.dispatch(cleaned, sender_id, context)
        except Exception as e:
            logger.error("Error procesando comando", sender_id=sender_id, stage="command", error=str(e))
            return messages.COMMAND_ERROR
        return None if handled else messages.UNKNOWN_COMMAND

    def _create_alert(self, context: ConversationContext, sender_id: str) -> str:
        criteria = context.search_criteria or SearchCriteria()
        context.clear()
        try:
            self.alert_repo.create(SearchAlert.from_criteria(sender_id, criteria))
        except StoreError as e:
            logger.error("Error creando alerta", sender_id=sender_id, stage="create_alert", error=str(e))
            if isinstance(e, StorePermissionError):
                return messages.STORE_PERMISSION_ERROR
            return messages.ALERT_ERROR
        return messages.ALERT_CREATED

    def _criteria_for(self, listing: Listing) -> SearchCriteria:
        location = self.location_normalizer.normalize_location(listing.commune, listing.region)
        criteria = SearchCriteria.from_listing(listing)
        criteria.commune = location.commune
        criteria.region = location.region
        return criteria

    async def _search(
        self,
        context: ConversationContext,
        text: str,
        sender: SenderInfo,
        accept_offers: bool = False,
    ) -> str:
        """
        Búsqueda con IA sobre las ofertas guardadas.

        El primer anuncio clasificado define los criterios, sea cual sea su
        intención. Solo con accept_offers (el texto declara una oferta) las
        ofertas se registran en lugar de buscarse.
        """
        listings = await self.classifier.classify(text)
        if not listings:
            return messages.NO_CRITERIA

        first = listings[0]
        if accept_offers and first.intent == ListingIntent.OFFER:
            return await self._register_offers(listings, sender)

        criteria = self._criteria_for(first)
        if criteria.is_empty():
            return messages.NO_CRITERIA

        try:
            records = self.listing_repo.find_offers(criteria)
        except StoreError as e:
            logger.error("Error buscando propiedades", sender_id=sender.uid, stage="search", error=str(e))
            if isinstance(e, StorePermissionError):
                return messages.STORE_PERMISSION_ERROR
            return messages.SEARCH_ERROR

        if not records:
            context.search_criteria = criteria
            context.last_question = LastQuestion.CREATE_ALERT
            logger.info("Búsqueda sin resultados", sender_id=sender.uid)
            return messages.no_results(criteria)

        logger.info("Búsqueda con resultados", sender_id=sender.uid, total=len(records))
        return messages.search_results(records[: self.max_results], len(records))

    async def _register_offers(self, listings: list[Listing], sender: SenderInfo) -> str:
        offers = [l for l in listings if l.intent == ListingIntent.OFFER]
        report = await self.ingestor.ingest(offers, sender)
        if report.permission_denied:
            return messages.STORE_PERMISSION_ERROR
        if report.failed and not report.saved:
            return messages.STORE_ERROR
        if report.duplicates and not report.saved:
            return messages.OFFER_DUPLICATE
        return messages.OFFER_RECEIVED
