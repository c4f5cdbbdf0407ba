"""
Asistente de publicación (propiedad o solicitud).

Flujo de propiedad:
título → descripción → operación → tipo → valor → comuna → superficie →
dormitorios/baños/estacionamientos → características → confirmación

Los pasos de texto aceptan cualquier respuesta no vacía; los numéricos
vuelven a preguntar si no se puede leer un número.
"""

from typing import Optional

import structlog

from konecte.analysis.classifier import ClassificationAdapter
from konecte.bot import messages
from konecte.bot.parsing import is_no, is_yes, parse_area, parse_price, parse_rooms
from konecte.clients.exceptions import ListingsServiceError
from konecte.clients.listings_api import ListingsService
from konecte.ingestion.group_handler import GroupMessageIngestor
from konecte.location.normalizer import LocationNormalizer
from konecte.models.conversation import ConversationContext, LastQuestion
from konecte.models.listing import Listing, ListingIntent, SenderInfo

logger = structlog.get_logger()

PROPERTY_CHOICES = ["1", "propiedad", "una propiedad", "1. una propiedad"]
REQUEST_CHOICES = ["2", "solicitud", "una solicitud", "2. una solicitud"]

# Pasos de texto libre: estado -> (clave en publication_data, siguiente estado, prompt)
TEXT_STEPS = {
    LastQuestion.PROP_AWAITING_TITLE: (
        "titulo", LastQuestion.PROP_AWAITING_DESCRIPTION, messages.PROP_DESCRIPTION,
    ),
    LastQuestion.PROP_AWAITING_DESCRIPTION: (
        "descripcion", LastQuestion.PROP_AWAITING_TRANSACTION, messages.PROP_TRANSACTION,
    ),
    LastQuestion.PROP_AWAITING_TRANSACTION: (
        "operacion", LastQuestion.PROP_AWAITING_CATEGORY, messages.PROP_CATEGORY,
    ),
    LastQuestion.PROP_AWAITING_CATEGORY: (
        "categoria", LastQuestion.PROP_AWAITING_PRICE, messages.PROP_PRICE,
    ),
}


class PublicationWizard:
    """Máquina de estados del asistente de publicación."""

    def __init__(
        self,
        listings_service: ListingsService,
        classifier: ClassificationAdapter,
        ingestor: GroupMessageIngestor,
        location_normalizer: Optional[LocationNormalizer] = None,
    ):
        self.listings_service = listings_service
        self.classifier = classifier
        self.ingestor = ingestor
        self.location_normalizer = location_normalizer

    def start(self, context: ConversationContext) -> str:
        context.clear()
        context.last_question = LastQuestion.AWAITING_PUBLICATION_TYPE
        return messages.PUBLICATION_TYPE_PROMPT

    async def handle(
        self,
        context: ConversationContext,
        text: str,
        cleaned: str,
        sender: SenderInfo,
    ) -> str:
        """
        Procesa una respuesta dentro del asistente.

        Args:
            text: Respuesta original (sin espacios en los extremos)
            cleaned: Respuesta normalizada para comparar opciones
        """
        state = context.last_question
        data = context.publication_data

        if state == LastQuestion.AWAITING_PUBLICATION_TYPE:
            return self._choose_type(context, cleaned)

        if state == LastQuestion.AWAITING_REQUEST_DETAILS:
            return await self._save_request(context, text, sender)

        if state in TEXT_STEPS:
            key, next_state, prompt = TEXT_STEPS[state]
            data[key] = text
            context.last_question = next_state
            return prompt

        if state == LastQuestion.PROP_AWAITING_PRICE:
            parsed = parse_price(text)
            if parsed is None:
                return messages.PROP_PRICE_INVALID
            data["valor"], data["moneda"] = parsed
            context.last_question = LastQuestion.PROP_AWAITING_LOCATION
            return messages.PROP_LOCATION

        if state == LastQuestion.PROP_AWAITING_LOCATION:
            data["comuna"] = self._commune(text)
            context.last_question = LastQuestion.PROP_AWAITING_AREA
            return messages.PROP_AREA

        if state == LastQuestion.PROP_AWAITING_AREA:
            area = parse_area(text)
            if area is None:
                return messages.PROP_AREA_INVALID
            data["superficie"] = area
            context.last_question = LastQuestion.PROP_AWAITING_ROOMS
            return messages.PROP_ROOMS

        if state == LastQuestion.PROP_AWAITING_ROOMS:
            rooms = parse_rooms(text)
            if rooms is None:
                return messages.PROP_ROOMS_INVALID
            data["dormitorios"], data["banos"], data["estacionamientos"] = rooms
            context.last_question = LastQuestion.PROP_AWAITING_FEATURES
            return messages.PROP_FEATURES

        if state == LastQuestion.PROP_AWAITING_FEATURES:
            data["caracteristicas"] = text
            context.last_question = LastQuestion.PROP_AWAITING_CONFIRMATION
            return messages.publication_summary(data)

        if state == LastQuestion.PROP_AWAITING_CONFIRMATION:
            return await self._confirm(context, cleaned, sender)

        logger.warning("Estado de asistente desconocido", sender_id=sender.uid, state=state)
        context.clear()
        return messages.DEFAULT_REPLY

    def _choose_type(self, context: ConversationContext, cleaned: str) -> str:
        if cleaned in PROPERTY_CHOICES:
            context.last_question = LastQuestion.PROP_AWAITING_TITLE
            return messages.PROP_TITLE
        if cleaned in REQUEST_CHOICES:
            context.last_question = LastQuestion.AWAITING_REQUEST_DETAILS
            return messages.REQUEST_DETAILS_PROMPT
        return messages.PUBLICATION_TYPE_REPROMPT

    def _commune(self, text: str) -> str:
        if self.location_normalizer is None:
            return text
        return self.location_normalizer.normalize_location(text, None).commune or text

    def build_payload(self, data: dict) -> dict:
        """Payload para la API de publicaciones."""
        keys = [
            "titulo",
            "operacion",
            "categoria",
            "valor",
            "moneda",
            "comuna",
            "superficie",
            "dormitorios",
            "banos",
            "estacionamientos",
            "caracteristicas",
            "descripcion",
        ]
        return {key: data.get(key) for key in keys}

    async def _confirm(self, context: ConversationContext, cleaned: str, sender: SenderInfo) -> str:
        if is_yes(cleaned):
            payload = self.build_payload(context.publication_data)
            context.clear()
            try:
                await self.listings_service.create_listing(payload, sender.uid)
            except ListingsServiceError as e:
                logger.error(
                    "Error creando publicación",
                    sender_id=sender.uid,
                    stage="create_listing",
                    error=str(e),
                )
                return messages.PUBLISH_ERROR
            return messages.PUBLISH_SUCCESS

        if is_no(cleaned):
            context.clear()
            logger.info("Publicación cancelada por el usuario", sender_id=sender.uid)
            return messages.PUBLISH_CANCELLED

        return messages.CONFIRM_REPROMPT

    async def _save_request(self, context: ConversationContext, text: str, sender: SenderInfo) -> str:
        """Guarda la solicitud descrita por el usuario y vuelve a idle."""
        context.clear()
        listings = await self.classifier.classify(text)
        if listings:
            for listing in listings:
                listing.intent = ListingIntent.REQUEST
        else:
            listings = [Listing(intent=ListingIntent.REQUEST, source_text=text)]

        report = await self.ingestor.ingest(listings, sender)
        if report.permission_denied:
            return messages.STORE_PERMISSION_ERROR
        if report.failed:
            return messages.STORE_ERROR
        return messages.REQUEST_SAVED
