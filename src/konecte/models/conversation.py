"""
Contexto de conversación por remitente (número de WhatsApp o id web).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from konecte.models.alert import SearchCriteria


class LastQuestion(str, Enum):
    """Pregunta pendiente de respuesta; None equivale a idle."""

    AWAITING_PUBLICATION_TYPE = "awaiting_publication_type"
    PROP_AWAITING_TITLE = "prop_awaiting_title"
    PROP_AWAITING_DESCRIPTION = "prop_awaiting_description"
    PROP_AWAITING_TRANSACTION = "prop_awaiting_transaction"
    PROP_AWAITING_CATEGORY = "prop_awaiting_category"
    PROP_AWAITING_PRICE = "prop_awaiting_price"
    PROP_AWAITING_LOCATION = "prop_awaiting_location"
    PROP_AWAITING_AREA = "prop_awaiting_area"
    PROP_AWAITING_ROOMS = "prop_awaiting_rooms"
    PROP_AWAITING_FEATURES = "prop_awaiting_features"
    PROP_AWAITING_CONFIRMATION = "prop_awaiting_confirmation"
    AWAITING_REQUEST_DETAILS = "awaiting_request_details"
    AWAITING_SEARCH_DETAILS = "awaiting_search_details"
    CREATE_ALERT = "createAlert"


# Pasos del asistente de publicación, en orden
PROPERTY_WIZARD_STEPS = [
    LastQuestion.PROP_AWAITING_TITLE,
    LastQuestion.PROP_AWAITING_DESCRIPTION,
    LastQuestion.PROP_AWAITING_TRANSACTION,
    LastQuestion.PROP_AWAITING_CATEGORY,
    LastQuestion.PROP_AWAITING_PRICE,
    LastQuestion.PROP_AWAITING_LOCATION,
    LastQuestion.PROP_AWAITING_AREA,
    LastQuestion.PROP_AWAITING_ROOMS,
    LastQuestion.PROP_AWAITING_FEATURES,
    LastQuestion.PROP_AWAITING_CONFIRMATION,
]

WIZARD_STATES = set(PROPERTY_WIZARD_STEPS) | {
    LastQuestion.AWAITING_PUBLICATION_TYPE,
    LastQuestion.AWAITING_REQUEST_DETAILS,
}


@dataclass
class ConversationContext:
    """Estado en memoria de la conversación con un remitente."""

    last_question: Optional[LastQuestion] = None
    publication_data: dict = field(default_factory=dict)
    search_criteria: Optional[SearchCriteria] = None
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_idle(self) -> bool:
        return self.last_question is None

    @property
    def in_wizard(self) -> bool:
        return self.last_question in WIZARD_STATES

    def clear(self) -> None:
        """Vuelve a idle descartando lo acumulado."""
        self.last_question = None
        self.publication_data = {}
        self.search_criteria = None
