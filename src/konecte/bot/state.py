"""
Estado de conversaciones en memoria.

Una conversación sin actividad por más de `ttl` vuelve a idle. El estado
no sobrevive a un reinicio del proceso.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from konecte.models.conversation import ConversationContext

logger = structlog.get_logger()


class ConversationStore:
    """Contextos por remitente más un lock por remitente."""

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=30),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ttl = ttl
        self._clock = clock or datetime.now
        self._contexts: dict[str, ConversationContext] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, sender_id: str) -> bool:
        return sender_id in self._contexts

    def _expired(self, context: ConversationContext, now: datetime) -> bool:
        return now - context.updated_at > self.ttl

    def get(self, sender_id: str) -> ConversationContext:
        """Contexto del remitente; se crea o se reinicia si expiró."""
        now = self._clock()
        context = self._contexts.get(sender_id)
        if context is not None and self._expired(context, now):
            logger.info(
                "Conversación expirada, se reinicia",
                sender_id=sender_id,
                last_question=context.last_question.value if context.last_question else None,
            )
            context = None
        if context is None:
            context = ConversationContext(updated_at=now)
            self._contexts[sender_id] = context
        context.updated_at = now
        return context

    def clear(self, sender_id: str) -> None:
        self._contexts.pop(sender_id, None)

    def sweep(self) -> int:
        """
        Elimina contextos expirados y los locks libres sin contexto.

        Returns:
            Cantidad de contextos borrados.
        """
        now = self._clock()
        expired = [s for s, c in self._contexts.items() if self._expired(c, now)]
        for sender_id in expired:
            del self._contexts[sender_id]
        idle_locks = [
            s for s, lock in self._locks.items() if s not in self._contexts and not lock.locked()
        ]
        for sender_id in idle_locks:
            del self._locks[sender_id]
        return len(expired)

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    def lock(self, sender_id: str) -> asyncio.Lock:
        """Serializa los turnos de un mismo remitente."""
        if sender_id not in self._locks:
            self._locks[sender_id] = asyncio.Lock()
        return self._locks[sender_id]
