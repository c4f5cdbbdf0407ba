"""
Bot conversacional.

Orquesta las respuestas a chats directos: comandos, asistente de
publicación, búsquedas y alertas.
"""

from konecte.bot.commands import CommandTable
from konecte.bot.reply import BotReplyOrchestrator
from konecte.bot.state import ConversationStore
from konecte.bot.wizard import PublicationWizard

__all__ = [
    "BotReplyOrchestrator",
    "CommandTable",
    "ConversationStore",
    "PublicationWizard",
]
