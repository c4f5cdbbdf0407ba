"""
Script para ejecutar el bot de WhatsApp de Konecte.

Levanta un servidor aiohttp que recibe los mensajes del gateway de
WhatsApp y del chat web.

Uso:
    python -m konecte.scripts.run_bot
"""

import asyncio
import sys
from datetime import timedelta
from typing import Optional

import structlog
from aiohttp import web
from pydantic import ValidationError

from konecte.analysis import ClassificationAdapter
from konecte.bot import BotReplyOrchestrator, CommandTable, ConversationStore, PublicationWizard
from konecte.clients import (
    EntitlementService,
    HttpMessagingTransport,
    ListingsService,
    MessagingTransport,
)
from konecte.config import Settings, get_settings
from konecte.database import AlertRepository, ListingRepository, get_spreadsheet_store
from konecte.ingestion import AdSignatureCache, GroupMessageIngestor
from konecte.location import LocationNormalizer
from konecte.logging_config import configure_logging
from konecte.matching import AlertMatcher
from konecte.models import InboundMessage

logger = structlog.get_logger()


class BotApp:
    """Conecta los componentes del bot a partir de la configuración."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.settings = settings

        store = get_spreadsheet_store()
        listing_repo = ListingRepository(store=store)
        alert_repo = AlertRepository(store=store)

        normalizer = LocationNormalizer()
        classifier = ClassificationAdapter()
        self.transport: MessagingTransport = HttpMessagingTransport()

        matcher = AlertMatcher(
            alert_repo=alert_repo,
            transport=self.transport,
            threshold=settings.alert_match_threshold,
        )
        self.ingestor = GroupMessageIngestor(
            classifier=classifier,
            listing_repo=listing_repo,
            matcher=matcher,
            signature_cache=AdSignatureCache(ttl_seconds=settings.ad_signature_ttl_hours * 3600),
            location_normalizer=normalizer,
        )
        wizard = PublicationWizard(
            listings_service=ListingsService(),
            classifier=classifier,
            ingestor=self.ingestor,
            location_normalizer=normalizer,
        )
        self.conversations = ConversationStore(
            ttl=timedelta(minutes=settings.conversation_ttl_minutes)
        )
        commands = CommandTable(
            transport=self.transport,
            alert_repo=alert_repo,
            listing_repo=listing_repo,
            wizard=wizard,
            max_results=settings.max_search_results,
        )
        self.orchestrator = BotReplyOrchestrator(
            entitlement=EntitlementService(),
            conversations=self.conversations,
            commands=commands,
            wizard=wizard,
            classifier=classifier,
            listing_repo=listing_repo,
            alert_repo=alert_repo,
            ingestor=self.ingestor,
            location_normalizer=normalizer,
            max_results=settings.max_search_results,
        )

    async def process(self, message: InboundMessage) -> None:
        """Procesa un mensaje entrante (grupo o chat directo)."""
        if message.is_group_message:
            await self.ingestor.handle(message)
            return

        self.conversations.sweep()
        reply = await self.orchestrator.reply(
            message.text, message.sender_id, message.sender_name
        )
        if not reply:
            return

        try:
            await self.transport.send_text(message.sender_id, reply)
        except Exception as e:
            logger.error(
                "Error enviando respuesta",
                sender_id=message.sender_id,
                stage="send_reply",
                error=str(e),
            )


def build_web_app(bot: BotApp) -> web.Application:
    """Aplicación aiohttp con el webhook de mensajes y el health check."""
    app = web.Application()
    expected_token = bot.settings.webhook_token

    async def handle_message(request: web.Request) -> web.Response:
        if expected_token and request.headers.get("X-Webhook-Token") != expected_token:
            return web.Response(text="forbidden", status=403)

        try:
            payload = await request.json()
            message = InboundMessage.model_validate(payload)
        except (ValueError, ValidationError) as e:
            logger.warning("Payload de webhook inválido", stage="webhook", error=str(e))
            return web.Response(text="invalid_payload", status=400)

        await bot.process(message)
        return web.Response(text="ok")

    async def health(_: web.Request) -> web.Response:
        return web.Response(text="ok")

    app.router.add_post("/webhook/message", handle_message)
    app.router.add_get("/health", health)
    return app


async def run_webhook(bot: BotApp, listen: str, port: int):
    runner = web.AppRunner(build_web_app(bot))
    await runner.setup()
    site = web.TCPSite(runner, host=listen, port=port)

    try:
        await site.start()
        logger.info(
            "Webhook activo",
            message_path="/webhook/message",
            health_path="/health",
            listen=listen,
            port=port,
        )
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def main():
    """Entry point del bot."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Iniciando bot de WhatsApp Konecte...")

    try:
        bot = BotApp(settings)
        asyncio.run(
            run_webhook(
                bot=bot,
                listen=settings.webhook_listen,
                port=settings.webhook_port,
            )
        )
    except KeyboardInterrupt:
        logger.info("Bot detenido por usuario")
        sys.exit(0)
    except Exception as e:
        logger.error("Error fatal en bot", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
