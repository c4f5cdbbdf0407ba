"""
Motor de matching entre ofertas nuevas y alertas de búsqueda.

Cada alerta activa se puntúa contra la oferta con criterios
independientes; no todos tienen que coincidir:

- Tipo de propiedad (contiene / contenido): +2
- Región: +1
- Comuna: +3
- Dormitorios >= mínimo: +2
- Baños >= mínimo: +1
- Precio <= presupuesto: +2

Con score mayor o igual al mínimo (3 por defecto) se notifica al dueño de la alerta.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog

from konecte.clients.transport import MessagingTransport
from konecte.database import AlertRepository, StoreError
from konecte.location.normalizer import normalize_text
from konecte.models.alert import SearchAlert
from konecte.models.listing import Listing, SenderInfo

logger = structlog.get_logger()

DEFAULT_MATCH_THRESHOLD = 3

CATEGORY_WEIGHT = 2
REGION_WEIGHT = 1
COMMUNE_WEIGHT = 3
BEDROOMS_WEIGHT = 2
BATHROOMS_WEIGHT = 1
PRICE_WEIGHT = 2


def normalize_price(price: Any) -> Optional[float]:
    """
    Precio numérico a partir de texto ("$550.000" -> 550000).

    El punto es separador de miles y la coma separador decimal.
    """
    if not price or isinstance(price, bool):
        return None
    if isinstance(price, (int, float)):
        return float(price)

    text = re.sub(r"[^\d.,]", "", str(price))
    text = text.replace(".", "").replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return None


def _to_count(value: Optional[str]) -> Optional[int]:
    digits = re.sub(r"\D", "", normalize_text(value))
    return int(digits) if digits else None


def _overlaps(a: str, b: str) -> bool:
    return bool(a and b) and (a in b or b in a)


@dataclass
class AlertMatch:
    """Resultado de puntuar una alerta contra una oferta."""

    alert: SearchAlert
    score: int = 0
    details: list[str] = field(default_factory=list)


def score_alert(alert: SearchAlert, offer: Listing) -> AlertMatch:
    """Puntúa una alerta contra una oferta."""
    match = AlertMatch(alert=alert)

    offer_category = normalize_text(offer.property_category)
    if _overlaps(offer_category, normalize_text(alert.property_category)):
        match.score += CATEGORY_WEIGHT
        match.details.append(f"Tipo: {offer.property_category}")

    offer_region = normalize_text(offer.region)
    if _overlaps(offer_region, normalize_text(alert.region)):
        match.score += REGION_WEIGHT
        match.details.append(f"Región: {offer.region}")

    offer_commune = normalize_text(offer.commune)
    if _overlaps(offer_commune, normalize_text(alert.commune)):
        match.score += COMMUNE_WEIGHT
        match.details.append(f"Comuna: {offer.commune}")

    offer_bedrooms = _to_count(offer.bedrooms)
    alert_bedrooms = _to_count(alert.bedrooms_min)
    if offer_bedrooms is not None and alert_bedrooms is not None and offer_bedrooms >= alert_bedrooms:
        match.score += BEDROOMS_WEIGHT
        match.details.append(f"Dormitorios: {offer.bedrooms}")

    offer_bathrooms = _to_count(offer.bathrooms)
    alert_bathrooms = _to_count(alert.bathrooms_min)
    if offer_bathrooms is not None and alert_bathrooms is not None and offer_bathrooms >= alert_bathrooms:
        match.score += BATHROOMS_WEIGHT
        match.details.append(f"Baños: {offer.bathrooms}")

    offer_price = normalize_price(offer.price)
    budget = normalize_price(alert.budget)
    if offer_price is not None and budget is not None and offer_price <= budget:
        match.score += PRICE_WEIGHT
        currency = offer.currency.value if offer.currency else ""
        match.details.append(f"Precio: {offer.price} {currency}".strip())

    return match


def _display_phone(phone: Optional[str]) -> str:
    if not phone:
        return ""
    return phone if phone.startswith("+") else f"+{phone}"


def build_notification(offer: Listing, match: AlertMatch, sender: Optional[SenderInfo] = None) -> str:
    """Mensaje de WhatsApp para avisar que una oferta coincide con una alerta."""
    category = offer.property_category or "propiedad"
    commune = offer.commune or "ubicación no especificada"
    currency = offer.currency.value if offer.currency else ""

    lines = [
        "🔔 *¡BUENAS NOTICIAS!* 🎉",
        "",
        f"✨ Se ha publicado una {category} en {commune} que coincide con lo que estabas buscando! 🏡",
        "",
        "*Detalles de la propiedad:* 📋",
        f"• *Tipo:* {offer.property_category or 'No especificado'} 🏠",
        f"• *Ubicación:* {offer.commune or 'No especificada'}"
        + (f", {offer.region}" if offer.region else "")
        + " 📍",
    ]
    if offer.operation_type:
        lines.append(f"• *Operación:* {offer.operation_type} 🔑")
    if offer.bedrooms:
        lines.append(f"• *Dormitorios:* {offer.bedrooms} 🛏️")
    if offer.bathrooms:
        lines.append(f"• *Baños:* {offer.bathrooms} 🚿")
    if offer.price:
        lines.append(f"• *Valor:* {offer.price} {currency}".rstrip() + " 💰")
    if offer.area_m2:
        lines.append(f"• *Superficie:* {offer.area_m2} m² 📐")

    lines += ["", f"*Coincide en:* {', '.join(match.details)} ✅", ""]

    contact = []
    if sender and sender.name:
        contact.append(f"• *Nombre:* {sender.name} 👤")
    phone = _display_phone(offer.contact_phone or (sender.phone if sender else None))
    if phone:
        contact.append(f"• *Teléfono:* {phone} 📱")
    if offer.contact_email:
        contact.append(f"• *Email:* {offer.contact_email} 📧")
    if contact:
        lines.append("*DATOS DE CONTACTO:* 👨‍💼👩‍💼")
        lines += contact
        lines.append("")

    lines.append("Para ver todas tus alertas activas, escribe *!misalertas* 📑")
    return "\n".join(lines)


class AlertMatcher:
    """
    Cruza cada oferta nueva contra las alertas activas y notifica.

    Un envío fallido se registra y no corta el resto de notificaciones.
    """

    def __init__(
        self,
        alert_repo: AlertRepository,
        transport: MessagingTransport,
        threshold: int = DEFAULT_MATCH_THRESHOLD,
    ):
        self.alert_repo = alert_repo
        self.transport = transport
        self.threshold = threshold

    def find_matches(self, offer: Listing, alerts: list[SearchAlert]) -> list[AlertMatch]:
        matches = []
        for alert in alerts:
            if not alert.is_active:
                continue
            match = score_alert(alert, offer)
            if match.score >= self.threshold:
                matches.append(match)
        return matches

    async def find_matches_and_notify(
        self,
        offer: Listing,
        sender: Optional[SenderInfo] = None,
    ) -> dict:
        """
        Notifica a los dueños de alertas que coinciden con la oferta.

        Returns:
            Estadísticas: alerts_checked, matches_found, notifications_sent, errors
        """
        stats = {
            "alerts_checked": 0,
            "matches_found": 0,
            "notifications_sent": 0,
            "errors": 0,
        }

        try:
            alerts = self.alert_repo.list_active()
        except StoreError as e:
            logger.error("Error leyendo alertas", stage="match_alerts", error=str(e))
            stats["errors"] += 1
            return stats

        stats["alerts_checked"] = len(alerts)
        matches = self.find_matches(offer, alerts)
        stats["matches_found"] = len(matches)

        for match in matches:
            recipient = match.alert.sender_id
            try:
                await self.transport.send_text(recipient, build_notification(offer, match, sender))
                stats["notifications_sent"] += 1
                logger.info(
                    "Notificación de alerta enviada",
                    sender_id=recipient,
                    alert_id=match.alert.alert_id,
                    score=match.score,
                )
            except Exception as e:
                logger.error(
                    "Error enviando notificación",
                    sender_id=recipient,
                    alert_id=match.alert.alert_id,
                    stage="notify",
                    error=str(e),
                )
                stats["errors"] += 1
                continue

            try:
                self.alert_repo.mark_notified(match.alert.alert_id, datetime.now())
            except StoreError as e:
                logger.warning(
                    "No se pudo registrar la notificación",
                    alert_id=match.alert.alert_id,
                    error=str(e),
                )

        logger.info("Matching de alertas completado", **stats)
        return stats
