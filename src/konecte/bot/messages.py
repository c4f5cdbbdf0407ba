"""
Textos del bot.

Los mensajes usan el formato de WhatsApp (*negrita*).
"""

from typing import Optional

from konecte.database.repositories import ListingRecord
from konecte.models.alert import SearchAlert, SearchCriteria

MENU = (
    "¡Hola! 👋 Soy tu asistente virtual de Konecte. ¿Qué te gustar hacer?\n\n"
    "1. 🔎 Buscar (Propiedades o Solicitudes)\n"
    "2. 📋 Publicar (Propiedades o Solicitudes)"
)

WELCOME = """¡Hola! 👋 *Bot Inmobiliario de Konecte*

*Comandos:*
• *!ayuda* - Muestra este mensaje
• *!publicar* - Publica una propiedad o solicitud paso a paso
• *!misalertas* - Lista tus alertas activas
• *!eliminaralerta [número]* - Elimina una alerta
• *!propiedades [arriendo|venta] [comuna]* - Muestra propiedades (filtros opcionales)
• *!cancelar* - Cancela la operación en curso

*Búsquedas:*
• "Busco [tipo] en [ubicación]" - Busca propiedades
• "Ofrezco [tipo] en [ubicación]" - Publica propiedades

Konecte - Conectando personas con propiedades"""

SEARCH_PROMPT = """¡Genial! Para ayudarte a encontrar tu lugar ideal, por favor, descríbeme lo que buscas. Mientras más detalles me des, mejor. Puedes guiarte con este formato:

*Busco/Ofrezco: Busco*
*Tipo de operación: Arriendo / Compra*
*Tipo de propiedad: [Casa / Departamento / Oficina / etc.]*
*Región: [Ej: Atacama]*
*Comunas preferidas: [Ej: Copiapó]*
*Dormitorios mínimos: [N°]*
*Baños mínimos: [N°]*
*Estacionamiento requerido: Sí / No / Indiferente*
*Presupuesto máximo: [Ej: 400.000]*
*Moneda: CLP / UF*"""

PUBLICATION_TYPE_PROMPT = (
    "¡Perfecto! Vamos a publicar.\n\n"
    "¿Qué deseas publicar?\n"
    "1. 🏡 Una Propiedad\n"
    "2. 📝 Una Solicitud"
)

PUBLICATION_TYPE_REPROMPT = "Por favor responde *1* para publicar una Propiedad o *2* para una Solicitud."

REQUEST_DETAILS_PROMPT = """📝 Cuéntame qué estás buscando en un solo mensaje. Por ejemplo:

*Busco departamento en arriendo en Ñuñoa, 2 dormitorios, 1 baño, hasta 600.000 CLP*"""

REQUEST_SAVED = "✅ ¡Listo! Registré tu solicitud. Te avisaremos si aparece algo que coincida. 🔔"

# Pasos del asistente de publicación de propiedades
PROP_TITLE = "🏡 ¡Vamos! ¿Cuál es el *título* de tu publicación? (Ej: Depto luminoso en Providencia)"
PROP_DESCRIPTION = "📝 Escribe una *descripción* de la propiedad."
PROP_TRANSACTION = "🔑 ¿Es *Venta* o *Arriendo*?"
PROP_CATEGORY = "🏠 ¿Qué *tipo de propiedad* es? (Casa, Departamento, Oficina, Terreno, etc.)"
PROP_PRICE = "💰 ¿Cuál es el *valor*? Indica la moneda (Ej: 5000 UF o 550.000 CLP)"
PROP_PRICE_INVALID = "⚠️ No pude leer el valor. Escribe solo el monto y la moneda, por ejemplo *5000 UF* o *550.000*."
PROP_LOCATION = "📍 ¿En qué *comuna* está la propiedad?"
PROP_AREA = "📐 ¿Cuántos *metros cuadrados* tiene? (solo el número)"
PROP_AREA_INVALID = "⚠️ No pude leer la superficie. Escribe solo el número de metros cuadrados, por ejemplo *80*."
PROP_ROOMS = "🛏️ Indica *dormitorios, baños y estacionamientos* separados por coma (Ej: 2,1,1)"
PROP_ROOMS_INVALID = "⚠️ No pude leer los números. Escribe dormitorios, baños y estacionamientos, por ejemplo *2,1,1*."
PROP_FEATURES = "✨ ¿Alguna *característica* destacada? (Piscina, terraza, bodega...)"
CONFIRM_REPROMPT = "Por favor responde *Sí* para publicar o *No* para cancelar."

PUBLISH_SUCCESS = "✅ ¡Tu propiedad fue enviada a Konecte! Te avisaremos cuando esté publicada. 🎉"
PUBLISH_ERROR = "❌ No pudimos publicar tu propiedad en este momento. Por favor, intenta más tarde."
PUBLISH_CANCELLED = "👍 Publicación cancelada. Si necesitas algo más, estoy aquí para ayudarte."
CANCELLED = "👍 Listo, cancelé la operación en curso."
NOTHING_TO_CANCEL = "No hay ninguna operación en curso."

ALERT_CREATED = (
    "✅ ¡Perfecto! He creado una alerta para tu búsqueda. Te notificaré cuando "
    "aparezcan propiedades que coincidan con tus criterios. 🔔"
)
ALERT_DECLINED = "👍 Entendido. No crearé una alerta para esta búsqueda. Si necesitas algo más, estoy aquí para ayudarte."
ALERT_ERROR = "❌ Ocurrió un error al guardar tu alerta. Intenta nuevamente más tarde."

NO_CRITERIA = "🤔 No pude identificar criterios de búsqueda claros en tu mensaje. ¿Podrías ser más específico?"
SEARCH_ERROR = "❌ Ocurrió un error al procesar tu búsqueda. Intenta nuevamente."
OFFER_RECEIVED = "✅ ¡Gracias! Registré tu publicación y avisaremos a quienes buscan algo similar. 🏡"
OFFER_DUPLICATE = "ℹ️ Ya tenemos registrada esta publicación. No es necesario enviarla de nuevo."

STORE_PERMISSION_ERROR = (
    "🔒 Lo siento, no tengo permisos para guardar tu información en este momento. "
    "Ya avisamos al equipo de Konecte."
)
STORE_ERROR = "❌ Ocurrió un error al guardar tu solicitud. Intenta nuevamente más tarde."

DEFAULT_REPLY = (
    "🤖 No entendí tu mensaje. Escribe *!ayuda* para ver opciones o intenta con una "
    'búsqueda como "Busco departamento en Santiago".'
)
ACCESS_DENIED = "Acceso denegado. Tu plan actual no incluye acceso a la interacción por WhatsApp."
ACCESS_ERROR = "No se pudo verificar tu acceso en este momento. Por favor, intenta más tarde."

UNKNOWN_COMMAND = "❓ Comando no reconocido. Escribe *!ayuda* para ver los comandos disponibles."
COMMAND_ERROR = "❌ Ocurrió un error al procesar tu comando."
NO_ALERTS = "📭 No tienes alertas activas. Cuando una búsqueda no tenga resultados te ofreceré crear una."
REMOVE_ALERT_USAGE = "⚠️ Indica el número de la alerta. Ejemplo: *!eliminaralerta 1* (usa *!misalertas* para verlos)."
NO_PROPERTIES = "😔 No encontré propiedades publicadas con esos filtros."


def no_results(criteria: SearchCriteria) -> str:
    category = criteria.property_category or "propiedad"
    location = criteria.commune or criteria.region or "ninguna comuna especificada"
    return (
        f'😔 *No encontré propiedades ofrecidas* del tipo "{category}" en {location}.\n\n'
        "¿Quieres que cree una alerta para notificarte si aparece algo nuevo? 🔔 "
        "(Responde *Sí* o *No*)"
    )


def format_record(index: int, record: ListingRecord) -> str:
    listing = record.listing
    lines = [f"*Propiedad {index}:*"]
    if listing.property_category:
        lines.append(f"• Tipo: {listing.property_category} 🏢")
    if listing.operation_type:
        lines.append(f"• Operación: {listing.operation_type} 📋")
    location = ", ".join(p for p in (listing.commune, listing.region) if p)
    if location:
        lines.append(f"• Ubicación: {location} 📍")
    if listing.price:
        currency = listing.currency.value if listing.currency else ""
        lines.append(f"• Precio: {listing.price} {currency}".rstrip() + " 💰")
    if listing.bedrooms:
        lines.append(f"• Dormitorios: {listing.bedrooms} 🛏️")
    if listing.bathrooms:
        lines.append(f"• Baños: {listing.bathrooms} 🚿")
    if listing.area_m2:
        lines.append(f"• Superficie: {listing.area_m2} m² 📐")
    if record.contact:
        lines.append(f"• Contacto: {record.contact} 📞")
    return "\n".join(lines)


def search_results(records: list[ListingRecord], total: int, title: Optional[str] = None) -> str:
    header = title or f"🏠 *Encontré {total} propiedades que coinciden con tu búsqueda:*"
    blocks = [format_record(i, r) for i, r in enumerate(records, start=1)]
    message = header + "\n\n" + "\n\n".join(blocks)
    if total > len(records):
        message += f"\n\n*...y {total - len(records)} propiedades más.*"
    return message


def alert_list(alerts: list[SearchAlert]) -> str:
    lines = ["🔔 *Tus alertas activas:*", ""]
    for i, alert in enumerate(alerts, start=1):
        lines.append(f"{i}. {alert.describe()}")
    lines += ["", "Para eliminar una, escribe *!eliminaralerta [número]*."]
    return "\n".join(lines)


def alert_removed(alert: SearchAlert) -> str:
    return f"🗑️ Eliminé la alerta: {alert.describe()}"


def alert_not_found(number: int, total: int) -> str:
    return f"⚠️ No existe la alerta {number}. Tienes {total} alerta(s) activa(s)."


def publication_summary(data: dict) -> str:
    """Resumen previo a la confirmación de publicación."""
    return (
        "📋 *Resumen de tu publicación:*\n\n"
        f"• *Título:* {data.get('titulo')}\n"
        f"• *Descripción:* {data.get('descripcion')}\n"
        f"• *Operación:* {data.get('operacion')}\n"
        f"• *Tipo:* {data.get('categoria')}\n"
        f"• *Valor:* {data.get('valor')} {data.get('moneda')}\n"
        f"• *Comuna:* {data.get('comuna')}\n"
        f"• *Superficie:* {data.get('superficie')} m²\n"
        f"• *Dormitorios/Baños/Estac.:* {data.get('dormitorios')}/{data.get('banos')}/"
        f"{data.get('estacionamientos')}\n"
        f"• *Características:* {data.get('caracteristicas')}\n\n"
        "¿Confirmas la publicación? (Responde *Sí* o *No*)"
    )
