"""
Configuración centralizada del bot.
Carga variables de entorno y define settings globales.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py -> konecte/ -> src/ -> raíz del proyecto
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Configuración principal de la aplicación."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Provider
    llm_provider: str = Field(
        "gemini",
        description="Proveedor de LLM a usar: 'gemini' o 'groq'"
    )

    # Gemini
    gemini_api_key: Optional[str] = Field(None, description="API key de Google Gemini")
    gemini_model: str = Field("gemini-2.0-flash", description="Modelo de Gemini a usar")

    # Groq
    groq_api_key: Optional[str] = Field(None, description="API key de Groq")
    groq_model: str = Field(
        "llama-3.3-70b-versatile",
        description="Modelo de Groq a usar"
    )
    llm_timeout_seconds: float = Field(30.0, description="Timeout de cada llamada al LLM")

    # Google Sheets
    google_service_account_file: Optional[str] = Field(
        None, description="Ruta al JSON de la service account"
    )
    google_service_account_email: Optional[str] = Field(
        None, description="Email de la service account (si no hay archivo)"
    )
    google_private_key: Optional[str] = Field(
        None, description="Private key de la service account (con \\n literales)"
    )
    spreadsheet_id: Optional[str] = Field(None, description="ID de la planilla principal")
    listings_sheet_name: str = Field("konecte", description="Hoja de anuncios")
    alerts_sheet_name: str = Field("AlertasBusquedas", description="Hoja de alertas de búsqueda")

    # Plataforma Konecte
    konecte_api_url: str = Field(
        "https://konecte.vercel.app", description="URL base de la API de Konecte"
    )
    konecte_web_reply_url: str = Field(
        "https://konecte.vercel.app/api/whatsapp-bot/send-reply",
        description="Endpoint para responder al chat web de Konecte",
    )
    listings_api_path: str = Field(
        "/api/whatsapp-bot/properties",
        description="Path del endpoint de creación de publicaciones",
    )
    http_timeout_seconds: float = Field(10.0, description="Timeout de requests HTTP salientes")

    # Gateway de WhatsApp
    whatsapp_gateway_url: Optional[str] = Field(
        None, description="URL base del gateway que envía mensajes de WhatsApp"
    )
    whatsapp_gateway_token: Optional[str] = Field(
        None, description="Token Bearer para el gateway"
    )

    # Deduplicación y conversación
    ad_signature_ttl_hours: float = Field(
        24.0, gt=0, description="Ventana de deduplicación de anuncios (horas)"
    )
    conversation_ttl_minutes: float = Field(
        30.0, gt=0, description="Inactividad tras la cual se reinicia una conversación"
    )

    # Matching
    alert_match_threshold: int = Field(
        3, ge=1, description="Score mínimo para notificar una alerta"
    )
    max_search_results: int = Field(5, ge=1, description="Resultados a mostrar por búsqueda")

    timezone: str = Field("America/Santiago", description="Zona horaria de fechas publicadas")

    # Webhook
    webhook_listen: str = Field("0.0.0.0", description="Host de escucha del webhook")
    webhook_port: int = Field(10000, description="Puerto del webhook")
    webhook_token: Optional[str] = Field(
        None, description="Secreto compartido en el header X-Webhook-Token"
    )

    # Logging
    log_level: str = Field("INFO", description="Nivel de logging")


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuración cacheada."""
    return Settings()


# Constantes del dominio

GREETINGS = [
    "hola",
    "hello",
    "hi",
    "buenos días",
    "buenos dias",
    "buenas tardes",
    "buenas noches",
    "saludos",
    "ey",
    "hey",
    "ola",
    "buen día",
    "buen dia",
    "buenas",
]

SEARCH_MENU_KEYWORDS = [
    "1",
    "buscar",
    "busco",
    "búsqueda",
    "busqueda",
    "buscar una propiedad",
]

PUBLISH_MENU_KEYWORDS = [
    "2",
    "publicar",
    "ofrecer",
    "ofrezco",
    "ofrecer una propiedad",
    "publicar una propiedad",
]

YES_TOKENS = ["si", "sí", "s", "yes", "claro", "por supuesto", "dale", "ok", "okay", "confirmar"]

NO_TOKENS = ["no", "n", "nope", "negativo", "para nada", "cancelar"]

# Palabras que disparan la búsqueda inteligente en un chat directo
PROPERTY_KEYWORDS = [
    "busco",
    "ofrezco",
    "buscar",
    "ofrecer",
    "departamento",
    "depto",
    "casa",
    "oficina",
    "propiedad",
    "arriendo",
    "parcela",
    "terreno",
]

# Un chat directo solo registra ofertas cuando el texto las declara
OFFER_KEYWORDS = ["ofrezco", "vendo", "se vende", "se arrienda"]

# Patrones para guardar mensajes de grupo como "Información" cuando la IA no detecta anuncios
REAL_ESTATE_PATTERNS = [
    r"propiedad",
    r"casa",
    r"depto",
    r"departamento",
    r"arriendo",
    r"venta",
    r"compra",
    r"\buf\b",
    r"m2",
    r"dormitorio",
    r"baño",
    r"estacionamiento",
    r"bodega",
    r"terraza",
]
