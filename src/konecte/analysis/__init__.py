"""
Módulo de análisis con IA.

Clasifica mensajes de WhatsApp en anuncios usando LLM (Gemini/Groq).
"""

from konecte.analysis.classifier import ClassificationAdapter
from konecte.analysis.llm_providers import (
    get_llm_provider,
    BaseLLMProvider,
    GeminiProvider,
    GroqProvider,
    LLMResponse,
)

__all__ = [
    "ClassificationAdapter",
    # Proveedores LLM
    "get_llm_provider",
    "BaseLLMProvider",
    "GeminiProvider",
    "GroqProvider",
    "LLMResponse",
]
