"""
Abstracción de proveedores LLM.

Permite switchear entre Gemini y Groq sin cambiar el clasificador.
Cada llamada tiene timeout: un timeout se trata como cualquier otra falla.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import structlog

from konecte.config import get_settings

logger = structlog.get_logger()


@dataclass
class LLMResponse:
    """Respuesta normalizada de cualquier LLM."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None


class BaseLLMProvider(ABC):
    """Clase base para proveedores de LLM."""

    provider_name: str = "base"
    timeout_seconds: float = 30.0

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 4096,
    ) -> LLMResponse:
        """
        Genera una respuesta del LLM respetando el timeout configurado.

        Raises:
            asyncio.TimeoutError si el proveedor no responde a tiempo.
        """
        return await asyncio.wait_for(
            self._generate(system_prompt, user_prompt, temperature, max_tokens),
            timeout=self.timeout_seconds,
        )

    @abstractmethod
    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """
        Llamada concreta al proveedor.

        Args:
            system_prompt: Instrucciones del sistema
            user_prompt: Mensaje a clasificar
            temperature: Temperatura de generación (0.0-1.0)
            max_tokens: Máximo de tokens a generar
        """
        pass


class GeminiProvider(BaseLLMProvider):
    """Proveedor de Google Gemini (respuesta forzada a JSON)."""

    provider_name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        from google import genai

        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds

        if not self.api_key:
            raise ValueError("GEMINI_API_KEY no configurada")

        self.client = genai.Client(api_key=self.api_key)
        logger.info("GeminiProvider inicializado", model=self.model)

    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        from google.genai import types

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[system_prompt, user_prompt],
            config=types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
                response_mime_type="application/json",
            ),
        )

        return LLMResponse(
            text=(response.text or "").strip(),
            model=self.model,
            provider=self.provider_name,
        )


class GroqProvider(BaseLLMProvider):
    """
    Proveedor de Groq (LPU inference).

    Docs: https://console.groq.com/docs/models
    """

    provider_name = "groq"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        from groq import AsyncGroq

        settings = get_settings()
        self.api_key = api_key or settings.groq_api_key
        self.model = model or settings.groq_model
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds

        if not self.api_key:
            raise ValueError("GROQ_API_KEY no configurada")

        self.client = AsyncGroq(api_key=self.api_key)
        logger.info("GroqProvider inicializado", model=self.model)

    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )

        text = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else None

        return LLMResponse(
            text=text.strip(),
            model=self.model,
            provider=self.provider_name,
            tokens_used=tokens,
        )


def get_llm_provider(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
) -> BaseLLMProvider:
    """
    Factory para obtener el proveedor de LLM configurado.

    Args:
        provider: 'gemini' o 'groq' (default: settings.llm_provider)
        api_key: API key (default: del settings según provider)
        model: Modelo a usar (default: del settings según provider)
    """
    settings = get_settings()
    provider = provider or settings.llm_provider

    if provider.lower() == "groq":
        return GroqProvider(api_key=api_key, model=model)
    elif provider.lower() == "gemini":
        return GeminiProvider(api_key=api_key, model=model)
    else:
        raise ValueError(f"Proveedor LLM no soportado: {provider}. Usar 'gemini' o 'groq'")
