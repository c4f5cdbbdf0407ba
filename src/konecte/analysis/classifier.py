"""
Clasificador de mensajes inmobiliarios con LLM.

Convierte un mensaje de WhatsApp en cero o más anuncios (Listing):
- None: no se pudo clasificar (LLM caído, timeout o JSON irrecuperable)
- []: se clasificó pero no hay anuncios
"""

import json
import re
from typing import Optional

import structlog
from pydantic import ValidationError
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from konecte.analysis.llm_providers import BaseLLMProvider, get_llm_provider
from konecte.models.listing import ClassificationResult, Listing

logger = structlog.get_logger()

CLASSIFICATION_SYSTEM_PROMPT = """Eres un asistente experto en estructurar anuncios inmobiliarios de WhatsApp (Chile) para una hoja de cálculo.
Un mensaje puede contener UNO O MÁS anuncios. Identifica y extrae CADA ANUNCIO por separado.

Devuelve SIEMPRE un JSON con esta estructura:
{
  "is_multiple": true o false,
  "anuncios": [
    {
      "busco_ofrezco": "Ofrezco" o "Busco",
      "tipo_operacion": "Venta", "Arriendo", "Compra", "Permuta", "Traspaso" o null,
      "propiedad": "Casa", "Departamento", "Oficina", "Local Comercial", "Terreno", "Parcela", "Estacionamiento", "Bodega", etc. o null,
      "region": "Metropolitana de Santiago", "Valparaíso", "Biobío", etc. o null,
      "ciudad": "Santiago", "Viña del Mar", "Concepción", etc. o null,
      "opcion_comuna": "Providencia", "Las Condes", "Ñuñoa", etc. o null,
      "opcion_comuna_2": comuna alternativa o null,
      "opcion_comuna_3": comuna alternativa o null,
      "opcion_comuna_4": comuna alternativa o null,
      "dormitorios": "2" o null,
      "banos": "1" o null,
      "estacionamiento": "1", "Sí" o null,
      "bodegas": "1", "Sí" o null,
      "valor": "160000000" o null,
      "moneda": "CLP", "UF" o null,
      "gastos_comunes": "100000" o null,
      "metros_cuadrados": "84" o null,
      "telefono": "912345678" o null,
      "correo_electronico": "ejemplo@correo.cl" o null,
      "texto_original_fragmento_anuncio": "fragmento del mensaje que corresponde a ESTE anuncio"
    }
  ]
}

REGLAS:
1. Responde SOLO con el objeto JSON, sin explicaciones ni bloques ```json.
2. Si un dato no aparece o no aplica usa null. Nunca uses "N/D", "No especificado", "0" ni "".
3. Si el mensaje describe una propiedad (precio, características, ubicación, metros, fotos) y NO dice "Busco", "Necesito", "Requiero" o similar, busco_ofrezco es "Ofrezco".
4. Dormitorios, baños, estacionamientos y bodegas van en dígitos ("dos" -> "2"). Una mención en singular sin cantidad ("con estacionamiento", "tiene baño") cuenta como "1". Para estacionamiento y bodegas mencionados sin cantidad clara puedes usar "Sí".
5. valor y gastos_comunes: SOLO dígitos, sin puntos, comas, símbolos ni texto. "$550.000 conversable" -> valor "550000", moneda "CLP". "UF 3.000 aprox." -> valor "3000", moneda "UF". "20 millones" -> "20000000". "600 lucas" -> "600000".
6. moneda: "CLP" si se habla de pesos, "$" o montos típicos en pesos; "UF" si se menciona UF. Si no se puede inferir, null.
7. metros_cuadrados: solo el número ("100m2" -> "100").
8. telefono: normaliza teléfonos chilenos a 9 dígitos ("87654321" -> "987654321").
9. Si se ofrecen varias comunas para un mismo anuncio ("busco en Ñuñoa o Providencia") usa opcion_comuna, opcion_comuna_2, etc.
10. Si el mensaje no contiene anuncios devuelve {"is_multiple": false, "anuncios": []}.

EJEMPLO:
Mensaje: "Busco depto urgente Stgo Centro, dos dormitorios, con estacionamiento. Presupuesto 600 lucas."
Respuesta:
{"is_multiple": false, "anuncios": [{"busco_ofrezco": "Busco", "tipo_operacion": null, "propiedad": "Departamento", "region": "Metropolitana de Santiago", "ciudad": "Santiago", "opcion_comuna": "Santiago Centro", "opcion_comuna_2": null, "opcion_comuna_3": null, "opcion_comuna_4": null, "dormitorios": "2", "banos": null, "estacionamiento": "1", "bodegas": null, "valor": "600000", "moneda": "CLP", "gastos_comunes": null, "metros_cuadrados": null, "telefono": null, "correo_electronico": null, "texto_original_fragmento_anuncio": "Busco depto urgente Stgo Centro, dos dormitorios, con estacionamiento. Presupuesto 600 lucas."}]}"""


def _user_prompt(text: str) -> str:
    return (
        "Analiza este mensaje de un grupo de WhatsApp inmobiliario. Cualquier mención "
        "de propiedades, precios, ubicaciones o características es un posible anuncio.\n\n"
        f'Mensaje a analizar: "{text}"'
    )


def extract_json_object(text: str) -> Optional[str]:
    """Primer bloque {...} balanceado dentro del texto (ignora llaves en strings)."""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


class ClassificationAdapter:
    """
    Envuelve la llamada al LLM y valida la respuesta contra
    ClassificationResult.

    Los errores del proveedor se reintentan (backoff exponencial); tras
    el último intento classify devuelve None.
    """

    def __init__(
        self,
        provider: Optional[BaseLLMProvider] = None,
        max_attempts: int = 3,
        wait=None,
    ):
        self._provider = provider or get_llm_provider()
        self._max_attempts = max_attempts
        self._wait = wait if wait is not None else wait_exponential(multiplier=1, min=2, max=10)
        logger.info(
            "ClassificationAdapter inicializado",
            provider=self._provider.provider_name,
            model=getattr(self._provider, "model", "unknown"),
        )

    async def _generate(self, text: str) -> str:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._wait,
            reraise=True,
        ):
            with attempt:
                response = await self._provider.generate(
                    system_prompt=CLASSIFICATION_SYSTEM_PROMPT,
                    user_prompt=_user_prompt(text),
                    temperature=0.2,
                    max_tokens=4096,
                )
                return response.text
        return ""

    def _clean_response(self, raw_text: str) -> str:
        """Quita bloques markdown alrededor del JSON."""
        text = raw_text.strip()
        if text.startswith("```"):
            parts = text.split("```")
            if len(parts) >= 2:
                text = parts[1]
                if text.startswith("json"):
                    text = text[4:]
        return text.strip()

    def _fix_json(self, text: str) -> str:
        """Elimina comentarios // y comas colgantes que algunos modelos agregan."""
        cleaned_lines = []
        for line in text.split("\n"):
            if "//" in line:
                pos = line.find("//")
                before = line[:pos]
                if before.count('"') % 2 == 0:
                    line = before.rstrip()
            cleaned_lines.append(line)
        text = "\n".join(cleaned_lines)
        return re.sub(r",\s*([}\]])", r"\1", text)

    def _parse(self, raw_text: str) -> Optional[dict]:
        text = self._clean_response(raw_text)
        candidates = [text, self._fix_json(text)]
        embedded = extract_json_object(text)
        if embedded:
            candidates += [embedded, self._fix_json(embedded)]

        for candidate in candidates:
            try:
                data = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                return data
        return None

    async def classify(self, text: str) -> Optional[list[Listing]]:
        """
        Clasifica un mensaje.

        Returns:
            Lista de anuncios (posiblemente vacía) o None si no se pudo clasificar.
        """
        text = (text or "").strip()
        if not text:
            logger.info("Texto vacío, no se clasifica")
            return None

        try:
            raw = await self._generate(text)
        except Exception as e:
            logger.error("Error llamando al LLM", stage="classify", error=str(e) or type(e).__name__)
            return None

        data = self._parse(raw)
        if data is None:
            logger.warning("Respuesta del LLM no es JSON válido", stage="classify", response=raw[:200])
            return None

        try:
            result = ClassificationResult.model_validate(data)
        except ValidationError as e:
            logger.warning("Respuesta del LLM no cumple el esquema", stage="classify", error=str(e))
            return None

        for listing in result.anuncios:
            if not listing.source_text:
                listing.source_text = text

        logger.info(
            "Mensaje clasificado",
            listings=len(result.anuncios),
            is_multiple=result.is_multiple,
        )
        return result.anuncios
