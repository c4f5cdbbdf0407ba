"""Helpers para interpretar respuestas cortas del usuario."""

import re
from typing import Optional

from konecte.config import (
    GREETINGS,
    NO_TOKENS,
    OFFER_KEYWORDS,
    PROPERTY_KEYWORDS,
    PUBLISH_MENU_KEYWORDS,
    SEARCH_MENU_KEYWORDS,
    YES_TOKENS,
)
from konecte.matching.engine import normalize_price


def clean_input(text: str) -> str:
    """Minúsculas, sin espacios ni asteriscos de formato en los extremos."""
    return re.sub(r"^\*+|\*+$", "", (text or "").strip()).strip().lower()


def _matches_token(text: str, tokens: list[str]) -> bool:
    return any(text == t or text.startswith(t + " ") for t in tokens)


def is_yes(text: str) -> bool:
    return _matches_token(text, YES_TOKENS)


def is_no(text: str) -> bool:
    return _matches_token(text, NO_TOKENS)


def is_greeting(text: str) -> bool:
    return _matches_token(text, GREETINGS)


def is_search_menu(text: str) -> bool:
    return text in SEARCH_MENU_KEYWORDS


def is_publish_menu(text: str) -> bool:
    return text in PUBLISH_MENU_KEYWORDS


def mentions_property(text: str) -> bool:
    return any(keyword in text for keyword in PROPERTY_KEYWORDS)


def declares_offer(text: str) -> bool:
    return any(re.search(rf"\b{re.escape(k)}\b", text) for k in OFFER_KEYWORDS)


def _as_number(value: float):
    return int(value) if value.is_integer() else value


def parse_price(text: str) -> Optional[tuple]:
    """
    Monto y moneda de una respuesta como "5000 UF" o "$550.000".

    Returns:
        (valor, moneda) o None si no hay un monto legible.
    """
    value = normalize_price(text)
    if value is None:
        return None
    currency = "UF" if re.search(r"\bu\.?f\.?\b", text.lower()) else "CLP"
    return _as_number(value), currency


def parse_area(text: str):
    """Primer número de la respuesta ("80 m2" -> 80)."""
    match = re.search(r"\d+(?:[.,]\d+)?", text)
    if not match:
        return None
    return _as_number(float(match.group(0).replace(",", ".")))


def parse_rooms(text: str) -> Optional[tuple[int, int, int]]:
    """
    Dormitorios, baños y estacionamientos ("2,1,1").

    Los valores finales omitidos son 0; sin ningún número devuelve None.
    """
    numbers = [int(n) for n in re.findall(r"\d+", text)]
    if not numbers:
        return None
    numbers += [0] * (3 - len(numbers))
    return numbers[0], numbers[1], numbers[2]
