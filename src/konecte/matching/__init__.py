"""
Motor de matching.

Puntúa alertas de búsqueda contra ofertas nuevas y notifica coincidencias.
"""

from konecte.matching.engine import AlertMatch, AlertMatcher, normalize_price, score_alert

__all__ = [
    "AlertMatcher",
    "AlertMatch",
    "normalize_price",
    "score_alert",
]
