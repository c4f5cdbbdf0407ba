"""Normalización de ubicaciones (comunas y regiones de Chile)."""

from konecte.location.normalizer import (
    LocationNormalizer,
    LocationResult,
    normalize_text,
)

__all__ = ["LocationNormalizer", "LocationResult", "normalize_text"]
