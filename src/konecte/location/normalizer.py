"""
Normalización de comunas y regiones de Chile.

Resuelve el texto libre que entrega el LLM contra un catálogo de
regiones → comunas (con alias). Si la comuna se reconoce, la región
oficial de esa comuna reemplaza a la informada.
"""

import json
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import structlog
from rapidfuzz import fuzz, process

logger = structlog.get_logger()

DEFAULT_GEODATA_PATH = Path(__file__).parent / "data" / "chile_geodata.json"

# Similitud mínima (0..1) para el match difuso de comunas. Se comparan contra
# fuzz.ratio (similitud Indel por caracteres), no contra un Dice sobre bigramas.
FUZZY_MATCH_THRESHOLD = 0.75
SHORT_NAME_THRESHOLD = 0.85
SHORT_NAME_MAX_LENGTH = 4
MIN_FUZZY_LENGTH = 3

# Abreviaturas y errores frecuentes; None marca entradas ambiguas
COMMON_COMMUNE_MAPPINGS: dict[str, Optional[str]] = {
    "stgo": "santiago",
    "stgo centro": "santiago",
    "scl": "santiago",
    "san juaquin": "san joaquin",
    "lasc": "las condes",
    "vitac": "vitacura",
    "nunoa": "ñuñoa",
    "bio bio": "biobio",
    "bio-bio": "biobio",
    "la serena y coquimbo": None,
    "vina del mar": "viña del mar",
    "valpo": "valparaiso",
}


def normalize_text(text: Optional[str]) -> str:
    """Minúsculas y sin tildes ("Ñuñoa" -> "nunoa")."""
    if not text or not isinstance(text, str):
        return ""
    decomposed = unicodedata.normalize("NFD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


@dataclass(frozen=True)
class CommuneEntry:
    name: str
    region: str


@dataclass(frozen=True)
class LocationResult:
    commune: Optional[str]
    region: Optional[str]


class LocationNormalizer:
    """
    Catálogo de comunas precargado.

    Si el catálogo no se puede cargar, normalize_location devuelve las
    entradas tal cual (no lanza excepciones).
    """

    def __init__(self, geodata_path: Union[str, Path, None] = None):
        self.geodata_path = Path(geodata_path) if geodata_path else DEFAULT_GEODATA_PATH
        self._by_name: dict[str, CommuneEntry] = {}
        self._by_alias: dict[str, CommuneEntry] = {}
        self._load()

    def _load(self) -> None:
        try:
            data = json.loads(self.geodata_path.read_text(encoding="utf-8"))
            regions = data["regiones"]
            if not isinstance(regions, list):
                raise ValueError("'regiones' no es una lista")
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                "No se pudo cargar el catálogo geográfico, se usará la entrada original",
                path=str(self.geodata_path),
                error=str(e),
            )
            return

        for region in regions:
            region_name = region.get("nombre")
            communes = region.get("comunas")
            if not region_name or not isinstance(communes, list):
                logger.warning("Región sin comunas, se omite", region=region_name)
                continue

            for commune in communes:
                if isinstance(commune, str):
                    commune = {"nombre": commune}
                entry = CommuneEntry(name=commune["nombre"], region=region_name)
                self._by_name.setdefault(normalize_text(entry.name), entry)
                for alias in commune.get("alias", []):
                    self._by_alias.setdefault(normalize_text(alias), entry)

        logger.info(
            "Catálogo geográfico cargado",
            communes=len(self._by_name),
            aliases=len(self._by_alias),
        )

    @property
    def is_loaded(self) -> bool:
        return bool(self._by_name)

    @property
    def commune_names(self) -> list[str]:
        """Nombres oficiales normalizados."""
        return list(self._by_name)

    def lookup(self, raw_commune: Optional[str]) -> Optional[CommuneEntry]:
        """Coincidencia exacta por nombre normalizado o alias."""
        key = normalize_text(raw_commune)
        if not key:
            return None
        return self._by_name.get(key) or self._by_alias.get(key)

    def standard_commune_name(self, raw_commune: Optional[str]) -> Optional[str]:
        """
        Nombre normalizado de la comuna más parecida, o None si no hay una
        coincidencia confiable.

        Orden: mapeos frecuentes, coincidencia exacta y por último
        similitud con un mínimo que depende del largo.
        """
        query = normalize_text(raw_commune)
        if not query:
            return None

        if query in COMMON_COMMUNE_MAPPINGS:
            mapped = COMMON_COMMUNE_MAPPINGS[query]
            if mapped is None:
                logger.warning("Comuna ambigua", commune=raw_commune)
                return None
            query = normalize_text(mapped)

        if query in self._by_name:
            return query

        if len(query) < MIN_FUZZY_LENGTH or not self._by_name:
            return None

        threshold = (
            SHORT_NAME_THRESHOLD if len(query) <= SHORT_NAME_MAX_LENGTH else FUZZY_MATCH_THRESHOLD
        )
        best = process.extractOne(query, self.commune_names, scorer=fuzz.ratio)
        if best is None:
            return None
        match, score, _ = best
        if score / 100 > threshold:
            logger.debug("Comuna aproximada", commune=raw_commune, match=match, score=round(score, 1))
            return match

        logger.debug("Comuna sin coincidencia confiable", commune=raw_commune, best=match)
        return None

    def normalize_location(
        self,
        raw_commune: Optional[str],
        raw_region: Optional[str],
    ) -> LocationResult:
        """
        Normaliza comuna y región.

        Returns:
            LocationResult con el nombre oficial de la comuna y su región,
            o las entradas originales (None si vacías) si no se reconoce.
        """
        raw_commune = (raw_commune or "").strip() or None
        raw_region = (raw_region or "").strip() or None
        if not raw_commune and not raw_region:
            return LocationResult(commune=None, region=None)

        if not self.is_loaded:
            return LocationResult(commune=raw_commune, region=raw_region)

        entry = self.lookup(raw_commune)
        if entry is None and raw_commune:
            standard = self.standard_commune_name(raw_commune)
            entry = self._by_name.get(standard) if standard else None

        if entry is None:
            return LocationResult(commune=raw_commune, region=raw_region)

        if raw_region and normalize_text(raw_region) != normalize_text(entry.region):
            logger.debug(
                "Región corregida según la comuna",
                commune=entry.name,
                region_in=raw_region,
                region_out=entry.region,
            )
        return LocationResult(commune=entry.name, region=entry.region)
