# src/landclass/services/boundary_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..contracts.errors import AmbiguousBoundary, BoundaryNotFound
from ..contracts.products import Jurisdiction
from ..ports.boundary import BoundarySourcePort

logger = logging.getLogger(__name__)


@dataclass
class BoundaryResolver:
    """
    Resuelve (país, admin1) → Jurisdiction sobre una fuente de límites.
    Coincidencia exacta en ambos atributos; nunca elige en silencio entre varias.
    """
    source: Optional[BoundarySourcePort] = None

    def _require_source(self) -> BoundarySourcePort:
        if self.source is None:
            raise RuntimeError("BoundarySourcePort no configurado")
        return self.source

    def countries(self) -> Sequence[str]:
        return sorted(set(self._require_source().countries()))

    def admin1_names(self, country_name: str) -> Sequence[str]:
        src = self._require_source()
        country = (country_name or "").strip()
        if not country or country not in set(src.countries()):
            raise BoundaryNotFound(f"país desconocido: {country_name!r}", country_name=country_name)
        return sorted(set(src.admin1_names(country)))

    def resolve(self, country_name: str, admin1_name: str) -> Jurisdiction:
        src = self._require_source()
        country = (country_name or "").strip()
        admin1 = (admin1_name or "").strip()
        if not country:
            raise BoundaryNotFound("nombre de país vacío", country_name=country_name)
        if not admin1:
            raise BoundaryNotFound("nombre de admin1 vacío", admin1_name=admin1_name)
        if country not in set(src.countries()):
            raise BoundaryNotFound(f"país desconocido: {country!r}", country_name=country)
        if admin1 not in set(src.admin1_names(country)):
            raise BoundaryNotFound(
                f"admin1 desconocido en {country}: {admin1!r}",
                country_name=country, admin1_name=admin1,
            )

        matches = list(src.features(country, admin1))
        if not matches:
            raise BoundaryNotFound(
                f"sin geometría para {country} / {admin1}",
                country_name=country, admin1_name=admin1,
            )
        if len(matches) > 1:
            raise AmbiguousBoundary(
                f"{len(matches)} entidades para {country} / {admin1}",
                country_name=country, admin1_name=admin1, matches=len(matches),
            )
        feat = matches[0]
        logger.debug("Jurisdicción resuelta: %s / %s", country, admin1)
        return Jurisdiction(
            country_name=feat.country_name,
            admin1_name=feat.admin1_name,
            geometry=feat.geometry,
            crs=src.crs(),
        )


__all__ = ["BoundaryResolver"]
