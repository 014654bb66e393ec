# src/landclass/adapters/memory_boundaries.py
from __future__ import annotations

from typing import Iterable, List, Sequence

from ..contracts.geo import CRSRef
from ..ports.boundary import BoundaryFeature, BoundarySourcePort


class MemoryBoundarySource(BoundarySourcePort):
    """Fuente de límites en memoria (lista de BoundaryFeature en un solo CRS)."""

    def __init__(self, features: Iterable[BoundaryFeature], crs: CRSRef = CRSRef()) -> None:
        self._features: List[BoundaryFeature] = list(features)
        self._crs = crs

    def crs(self) -> CRSRef:
        return self._crs

    def countries(self) -> Sequence[str]:
        return sorted({f.country_name for f in self._features})

    def admin1_names(self, country_name: str) -> Sequence[str]:
        return sorted({f.admin1_name for f in self._features if f.country_name == country_name})

    def features(self, country_name: str, admin1_name: str) -> Sequence[BoundaryFeature]:
        return [
            f for f in self._features
            if f.country_name == country_name and f.admin1_name == admin1_name
        ]
