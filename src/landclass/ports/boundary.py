# src/landclass/ports/boundary.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from ..contracts.geo import CRSRef

GeoJSON = Mapping[str, Any]


@dataclass(frozen=True)
class BoundaryFeature:
    """Entidad de la fuente de límites (p.ej. FAO GAUL nivel 1)."""
    country_name: str
    admin1_name: str
    geometry: GeoJSON
    properties: Mapping[str, Any] = field(default_factory=dict)


@runtime_checkable
class BoundarySourcePort(Protocol):
    """
    Fuente de límites administrativos, de solo lectura.
    Detrás del puerto: archivo vectorial (geopandas), memoria, API, etc.
    """
    def crs(self) -> CRSRef: ...
    def countries(self) -> Sequence[str]: ...
    def admin1_names(self, country_name: str) -> Sequence[str]: ...
    def features(self, country_name: str, admin1_name: str) -> Sequence[BoundaryFeature]: ...


__all__ = ["BoundaryFeature", "BoundarySourcePort", "GeoJSON"]
