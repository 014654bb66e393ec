from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator
from shapely.geometry import shape

from .core import ClassLegend, RunMeta, Selection
from .geo import Bounds, CRSRef

if TYPE_CHECKING:
    from ..ports.surface import RasterSurface

SQ_M_PER_HECTARE = 10_000.0


def pixels_to_hectares(count: int, pixel_scale_m: float) -> float:
    """count * escala² / 10 000 (conteo entero × constante, determinista)."""
    return int(count) * (float(pixel_scale_m) * float(pixel_scale_m)) / SQ_M_PER_HECTARE


@dataclass(frozen=True)
class Jurisdiction:
    """Polígono administrativo (GeoJSON) resuelto desde la fuente de límites."""
    country_name: str
    admin1_name: str
    geometry: Mapping[str, Any]
    crs: CRSRef = CRSRef()

    @property
    def bounds(self) -> Bounds:
        return Bounds(*shape(self.geometry).bounds)

    def is_empty(self) -> bool:
        return shape(self.geometry).is_empty


class AreaEntry(BaseModel):
    model_config = ConfigDict(frozen=True)
    canonical_id: int
    class_name: str
    pixel_count: int = Field(0, ge=0)
    area_ha: float = Field(0.0, ge=0.0)


class AreaResult(BaseModel):
    """
    Áreas por clase dentro de la jurisdicción.
    - `entries`: exactamente K entradas, en el orden de la leyenda (ceros incluidos).
    - `unknown_*`: píxeles con código crudo sin traducción (clase centinela).
    - `nodata_pixels`: píxeles dentro de la jurisdicción sin cobertura del mosaico.
    """
    model_config = ConfigDict(frozen=True)

    entries: tuple[AreaEntry, ...]
    pixel_scale_m: float = Field(gt=0)
    unknown_pixels: int = Field(0, ge=0)
    unknown_codes: tuple[int, ...] = ()
    nodata_pixels: int = Field(0, ge=0)
    empty: bool = False

    @field_validator("entries")
    @classmethod
    def _unique_ids(cls, v: tuple[AreaEntry, ...]) -> tuple[AreaEntry, ...]:
        ids = [e.canonical_id for e in v]
        if len(set(ids)) != len(ids):
            raise ValueError(f"entradas duplicadas: {ids}")
        return v

    @property
    def pixel_area_m2(self) -> float:
        return self.pixel_scale_m * self.pixel_scale_m

    @property
    def counted_pixels(self) -> int:
        return sum(e.pixel_count for e in self.entries)

    @property
    def total_area_ha(self) -> float:
        return sum(e.area_ha for e in self.entries)

    @property
    def unknown_area_ha(self) -> float:
        return pixels_to_hectares(self.unknown_pixels, self.pixel_scale_m)

    def ids(self) -> tuple[int, ...]:
        return tuple(e.canonical_id for e in self.entries)

    def area_of(self, canonical_id: int) -> float:
        for e in self.entries:
            if e.canonical_id == canonical_id:
                return e.area_ha
        raise KeyError(f"clase {canonical_id} no está en el resultado")

    def as_mapping(self) -> Mapping[int, float]:
        return MappingProxyType({e.canonical_id: e.area_ha for e in self.entries})

    def as_rows(self) -> list[dict[str, Any]]:
        return [
            {
                "canonical_id": e.canonical_id,
                "landcover_type": e.class_name,
                "pixel_count": e.pixel_count,
                "area_ha": e.area_ha,
            }
            for e in self.entries
        ]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.as_rows(), columns=["canonical_id", "landcover_type", "pixel_count", "area_ha"])


@dataclass(frozen=True)
class LandCoverSummary:
    """Salida de una invocación: tabla de áreas + raster recortado/remapeado."""
    selection: Selection
    jurisdiction: Jurisdiction
    areas: AreaResult
    raster: "RasterSurface"
    legend: ClassLegend
    meta: RunMeta


@dataclass(frozen=True)
class SummaryExport:
    table_path: Optional[Path] = None
    raster_path: Optional[Path] = None
    skipped: Sequence[str] = ()


__all__ = [
    "Jurisdiction", "AreaEntry", "AreaResult", "LandCoverSummary", "SummaryExport",
    "pixels_to_hectares", "SQ_M_PER_HECTARE",
]
