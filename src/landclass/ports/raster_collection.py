# =============================
# FILE: src/landclass/ports/raster_collection.py
# =============================
from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from pydantic import BaseModel, ConfigDict, field_validator


class TileItem(BaseModel):
    """Tesela de la colección multi-anual (un GeoTIFF/COG por tesela y año)."""
    model_config = ConfigDict(frozen=True)

    tile_id: str
    year: int
    uri: str
    start_date: Optional[date] = None
    crs: Optional[str] = None
    bounds: Optional[Tuple[float, float, float, float]] = None  # minx, miny, maxx, maxy
    extras: Mapping[str, object] = {}

    @field_validator("tile_id", "uri")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v2 = str(v).strip()
        if not v2:
            raise ValueError("tile_id/uri no puede ser vacío")
        return v2


@runtime_checkable
class RasterCollectionPort(Protocol):
    """
    Colección de teselas categóricas por año.
    `list_tiles(year)` respeta el orden de iteración de la colección: el mosaico
    usa ese orden para desempatar solapes (la última tesela gana).
    """
    def name(self) -> str: ...
    def years(self) -> Sequence[int]: ...
    def list_tiles(self, year: int) -> Sequence[TileItem]: ...


__all__ = ["TileItem", "RasterCollectionPort"]
