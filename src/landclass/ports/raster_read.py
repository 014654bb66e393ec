# src/landclass/ports/raster_read.py
from __future__ import annotations

from typing import Protocol, runtime_checkable, Optional

import numpy as np

from ..contracts.geo import Bounds, GeoRaster, GeoProfile

URI = str

@runtime_checkable
class RasterReaderPort(Protocol):
    """
    Lector de raster genérico (GeoTIFF/COG, memoria, etc.).
    Reglas:
      - `read()` devuelve SIEMPRE GeoRaster de una banda.
      - `read_bounds()` remuestrea por vecino más cercano a una grilla de salida
        (bounds + width/height); fuera de la cobertura rellena con `fill`.
      - con `crs`, `bounds` está en ese CRS y la tesela se reproyecta (nearest).
    """
    def read(self, uri: URI, band_index: int | None = None) -> GeoRaster: ...
    def profile(self, uri: URI) -> GeoProfile: ...
    def read_bounds(
        self, uri: URI, bounds: Bounds, width: int, height: int, *,
        fill: Optional[float] = None, crs: Optional[str] = None,
    ) -> np.ndarray: ...
    def exists(self, uri: URI) -> bool: ...

__all__ = ["RasterReaderPort", "URI"]
