# src/landclass/services/surfaces.py
from __future__ import annotations

import numpy as np

from ..contracts.geo import GeoProfile, GeoRaster, Window, iter_windows
from ..ports.surface import RasterSurface


class ArraySurface:
    """Adapta un GeoRaster en memoria al protocolo RasterSurface."""

    def __init__(self, raster: GeoRaster) -> None:
        if raster.data.ndim != 2:
            raise ValueError("ArraySurface requiere un raster 2D")
        self._raster = raster

    @property
    def profile(self) -> GeoProfile:
        return self._raster.profile

    def read(self, window: Window) -> np.ndarray:
        return self._raster.read(window)


def materialize(surface: RasterSurface, block_size: int = 1024) -> GeoRaster:
    """Lee la superficie completa por bloques. Solo para rasters chicos (tests, vistas)."""
    p = surface.profile
    out = np.empty((p.height, p.width), dtype=p.dtype)
    for w in iter_windows(p.width, p.height, block_size):
        out[w.row_off:w.row_off + w.height, w.col_off:w.col_off + w.width] = surface.read(w)
    return GeoRaster(out, p)


__all__ = ["ArraySurface", "materialize"]
