# src/landclass/ports/raster_write.py
from __future__ import annotations

from typing import Protocol, runtime_checkable, Mapping, Optional, Tuple

from ..contracts.geo import GeoRaster
from .surface import RasterSurface

URI = str
Colormap = Mapping[int, Tuple[int, int, int]]

@runtime_checkable
class RasterWriterPort(Protocol):
    """
    Escritor de rasters (GeoTIFF).
    `write_surface` escribe por bloques, sin materializar la superficie completa.
    """
    def write(self, uri: URI, raster: GeoRaster, *, compress: Optional[str] = None, tiled: bool = True, colormap: Optional[Colormap] = None) -> URI: ...
    def write_surface(self, uri: URI, surface: RasterSurface, *, block_size: int = 1024, compress: Optional[str] = None, colormap: Optional[Colormap] = None) -> URI: ...
    def mkdirs(self, uri: URI) -> None: ...

__all__ = ["RasterWriterPort", "URI", "Colormap"]
