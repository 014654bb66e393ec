## `src/landclass/adapters/rasterio_writer.py`
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import rasterio
from rasterio.transform import Affine
from rasterio.windows import Window as RioWindow

from ..contracts.geo import GeoProfile, GeoRaster, iter_windows
from ..ports.raster_write import Colormap, RasterWriterPort
from ..ports.surface import RasterSurface

logger = logging.getLogger(__name__)


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def _gtiff_profile(p: GeoProfile, dtype: Any, count: int, *, compress: str, tiled: bool) -> Dict[str, Any]:
    profile: Dict[str, Any] = {
        "driver": "GTiff",
        "height": p.height,
        "width": p.width,
        "count": count,
        "dtype": dtype,
        "transform": Affine.from_gdal(*p.transform),
        "compress": compress,
        "nodata": p.nodata,
    }
    # GTiff exige bloques múltiplos de 16; rasters chicos quedan en strips
    if tiled and p.width >= 256 and p.height >= 256:
        profile.update(tiled=True, blockxsize=256, blockysize=256)
    if not p.crs.is_empty():
        profile["crs"] = p.crs.to_string()
    return profile


class RasterioRasterWriter(RasterWriterPort):
    def write(
        self,
        uri: str,
        raster: GeoRaster,
        *,
        compress: Optional[str] = None,
        tiled: bool = True,
        colormap: Optional[Colormap] = None,
    ) -> str:
        _ensure_dir(uri)
        data = raster.data
        count = 1 if data.ndim == 2 else data.shape[0]
        profile = _gtiff_profile(raster.profile, data.dtype, count, compress=(compress or "DEFLATE").upper(), tiled=tiled)
        with rasterio.open(uri, "w", **profile) as dst:
            if data.ndim == 2:
                dst.write(data, 1)
            else:
                for i in range(count):
                    dst.write(data[i], i + 1)
            if colormap:
                dst.write_colormap(1, _full_colormap(colormap))
        return uri

    def write_surface(
        self,
        uri: str,
        surface: RasterSurface,
        *,
        block_size: int = 1024,
        compress: Optional[str] = None,
        colormap: Optional[Colormap] = None,
    ) -> str:
        """Escribe una superficie por ventanas (memoria acotada a un bloque)."""
        _ensure_dir(uri)
        p = surface.profile
        if p.width <= 0 or p.height <= 0:
            raise ValueError(f"superficie vacía ({p.width}x{p.height}); nada que escribir")
        profile = _gtiff_profile(p, p.dtype, 1, compress=(compress or "DEFLATE").upper(), tiled=True)
        n = 0
        with rasterio.open(uri, "w", **profile) as dst:
            for w in iter_windows(p.width, p.height, block_size):
                block = surface.read(w)
                dst.write(block.astype(p.dtype, copy=False), 1, window=RioWindow(w.col_off, w.row_off, w.width, w.height))
                n += 1
            if colormap:
                dst.write_colormap(1, _full_colormap(colormap))
        logger.info("Raster escrito: %s (%sx%s, %d bloques)", uri, p.width, p.height, n)
        return uri

    def mkdirs(self, uri: str) -> None:
        _ensure_dir(uri)


def _full_colormap(colormap: Colormap) -> Dict[int, tuple]:
    # RGBA opaco por clase; el resto (incl. nodata) transparente
    out: Dict[int, tuple] = {i: (0, 0, 0, 0) for i in range(256)}
    for k, (r, g, b) in colormap.items():
        out[int(k)] = (int(r), int(g), int(b), 255)
    return out
