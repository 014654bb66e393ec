# src/landclass/adapters/memory_rasters.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from rasterio.enums import Resampling
from rasterio.transform import Affine
from rasterio.warp import reproject

from ..contracts.geo import Bounds, CRSRef, GeoProfile, GeoRaster
from ..ports.raster_collection import RasterCollectionPort, TileItem
from ..ports.raster_read import RasterReaderPort


def sample_nearest(raster: GeoRaster, bounds: Bounds, width: int, height: int, fill: float) -> np.ndarray:
    """Remuestreo por vecino más cercano (centro de píxel) a una grilla de salida."""
    p = raster.profile
    if not p.is_north_up():
        raise ValueError("solo se soportan rasters norte-arriba sin rotación")
    x0, px, _, y0, _, py = p.transform
    resx = (bounds.maxx - bounds.minx) / float(width)
    resy = (bounds.maxy - bounds.miny) / float(height)
    xs = bounds.minx + (np.arange(width) + 0.5) * resx
    ys = bounds.maxy - (np.arange(height) + 0.5) * resy
    cols = np.floor((xs - x0) / px).astype(np.int64)
    rows = np.floor((ys - y0) / py).astype(np.int64)
    vc = (cols >= 0) & (cols < p.width)
    vr = (rows >= 0) & (rows < p.height)
    out = np.full((height, width), fill, dtype=raster.data.dtype)
    if vc.any() and vr.any():
        out[np.ix_(vr, vc)] = raster.data[np.ix_(rows[vr], cols[vc])]
    return out


def warp_nearest(raster: GeoRaster, bounds: Bounds, width: int, height: int, fill: float, crs: str) -> np.ndarray:
    """Reproyecta `raster` a la grilla (bounds, width, height) en `crs`, vecino más cercano."""
    p = raster.profile
    out = np.full((height, width), fill, dtype=raster.data.dtype)
    dst_transform = Affine(
        (bounds.maxx - bounds.minx) / float(width), 0.0, bounds.minx,
        0.0, -(bounds.maxy - bounds.miny) / float(height), bounds.maxy,
    )
    reproject(
        source=raster.data,
        destination=out,
        src_transform=Affine.from_gdal(*p.transform),
        src_crs=p.crs.to_string(),
        src_nodata=p.nodata,
        dst_transform=dst_transform,
        dst_crs=crs,
        dst_nodata=fill,
        resampling=Resampling.nearest,
    )
    return out


class MemoryRasterStore(RasterReaderPort):
    """Lector en memoria: URIs lógicas -> GeoRaster. Útil para tests y notebooks."""

    def __init__(self, rasters: Optional[Dict[str, GeoRaster]] = None) -> None:
        self._rasters: Dict[str, GeoRaster] = dict(rasters or {})

    def put(self, uri: str, raster: GeoRaster) -> str:
        self._rasters[uri] = raster
        return uri

    def _get(self, uri: str) -> GeoRaster:
        try:
            return self._rasters[uri]
        except KeyError:
            raise FileNotFoundError(uri) from None

    def read(self, uri: str, band_index: int | None = None) -> GeoRaster:
        return self._get(uri)

    def profile(self, uri: str) -> GeoProfile:
        return self._get(uri).profile

    def read_bounds(
        self, uri: str, bounds: Bounds, width: int, height: int, *,
        fill: Optional[float] = None, crs: Optional[str] = None,
    ) -> np.ndarray:
        r = self._get(uri)
        fill_value = fill if fill is not None else (r.profile.nodata if r.profile.nodata is not None else 0)
        src_crs = r.profile.crs
        if crs is not None and not src_crs.is_empty() and not src_crs.equals(CRSRef.parse(crs)):
            return warp_nearest(r, bounds, width, height, fill_value, crs)
        return sample_nearest(r, bounds, width, height, fill_value)

    def exists(self, uri: str) -> bool:
        return uri in self._rasters


class MemoryTileCollection(RasterCollectionPort):
    """Colección en memoria. El orden de `tiles` es el orden de iteración."""

    def __init__(
        self,
        tiles: Iterable[TileItem],
        *,
        name: str = "memory",
        year_range: Optional[Tuple[int, int]] = None,
    ) -> None:
        self._tiles: List[TileItem] = list(tiles)
        self._name = name
        self._year_range = year_range

    @classmethod
    def from_rasters(
        cls,
        store: MemoryRasterStore,
        items: Sequence[Tuple[str, int, GeoRaster]],
        **kw,
    ) -> "MemoryTileCollection":
        """Registra (tile_id, year, raster) en `store` y arma la colección."""
        tiles: List[TileItem] = []
        for tile_id, year, raster in items:
            uri = store.put(f"mem://{tile_id}/{year}", raster)
            tiles.append(TileItem(
                tile_id=tile_id,
                year=year,
                uri=uri,
                crs=raster.profile.crs.to_string() if not raster.profile.crs.is_empty() else None,
                bounds=tuple(raster.profile.bounds),
            ))
        return cls(tiles, **kw)

    def name(self) -> str:
        return self._name

    def years(self) -> Sequence[int]:
        if self._year_range is not None:
            lo, hi = self._year_range
            return list(range(lo, hi + 1))
        return sorted({t.year for t in self._tiles})

    def list_tiles(self, year: int) -> Sequence[TileItem]:
        return [t for t in self._tiles if t.year == int(year)]
