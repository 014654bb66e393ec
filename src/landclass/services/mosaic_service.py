# src/landclass/services/mosaic_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from rasterio.crs import CRS
from rasterio.errors import CRSError
from rasterio.warp import transform_bounds

from ..contracts.errors import MosaicGridError, NoTilesForYear, YearOutOfRange
from ..contracts.geo import (
    Bounds, CRSRef, GeoProfile, Window, grid_for_bounds, intersect_bounds,
    pretty_bounds, union_bounds, window_bounds,
)
from ..contracts.io_lulc import RAW_NODATA, SUPPORTED_YEARS
from ..ports.raster_collection import RasterCollectionPort, TileItem
from ..ports.raster_read import RasterReaderPort

"""
Selección de teselas por año y mosaico perezoso sobre una grilla regular.
Regla de mosaico: la última tesela (orden de la colección) gana píxel a píxel
donde tiene dato; el nodata de una tesela es transparente. Sin mezcla.
La grilla vive en un CRS proyectado en metros; las teselas de otra zona se
reproyectan por vecino más cercano al leer cada bloque.
"""

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _TileSource:
    item: TileItem
    bounds: Bounds                 # en el CRS del mosaico
    nodata: Optional[float]
    warp_to: Optional[str] = None  # CRS destino si la tesela está en otro CRS


def _metric_crs(crs: CRSRef, what: str) -> None:
    if crs.is_empty():
        return
    try:
        rio = CRS.from_user_input(crs.to_string())
    except CRSError as e:
        raise MosaicGridError(f"{what}: CRS no reconocido ({e})", crs=crs.to_string()[:64]) from e
    if not rio.is_projected:
        raise MosaicGridError(
            f"{what}: el CRS {crs.to_string()[:32]} no es proyectado; la grilla requiere metros",
            crs=crs.to_string()[:64],
        )
    _, factor = rio.linear_units_factor
    if abs(float(factor) - 1.0) > 1e-9:
        raise MosaicGridError(
            f"{what}: unidades lineales {rio.linear_units} no son metros",
            crs=crs.to_string()[:64],
        )


class MosaicSurface:
    """Superficie de una banda sobre la unión de teselas, leída por ventanas."""

    def __init__(
        self,
        reader: RasterReaderPort,
        tiles: Sequence[_TileSource],
        profile: GeoProfile,
        year: int,
    ) -> None:
        self._reader = reader
        self._tiles = tuple(tiles)
        self._profile = profile
        self.year = year

    @property
    def profile(self) -> GeoProfile:
        return self._profile

    @property
    def tile_ids(self) -> Tuple[str, ...]:
        return tuple(t.item.tile_id for t in self._tiles)

    def read(self, window: Window) -> np.ndarray:
        p = self._profile
        nodata = p.nodata if p.nodata is not None else RAW_NODATA
        out = np.full((window.height, window.width), nodata, dtype=p.dtype)
        if window.is_empty():
            return out
        wb = window_bounds(p.transform, window)
        x0, res, _, y0, _, ny = p.transform
        # centros de píxel del bloque
        xs = x0 + (window.col_off + np.arange(window.width) + 0.5) * res
        ys = y0 + (window.row_off + np.arange(window.height) + 0.5) * ny
        for t in self._tiles:
            if intersect_bounds(wb, t.bounds) is None:
                continue
            fill = t.nodata if t.nodata is not None else nodata
            arr = self._reader.read_bounds(
                t.item.uri, wb, window.width, window.height, fill=fill, crs=t.warp_to,
            )
            inside_x = (xs >= t.bounds.minx) & (xs < t.bounds.maxx)
            inside_y = (ys > t.bounds.miny) & (ys <= t.bounds.maxy)
            has_data = inside_y[:, None] & inside_x[None, :]
            if t.nodata is not None:
                has_data &= arr != t.nodata
            if t.warp_to is not None:
                # la huella reproyectada no es un rectángulo: fuera de ella queda `fill`
                has_data &= arr != fill
            out[has_data] = arr[has_data]
        return out


@dataclass
class RasterMosaicSelector:
    """
    Filtra la colección por año y arma el mosaico (perezoso) a `pixel_scale_m`.

    CRS de la grilla: `target_crs` si se configura; si no, el de la primera
    tesela del año. Debe ser proyectado en metros (p.ej. UTM). Las teselas en
    otro CRS (otras zonas UTM) se reproyectan a esa grilla.
    """
    collection: Optional[RasterCollectionPort] = None
    reader: Optional[RasterReaderPort] = None
    pixel_scale_m: float = 30.0
    year_range: Optional[Tuple[int, int]] = SUPPORTED_YEARS
    mosaic_nodata: int = RAW_NODATA
    target_crs: Optional[str] = None

    def supported_years(self) -> Sequence[int]:
        if self.year_range is not None:
            lo, hi = self.year_range
            return list(range(int(lo), int(hi) + 1))
        if self.collection is None:
            raise RuntimeError("RasterCollectionPort no configurado")
        return sorted(set(self.collection.years()))

    def select_mosaic(self, year: int) -> MosaicSurface:
        if self.collection is None:
            raise RuntimeError("RasterCollectionPort no configurado")
        if self.reader is None:
            raise RuntimeError("RasterReaderPort no configurado")
        years = self.supported_years()
        if year not in years:
            lo, hi = (min(years), max(years)) if years else (None, None)
            raise YearOutOfRange(
                f"año {year} fuera del rango soportado {lo}–{hi}",
                year=year, supported=(lo, hi),
            )

        items = [t for t in self.collection.list_tiles(year) if t.year == year]
        if not items:
            raise NoTilesForYear(f"sin teselas para {year} en '{self.collection.name()}'", year=year)

        profiles = [self.reader.profile(it.uri) for it in items]
        crss = [CRSRef.parse(it.crs) if it.crs else prof.crs for it, prof in zip(items, profiles)]
        target = CRSRef.parse(self.target_crs) if self.target_crs else crss[0]
        _metric_crs(target, f"mosaico {year}")

        sources: List[_TileSource] = []
        for it, prof, crs in zip(items, profiles, crss):
            bounds = Bounds(*it.bounds) if it.bounds else prof.bounds
            if crs.is_empty() or target.is_empty() or crs.equals(target):
                sources.append(_TileSource(it, bounds, prof.nodata))
                continue
            try:
                tb = transform_bounds(crs.to_string(), target.to_string(), *bounds, densify_pts=21)
            except CRSError as e:
                raise MosaicGridError(
                    f"tesela {it.tile_id} no reproyectable a {target.to_string()[:32]}: {e}",
                    tile_id=it.tile_id, year=year,
                ) from e
            logger.debug("Tesela %s: %s -> %s", it.tile_id, crs.to_string()[:32], target.to_string()[:32])
            sources.append(_TileSource(it, Bounds(*tb), prof.nodata, warp_to=target.to_string()))

        extent = union_bounds([s.bounds for s in sources])
        gt, width, height = grid_for_bounds(extent, self.pixel_scale_m)
        profile = GeoProfile(
            count=1,
            dtype=profiles[0].dtype,
            width=width,
            height=height,
            transform=gt,
            crs=target,
            nodata=float(self.mosaic_nodata),
        )
        warped = sum(1 for s in sources if s.warp_to is not None)
        logger.info(
            "Mosaico %s: %d teselas (%d reproyectadas), %sx%s px @ %s m, %s",
            year, len(sources), warped, width, height, self.pixel_scale_m, pretty_bounds(extent),
        )
        return MosaicSurface(self.reader, sources, profile, year)


__all__ = ["RasterMosaicSelector", "MosaicSurface"]
