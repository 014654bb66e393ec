# src/landclass/services/aggregate_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, NamedTuple, Optional, Sequence, Set, Tuple

import numpy as np
from rasterio.features import geometry_mask
from rasterio.transform import Affine
from rasterio.warp import transform_geom
from shapely.geometry import shape

from ..contracts.core import NODATA_ID, UNKNOWN_ID
from ..contracts.errors import AggregationOverflow, EmptyJurisdiction
from ..contracts.io_lulc import IO_LULC_LEGEND
from ..contracts.geo import (
    Bounds, GeoProfile, Window, bounds_window, iter_windows, pretty_bounds, window_transform,
)
from ..contracts.products import Jurisdiction, pixels_to_hectares
from ..ports.surface import RasterSurface, RemapAwareSurface
from .cancel import CancelToken

"""
Recorte a la jurisdicción + conteo zonal por clase, en streaming por bloques.
Regla de pertenencia: centro del píxel dentro del polígono (all_touched=False).
Área = conteo * escala² / 10 000 ha. Conteos acumulados como int de Python.
"""

logger = logging.getLogger(__name__)

_EMPTY_WINDOW = Window(0, 0, 0, 0)


class MaskedBlock(NamedTuple):
    values: np.ndarray          # ids canónicos, 0 fuera de la jurisdicción
    inside: np.ndarray          # bool, píxel dentro de la jurisdicción
    unknown_codes: np.ndarray   # códigos crudos de los píxeles centinela dentro


def _geometry_in_crs(jur: Jurisdiction, profile: GeoProfile) -> Mapping[str, Any]:
    src, dst = jur.crs, profile.crs
    if src.is_empty() or dst.is_empty() or src.equals(dst):
        return jur.geometry
    logger.debug("Reproyectando jurisdicción %s -> %s", src.to_string()[:32], dst.to_string()[:32])
    return transform_geom(src.to_string(), dst.to_string(), jur.geometry)


class ClippedSurface:
    """
    Superficie remapeada recortada a la ventana del bbox de la jurisdicción.
    Los píxeles fuera del polígono valen NODATA_ID.
    """

    def __init__(self, source: RasterSurface, jurisdiction: Jurisdiction, *, all_touched: bool = False) -> None:
        self._source = source
        self.jurisdiction = jurisdiction
        self.all_touched = all_touched
        sp = source.profile
        self._geometry = _geometry_in_crs(jurisdiction, sp)
        geom = shape(self._geometry)
        win: Optional[Window] = None
        if not geom.is_empty:
            win = bounds_window(sp.transform, Bounds(*geom.bounds), sp.width, sp.height)
        self.window: Window = win if win is not None else _EMPTY_WINDOW
        self._profile = sp.subset(self.window, nodata=float(NODATA_ID))

    @property
    def profile(self) -> GeoProfile:
        return self._profile

    @property
    def geometry(self) -> Mapping[str, Any]:
        return self._geometry

    def is_empty(self) -> bool:
        return self.window.is_empty()

    def _inside(self, window: Window) -> np.ndarray:
        gt = window_transform(self._profile.transform, window)
        return geometry_mask(
            [self._geometry],
            out_shape=(window.height, window.width),
            transform=Affine.from_gdal(*gt),
            all_touched=self.all_touched,
            invert=True,
        )

    def read_masked(self, window: Window) -> MaskedBlock:
        src_win = window.shifted(self.window.col_off, self.window.row_off)
        if isinstance(self._source, RemapAwareSurface):
            values, raw = self._source.read_block(src_win)
        else:
            values, raw = self._source.read(src_win), None
        values = np.array(values, dtype=np.uint8, copy=True)
        inside = self._inside(window)
        values[~inside] = NODATA_ID
        if raw is not None:
            unknown = raw[(values == UNKNOWN_ID) & inside]
        else:
            unknown = np.empty(0, dtype=np.int64)
        return MaskedBlock(values, inside, unknown)

    def read(self, window: Window) -> np.ndarray:
        if self.is_empty():
            return np.full((window.height, window.width), NODATA_ID, dtype=np.uint8)
        return self.read_masked(window).values


@dataclass(frozen=True)
class ZonalCounts:
    """Conteos dentro de la jurisdicción. `counts` cubre todos los ids pedidos (ceros incluidos)."""
    counts: Mapping[int, int]
    pixel_scale_m: float
    unknown_pixels: int = 0
    unknown_codes: Tuple[int, ...] = ()
    nodata_pixels: int = 0
    inside_pixels: int = 0
    empty: bool = False
    blocks: int = 0

    def area_ha(self, class_id: int) -> float:
        return pixels_to_hectares(self.counts.get(class_id, 0), self.pixel_scale_m)

    @property
    def counted_pixels(self) -> int:
        return sum(self.counts.values())


def _check_scale(value: float) -> float:
    scale = float(value)
    if not scale > 0:
        raise ValueError(f"pixel_scale_m debe ser > 0: {value}")
    return scale


@dataclass
class ClipAndAggregate:
    pixel_scale_m: float = 30.0
    block_size: int = 1024
    max_pixels: float = 1e13
    all_touched: bool = False
    allow_empty: bool = True

    def __post_init__(self) -> None:
        self.pixel_scale_m = _check_scale(self.pixel_scale_m)
        if self.block_size <= 0:
            raise ValueError(f"block_size debe ser > 0: {self.block_size}")

    def clip(self, surface: RasterSurface, jurisdiction: Jurisdiction) -> ClippedSurface:
        clipped = ClippedSurface(surface, jurisdiction, all_touched=self.all_touched)
        if clipped.is_empty():
            logger.warning(
                "Jurisdicción %s / %s no intersecta el mosaico (%s)",
                jurisdiction.country_name, jurisdiction.admin1_name,
                pretty_bounds(surface.profile.bounds),
            )
        return clipped

    def count(
        self,
        clipped: ClippedSurface,
        legend_ids: Optional[Sequence[int]] = None,
        *,
        pixel_scale_m: Optional[float] = None,
        cancel: Optional[CancelToken] = None,
    ) -> ZonalCounts:
        """Sin `legend_ids` cuenta las clases de la leyenda IO/Esri LULC."""
        scale = self.pixel_scale_m if pixel_scale_m is None else _check_scale(pixel_scale_m)
        if legend_ids is None:
            legend_ids = IO_LULC_LEGEND.ids_in_order()
        ids = [int(i) for i in legend_ids]
        if not ids:
            raise ValueError("legend_ids vacío: no hay clases que contar")
        counts: Dict[int, int] = {i: 0 for i in ids}
        jur = clipped.jurisdiction

        if clipped.is_empty():
            return self._empty(counts, scale, jur)

        win = clipped.window
        if win.size > self.max_pixels:
            raise AggregationOverflow(
                f"ventana de {win.size} píxeles supera max_pixels={self.max_pixels:g}",
                pixels=win.size, max_pixels=self.max_pixels,
            )

        unknown_pixels = nodata_pixels = inside_pixels = 0
        unknown_codes: Set[int] = set()
        n = 0
        for w in iter_windows(win.width, win.height, self.block_size):
            if cancel is not None:
                cancel.raise_if_cancelled(country_name=jur.country_name, admin1_name=jur.admin1_name)
            block = clipped.read_masked(w)
            vals = block.values[block.inside]
            inside_pixels += int(vals.size)
            uniq, cnt = np.unique(vals, return_counts=True)
            for v, c in zip(uniq.tolist(), cnt.tolist()):
                if v in counts:
                    counts[v] += int(c)
                elif v == NODATA_ID:
                    nodata_pixels += int(c)
                else:
                    unknown_pixels += int(c)
            if block.unknown_codes.size:
                unknown_codes.update(int(c) for c in np.unique(block.unknown_codes).tolist())
            n += 1

        if inside_pixels == 0:
            return self._empty(counts, scale, jur, blocks=n)

        if unknown_pixels:
            logger.warning(
                "%d píxeles con códigos sin traducción %s en %s / %s",
                unknown_pixels, sorted(unknown_codes), jur.country_name, jur.admin1_name,
            )
        logger.info(
            "Conteo %s / %s: %d píxeles dentro, %d bloques", jur.country_name, jur.admin1_name, inside_pixels, n,
        )
        return ZonalCounts(
            counts=MappingProxyType(counts),
            pixel_scale_m=scale,
            unknown_pixels=unknown_pixels,
            unknown_codes=tuple(sorted(unknown_codes)),
            nodata_pixels=nodata_pixels,
            inside_pixels=inside_pixels,
            empty=False,
            blocks=n,
        )

    def clip_and_count(
        self,
        surface: RasterSurface,
        jurisdiction: Jurisdiction,
        pixel_scale_m: Optional[float] = None,
        legend_ids: Optional[Sequence[int]] = None,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> ZonalCounts:
        clipped = self.clip(surface, jurisdiction)
        return self.count(clipped, legend_ids, pixel_scale_m=pixel_scale_m, cancel=cancel)

    def _empty(self, counts: Dict[int, int], scale: float, jur: Jurisdiction, blocks: int = 0) -> ZonalCounts:
        if not self.allow_empty:
            raise EmptyJurisdiction(
                f"{jur.country_name} / {jur.admin1_name} no cubre ningún píxel del mosaico",
                country_name=jur.country_name, admin1_name=jur.admin1_name,
            )
        return ZonalCounts(counts=MappingProxyType(counts), pixel_scale_m=scale, empty=True, blocks=blocks)


__all__ = ["ClipAndAggregate", "ClippedSurface", "ZonalCounts", "MaskedBlock"]
