# src/landclass/services/assemble_service.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..contracts.core import ClassLegend
from ..contracts.products import AreaEntry, AreaResult, pixels_to_hectares
from .aggregate_service import ClippedSurface, ZonalCounts


@dataclass
class ResultAssembler:
    """Ordena por leyenda (no por área), completa con ceros y empaqueta el raster recortado."""

    def assemble(self, legend: ClassLegend, counts: ZonalCounts, clipped: ClippedSurface) -> Tuple[AreaResult, ClippedSurface]:
        scale = counts.pixel_scale_m
        entries = []
        for cid in legend.ids_in_order():
            n = int(counts.counts.get(cid, 0))
            entries.append(AreaEntry(
                canonical_id=cid,
                class_name=legend.name_of(cid),
                pixel_count=n,
                area_ha=pixels_to_hectares(n, scale),
            ))
        result = AreaResult(
            entries=tuple(entries),
            pixel_scale_m=scale,
            unknown_pixels=counts.unknown_pixels,
            unknown_codes=counts.unknown_codes,
            nodata_pixels=counts.nodata_pixels,
            empty=counts.empty,
        )
        return result, clipped


__all__ = ["ResultAssembler"]
