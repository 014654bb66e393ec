# src/landclass/services/summary_service.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..contracts.core import ClassLegend, RunError, RunMeta, Selection
from ..contracts.errors import LandClassError
from ..contracts.io_lulc import IO_LULC_LEGEND
from ..contracts.products import LandCoverSummary, SummaryExport
from ..ports.exporters import ReportExporterPort
from ..ports.raster_write import RasterWriterPort
from .aggregate_service import ClipAndAggregate
from .assemble_service import ResultAssembler
from .boundary_service import BoundaryResolver
from .cancel import CancelToken
from .mosaic_service import RasterMosaicSelector
from .remap_service import CategoryRemapper

"""
Orquestador del resumen de cobertura por jurisdicción y año, contracts-first.
Pipeline:
  RESOLVE ∥ MOSAIC → REMAP → CLIP/AGGREGATE → ASSEMBLE → (EXPORT opcional)

No asume backends concretos: todo va vía *ports*. No usa Settings ni calcula rutas.
"""

logger = logging.getLogger(__name__)

AREA_TEMPLATE = "area_summary"


@dataclass
class LandCoverSummaryService:
    resolver: Optional[BoundaryResolver] = None
    selector: Optional[RasterMosaicSelector] = None
    remapper: Optional[CategoryRemapper] = None
    aggregator: Optional[ClipAndAggregate] = None
    assembler: Optional[ResultAssembler] = None
    legend: ClassLegend = IO_LULC_LEGEND
    writer: Optional[RasterWriterPort] = None
    reporter: Optional[ReportExporterPort] = None
    block_size: int = 1024

    def __post_init__(self) -> None:
        if self.aggregator is None:
            self.aggregator = ClipAndAggregate(block_size=self.block_size)
        if self.assembler is None:
            self.assembler = ResultAssembler()
        if self.remapper is not None and self.remapper.code_map is not None:
            self.remapper.code_map.check_covers(self.legend)

    # --------- API principal ---------
    def run(self, selection: Selection, cancel: Optional[CancelToken] = None) -> LandCoverSummary:
        if self.resolver is None:
            raise RuntimeError("BoundaryResolver no configurado")
        if self.selector is None:
            raise RuntimeError("RasterMosaicSelector no configurado")
        if self.remapper is None:
            raise RuntimeError("CategoryRemapper no configurado")
        assert self.aggregator is not None and self.assembler is not None

        meta = RunMeta(selection=selection)
        logger.info("Resumen %s / %s / %s", selection.country_name, selection.admin1_name, selection.year)

        # 1) RESOLVE ∥ MOSAIC (independientes entre sí)
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="landclass") as ex:
            f_jur = ex.submit(self.resolver.resolve, selection.country_name, selection.admin1_name)
            f_mos = ex.submit(self.selector.select_mosaic, selection.year)
            jurisdiction = f_jur.result()
            mosaic = f_mos.result()
        if cancel is not None:
            cancel.raise_if_cancelled(year=selection.year)

        # 2) REMAP (perezoso) → 3) CLIP + conteo por bloques
        remapped = self.remapper.remap(mosaic)
        clipped = self.aggregator.clip(remapped, jurisdiction)
        counts = self.aggregator.count(clipped, self.legend.ids_in_order(), cancel=cancel)

        # 4) ASSEMBLE
        areas, raster = self.assembler.assemble(self.legend, counts, clipped)
        meta = meta.end_now()
        logger.info(
            "Resumen listo en %.2fs: %.2f ha clasificadas, %d píxeles desconocidos",
            meta.duration_s or 0.0, areas.total_area_ha, areas.unknown_pixels,
        )
        return LandCoverSummary(
            selection=selection,
            jurisdiction=jurisdiction,
            areas=areas,
            raster=raster,
            legend=self.legend,
            meta=meta,
        )

    def try_run(
        self, selection: Selection, cancel: Optional[CancelToken] = None
    ) -> Tuple[Optional[LandCoverSummary], Optional[RunError]]:
        """Como `run`, pero devuelve el error de dominio en vez de lanzarlo."""
        try:
            return self.run(selection, cancel=cancel), None
        except LandClassError as e:
            logger.warning("Resumen fallido en %s: %s", e.stage.value, e.message)
            return None, e.to_run_error()

    # --------- Export opcional ---------
    def export(
        self,
        summary: LandCoverSummary,
        table_uri: Optional[Path] = None,
        raster_uri: Optional[Path] = None,
    ) -> SummaryExport:
        table_path: Optional[Path] = None
        raster_path: Optional[Path] = None
        skipped: List[str] = []

        if table_uri is not None:
            if self.reporter is None:
                raise RuntimeError("ReportExporterPort no configurado")
            ctx = {"rows": summary.areas.as_rows()}
            table_path = Path(self.reporter.render(AREA_TEMPLATE, ctx, str(table_uri)))

        if raster_uri is not None:
            if self.writer is None:
                raise RuntimeError("RasterWriterPort no configurado")
            if summary.raster.is_empty():
                logger.warning("Raster recortado vacío; no se escribe %s", raster_uri)
                skipped.append("raster")
            else:
                raster_path = Path(self.writer.write_surface(
                    str(raster_uri),
                    summary.raster,
                    block_size=self.block_size,
                    colormap=summary.legend.palette(),
                ))
        return SummaryExport(table_path=table_path, raster_path=raster_path, skipped=tuple(skipped))


__all__ = ["LandCoverSummaryService", "AREA_TEMPLATE"]
