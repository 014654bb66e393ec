# src/landclass/composition/di.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import yaml

from ..adapters.csv_catalog import CsvTileCatalog
from ..adapters.csv_exporter import CSVExporter
from ..adapters.geopandas_boundaries import GeoPandasBoundarySource
from ..adapters.rasterio_reader import RasterioReader
from ..adapters.rasterio_writer import RasterioRasterWriter
from ..config import Settings
from ..contracts.core import ClassLabel
from ..ports.boundary import BoundarySourcePort
from ..ports.raster_collection import RasterCollectionPort
from ..ports.raster_read import RasterReaderPort
from ..services.aggregate_service import ClipAndAggregate
from ..services.boundary_service import BoundaryResolver
from ..services.mosaic_service import RasterMosaicSelector
from ..services.remap_service import CategoryRemapper
from ..services.summary_service import LandCoverSummaryService

CONFIG_DIR = "00-Config"


def load_settings_from_yaml(path: Path, **overrides) -> Settings:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    data.update(overrides)
    return Settings(**data)


def load_legend(path: Path) -> tuple[ClassLabel, ...]:
    """Leyenda desde JSON: lista de {"id", "name", "color"} (color como "#rrggbb" o {r,g,b})."""
    items = json.loads(path.read_text(encoding="utf-8"))
    out: list[ClassLabel] = []
    for it in items:
        out.append(ClassLabel(id=int(it["id"]), name=str(it["name"]), color=it.get("color", "#C8C8C8")))
    return tuple(out)


def build_settings(project_root: Path, **overrides) -> Settings:
    root = Path(project_root).resolve()
    cfg = root / CONFIG_DIR / "settings.yaml"
    if cfg.exists():
        st = load_settings_from_yaml(cfg, **{"project_root": root, **overrides})
    else:
        st = Settings(project_root=root, **overrides)
    if not st.legend:
        legend_json = root / CONFIG_DIR / "legend.json"
        if legend_json.exists():
            st = st.model_copy(update={"legend": load_legend(legend_json)})
    return st


def build_boundary_source(st: Settings) -> BoundarySourcePort:
    return GeoPandasBoundarySource(
        st.boundary_file,
        country_field=st.country_field,
        admin1_field=st.admin1_field,
        layer=st.boundary_layer,
    )


def build_collection(st: Settings) -> RasterCollectionPort:
    return CsvTileCatalog(st.tile_index, year_range=st.year_range())


def build_service(
    st: Settings,
    *,
    boundaries: Optional[BoundarySourcePort] = None,
    collection: Optional[RasterCollectionPort] = None,
    reader: Optional[RasterReaderPort] = None,
) -> LandCoverSummaryService:
    """Wiring por defecto: geopandas + índice CSV + rasterio. Cada port es reemplazable."""
    reader = reader or RasterioReader()
    return LandCoverSummaryService(
        resolver=BoundaryResolver(boundaries or build_boundary_source(st)),
        selector=RasterMosaicSelector(
            collection=collection or build_collection(st),
            reader=reader,
            pixel_scale_m=st.pixel_scale_m,
            year_range=st.year_range(),
            target_crs=st.mosaic_crs,
        ),
        remapper=CategoryRemapper(st.code_map_or_default(), policy=st.unknown_policy),
        aggregator=ClipAndAggregate(
            pixel_scale_m=st.pixel_scale_m,
            block_size=st.block_size,
            max_pixels=st.max_pixels,
            all_touched=st.all_touched,
            allow_empty=st.allow_empty,
        ),
        legend=st.legend_or_default(),
        writer=RasterioRasterWriter(),
        reporter=CSVExporter(),
        block_size=st.block_size,
    )
