# src/landclass/adapters/geopandas_boundaries.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

import geopandas as gpd
from shapely.geometry import mapping

from ..contracts.geo import CRSRef
from ..ports.boundary import BoundaryFeature, BoundarySourcePort

logger = logging.getLogger(__name__)


def _crs_to_crsref(crs_obj) -> CRSRef:
    """pyproj CRS → CRSRef (EPSG si existe, si no WKT)."""
    if crs_obj is None:
        return CRSRef()
    epsg = crs_obj.to_epsg()
    if epsg is not None:
        return CRSRef.from_epsg(int(epsg))
    return CRSRef.from_wkt(crs_obj.to_wkt())


class GeoPandasBoundarySource(BoundarySourcePort):
    """
    Límites administrativos desde un archivo vectorial (GeoPackage, Shapefile, GeoJSON...).
    Convención FAO GAUL nivel 1: `ADM0_NAME` (país) y `ADM1_NAME` (provincia/estado).
    El archivo se lee una sola vez, en el primer acceso.
    """

    def __init__(
        self,
        path: Path,
        *,
        country_field: str = "ADM0_NAME",
        admin1_field: str = "ADM1_NAME",
        layer: Optional[str] = None,
        encoding: Optional[str] = None,
    ) -> None:
        self.path = Path(path)
        self.country_field = country_field
        self.admin1_field = admin1_field
        self.layer = layer
        self.encoding = encoding
        self._gdf: Optional[gpd.GeoDataFrame] = None

    def _frame(self) -> gpd.GeoDataFrame:
        if self._gdf is None:
            if not self.path.exists():
                raise FileNotFoundError(f"No se encontró la fuente de límites: {self.path}")
            kw = {}
            if self.layer:
                kw["layer"] = self.layer
            if self.encoding:
                kw["encoding"] = self.encoding
            gdf = gpd.read_file(self.path, **kw)
            missing = [f for f in (self.country_field, self.admin1_field) if f not in gdf.columns]
            if missing:
                raise ValueError(f"{self.path.name}: faltan columnas {missing}")
            gdf[self.country_field] = gdf[self.country_field].astype(str)
            gdf[self.admin1_field] = gdf[self.admin1_field].astype(str)
            logger.info("Límites cargados: %s (%d entidades)", self.path.name, len(gdf))
            self._gdf = gdf
        return self._gdf

    def crs(self) -> CRSRef:
        return _crs_to_crsref(self._frame().crs)

    def countries(self) -> Sequence[str]:
        return sorted(self._frame()[self.country_field].unique().tolist())

    def admin1_names(self, country_name: str) -> Sequence[str]:
        gdf = self._frame()
        sub = gdf[gdf[self.country_field] == country_name]
        return sorted(sub[self.admin1_field].unique().tolist())

    def features(self, country_name: str, admin1_name: str) -> Sequence[BoundaryFeature]:
        gdf = self._frame()
        sub = gdf[(gdf[self.country_field] == country_name) & (gdf[self.admin1_field] == admin1_name)]
        out: List[BoundaryFeature] = []
        for _, row in sub.iterrows():
            props = {k: v for k, v in row.items() if k != gdf.geometry.name}
            out.append(BoundaryFeature(
                country_name=country_name,
                admin1_name=admin1_name,
                geometry=mapping(row[gdf.geometry.name]),
                properties=props,
            ))
        return out
