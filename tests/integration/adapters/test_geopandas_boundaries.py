# tests/integration/adapters/test_geopandas_boundaries.py
from pathlib import Path

import geopandas as gpd
import pytest
from shapely.geometry import box

from landclass.adapters.geopandas_boundaries import GeoPandasBoundarySource
from landclass.contracts.errors import AmbiguousBoundary
from landclass.services.boundary_service import BoundaryResolver


def _write_gaul(path: Path, rows, crs="EPSG:32719") -> Path:
    gdf = gpd.GeoDataFrame(
        {"ADM0_NAME": [r[0] for r in rows], "ADM1_NAME": [r[1] for r in rows]},
        geometry=[r[2] for r in rows],
        crs=crs,
    )
    gdf.to_file(path, driver="GPKG")
    return path


def test_names_features_and_crs(tmp_path: Path):
    path = _write_gaul(tmp_path / "gaul.gpkg", [
        ("Chile", "Atacama", box(0, 0, 120, 120)),
        ("Chile", "Coquimbo", box(200, 0, 300, 100)),
        ("Peru", "Tacna", box(0, 200, 50, 250)),
    ])
    src = GeoPandasBoundarySource(path)
    assert src.countries() == ["Chile", "Peru"]
    assert src.admin1_names("Chile") == ["Atacama", "Coquimbo"]
    feats = src.features("Chile", "Atacama")
    assert len(feats) == 1 and feats[0].geometry["type"] == "Polygon"
    assert feats[0].properties["ADM1_NAME"] == "Atacama"
    j = BoundaryResolver(src).resolve("Chile", "Atacama")
    assert tuple(j.bounds) == (0.0, 0.0, 120.0, 120.0)
    assert j.crs.epsg == 32719


def test_custom_fields_and_duplicates(tmp_path: Path):
    gdf = gpd.GeoDataFrame(
        {"pais": ["Chile", "Chile"], "region": ["Atacama", "Atacama"]},
        geometry=[box(0, 0, 1, 1), box(2, 2, 3, 3)],
        crs="EPSG:4326",
    )
    path = tmp_path / "dup.gpkg"
    gdf.to_file(path, driver="GPKG")
    src = GeoPandasBoundarySource(path, country_field="pais", admin1_field="region")
    with pytest.raises(AmbiguousBoundary):
        BoundaryResolver(src).resolve("Chile", "Atacama")


def test_missing_fields_or_file(tmp_path: Path):
    path = _write_gaul(tmp_path / "g.gpkg", [("Chile", "Atacama", box(0, 0, 1, 1))])
    with pytest.raises(ValueError):
        GeoPandasBoundarySource(path, country_field="NAME_0").countries()
    with pytest.raises(FileNotFoundError):
        GeoPandasBoundarySource(tmp_path / "none.gpkg").countries()
