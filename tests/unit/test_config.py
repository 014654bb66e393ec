# tests/unit/test_config.py
import json
import pytest
import yaml
from pathlib import Path
from landclass.config import Settings, get_settings
from landclass.contracts.io_lulc import IO_LULC_CODE_MAP, IO_LULC_LEGEND
from landclass.composition.di import build_service, build_settings
from landclass.services.summary_service import LandCoverSummaryService

def test_settings_defaults_and_paths(tmp_path: Path):
    s = Settings(project_root=tmp_path)
    assert s.pixel_scale_m == 30.0
    assert s.max_pixels == 1e13
    assert s.year_range() == (2017, 2022)
    assert s.unknown_policy == "sentinel"
    assert s.boundary_file.is_absolute() and tmp_path in s.boundary_file.parents
    assert s.legend_or_default() == IO_LULC_LEGEND
    assert s.code_map_or_default() == IO_LULC_CODE_MAP
    p = s.out_path("area_table", country="Chile", admin1="Región de Atacama", year=2020)
    assert tmp_path in p.parents
    assert p.name == "landcover_2020.csv"
    assert "Regi_n_de_Atacama" in str(p)

def test_settings_placeholders_guard():
    with pytest.raises(ValueError):
        Settings(output_patterns={"area_table": "out/{site}/x.csv"})

@pytest.mark.parametrize("kw", [
    {"year_min": 2022, "year_max": 2017},
    {"pixel_scale_m": 0},
    {"block_size": 0},
    {"unknown_policy": "passthrough"},
    {"log_level": "chatty"},
    {"unexpected": 1},
])
def test_settings_validation(kw):
    with pytest.raises(ValueError):
        Settings(**kw)

def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("LANDCLASS_PIXEL_SCALE_M", "10")
    monkeypatch.setenv("LANDCLASS_ALL_TOUCHED", "true")
    s = get_settings()
    assert s.pixel_scale_m == 10.0
    assert s.all_touched is True
    assert get_settings() is s

def test_build_settings_from_yaml_and_legend(tmp_path: Path):
    cfg_dir = tmp_path / "00-Config"
    cfg_dir.mkdir(parents=True)
    (cfg_dir / "settings.yaml").write_text(yaml.safe_dump({
        "boundary_file": "refs/gaul.geojson",
        "tile_index": "refs/tiles.csv",
        "pixel_scale_m": 10.0,
        "year_min": 2018,
        "year_max": 2020,
    }), encoding="utf-8")
    (cfg_dir / "legend.json").write_text(json.dumps([
        {"id": 1, "name": "Agua", "color": "#0000ff"},
        {"id": 2, "name": "Resto", "color": {"r": 1, "g": 2, "b": 3}},
    ]), encoding="utf-8")
    s = build_settings(tmp_path)
    assert s.project_root == tmp_path.resolve()
    assert s.tile_index == tmp_path.resolve() / "refs/tiles.csv"
    assert s.year_range() == (2018, 2020)
    legend = s.legend_or_default()
    assert legend.ids_in_order() == (1, 2)
    assert legend.color_of(2).as_tuple() == (1, 2, 3)

def test_build_service_wires_ports(tmp_path: Path):
    s = Settings(project_root=tmp_path, block_size=256, all_touched=True)
    (tmp_path / "00-Config").mkdir()
    (tmp_path / "00-Config" / "io_lulc_tiles.csv").write_text("tile_id,year,path\n", encoding="utf-8")
    svc = build_service(s)
    assert isinstance(svc, LandCoverSummaryService)
    assert svc.aggregator.all_touched is True
    assert svc.aggregator.block_size == 256
    assert svc.selector.supported_years() == list(range(2017, 2023))
    assert svc.selector.target_crs is None

def test_build_service_mosaic_crs(tmp_path: Path):
    s = Settings(project_root=tmp_path, mosaic_crs="EPSG:32719")
    (tmp_path / "00-Config").mkdir()
    (tmp_path / "00-Config" / "io_lulc_tiles.csv").write_text("tile_id,year,path\n", encoding="utf-8")
    assert build_service(s).selector.target_crs == "EPSG:32719"
