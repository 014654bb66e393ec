# tests/integration/adapters/test_csv_catalog.py
import csv
from datetime import date
from pathlib import Path

import pytest

from landclass.adapters.csv_catalog import CsvTileCatalog
from landclass.adapters.csv_exporter import CSVExporter
from landclass.ports.raster_collection import RasterCollectionPort


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_year_column_and_row_order(tmp_path: Path):
    idx = _write(tmp_path / "tiles.csv", "tile_id,year,path\nB,2020,b.tif\nA,2020,a.tif\nA,2019,a19.tif\n")
    cat = CsvTileCatalog(idx)
    assert isinstance(cat, RasterCollectionPort)
    assert [t.tile_id for t in cat.list_tiles(2020)] == ["B", "A"]
    assert cat.list_tiles(2020)[1].uri == str((tmp_path / "a.tif").resolve())
    assert cat.years() == [2019, 2020]
    assert cat.name() == "tiles"


def test_year_from_start_time_and_epoch_millis(tmp_path: Path):
    idx = _write(
        tmp_path / "lulc.csv",
        "system:index,system:time_start,uri,epsg\n"
        "19H_2017,2017-01-01,/data/19H_2017.tif,32719\n"
        "19H_2021,1609459200000,s3://bucket/19H_2021.tif,32719\n",
    )
    cat = CsvTileCatalog(idx)
    t17 = cat.list_tiles(2017)[0]
    assert t17.start_date == date(2017, 1, 1)
    assert t17.crs == "EPSG:32719"
    t21 = cat.list_tiles(2021)[0]
    assert t21.uri == "s3://bucket/19H_2021.tif"
    assert t21.tile_id == "19H_2021"


def test_configured_year_range_and_missing_file(tmp_path: Path):
    idx = _write(tmp_path / "t.csv", "tile_id,year,path\nA,2020,a.tif\n")
    assert CsvTileCatalog(idx, year_range=(2017, 2022)).years() == list(range(2017, 2023))
    with pytest.raises(FileNotFoundError):
        CsvTileCatalog(tmp_path / "nope.csv")


def test_row_without_year_or_date_fails(tmp_path: Path):
    idx = _write(tmp_path / "t.csv", "tile_id,path\nA,a.tif\n")
    with pytest.raises(ValueError):
        CsvTileCatalog(idx)


def test_csv_exporter_area_template(tmp_path: Path):
    out = CSVExporter(float_digits=2).render(
        "area_summary",
        {"rows": [{"canonical_id": 1, "landcover_type": "Water", "pixel_count": 8, "area_ha": 0.72}]},
        str(tmp_path / "out" / "areas.csv"),
    )
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["canonical_id", "landcover_type", "pixel_count", "area_ha"]
    assert rows[1] == ["1", "Water", "8", "0.72"]
