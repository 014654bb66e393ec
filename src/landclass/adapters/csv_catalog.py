# =============================
# FILE: src/landclass/adapters/csv_catalog.py
# =============================
from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from landclass.ports.raster_collection import RasterCollectionPort, TileItem

logger = logging.getLogger(__name__)


# Column maps tolerantes a distintas nomenclaturas
TILE_COLMAP: Dict[str, Tuple[str, ...]] = {
    "tile_id": ("tile_id", "TILE_ID", "tile", "TILE", "id", "system:index"),
    "year": ("year", "YEAR", "anio", "año"),
    "start_time": (
        "start_time",
        "system:time_start",
        "start_date",
        "date",
        "DATE",
        "datetime",
        "time",
    ),
    "path": ("path", "PATH", "uri", "URI", "filepath", "asset_path", "product_path"),
    "crs": ("crs", "CRS", "epsg", "EPSG", "srid"),
}


def _first_present(df: pd.DataFrame, candidates: Tuple[str, ...]) -> Optional[str]:
    for c in candidates:
        if c in df.columns:
            return c
    return None


def _standardize(df: pd.DataFrame, colmap: Dict[str, Tuple[str, ...]]) -> pd.DataFrame:
    out = pd.DataFrame(index=df.index)
    used: List[str] = []
    for std, cands in colmap.items():
        col = _first_present(df, cands)
        if col is None:
            out[std] = pd.Series([None] * len(df), index=df.index, dtype=object)
        else:
            out[std] = df[col]
            used.append(col)
    extra = [c for c in df.columns if c not in used]
    if extra:
        out["_extras"] = df[extra].to_dict(orient="records")
    else:
        out["_extras"] = [{} for _ in range(len(df))]
    return out


def _is_missing(val: Any) -> bool:
    return val is None or (isinstance(val, float) and pd.isna(val)) or (isinstance(val, str) and not val.strip())


def _parse_date(val: Any) -> Optional[date]:
    if _is_missing(val):
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%Y%m%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    # milisegundos desde epoch (system:time_start)
    if s.isdigit() and len(s) >= 11:
        return pd.to_datetime(int(s), unit="ms").date()
    try:
        return pd.to_datetime(s).date()
    except (ValueError, TypeError):
        return None


def _parse_crs(val: Any) -> Optional[str]:
    if _is_missing(val):
        return None
    if isinstance(val, float) and val.is_integer():
        return f"EPSG:{int(val)}"
    s = str(val).strip()
    return f"EPSG:{s}" if s.isdigit() else s


class CsvTileCatalog(RasterCollectionPort):
    """Colección de teselas que **lee un índice CSV** pero expone un **RasterCollectionPort**.

    Columnas mínimas: `tile_id`, `path` y `year` o una fecha (`start_time`).
    El año se toma de `year` si existe; si no, del año de la fecha.
    El orden de las filas es el orden de iteración de la colección.
    Rutas relativas se resuelven contra el directorio del CSV.
    """

    def __init__(
        self,
        index_csv: Path,
        *,
        name: Optional[str] = None,
        year_range: Optional[Tuple[int, int]] = None,
        encoding: str = "utf-8",
    ) -> None:
        self.index_csv = Path(index_csv).resolve()
        if not self.index_csv.exists():
            raise FileNotFoundError(f"No se encontró el índice de teselas: {self.index_csv}")
        self.root = self.index_csv.parent
        self.encoding = encoding
        self._name = name or self.index_csv.stem
        self._year_range = year_range
        self._tiles: List[TileItem] = []
        self._load()

    # -------------
    # Infra
    # -------------
    def _abspath(self, p: Any) -> Optional[str]:
        if _is_missing(p):
            return None
        s = str(p).strip()
        if "://" in s or s.startswith("/vsi"):
            return s
        path = Path(s)
        return str((self.root / path).resolve() if not path.is_absolute() else path.resolve())

    # -------------
    # Load & normalize
    # -------------
    def _load(self) -> None:
        df_raw = pd.read_csv(self.index_csv, encoding=self.encoding)
        df = _standardize(df_raw, TILE_COLMAP)
        if df_raw.empty:
            logger.warning("Índice de teselas vacío: %s", self.index_csv)
        tiles: List[TileItem] = []
        for i, r in df.iterrows():
            uri = self._abspath(r.get("path"))
            if uri is None:
                logger.warning("Fila %s sin ruta en %s; se omite", i, self.index_csv.name)
                continue
            start = _parse_date(r.get("start_time"))
            year_val = r.get("year")
            if not _is_missing(year_val):
                year = int(year_val)
            elif start is not None:
                year = start.year
            else:
                raise ValueError(f"Fila {i} de {self.index_csv.name} sin año ni fecha")
            tile_id = r.get("tile_id")
            tiles.append(TileItem(
                tile_id=str(tile_id) if not _is_missing(tile_id) else Path(uri).stem,
                year=year,
                uri=uri,
                start_date=start,
                crs=_parse_crs(r.get("crs")),
                extras=r.get("_extras", {}) or {},
            ))
        self._tiles = tiles
        logger.debug("CsvTileCatalog %s: %d teselas", self._name, len(tiles))

    # -------------
    # API RasterCollectionPort
    # -------------
    def name(self) -> str:
        return self._name

    def years(self) -> Sequence[int]:
        if self._year_range is not None:
            lo, hi = self._year_range
            return list(range(int(lo), int(hi) + 1))
        return sorted({t.year for t in self._tiles})

    def list_tiles(self, year: int) -> Sequence[TileItem]:
        return [t for t in self._tiles if t.year == int(year)]
