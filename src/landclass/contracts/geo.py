# src/landclass/contracts/geo.py

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Iterator, Literal, NamedTuple, Optional, Tuple

import numpy as np
import numpy.typing as npt

GeoTransform = Tuple[float, float, float, float, float, float]
DTypeStr = Literal["uint8","uint16","int16","uint32","int32","float32","float64"]

_EPS = 1e-9

class Bounds(NamedTuple):
    minx: float; miny: float; maxx: float; maxy: float

class Window(NamedTuple):
    """Ventana en píxeles sobre una grilla (offsets 0-based)."""
    col_off: int; row_off: int; width: int; height: int

    @property
    def size(self) -> int:
        return self.width * self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def shifted(self, col: int, row: int) -> "Window":
        return Window(self.col_off + col, self.row_off + row, self.width, self.height)

# ---------- CRS (puro dominio, sin rasterio) ----------
@dataclass(frozen=True)
class CRSRef:
    wkt: Optional[str] = None
    epsg: Optional[int] = None

    @staticmethod
    def from_epsg(code: int) -> "CRSRef":
        return CRSRef(epsg=int(code))

    @staticmethod
    def from_wkt(wkt: str) -> "CRSRef":
        return CRSRef(wkt=wkt)

    @staticmethod
    def parse(value: "str | int | CRSRef | None") -> "CRSRef":
        """Acepta 'EPSG:4326', 4326, WKT o un CRSRef ya construido."""
        if value is None:
            return CRSRef()
        if isinstance(value, CRSRef):
            return value
        if isinstance(value, int):
            return CRSRef.from_epsg(value)
        s = str(value).strip()
        if s.upper().startswith("EPSG:"):
            return CRSRef.from_epsg(int(s.split(":", 1)[1]))
        if s.isdigit():
            return CRSRef.from_epsg(int(s))
        return CRSRef.from_wkt(s) if s else CRSRef()

    def is_empty(self) -> bool:
        return self.epsg is None and not self.wkt

    def to_string(self) -> str:
        """'EPSG:<code>' si hay EPSG; si no, el WKT tal cual."""
        if self.epsg is not None:
            return f"EPSG:{int(self.epsg)}"
        if self.wkt:
            return self.wkt
        raise ValueError("CRSRef vacío: no hay WKT ni EPSG.")

    @staticmethod
    def _normalize_wkt(wkt: str) -> str:
        s = " ".join(wkt.strip().upper().split())
        s = s.replace(" ,", ",").replace(", ", ",")
        return s.replace("[ ", "[").replace(" ]", "]")

    def equals(self, other: "CRSRef") -> bool:
        """
        Comparación determinista:
        1) ambos EPSG -> enteros; 2) ambos WKT -> WKT normalizado;
        3) ambos vacíos -> True (rasters/geometrías sin georreferencia);
        4) cualquier mezcla -> False.
        """
        if self is other:
            return True
        if self.epsg is not None and other.epsg is not None:
            return int(self.epsg) == int(other.epsg)
        if self.wkt and other.wkt:
            return self._normalize_wkt(self.wkt) == self._normalize_wkt(other.wkt)
        return self.is_empty() and other.is_empty()

# ---------- Perfil y Raster (puro dominio) ----------
@dataclass(frozen=True)
class GeoProfile:
    count: int
    dtype: DTypeStr
    width: int
    height: int
    transform: GeoTransform
    crs: CRSRef
    nodata: Optional[float] = None

    @property
    def bounds(self) -> Bounds:
        return geotransform_bounds(self.transform, self.width, self.height)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    def pixel_size(self) -> Tuple[float, float]:
        _, px, _, _, _, py = self.transform
        return (px, py)

    def is_north_up(self) -> bool:
        _, px, rx, _, ry, py = self.transform
        return rx == 0 and ry == 0 and px > 0 and py < 0

    def full_window(self) -> Window:
        return Window(0, 0, self.width, self.height)

    def subset(self, window: Window, *, nodata: Optional[float] = None) -> "GeoProfile":
        """Perfil de una sub-ventana (mismo CRS, transform desplazado)."""
        return GeoProfile(
            count=self.count,
            dtype=self.dtype,
            width=window.width,
            height=window.height,
            transform=window_transform(self.transform, window),
            crs=self.crs,
            nodata=self.nodata if nodata is None else nodata,
        )

    def with_dtype(self, dtype: DTypeStr, nodata: Optional[float]) -> "GeoProfile":
        return GeoProfile(self.count, dtype, self.width, self.height, self.transform, self.crs, nodata)

@dataclass(frozen=True)
class GeoRaster:
    data: "npt.NDArray[Any]"  # type: ignore[valid-type]
    profile: GeoProfile

    def __post_init__(self):
        # Bloquea mutaciones accidentales sobre los datos
        if hasattr(self.data, "setflags"):
            self.data.setflags(write=False)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.data.shape  # type: ignore[no-any-return]

    def read(self, window: Window) -> np.ndarray:
        """Copia 2D de la ventana (la ventana debe caer dentro del raster)."""
        r0, c0 = window.row_off, window.col_off
        return np.array(self.data[r0:r0 + window.height, c0:c0 + window.width], copy=True)

# ---------- GeoTransform helpers ----------
def geotransform_bounds(gt: GeoTransform, width: int, height: int) -> Bounds:
    x0, px, rx, y0, ry, py = gt
    x_w = x0 + width * px + height * rx
    y_w = y0 + width * ry + height * py
    minx, maxx = (x0, x_w) if x0 <= x_w else (x_w, x0)
    miny, maxy = (y_w, y0) if y_w <= y0 else (y0, y_w)
    return Bounds(minx, miny, maxx, maxy)

def pixel_to_world(col: float, row: float, gt: GeoTransform) -> Tuple[float, float]:
    x0, px, rx, y0, ry, py = gt
    return x0 + col * px + row * rx, y0 + col * ry + row * py

def world_to_pixel(x: float, y: float, gt: GeoTransform) -> Tuple[float, float]:
    x0, px, rx, y0, ry, py = gt
    det = px * py - rx * ry
    if abs(det) < 1e-18:
        raise ValueError("GeoTransform no invertible (det≈0).")
    dx = x - x0; dy = y - y0
    col = ( py * dx - rx * dy) / det
    row = (-ry * dx + px * dy) / det
    return col, row

def window_transform(gt: GeoTransform, window: Window) -> GeoTransform:
    x, y = pixel_to_world(window.col_off, window.row_off, gt)
    _, px, rx, _, ry, py = gt
    return (x, px, rx, y, ry, py)

def window_bounds(gt: GeoTransform, window: Window) -> Bounds:
    return geotransform_bounds(window_transform(gt, window), window.width, window.height)

def bounds_window(gt: GeoTransform, bounds: Bounds, width: int, height: int) -> Optional[Window]:
    """
    Ventana mínima de píxeles completos que cubre `bounds`, recortada a la grilla.
    Devuelve None si no hay intersección.
    """
    c_a, r_a = world_to_pixel(bounds.minx, bounds.maxy, gt)
    c_b, r_b = world_to_pixel(bounds.maxx, bounds.miny, gt)
    c0 = max(0, math.floor(min(c_a, c_b) + _EPS))
    c1 = min(width, math.ceil(max(c_a, c_b) - _EPS))
    r0 = max(0, math.floor(min(r_a, r_b) + _EPS))
    r1 = min(height, math.ceil(max(r_a, r_b) - _EPS))
    if c1 <= c0 or r1 <= r0:
        return None
    return Window(c0, r0, c1 - c0, r1 - r0)

def iter_windows(width: int, height: int, block: int) -> Iterator[Window]:
    """Recorre la grilla por bloques fila-mayor (los bordes quedan más chicos)."""
    if block <= 0:
        raise ValueError("block debe ser > 0")
    for r in range(0, height, block):
        for c in range(0, width, block):
            yield Window(c, r, min(block, width - c), min(block, height - r))

def union_bounds(items: "list[Bounds] | tuple[Bounds, ...]") -> Bounds:
    if not items:
        raise ValueError("union_bounds requiere al menos un Bounds")
    return Bounds(
        min(b.minx for b in items), min(b.miny for b in items),
        max(b.maxx for b in items), max(b.maxy for b in items),
    )

def intersect_bounds(a: Bounds, b: Bounds) -> Optional[Bounds]:
    minx, miny = max(a.minx, b.minx), max(a.miny, b.miny)
    maxx, maxy = min(a.maxx, b.maxx), min(a.maxy, b.maxy)
    if maxx <= minx or maxy <= miny:
        return None
    return Bounds(minx, miny, maxx, maxy)

def grid_for_bounds(bounds: Bounds, res: float) -> Tuple[GeoTransform, int, int]:
    """Grilla norte-arriba con origen en la esquina sup-izq de `bounds`."""
    if res <= 0:
        raise ValueError(f"resolución inválida: {res}")
    width = max(1, math.ceil((bounds.maxx - bounds.minx) / res - _EPS))
    height = max(1, math.ceil((bounds.maxy - bounds.miny) / res - _EPS))
    return (bounds.minx, res, 0.0, bounds.maxy, 0.0, -res), width, height

def pretty_bounds(b: Bounds, ndigits: int = 3) -> str:
    return (f"Bounds(minx={b.minx:.{ndigits}f}, miny={b.miny:.{ndigits}f}, "
            f"maxx={b.maxx:.{ndigits}f}, maxy={b.maxy:.{ndigits}f})")

__all__ = [
    "GeoTransform","Bounds","Window","CRSRef","GeoProfile","GeoRaster","DTypeStr",
    "geotransform_bounds","pixel_to_world","world_to_pixel","window_transform",
    "window_bounds","bounds_window","iter_windows","union_bounds","intersect_bounds",
    "grid_for_bounds","pretty_bounds",
]
