# src/landclass/adapters/rasterio_reader.py
from __future__ import annotations

from collections import OrderedDict
from typing import Optional, Tuple

import logging
import os
import threading
import numpy as np

import rasterio
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.io import DatasetReader
from rasterio.transform import Affine
from rasterio.vrt import WarpedVRT
from rasterio.windows import from_bounds

from ..contracts.geo import Bounds, GeoRaster, GeoProfile, CRSRef, GeoTransform, DTypeStr
from ..ports.raster_read import RasterReaderPort

logger = logging.getLogger(__name__)

_DTYPE_MAP = {
    np.dtype("uint8"): "uint8",
    np.dtype("uint16"): "uint16",
    np.dtype("int16"): "int16",
    np.dtype("uint32"): "uint32",
    np.dtype("int32"): "int32",
    np.dtype("float32"): "float32",
    np.dtype("float64"): "float64",
}


def _np_to_dtype_str(dt: np.dtype) -> DTypeStr:
    try:
        return _DTYPE_MAP[np.dtype(dt)]  # type: ignore[return-value]
    except KeyError as e:  # pragma: no cover
        raise ValueError(f"dtype {dt} no soportado") from e


def _affine_to_gt(a: Affine) -> GeoTransform:
    return (a.c, a.a, a.b, a.f, a.d, a.e)


def _rasterio_crs_to_crsref(crs_obj) -> CRSRef:
    """Convierte rasterio CRS → CRSRef (EPSG si existe, si no WKT, si no vacío)."""
    if not crs_obj:
        return CRSRef()
    epsg = crs_obj.to_epsg()
    if epsg is not None:
        return CRSRef.from_epsg(int(epsg))
    wkt = crs_obj.to_wkt()
    return CRSRef.from_wkt(wkt) if wkt else CRSRef()


def _profile_from_dataset(ds, count: Optional[int] = None) -> GeoProfile:
    dtype0 = np.dtype(ds.dtypes[0])
    return GeoProfile(
        count=ds.count if count is None else count,
        dtype=_np_to_dtype_str(dtype0),
        width=ds.width,
        height=ds.height,
        transform=_affine_to_gt(ds.transform),
        crs=_rasterio_crs_to_crsref(ds.crs),
        nodata=float(ds.nodata) if ds.nodata is not None else None,
    )


class RasterioReader(RasterReaderPort):
    """Lector de rasters vía rasterio (GeoTIFF/COG, también URIs /vsicurl/ o s3://).

    Regla: `read()` devuelve un **GeoRaster count==1**. Para datasets multibanda
    se pasa `band_index` (1-based, como rasterio).

    `read_bounds()` se llama por bloque y por tesela: los datasets quedan abiertos
    en una caché por hilo (hasta `max_open`) hasta `close()`.
    """

    def __init__(self, max_open: int = 64) -> None:
        if max_open <= 0:
            raise ValueError(f"max_open debe ser > 0: {max_open}")
        self.max_open = max_open
        self._local = threading.local()

    # -------------
    # Caché de datasets abiertos (rasterio no comparte handles entre hilos)
    # -------------
    def _cache(self) -> "OrderedDict[str, DatasetReader]":
        cache = getattr(self._local, "datasets", None)
        if cache is None:
            cache = OrderedDict()
            self._local.datasets = cache
        return cache

    def _dataset(self, uri: str) -> DatasetReader:
        cache = self._cache()
        ds = cache.get(uri)
        if ds is not None and not ds.closed:
            cache.move_to_end(uri)
            return ds
        ds = rasterio.open(uri)
        cache[uri] = ds
        if len(cache) > self.max_open:
            _, oldest = cache.popitem(last=False)
            oldest.close()
        logger.debug("Dataset abierto: %s (%d en caché)", uri, len(cache))
        return ds

    def close(self) -> None:
        """Cierra los datasets abiertos por el hilo actual."""
        cache = self._cache()
        while cache:
            _, ds = cache.popitem()
            ds.close()

    # -------------
    # API RasterReaderPort
    # -------------
    def read(self, uri: str, band_index: int | None = None) -> GeoRaster:
        with rasterio.open(uri) as ds:
            idx = 1 if band_index is None else int(band_index)
            arr = ds.read(idx)
            if arr.ndim != 2:
                raise ValueError("Se esperaba banda 2D (count==1)")
            return GeoRaster(arr, _profile_from_dataset(ds, count=1))

    def profile(self, uri: str) -> GeoProfile:
        return _profile_from_dataset(self._dataset(uri))

    def size(self, uri: str) -> Tuple[int, int]:
        ds = self._dataset(uri)
        return ds.width, ds.height

    def read_bounds(
        self,
        uri: str,
        bounds: Bounds,
        width: int,
        height: int,
        *,
        fill: Optional[float] = None,
        crs: Optional[str] = None,
    ) -> np.ndarray:
        """Lee la banda 1 sobre `bounds`, remuestreada (nearest) a (height, width).

        Con `crs` distinto al de la tesela, `bounds` se interpreta en `crs` y la
        lectura pasa por un WarpedVRT alineado a la grilla pedida.
        """
        ds = self._dataset(uri)
        fill_value = fill if fill is not None else (ds.nodata if ds.nodata is not None else 0)
        if crs is not None and ds.crs and ds.crs != CRS.from_user_input(crs):
            dst_transform = Affine(
                (bounds.maxx - bounds.minx) / float(width), 0.0, bounds.minx,
                0.0, -(bounds.maxy - bounds.miny) / float(height), bounds.maxy,
            )
            with WarpedVRT(
                ds,
                crs=crs,
                transform=dst_transform,
                width=width,
                height=height,
                nodata=fill_value,
                resampling=Resampling.nearest,
            ) as vrt:
                arr = vrt.read(1)
            logger.debug("read_bounds %s -> %s %sx%s (warp)", uri, crs, width, height)
            return arr
        win = from_bounds(*bounds, transform=ds.transform)
        arr = ds.read(
            1,
            window=win,
            out_shape=(height, width),
            boundless=True,
            fill_value=fill_value,
            resampling=Resampling.nearest,
        )
        logger.debug("read_bounds %s -> %sx%s", uri, width, height)
        return arr

    def exists(self, uri: str) -> bool:
        return os.path.exists(uri)
