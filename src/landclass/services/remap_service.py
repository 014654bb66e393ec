# src/landclass/services/remap_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np

from ..contracts.core import NODATA_ID, UNKNOWN_ID, CodeMap
from ..contracts.errors import UndefinedCategoryCode
from ..contracts.geo import GeoProfile, Window
from ..ports.surface import RasterSurface, RemapBlock

logger = logging.getLogger(__name__)

UnknownPolicy = Literal["sentinel", "raise"]


def _nodata_mask(raw: np.ndarray, nodata: Optional[float]) -> np.ndarray:
    if nodata is None:
        return np.zeros(raw.shape, dtype=bool)
    if np.isnan(nodata):
        return np.isnan(raw) if raw.dtype.kind == "f" else np.zeros(raw.shape, dtype=bool)
    return raw == nodata


def remap_array(
    raw: np.ndarray,
    code_map: CodeMap,
    nodata: Optional[float] = None,
    *,
    policy: UnknownPolicy = "sentinel",
) -> np.ndarray:
    """
    Traduce códigos crudos a ids canónicos (uint8).
      - código del CodeMap  -> su id canónico
      - nodata de origen    -> NODATA_ID (0)
      - código desconocido  -> UNKNOWN_ID (255), o UndefinedCategoryCode si policy="raise"
    Pura: no modifica `raw`.
    """
    raw = np.asarray(raw)
    nd = _nodata_mask(raw, nodata)
    codes = np.asarray(code_map.codes(), dtype=np.int64)
    ids = np.asarray(code_map.target_ids(), dtype=np.uint8)

    vals = np.where(nd, -1, raw).astype(np.int64, copy=False)
    idx = np.clip(np.searchsorted(codes, vals), 0, codes.size - 1)
    known = (codes[idx] == vals) & ~nd

    out = np.full(raw.shape, UNKNOWN_ID, dtype=np.uint8)
    out[known] = ids[idx[known]]
    out[nd] = NODATA_ID

    if policy == "raise":
        unknown = ~known & ~nd
        if unknown.any():
            bad = sorted(int(c) for c in np.unique(raw[unknown]))
            raise UndefinedCategoryCode(f"códigos crudos sin traducción: {bad}", codes=bad)
    return out


class RemappedSurface:
    """Vista perezosa: remapea cada bloque leído de la superficie cruda."""

    def __init__(self, source: RasterSurface, code_map: CodeMap, policy: UnknownPolicy = "sentinel") -> None:
        self._source = source
        self._code_map = code_map
        self._policy = policy
        self._src_nodata = source.profile.nodata
        self._profile = source.profile.with_dtype("uint8", float(NODATA_ID))

    @property
    def profile(self) -> GeoProfile:
        return self._profile

    @property
    def code_map(self) -> CodeMap:
        return self._code_map

    def read_block(self, window: Window) -> RemapBlock:
        raw = self._source.read(window)
        values = remap_array(raw, self._code_map, self._src_nodata, policy=self._policy)
        return RemapBlock(values, raw)

    def read(self, window: Window) -> np.ndarray:
        return self.read_block(window).values


@dataclass
class CategoryRemapper:
    """Remapper código crudo → id canónico con política para códigos desconocidos."""
    code_map: Optional[CodeMap] = None
    policy: UnknownPolicy = "sentinel"

    def __post_init__(self) -> None:
        if self.policy not in ("sentinel", "raise"):
            raise ValueError(f"policy inválida: {self.policy!r} (use 'sentinel' o 'raise')")

    def remap(self, surface: RasterSurface, code_map: Optional[CodeMap] = None) -> RemappedSurface:
        cm = code_map or self.code_map
        if cm is None:
            raise RuntimeError("CodeMap no configurado")
        logger.debug("Remap %d códigos (policy=%s)", len(cm.codes()), self.policy)
        return RemappedSurface(surface, cm, self.policy)

    def remap_array(self, raw: np.ndarray, nodata: Optional[float] = None, code_map: Optional[CodeMap] = None) -> np.ndarray:
        cm = code_map or self.code_map
        if cm is None:
            raise RuntimeError("CodeMap no configurado")
        return remap_array(raw, cm, nodata, policy=self.policy)


__all__ = ["CategoryRemapper", "RemappedSurface", "remap_array", "UnknownPolicy"]
