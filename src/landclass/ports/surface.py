# src/landclass/ports/surface.py
from __future__ import annotations

from typing import NamedTuple, Optional, Protocol, runtime_checkable

import numpy as np

from ..contracts.geo import GeoProfile, Window


class RemapBlock(NamedTuple):
    """Bloque remapeado junto a los códigos crudos que lo originaron."""
    values: np.ndarray
    raw: Optional[np.ndarray]


@runtime_checkable
class RasterSurface(Protocol):
    """
    Superficie raster de una banda, leída por ventanas.
    Reglas:
      - `read(window)` devuelve un array 2D (height, width) de la ventana pedida.
      - nunca exige cargar la superficie completa en memoria.
    """
    @property
    def profile(self) -> GeoProfile: ...
    def read(self, window: Window) -> np.ndarray: ...


@runtime_checkable
class RemapAwareSurface(RasterSurface, Protocol):
    """Superficie remapeada que además expone los códigos crudos por bloque."""
    def read_block(self, window: Window) -> RemapBlock: ...


__all__ = ["RasterSurface", "RemapAwareSurface", "RemapBlock"]
