# src/landclass/contracts/errors.py
from __future__ import annotations

from typing import Any, Mapping

from .core import RunError, Stage


class LandClassError(Exception):
    """Error de dominio del pipeline. Lleva la etapa y el contexto que falló."""
    stage: Stage = Stage.AGGREGATE

    def __init__(self, message: str, *, stage: Stage | None = None, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage
        self.context: Mapping[str, Any] = dict(context)

    def to_run_error(self) -> RunError:
        detail = ", ".join(f"{k}={v!r}" for k, v in self.context.items()) or None
        return RunError(stage=self.stage, message=self.message, detail=detail)


# --- resolución de jurisdicción ---
class BoundaryNotFound(LandClassError, LookupError):
    stage = Stage.RESOLVE

class AmbiguousBoundary(LandClassError, LookupError):
    stage = Stage.RESOLVE

# --- selección de mosaico ---
class NoTilesForYear(LandClassError, LookupError):
    stage = Stage.MOSAIC

class YearOutOfRange(NoTilesForYear, ValueError):
    """Año fuera del rango soportado por la colección (no se recorta)."""

class MosaicGridError(LandClassError, ValueError):
    """CRS de mosaico sin unidades métricas o teselas no reproyectables."""
    stage = Stage.MOSAIC

# --- remapeo ---
class UndefinedCategoryCode(LandClassError, ValueError):
    stage = Stage.REMAP

# --- agregación ---
class EmptyJurisdiction(LandClassError):
    stage = Stage.AGGREGATE

class AggregationOverflow(LandClassError):
    stage = Stage.AGGREGATE

class PipelineCancelled(LandClassError):
    stage = Stage.AGGREGATE


__all__ = [
    "LandClassError", "BoundaryNotFound", "AmbiguousBoundary", "NoTilesForYear",
    "YearOutOfRange", "MosaicGridError", "UndefinedCategoryCode", "EmptyJurisdiction",
    "AggregationOverflow", "PipelineCancelled",
]
