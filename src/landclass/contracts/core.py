# src/landclass/contracts/core.py
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator, model_validator

ClassId = PositiveInt

# -------------------------
# Valores reservados del raster canónico (fuera de 1..K)
# -------------------------
NODATA_ID = 0       # fuera de cobertura o fuera de la jurisdicción
UNKNOWN_ID = 255    # código crudo sin traducción en el CodeMap

_HEX_RE = re.compile(r"^#?(?P<r>[0-9a-fA-F]{2})(?P<g>[0-9a-fA-F]{2})(?P<b>[0-9a-fA-F]{2})$")

# -------------------------
# Colores tipados
# -------------------------
class RGB8(BaseModel):
    model_config = ConfigDict(frozen=True)
    r: int = Field(200, ge=0, le=255)
    g: int = Field(200, ge=0, le=255)
    b: int = Field(200, ge=0, le=255)

    @classmethod
    def from_hex(cls, value: str) -> "RGB8":
        m = _HEX_RE.match(value.strip())
        if not m:
            raise ValueError(f"color hex inválido: {value}")
        return cls(r=int(m["r"], 16), g=int(m["g"], 16), b=int(m["b"], 16))

    def as_tuple(self) -> tuple[int, int, int]: return (self.r, self.g, self.b)
    def to_hex(self) -> str: return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

# -------------------------
# Leyenda canónica
# -------------------------
class ClassLabel(BaseModel):
    model_config = ConfigDict(frozen=True)
    id: ClassId
    name: str
    color: RGB8 = RGB8()

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("name no puede ser vacío")
        return v2

    @field_validator("color", mode="before")
    @classmethod
    def _hex_color(cls, v):
        return RGB8.from_hex(v) if isinstance(v, str) else v


class ClassLegend(BaseModel):
    """
    Tabla ordenada de clases canónicas 1..K (id, nombre, color).
    El orden de `labels` es el orden de presentación de resultados.
    """
    model_config = ConfigDict(frozen=True)
    labels: tuple[ClassLabel, ...]
    title: str = "Land Cover"

    @model_validator(mode="after")
    def _contiguous_ids(self) -> "ClassLegend":
        if not self.labels:
            raise ValueError("la leyenda no puede ser vacía")
        ids = [int(c.id) for c in self.labels]
        if len(set(ids)) != len(ids):
            raise ValueError(f"ids de clase duplicados: {ids}")
        k = len(ids)
        if set(ids) != set(range(1, k + 1)):
            raise ValueError(f"ids de clase deben ser contiguos 1..{k}: {sorted(ids)}")
        if k >= UNKNOWN_ID:
            raise ValueError(f"demasiadas clases ({k}); el id {UNKNOWN_ID} está reservado")
        return self

    @property
    def size(self) -> int:
        return len(self.labels)

    def ids_in_order(self) -> tuple[int, ...]:
        return tuple(int(c.id) for c in self.labels)

    def _label(self, class_id: int) -> ClassLabel:
        for c in self.labels:
            if int(c.id) == int(class_id):
                return c
        raise KeyError(f"clase {class_id} no existe en la leyenda")

    def name_of(self, class_id: int) -> str:
        return self._label(class_id).name

    def color_of(self, class_id: int) -> RGB8:
        return self._label(class_id).color

    def palette(self) -> Mapping[int, tuple[int, int, int]]:
        return MappingProxyType({int(c.id): c.color.as_tuple() for c in self.labels})

# -------------------------
# Traducción de códigos crudos -> ids canónicos
# -------------------------
class CodeMap(BaseModel):
    """
    Función parcial código crudo -> id canónico, inyectiva en su dominio.
    Los códigos fuera del dominio se resuelven por política en el remapper.
    """
    model_config = ConfigDict(frozen=True)
    mapping: Mapping[int, int]

    @field_validator("mapping")
    @classmethod
    def _freeze_and_validate(cls, v: Mapping[int, int]) -> Mapping[int, int]:
        d = {int(k): int(t) for k, t in dict(v).items()}
        if not d:
            raise ValueError("CodeMap vacío")
        bad = [t for t in d.values() if not (NODATA_ID < t < UNKNOWN_ID)]
        if bad:
            raise ValueError(f"ids destino fuera de rango 1..{UNKNOWN_ID - 1}: {sorted(bad)}")
        if len(set(d.values())) != len(d):
            raise ValueError("CodeMap debe ser inyectivo (dos códigos al mismo id)")
        if any(k < 0 for k in d):
            raise ValueError("códigos crudos deben ser >= 0")
        return MappingProxyType(dict(sorted(d.items())))

    @classmethod
    def from_pairs(cls, codes: Iterable[int], ids: Iterable[int]) -> "CodeMap":
        codes, ids = list(codes), list(ids)
        if len(codes) != len(ids):
            raise ValueError(f"largos distintos: {len(codes)} códigos vs {len(ids)} ids")
        return cls(mapping=dict(zip(codes, ids)))

    def codes(self) -> tuple[int, ...]:
        return tuple(self.mapping.keys())

    def target_ids(self) -> tuple[int, ...]:
        return tuple(self.mapping.values())

    def canonical_identity(self) -> "CodeMap":
        """Identidad sobre los ids canónicos (re-remapear una salida no la cambia)."""
        return CodeMap(mapping={t: t for t in self.target_ids()})

    def check_covers(self, legend: ClassLegend) -> None:
        missing = set(legend.ids_in_order()) - set(self.target_ids())
        extra = set(self.target_ids()) - set(legend.ids_in_order())
        if extra:
            raise ValueError(f"CodeMap apunta a ids fuera de la leyenda: {sorted(extra)}")
        if missing:
            raise ValueError(f"clases de la leyenda sin código crudo: {sorted(missing)}")

# -------------------------
# Selección del usuario
# -------------------------
class Selection(BaseModel):
    model_config = ConfigDict(frozen=True)
    country_name: str
    admin1_name: str
    year: int

    @field_validator("country_name", "admin1_name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("nombre administrativo no puede ser vacío")
        return v2

    def slug(self) -> str:
        def _s(x: str) -> str:
            return re.sub(r"[^0-9A-Za-z]+", "_", x).strip("_")
        return f"{_s(self.country_name)}_{_s(self.admin1_name)}_{self.year}"

# -------------------------
# Ejecuciones / auditoría
# -------------------------
class Stage(str, Enum):
    RESOLVE = "resolve"
    MOSAIC = "mosaic"
    REMAP = "remap"
    AGGREGATE = "aggregate"
    ASSEMBLE = "assemble"
    EXPORT = "export"

class RunMeta(BaseModel):
    model_config = ConfigDict(frozen=True)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    selection: Selection
    notes: str | None = None
    ended_at: datetime | None = None

    def end_now(self) -> "RunMeta":
        return self.model_copy(update={"ended_at": datetime.now(timezone.utc)})

    @property
    def duration_s(self) -> float | None:
        if self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()

class RunError(BaseModel):
    model_config = ConfigDict(frozen=True)
    stage: Stage
    message: str
    detail: Optional[str] = None
