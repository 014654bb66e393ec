# src/landclass/config.py
from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Literal, Mapping, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .contracts.core import ClassLabel, ClassLegend, CodeMap
from .contracts.io_lulc import IO_LULC_CODE_MAP, IO_LULC_LEGEND, SUPPORTED_YEARS

# Placeholders permitidos por clave de salida
OUTPUT_PLACEHOLDERS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "area_table": ("country", "admin1", "year"),
    "classmap": ("country", "admin1", "year"),
})


class Settings(BaseSettings):
    """
    Config unificada del proyecto. No toca disco.
    Debe ser construida y provista por composition/di.py (CLI/adapters).
    Variables de entorno: prefijo LANDCLASS_ (p.ej. LANDCLASS_PIXEL_SCALE_M=10).
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LANDCLASS_",
        env_nested_delimiter="__",
        extra="forbid",
        frozen=True,
        validate_default=True,
    )

    # --- básicos ---
    project_root: Path = Path(".")

    # --- fuentes de referencia (relativas a project_root) ---
    boundary_file: Path = Path("00-Config/gaul_level1.gpkg")
    boundary_layer: Optional[str] = None
    country_field: str = "ADM0_NAME"
    admin1_field: str = "ADM1_NAME"
    tile_index: Path = Path("00-Config/io_lulc_tiles.csv")

    # --- pipeline ---
    year_min: int = SUPPORTED_YEARS[0]
    year_max: int = SUPPORTED_YEARS[1]
    pixel_scale_m: float = Field(30.0, gt=0)
    mosaic_crs: Optional[str] = None  # vacío = CRS de la primera tesela del año
    max_pixels: float = Field(1e13, gt=0)
    block_size: int = Field(1024, gt=0)
    all_touched: bool = False
    unknown_policy: Literal["sentinel", "raise"] = "sentinel"
    allow_empty: bool = True

    # --- logging ---
    log_level: str = "INFO"

    # --- dominio (vacío = serie IO/Esri LULC por defecto) ---
    legend: tuple[ClassLabel, ...] = ()
    code_map: Dict[int, int] = Field(default_factory=dict)

    output_patterns: Dict[str, str] = Field(default_factory=lambda: {
        "area_table": "03-Products/{country}/{admin1}/landcover_{year}.csv",
        "classmap": "03-Products/{country}/{admin1}/landcover_{year}.tif",
    })

    # ----------------------------
    # Normalizadores / validadores
    # ----------------------------
    @field_validator("project_root", mode="before")
    @classmethod
    def _abs_root(cls, v: Path | str) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("boundary_file", "tile_index", mode="after")
    @classmethod
    def _rel_to_root(cls, p: Path, info) -> Path:
        root: Path = info.data.get("project_root") or Path(".").resolve()
        return p if p.is_absolute() else (root / p)

    @field_validator("log_level")
    @classmethod
    def _level(cls, v: str) -> str:
        v2 = v.strip().upper()
        if v2 not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level inválido: {v}")
        return v2

    @field_validator("output_patterns")
    @classmethod
    def _check_out(cls, d: Dict[str, str]) -> Dict[str, str]:
        for k, pat in d.items():
            allowed = set(OUTPUT_PLACEHOLDERS.get(k, ()))
            used = set(_iter_placeholders(pat))
            unknown = used - allowed
            if unknown:
                raise ValueError(f"output_patterns[{k}] usa placeholders no permitidos: {sorted(unknown)}")
        return d

    @model_validator(mode="after")
    def _years(self) -> "Settings":
        if self.year_max < self.year_min:
            raise ValueError(f"year_max ({self.year_max}) < year_min ({self.year_min})")
        return self

    # ----------------------------
    # Helpers puros (sin side-effects)
    # ----------------------------
    def year_range(self) -> Tuple[int, int]:
        return (self.year_min, self.year_max)

    def legend_or_default(self) -> ClassLegend:
        return ClassLegend(labels=self.legend) if self.legend else IO_LULC_LEGEND

    def code_map_or_default(self) -> CodeMap:
        return CodeMap(mapping=self.code_map) if self.code_map else IO_LULC_CODE_MAP

    def out_path(self, key: str, *, country: str, admin1: str, year: int) -> Path:
        """Resuelve patrón de salida (no crea carpetas). Los nombres se normalizan a slug."""
        pat = self.output_patterns[key]
        rel = pat.format(country=_slug(country), admin1=_slug(admin1), year=int(year))
        return (self.project_root / rel).resolve()


def _slug(name: str) -> str:
    return re.sub(r"[^0-9A-Za-z]+", "_", name).strip("_") or "_"


# Utilidad interna: detectar {placeholders}
def _iter_placeholders(fmt: str):
    for m in re.finditer(r"\{([^{}]*)\}", fmt):
        name = m.group(1).strip()
        if name:
            yield name


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Instancia cacheada. Úsala SOLO desde composition/di.py o CLI.
    Prohibido usarla en services/ (dominio). Para tests, recuerda limpiar:
        get_settings.cache_clear()
    """
    return Settings()
