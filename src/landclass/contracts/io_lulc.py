# src/landclass/contracts/io_lulc.py
"""
Leyenda y traducción de códigos por defecto para la serie anual
IO/Esri Global LULC 10 m (2017-2022).

Códigos crudos del clasificador: 1 Water, 2 Trees, 4 Flooded Vegetation,
5 Crops, 7 Built Area, 8 Bare Ground, 9 Snow/Ice, 10 Clouds, 11 Rangeland.
Se renumeran a 1..9 conservando la identidad de cada clase.
"""
from __future__ import annotations

from .core import ClassLabel, ClassLegend, CodeMap

RAW_CODES: tuple[int, ...] = (1, 2, 4, 5, 7, 8, 9, 10, 11)
SUPPORTED_YEARS: tuple[int, int] = (2017, 2022)
RAW_NODATA = 0

IO_LULC_LEGEND = ClassLegend(
    title="Land Cover",
    labels=(
        ClassLabel(id=1, name="Water", color="#419bdf"),
        ClassLabel(id=2, name="Trees", color="#397d49"),
        ClassLabel(id=3, name="Flooded Vegetation", color="#7a87c6"),
        ClassLabel(id=4, name="Crops", color="#e49635"),
        ClassLabel(id=5, name="Built Area", color="#c4281b"),
        ClassLabel(id=6, name="Bare Ground", color="#a59b8f"),
        ClassLabel(id=7, name="Snow/Ice", color="#a8ebff"),
        ClassLabel(id=8, name="Clouds", color="#FFFFFF"),
        ClassLabel(id=9, name="Rangeland", color="#e3e2c3"),
    ),
)

IO_LULC_CODE_MAP = CodeMap.from_pairs(RAW_CODES, IO_LULC_LEGEND.ids_in_order())

__all__ = ["IO_LULC_LEGEND", "IO_LULC_CODE_MAP", "RAW_CODES", "RAW_NODATA", "SUPPORTED_YEARS"]
