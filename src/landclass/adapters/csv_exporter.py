## `src/landclass/adapters/csv_exporter.py`

from __future__ import annotations

import csv
import logging
import os
from typing import Any, Iterable, Mapping, Sequence

from ..ports.exporters import ReportExporterPort

logger = logging.getLogger(__name__)

# Columnas por plantilla (histograma de áreas por clase)
TEMPLATES: Mapping[str, Sequence[str]] = {
    "area_summary": ("canonical_id", "landcover_type", "pixel_count", "area_ha"),
}


def _fmt(value: Any, float_digits: int) -> Any:
    if isinstance(value, float):
        return f"{value:.{float_digits}f}"
    return value


class CSVExporter(ReportExporterPort):
    """Exporta tablas de áreas a CSV.

    Convención de `context`:
      - `rows`    -> iterable de dicts (una fila por clase)
      - `headers` -> columnas (opcional; por defecto las de la plantilla)
    Plantillas desconocidas sin `headers` infieren columnas de la primera fila.
    """

    def __init__(self, float_digits: int = 4, delimiter: str = ",") -> None:
        self.float_digits = float_digits
        self.delimiter = delimiter

    def render(self, template_id: str, context: Mapping[str, Any], out_uri: str) -> str:
        rows: list[Any] = list(context.get("rows", []))  # type: ignore[arg-type]
        headers = context.get("headers") or TEMPLATES.get(template_id)
        if headers is None:
            if not rows:
                raise ValueError(f"plantilla '{template_id}' sin columnas ni filas")
            headers = list(rows[0].keys())
        headers = list(headers)
        os.makedirs(os.path.dirname(out_uri) or ".", exist_ok=True)
        with open(out_uri, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, delimiter=self.delimiter)
            writer.writerow(headers)
            for r in _as_mappings(rows):
                writer.writerow([_fmt(r.get(h, ""), self.float_digits) for h in headers])
        logger.info("Tabla '%s' escrita: %s (%d filas)", template_id, out_uri, len(rows))
        return out_uri


def _as_mappings(rows: Iterable[Any]) -> Iterable[Mapping[str, Any]]:
    for r in rows:
        if not isinstance(r, Mapping):
            raise TypeError(f"fila no es un mapping: {r!r}")
        yield r
