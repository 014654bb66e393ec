# src/landclass/logging_setup.py
"""Configuración de logging para CLI y scripts (una sola vez por proceso)."""
from __future__ import annotations

import logging

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Librerías ruidosas del stack geo
_QUIET = ("rasterio", "fiona", "pyogrio", "shapely")


def setup_logging(level: str = "INFO", fmt: str | None = None) -> None:
    root = logging.getLogger()
    lvl = getattr(logging, level.upper(), logging.INFO)
    if root.handlers:
        root.setLevel(lvl)
        return
    logging.basicConfig(level=lvl, format=fmt or DEFAULT_FORMAT)
    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
