# src/landclass/cli.py
from __future__ import annotations

"""
CLI de resúmenes de cobertura de suelo por jurisdicción y año (contracts-first).

Comandos:
  - countries: lista países de la fuente de límites.
  - states: lista subdivisiones (admin1) de un país.
  - years: años disponibles en la colección.
  - summarize: áreas por clase (ha) + raster recortado opcional.

Ejemplos rápidos:
  landclass --root ./proyecto countries
  landclass --root ./proyecto states --country Chile
  landclass --root ./proyecto summarize --country Chile --admin1 "Region de Atacama" \
      --year 2020 --csv ./atacama_2020.csv --tif ./atacama_2020.tif
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from .composition.di import build_service, build_settings
from .config import Settings, get_settings
from .contracts.core import Selection
from .contracts.errors import LandClassError
from .contracts.products import LandCoverSummary
from .logging_setup import setup_logging

# ----------------------
# Utilidades locales
# ----------------------

def _settings(args: argparse.Namespace) -> Settings:
    root = Path(args.root) if args.root else get_settings().project_root
    return build_settings(root)


def _print_summary(summary: LandCoverSummary) -> None:
    a = summary.areas
    sel = summary.selection
    print(f"{sel.country_name} / {sel.admin1_name} / {sel.year}  (escala {a.pixel_scale_m:g} m)")
    if a.empty:
        print("  la jurisdicción no intersecta el mosaico: todas las áreas en cero")
    with pd.option_context("display.float_format", "{:,.2f}".format):
        print(a.to_frame().to_string(index=False))
    print(f"total clasificado: {a.total_area_ha:,.2f} ha")
    if a.unknown_pixels:
        print(f"códigos sin traducción {list(a.unknown_codes)}: {a.unknown_pixels} px ({a.unknown_area_ha:,.2f} ha)")
    if a.nodata_pixels:
        print(f"sin dato dentro de la jurisdicción: {a.nodata_pixels} px")


# ----------------------
# Comandos
# ----------------------

def cmd_countries(args: argparse.Namespace) -> int:
    svc = build_service(_settings(args))
    for name in svc.resolver.countries():  # type: ignore[union-attr]
        print(name)
    return 0


def cmd_states(args: argparse.Namespace) -> int:
    svc = build_service(_settings(args))
    for name in svc.resolver.admin1_names(args.country):  # type: ignore[union-attr]
        print(name)
    return 0


def cmd_years(args: argparse.Namespace) -> int:
    svc = build_service(_settings(args))
    for y in svc.selector.supported_years():  # type: ignore[union-attr]
        print(y)
    return 0


def cmd_summarize(args: argparse.Namespace) -> int:
    s = _settings(args)
    svc = build_service(s)
    sel = Selection(country_name=args.country, admin1_name=args.admin1, year=args.year)
    summary = svc.run(sel)
    _print_summary(summary)

    csv_path: Optional[Path] = Path(args.csv) if args.csv else None
    tif_path: Optional[Path] = Path(args.tif) if args.tif else None
    if args.export:
        fmt = dict(country=sel.country_name, admin1=sel.admin1_name, year=sel.year)
        csv_path = csv_path or s.out_path("area_table", **fmt)
        tif_path = tif_path or s.out_path("classmap", **fmt)
    if csv_path or tif_path:
        exp = svc.export(summary, table_uri=csv_path, raster_uri=tif_path)
        for p in (exp.table_path, exp.raster_path):
            if p is not None:
                print(str(p))
        for what in exp.skipped:
            print(f"[WARN] {what} no exportado (jurisdicción vacía)", file=sys.stderr)
    return 0


# ----------------------
# Parser
# ----------------------

def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="landclass", description="Áreas de cobertura de suelo por jurisdicción y año")
    p.add_argument("--root", help="project_root (sobre-escribe Settings.project_root)")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING... (por defecto Settings.log_level)")
    sub = p.add_subparsers(dest="cmd", required=True)

    pc = sub.add_parser("countries", help="lista países disponibles")
    pc.set_defaults(func=cmd_countries)

    pst = sub.add_parser("states", help="lista subdivisiones de un país")
    pst.add_argument("--country", required=True)
    pst.set_defaults(func=cmd_states)

    py = sub.add_parser("years", help="años soportados por la colección")
    py.set_defaults(func=cmd_years)

    ps = sub.add_parser("summarize", help="áreas por clase dentro de la jurisdicción")
    ps.add_argument("--country", required=True)
    ps.add_argument("--admin1", required=True)
    ps.add_argument("--year", required=True, type=int)
    ps.add_argument("--csv", help="ruta de la tabla de áreas (CSV)")
    ps.add_argument("--tif", help="ruta del raster recortado (GeoTIFF)")
    ps.add_argument("--export", action="store_true", help="exporta usando Settings.output_patterns")
    ps.set_defaults(func=cmd_summarize)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level or get_settings().log_level)
    try:
        return int(bool(args.func(args)))  # 0 si todo bien
    except KeyboardInterrupt:
        return 130
    except LandClassError as ex:
        print(f"[ERROR] {ex.stage.value}: {ex}", file=sys.stderr)
        return 1
    except Exception as ex:
        print(f"[ERROR] {ex}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
