# =============================
# FILE: examples/summarize_from_catalog.py
# =============================
"""
Uso mínimo: índice CSV de teselas + límites GAUL detrás de sus ports.
Lista lo disponible y calcula un resumen sin escribir archivos.
"""
from pathlib import Path

from landclass.composition.di import build_service, build_settings
from landclass.contracts.core import Selection


if __name__ == "__main__":
    root = Path("/ruta/al/proyecto").resolve()
    svc = build_service(build_settings(root))

    print("Países (primeros 5):")
    for name in svc.resolver.countries()[:5]:
        print(" -", name)

    print("Años:", list(svc.selector.supported_years()))

    sel = Selection(country_name="Chile", admin1_name="Atacama", year=2020)
    summary, err = svc.try_run(sel)
    if err is not None:
        print("Falló en", err.stage.value, "->", err.message)
    else:
        print(summary.areas.to_frame().to_string(index=False))
