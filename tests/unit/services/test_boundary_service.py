import pytest

from landclass.contracts.errors import AmbiguousBoundary, BoundaryNotFound
from landclass.ports.boundary import BoundaryFeature
from landclass.services.boundary_service import BoundaryResolver
from tests.factories import EPSG, box, make_boundaries


def test_resolve_exact_match():
    j = BoundaryResolver(make_boundaries()).resolve("Chile", "Atacama")
    assert (j.country_name, j.admin1_name) == ("Chile", "Atacama")
    assert j.crs.epsg == EPSG
    assert tuple(j.bounds) == (0.0, 0.0, 120.0, 120.0)


def test_resolve_strips_names():
    j = BoundaryResolver(make_boundaries()).resolve("  Peru ", "Tacna  ")
    assert j.admin1_name == "Tacna"


@pytest.mark.parametrize("country, admin1", [
    ("Chile", "Tacna"),       # admin1 de otro país
    ("Argentina", "Salta"),   # país desconocido
    ("", "Atacama"),
    ("Chile", "   "),
    ("chile", "Atacama"),     # coincidencia exacta (sensible a mayúsculas)
])
def test_resolve_not_found(country, admin1):
    with pytest.raises(BoundaryNotFound):
        BoundaryResolver(make_boundaries()).resolve(country, admin1)


def test_resolve_ambiguous_never_picks_one():
    src = make_boundaries([
        BoundaryFeature("Chile", "Atacama", box(0, 0, 10, 10)),
        BoundaryFeature("Chile", "Atacama", box(20, 20, 30, 30)),
    ])
    with pytest.raises(AmbiguousBoundary) as ei:
        BoundaryResolver(src).resolve("Chile", "Atacama")
    assert ei.value.context["matches"] == 2


def test_cascading_name_lists():
    r = BoundaryResolver(make_boundaries())
    assert r.countries() == ["Chile", "Peru"]
    assert r.admin1_names("Chile") == ["Atacama", "Coquimbo"]
    with pytest.raises(BoundaryNotFound):
        r.admin1_names("Bolivia")


def test_resolver_requires_source():
    with pytest.raises(RuntimeError):
        BoundaryResolver().resolve("Chile", "Atacama")
