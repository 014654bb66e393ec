import numpy as np
import pytest
from rasterio.warp import transform_geom

from landclass.contracts.core import UNKNOWN_ID
from landclass.contracts.errors import AggregationOverflow, EmptyJurisdiction, PipelineCancelled
from landclass.contracts.geo import CRSRef
from landclass.contracts.io_lulc import IO_LULC_CODE_MAP, IO_LULC_LEGEND
from landclass.contracts.products import Jurisdiction
from landclass.services.aggregate_service import ClipAndAggregate
from landclass.services.cancel import CancelToken
from landclass.services.remap_service import CategoryRemapper
from landclass.services.surfaces import ArraySurface, materialize
from tests.factories import EPSG, HALF_WATER_HALF_RANGELAND, box, make_raster

IDS = IO_LULC_LEGEND.ids_in_order()


def _remapped(data, **kw):
    return CategoryRemapper(IO_LULC_CODE_MAP).remap(ArraySurface(make_raster(data, **kw)))


def _jur(geom, epsg=EPSG):
    return Jurisdiction("Chile", "Atacama", geom, CRSRef.from_epsg(epsg))


def test_half_water_half_rangeland_areas():
    counts = ClipAndAggregate(pixel_scale_m=30.0).clip_and_count(
        _remapped(HALF_WATER_HALF_RANGELAND), _jur(box(0, 0, 120, 120)), legend_ids=IDS,
    )
    assert counts.counts[1] == 8 and counts.counts[9] == 8
    assert counts.area_ha(1) == pytest.approx(0.72)
    assert counts.area_ha(9) == pytest.approx(0.72)
    assert all(counts.counts[i] == 0 for i in IDS if i not in (1, 9))
    assert set(counts.counts) == set(IDS)


def test_pixel_center_inside_rule():
    data = np.ones((4, 4))
    jur = _jur(box(0, 0, 70, 120))  # toca la columna 2 sin cubrir su centro (x=75)
    center = ClipAndAggregate().clip_and_count(_remapped(data), jur, legend_ids=IDS)
    touched = ClipAndAggregate(all_touched=True).clip_and_count(_remapped(data), jur, legend_ids=IDS)
    assert center.counts[1] == 8
    assert touched.counts[1] == 12


def test_outside_pixels_are_nodata_in_clipped_raster():
    agg = ClipAndAggregate()
    clipped = agg.clip(_remapped(np.ones((4, 4))), _jur(box(0, 60, 60, 120)))
    assert clipped.window.width == 2 and clipped.window.height == 2
    assert clipped.profile.transform[0] == 0.0 and clipped.profile.transform[3] == 120.0
    assert (materialize(clipped).data == 1).all()
    tri = {"type": "Polygon", "coordinates": [[(0, 0), (120, 0), (0, 120), (0, 0)]]}
    data = materialize(agg.clip(_remapped(np.ones((4, 4))), _jur(tri))).data
    assert data[0, 3] == 0 and data[3, 0] == 1


def test_block_size_invariance():
    rng = np.random.default_rng(7)
    data = rng.choice([0, 1, 2, 4, 5, 7, 8, 9, 10, 11, 99], size=(23, 37))
    geom = {"type": "Polygon", "coordinates": [[(10, 5), (1000, 40), (600, 680), (10, 5)]]}
    results = [
        ClipAndAggregate(block_size=b).clip_and_count(_remapped(data), _jur(geom), legend_ids=IDS)
        for b in (1, 5, 7, 1024)
    ]
    first = results[0]
    for r in results[1:]:
        assert dict(r.counts) == dict(first.counts)
        assert r.unknown_pixels == first.unknown_pixels
        assert r.nodata_pixels == first.nodata_pixels
    assert results[1].blocks > results[-1].blocks == 1


def test_unknown_code_counted_as_sentinel_never_class_1():
    data = [[99, 99], [1, 11]]
    counts = ClipAndAggregate().clip_and_count(_remapped(data), _jur(box(0, 0, 60, 60)), legend_ids=IDS)
    assert counts.unknown_pixels == 2
    assert counts.unknown_codes == (99,)
    assert counts.counts[1] == 1
    assert counts.counted_pixels == 2


def test_area_law_matches_counted_pixels():
    rng = np.random.default_rng(3)
    data = rng.choice([0, 1, 5, 11, 42], size=(16, 16))
    counts = ClipAndAggregate(pixel_scale_m=10.0).clip_and_count(
        _remapped(data, px=10.0), _jur(box(0, 0, 160, 160)), legend_ids=IDS,
    )
    total_ha = sum(counts.area_ha(i) for i in IDS)
    assert round(total_ha * 10_000 / (10.0 * 10.0)) == counts.counted_pixels
    assert counts.counted_pixels + counts.unknown_pixels + counts.nodata_pixels == 256


def test_empty_intersection_gives_zero_counts():
    counts = ClipAndAggregate().clip_and_count(
        _remapped(HALF_WATER_HALF_RANGELAND), _jur(box(5000, 5000, 5100, 5100)), legend_ids=IDS,
    )
    assert counts.empty
    assert dict(counts.counts) == {i: 0 for i in IDS}


def test_empty_intersection_can_be_an_error():
    with pytest.raises(EmptyJurisdiction):
        ClipAndAggregate(allow_empty=False).clip_and_count(
            _remapped(HALF_WATER_HALF_RANGELAND), _jur(box(5000, 5000, 5100, 5100)), legend_ids=IDS,
        )


def test_pixel_budget_overflow():
    with pytest.raises(AggregationOverflow):
        ClipAndAggregate(max_pixels=10).clip_and_count(
            _remapped(HALF_WATER_HALF_RANGELAND), _jur(box(0, 0, 120, 120)), legend_ids=IDS,
        )


def test_cancelled_token_stops_aggregation():
    token = CancelToken()
    token.cancel()
    with pytest.raises(PipelineCancelled):
        ClipAndAggregate(block_size=2).clip_and_count(
            _remapped(HALF_WATER_HALF_RANGELAND), _jur(box(0, 0, 120, 120)), legend_ids=IDS, cancel=token,
        )


def test_jurisdiction_reprojected_to_surface_crs():
    geom_4326 = transform_geom("EPSG:3857", "EPSG:4326", box(0, 0, 120, 120))
    counts = ClipAndAggregate().clip_and_count(
        _remapped(HALF_WATER_HALF_RANGELAND, epsg=3857), _jur(geom_4326, epsg=4326), legend_ids=IDS,
    )
    assert counts.counts[1] == 8 and counts.counts[9] == 8


def test_sentinel_value_kept_inside_clipped_raster():
    clipped = ClipAndAggregate().clip(_remapped([[99, 1]]), _jur(box(0, 0, 60, 30)))
    assert materialize(clipped).data.tolist() == [[UNKNOWN_ID, 1]]


def test_positional_call_counts_every_legend_class():
    # superficie, geometría y escala: sin ids explícitos se usa la leyenda IO/Esri
    counts = ClipAndAggregate().clip_and_count(
        _remapped(HALF_WATER_HALF_RANGELAND), _jur(box(0, 0, 120, 120)), 30.0,
    )
    assert set(counts.counts) == set(IDS)
    assert len(counts.counts) == 9
    assert counts.counts[1] == 8 and counts.counts[9] == 8
    assert sum(counts.counts[i] for i in IDS if i not in (1, 9)) == 0
    assert counts.unknown_pixels == 0
    assert counts.area_ha(1) == pytest.approx(0.72)


def test_empty_legend_ids_rejected():
    with pytest.raises(ValueError):
        ClipAndAggregate().clip_and_count(
            _remapped(HALF_WATER_HALF_RANGELAND), _jur(box(0, 0, 120, 120)), 30.0, legend_ids=(),
        )


@pytest.mark.parametrize("scale", [0, 0.0, -30.0, float("nan")])
def test_invalid_pixel_scale_per_call(scale):
    agg = ClipAndAggregate()
    with pytest.raises(ValueError):
        agg.clip_and_count(_remapped(HALF_WATER_HALF_RANGELAND), _jur(box(0, 0, 120, 120)), scale)
    with pytest.raises(ValueError):
        ClipAndAggregate(pixel_scale_m=scale)


def test_explicit_pixel_scale_overrides_default():
    counts = ClipAndAggregate(pixel_scale_m=30.0).clip_and_count(
        _remapped(HALF_WATER_HALF_RANGELAND), _jur(box(0, 0, 120, 120)), 10.0,
    )
    assert counts.pixel_scale_m == 10.0
    assert counts.area_ha(1) == pytest.approx(0.08)
