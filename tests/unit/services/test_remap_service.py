import numpy as np
import pytest

from landclass.contracts.core import NODATA_ID, UNKNOWN_ID
from landclass.contracts.errors import UndefinedCategoryCode
from landclass.contracts.geo import Window
from landclass.contracts.io_lulc import IO_LULC_CODE_MAP, RAW_CODES
from landclass.services.remap_service import CategoryRemapper, remap_array
from landclass.services.surfaces import ArraySurface
from tests.factories import make_raster


def test_each_raw_code_maps_to_its_canonical_id():
    raw = np.array([list(RAW_CODES)], dtype=np.uint8)
    out = remap_array(raw, IO_LULC_CODE_MAP, nodata=0)
    assert out.tolist() == [list(range(1, 10))]
    assert out.dtype == np.uint8


def test_nodata_goes_to_canonical_nodata():
    raw = np.array([[0, 1], [11, 0]], dtype=np.uint8)
    out = remap_array(raw, IO_LULC_CODE_MAP, nodata=0)
    assert out.tolist() == [[NODATA_ID, 1], [9, NODATA_ID]]


def test_unknown_code_goes_to_sentinel_never_class_1():
    raw = np.array([[99, 1], [3, 6]], dtype=np.uint8)
    out = remap_array(raw, IO_LULC_CODE_MAP, nodata=0)
    assert out[0, 0] == UNKNOWN_ID
    assert out[1, 0] == UNKNOWN_ID and out[1, 1] == UNKNOWN_ID
    assert (out == 1).sum() == 1


def test_raise_policy_lists_unknown_codes():
    raw = np.array([[99, 3, 1]], dtype=np.uint8)
    with pytest.raises(UndefinedCategoryCode) as ei:
        remap_array(raw, IO_LULC_CODE_MAP, nodata=0, policy="raise")
    assert ei.value.context["codes"] == [3, 99]


def test_remap_is_pure():
    raw = np.array([[1, 2, 99]], dtype=np.uint8)
    before = raw.copy()
    remap_array(raw, IO_LULC_CODE_MAP, nodata=0)
    assert (raw == before).all()


def test_remap_idempotent_on_output_domain():
    raw = np.array([[0, 1, 2, 4], [5, 7, 8, 9], [10, 11, 99, 0]], dtype=np.uint8)
    once = remap_array(raw, IO_LULC_CODE_MAP, nodata=0)
    again = remap_array(once, IO_LULC_CODE_MAP.canonical_identity(), nodata=NODATA_ID)
    assert (once == again).all()


def test_remapped_surface_exposes_raw_codes_per_block():
    surf = ArraySurface(make_raster([[1, 99], [0, 11]]))
    remapped = CategoryRemapper(IO_LULC_CODE_MAP).remap(surf)
    assert remapped.profile.dtype == "uint8"
    assert remapped.profile.nodata == 0
    block = remapped.read_block(Window(0, 0, 2, 2))
    assert block.values.tolist() == [[1, UNKNOWN_ID], [0, 9]]
    assert block.raw.tolist() == [[1, 99], [0, 11]]


def test_remapper_validates_policy_and_code_map():
    with pytest.raises(ValueError):
        CategoryRemapper(IO_LULC_CODE_MAP, policy="passthrough")
    with pytest.raises(RuntimeError):
        CategoryRemapper().remap(ArraySurface(make_raster([[1]])))
