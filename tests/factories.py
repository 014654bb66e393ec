import numpy as np
from landclass.adapters.memory_boundaries import MemoryBoundarySource
from landclass.adapters.memory_rasters import MemoryRasterStore, MemoryTileCollection
from landclass.contracts.geo import GeoProfile, CRSRef, GeoRaster
from landclass.contracts.io_lulc import IO_LULC_CODE_MAP
from landclass.ports.boundary import BoundaryFeature
from landclass.services.boundary_service import BoundaryResolver
from landclass.services.mosaic_service import RasterMosaicSelector
from landclass.services.remap_service import CategoryRemapper
from landclass.services.aggregate_service import ClipAndAggregate
from landclass.services.summary_service import LandCoverSummaryService

EPSG = 32719

def make_profile(w=4, h=4, px=30.0, x0=0.0, y0=None, epsg=EPSG, dtype="uint8", nodata=0):
    y0 = float(h * px) if y0 is None else y0
    return GeoProfile(
        count=1, dtype=dtype, width=w, height=h,
        transform=(x0, px, 0.0, y0, 0.0, -px),
        crs=CRSRef.from_epsg(epsg) if epsg else CRSRef(), nodata=nodata,
    )

def make_raster(data, px=30.0, x0=0.0, y0=None, epsg=EPSG, nodata=0):
    arr = np.asarray(data, dtype=np.uint8)
    h, w = arr.shape
    return GeoRaster(data=arr, profile=make_profile(w, h, px, x0, y0, epsg, "uint8", nodata))

def box(minx, miny, maxx, maxy):
    return {
        "type": "Polygon",
        "coordinates": [[(minx, miny), (maxx, miny), (maxx, maxy), (minx, maxy), (minx, miny)]],
    }

def make_boundaries(features=None, epsg=EPSG):
    feats = features or [
        BoundaryFeature("Chile", "Atacama", box(0, 0, 120, 120)),
        BoundaryFeature("Chile", "Coquimbo", box(1000, 1000, 1120, 1120)),
        BoundaryFeature("Peru", "Tacna", box(0, 60, 60, 120)),
    ]
    return MemoryBoundarySource(feats, CRSRef.from_epsg(epsg))

def make_collection(items, **kw):
    """items: [(tile_id, year, GeoRaster)] en orden de colección."""
    store = MemoryRasterStore()
    coll = MemoryTileCollection.from_rasters(store, items, **kw)
    return store, coll

def make_service(items, boundaries=None, *, pixel_scale_m=30.0, block_size=1024, policy="sentinel", **agg):
    store, coll = make_collection(items)
    return LandCoverSummaryService(
        resolver=BoundaryResolver(boundaries or make_boundaries()),
        selector=RasterMosaicSelector(collection=coll, reader=store, pixel_scale_m=pixel_scale_m),
        remapper=CategoryRemapper(IO_LULC_CODE_MAP, policy=policy),
        aggregator=ClipAndAggregate(pixel_scale_m=pixel_scale_m, block_size=block_size, **agg),
        block_size=block_size,
    )

# 4x4: mitad superior código 1 (Water), mitad inferior código 11 (Rangeland)
HALF_WATER_HALF_RANGELAND = [
    [1, 1, 1, 1],
    [1, 1, 1, 1],
    [11, 11, 11, 11],
    [11, 11, 11, 11],
]
