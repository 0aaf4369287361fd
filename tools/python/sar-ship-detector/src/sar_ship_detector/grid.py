"""
grid.py
=======
Raster primitives shared by every pipeline stage.

A :class:`RasterGrid` is a 2-D numpy array pinned to an affine transform
and CRS.  Float grids use NaN for no-data; boolean grids are masks where
``True`` means "selected" and no-data is always ``False``.

Also holds the small amount of raster I/O the tool needs: masked GeoTIFF
reads, nearest-neighbour resampling onto another grid, and region of
interest projection / rasterization.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import geopandas as gpd
import numpy as np
import rasterio
from pyproj import CRS as ProjCRS
from pyproj import Transformer
from rasterio.crs import CRS
from rasterio.errors import RasterioIOError
from rasterio.features import geometry_mask
from rasterio.transform import Affine, array_bounds
from rasterio.warp import Resampling, reproject
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform as shapely_transform
from shapely.ops import unary_union

from shared.python.exceptions import GridAlignmentError, InputValidationError, RasterError
from shared.python.validators import Validators

logger = logging.getLogger("shipwatch.sar_ship_detector.grid")

WGS84 = "EPSG:4326"


# ---------------------------------------------------------------------------
# Grid container
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class RasterGrid:
    """A 2-D raster on a fixed, axis-aligned pixel grid.

    Attributes:
        data: ``(rows, cols)`` array.  ``float32`` with NaN for no-data,
            or ``bool`` for masks.
        transform: Affine pixel → map-coordinate transform.
        crs: Coordinate reference system of the map coordinates, or
            ``None`` for synthetic grids (treated as metres).
    """

    data: np.ndarray
    transform: Affine
    crs: CRS | None = None

    def __post_init__(self) -> None:
        if self.data.ndim != 2:
            raise RasterError(
                f"RasterGrid expects a 2-D array, got shape {self.data.shape}."
            )

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape  # type: ignore[return-value]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def pixel_size(self) -> tuple[float, float]:
        """``(x_size, y_size)`` of one pixel in CRS units, both positive."""
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """``(west, south, east, north)`` in CRS units."""
        return array_bounds(self.height, self.width, self.transform)

    @property
    def is_mask(self) -> bool:
        return self.data.dtype == np.bool_

    @property
    def is_geographic(self) -> bool:
        return bool(self.crs is not None and self.crs.is_geographic)

    def true_count(self) -> int:
        """Number of selected pixels in a mask grid."""
        if not self.is_mask:
            raise RasterError("true_count() is only defined for boolean mask grids.")
        return int(np.count_nonzero(self.data))

    def with_data(self, data: np.ndarray) -> RasterGrid:
        """Return a new grid with *data* on this grid's transform and CRS."""
        if data.shape != self.data.shape:
            raise RasterError(
                f"Replacement data has shape {data.shape}, grid is {self.data.shape}."
            )
        return RasterGrid(data, self.transform, self.crs)

    def alignment_issue(self, other: RasterGrid) -> str | None:
        """Describe how *other* differs from this grid, or ``None`` if aligned."""
        if self.shape != other.shape:
            return f"shape {self.shape} != {other.shape}"
        if not self.transform.almost_equals(other.transform):
            return f"transform {tuple(self.transform)[:6]} != {tuple(other.transform)[:6]}"
        if self.crs != other.crs:
            return f"CRS {self.crs} != {other.crs}"
        return None

    def assert_aligned_with(
        self,
        other: RasterGrid,
        label_self: str = "raster",
        label_other: str = "raster",
    ) -> None:
        """Fail fast when *other* is not on this grid.

        Raises:
            GridAlignmentError: If the grids differ in shape, transform or CRS.
        """
        issue = self.alignment_issue(other)
        if issue is not None:
            raise GridAlignmentError(label_self, label_other, issue)

    def __repr__(self) -> str:
        return (
            f"<RasterGrid {self.height}x{self.width} {self.data.dtype} "
            f"@ {self.pixel_size[0]:g} crs={self.crs}>"
        )


# ---------------------------------------------------------------------------
# Raster I/O
# ---------------------------------------------------------------------------


def read_raster(path: Path, band: int = 1) -> RasterGrid:
    """Read one band of a GeoTIFF as a ``float32`` grid with NaN no-data.

    Args:
        path: Raster file readable by rasterio.
        band: 1-based band index.

    Raises:
        BandIndexError: If *band* does not exist in the file.
        RasterError: If rasterio cannot open the file.
    """
    try:
        with rasterio.open(path) as src:
            Validators.assert_band_index_valid(band, src.count)
            masked = src.read(band, masked=True)
            data = np.ma.filled(masked.astype(np.float32), np.nan)
            logger.debug(
                "Read band %d of %s: %dx%d px, crs=%s", band, Path(path).name,
                src.height, src.width, src.crs,
            )
            return RasterGrid(data, src.transform, src.crs)
    except RasterioIOError as exc:
        raise RasterError(f"Could not open raster '{path}': {exc}") from exc


def resample_to_grid(
    source: RasterGrid,
    like: RasterGrid,
    resampling: Resampling = Resampling.nearest,
) -> RasterGrid:
    """Reproject *source* onto the pixel grid of *like*.

    Pixels of *like* not covered by *source* come back as NaN.

    Raises:
        GridAlignmentError: If the grids differ and either has no CRS.
    """
    issue = source.alignment_issue(like)
    if issue is None:
        return source
    if source.crs is None or like.crs is None:
        raise GridAlignmentError(
            "source", "target", f"{issue}; cannot resample without a CRS on both grids",
        )
    destination = np.full(like.shape, np.nan, dtype=np.float32)
    reproject(
        source=source.data.astype(np.float32),
        destination=destination,
        src_transform=source.transform,
        src_crs=source.crs,
        dst_transform=like.transform,
        dst_crs=like.crs,
        src_nodata=np.nan,
        dst_nodata=np.nan,
        resampling=resampling,
    )
    logger.debug("Resampled %r onto %r", source, like)
    return RasterGrid(destination, like.transform, like.crs)


# ---------------------------------------------------------------------------
# Region of interest
# ---------------------------------------------------------------------------


def load_region(path: Path) -> tuple[BaseGeometry, str]:
    """Read a vector file and dissolve it into one region geometry.

    Returns:
        ``(geometry, crs_wkt)``.  Files without a CRS are assumed WGS84.
    """
    Validators.assert_file_exists(path)
    gdf = gpd.read_file(path)
    if gdf.empty:
        raise InputValidationError(f"Region file '{path}' contains no features.")
    if gdf.crs is None:
        logger.warning("Region file %s has no CRS; assuming WGS84.", Path(path).name)
        gdf = gdf.set_crs(WGS84)
    return unary_union(gdf.geometry), gdf.crs.to_wkt()


def project_region(
    region: BaseGeometry,
    src_crs: object,
    dst_crs: object,
) -> BaseGeometry:
    """Reproject *region* from *src_crs* into *dst_crs*.

    Either CRS may be ``None`` (synthetic grids), in which case the
    geometry is returned unchanged.

    Raises:
        CRSError: If either CRS cannot be parsed.
    """
    if src_crs is None or dst_crs is None:
        return region
    Validators.assert_crs_valid(src_crs)
    Validators.assert_crs_valid(dst_crs)
    src = ProjCRS.from_user_input(src_crs)
    dst = ProjCRS.from_user_input(dst_crs)
    if src == dst:
        return region
    transformer = Transformer.from_crs(src, dst, always_xy=True)
    return shapely_transform(transformer.transform, region)


def prepare_region(
    region: BaseGeometry,
    region_crs: object,
    grid: RasterGrid,
    simplify_m: float = 0.0,
    buffer_m: float = 0.0,
) -> BaseGeometry:
    """Project a region onto *grid*'s CRS, then simplify and buffer it.

    Simplify/buffer distances are metres, so they are skipped on
    geographic grids.
    """
    projected = project_region(region, region_crs, grid.crs)
    if grid.is_geographic:
        return projected
    if simplify_m > 0:
        projected = projected.simplify(simplify_m)
    if buffer_m > 0:
        projected = projected.buffer(buffer_m)
    return projected


def region_mask(region: BaseGeometry | None, grid: RasterGrid) -> np.ndarray:
    """Boolean array, ``True`` where a pixel centre falls inside *region*.

    ``None`` selects the whole grid.
    """
    if region is None:
        return np.ones(grid.shape, dtype=bool)
    if region.is_empty:
        return np.zeros(grid.shape, dtype=bool)
    return geometry_mask(
        [mapping(region)],
        out_shape=grid.shape,
        transform=grid.transform,
        invert=True,
    )
