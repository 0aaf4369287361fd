"""
export.py
=========
Save detection outputs to disk.

Supported formats
-----------------
GeoJSON  -- filtered ship candidates as WGS84 points (``acq_date``, ``length_m``)
GeoJSON  -- raw vectorized polygons, WGS84
GeoTIFF  -- classification layer: 0 = not water, 1 = water, 2 = ship candidate
JSON     -- per-stage diagnostics
PNG      -- quick-look: dark-blue water, white ships, green candidate points
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path

import geopandas as gpd
import matplotlib
matplotlib.use("Agg")  # non-interactive backend safe for headless execution
import matplotlib.pyplot as plt
import numpy as np
import rasterio
from matplotlib.colors import ListedColormap
from rasterio.errors import RasterioIOError

from shared.python.exceptions import OutputWriteError

from sar_ship_detector.grid import WGS84, RasterGrid
from sar_ship_detector.pipeline import DetectionResult

logger = logging.getLogger("shipwatch.sar_ship_detector.export")

WATER_COLOUR = "#081d58"
SHIP_COLOUR = "#ffffff"
POINT_COLOUR = "#39ff14"
LAND_COLOUR = "#3a3a3a"

CANDIDATE_COLUMNS = ["acq_date", "length_m", "geometry"]
POLYGON_COLUMNS = ["polygon_index", "geometry"]


def classification_layer(result: DetectionResult) -> np.ndarray:
    """``uint8`` layer: 0 not water, 1 water, 2 ship candidate."""
    layer = np.zeros(result.candidate_mask.shape, dtype=np.uint8)
    layer[result.water.eroded.data] = 1
    layer[result.candidate_mask.data] = 2
    return layer


class DetectionWriter:
    """Write the outputs of one :class:`DetectionResult` to a directory.

    Parameters
    ----------
    result:
        Completed result from :meth:`ShipDetectionPipeline.run`.
    output_dir:
        Target directory.  Created if it does not exist.
    prefix:
        Short prefix added to every output filename.
    """

    def __init__(
        self,
        result: DetectionResult,
        output_dir: Path,
        prefix: str = "ships",
    ) -> None:
        self.result = result
        self.prefix = prefix
        self.out_dir = Path(output_dir)
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(self.out_dir), str(exc)) from exc

    # ------------------------------------------------------------------
    # Convenience: save everything
    # ------------------------------------------------------------------

    def write_all(self, quicklook: bool = True) -> dict[str, Path]:
        """Save all outputs; return ``{label: path}``."""
        paths = {
            "candidates": self.write_candidates(),
            "polygons": self.write_polygons(),
            "mask": self.write_mask(),
            "diagnostics": self.write_diagnostics(),
        }
        if quicklook:
            paths["quicklook"] = self.write_quicklook()
        for label, path in paths.items():
            logger.info("Saved %-11s: %s", label, path.name)
        return paths

    # ------------------------------------------------------------------
    # Vectors
    # ------------------------------------------------------------------

    def _to_wgs84(self, gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        crs = self.result.vectors.crs
        if crs is None:
            logger.warning("Detections have no CRS; writing raw grid coordinates.")
            return gdf
        return gdf.set_crs(crs.to_wkt()).to_crs(WGS84)

    def candidates_frame(self) -> gpd.GeoDataFrame:
        """Filtered candidates as a point GeoDataFrame in WGS84."""
        records = [
            {**c.to_properties(), "geometry": c.centroid}
            for c in self.result.candidates
        ]
        gdf = gpd.GeoDataFrame(records, columns=CANDIDATE_COLUMNS, geometry="geometry")
        return self._to_wgs84(gdf)

    def polygons_frame(self) -> gpd.GeoDataFrame:
        """Raw vectorized regions as a polygon GeoDataFrame in WGS84."""
        records = [
            {"polygon_index": i, "geometry": geom}
            for i, geom in enumerate(self.result.polygons)
        ]
        gdf = gpd.GeoDataFrame(records, columns=POLYGON_COLUMNS, geometry="geometry")
        return self._to_wgs84(gdf)

    def write_candidates(self) -> Path:
        return self._write_geojson(self.candidates_frame(), "candidates")

    def write_polygons(self) -> Path:
        return self._write_geojson(self.polygons_frame(), "polygons")

    def _write_geojson(self, gdf: gpd.GeoDataFrame, name: str) -> Path:
        path = self.out_dir / f"{self.prefix}_{name}.geojson"
        try:
            path.write_text(gdf.to_json(drop_id=True), encoding="utf-8")
        except OSError as exc:
            raise OutputWriteError(str(path), str(exc)) from exc
        return path

    # ------------------------------------------------------------------
    # Rasters
    # ------------------------------------------------------------------

    def write_mask(self) -> Path:
        """Write :func:`classification_layer` as a single-band GeoTIFF."""
        grid: RasterGrid = self.result.candidate_mask
        path = self.out_dir / f"{self.prefix}_mask.tif"
        profile = {
            "driver": "GTiff",
            "height": grid.height,
            "width": grid.width,
            "count": 1,
            "dtype": "uint8",
            "transform": grid.transform,
            "compress": "deflate",
        }
        if grid.crs is not None:
            profile["crs"] = grid.crs
        try:
            with rasterio.open(path, "w", **profile) as dst:
                dst.write(classification_layer(self.result), 1)
                dst.update_tags(
                    ACQUISITION_DATE=self.result.acquisition_date.isoformat(),
                    CLASSES="0=not water,1=water,2=ship candidate",
                )
        except (OSError, RasterioIOError) as exc:
            raise OutputWriteError(str(path), str(exc)) from exc
        return path

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def write_diagnostics(self) -> Path:
        r = self.result
        payload = {
            "acquisition_date": r.acquisition_date.isoformat(),
            "acquisition_id": r.acquisition.scene_id if r.acquisition else None,
            "config": asdict(r.config),
            "diagnostics": {
                **asdict(r.diagnostics),
                "water_mask_empty": r.diagnostics.water_mask_empty,
            },
        }
        path = self.out_dir / f"{self.prefix}_diagnostics.json"
        try:
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2, default=str)
        except OSError as exc:
            raise OutputWriteError(str(path), str(exc)) from exc
        return path

    # ------------------------------------------------------------------
    # Quick-look PNG
    # ------------------------------------------------------------------

    def write_quicklook(self, figsize: tuple[float, float] = (10, 10), dpi: int = 120) -> Path:
        """Render water dark blue, ships white, candidates as green points."""
        r = self.result
        west, south, east, north = r.candidate_mask.bounds
        cmap = ListedColormap([LAND_COLOUR, WATER_COLOUR, SHIP_COLOUR])

        fig, ax = plt.subplots(figsize=figsize)
        ax.imshow(
            classification_layer(r),
            cmap=cmap,
            vmin=0,
            vmax=2,
            extent=(west, east, south, north),
            interpolation="nearest",
        )
        if r.candidates:
            xs = [c.centroid.x for c in r.candidates]
            ys = [c.centroid.y for c in r.candidates]
            ax.scatter(xs, ys, s=18, c=POINT_COLOUR, edgecolors="black", linewidths=0.4)
        ax.set_title(
            f"Ship detections {r.acquisition_date.isoformat()} "
            f"({len(r.candidates)} >= {r.config.min_length_m:g} m)"
        )
        ax.set_axis_off()

        path = self.out_dir / f"{self.prefix}_quicklook.png"
        try:
            fig.savefig(path, dpi=dpi, bbox_inches="tight")
        except OSError as exc:
            raise OutputWriteError(str(path), str(exc)) from exc
        finally:
            plt.close(fig)
        return path
