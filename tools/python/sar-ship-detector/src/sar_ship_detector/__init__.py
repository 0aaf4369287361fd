"""
sar_ship_detector
=================
Ship-like bright target detection in single-band SAR backscatter over
water: water mask, intensity threshold, morphological cleanup, speckle
removal, vectorization, and a bounding-box length filter.

Submodules
----------
config       -- DetectionConfig and AcquisitionQuery parameter bundles
grid         -- RasterGrid, raster I/O, region of interest handling
water        -- Water mask from an occurrence raster, coast erosion
threshold    -- Water-restricted intensity threshold
morphology   -- Disk erosion / dilation, closing-then-opening cleanup
speckle      -- 8-connected labeling and small-blob removal
vectorize    -- Polygon tracing with an explicit pixel cap
length       -- Bounding-box diagonal length proxy and length filter
acquisition  -- Scene records, closest-in-time selection, JSON manifests
pipeline     -- The six stages composed for one acquisition
export       -- GeoJSON, GeoTIFF, diagnostics JSON, PNG quick-look
detector     -- File-based tool (GeoTool subclass)
cli          -- ``sar-ship-detect`` command
"""

from sar_ship_detector.acquisition import Acquisition, ManifestCatalog, select_closest
from sar_ship_detector.config import AcquisitionQuery, DetectionConfig
from sar_ship_detector.grid import RasterGrid, read_raster
from sar_ship_detector.length import ShipCandidate
from sar_ship_detector.pipeline import DetectionResult, ShipDetectionPipeline, detect_from_catalog

__version__ = "1.0.0"
__all__ = [
    "Acquisition",
    "AcquisitionQuery",
    "DetectionConfig",
    "DetectionResult",
    "ManifestCatalog",
    "RasterGrid",
    "ShipCandidate",
    "ShipDetectionPipeline",
    "detect_from_catalog",
    "read_raster",
    "select_closest",
]
