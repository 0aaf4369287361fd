"""
SAR Ship Detector: File-Based Tool
===================================
Runs the detection pipeline on GeoTIFF inputs and writes the results.

Classes:
    ShipDetectorTool   Primary tool class (inherits GeoTool).

The primary input is either a single intensity GeoTIFF (dB) or a JSON
scene manifest.  With a manifest, the closest scene to the query's
target date is picked first; if the window holds none, the run stops
with :class:`~shared.python.exceptions.NoAcquisitionAvailableError`
before any raster is read.

Usage::

    from datetime import date
    from pathlib import Path
    from sar_ship_detector.detector import ShipDetectorTool
    from sar_ship_detector.config import DetectionConfig

    tool = ShipDetectorTool(
        input_path=Path("data/s1_vv_db.tif"),
        output_path=Path("output/"),
        occurrence_path=Path("data/gsw_occurrence.tif"),
        config=DetectionConfig(water_occurrence_min=90, min_length_m=30),
        acquisition_date=date(2025, 7, 10),
    )
    tool.run()
    print(tool.result.summary())
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path

import rasterio
from rasterio.errors import RasterioIOError

from shared.python.base_tool import GeoTool
from shared.python.exceptions import InputValidationError, RasterError
from shared.python.validators import Validators

from sar_ship_detector.acquisition import Acquisition, ManifestCatalog, select_closest
from sar_ship_detector.config import AcquisitionQuery, DetectionConfig
from sar_ship_detector.export import DetectionWriter
from sar_ship_detector.grid import WGS84, load_region, read_raster, resample_to_grid
from sar_ship_detector.pipeline import DetectionResult, ShipDetectionPipeline

logger = logging.getLogger("shipwatch.sar_ship_detector.detector")

DATE_TAG = "ACQUISITION_DATE"


class ShipDetectorTool(GeoTool):
    """Detect ship-like bright targets in a SAR scene over water.

    Args:
        input_path: Intensity GeoTIFF in dB, or a JSON scene manifest.
        output_path: Output directory.
        occurrence_path: Water-occurrence GeoTIFF (0-100).  Resampled
            onto the intensity grid with nearest neighbour if needed.
        config: Detection parameters.
        acquisition_date: Date of a single-file scene.  When omitted the
            file's ``ACQUISITION_DATE`` tag is used.
        query: Acquisition search; required with a manifest input.
        region_path: Optional vector file with the region of interest.
        band: 1-based band of a single-file scene.
        quicklook: Also render the PNG quick-look.
        prefix: Filename prefix of every output.
        verbose: Enable DEBUG-level logging.
    """

    RASTER_EXTENSIONS = [".tif", ".tiff", ".vrt", ".img"]
    MANIFEST_EXTENSIONS = [".json"]
    REGION_EXTENSIONS = [".geojson", ".json", ".gpkg", ".shp"]

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        occurrence_path: Path,
        config: DetectionConfig | None = None,
        *,
        acquisition_date: date | None = None,
        query: AcquisitionQuery | None = None,
        region_path: Path | None = None,
        band: int = 1,
        quicklook: bool = True,
        prefix: str = "ships",
        verbose: bool = False,
    ) -> None:
        super().__init__(input_path, output_path, verbose=verbose)
        self.occurrence_path = Path(occurrence_path)
        self.config = config or DetectionConfig()
        self.acquisition_date = acquisition_date
        self.query = query
        self.region_path = Path(region_path) if region_path else None
        self.band = band
        self.quicklook = quicklook
        self.prefix = prefix
        self._result: DetectionResult | None = None

    @property
    def uses_manifest(self) -> bool:
        return self.input_path.suffix.lower() in self.MANIFEST_EXTENSIONS

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Check files, parameters, and the acquisition date source.

        Raises:
            InputValidationError: If a file is missing, has an unsupported
                extension, or no acquisition date can be determined.
            ConfigurationError: If a detection parameter is out of range.
            BandIndexError: If the requested band does not exist.
            OutputWriteError: If the output directory cannot be created.
        """
        Validators.assert_file_exists(self.input_path)
        Validators.assert_file_exists(self.occurrence_path)
        Validators.assert_supported_extension(self.occurrence_path, self.RASTER_EXTENSIONS)
        if self.region_path is not None:
            Validators.assert_file_exists(self.region_path)
            Validators.assert_supported_extension(self.region_path, self.REGION_EXTENSIONS)
        self.config.validate()

        if self.uses_manifest:
            if self.query is None:
                raise InputValidationError(
                    "A scene manifest needs an acquisition query (target date and window)."
                )
            self.query.validate()
        else:
            Validators.assert_supported_extension(self.input_path, self.RASTER_EXTENSIONS)
            self._check_band_and_date()

        Validators.assert_output_dir_writable(self.output_path)
        logger.debug("Inputs validated.")

    def _check_band_and_date(self) -> None:
        try:
            with rasterio.open(self.input_path) as src:
                Validators.assert_band_index_valid(self.band, src.count)
                tag = src.tags().get(DATE_TAG)
        except RasterioIOError as exc:
            raise RasterError(f"Could not open raster '{self.input_path}': {exc}") from exc

        if self.acquisition_date is not None:
            return
        if not tag:
            raise InputValidationError(
                f"No acquisition date given and '{self.input_path.name}' has no "
                f"{DATE_TAG} tag. Pass the date explicitly."
            )
        try:
            self.acquisition_date = datetime.fromisoformat(tag).date()
        except ValueError as exc:
            raise InputValidationError(
                f"Unreadable {DATE_TAG} tag {tag!r} in '{self.input_path.name}'."
            ) from exc

    def process(self) -> None:
        """Select the scene, run the pipeline, and write every output.

        Raises:
            NoAcquisitionAvailableError: If a manifest query matches no scene.
            GridAlignmentError: If the inputs cannot be put on one grid.
            VectorizationLimitError: If the vectorization cap is exceeded
                under the ``"raise"`` policy.
            OutputWriteError: If writing an output fails.
        """
        pipeline = ShipDetectionPipeline(self.config)

        acquisition: Acquisition | None = None
        if self.uses_manifest:
            if self.query is None:
                raise InputValidationError("A scene manifest needs an acquisition query.")
            catalog = ManifestCatalog(self.input_path)
            acquisition = select_closest(catalog.search(self.query), self.query)
            intensity = acquisition.load(self.query.polarisation)
            acq_date = acquisition.date
        else:
            intensity = read_raster(self.input_path, self.band)
            if self.acquisition_date is None:
                raise InputValidationError(
                    f"No acquisition date for '{self.input_path}'; run validate_inputs() first."
                )
            acq_date = self.acquisition_date

        occurrence = resample_to_grid(read_raster(self.occurrence_path), intensity)

        region, region_crs = (None, WGS84)
        if self.region_path is not None:
            region, region_crs = load_region(self.region_path)

        result = pipeline.run(intensity, occurrence, acq_date, region, region_crs)
        result.acquisition = acquisition
        self._result = result
        logger.info(result.summary())

        writer = DetectionWriter(result, self.output_path, prefix=self.prefix)
        for label, path in writer.write_all(quicklook=self.quicklook).items():
            self._record_output(label, path)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def result(self) -> DetectionResult | None:
        """:class:`DetectionResult` from the last run, or ``None``."""
        return self._result
