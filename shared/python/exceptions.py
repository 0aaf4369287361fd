"""
ShipWatch: Custom Exception Hierarchy
======================================
All ShipWatch tools raise exceptions from this module so callers can
catch them at the right level of granularity.

Hierarchy::

    ShipWatchError                       ← catch-all base
    ├── InputValidationError             ← bad files, bad parameters, etc.
    │   └── ConfigurationError           ← pipeline parameter out of range
    ├── CRSError                         ← invalid / unknown CRS string
    ├── RasterError                      ← rasterio / numpy raster issues
    │   ├── BandIndexError               ← requested band does not exist
    │   ├── GridAlignmentError           ← rasters on different grids
    │   └── VectorizationLimitError      ← pixel cap exceeded while tracing
    ├── NoAcquisitionAvailableError      ← empty acquisition search window
    └── OutputWriteError                 ← cannot write to output path

Usage::

    from shared.python.exceptions import GridAlignmentError

    raise GridAlignmentError("intensity", "water mask", "transform differs")
"""

from __future__ import annotations

from datetime import date


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class ShipWatchError(Exception):
    """Base exception for all ShipWatch tools.

    Catch this to handle any tool-specific error without caring about
    the exact subtype.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(ShipWatchError):
    """Raised when a tool's inputs fail pre-processing validation.

    This is the parent class for more specific input problems.
    """


class ConfigurationError(InputValidationError):
    """Raised when a detection parameter is outside its allowed range.

    Args:
        parameter: Name of the offending parameter (e.g. ``"min_pixels"``).
        value: The value that was supplied.
        expected: Short description of the allowed range.

    Example::

        raise ConfigurationError("morph_radius_px", -1, "an integer >= 0")
    """

    def __init__(self, parameter: str, value: object, expected: str) -> None:
        super().__init__(
            f"Invalid value for '{parameter}': {value!r}. Expected {expected}."
        )
        self.parameter: str = parameter
        self.value: object = value
        self.expected: str = expected


# ---------------------------------------------------------------------------
# CRS
# ---------------------------------------------------------------------------


class CRSError(ShipWatchError):
    """Raised when a coordinate reference system string cannot be parsed
    or matched to a known CRS.

    Args:
        crs_string: The raw CRS string that caused the error
                    (e.g. ``"EPSG:99999"``).
    """

    def __init__(self, crs_string: str) -> None:
        super().__init__(
            f"Invalid or unrecognised CRS: '{crs_string}'. "
            "Use an EPSG code (e.g. 'EPSG:4326') or a valid WKT/PROJ string."
        )
        self.crs_string: str = crs_string


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class RasterError(ShipWatchError):
    """Raised for general raster processing failures (rasterio / numpy).

    Subclass this for more specific raster errors.
    """


class BandIndexError(RasterError):
    """Raised when a requested raster band index does not exist.

    Args:
        band_index: The 1-based band number that was requested.
        total_bands: Total number of bands in the raster file.
    """

    def __init__(self, band_index: int, total_bands: int) -> None:
        super().__init__(
            f"Band {band_index} does not exist. "
            f"This raster has {total_bands} band(s) (1-indexed)."
        )
        self.band_index: int = band_index
        self.total_bands: int = total_bands


class GridAlignmentError(RasterError):
    """Raised when two rasters that must be processed together do not
    share the same pixel grid (shape, transform, and CRS).

    Args:
        label_a: Name of the first raster (e.g. ``"intensity"``).
        label_b: Name of the second raster (e.g. ``"water mask"``).
        reason: What differs between the two grids.
    """

    def __init__(self, label_a: str, label_b: str, reason: str) -> None:
        super().__init__(
            f"Raster grids are not aligned: {label_a} vs {label_b} ({reason}). "
            "Resample both inputs onto one grid before detection."
        )
        self.label_a: str = label_a
        self.label_b: str = label_b
        self.reason: str = reason


class VectorizationLimitError(RasterError):
    """Raised when a mask holds more candidate pixels than the configured
    vectorization cap and the limit policy is ``"raise"``.

    Args:
        pixel_count: Number of pixels that would have been traced.
        max_pixels: The configured cap.
    """

    def __init__(self, pixel_count: int, max_pixels: int) -> None:
        super().__init__(
            f"Vectorization needs {pixel_count:,} pixels but the cap is "
            f"{max_pixels:,}. Raise max_vector_pixels, coarsen the vector "
            "scale, or use the 'truncate' limit policy."
        )
        self.pixel_count: int = pixel_count
        self.max_pixels: int = max_pixels


# ---------------------------------------------------------------------------
# Acquisition
# ---------------------------------------------------------------------------


class NoAcquisitionAvailableError(ShipWatchError):
    """Raised when an acquisition search window contains no usable scene.

    This is an expected outcome rather than a crash: the caller should
    widen the window, drop the orbit-pass filter, or check the region.

    Args:
        target_date: Date the search was centred on.
        window_days: Half-width of the search window in days.
        orbit_pass: Orbit-pass filter that was applied, if any.
    """

    def __init__(
        self,
        target_date: date,
        window_days: int,
        orbit_pass: str | None = None,
    ) -> None:
        pass_hint = ", remove the orbit pass filter" if orbit_pass else ""
        super().__init__(
            f"No acquisitions found within ±{window_days} days of "
            f"{target_date.isoformat()}. Increase the window{pass_hint}, "
            "or verify the region."
        )
        self.target_date: date = target_date
        self.window_days: int = window_days
        self.orbit_pass: str | None = orbit_pass


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(ShipWatchError):
    """Raised when the tool cannot write its output to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
