"""
ShipWatch: Shared Input Validators
===================================
Static utility methods used across ShipWatch tools to validate common
preconditions before processing begins.

All methods raise an appropriate exception from
:mod:`shared.python.exceptions` rather than returning booleans, which
keeps ``validate_inputs`` implementations short::

    class MyTool(GeoTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)
            Validators.assert_supported_extension(self.input_path, [".tif"])
            Validators.assert_int_at_least("min_pixels", self.min_pixels, 1)
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Sequence

from pyproj import CRS as ProjCRS
from pyproj.exceptions import CRSError as PyprojCRSError

from shared.python.exceptions import (
    BandIndexError,
    ConfigurationError,
    CRSError,
    InputValidationError,
    OutputWriteError,
)


class Validators:
    """Collection of static precondition checks shared across all tools.

    All methods are ``@staticmethod``; this class is never instantiated.
    It exists purely as a logical namespace.
    """

    # ------------------------------------------------------------------
    # File-system checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path) -> None:
        """Assert that *path* points to an existing regular file.

        Args:
            path: Path object to check.

        Raises:
            InputValidationError: If *path* does not exist or is a
                directory rather than a file.
        """
        path = Path(path)
        if not path.exists():
            raise InputValidationError(
                f"Input file not found: '{path}'. "
                "Check that the path is correct and the file exists."
            )
        if path.is_dir():
            raise InputValidationError(
                f"Expected a file but got a directory: '{path}'."
            )

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Assert that the directory *output_path* can be written to.

        Creates the directory (and any missing parents) if it does not
        yet exist.

        Args:
            output_path: Intended output directory.

        Raises:
            OutputWriteError: If the directory cannot be created.
        """
        try:
            Path(output_path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Assert that *path* has one of the allowed file extensions.

        Args:
            path: File path to check.
            extensions: Sequence of allowed extensions, each starting with
                        a dot (e.g. ``[".tif", ".tiff"]``).

        Raises:
            InputValidationError: If the file extension is not in
                *extensions*.
        """
        path = Path(path)
        suffix = path.suffix.lower()
        allowed = [ext.lower() for ext in extensions]
        if suffix not in allowed:
            raise InputValidationError(
                f"Unsupported file extension '{suffix}' for '{path.name}'. "
                f"Accepted extensions: {', '.join(allowed)}"
            )

    # ------------------------------------------------------------------
    # CRS / projection checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_crs_valid(crs: object) -> None:
        """Assert that *crs* (EPSG code, WKT, PROJ string, CRS object) parses.

        Raises:
            CRSError: If pyproj does not recognise *crs*.
        """
        try:
            ProjCRS.from_user_input(crs)
        except PyprojCRSError as exc:
            raise CRSError(str(crs)) from exc

    # ------------------------------------------------------------------
    # Numeric parameter checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_in_range(
        name: str,
        value: float,
        low: float | None = None,
        high: float | None = None,
    ) -> None:
        """Assert that *value* is a finite number within ``[low, high]``.

        Either bound may be ``None`` to leave that side open.

        Args:
            name: Parameter name used in the error message.
            value: Value to check.
            low: Inclusive lower bound, or ``None``.
            high: Inclusive upper bound, or ``None``.

        Raises:
            ConfigurationError: If *value* is NaN/infinite or out of range.

        Example::

            Validators.assert_in_range("water_occurrence_min", 80, 0, 100)
        """
        lo = "-inf" if low is None else low
        hi = "inf" if high is None else high
        expected = f"a finite number in [{lo}, {hi}]"
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(name, value, expected)
        if not math.isfinite(value):
            raise ConfigurationError(name, value, expected)
        if (low is not None and value < low) or (high is not None and value > high):
            raise ConfigurationError(name, value, expected)

    @staticmethod
    def assert_int_at_least(name: str, value: int, minimum: int) -> None:
        """Assert that *value* is an integer no smaller than *minimum*.

        Args:
            name: Parameter name used in the error message.
            value: Value to check.
            minimum: Inclusive lower bound.

        Raises:
            ConfigurationError: If *value* is not an ``int`` or is too small.
        """
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise ConfigurationError(name, value, f"an integer >= {minimum}")

    @staticmethod
    def assert_choice(name: str, value: str, choices: Sequence[str]) -> None:
        """Assert that *value* is one of *choices*.

        Raises:
            ConfigurationError: If *value* is not an allowed choice.
        """
        if value not in choices:
            raise ConfigurationError(name, value, f"one of {', '.join(choices)}")

    # ------------------------------------------------------------------
    # Raster checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_band_index_valid(band_index: int, total_bands: int) -> None:
        """Assert that *band_index* is within the valid range for a raster.

        Args:
            band_index: 1-based band index requested by the user.
            total_bands: Total number of bands in the raster file.

        Raises:
            BandIndexError: If *band_index* is less than 1 or exceeds
                *total_bands*.
        """
        if band_index < 1 or band_index > total_bands:
            raise BandIndexError(band_index, total_bands)
