"""
ShipWatch: Shared Base Tool
============================
Abstract base class for file-driven ShipWatch tools.

Design Pattern:
    Template Method.  :meth:`GeoTool.run` fixes the order
    validate → process → report, and subclasses supply the first two
    steps.  Anything a run writes is recorded with
    :meth:`GeoTool._record_output` so the report (and callers) can list it.

Usage::

    from shared.python.base_tool import GeoTool

    class MaskExporter(GeoTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)

        def process(self) -> None:
            path = self.output_path / "mask.tif"
            ...
            self._record_output("mask", path)
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

# Root of the ShipWatch logger tree.  Modules log through children such as
# "shipwatch.sar_ship_detector.water", which inherit the handler below.
logger = logging.getLogger("shipwatch")

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s - %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def configure_logging(verbose: bool = False) -> None:
    """Attach one console handler to the ``shipwatch`` logger.

    Safe to call repeatedly: the handler is added once, and only the level
    changes on later calls (DEBUG when *verbose*, otherwise INFO).
    """
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


class GeoTool(ABC):
    """Base class for tools that turn input files into output files.

    Attributes:
        input_path: Primary input (a raster or a scene manifest).
        output_path: Directory the tool writes into.
        verbose: Log at DEBUG instead of INFO.
        elapsed: Seconds taken by the last :meth:`run`, or ``None``.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        *,
        verbose: bool = False,
    ) -> None:
        self.input_path: Path = Path(input_path)
        self.output_path: Path = Path(output_path)
        self.verbose: bool = verbose
        self.elapsed: float | None = None
        self._output_files: dict[str, Path] = {}

        configure_logging(verbose)

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_inputs(self) -> None:
        """Check every precondition; raise from :mod:`shared.python.exceptions`."""

    @abstractmethod
    def process(self) -> None:
        """Do the work.  Only called once :meth:`validate_inputs` passed."""

    # ------------------------------------------------------------------
    # Template method
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Validate, process, then log a report of what was written.

        Outputs recorded by a previous run are cleared first.  Exceptions
        from either hook propagate unchanged.
        """
        logger.info("Starting %s on %s", self.__class__.__name__, self.input_path.name)
        self._output_files = {}
        start = time.perf_counter()

        self.validate_inputs()
        self.process()

        self.elapsed = time.perf_counter() - start
        self._report_success()

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    @property
    def output_files(self) -> dict[str, Path]:
        """``{label: path}`` of files written by the last run."""
        return dict(self._output_files)

    def _record_output(self, label: str, path: Path) -> None:
        self._output_files[label] = Path(path)

    def _report_success(self) -> None:
        logger.info(
            "%s finished in %.2fs, %d file(s) in %s",
            self.__class__.__name__,
            self.elapsed or 0.0,
            len(self._output_files),
            self.output_path,
        )
        for label, path in self._output_files.items():
            logger.debug("  %-11s %s", label, path.name)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"input_path={self.input_path!r}, "
            f"output_path={self.output_path!r})"
        )
