"""
SAR Ship Detector: CLI Entry Point
===================================
Installed as the ``sar-ship-detect`` command via ``pyproject.toml``.

Usage::

    sar-ship-detect --intensity s1_vv_db.tif --date 2025-07-10 \\
        --occurrence gsw_occurrence.tif --region harbour.geojson \\
        --water-occ-min 90 --min-length 40 --output-dir output/

    sar-ship-detect --manifest scenes.json --target-date 2025-07-10 \\
        --window-days 10 --pass DESCENDING \\
        --occurrence gsw_occurrence.tif --output-dir output/

Exit status: 0 on success, 1 on error, 2 when no acquisition matches.
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import click

from shared.python.exceptions import NoAcquisitionAvailableError, ShipWatchError

from sar_ship_detector.config import LIMIT_POLICIES, ORBIT_PASSES, AcquisitionQuery, DetectionConfig
from sar_ship_detector.detector import ShipDetectorTool

EXIT_NO_ACQUISITION = 2

_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


@click.command(
    name="sar-ship-detect",
    help="Detect ship-like bright targets over water in SAR backscatter imagery.",
)
@click.option("--intensity", "intensity_path", type=_FILE, default=None,
              help="Intensity GeoTIFF in dB (single scene).")
@click.option("--manifest", "manifest_path", type=_FILE, default=None,
              help="JSON scene manifest; the scene closest to --target-date is used.")
@click.option("--occurrence", "occurrence_path", type=_FILE, required=True,
              help="Water-occurrence GeoTIFF (0-100), e.g. JRC GSW occurrence.")
@click.option("--region", "region_path", type=_FILE, default=None,
              help="Region of interest (GeoJSON / GeoPackage / Shapefile).")
@click.option("--output-dir", "-o", type=click.Path(file_okay=False, path_type=Path),
              required=True, help="Directory for all outputs.")
@click.option("--date", "scene_date", type=click.DateTime(["%Y-%m-%d"]), default=None,
              help="Acquisition date of --intensity (default: ACQUISITION_DATE tag).")
@click.option("--band", type=int, default=1, show_default=True,
              help="1-based band of --intensity.")
@click.option("--target-date", type=click.DateTime(["%Y-%m-%d"]), default=None,
              help="Target date for --manifest searches.")
@click.option("--window-days", type=int, default=10, show_default=True,
              help="Search ± this many days around --target-date.")
@click.option("--pass", "orbit_pass", type=click.Choice(ORBIT_PASSES, case_sensitive=False),
              default=None, help="Only use ascending or descending passes.")
@click.option("--polarisation", default="VV", show_default=True,
              help="Band to detect on when using --manifest.")
@click.option("--water-occ-min", type=float, default=0.0, show_default=True,
              help="Minimum water occurrence (0-100). 80-95 suits ports and coasts.")
@click.option("--threshold-db", type=float, default=0.0, show_default=True,
              help="Candidate pixels are brighter than this (dB).")
@click.option("--min-length", "min_length_m", type=float, default=50.0, show_default=True,
              help="Minimum bounding-box diagonal (m).")
@click.option("--coast-erode", "coast_erode_px", type=int, default=2, show_default=True,
              help="Coastline erosion radius (px).")
@click.option("--morph-radius", "morph_radius_px", type=int, default=2, show_default=True,
              help="Closing/opening radius (px); 0 disables.")
@click.option("--min-pixels", type=int, default=5, show_default=True,
              help="Smallest blob kept by the speckle filter (px).")
@click.option("--vector-scale", "vector_scale_m", type=float, default=None,
              help="Tracing pixel size (m); default is the native resolution.")
@click.option("--max-vector-pixels", type=int, default=100_000_000, show_default=True,
              help="Cap on candidate pixels traced into polygons.")
@click.option("--limit-policy", type=click.Choice(LIMIT_POLICIES), default="raise",
              show_default=True, help="What to do when the vector cap is exceeded.")
@click.option("--quicklook/--no-quicklook", default=True, show_default=True,
              help="Render a PNG quick-look.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def main(
    intensity_path: Path | None,
    manifest_path: Path | None,
    occurrence_path: Path,
    region_path: Path | None,
    output_dir: Path,
    scene_date: datetime | None,
    band: int,
    target_date: datetime | None,
    window_days: int,
    orbit_pass: str | None,
    polarisation: str,
    water_occ_min: float,
    threshold_db: float,
    min_length_m: float,
    coast_erode_px: int,
    morph_radius_px: int,
    min_pixels: int,
    vector_scale_m: float | None,
    max_vector_pixels: int,
    limit_policy: str,
    quicklook: bool,
    verbose: bool,
) -> None:
    """CLI entry point: wires Click options into ShipDetectorTool."""
    if (intensity_path is None) == (manifest_path is None):
        raise click.UsageError("Give exactly one of --intensity or --manifest.")
    if manifest_path is not None and target_date is None:
        raise click.UsageError("--manifest needs --target-date.")

    config = DetectionConfig(
        water_occurrence_min=water_occ_min,
        threshold_db=threshold_db,
        min_length_m=min_length_m,
        coast_erode_px=coast_erode_px,
        morph_radius_px=morph_radius_px,
        min_pixels=min_pixels,
        vector_scale_m=vector_scale_m,
        max_vector_pixels=max_vector_pixels,
        vector_limit_policy=limit_policy,  # type: ignore[arg-type]
    )
    query = None
    if target_date is not None:
        query = AcquisitionQuery(
            target_date=target_date.date(),
            window_days=window_days,
            orbit_pass=orbit_pass.upper() if orbit_pass else None,  # type: ignore[arg-type]
            polarisation=polarisation.upper(),
        )

    tool = ShipDetectorTool(
        input_path=manifest_path or intensity_path,  # type: ignore[arg-type]
        output_path=output_dir,
        occurrence_path=occurrence_path,
        config=config,
        acquisition_date=scene_date.date() if scene_date else None,
        query=query,
        region_path=region_path,
        band=band,
        quicklook=quicklook,
        verbose=verbose,
    )

    try:
        tool.run()
    except NoAcquisitionAvailableError as exc:
        click.echo(f"No acquisition: {exc.message}", err=True)
        sys.exit(EXIT_NO_ACQUISITION)
    except ShipWatchError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    if tool.result is not None:
        click.echo(f"\n{tool.result.summary()}")
    for label, path in tool.output_files.items():
        click.echo(f"  {label:<11} {path}")


if __name__ == "__main__":
    main()
