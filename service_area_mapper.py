#!/usr/bin/env python
"""
Service Area Mapper
===================
Two geospatial workflows built on GeoPandas:

1. Service areas: buffer point locations (e.g. methadone clinics), dissolve
   the buffers into one coverage area, and relate it to zip codes and a
   city boundary.
2. Choropleths: compute a demographic percentage per county and map it with
   a quantile, natural breaks, or standard deviation classification.
"""

from pathlib import Path
from typing import Optional
import time

# Import logging first
from utils.logger import setup_logging, get_logger, log_error_details

from config.config_loader import load_config, load_analysis_settings, load_choropleth_settings
from core.classification import compute_percentage
from core.map_builder import create_service_area_map, create_choropleth_map
from core.output_generator import generate_output
from geometry_input.load_input import load_features
from geometry_input.pipeline import process_service_areas


def main(points_file: str,
         zones_file: Optional[str] = None,
         boundary_file: Optional[str] = None,
         output_name: Optional[str] = None,
         render_mode: str = 'view',
         output_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Run the service-area workflow end to end.

    Workflow Steps:
    1. Setup logging to console and file
    2. Load configuration
    3. Load, reproject, buffer, and dissolve
    4. Render the map in the requested mode
    5. Generate output files

    Parameters:
    -----------
    points_file : str
        Point file (.shp bundle, .geojson, .gpkg, or zipped shapefile)
    zones_file : Optional[str]
        Zone polygons such as zip codes
    boundary_file : Optional[str]
        Boundary polygon such as the city limits
    output_name : Optional[str]
        Custom name for output directory (defaults to timestamped name)
    render_mode : str
        'view' (interactive HTML) or 'plot' (static PNG)
    output_dir : Optional[Path]
        Parent directory for outputs (defaults to PROJECT_ROOT/outputs)

    Returns:
    --------
    Optional[Path]
        Path to output directory if successful, None if failed
    """
    workflow_start_time = time.time()

    log_file = setup_logging()
    logger = get_logger(__name__)

    logger.info("=" * 80)
    logger.info("SERVICE AREA MAPPER - Buffer and Coverage Analysis")
    logger.info("=" * 80)
    logger.info(f"Log file: {log_file}")
    logger.info("")

    try:
        config = load_config()
        settings = load_analysis_settings(config)

        layers, metadata = process_service_areas(
            points_file,
            zones_path=zones_file,
            boundary_path=boundary_file,
            settings=settings
        )

        map_obj = create_service_area_map(layers, config, mode=render_mode,
                                          title=f"Service Area - {Path(points_file).stem}")

        metadata['execution_time_seconds'] = round(time.time() - workflow_start_time, 2)
        output_path = generate_output(map_obj, layers, metadata, output_name, output_dir)

        logger.info("")
        logger.info("✓ WORKFLOW COMPLETE")
        logger.info(f"✓ Total execution time: {time.time() - workflow_start_time:.2f} seconds")
        logger.info(f"✓ Output directory: {output_path}")
        logger.info("")

        return output_path

    except Exception as e:
        elapsed_time = time.time() - workflow_start_time

        logger.error("")
        logger.error("=" * 80)
        logger.error("✗ WORKFLOW FAILED")
        logger.error("=" * 80)
        logger.error(f"Error: {str(e)}", exc_info=True)
        log_error_details(logger, e)
        logger.error(f"Workflow failed after {elapsed_time:.2f} seconds")
        logger.error(f"See log file for details: {log_file}")
        logger.error("=" * 80)
        return None


def main_choropleth(regions_file: str,
                    numerator: str,
                    denominator: str,
                    scheme: Optional[str] = None,
                    output_name: Optional[str] = None,
                    render_mode: str = 'view',
                    output_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Map a demographic percentage per region as a classified choropleth.

    Parameters:
    -----------
    regions_file : str
        Region polygons (e.g. counties) with count columns
    numerator : str
        Subgroup count column
    denominator : str
        Total count column
    scheme : Optional[str]
        Classification scheme; defaults to the configured one
    output_name, render_mode, output_dir
        As for main()

    Returns:
    --------
    Optional[Path]
        Path to output directory if successful, None if failed
    """
    log_file = setup_logging()
    logger = get_logger(__name__)

    logger.info("=" * 80)
    logger.info("SERVICE AREA MAPPER - Choropleth")
    logger.info("=" * 80)

    try:
        settings = load_choropleth_settings(load_config())
        if scheme:
            settings['scheme'] = scheme

        regions = load_features(regions_file)
        column = f'pct_{numerator}'
        regions = compute_percentage(regions, numerator, denominator, name=column)

        map_obj = create_choropleth_map(regions, column, settings, mode=render_mode,
                                        title=f"% {numerator} of {denominator}")

        metadata = {
            'regions_file': Path(regions_file).name,
            'column': column,
            'scheme': settings['scheme'],
            'k': settings['k']
        }
        if output_name is None:
            output_name = f"choropleth_{settings['scheme']}_{time.strftime('%Y%m%d_%H%M%S')}"

        return generate_output(map_obj, {'regions': regions}, metadata, output_name, output_dir)

    except Exception as e:
        logger.error("✗ CHOROPLETH FAILED")
        logger.error(f"Error: {str(e)}", exc_info=True)
        log_error_details(logger, e)
        logger.error(f"See log file for details: {log_file}")
        return None


if __name__ == "__main__":
    # Example: methadone clinics against Chicago zip codes and city limits
    DATA_DIR = Path(__file__).parent / 'data'

    output_dir = main(
        str(DATA_DIR / 'methadone_clinics.geojson'),
        zones_file=str(DATA_DIR / 'chicago_zips.shp'),
        boundary_file=str(DATA_DIR / 'chicago_boundary.shp')
    )

    if output_dir:
        print(f"\n✓ Success! Open {output_dir / 'index.html'} in your browser.")
    else:
        print("\n✗ Failed to generate map. Check log file for details.")
