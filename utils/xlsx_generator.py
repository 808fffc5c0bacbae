"""
XLSX report generator for Service Area Mapper.

This module generates an Excel (.xlsx) file summarizing service area coverage
per zone (for example, per zip code). Each row is one zone with its area,
covered area, percent covered, and number of service points inside it.
Zones the service area does not reach are highlighted.
"""

from pathlib import Path
from typing import Optional

import geopandas as gpd
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill
from openpyxl.utils import get_column_letter

from geometry_input.reprojection import get_linear_unit
from utils.logger import get_logger

logger = get_logger(__name__)

HEADER_FILL = PatternFill(start_color='366092', end_color='366092', fill_type='solid')
HEADER_FONT = Font(bold=True, color='FFFFFF', size=11)
UNCOVERED_FILL = PatternFill(start_color='F8CBAD', end_color='F8CBAD', fill_type='solid')

COLUMN_WIDTHS = [18, 20, 20, 14, 12, 14]


def generate_coverage_report(coverage: gpd.GeoDataFrame,
                             id_field: str,
                             output_path: Path,
                             timestamp: str) -> Optional[Path]:
    """
    Generate an Excel report of per-zone service area coverage.

    Args:
        coverage: Output of summarize_coverage() (with optional 'point_count')
        id_field: Zone identifier column
        output_path: Directory where report should be saved
        timestamp: Timestamp string for filename (YYYYMMDD_HHMMSS)

    Returns:
        Path to generated XLSX file, or None if generation fails

    Note:
        The report is a convenience artifact; a failure is logged and the
        rest of the output is still produced.
    """
    logger.info("Generating XLSX coverage report...")

    try:
        unit_name, _ = get_linear_unit(coverage.crs)

        wb = Workbook()
        ws = wb.active
        ws.title = "Zone Coverage"

        headers = [
            'Zone',
            f'Zone Area (sq {unit_name})',
            f'Covered Area (sq {unit_name})',
            'Percent Covered',
            'Covered',
            'Service Points'
        ]
        ws.append(headers)

        for col_num in range(1, len(headers) + 1):
            cell = ws.cell(row=1, column=col_num)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)

        for _, row in coverage.iterrows():
            point_count = row['point_count'] if 'point_count' in coverage.columns else None
            ws.append([
                str(row[id_field]),
                round(float(row['zone_area']), 2),
                round(float(row['covered_area']), 2),
                round(float(row['pct_covered']) / 100, 4),
                'Yes' if row['covered'] else 'No',
                int(point_count) if point_count is not None else ''
            ])
            current_row = ws.max_row
            ws.cell(row=current_row, column=4).number_format = '0.0%'

            if not row['covered']:
                for col_num in range(1, len(headers) + 1):
                    ws.cell(row=current_row, column=col_num).fill = UNCOVERED_FILL

        for col_num, width in enumerate(COLUMN_WIDTHS, 1):
            ws.column_dimensions[get_column_letter(col_num)].width = width

        ws.freeze_panes = 'A2'

        filename = f"Coverage_Report_{timestamp}.xlsx"
        xlsx_path = Path(output_path) / filename
        wb.save(xlsx_path)
        logger.info(f"✓ XLSX report saved: {filename} ({len(coverage)} zones)")

        return xlsx_path

    except Exception as e:
        logger.error(f"Failed to generate XLSX report: {e}", exc_info=True)
        return None
