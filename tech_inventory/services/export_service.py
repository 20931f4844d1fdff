"""
Export service — generate CSV and Excel files of the inventory.

All export functions return a BytesIO buffer ready to be sent as
a Flask response with the appropriate content type.
"""

import csv
import io
import logging

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from tech_inventory.models.asset import Asset

logger = logging.getLogger(__name__)

# Excel header styling constants.
_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="2B579A", end_color="2B579A", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", wrap_text=True)
_DATE_FORMAT = "yyyy-mm-dd"

_HEADERS = [
    "ID",
    "Name",
    "Product Type",
    "Model",
    "Serial Number",
    "Purchase Date",
    "Status",
    "Disposal Date",
    "Disposal Reason",
]


def _asset_row(asset: Asset) -> list:
    return [
        asset.id,
        asset.name,
        asset.product_type,
        asset.model,
        asset.serial_number,
        asset.purchase_date,
        asset.status,
        asset.disposal_date.date() if asset.disposal_date else None,
        asset.disposal_reason or "",
    ]


# =========================================================================
# CSV Export
# =========================================================================

def export_assets_csv(assets: list[Asset]) -> io.BytesIO:
    """
    Export the inventory to CSV.

    Args:
        assets: Assets in display order.

    Returns:
        BytesIO buffer containing the CSV data (UTF-8 with BOM so Excel
        detects the encoding).
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(_HEADERS)

    for asset in assets:
        writer.writerow([_csv_value(value) for value in _asset_row(asset)])

    buffer = io.BytesIO()
    buffer.write(output.getvalue().encode("utf-8-sig"))
    buffer.seek(0)
    logger.debug("Exported %d assets to CSV", len(assets))
    return buffer


# =========================================================================
# Excel Export
# =========================================================================

def export_assets_excel(assets: list[Asset]) -> io.BytesIO:
    """
    Export the inventory to an Excel workbook.

    Returns:
        BytesIO buffer containing the .xlsx data.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Inventory"

    _write_header_row(ws, _HEADERS)

    for row_idx, asset in enumerate(assets, start=2):
        for col_idx, value in enumerate(_asset_row(asset), start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            if col_idx in (6, 8) and value is not None:
                cell.number_format = _DATE_FORMAT

    _auto_fit_columns(ws)

    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    logger.debug("Exported %d assets to Excel", len(assets))
    return buffer


# =========================================================================
# Internal helpers
# =========================================================================

def _write_header_row(ws, headers: list[str]) -> None:
    """Write a styled header row to an Excel worksheet."""
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN


def _auto_fit_columns(ws) -> None:
    """Auto-fit column widths based on content (approximate)."""
    for col in ws.columns:
        max_length = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_length + 4, 40)


def _csv_value(value):
    """Render one cell for CSV, neutralising spreadsheet formulas."""
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, str) and value[:1] in ("=", "+", "-", "@"):
        return "'" + value
    return value
