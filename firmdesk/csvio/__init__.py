"""CSV reading, templates and exports for bulk uploads."""

from .layouts import LAYOUTS, ImportLayout, get_layout
from .reader import CsvData, ImportInputError, normalize_header, normalize_rows, read_csv_rows
from .templates import ERROR_REASON_COLUMN, TEMPLATE_FOOTER, build_template, export_invalid_rows

__all__ = [
    "CsvData",
    "ERROR_REASON_COLUMN",
    "ImportInputError",
    "ImportLayout",
    "LAYOUTS",
    "TEMPLATE_FOOTER",
    "build_template",
    "export_invalid_rows",
    "get_layout",
    "normalize_header",
    "normalize_rows",
    "read_csv_rows",
]
