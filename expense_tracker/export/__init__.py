"""CSV export package."""

from expense_tracker.export.csv_export import (
    CSV_HEADERS,
    expenses_to_csv,
    export_filename,
)

__all__ = ["CSV_HEADERS", "expenses_to_csv", "export_filename"]
