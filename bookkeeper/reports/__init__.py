"""CSV and JSON report exports."""

from bookkeeper.reports.export import (
    CSV_HEADER,
    build_report,
    csv_filename,
    export_transactions_csv,
    report_filename,
    report_to_json,
)

__all__ = [
    "CSV_HEADER",
    "build_report",
    "csv_filename",
    "export_transactions_csv",
    "report_filename",
    "report_to_json",
]
