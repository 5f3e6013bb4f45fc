"""
Import/export adapters: CSV and JSON text in, records out (and back).
"""

from .csv_codec import CsvParser, CsvTable, export_csv, read_csv_table, template_csv
from .importer import ImportReport, ImportService
from .json_codec import export_backup, export_json, parse_json_records

__all__ = [
    "CsvParser",
    "CsvTable",
    "ImportReport",
    "ImportService",
    "export_backup",
    "export_csv",
    "export_json",
    "parse_json_records",
    "read_csv_table",
    "template_csv",
]
