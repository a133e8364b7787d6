from .schema import DATE_FILTERS, DTYPES, QUIZ_TYPES, HistoryRow
from .history import HistoryStore, validate_records
from .words import WordStore
from .transfer import export_data, import_data

__all__ = [
    "DATE_FILTERS",
    "DTYPES",
    "QUIZ_TYPES",
    "HistoryRow",
    "HistoryStore",
    "validate_records",
    "WordStore",
    "export_data",
    "import_data",
]
