"""actuals-consolidator — Merge mapped spreadsheet ranges into one normalized table."""

__version__ = "1.0.0"

OUTPUT_HEADERS: list[str] = [
    "Account",
    "Entity",
    "Department",
    "Date",
    "Value",
    "SourceFile",
    "SourceSheet",
]

MAX_SOURCES = 12
DEFAULT_OUTPUT_FILE_NAME = "consolidated-actuals.xlsx"
CONFIG_VERSION = "1.0.0"
CONFIG_FILE_EXTENSION = ".xf1config.json"
