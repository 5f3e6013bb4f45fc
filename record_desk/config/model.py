from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from record_desk.core.exceptions import ConfigError
from record_desk.records_io.csv_codec import CsvParser

LOG_FORMATS = ("json", "plain")


@dataclass(frozen=True)
class GlobalConfig:
    """
    Parsed global.json (plus environment overrides).

    - storage_root: directory holding one <key>.json file per storage key
    - default_app: app id used when none is given on the command line
    - csv_parser: "standard" (quote-aware) or "legacy" (split on commas)
    - surface_load_warnings: report unreadable stored data instead of only logging it
    """

    storage_root: Path
    default_app: str = "gradebook"
    csv_parser: CsvParser = CsvParser.STANDARD
    surface_load_warnings: bool = True
    log_format: str = "json"

    def validate(self) -> None:
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {LOG_FORMATS}, got '{self.log_format}'")
        if not self.default_app:
            raise ConfigError("default_app must not be empty")
