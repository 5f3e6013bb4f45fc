from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from record_desk.core.exceptions import ConfigError
from record_desk.records_io.csv_codec import CsvParser
from .model import GlobalConfig

logger = logging.getLogger(__name__)

ENV_STORAGE_ROOT = "RECORD_DESK_STORAGE_ROOT"
ENV_APP = "RECORD_DESK_APP"
ENV_CSV_PARSER = "RECORD_DESK_CSV_PARSER"
ENV_LOG_FORMAT = "RECORD_DESK_LOG_FORMAT"

DEFAULT_STORAGE_DIR = "data"


def _read_global(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        # Fallback to defaults if global.json is missing
        logger.info("No global.json found, using defaults", extra={"path": str(path)})
        return {}
    try:
        with path.open(encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return raw


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_global_config(root: Path, env: Optional[Mapping[str, str]] = None) -> GlobalConfig:
    """
    Load <root>/global.json and apply RECORD_DESK_* environment overrides.

    Relative storage roots are resolved against `root`.
    """
    env = os.environ if env is None else env
    root = Path(root)
    logger.info("Loading global config", extra={"config_root": str(root)})

    raw = _read_global(root / "global.json")

    storage_raw = env.get(ENV_STORAGE_ROOT) or raw.get("storage_root") or DEFAULT_STORAGE_DIR
    storage_root = Path(storage_raw)
    if not storage_root.is_absolute():
        storage_root = (root / storage_root).resolve()

    parser_raw = env.get(ENV_CSV_PARSER) or raw.get("csv_parser") or CsvParser.STANDARD.value
    try:
        parser = CsvParser(str(parser_raw).lower())
    except ValueError:
        raise ConfigError(
            f"csv_parser must be one of {[p.value for p in CsvParser]}, got '{parser_raw}'"
        ) from None

    config = GlobalConfig(
        storage_root=storage_root,
        default_app=env.get(ENV_APP) or raw.get("default_app", "gradebook"),
        csv_parser=parser,
        surface_load_warnings=_as_bool(raw.get("surface_load_warnings", True)),
        log_format=str(env.get(ENV_LOG_FORMAT) or raw.get("log_format", "json")).lower(),
    )
    config.validate()
    return config
