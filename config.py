"""
Central configuration for the PO ingest service.

Database location, batching limits and server settings are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. config/ingest_settings.json  (admin-editable, persisted)
  2. Environment variables
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"
DEFAULT_DB_PATH    = DEFAULT_OUTPUT_DIR / "po_ingest.db"


@dataclass
class Config:
    # --- Persistence ---
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )

    # --- Bulk ingestion ---
    batch_size: int = field(
        default_factory=lambda: int(os.getenv("BATCH_SIZE", "10"))
    )
    # Maximum number of PO groups processed concurrently.
    batch_delay_ms: int = field(
        default_factory=lambda: int(os.getenv("BATCH_DELAY_MS", "100"))
    )
    # Pause between consecutive batches, bounds load on the database.
    default_platform: str = field(
        default_factory=lambda: os.getenv("DEFAULT_PLATFORM", "Default Platform")
    )

    # --- HTTP server ---
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))

    def __post_init__(self) -> None:
        self._apply_settings_file()
        if self.batch_size < 1:
            logger.warning("batch_size=%d is invalid, using 1", self.batch_size)
            self.batch_size = 1
        if self.batch_delay_ms < 0:
            self.batch_delay_ms = 0

    def _apply_settings_file(self) -> None:
        """Overlay runtime-tunable settings from ingest_settings.json if present."""
        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / "ingest_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "db_path":          Path,
            "batch_size":       int,
            "batch_delay_ms":   int,
            "default_platform": str,
            "host":             str,
            "port":             int,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load ingest_settings.json: %s", exc)

    def ensure_output_dir(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
