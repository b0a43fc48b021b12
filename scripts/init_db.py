from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.offboarding_system.offboarding_system.common.logging_utils import configure_logging
from src.offboarding_system.offboarding_system.database.bootstrap import apply_schema, list_tables

logger = logging.getLogger("init_db")


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    logger.info(
        "Schema ready on %s@%s:%s/%s (tables=%s)",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
        len(list_tables(db_config)),
    )


if __name__ == "__main__":
    main()
