from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.logging_utils import configure_logging
from .container import Container, build_container
from .core.constants import DEFAULT_NOTICE_PERIOD_DAYS
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .resignations.controller import register as register_resignations

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the JSON API.

    A prebuilt `container` (e.g. the in-memory one) skips the MySQL setup.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
            logger.info("Demo seed ready")

        container = build_container(
            db_config=db_config,
            default_notice_period_days=int(getattr(settings, "DEFAULT_NOTICE_PERIOD_DAYS", DEFAULT_NOTICE_PERIOD_DAYS)),
        )

    register_resignations(app, container)
    return app
