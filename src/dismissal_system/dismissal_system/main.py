from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, apply_seed_sql, list_tables

from .container import AppSettings, build_container
from .admission.controller import register as register_admission
from .aggregation.controller import register as register_aggregation
from .queue.controller import register as register_queue

logger = logging.getLogger(__name__)


def load_app_settings(settings) -> AppSettings:
    defaults = AppSettings()
    return AppSettings(
        school_timezone=getattr(settings, "SCHOOL_TIMEZONE", defaults.school_timezone),
        scan_building=getattr(settings, "SCAN_BUILDING", defaults.scan_building),
        counts_poll_seconds=float(getattr(settings, "COUNTS_POLL_SECONDS", defaults.counts_poll_seconds)),
        camera_source=getattr(settings, "CAMERA_SOURCE", defaults.camera_source),
        capture_max_failed_reads=int(
            getattr(settings, "CAPTURE_MAX_FAILED_READS", defaults.capture_max_failed_reads)
        ),
    )


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    database_dir = Path(__file__).resolve().parents[3] / "database"
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=database_dir / "schema.sql")
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=database_dir / "seed.sql")
        logger.info("demo seed ready")

    container = build_container(db_config=db_config, settings=load_app_settings(settings))

    register_queue(app, container)
    register_admission(app, container)
    register_aggregation(app, container)

    return app
