from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .calendars.controller import register as register_calendars
from .container import Container, build_container
from .database.connection import DBConfig
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .leave.controller import register as register_leave
from .payroll.controller import register as register_payroll

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.json.sort_keys = False

    if container is None:
        logger.info("settings=%s db=%s", settings_module, DBConfig.from_dict(db_config).describe())

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config)
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config)

        container = build_container(
            db_config=db_config,
            enforce_geofence=bool(getattr(settings, "ENFORCE_GEOFENCE", False)),
            default_radius_meters=int(getattr(settings, "DEFAULT_GEOFENCE_RADIUS_METERS", 1500)),
            payroll_max_workers=int(getattr(settings, "PAYROLL_MAX_WORKERS", 4)),
        )

    register_calendars(app, container)
    register_attendance(app, container)
    register_leave(app, container)
    register_payroll(app, container)

    @app.get("/api/health")
    def health():
        return {"ok": True}

    return app
