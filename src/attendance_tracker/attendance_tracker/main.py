from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.http import register_error_handlers
from .core.constants import DEFAULT_REQUIRED_ATTENDANCE
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .subjects.controller import register as register_subjects
from .sync.controller import register as register_sync

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["DEFAULT_REQUIRED_ATTENDANCE"] = float(getattr(settings, "DEFAULT_REQUIRED_ATTENDANCE", DEFAULT_REQUIRED_ATTENDANCE))
    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

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
            apply_schema(db_config)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            cache_dir=getattr(settings, "CACHE_DIR"),
            login_wait_attempts=int(getattr(settings, "LOGIN_WAIT_ATTEMPTS")),
            login_wait_interval=int(getattr(settings, "LOGIN_WAIT_INTERVAL_MS")) / 1000,
        )

    container.orchestrator.start()
    app.extensions["attendance_tracker"] = container

    register_error_handlers(app)
    register_subjects(app, container)
    register_attendance(app, container)
    register_sync(app, container)

    return app
