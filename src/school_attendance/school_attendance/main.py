from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import build_container


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger = logging.getLogger(__name__)

    api_config = {
        "base_url": getattr(settings, "API_BASE_URL"),
        "timeout": getattr(settings, "API_TIMEOUT_SECONDS", 15),
        "remarks_max_length": getattr(settings, "REMARKS_MAX_LENGTH", 200),
    }
    logger.info("settings=%s api=%s timeout=%ss", settings_module, api_config["base_url"], api_config["timeout"])

    container = build_container(api_config=api_config)
    app.extensions["attendance_container"] = container
    app.extensions["attendance_sessions"] = register_attendance(app, container)

    return app
