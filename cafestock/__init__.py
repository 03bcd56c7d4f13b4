import logging
import os
from typing import Any

from flask import Flask
from sqlalchemy.pool import StaticPool

from .config import ENV_DIAGNOSTICS
from .extensions import db
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def create_app(config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    os.makedirs(app.instance_path, exist_ok=True)

    _load_base_config(app, config)
    _configure_sqlite_engine_options(app)

    db.init_app(app)
    from . import models  # noqa: F401  # registers mappers and ledger listeners

    from .services.unit_conversion import init_conversion_engine

    init_conversion_engine(app)
    configure_logging(app)

    from .management import register_commands

    register_commands(app)

    logger.debug("cafestock app created (env=%s, db=%s)", app.config.get("ENV"), app.config.get("SQLALCHEMY_DATABASE_URI"))
    return app


def _load_base_config(app: Flask, config: dict[str, Any] | None) -> None:
    app.config.from_object("cafestock.config.Config")
    if config:
        app.config.update(config)
    app.config["ENV_DIAGNOSTICS"] = ENV_DIAGNOSTICS
    for warning in ENV_DIAGNOSTICS.get("warnings", ()):
        logger.warning("Environment configuration warning: %s", warning)

    if config and "DATABASE_URL" in config:
        app.config["SQLALCHEMY_DATABASE_URI"] = config["DATABASE_URL"]

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        fallback = "sqlite:///" + os.path.join(app.instance_path, "cafestock.db")
        logger.info("DATABASE_URL not set; using %s", fallback)
        app.config["SQLALCHEMY_DATABASE_URI"] = fallback


def _configure_sqlite_engine_options(app: Flask) -> None:
    """Strip pool options SQLite cannot take and share one connection for in-memory databases."""
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if not uri.startswith("sqlite"):
        return
    opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS", {}) or {})
    opts.pop("pool_size", None)
    opts.pop("max_overflow", None)
    opts.pop("pool_recycle", None)
    if uri == "sqlite:///:memory:":
        opts["poolclass"] = StaticPool
        opts["connect_args"] = {"check_same_thread": False}
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = opts
