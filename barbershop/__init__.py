"""Barbershop booking and management backend."""
from __future__ import annotations

import logging
from collections.abc import Mapping

from flask import Flask, request
from flask_cors import CORS

from .config import Config
from .datastore import Datastore
from .extensions import db
from .routes import register_routes


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)

    if isinstance(config_object, Mapping):
        app.config.from_mapping(config_object)
    elif config_object:
        app.config.from_object(config_object)
    else:
        app.config.from_envvar("APP_SETTINGS", silent=True)

    configure_logging(app)
    db.init_app(app)

    with app.app_context():
        app.extensions["datastore"] = Datastore(db.engine)

    # Allow the dashboards to talk to the backend
    CORS(
        app,
        origins=app.config["CORS_ORIGINS"],
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    )

    @app.before_request
    def log_request() -> None:
        app.logger.info("%s %s", request.method, request.full_path.rstrip("?"))

    register_routes(app)

    return app
