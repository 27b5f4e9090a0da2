import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from .config import Config
from .services.container import Services, create_services

# Vite dev server ports used by the browser client
DEV_ORIGINS = ["http://localhost:5173", "http://localhost:5175"]


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(testing: bool = False, services: Optional[Services] = None):
    """
    Build the Flask app.

    Tests pass a prebuilt ``services`` container; otherwise configuration is
    validated and the OpenAI-backed services are wired from the environment.
    """
    app = Flask(__name__)
    app.config["TESTING"] = testing
    _configure_logging()

    if Config.is_development():
        CORS(app)
    else:
        origins = DEV_ORIGINS + ([Config.FRONTEND_URL] if Config.FRONTEND_URL else [])
        CORS(app, origins=origins)

    if services is None:
        Config.validate()
        services = create_services(database_url=Config.DATABASE_URL)
    app.extensions["services"] = services

    from .routes import bp as api_bp
    app.register_blueprint(api_bp, url_prefix="/api")

    return app
