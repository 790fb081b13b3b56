import os
import logging
from flask import Flask, request
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_restx import Api
from sqlalchemy.exc import OperationalError
from config import DevConfig, ProdConfig

db = SQLAlchemy()
bcrypt = Bcrypt()
cors = CORS()
limiter = Limiter(key_func=get_remote_address)

logger = logging.getLogger(__name__)


def configure_logging(app):
    logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger("carebase").setLevel(app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])


def create_app(config_object=None, init_database=True):
    app = Flask(__name__)
    if config_object is None:
        env = os.getenv("FLASK_ENV", "development")
        config_object = ProdConfig if env == "production" else DevConfig
    app.config.from_object(config_object)
    configure_logging(app)

    if not app.config.get("SECRET_KEY"):
        logger.critical("SECRET_KEY is not set; refusing to sign tokens with a default key")
        raise SystemExit(1)

    # Extensions
    db.init_app(app)
    bcrypt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    limiter.init_app(app)

    # RESTX (Swagger under /docs)
    api = Api(
        app,
        version="1.0",
        title="Carebase API",
        description="Patient registration, records, search and analytics",
        doc="/docs",
        authorizations={"Bearer": {"type": "apiKey", "in": "header", "name": "Authorization"}},
        security="Bearer",
    )

    from .auth import auth_ns
    from .errors import register_error_handlers
    from .patients import patients_ns

    api.add_namespace(auth_ns, path="/api/auth")
    api.add_namespace(patients_ns, path="/api/patients")
    register_error_handlers(api)

    @app.route("/health")
    def health():
        return {"status": "ok"}

    @app.after_request
    def log_request(response):
        logger.info("%s %s -> %s", request.method, request.path, response.status_code)
        return response

    if init_database:
        with app.app_context():
            try:
                db.create_all()
            except OperationalError as e:
                logger.critical("Database unreachable at startup: %s", e)
                raise SystemExit(1)

    return app
