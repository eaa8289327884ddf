import logging
import time
import uuid

from flask import Flask, g, jsonify, request

from config import Config
from errors import PosError
from log_config import setup_logging
from sql_db import init_db
from routes_web import web
from routes_api import api
from seed import register_commands

logger = logging.getLogger("pos.access")

LOGGED_PREFIXES = ("/api", "/pos", "/admin")


def register_error_handlers(app):
    @app.errorhandler(PosError)
    def handle_pos_error(err: PosError):
        if err.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, err.message)
        return jsonify(err.to_dict()), err.status_code


def register_request_logging(app):
    @app.before_request
    def _start_timer():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        response.headers["X-Request-ID"] = g.get("request_id", "")
        if request.path.startswith(LOGGED_PREFIXES):
            ms = (time.perf_counter() - g.get("started", time.perf_counter())) * 1000
            logger.info("%s %s %s in %dms", request.method, request.path, response.status_code, ms)
        return response


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    setup_logging(app.config.get("LOG_LEVEL", "INFO"))

    # create tables for demo
    init_db()

    register_error_handlers(app)
    register_request_logging(app)
    register_commands(app)

    app.register_blueprint(web)
    app.register_blueprint(api)
    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
