"""
API gateway: combines auth, user, events, and stats blueprints.
This is the local entrypoint for development.
"""

import logging
import sys
from typing import Optional

import psycopg2
from flask import Flask, jsonify, request, Response
from flask_cors import CORS

from backend.auth_service.routes import auth_bp
from backend.auth_service.utils import TokenService
from backend.common.errors import register_error_handlers
from backend.config import Settings, load_settings
from backend.database.db_connection import ping
from backend.events_service.routes import events_bp
from backend.stats_service.routes import stats_bp
from backend.user_service.photos import PhotoManager
from backend.user_service.routes import user_bp

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


def create_app(settings: Optional[Settings] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        settings (Settings, optional): Injected configuration. Loaded from the
            environment when omitted.

    Returns:
        Flask: The configured Flask application.

    Raises:
        RuntimeError: If required configuration is missing.
    """
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config["DATABASE_URL"] = settings.database_url
    app.config["UPLOAD_DIR"] = settings.upload_dir
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_mb * 1024 * 1024

    app.extensions["token_service"] = TokenService(
        settings.jwt_secret, settings.token_expiration_minutes
    )
    app.extensions["photo_manager"] = PhotoManager(settings.upload_dir)

    CORS(app, resources={
        r"/*": {
            "origins": settings.cors_origins,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": ["Content-Type", "Authorization"],
        }
    })

    # --- REQUEST LOGGING ---
    @app.before_request
    def log_request() -> None:
        # Headers carry bearer tokens; never log them.
        logging.info(f"[Gateway] Incoming {request.method} {request.path}")

    @app.after_request
    def log_response(response: Response) -> Response:
        logging.info(f"[Gateway] Response {response.status} for {request.method} {request.path}")
        return response

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(user_bp, url_prefix="/user")
    app.register_blueprint(events_bp, url_prefix="/event")
    app.register_blueprint(stats_bp, url_prefix="/stat")
    register_error_handlers(app)
    logging.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping_root():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app


def main() -> None:
    try:
        settings = load_settings()
    except RuntimeError as e:
        logging.critical(f"Configuration error: {e}")
        sys.exit(1)

    try:
        ping(settings.database_url)
    except psycopg2.Error as e:
        logging.critical(f"Database unreachable, refusing to start: {e}")
        sys.exit(1)

    app = create_app(settings)
    app.run(host="0.0.0.0", port=settings.port, debug=False)


if __name__ == "__main__":
    main()
