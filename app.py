"""
Contact Capture API - Flask Application Entry Point.

Captures business contacts from card photos, WhatsApp QR codes or manual
entry, and exports them as CSV or Excel.
"""

import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import get_config
from api.routes import api_bp

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

ENDPOINTS = {
    "health": "GET /api/health",
    "status": "GET /api/status",
    "options": "GET /api/options",
    "ocr": "POST /api/ocr",
    "qr": "POST /api/qr",
    "parse_text": "POST /api/parse-text",
    "parse_payload": "POST /api/parse-payload",
    "submissions": "GET|POST|DELETE /api/submissions",
    "stats": "GET /api/submissions/stats",
    "export": "GET /api/export/<csv|xlsx>"
}


def _error_response(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def create_app(config_name: str = None) -> Flask:
    """Build the Contact Capture app.

    Args:
        config_name: development, production or testing (defaults to CAPTURE_ENV)

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    config_class = get_config(config_name)
    config_class.init_app(app)
    app.extensions["capture_config"] = config_class

    # Browser front ends post images and download exports cross-origin
    CORS(app, resources={
        r"/api/*": {
            "origins": "*",
            "methods": ["GET", "POST", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": ["Content-Disposition"]
        }
    })

    app.register_blueprint(api_bp)

    @app.route("/")
    @app.route("/api/info")
    def api_info():
        return jsonify({
            "name": "Contact Capture API",
            "version": API_VERSION,
            "description": "Capture business contacts from cards, QR codes and forms",
            "endpoints": ENDPOINTS
        })

    @app.errorhandler(404)
    def not_found(error):
        return _error_response("Not found", 404)

    @app.errorhandler(413)
    def upload_too_large(error):
        limit_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return _error_response(f"File too large. Maximum size: {limit_mb}MB", 413)

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal error: {error}")
        return _error_response("Internal server error", 500)

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Render every remaining error as JSON."""
        if isinstance(error, HTTPException):
            return _error_response(error.description, error.code)
        logger.error(f"Unhandled error: {error}", exc_info=True)
        return _error_response("An unexpected error occurred", 500)

    logger.info(f"Contact Capture API created ({config_class.__name__})")

    return app


if __name__ == "__main__":
    application = create_app()
    port = int(os.getenv("PORT", 5000))

    logger.info(f"Listening on port {port}, debug={application.config['DEBUG']}")
    application.run(host="0.0.0.0", port=port, debug=application.config["DEBUG"])
