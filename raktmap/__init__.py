"""
RaktMap - blood request coordination backend.

Hospitals post blood requests; donors confirm and share their location.
The Flask app factory lives here; `raktmap.lambda_handler` exposes the same
operations as a stateless AWS Lambda function.
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .cli import register_commands
from .config import Config
from .errors import RaktmapError, error_body
from .routes import api_bp, frontend_bp, serve_index
from .store import STORE_EXTENSION, lazy_store

log = logging.getLogger(__name__)


def create_app(config=None, store=None):
    """Flask application factory"""
    app = Flask(__name__, static_folder=None)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='[%(asctime)s] %(levelname)s in %(name)s: %(message)s',
    )

    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)

    # Store handle: built on first request unless one is injected
    app.extensions[STORE_EXTENSION] = store if store is not None else lazy_store(app.config)

    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(frontend_bp)

    register_commands(app)

    @app.errorhandler(RaktmapError)
    def handle_raktmap_error(e):
        return jsonify(error_body(e)), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        # Unknown non-API paths fall through to the single page frontend
        response = serve_index()
        if response is not None:
            return response
        return jsonify({'error': 'Not Found'}), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        log.exception('Unhandled error')
        return jsonify(error_body(e)), 500

    return app
