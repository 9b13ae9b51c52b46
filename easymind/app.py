#!/usr/bin/env python3
"""
EasyMind Console Backend
========================
Run: python -m easymind.app
"""
import logging

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from easymind import __version__
from easymind.auth import init_auth
from easymind.config import DEBUG, HOST, PORT, config
from easymind.errors import EasyMindError
from easymind.routes import register_routes

logger = logging.getLogger(__name__)


def create_app():
    app = Flask(__name__)
    CORS(app)

    # Auth hook must be registered before the blueprints
    init_auth(app)
    register_routes(app)

    @app.errorhandler(EasyMindError)
    def handle_easymind_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        logger.exception("Unhandled error on %s %s: %s", request.method, request.path, e)
        return jsonify({"error": "Something went wrong. Please try again."}), 500

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({
            "status": "ok",
            "version": __version__,
            "config": config.to_dict(),
        })

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    logger.info("Starting EasyMind console backend on %s:%d", HOST, PORT)
    create_app().run(host=HOST, port=PORT, debug=DEBUG, threaded=True)
