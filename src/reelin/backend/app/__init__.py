"""Application factory for the Reelin rules backend."""

import logging
import os
from warnings import warn

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import BadRequest

from reelin.backend.app.services.categorizer import CategorizationError
from reelin.backend.app.services.hmrc_client import HMRCError

from .http import problem_response, upstream_problem
from .routes import register_routes
from .routes.config import get_configuration_metadata
from .routes.vat import REPOSITORY_EXTENSION, build_submission_repository

logger = logging.getLogger(__name__)


def _parse_allowed_origins(raw: str | None) -> set[str]:
    """Convert an environment variable into a normalised set of origins."""

    if not raw:
        return set()

    return {origin.strip() for origin in raw.split(",") if origin.strip()}


def create_app() -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__)

    allowed_origins = _parse_allowed_origins(os.getenv("REELIN_ALLOWED_ORIGINS"))

    if not allowed_origins:
        warn(
            "No allowed origins configured; cross-origin requests will be rejected.",
            stacklevel=1,
        )

    CORS(
        app,
        resources={r"/api/*": {"origins": sorted(allowed_origins)}},
        supports_credentials=False,
        methods=["GET", "OPTIONS", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.extensions[REPOSITORY_EXTENSION] = build_submission_repository()
    register_routes(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Simple health check endpoint for infrastructure monitoring."""

        payload = {"status": "ok", **get_configuration_metadata()}
        return jsonify(payload)

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        """Return consistent JSON responses for malformed payloads."""

        message = error.description or "Invalid request"
        return problem_response("bad_request", status=400, message=message).to_response()

    @app.errorhandler(FileNotFoundError)
    def handle_missing_configuration(error: FileNotFoundError):
        return problem_response("not_found", status=404, message=str(error)).to_response()

    @app.errorhandler(HMRCError)
    def handle_hmrc_error(error: HMRCError):
        """Surface HMRC failures without retrying them."""

        logger.warning("HMRC request failed: %s", error)
        return upstream_problem(str(error), status_code=error.status_code).to_response()

    @app.errorhandler(CategorizationError)
    def handle_categorization_error(error: CategorizationError):
        logger.warning("Transaction categorisation failed: %s", error)
        return upstream_problem(str(error)).to_response()

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        """Gracefully surface domain validation errors to clients."""

        return problem_response(
            "validation_error", status=400, message=str(error)
        ).to_response()

    return app
