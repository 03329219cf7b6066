"""HTTP endpoint for remote git operations."""

import logging
from typing import Callable, Optional

from flask import Blueprint, Flask, current_app, jsonify, request

from repo_manager.application.git_operations_service import GitOperationsService
from repo_manager.infrastructure.database import DatabaseRepository
from repo_manager.infrastructure.github_client import GitHubApiError, GitHubRestClient

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

ServiceFactory = Callable[[], GitOperationsService]

git_operations_bp = Blueprint("git_operations", __name__)


@git_operations_bp.after_request
def add_cors_headers(response):
    response.headers.update(CORS_HEADERS)
    return response


@git_operations_bp.route("/git-operations", methods=["POST", "OPTIONS"])
def git_operations():
    if request.method == "OPTIONS":
        return "ok", 200

    try:
        payload = request.get_json(force=True, silent=False)
        service = current_app.config["GIT_OPERATIONS_SERVICE_FACTORY"]()
        return jsonify(service.handle(payload)), 200
    except Exception as e:
        logger.error(f"Error in git-operations handler: {e}", exc_info=True)
        details = e.body if isinstance(e, GitHubApiError) else None
        return jsonify({
            "success": False,
            "error": str(e) or e.__class__.__name__,
            "details": details,
        }), 500


def create_app(service_factory: Optional[ServiceFactory] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        service_factory: Builds the service for each request. If None, a GitHub
            client is created per request from the environment token and the
            database pool is shared across requests.
    """
    app = Flask(__name__)

    if service_factory is None:
        database_repository = DatabaseRepository()

        def service_factory():
            return GitOperationsService(GitHubRestClient(), database_repository)

    app.config["GIT_OPERATIONS_SERVICE_FACTORY"] = service_factory
    app.register_blueprint(git_operations_bp)
    logger.info("Git operations app created")
    return app
