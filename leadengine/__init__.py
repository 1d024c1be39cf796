"""
Flask application factory.

Creates and configures the Flask app, wires the service container and
registers all blueprints.
"""
import hmac
import logging

from flask import Flask, jsonify, request

from leadengine.errors import LeadEngineError

logger = logging.getLogger('leadengine')

# Internal (back-office) endpoints, guarded by X-Internal-Token when INTERNAL_API_TOKEN is set
INTERNAL_PREFIXES = ('/api/ai/', '/api/api-keys', '/api/health/')


def create_app(session_factory=None, redis=None):
    """
    Create and configure the Flask application.

    session_factory and redis default to the process-wide instances in
    leadengine.database / leadengine.extensions; tests pass their own.
    """
    from leadengine.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    if session_factory is None:
        from leadengine.database import get_session
        session_factory = get_session
    if redis is None:
        from leadengine.extensions import redis_client
        redis = redis_client

    from leadengine.extensions import build_services
    app.extensions['leadengine'] = build_services(session_factory, redis)

    # ── Internal token check ────────────────────────────────────────────
    @app.before_request
    def require_internal_token():
        from leadengine.config import INTERNAL_API_TOKEN
        if not INTERNAL_API_TOKEN:
            return  # No token set, open access (local dev)
        if not request.path.startswith(INTERNAL_PREFIXES):
            return
        supplied = request.headers.get('X-Internal-Token', '')
        if hmac.compare_digest(supplied, INTERNAL_API_TOKEN):
            return
        logger.warning("Rejected internal request %s %s: bad or missing token", request.method, request.path)
        return jsonify({'error': 'Unauthorized', 'code': 'unauthorized'}), 401

    @app.errorhandler(LeadEngineError)
    def handle_lead_engine_error(e):
        if e.status_code >= 500:
            logger.error("%s on %s %s: %s", e.code, request.method, request.path, e.message)
        return jsonify(e.to_dict()), e.status_code

    # Register blueprints
    from leadengine.routes.health import bp as health_bp
    from leadengine.routes.score_api import bp as score_api_bp
    from leadengine.routes.rescore import bp as rescore_bp
    from leadengine.routes.api_keys import bp as api_keys_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(score_api_bp)
    app.register_blueprint(rescore_bp)
    app.register_blueprint(api_keys_bp)

    # Initialize circuit breakers for external API services
    from leadengine.services.circuit_breaker import init_breakers
    init_breakers(redis)

    # Import models so Base.metadata knows about them (required for SQLAlchemy).
    # Schema is managed by Alembic, no create_all() call.
    import importlib
    importlib.import_module('leadengine.models.company')
    importlib.import_module('leadengine.models.lead')
    importlib.import_module('leadengine.models.scored_lead')
    importlib.import_module('leadengine.models.api_key')
    importlib.import_module('leadengine.models.usage_log')

    return app
