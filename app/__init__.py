"""Flask application factory."""
import logging
import os
import traceback

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from app.database import init_db, get_session


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json.sort_keys = False

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    is_production = app.config.get('ENV') == 'production'

    # Initialize Sentry for error tracking in production
    if app.config.get('SENTRY_DSN') and is_production:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Initialize Redis Cache
    from app.services.cache_service import init_cache
    init_cache(app)

    # Setup Prometheus metrics instrumentation
    from app.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind a reverse proxy
    if is_production:
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    # Initialize database
    init_db(app)

    # Error Handlers
    from app.exceptions import GroupDiscountError

    def _error_detail(error):
        """Underlying error detail, only outside production."""
        if app.config.get('ENV') == 'production':
            return None
        return str(error)

    @app.errorhandler(GroupDiscountError)
    def handle_group_discount_error(error):
        """Handle custom application exceptions."""
        get_session().rollback()
        app.logger.warning(f"GroupDiscountError [{error.status_code}]: {error.message} {error.errors or ''}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        message = 'Route not found' if error.code == 404 else error.description
        return jsonify({'success': False, 'message': message}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        get_session().rollback()
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")

        body = {'success': False, 'message': 'Internal server error'}
        detail = _error_detail(error)
        if detail:
            body['error'] = detail
        return jsonify(body), 500

    # Register blueprints
    from app.blueprints.main import main_bp
    from app.blueprints.group_discount import group_discount_bp
    from app.blueprints.metrics import metrics_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(group_discount_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from app.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"Group Discount API ready (env={app.config.get('ENV')})")

    return app
