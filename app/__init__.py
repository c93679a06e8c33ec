"""Flask application factory."""
import atexit
import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from app.database import init_db


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json.ensure_ascii = False

    level = str(app.config.get('LOG_LEVEL', 'INFO')).upper()
    app.logger.setLevel(getattr(logging, level, logging.INFO))

    production = app.config.get('ENV') == 'production'
    if production and app.config.get('SENTRY_DSN'):
        _init_sentry(app)

    from app.services.cache_service import init_cache
    init_cache(app)

    from app.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    if production:
        # Nginx terminates TLS in front of gunicorn
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    database = init_db(app)
    if not app.config.get('TESTING'):
        atexit.register(database.close)

    _register_error_handlers(app)
    _register_blueprints(app)

    from app.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app


def _init_sentry(app):
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration

    sentry_sdk.init(
        dsn=app.config['SENTRY_DSN'],
        integrations=[FlaskIntegration()],
        traces_sample_rate=0.1,
        environment=app.config.get('ENV'),
        release=os.getenv('GIT_COMMIT', 'unknown'),
    )


def _register_error_handlers(app):
    from app.exceptions import AppError, PersistenceError

    @app.errorhandler(AppError)
    def handle_app_error(error):
        log = app.logger.error if isinstance(error, PersistenceError) else app.logger.info
        log(f"{type(error).__name__} [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'success': False, 'error': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        app.logger.exception(f"Unhandled exception: {error}")
        return jsonify({'success': False, 'error': 'Internal Server Error'}), 500


def _register_blueprints(app):
    from app.blueprints.catalog import catalog_bp
    from app.blueprints.customers import customers_bp
    from app.blueprints.expenses import expenses_bp
    from app.blueprints.metrics import metrics_bp
    from app.blueprints.orders import orders_bp
    from app.blueprints.payments import payments_bp
    from app.blueprints.reports import reports_bp
    from app.blueprints.settings import settings_bp

    for blueprint in (orders_bp, payments_bp, customers_bp, catalog_bp,
                      expenses_bp, reports_bp, settings_bp, metrics_bp):
        app.register_blueprint(blueprint)
