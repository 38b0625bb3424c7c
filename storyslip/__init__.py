"""
StorySlip Widget Delivery
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_compress import Compress
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

compress = Compress()

# Embeds run on any tenant domain
PUBLIC_CORS_RESOURCES = (
    r'/api/widgets/[^/]+/render',
    r'/api/widgets/[^/]+/track',
    r'/api/widgets/script\.js',
    r'/api/widget/.*',
)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()
    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Initialize caching (Redis with graceful fallback)
    from .utils.cache import init_cache
    init_cache(app)

    # Initialize compression (gzip/brotli for responses)
    compress.init_app(app)

    # Public delivery plane is open to every origin; management is not
    resources = {pattern: {'origins': '*'} for pattern in PUBLIC_CORS_RESOURCES}
    resources[r'/api/*'] = {'origins': app.config['CORS_ORIGINS'], 'supports_credentials': True}
    CORS(app, resources=resources, allow_headers=['Content-Type', 'Authorization', 'If-None-Match'])

    # Rate limiting for public routes
    from .middleware import init_rate_limiter
    init_rate_limiter(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'storyslip-widgets'}

    logger.info('StorySlip app created (%s)', config_name)
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    # Management plane
    from .api.widgets import widgets_bp
    app.register_blueprint(widgets_bp, url_prefix='/api')

    # Public delivery plane
    from .api.widget_delivery import widget_delivery_bp
    app.register_blueprint(widget_delivery_bp, url_prefix='/api')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import ErrorCode, error_response, internal_error, response_for_exception
    from .utils.exceptions import StorySlipError

    @app.errorhandler(StorySlipError)
    def storyslip_error(error):
        db.session.rollback()
        return response_for_exception(error)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', ErrorCode.INVALID_REQUEST, 405, log_error=False)

    @app.errorhandler(500)
    def server_error(error):
        db.session.rollback()
        return internal_error()

    @app.errorhandler(Exception)
    def unhandled_error(error):
        if isinstance(error, HTTPException):
            return error
        logger.exception('Unhandled error: %s', error)
        db.session.rollback()
        return internal_error()
