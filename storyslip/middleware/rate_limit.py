"""
Rate limiting for the public widget delivery plane.

Limits are per client IP. Storage comes from RATELIMIT_STORAGE_URI
(Redis in production, memory otherwise).
"""
import logging

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from ..utils.errors import ErrorCode, error_response

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


def widget_rate_limit() -> str:
    return current_app.config.get('WIDGET_RATE_LIMIT', '1000 per 15 minutes')


def init_rate_limiter(app) -> None:
    limiter.init_app(app)

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return error_response(
            'Too many requests, please try again later',
            ErrorCode.RATE_LIMITED,
            429,
        )

    if app.config.get('RATELIMIT_ENABLED', True):
        logger.info('Rate limiting enabled: %s', app.config.get('WIDGET_RATE_LIMIT'))
