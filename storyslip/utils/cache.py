"""
Cache utilities for StorySlip.

Redis-backed caching with graceful fallback to simple in-memory caching,
used for server-side caching of rendered widget payloads.

Usage:
    from storyslip.utils.cache import cache, cache_key

    key = cache_key('render', widget_id, page=1)
    cache.set(key, payload, timeout=300)
    payload = cache.get(key)

Environment Variables:
    REDIS_URL: Redis connection URL (e.g., redis://localhost:6379/0)
              Falls back to simple cache if not set or unavailable.
"""
import os
import logging
import redis
from flask_caching import Cache

logger = logging.getLogger(__name__)

# Global cache instance - initialized in init_cache()
cache = Cache()


def init_cache(app):
    """
    Initialize Flask-Caching with Redis or fallback to simple cache.

    Args:
        app: Flask application instance

    Returns:
        bool: True if Redis connected, False if using fallback
    """
    redis_url = os.getenv('REDIS_URL')
    timeout = app.config.get('RENDER_CACHE_DEFAULT_TIMEOUT', 300)

    if redis_url and not app.config.get('TESTING'):
        try:
            r = redis.from_url(redis_url, socket_connect_timeout=2)
            r.ping()

            app.config['CACHE_TYPE'] = 'RedisCache'
            app.config['CACHE_REDIS_URL'] = redis_url
            app.config['CACHE_DEFAULT_TIMEOUT'] = timeout
            app.config['CACHE_KEY_PREFIX'] = 'storyslip:'

            cache.init_app(app)
            logger.info('Redis cache connected: %s', redis_url.split('@')[-1])
            return True

        except redis.RedisError as e:
            logger.warning('Redis unavailable (%s), using simple cache', str(e))

    app.config['CACHE_TYPE'] = 'SimpleCache'
    app.config['CACHE_DEFAULT_TIMEOUT'] = timeout

    cache.init_app(app)
    logger.info('Using simple in-memory cache (no Redis)')
    return False


def cache_key(*args, **kwargs):
    """
    Generate a cache key from arguments.

        key = cache_key('render', 'widget_abc', page=2, search=None)
        -> 'render:widget_abc:page=2:search=None'
    """
    parts = list(args)
    for k, v in sorted(kwargs.items()):
        parts.append(f'{k}={v}')
    return ':'.join(str(p) for p in parts)
