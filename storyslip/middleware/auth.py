"""
Bearer Token Authentication Middleware.

Verifies HS256 JWTs issued by the StorySlip auth service to identify the
user behind a management-plane request. Token issuance happens elsewhere;
this module only verifies.

Tokens contain:
- sub: User ID
- exp: Expiration time
"""
import logging
from functools import wraps
from typing import Optional

import jwt
from flask import current_app, g, request

from ..utils.errors import ErrorCode, unauthorized

logger = logging.getLogger(__name__)


def decode_bearer_token(token: str) -> Optional[dict]:
    """
    Decode and verify a bearer token.

    Args:
        token: JWT from the Authorization header

    Returns:
        Decoded token payload or None if invalid
    """
    if not token:
        return None

    try:
        return jwt.decode(
            token,
            current_app.config['SECRET_KEY'],
            algorithms=['HS256'],
            options={'verify_exp': True, 'require': ['sub']},
        )
    except jwt.ExpiredSignatureError:
        logger.info('Bearer token expired')
        return None
    except jwt.InvalidTokenError as e:
        logger.info('Invalid bearer token: %s', e)
        return None


def get_user_id_from_request() -> Optional[str]:
    """
    Resolve the requesting user.

    Priority:
    1. Bearer token in Authorization header
    2. X-User-ID header (AUTH_DEV_MODE only)
    """
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        payload = decode_bearer_token(auth_header.split(' ', 1)[1])
        if payload:
            g.auth_method = 'bearer_token'
            return str(payload['sub'])

    if current_app.config.get('AUTH_DEV_MODE'):
        user_id = request.headers.get('X-User-ID')
        if user_id:
            g.auth_method = 'dev_user_id'
            return user_id

    return None


def require_auth(f):
    """
    Decorator to require an authenticated user.

    Sets g.user_id if authenticated.

    Usage:
        @require_auth
        def my_endpoint():
            user_id = g.user_id
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = get_user_id_from_request()
        if not user_id:
            if request.headers.get('Authorization', '').startswith('Bearer '):
                return unauthorized('Invalid or expired token', ErrorCode.INVALID_TOKEN)
            return unauthorized()

        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function
