"""
Middleware package for StorySlip.
"""
from .auth import require_auth, get_user_id_from_request, decode_bearer_token
from .rate_limit import limiter, init_rate_limiter, widget_rate_limit
