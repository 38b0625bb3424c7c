"""
Utility modules for StorySlip.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    bad_request,
    unauthorized,
    forbidden,
    not_found,
    internal_error,
    response_for_exception,
)
from .exceptions import (
    StorySlipError,
    NotFoundError,
    WidgetNotFoundError,
    WebsiteNotFoundError,
    ValidationError,
    AuthorizationError,
    NetworkError,
    UpstreamError,
    RenderError,
)
