"""
Custom exceptions for StorySlip widget delivery.

Server-side errors propagate to the API layer where they are mapped to
HTTP responses. Client runtime errors are raised inside the transport
and caught at the fetch boundary.
"""


class StorySlipError(Exception):
    """Base exception for all StorySlip errors."""

    def __init__(self, message: str, code: str = "STORYSLIP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(StorySlipError):
    """Resource not found."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class WidgetNotFoundError(NotFoundError):
    """Widget configuration not found."""

    def __init__(self, identifier=None):
        super().__init__("Widget", identifier)


class WebsiteNotFoundError(NotFoundError):
    """Website not found or requester is not a member."""

    def __init__(self, identifier=None):
        super().__init__("Website", identifier)


class ValidationError(StorySlipError):
    """Invalid input data or configuration."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class AuthorizationError(StorySlipError):
    """User not authorized for this operation."""

    def __init__(self, message: str = "Not authorized for this operation"):
        super().__init__(message, "AUTHORIZATION_ERROR")


class NetworkError(StorySlipError):
    """Request to the render service could not be completed."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message, "NETWORK_ERROR")


class UpstreamError(StorySlipError):
    """Render service answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str = None):
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code}", "UPSTREAM_ERROR")


class RenderError(StorySlipError):
    """Render payload was malformed."""

    def __init__(self, message: str = "Malformed widget payload"):
        super().__init__(message, "RENDER_ERROR")
