"""
Widget delivery services for StorySlip.
"""
from .authorization import (
    AuthorizationResult,
    AuthorizationStatus,
    MembershipDirectory,
    authorize,
    EDITOR_ROLES,
    MANAGER_ROLES,
    MEMBER_ROLES,
)
from .content_store import ContentStore, ContentSnapshot, TermRef
from .content_filter import ContentPage, select_content
from .widget_renderer import WidgetRenderer, RenderedWidgetPayload, render_page
from .render_service import WidgetRenderService
from .analytics_service import WidgetAnalyticsService
from .widget_configuration_service import WidgetConfigurationService

__all__ = [
    'AuthorizationResult',
    'AuthorizationStatus',
    'MembershipDirectory',
    'authorize',
    'EDITOR_ROLES',
    'MANAGER_ROLES',
    'MEMBER_ROLES',
    'ContentStore',
    'ContentSnapshot',
    'TermRef',
    'ContentPage',
    'select_content',
    'WidgetRenderer',
    'RenderedWidgetPayload',
    'render_page',
    'WidgetRenderService',
    'WidgetAnalyticsService',
    'WidgetConfigurationService',
]
