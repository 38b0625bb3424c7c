"""
Database models for StorySlip widget delivery.
"""
from .website import Website, WebsiteMember, MemberRole, generate_api_key
from .content import ContentItem, Category, Tag, ContentStatus
from .widget import (
    WidgetConfiguration,
    WidgetVersion,
    WidgetType,
    WidgetLayout,
    WidgetTheme,
    CONFIG_SECTIONS,
    EMBED_FIELDS,
    DEFAULT_SECTIONS,
    WIDGET_TEMPLATES,
    merge_section,
)
from .widget_analytics import WidgetAnalytics

__all__ = [
    'Website',
    'WebsiteMember',
    'MemberRole',
    'generate_api_key',
    'ContentItem',
    'Category',
    'Tag',
    'ContentStatus',
    'WidgetConfiguration',
    'WidgetVersion',
    'WidgetType',
    'WidgetLayout',
    'WidgetTheme',
    'CONFIG_SECTIONS',
    'EMBED_FIELDS',
    'DEFAULT_SECTIONS',
    'WIDGET_TEMPLATES',
    'merge_section',
    'WidgetAnalytics',
]
