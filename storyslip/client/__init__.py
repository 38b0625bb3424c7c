"""
StorySlip Widget client runtime.

Embeds a widget into a host page: mounting, fetching, caching, tracking
and teardown.
"""
from .cache import CacheFullError, ContentCache
from .config import ClientConfig
from .embed import WidgetRegistry, auto_init
from .host import Element, Event, HostPage
from .runtime import ImmediateExecutor, StorySlipWidget, WidgetState
from .transport import RenderClient

__all__ = [
    'CacheFullError',
    'ClientConfig',
    'ContentCache',
    'Element',
    'Event',
    'HostPage',
    'ImmediateExecutor',
    'RenderClient',
    'StorySlipWidget',
    'WidgetRegistry',
    'WidgetState',
    'auto_init',
]
