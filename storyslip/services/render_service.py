"""
Widget Render Service

Produces the rendered payload for a public widget request: loads the
configuration, selects content through the filter engine and renders it.
Stateless per request; when a widget enables caching the payload is kept
in the shared Flask-Caching backend, keyed by everything that can change
the output.
"""
import hashlib
import logging
from typing import Callable, Optional

from ..extensions import db
from ..models.widget import WidgetConfiguration
from ..utils.cache import cache, cache_key
from ..utils.exceptions import WidgetNotFoundError
from .content_filter import filter_content, select_content, sort_content
from .content_store import ContentStore
from .widget_renderer import RenderedWidgetPayload, WidgetRenderer

logger = logging.getLogger(__name__)


def load_widget(widget_id: str) -> Optional[WidgetConfiguration]:
    """Default configuration loader."""
    return db.session.get(WidgetConfiguration, widget_id)


class WidgetRenderService:
    """
    Render widgets for the public delivery plane.

    Usage:
        service = WidgetRenderService()
        payload = service.render('widget_abc', page=2, search='python')
    """

    def __init__(
        self,
        content_store: ContentStore = None,
        widget_loader: Callable[[str], Optional[WidgetConfiguration]] = None,
        renderer: WidgetRenderer = None,
        cache_backend=None,
    ):
        self.content_store = content_store or ContentStore()
        self.widget_loader = widget_loader or load_widget
        self.renderer = renderer or WidgetRenderer()
        self.cache = cache_backend if cache_backend is not None else cache

    def get_renderable(self, widget_id: str) -> WidgetConfiguration:
        """Load an active widget or raise WidgetNotFoundError."""
        widget = self.widget_loader(widget_id)
        if widget is None or not widget.is_active:
            raise WidgetNotFoundError(widget_id)
        return widget

    def etag(self, widget: WidgetConfiguration, page: int = 1, search: str = None, category: str = None,
             tag: str = None, author: str = None, fmt: str = 'json') -> str:
        """
        Validator for a rendered response.

        Changes with the widget config, the website's content version and
        every query parameter that shapes the output.
        """
        parts = [
            widget.updated_at.isoformat() if widget.updated_at else '',
            self.content_store.content_version(widget.website_id),
            str(max(1, page or 1)), search or '', category or '', tag or '', author or '', fmt,
        ]
        digest = hashlib.sha256('\x1f'.join(parts).encode('utf-8')).hexdigest()[:16]
        return f'{widget.id}-{digest}'

    def render(self, widget_id: str, page: int = 1, search: str = None, category: str = None,
               tag: str = None, author: str = None) -> RenderedWidgetPayload:
        widget = self.get_renderable(widget_id)
        return self.render_widget(widget, page=page, search=search, category=category,
                                  tag=tag, author=author)

    def render_widget(self, widget: WidgetConfiguration, page: int = 1, search: str = None,
                      category: str = None, tag: str = None, author: str = None,
                      use_cache: bool = True) -> RenderedWidgetPayload:
        """Render an already-loaded widget (also used for management previews)."""
        page = max(1, page or 1)
        performance = widget.get_performance_settings()
        caching = use_cache and bool(performance.get('enable_caching'))

        key = None
        if caching:
            key = cache_key(
                'render', widget.id,
                updated=widget.updated_at.isoformat() if widget.updated_at else None,
                page=page, search=search, category=category, tag=tag, author=author,
                content=self.content_store.content_version(widget.website_id),
            )
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug('Render cache hit for %s page %s', widget.id, page)
                return RenderedWidgetPayload.from_dict(cached)

        payload = self._render(widget, page, search, category, tag, author)

        if caching:
            self.cache.set(key, payload.to_dict(), timeout=int(performance.get('cache_duration') or 300))
        return payload

    def _render(self, widget, page, search, category, tag, author) -> RenderedWidgetPayload:
        settings = widget.get_settings()
        filters = widget.get_content_filters()
        items = self.content_store.list_for_website(widget.website_id)

        content_page = select_content(
            items,
            filters,
            page=page,
            per_page=settings.get('posts_per_page') or 10,
            search=search,
            category=category,
            tag=tag,
            author=author,
        )
        eligible = sort_content(filter_content(items, filters), 'date', 'desc')

        logger.info(
            'Rendering widget %s page %s (%s of %s items)',
            widget.id, content_page.page, len(content_page.items), content_page.total_items,
        )
        return self.renderer.render(widget, content_page, eligible=eligible,
                                    search=search, category=category, tag=tag)
