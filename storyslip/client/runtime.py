"""
StorySlip Widget client runtime.

Mounts a widget into a host page, fetches rendered output, injects its
scoped CSS and HTML and wires pagination, search, click tracking and
non-inline display modes.

State machine:
    uninitialized -> loading -> rendered | error
    rendered -> loading        (refresh, pagination, search)
    error -> loading           (retry)
    any -> destroyed           (terminal)

Every public method is fail-soft: configuration problems and load
failures are logged and reflected in ``state``, never raised.

Concurrency: work is submitted to an executor. Each load takes a new
generation number and only the latest generation may render; identical
requests in flight share one Future; a destroyed instance ignores every
late response.
"""
import itertools
import logging
import threading
import time
from concurrent.futures import Executor, Future
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from markupsafe import escape

from .cache import CacheFullError, ContentCache
from .config import OVERLAY_MODES, ClientConfig
from .host import Element, Event, HostPage
from .transport import RenderClient

logger = logging.getLogger(__name__)


MOBILE_BREAKPOINT = 768
ERROR_MESSAGE = 'Unable to load content'

_instance_ids = itertools.count(1)


class WidgetState(str, Enum):
    UNINITIALIZED = 'uninitialized'
    LOADING = 'loading'
    RENDERED = 'rendered'
    ERROR = 'error'
    DESTROYED = 'destroyed'


class ImmediateExecutor(Executor):
    """Runs submitted work inline; the Future is done when submit returns."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


def _format_date(value: Optional[str]) -> str:
    if not value:
        return ''
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return ''
    return f'{parsed:%B} {parsed.day}, {parsed.year}'


def render_content_items(items: List[dict]) -> dict:
    """Payload for API-key embeds, built from the legacy content listing."""
    if not items:
        body = '<div class="storyslip-empty">No content available</div>'
    else:
        articles = []
        for item in items:
            image = ''
            if item.get('featured_image_url'):
                image = (f'<img src="{escape(item["featured_image_url"])}" alt="{escape(item.get("title", ""))}" '
                         'class="storyslip-image" loading="lazy">')
            articles.append(
                f'<article class="storyslip-item" data-content-id="{escape(item.get("id", ""))}">{image}'
                '<div class="storyslip-item-content"><h4 class="storyslip-item-title">'
                f'<a class="storyslip-item-link" href="{escape(item.get("url") or "#")}" '
                f'data-content-id="{escape(item.get("id", ""))}" target="_blank" rel="noopener">'
                f'{escape(item.get("title", ""))}</a></h4>'
                f'<p class="storyslip-excerpt">{escape(item.get("excerpt") or "")}</p>'
                f'<time class="storyslip-date">{_format_date(item.get("published_at"))}</time>'
                '</div></article>'
            )
        body = f'<div class="storyslip-items">{"".join(articles)}</div>'
    return {
        'html': f'<div class="storyslip-widget storyslip-content-list">{body}</div>',
        'css': (
            '.storyslip-content-list .storyslip-item { padding: 0.75rem 0; border-bottom: 1px solid #e5e7eb; }\n'
            '.storyslip-content-list .storyslip-image { width: 100%; height: auto; border-radius: 4px; }\n'
            '.storyslip-content-list .storyslip-date { font-size: 0.8em; opacity: 0.7; }\n'
        ),
    }


def _runtime_css(scope: str, config: ClientConfig) -> str:
    return (
        f'{scope} {{ position: relative; box-sizing: border-box; }}\n'
        f'{scope}.storyslip-mode-popup, {scope}.storyslip-mode-modal {{ position: fixed; top: 50%; left: 50%; '
        f'transform: translate(-50%, -50%); z-index: 10000; max-width: {config.max_width}; '
        f'max-height: {config.max_height}; overflow: auto; background: #fff; border-radius: 8px; }}\n'
        f'{scope}.storyslip-mode-sidebar {{ position: fixed; top: 0; right: 0; height: 100vh; '
        f'width: {config.max_width}; overflow: auto; z-index: 10000; background: #fff; }}\n'
        f'{scope}.storyslip-mode-floating {{ position: fixed; bottom: 20px; right: 20px; '
        f'max-width: {config.max_width}; max-height: {config.max_height}; overflow: auto; z-index: 10000; }}\n'
        f'{scope} .storyslip-loading, {scope} .storyslip-error {{ text-align: center; padding: 1rem; }}\n'
        f'{scope} .storyslip-retry, {scope} .storyslip-close {{ cursor: pointer; }}\n'
        f'{scope}.storyslip-is-loading {{ opacity: 0.6; }}\n'
        '.storyslip-overlay { position: fixed; inset: 0; background: rgba(0, 0, 0, 0.5); z-index: 9999; }\n'
        f'@media (max-width: {MOBILE_BREAKPOINT}px) {{ {scope} {{ max-width: calc(100vw - 40px); }} }}\n'
    )


class StorySlipWidget:
    """
    One embedded widget instance.

    Usage:
        widget = StorySlipWidget(host)
        widget.init({'widget_id': 'widget_abc', 'website_id': 'site-1'})
        widget.load_content(page=2)
        widget.destroy()
    """

    def __init__(self, host: HostPage, client: RenderClient = None, executor: Executor = None,
                 clock: Callable[[], float] = time.monotonic):
        self.host = host
        self.client = client
        self.executor = executor or ImmediateExecutor()
        self.clock = clock

        self.config: Optional[ClientConfig] = None
        self.state = WidgetState.UNINITIALIZED
        self.instance_id: Optional[str] = None
        self.container: Optional[Element] = None
        self.widget_element: Optional[Element] = None
        self.overlay: Optional[Element] = None
        self.cache: Optional[ContentCache] = None
        self.visible = False
        self.last_payload: Optional[dict] = None
        self.last_error: Optional[BaseException] = None

        self._active = False
        self._generation = 0
        self._lock = threading.RLock()
        self._in_flight: Dict[tuple, Future] = {}
        self._listeners: List[int] = []
        self._overlay_listener: Optional[int] = None
        self._styles: List[Element] = []
        self._content_style: Optional[Element] = None
        self._observers = []
        self._visibility_observer = None
        self._last_request = (1, None, None)
        self._loaded_once = False
        self._view_tracked = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # ==================== LIFECYCLE ====================

    def init(self, config: Union[ClientConfig, dict], container_id: str = None) -> bool:
        """
        Validate config, mount into the container and start loading.

        Returns False (after logging) when the configuration is invalid or
        the container cannot be found; no request is made in that case.
        Never raises: a failure while mounting is logged, whatever was
        already added to the page is removed and the state becomes error.
        """
        if self.state is not WidgetState.UNINITIALIZED:
            logger.warning('StorySlip: widget is already initialized')
            return False

        if isinstance(config, dict):
            config = ClientConfig.from_dict(config)
        if not isinstance(config, ClientConfig):
            logger.error('StorySlip: config must be a ClientConfig or a dict, got %s', type(config).__name__)
            self.state = WidgetState.ERROR
            return False
        self.config = config

        errors = config.validate()
        if errors:
            for error in errors:
                logger.error('StorySlip: %s', error)
            self.state = WidgetState.ERROR
            return False

        try:
            return self._start(container_id or config.container_id)
        except Exception as e:
            logger.exception('StorySlip: initialization failed: %s', e)
            self._teardown()
            self.state = WidgetState.ERROR
            return False

    def _start(self, container_id: Optional[str]) -> bool:
        config = self.config
        container = self._resolve_container(container_id)
        if container is None:
            self.state = WidgetState.ERROR
            return False
        self.container = container
        own_id = container.id if container is not self.host.body else None
        self.instance_id = own_id or f'storyslip-{next(_instance_ids)}'

        if self.client is None:
            self.client = RenderClient(config.api_url, timeout=config.timeout, retries=config.retries,
                                       retry_delay=config.retry_delay)
        self.cache = ContentCache(config.cache_ttl, config.max_cache_entries, clock=self.clock)
        self._active = True

        self._mount()
        self._inject_styles()
        self._setup_listeners()
        self._setup_observers()

        if config.display_mode == 'inline':
            self.visible = True
            if config.lazy_load and self._visibility_observer is not None and self._visibility_observer.supported:
                self._visibility_observer.observe(self.container)
            else:
                self.load_content()

        logger.info('StorySlip: initialized %s (%s)', self.instance_id, config.display_mode)
        return True

    def _resolve_container(self, container_id: Optional[str]) -> Optional[Element]:
        if container_id:
            container = self.host.get_element_by_id(container_id)
            if container is None:
                logger.error('StorySlip: Container element with ID "%s" not found', container_id)
            return container
        if self.config.display_mode != 'inline':
            return self.host.body
        if self.config.widget_id:
            container = self.host.get_element_by_id(f'storyslip-widget-{self.config.widget_id}')
            if container is not None:
                return container
        logger.error('StorySlip: Inline widgets need a container element')
        return None

    def _mount(self) -> None:
        mode = self.config.display_mode
        self.widget_element = self.host.create_element(
            'div',
            parent=self.container,
            classes={'storyslip-embed', f'storyslip-mode-{mode}', f'storyslip-theme-{self.config.theme}'},
            attributes={'data-storyslip-instance': self.instance_id},
        )
        if mode != 'inline':
            self.widget_element.style['display'] = 'none'
        self._handle_resize()

    def _inject_styles(self) -> None:
        scope = f'[data-storyslip-instance="{self.instance_id}"]'
        style = self.host.add_style(_runtime_css(scope, self.config), id=f'storyslip-runtime-{self.instance_id}')
        self._styles.append(style)

    def _listen(self, target: Element, event_type: str, handler) -> None:
        self._listeners.append(self.host.add_listener(target, event_type, handler))

    def _setup_listeners(self) -> None:
        self._listen(self.host.document, 'keydown', self._on_keydown)
        self._listen(self.widget_element, 'click', self._on_click)
        self._listen(self.widget_element, 'input', self._on_input)
        self._listen(self.widget_element, 'submit', self._on_submit)
        if self.config.auto_resize:
            self._listen(self.host.window, 'resize', self._on_resize)

    def _setup_observers(self) -> None:
        if self.config.lazy_load and self.config.display_mode == 'inline':
            self._visibility_observer = self.host.visibility_observer(self._on_visible)
            self._observers.append(self._visibility_observer)
        if self.config.auto_resize:
            observer = self.host.size_observer(self._on_container_resized)
            observer.observe(self.container)
            self._observers.append(observer)

    def destroy(self) -> None:
        """Tear down everything this instance added to the host page."""
        with self._lock:
            if self.state is WidgetState.DESTROYED:
                return
            self.hide()
            self._teardown()
            self.state = WidgetState.DESTROYED
        logger.info('StorySlip: destroyed %s', self.instance_id)

    def _teardown(self) -> None:
        with self._lock:
            self._active = False
            self._generation += 1

            for handle in self._listeners:
                self.host.remove_listener(handle)
            self._listeners = []
            self._remove_overlay()

            for observer in self._observers:
                observer.disconnect()
            self._observers = []
            self._visibility_observer = None

            for style in self._styles:
                style.remove()
            self._styles = []
            self._content_style = None

            if self.cache is not None:
                self.cache.clear()
            self._in_flight.clear()

            if self.widget_element is not None:
                self.widget_element.remove()
                self.widget_element = None

    # ==================== LOADING ====================

    def cache_key(self, page: int, search: str = None, category: str = None) -> tuple:
        return (self.config.source_key, self.config.items_per_page, page, search, category)

    def load_content(self, page: int = 1, search: str = None, category: str = None) -> Optional[Future]:
        """
        Show a page of content, from cache when fresh, otherwise fetched.

        Returns the Future of the underlying fetch (already done on a cache
        hit), or None when the instance is not active. Never raises.
        """
        if not self._active:
            logger.debug('StorySlip: load_content ignored, widget not active')
            return None
        try:
            page = max(1, int(page))
        except (TypeError, ValueError):
            page = 1
        search = str(search).strip() if search is not None else ''
        search = search or None
        category = str(category) if category else None

        try:
            return self._load(page, search, category)
        except Exception as e:
            logger.exception('StorySlip: could not load content: %s', e)
            self._show_error(e)
            return None

    def _load(self, page: int, search: Optional[str], category: Optional[str]) -> Future:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._last_request = (page, search, category)
            key = self.cache_key(page, search, category)

            if self.config.cache_content:
                cached = self.cache.get(key)
                if cached is not None:
                    self._apply(cached)
                    done = Future()
                    done.set_result(cached)
                    return done

            self._set_loading()
            future = self._in_flight.get(key)
            if future is None:
                future = self.executor.submit(self._fetch, page, search, category)
                self._in_flight[key] = future
                future.add_done_callback(lambda f, key=key: self._forget(key, f))
            future.add_done_callback(lambda f: self._on_fetched(generation, key, f))
            return future

    def refresh(self) -> Optional[Future]:
        """Drop the current page's cache entry and fetch it again."""
        if not self._active:
            return None
        self.cache.delete(self.cache_key(*self._last_request))
        return self.load_content(*self._last_request)

    def retry(self) -> Optional[Future]:
        """Re-issue the last requested page and search."""
        if not self._active:
            return None
        return self.load_content(*self._last_request)

    def _fetch(self, page: int, search: Optional[str], category: Optional[str]) -> dict:
        if self.config.widget_id:
            return self.client.fetch_render(self.config.widget_id, page=page, search=search, category=category)
        items = self.client.fetch_content(self.config.api_key, limit=self.config.items_per_page)
        return render_content_items(items)

    def _forget(self, key: tuple, future: Future) -> None:
        with self._lock:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    def _on_fetched(self, generation: int, key: tuple, future: Future) -> None:
        with self._lock:
            if not self._active:
                logger.debug('StorySlip: discarding response for inactive widget')
                return

            error = future.exception()
            if error is None and self.config.cache_content:
                try:
                    self.cache.set(key, future.result())
                except CacheFullError as e:
                    logger.debug('StorySlip: not caching page: %s', e)

            if generation != self._generation:
                logger.debug('StorySlip: discarding stale response (generation %s < %s)',
                             generation, self._generation)
                return

            if error is not None:
                self._show_error(error)
            else:
                self._apply(future.result())

    # ==================== RENDERING ====================

    def _set_loading(self) -> None:
        self.state = WidgetState.LOADING
        if not self._loaded_once:
            self.widget_element.set_html('<div class="storyslip-loading">Loading...</div>')
        self.widget_element.classes.add('storyslip-is-loading')

    def _close_button(self) -> str:
        if self.config.display_mode == 'inline' or not self.config.close_button:
            return ''
        return '<button type="button" class="storyslip-close" aria-label="Close">&times;</button>'

    def _apply(self, payload: dict) -> None:
        self.widget_element.set_html(self._close_button() + payload.get('html', ''))
        self.widget_element.classes.discard('storyslip-is-loading')

        css = payload.get('css') or ''
        if self._content_style is None:
            self._content_style = self.host.add_style(css, id=f'storyslip-content-{self.instance_id}')
            self._styles.append(self._content_style)
        else:
            self._content_style.text = css

        self.last_payload = payload
        self.last_error = None
        self.state = WidgetState.RENDERED
        self._loaded_once = True

        if self.config.track_views and not self._view_tracked:
            self._view_tracked = True
            self._track('view', {})

    def _show_error(self, error: BaseException) -> None:
        logger.error('StorySlip: Failed to load content: %s', error)
        self.last_error = error
        self.state = WidgetState.ERROR
        self.widget_element.classes.discard('storyslip-is-loading')
        self.widget_element.set_html(
            self._close_button()
            + f'<div class="storyslip-error"><p>{ERROR_MESSAGE}</p>'
            '<button type="button" class="storyslip-retry">Try again</button></div>'
        )

    # ==================== DISPLAY MODES ====================

    def show(self) -> None:
        if not self._active or self.visible or self.config.display_mode == 'inline':
            return
        if self.config.display_mode in OVERLAY_MODES and self.config.overlay:
            self._create_overlay()
        self.widget_element.style['display'] = 'block'
        self.visible = True
        self._handle_resize()
        if not self._loaded_once and self.state is not WidgetState.LOADING:
            self.load_content()

    def hide(self) -> None:
        if not self.visible or self.config is None or self.config.display_mode == 'inline':
            return
        self._remove_overlay()
        if self.widget_element is not None:
            self.widget_element.style['display'] = 'none'
        self.visible = False

    def toggle(self) -> None:
        if self.visible:
            self.hide()
        else:
            self.show()

    def _create_overlay(self) -> None:
        if self.overlay is not None:
            return
        self.overlay = self.host.create_element('div', parent=self.host.body, classes={'storyslip-overlay'})
        self._overlay_listener = self.host.add_listener(self.overlay, 'click', self._on_overlay_click)

    def _remove_overlay(self) -> None:
        if self._overlay_listener is not None:
            self.host.remove_listener(self._overlay_listener)
            self._overlay_listener = None
        if self.overlay is not None:
            self.overlay.remove()
            self.overlay = None

    def _handle_resize(self) -> None:
        if self.widget_element is None:
            return
        if self.host.viewport_width < MOBILE_BREAKPOINT:
            self.widget_element.style['max-width'] = 'calc(100vw - 40px)'
            self.widget_element.style['max-height'] = 'calc(100vh - 40px)'
        else:
            self.widget_element.style['max-width'] = self.config.max_width
            self.widget_element.style['max-height'] = self.config.max_height

    # ==================== EVENTS ====================

    def _on_keydown(self, event: Event) -> None:
        if event.key == 'Escape' and self.visible and self.config.display_mode != 'inline':
            self.hide()

    def _on_overlay_click(self, event: Event) -> None:
        if self.config.display_mode == 'popup':
            self.hide()

    def _on_click(self, event: Event) -> None:
        target = event.target
        if target is None:
            return

        if target.has_class('storyslip-retry'):
            event.prevent_default()
            self.retry()
            return
        if target.has_class('storyslip-close'):
            event.prevent_default()
            self.hide()
            return

        _, search, category = self._last_request
        page = target.get('data-page')
        if page is not None and target.has_class('storyslip-page-btn'):
            event.prevent_default()
            try:
                page = int(page)
            except ValueError:
                return
            self._track('interaction', {'action': 'paginate', 'page': page})
            self.load_content(page, search, category)
            return

        if target.tag == 'a' and 'data-category' in target.attributes:
            event.prevent_default()
            category = target.get('data-category') or None
            self._track('interaction', {'action': 'category', 'category': category})
            self.load_content(1, search, category)
            return

        content_id = target.get('data-content-id')
        if content_id and target.has_class('storyslip-item-link') and self.config.track_clicks:
            self._track('click', {'content_id': content_id, 'title': target.text or None,
                                  'url': target.get('href')})

    def _search_value(self, event: Event) -> str:
        if event.value is not None:
            return event.value
        return (event.target.get('value') if event.target is not None else '') or ''

    def _on_input(self, event: Event) -> None:
        if event.target is None or not event.target.has_class('storyslip-search-input'):
            return
        _, _, category = self._last_request
        self.load_content(1, self._search_value(event), category)

    def _on_submit(self, event: Event) -> None:
        event.prevent_default()
        query = self._search_value(event)
        _, _, category = self._last_request
        self._track('interaction', {'action': 'search', 'query': query})
        self.load_content(1, query, category)

    def _on_resize(self, event: Event) -> None:
        self._handle_resize()

    def _on_container_resized(self, elements: List[Element]) -> None:
        self._handle_resize()

    def _on_visible(self, elements: List[Element]) -> None:
        if not self._active or self._loaded_once or self.state is WidgetState.LOADING:
            return
        self._visibility_observer.unobserve(self.container)
        self.load_content()

    # ==================== TRACKING ====================

    def _track(self, event_type: str, data: dict) -> None:
        """Fire-and-forget; only widget embeds with a website id are tracked."""
        if not self.config.widget_id or not self.config.website_id:
            return
        event_data = dict(data)
        event_data['device'] = 'mobile' if self.host.viewport_width < MOBILE_BREAKPOINT else 'desktop'
        event_data['source'] = self.host.referrer or self.config.domain or None
        event_data = {k: v for k, v in event_data.items() if v is not None}
        try:
            self.executor.submit(self.client.track, self.config.widget_id, event_type,
                                 event_data, self.config.website_id)
        except RuntimeError as e:
            logger.debug('StorySlip: could not schedule %s tracking: %s', event_type, e)
