"""
Widget Configuration Service

Management-plane operations on widget configurations: create (blank or
from a template), update, read, list, delete, preview, version history and
embed code generation. Every mutation is authorized against the owning
website's membership through the injected authorize function.

Usage:
    service = WidgetConfigurationService()
    widget = service.create(website_id, user_id, {'name': 'Blog', 'type': 'content_list', ...})
    widget = service.update(widget.id, user_id, {'settings': {'posts_per_page': 6}})
"""
import hashlib
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Tuple

from flask import current_app
from markupsafe import escape

from ..extensions import db
from ..models.widget import (
    CONFIG_SECTIONS,
    EMBED_FIELDS,
    WIDGET_TEMPLATES,
    WidgetConfiguration,
    WidgetLayout,
    WidgetTheme,
    WidgetType,
    WidgetVersion,
    generate_widget_id,
    merge_section,
)
from ..models.widget_analytics import WidgetAnalytics
from ..utils.exceptions import NotFoundError, ValidationError, WidgetNotFoundError
from .analytics_service import WidgetAnalyticsService
from .authorization import EDITOR_ROLES, MANAGER_ROLES, MEMBER_ROLES, AuthorizeFn, authorize
from .content_filter import SORT_FIELDS, SORT_ORDERS, parse_date_bound
from .render_service import WidgetRenderService
from .widget_renderer import RenderedWidgetPayload

logger = logging.getLogger(__name__)


EMBED_VARIANTS = ('javascript', 'declarative', 'iframe', 'amp')
BUTTON_STYLES = ('solid', 'outline', 'ghost')
MAX_POSTS_PER_PAGE = 100
MAX_LIST_LIMIT = 100

_FILTER_LIST_FIELDS = (
    'include_categories', 'exclude_categories',
    'include_tags', 'exclude_tags',
    'include_authors', 'exclude_authors',
    'content_types',
)


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def _require_choice(value, enum_cls, field: str) -> str:
    allowed = _enum_values(enum_cls)
    if value not in allowed:
        raise ValidationError(f"Invalid {field}. Must be one of: {', '.join(allowed)}", field)
    return value


def _require_int(section: dict, key: str, minimum: int, maximum: int = None) -> None:
    if key not in section or section[key] is None:
        return
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum or (
            maximum is not None and value > maximum):
        bound = f'between {minimum} and {maximum}' if maximum is not None else f'at least {minimum}'
        raise ValidationError(f'{key} must be an integer {bound}', key)


def validate_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('name is required', 'name')
    name = name.strip()
    if len(name) > 255:
        raise ValidationError('name must be at most 255 characters', 'name')
    return name


def validate_section(section: str, values) -> dict:
    """Check the value types a section patch may carry; unknown keys pass through."""
    if values is None:
        return {}
    if not isinstance(values, dict):
        raise ValidationError(f'{section} must be an object', section)

    if section == 'settings':
        _require_int(values, 'posts_per_page', 1, MAX_POSTS_PER_PAGE)
        _require_int(values, 'excerpt_length', 0)
        _require_int(values, 'recent_posts_count', 1, 50)
    elif section == 'styling':
        _require_int(values, 'grid_columns', 1, 12)
        if 'button_style' in values and values['button_style'] not in BUTTON_STYLES:
            raise ValidationError(
                f"Invalid button_style. Must be one of: {', '.join(BUTTON_STYLES)}", 'button_style'
            )
        if 'custom_css' in values and values['custom_css'] is not None and not isinstance(values['custom_css'], str):
            raise ValidationError('custom_css must be a string', 'custom_css')
    elif section == 'content_filters':
        if 'sort_by' in values and values['sort_by'] not in SORT_FIELDS:
            raise ValidationError(f"Invalid sort_by. Must be one of: {', '.join(SORT_FIELDS)}", 'sort_by')
        if 'sort_order' in values and values['sort_order'] not in SORT_ORDERS:
            raise ValidationError('Invalid sort_order. Must be one of: asc, desc', 'sort_order')
        for key in _FILTER_LIST_FIELDS:
            if key in values and values[key] is not None and not isinstance(values[key], list):
                raise ValidationError(f'{key} must be a list', key)
        for key in ('date_range_start', 'date_range_end'):
            try:
                parse_date_bound(values.get(key))
            except (TypeError, ValueError):
                raise ValidationError(f'{key} must be an ISO 8601 date', key)
    elif section == 'performance_settings':
        _require_int(values, 'cache_duration', 0, 86400)
    return values


def config_fingerprint(settings: dict, styling: dict) -> str:
    """Short stable hash of the fields the runtime needs to bust caches on."""
    blob = json.dumps({'settings': settings, 'styling': styling}, sort_keys=True, default=str)
    return hashlib.sha256(blob.encode('utf-8')).hexdigest()[:12]


class WidgetConfigurationService:
    """
    Widget configuration resolver.

    Dependencies are injected so the service can run against any
    membership source and a fixed clock.
    """

    def __init__(
        self,
        authorize_fn: AuthorizeFn = authorize,
        clock: Callable[[], datetime] = datetime.utcnow,
        widget_base_url: str = None,
        api_base_url: str = None,
        render_service: WidgetRenderService = None,
        analytics_service: WidgetAnalyticsService = None,
    ):
        self.authorize = authorize_fn
        self.clock = clock
        self._widget_base_url = widget_base_url
        self._api_base_url = api_base_url
        self.render_service = render_service or WidgetRenderService()
        self.analytics = analytics_service or WidgetAnalyticsService(authorize_fn=authorize_fn, clock=clock)

    @property
    def widget_base_url(self) -> str:
        return (self._widget_base_url or current_app.config['WIDGET_BASE_URL']).rstrip('/')

    @property
    def api_base_url(self) -> str:
        return (self._api_base_url or current_app.config['API_BASE_URL']).rstrip('/')

    # ==================== CREATE ====================

    def create(self, website_id: str, requester_id: str, draft: Dict[str, Any]) -> WidgetConfiguration:
        """
        Create a widget configuration on a website.

        Raises:
            AuthorizationError: Requester is not owner/admin/editor
            ValidationError: Invalid name, type, layout, theme or section values
        """
        self.authorize(requester_id, website_id, EDITOR_ROLES).raise_for_status()

        draft = draft or {}
        name = validate_name(draft.get('name'))
        widget_type = _require_choice(draft.get('type'), WidgetType, 'type')
        layout = _require_choice(draft.get('layout', WidgetLayout.GRID.value), WidgetLayout, 'layout')
        theme = _require_choice(draft.get('theme', WidgetTheme.MODERN.value), WidgetTheme, 'theme')
        sections = {
            section: merge_section(section, validate_section(section, draft.get(section)))
            for section in CONFIG_SECTIONS
        }

        now = self.clock()
        widget = WidgetConfiguration(
            id=generate_widget_id(),
            website_id=website_id,
            name=name,
            type=widget_type,
            layout=layout,
            theme=theme,
            is_active=bool(draft.get('is_active', True)),
            created_at=now,
            updated_at=now,
            **sections,
        )
        widget.embed_code = self.generate_embed_code(widget)
        widget.preview_url = self.generate_preview_url(widget.id)

        db.session.add(widget)
        db.session.flush()
        self.analytics.initialize(widget.id, now.date())
        db.session.commit()

        logger.info('Created widget %s (%s) on website %s', widget.id, widget_type, website_id)
        return widget

    def create_from_template(self, website_id: str, requester_id: str, template_id: str,
                             name: str = None, overrides: Dict[str, Any] = None) -> WidgetConfiguration:
        """Create a widget seeded from a pre-built template."""
        template = WIDGET_TEMPLATES.get(template_id)
        if template is None:
            raise NotFoundError('Template', template_id)

        draft = {
            'name': name or template['name'],
            'type': template['type'],
            'layout': template['layout'],
            'theme': template['theme'],
            'settings': dict(template.get('settings', {})),
            'styling': dict(template.get('styling', {})),
        }
        for section in CONFIG_SECTIONS:
            extra = (overrides or {}).get(section)
            if isinstance(extra, dict):
                draft[section] = {**draft.get(section, {}), **extra}
        return self.create(website_id, requester_id, draft)

    @staticmethod
    def list_templates() -> List[dict]:
        return [
            {
                'id': template_id,
                'name': template['name'],
                'description': template['description'],
                'category': template['category'],
                'type': template['type'],
                'layout': template['layout'],
                'theme': template['theme'],
                'is_premium': template['is_premium'],
            }
            for template_id, template in WIDGET_TEMPLATES.items()
        ]

    # ==================== READ ====================

    def get(self, widget_id: str, requester_id: str = None) -> WidgetConfiguration:
        """
        Fetch a widget. Without a requester this is the public rendering
        lookup; with one, membership (any role) is enforced.
        """
        widget = db.session.get(WidgetConfiguration, widget_id)
        if widget is None:
            raise WidgetNotFoundError(widget_id)
        if requester_id is not None:
            self.authorize(requester_id, widget.website_id, MEMBER_ROLES).raise_for_status()
        return widget

    def list(self, website_id: str, requester_id: str, widget_type: str = None,
             active_only: bool = False, limit: int = 50, offset: int = 0) -> Tuple[List[WidgetConfiguration], int]:
        """Newest-first page of a website's widgets plus the total count."""
        self.authorize(requester_id, website_id, MEMBER_ROLES).raise_for_status()
        if widget_type is not None:
            _require_choice(widget_type, WidgetType, 'type')

        limit = max(1, min(int(limit or 50), MAX_LIST_LIMIT))
        offset = max(0, int(offset or 0))
        query = WidgetConfiguration.get_all_for_website(website_id, widget_type, active_only)
        return query.offset(offset).limit(limit).all(), query.count()

    def versions(self, widget_id: str, requester_id: str) -> List[WidgetVersion]:
        widget = self.get(widget_id, requester_id)
        return (
            WidgetVersion.query
            .filter_by(widget_id=widget.id)
            .order_by(WidgetVersion.version_number.desc())
            .all()
        )

    def preview(self, widget_id: str, requester_id: str, page: int = 1) -> RenderedWidgetPayload:
        """Render a widget for a member, bypassing the render cache; works for inactive widgets."""
        widget = self.get(widget_id, requester_id)
        return self.render_service.render_widget(widget, page=page, use_cache=False)

    # ==================== UPDATE ====================

    def update(self, widget_id: str, requester_id: str, patch: Dict[str, Any]) -> WidgetConfiguration:
        """
        Apply a partial update.

        Section objects merge key-wise into the stored section. The embed
        code is regenerated only when type, layout, theme, settings or
        styling actually change; a version is recorded when any section
        changes.
        """
        widget = db.session.get(WidgetConfiguration, widget_id)
        if widget is None:
            raise WidgetNotFoundError(widget_id)
        self.authorize(requester_id, widget.website_id, EDITOR_ROLES).raise_for_status()

        patch = patch or {}
        changes = {}

        if 'name' in patch:
            changes['name'] = validate_name(patch['name'])
        if 'type' in patch:
            changes['type'] = _require_choice(patch['type'], WidgetType, 'type')
        if 'layout' in patch:
            changes['layout'] = _require_choice(patch['layout'], WidgetLayout, 'layout')
        if 'theme' in patch:
            changes['theme'] = _require_choice(patch['theme'], WidgetTheme, 'theme')
        if 'is_active' in patch:
            changes['is_active'] = bool(patch['is_active'])
        for section in CONFIG_SECTIONS:
            if section in patch:
                values = validate_section(section, patch[section])
                changes[section] = merge_section(section, values, base=widget.section(section))

        changed = [
            field for field, value in changes.items()
            if (widget.section(field) if field in CONFIG_SECTIONS else getattr(widget, field)) != value
        ]
        if not changed:
            return widget

        for field in changed:
            setattr(widget, field, changes[field])

        if any(field in EMBED_FIELDS for field in changed):
            widget.embed_code = self.generate_embed_code(widget)

        changed_sections = [field for field in changed if field in CONFIG_SECTIONS]
        if changed_sections:
            db.session.add(WidgetVersion(
                widget_id=widget.id,
                version_number=WidgetVersion.next_version_number(widget.id),
                configuration=widget.snapshot(),
                change_summary=f"Updated {', '.join(changed_sections)}",
                created_by=requester_id,
                created_at=self.clock(),
            ))

        widget.updated_at = self.clock()
        db.session.commit()

        logger.info('Updated widget %s: %s', widget.id, ', '.join(changed))
        return widget

    # ==================== DELETE ====================

    def delete(self, widget_id: str, requester_id: str) -> None:
        """
        Delete a widget with its analytics and version history.

        Deleting an already-deleted widget raises WidgetNotFoundError.
        """
        widget = db.session.get(WidgetConfiguration, widget_id)
        if widget is None:
            raise WidgetNotFoundError(widget_id)
        website_id = widget.website_id
        self.authorize(requester_id, website_id, MANAGER_ROLES).raise_for_status()

        WidgetAnalytics.query.filter_by(widget_id=widget_id).delete(synchronize_session=False)
        WidgetVersion.query.filter_by(widget_id=widget_id).delete(synchronize_session=False)
        db.session.delete(widget)
        db.session.commit()

        logger.info('Deleted widget %s from website %s', widget_id, website_id)

    # ==================== EMBED CODE ====================

    def generate_preview_url(self, widget_id: str) -> str:
        return f'{self.widget_base_url}/preview/{widget_id}'

    def generate_embed_code(self, widget: WidgetConfiguration) -> str:
        return self.embed_code(widget, 'javascript')

    def embed_code(self, widget: WidgetConfiguration, variant: str = 'javascript') -> str:
        """
        Embed snippet for a widget.

        Variants:
            javascript: container div plus a loader that calls StorySlipWidget.init
            declarative: data-attribute container auto-initialised by script.js
            iframe: full rendered page in an iframe
            amp: amp-iframe over the rendered page
        """
        if variant not in EMBED_VARIANTS:
            raise ValidationError(
                f"Invalid embed type. Must be one of: {', '.join(EMBED_VARIANTS)}", 'embed_type'
            )

        widget_id = escape(widget.id)
        container_id = f'storyslip-widget-{widget_id}'
        version = config_fingerprint(widget.section('settings'), widget.section('styling'))
        render_url = f'{self.api_base_url}/widgets/{widget_id}/render?format=html'

        if variant == 'declarative':
            return (
                f'<div id="{container_id}" data-storyslip-widget data-widget-id="{widget_id}" '
                f'data-website-id="{escape(widget.website_id)}" data-type="{escape(widget.type)}" '
                f'data-layout="{escape(widget.layout)}" data-theme="{escape(widget.theme)}" '
                f'data-config-version="{version}"></div>\n'
                f'<script src="{self.api_base_url}/widgets/script.js" async></script>'
            )

        if variant == 'iframe':
            return (
                f'<iframe src="{render_url}" title="{escape(widget.name)}" width="100%" height="600" '
                'frameborder="0" loading="lazy" style="border:0;width:100%;"></iframe>'
            )

        if variant == 'amp':
            return (
                f'<amp-iframe src="{render_url}" width="600" height="600" layout="responsive" '
                'sandbox="allow-scripts allow-same-origin allow-popups" frameborder="0">'
                '<div placeholder>Loading...</div></amp-iframe>'
            )

        init = json.dumps({
            'widgetId': widget.id,
            'containerId': f'storyslip-widget-{widget.id}',
            'type': widget.type,
            'layout': widget.layout,
            'theme': widget.theme,
            'configVersion': version,
        }, indent=2).replace('</', '<\\/')
        return (
            f'<div id="{container_id}"></div>\n'
            '<script>\n'
            '(function() {\n'
            "  var script = document.createElement('script');\n"
            f"  script.src = '{self.widget_base_url}/widget.js?v={version}';\n"
            '  script.async = true;\n'
            '  script.onload = function() {\n'
            f'    StorySlipWidget.init({init});\n'
            '  };\n'
            '  document.head.appendChild(script);\n'
            '})();\n'
            '</script>'
        )
