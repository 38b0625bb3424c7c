"""
Widget Renderer

Turns a widget configuration and a page of selected content into an HTML
fragment, a scoped stylesheet, a hydration snippet and page metadata.

One template class per widget type. Layout is never a different DOM
structure, only a ``storyslip-layout-{layout}`` class modifier. Every
interpolated text value goes through MarkupSafe; URLs are escaped for the
attribute context but their scheme is trusted as stored in the content
store.

The renderer has no side effects.
"""
import json
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from markupsafe import escape

from ..models.widget import WidgetType
from ..utils.exceptions import RenderError
from .content_filter import ContentPage
from .content_store import ContentSnapshot


BRANDING_URL = 'https://storyslip.com'
MOBILE_BREAKPOINT = '768px'
PAGINATION_WINDOW = 5


@dataclass
class RenderedWidgetPayload:
    """Ephemeral render output; never persisted."""
    html: str
    css: str
    js: Optional[str] = None
    meta: Optional[dict] = None

    def to_dict(self) -> dict:
        data = {'html': self.html, 'css': self.css}
        if self.js is not None:
            data['js'] = self.js
        if self.meta is not None:
            data['meta'] = self.meta
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'RenderedWidgetPayload':
        return cls(html=data['html'], css=data['css'], js=data.get('js'), meta=data.get('meta'))


@dataclass(frozen=True)
class RenderContext:
    widget_id: str
    widget_type: WidgetType
    name: str
    layout: str
    theme: str
    settings: dict
    styling: dict
    seo: dict
    performance: dict
    page: ContentPage
    # Every item matching the widget's filters, newest first; feeds sidebars
    eligible: Sequence[ContentSnapshot] = field(default_factory=tuple)
    search: Optional[str] = None
    category: Optional[str] = None
    tag: Optional[str] = None

    @property
    def type_class(self) -> str:
        return type_css_class(self.widget_type.value)

    def setting(self, key, default=None):
        value = self.settings.get(key)
        return default if value is None else value


def type_css_class(widget_type: str) -> str:
    return 'storyslip-' + widget_type.replace('_', '-')


def _e(value) -> str:
    """Escape for HTML text and attribute contexts; None renders empty."""
    if value is None:
        return ''
    return str(escape(value))


def format_date(value) -> str:
    return f'{value:%B} {value.day}, {value.year}'


def truncate(text: str, length: int) -> str:
    if not text or length is None or len(text) <= length:
        return text or ''
    return text[:length].rstrip() + '...'


class WidgetTemplate:
    """
    Base template: shared item, pagination and chrome markup.

    Subclasses set ``widget_type`` and implement ``regions``.
    """
    widget_type: WidgetType = None

    def render(self, ctx: RenderContext) -> str:
        classes = [
            'storyslip-widget',
            ctx.type_class,
            f'storyslip-{ctx.theme}',
            f'storyslip-layout-{ctx.layout}',
        ]
        if ctx.setting('enable_infinite_scroll'):
            classes.append('storyslip-infinite-scroll')

        parts = [
            f'<div class="{" ".join(_e(c) for c in classes)}" data-widget-id="{_e(ctx.widget_id)}" '
            f'data-layout="{_e(ctx.layout)}" data-current-page="{ctx.page.page}" '
            f'data-total-pages="{ctx.page.total_pages}">'
        ]
        parts.append(self.header(ctx))
        parts.extend(self.regions(ctx))
        parts.append(self.footer(ctx))
        parts.append('</div>')
        return ''.join(p for p in parts if p)

    def regions(self, ctx: RenderContext) -> List[str]:
        raise NotImplementedError

    def header(self, ctx: RenderContext) -> str:
        title = ctx.setting('title')
        if not title:
            return ''
        description = ctx.setting('description')
        html = f'<header class="storyslip-header"><h2 class="storyslip-title">{_e(title)}</h2>'
        if description:
            html += f'<p class="storyslip-description">{_e(description)}</p>'
        return html + '</header>'

    def footer(self, ctx: RenderContext) -> str:
        if ctx.setting('hide_branding'):
            return ''
        return (
            '<div class="storyslip-branding">Powered by '
            f'<a href="{BRANDING_URL}" target="_blank" rel="noopener">StorySlip</a></div>'
        )

    # Items

    def item(self, ctx: RenderContext, item: ContentSnapshot, extra_class: str = None) -> str:
        settings = ctx.settings
        url = _e(item.canonical_url or '#')
        classes = 'storyslip-item' + (f' {extra_class}' if extra_class else '')
        parts = [f'<article class="{classes}" data-content-id="{_e(item.id)}">']

        if settings.get('show_featured_image') and item.featured_image_url:
            loading = ' loading="lazy"' if ctx.performance.get('enable_lazy_loading') else ''
            parts.append(
                f'<div class="storyslip-item-image"><img src="{_e(item.featured_image_url)}" '
                f'alt="{_e(item.title)}"{loading}></div>'
            )

        parts.append('<div class="storyslip-item-body">')
        if settings.get('show_categories') and item.categories:
            parts.append('<div class="storyslip-item-categories">')
            parts.extend(
                f'<span class="storyslip-category" data-category="{_e(c.slug)}">{_e(c.name)}</span>'
                for c in item.categories
            )
            parts.append('</div>')

        parts.append(
            f'<h3 class="storyslip-item-title"><a class="storyslip-item-link" href="{url}" '
            f'data-content-id="{_e(item.id)}" target="_blank" rel="noopener">{_e(item.title)}</a></h3>'
        )

        meta = []
        if settings.get('show_author') and item.author_name:
            meta.append(f'<span class="storyslip-author">By {_e(item.author_name)}</span>')
        if settings.get('show_date') and item.published_at:
            meta.append(
                f'<time class="storyslip-date" datetime="{item.published_at.isoformat()}">'
                f'{format_date(item.published_at)}</time>'
            )
        if settings.get('show_read_time') and item.read_time:
            meta.append(f'<span class="storyslip-read-time">{item.read_time} min read</span>')
        if meta:
            parts.append(f'<div class="storyslip-meta">{"".join(meta)}</div>')

        if settings.get('show_excerpts') and item.excerpt:
            excerpt = truncate(item.excerpt, settings.get('excerpt_length'))
            parts.append(f'<p class="storyslip-excerpt">{_e(excerpt)}</p>')

        if settings.get('show_tags') and item.tags:
            parts.append('<div class="storyslip-item-tags">')
            parts.extend(
                f'<span class="storyslip-tag" data-tag="{_e(t.slug)}">#{_e(t.name)}</span>'
                for t in item.tags
            )
            parts.append('</div>')

        parts.append('</div></article>')
        return ''.join(parts)

    def items(self, ctx: RenderContext, items: Sequence[ContentSnapshot]) -> str:
        if not items:
            return '<div class="storyslip-empty">No content available</div>'
        body = ''.join(self.item(ctx, item) for item in items)
        return f'<div class="storyslip-items storyslip-layout-{_e(ctx.layout)}">{body}</div>'

    # Navigation

    def pagination(self, ctx: RenderContext) -> str:
        page = ctx.page
        if page.total_pages <= 1:
            return ''

        if ctx.setting('enable_infinite_scroll'):
            if not page.has_next:
                return ''
            return (
                f'<div class="storyslip-pagination"><button type="button" '
                f'class="storyslip-page-btn storyslip-load-more" data-page="{page.page + 1}">'
                'Load more</button></div>'
            )

        if not ctx.setting('enable_pagination'):
            return ''

        buttons = []
        if page.has_previous:
            buttons.append(
                f'<button type="button" class="storyslip-page-btn storyslip-prev" '
                f'data-page="{page.page - 1}">Previous</button>'
            )
        for number in page_window(page.page, page.total_pages):
            if number == page.page:
                buttons.append(
                    f'<button type="button" class="storyslip-page-btn storyslip-active" '
                    f'data-page="{number}" aria-current="page">{number}</button>'
                )
            else:
                buttons.append(
                    f'<button type="button" class="storyslip-page-btn" data-page="{number}">{number}</button>'
                )
        if page.has_next:
            buttons.append(
                f'<button type="button" class="storyslip-page-btn storyslip-next" '
                f'data-page="{page.page + 1}">Next</button>'
            )
        return f'<nav class="storyslip-pagination" aria-label="Pagination">{"".join(buttons)}</nav>'

    def search_form(self, ctx: RenderContext) -> str:
        return (
            '<form class="storyslip-search" role="search">'
            '<input type="search" class="storyslip-search-input" name="search" '
            f'placeholder="Search posts..." value="{_e(ctx.search)}">'
            '<button type="submit" class="storyslip-search-btn">Search</button>'
            '</form>'
        )


def page_window(current: int, total: int) -> List[int]:
    """At most PAGINATION_WINDOW page numbers around current."""
    start = max(1, current - PAGINATION_WINDOW // 2)
    end = min(total, start + PAGINATION_WINDOW - 1)
    start = max(1, end - PAGINATION_WINDOW + 1)
    return list(range(start, end + 1))


class BlogHubTemplate(WidgetTemplate):
    """Hero, search, category navigation, main posts and sidebar."""
    widget_type = WidgetType.BLOG_HUB

    def regions(self, ctx: RenderContext) -> List[str]:
        items = list(ctx.page.items)
        regions = []

        hero = self.hero_item(ctx, items)
        if hero is not None:
            items = [i for i in items if i.id != hero.id]
            regions.append(f'<section class="storyslip-hero">{self.item(ctx, hero, "storyslip-hero-item")}</section>')

        if ctx.setting('enable_search'):
            regions.append(self.search_form(ctx))
        if ctx.setting('show_category_navigation'):
            regions.append(self.category_navigation(ctx))

        main = f'<main class="storyslip-main">{self.items(ctx, items)}{self.pagination(ctx)}</main>'
        sidebar = self.sidebar(ctx)
        if sidebar:
            regions.append(f'<div class="storyslip-hub-body storyslip-with-sidebar">{main}{sidebar}</div>')
        else:
            regions.append(f'<div class="storyslip-hub-body">{main}</div>')
        return regions

    def hero_item(self, ctx: RenderContext, items: List[ContentSnapshot]) -> Optional[ContentSnapshot]:
        # Only on an unfiltered first page
        if not ctx.setting('show_hero_section') or ctx.page.page != 1 or ctx.search:
            return None
        hero_id = ctx.setting('hero_post_id')
        if hero_id:
            for item in list(items) + list(ctx.eligible):
                if item.id == hero_id:
                    return item
        return items[0] if items else None

    def category_navigation(self, ctx: RenderContext) -> str:
        categories = OrderedDict()
        for item in ctx.eligible:
            for category in item.categories:
                categories.setdefault(category.slug, category)
        if not categories:
            return ''

        active = ' storyslip-active' if not ctx.category else ''
        links = [f'<li class="storyslip-nav-item{active}"><a href="#" data-category="">All</a></li>']
        for category in sorted(categories.values(), key=lambda c: c.name.casefold()):
            active = ' storyslip-active' if ctx.category and category.matches(ctx.category) else ''
            links.append(
                f'<li class="storyslip-nav-item{active}"><a href="#" data-category="{_e(category.slug)}">'
                f'{_e(category.name)}</a></li>'
            )
        return f'<nav class="storyslip-category-nav"><ul>{"".join(links)}</ul></nav>'

    def sidebar(self, ctx: RenderContext) -> str:
        sections = []

        if ctx.setting('show_recent_posts'):
            recent = list(ctx.eligible)[:ctx.setting('recent_posts_count', 5)]
            if recent:
                entries = ''.join(
                    f'<li><a class="storyslip-item-link" href="{_e(i.canonical_url or "#")}" '
                    f'data-content-id="{_e(i.id)}" target="_blank" rel="noopener">{_e(i.title)}</a></li>'
                    for i in recent
                )
                sections.append(
                    f'<section class="storyslip-recent-posts"><h4>Recent Posts</h4><ul>{entries}</ul></section>'
                )

        if ctx.setting('show_tag_cloud'):
            counts = Counter()
            names = {}
            for item in ctx.eligible:
                for tag in item.tags:
                    counts[tag.slug] += 1
                    names[tag.slug] = tag.name
            if counts:
                tags = ''.join(
                    f'<a href="#" class="storyslip-tag" data-tag="{_e(slug)}">{_e(names[slug])} '
                    f'<span class="storyslip-post-count">({count})</span></a>'
                    for slug, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
                )
                sections.append(f'<section class="storyslip-tag-cloud"><h4>Tags</h4>{tags}</section>')

        if ctx.setting('show_archive_links'):
            months = Counter()
            for item in ctx.eligible:
                if item.published_at:
                    months[(item.published_at.year, item.published_at.month)] += 1
            if months:
                entries = []
                for (year, month), count in sorted(months.items(), reverse=True):
                    label = f'{_month_name(month)} {year}'
                    entries.append(
                        f'<li data-archive="{year:04d}-{month:02d}">{label} '
                        f'<span class="storyslip-post-count">({count})</span></li>'
                    )
                sections.append(
                    f'<section class="storyslip-archive"><h4>Archive</h4><ul>{"".join(entries)}</ul></section>'
                )

        if not sections:
            return ''
        return f'<aside class="storyslip-sidebar">{"".join(sections)}</aside>'


def _month_name(month: int) -> str:
    return ('January', 'February', 'March', 'April', 'May', 'June', 'July', 'August',
            'September', 'October', 'November', 'December')[month - 1]


class ContentListTemplate(WidgetTemplate):
    widget_type = WidgetType.CONTENT_LIST

    def regions(self, ctx: RenderContext) -> List[str]:
        return [self.items(ctx, ctx.page.items), self.pagination(ctx)]


class FeaturedPostsTemplate(WidgetTemplate):
    widget_type = WidgetType.FEATURED_POSTS

    def regions(self, ctx: RenderContext) -> List[str]:
        if not ctx.page.items:
            return [self.items(ctx, ())]
        body = ''.join(self.item(ctx, item, 'storyslip-featured-item') for item in ctx.page.items)
        return [
            f'<div class="storyslip-items storyslip-featured storyslip-layout-{_e(ctx.layout)}">{body}</div>',
            self.pagination(ctx),
        ]


class CategoryGridTemplate(WidgetTemplate):
    """Items grouped under their first category's heading."""
    widget_type = WidgetType.CATEGORY_GRID

    UNCATEGORIZED = 'Uncategorized'

    def regions(self, ctx: RenderContext) -> List[str]:
        if not ctx.page.items:
            return [self.items(ctx, ())]

        groups = OrderedDict()
        for item in ctx.page.items:
            if item.categories:
                key, name = item.categories[0].slug, item.categories[0].name
            else:
                key, name = '', self.UNCATEGORIZED
            groups.setdefault(key, (name, []))[1].append(item)

        sections = []
        for slug, (name, items) in groups.items():
            count = ''
            if ctx.setting('show_post_count'):
                count = f' <span class="storyslip-post-count">({len(items)})</span>'
            sections.append(
                f'<section class="storyslip-category-group" data-category="{_e(slug)}">'
                f'<h3 class="storyslip-category-title">{_e(name)}{count}</h3>'
                f'{self.items(ctx, items)}</section>'
            )
        return [f'<div class="storyslip-category-grid">{"".join(sections)}</div>', self.pagination(ctx)]


class SearchWidgetTemplate(WidgetTemplate):
    widget_type = WidgetType.SEARCH_WIDGET

    def regions(self, ctx: RenderContext) -> List[str]:
        results = []
        if ctx.search:
            total = ctx.page.total_items
            noun = 'result' if total == 1 else 'results'
            results.append(
                f'<p class="storyslip-results-summary">{total} {noun} for &quot;{_e(ctx.search)}&quot;</p>'
            )
        results.append(self.items(ctx, ctx.page.items))
        results.append(self.pagination(ctx))
        return [self.search_form(ctx), f'<div class="storyslip-results">{"".join(results)}</div>']


TEMPLATES: Dict[WidgetType, WidgetTemplate] = {
    template.widget_type: template
    for template in (
        BlogHubTemplate(),
        ContentListTemplate(),
        FeaturedPostsTemplate(),
        CategoryGridTemplate(),
        SearchWidgetTemplate(),
    )
}

_missing_templates = set(WidgetType) - set(TEMPLATES)
if _missing_templates:
    raise RuntimeError(f'No template registered for widget types: {sorted(t.value for t in _missing_templates)}')


# CSS

def _rule(selector: str, declarations: dict) -> str:
    body = ''.join(f'  {prop}: {value};\n' for prop, value in declarations.items() if value not in (None, ''))
    return f'{selector} {{\n{body}}}\n'


BUTTON_SELECTOR = '.storyslip-page-btn, {scope} .storyslip-search-btn, {scope} .storyslip-retry'

THEME_RULES = {
    'modern': [
        ('.storyslip-item', {'transition': 'transform 0.2s, box-shadow 0.2s'}),
        ('.storyslip-item:hover', {'transform': 'translateY(-2px)',
                                   'box-shadow': '0 8px 25px -5px rgba(0, 0, 0, 0.1)'}),
    ],
    'minimal': [
        ('.storyslip-item', {'box-shadow': 'none', 'border': 'none', 'border-radius': '0',
                             'border-bottom': '1px solid currentColor'}),
    ],
    'classic': [
        ('.storyslip-item-title, {scope} .storyslip-title', {'font-family': 'Georgia, "Times New Roman", serif'}),
    ],
    'magazine': [
        ('.storyslip-item-title', {'text-transform': 'uppercase', 'letter-spacing': '0.02em'}),
        ('.storyslip-category', {'font-weight': '700', 'text-transform': 'uppercase'}),
    ],
    'dark': [
        ('', {'background-color': '#111827', 'color': '#f9fafb'}),
        ('.storyslip-item', {'background': '#1f2937', 'border-color': '#374151'}),
        ('.storyslip-meta', {'color': '#9ca3af'}),
    ],
    'custom': [],
}


def _button_declarations(styling: dict) -> tuple:
    color = styling.get('button_color')
    hover = styling.get('button_hover_color')
    style = styling.get('button_style', 'solid')
    if style == 'outline':
        return ({'background': 'transparent', 'color': color, 'border': f'1px solid {color}'},
                {'color': hover, 'border-color': hover})
    if style == 'ghost':
        return ({'background': 'transparent', 'color': color, 'border': 'none'},
                {'color': hover})
    return ({'background': color, 'color': '#ffffff', 'border': f'1px solid {color}'},
            {'background': hover, 'border-color': hover})


def generate_css(ctx: RenderContext) -> str:
    """
    Stylesheet scoped to this widget's type and theme.

    Order: base rules from styling, theme rules, layout rules, responsive
    rules, then the tenant's raw custom_css so it always wins.
    """
    s = ctx.styling
    scope = f'.storyslip-widget.{ctx.type_class}.storyslip-{ctx.theme}'
    button, button_hover = _button_declarations(s)

    rules = [
        _rule(scope, {
            'box-sizing': 'border-box',
            'max-width': s.get('container_width'),
            'margin': '0 auto',
            'padding': s.get('container_padding'),
            'font-family': s.get('font_family'),
            'font-size': s.get('body_font_size'),
            'line-height': s.get('line_height'),
            'color': s.get('text_color'),
            'background-color': s.get('background_color'),
        }),
        _rule(f'{scope} .storyslip-title', {'font-size': s.get('heading_font_size'),
                                            'color': s.get('secondary_color'), 'margin': '0 0 0.5rem'}),
        _rule(f'{scope} .storyslip-items', {
            'display': 'grid',
            'grid-template-columns': f'repeat({s.get("grid_columns")}, 1fr)',
            'gap': s.get('grid_gap'),
        }),
        _rule(f'{scope} .storyslip-item', {
            'background': s.get('card_background'),
            'border': f'1px solid {s.get("border_color")}',
            'border-radius': s.get('card_border_radius'),
            'box-shadow': s.get('card_shadow'),
            'padding': s.get('card_padding'),
        }),
        _rule(f'{scope} .storyslip-item-image img', {'width': '100%', 'height': 'auto',
                                                     'border-radius': s.get('card_border_radius')}),
        _rule(f'{scope} .storyslip-item-link', {'color': s.get('primary_color'), 'text-decoration': 'none'}),
        _rule(f'{scope} .storyslip-item-link:hover', {'color': s.get('hover_color')}),
        _rule(f'{scope} .storyslip-meta', {'color': s.get('secondary_color'), 'font-size': '0.875em',
                                           'display': 'flex', 'gap': '0.75rem'}),
        _rule(f'{scope} .storyslip-category, {scope} .storyslip-tag', {'color': s.get('primary_color'),
                                                                       'margin-right': '0.5rem'}),
        _rule(f'{scope} .storyslip-search-input', {'border': f'1px solid {s.get("border_color")}',
                                                   'padding': '0.5rem 0.75rem'}),
        _rule(f'{scope} .storyslip-search-input:focus', {'outline': 'none',
                                                         'border-color': s.get('primary_color')}),
        _rule(f'{scope} {BUTTON_SELECTOR.format(scope=scope)}', dict(button, **{
            'padding': '0.5rem 0.875rem', 'cursor': 'pointer',
            'border-radius': s.get('card_border_radius'),
        })),
        _rule(f'{scope} .storyslip-page-btn:hover, {scope} .storyslip-search-btn:hover', button_hover),
        _rule(f'{scope} .storyslip-page-btn.storyslip-active', {'background': s.get('primary_color'),
                                                                'border-color': s.get('primary_color'),
                                                                'color': '#ffffff'}),
        _rule(f'{scope} .storyslip-pagination', {'display': 'flex', 'gap': '0.5rem',
                                                 'justify-content': 'center', 'margin-top': '1.5rem'}),
        _rule(f'{scope} .storyslip-with-sidebar', {'display': 'grid', 'grid-template-columns': '1fr 300px',
                                                   'gap': s.get('grid_gap')}),
        _rule(f'{scope} .storyslip-category-nav ul', {'display': 'flex', 'gap': '1rem',
                                                      'list-style': 'none', 'padding': '0',
                                                      'overflow-x': 'auto'}),
        _rule(f'{scope} .storyslip-nav-item.storyslip-active a', {'color': s.get('primary_color'),
                                                                  'font-weight': '600'}),
        _rule(f'{scope} .storyslip-empty, {scope} .storyslip-branding', {'text-align': 'center',
                                                                         'padding': '1rem',
                                                                         'color': s.get('secondary_color')}),
    ]

    for selector, declarations in THEME_RULES.get(ctx.theme, []):
        full = f'{scope} {selector.format(scope=scope)}' if selector else scope
        rules.append(_rule(full, declarations))

    rules.extend(_layout_rules(ctx.layout, scope, s))

    rules.append(
        f'@media (max-width: {MOBILE_BREAKPOINT}) {{\n'
        + _rule(f'{scope} .storyslip-items', {'grid-template-columns': '1fr'})
        + _rule(f'{scope} .storyslip-with-sidebar', {'grid-template-columns': '1fr'})
        + '}\n'
    )

    custom_css = s.get('custom_css')
    if custom_css:
        rules.append(custom_css if custom_css.endswith('\n') else custom_css + '\n')

    return ''.join(rules)


def _layout_rules(layout: str, scope: str, s: dict) -> List[str]:
    items = f'{scope} .storyslip-items.storyslip-layout-{layout}'
    if layout == 'list':
        return [_rule(items, {'grid-template-columns': '1fr'})]
    if layout == 'masonry':
        return [
            _rule(items, {'display': 'block', 'columns': s.get('grid_columns'), 'column-gap': s.get('grid_gap')}),
            _rule(f'{items} .storyslip-item', {'break-inside': 'avoid', 'margin-bottom': s.get('grid_gap')}),
        ]
    if layout == 'carousel':
        return [
            _rule(items, {'display': 'flex', 'overflow-x': 'auto', 'scroll-snap-type': 'x mandatory'}),
            _rule(f'{items} .storyslip-item', {'flex': '0 0 80%', 'scroll-snap-align': 'start'}),
        ]
    if layout == 'magazine':
        return [_rule(f'{items} .storyslip-item:first-child', {'grid-column': 'span 2'})]
    return []


# JS and metadata

def _json_for_script(data) -> str:
    return json.dumps(data, sort_keys=True).replace('</', '<\\/')


def generate_js(ctx: RenderContext) -> str:
    """Hydration call the client runtime picks up after injecting the HTML."""
    config = {
        'widgetId': ctx.widget_id,
        'type': ctx.widget_type.value,
        'layout': ctx.layout,
        'theme': ctx.theme,
        'page': ctx.page.page,
        'totalPages': ctx.page.total_pages,
        'settings': {
            'enablePagination': bool(ctx.setting('enable_pagination')),
            'enableInfiniteScroll': bool(ctx.setting('enable_infinite_scroll')),
            'enableSearch': bool(ctx.setting('enable_search')),
            'lazyLoad': bool(ctx.performance.get('enable_lazy_loading')),
        },
    }
    return (
        '(function(){var config=' + _json_for_script(config) + ';'
        'if(window.StorySlipWidget&&window.StorySlipWidget.hydrate){'
        'window.StorySlipWidget.hydrate(config);}})();'
    )


def generate_meta(ctx: RenderContext) -> dict:
    seo = ctx.seo
    title = seo.get('meta_title') or ctx.setting('title') or ctx.name
    description = seo.get('meta_description') or ctx.setting('description')

    og_tags = {
        'og:type': 'website',
        'og:title': seo.get('og_title') or title,
        'og:description': seo.get('og_description') or description,
        'og:image': seo.get('og_image'),
        'og:url': seo.get('canonical_url'),
        'twitter:card': seo.get('twitter_card'),
    }
    meta = {
        'title': title,
        'description': description,
        'canonical_url': seo.get('canonical_url'),
        'og_tags': {k: v for k, v in og_tags.items() if v},
        'pagination': ctx.page.to_dict(),
    }

    if seo.get('structured_data_enabled'):
        offset = (ctx.page.page - 1) * ctx.page.per_page
        meta['structured_data'] = {
            '@context': 'https://schema.org',
            '@type': 'ItemList',
            'name': title,
            'numberOfItems': ctx.page.total_items,
            'itemListElement': [
                {
                    '@type': 'ListItem',
                    'position': offset + index + 1,
                    'name': item.title,
                    'url': item.canonical_url,
                }
                for index, item in enumerate(ctx.page.items)
            ],
        }
    return meta


class WidgetRenderer:
    """
    Renders a widget configuration over a content page.

    Usage:
        renderer = WidgetRenderer()
        payload = renderer.render(widget, page, eligible=items)
    """

    def __init__(self, templates: Dict[WidgetType, WidgetTemplate] = None):
        self.templates = templates or TEMPLATES

    def build_context(self, widget, page: ContentPage, eligible: Sequence[ContentSnapshot] = (),
                      search: str = None, category: str = None, tag: str = None) -> RenderContext:
        try:
            widget_type = WidgetType(widget.type)
        except ValueError:
            raise RenderError(f'Unknown widget type: {widget.type}')

        return RenderContext(
            widget_id=widget.id,
            widget_type=widget_type,
            name=widget.name,
            layout=widget.layout,
            theme=widget.theme,
            settings=widget.get_settings(),
            styling=widget.get_styling(),
            seo=widget.get_seo_settings(),
            performance=widget.get_performance_settings(),
            page=page,
            eligible=tuple(eligible),
            search=search,
            category=category,
            tag=tag,
        )

    def render(self, widget, page: ContentPage, eligible: Sequence[ContentSnapshot] = (),
               search: str = None, category: str = None, tag: str = None) -> RenderedWidgetPayload:
        ctx = self.build_context(widget, page, eligible, search, category, tag)
        template = self.templates[ctx.widget_type]
        return RenderedWidgetPayload(
            html=template.render(ctx),
            css=generate_css(ctx),
            js=generate_js(ctx),
            meta=generate_meta(ctx),
        )


def _escape_for_raw_text(text: str) -> str:
    # style/script contents end at the first "</"
    return (text or '').replace('</', '<\\/')


def render_page(payload: RenderedWidgetPayload) -> str:
    """Standalone HTML document for iframe embeds (format=html)."""
    meta = payload.meta or {}
    head = [
        '<meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1">',
        f'<title>{_e(meta.get("title") or "StorySlip")}</title>',
    ]
    if meta.get('description'):
        head.append(f'<meta name="description" content="{_e(meta["description"])}">')
    if meta.get('canonical_url'):
        head.append(f'<link rel="canonical" href="{_e(meta["canonical_url"])}">')
    for key, value in (meta.get('og_tags') or {}).items():
        attr = 'name' if key.startswith('twitter:') else 'property'
        head.append(f'<meta {attr}="{_e(key)}" content="{_e(value)}">')
    if meta.get('structured_data'):
        head.append(
            f'<script type="application/ld+json">{_json_for_script(meta["structured_data"])}</script>'
        )
    head.append(f'<style>{_escape_for_raw_text(payload.css)}</style>')

    body = payload.html
    if payload.js:
        body += f'<script>{_escape_for_raw_text(payload.js)}</script>'

    return (
        '<!DOCTYPE html><html lang="en"><head>'
        + ''.join(head)
        + '</head><body>'
        + body
        + '</body></html>'
    )
