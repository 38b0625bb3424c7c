"""
Tests for widget templates, CSS generation and metadata.

Tests cover:
- Root element classes and data attributes
- Escaping of every tenant-supplied string
- Blog hub hero, category navigation and sidebar
- Category grid grouping
- Pagination markup
- CSS scoping and custom_css ordering
- Standalone page rendering
"""
from datetime import datetime

import pytest

from storyslip.models.widget import WidgetConfiguration, WidgetType
from storyslip.services.content_filter import paginate
from storyslip.services.content_store import ContentSnapshot, TermRef
from storyslip.services.widget_renderer import (
    TEMPLATES,
    RenderedWidgetPayload,
    WidgetRenderer,
    page_window,
    render_page,
)
from storyslip.utils.exceptions import RenderError


NEWS = TermRef('cat-news', 'News', 'news')


def make_widget(type='content_list', layout='grid', theme='modern', **sections):
    return WidgetConfiguration(
        id='widget_test', website_id='site-1', name='Test Widget',
        type=type, layout=layout, theme=theme,
        settings=sections.get('settings', {}),
        styling=sections.get('styling', {}),
        content_filters=sections.get('content_filters', {}),
        seo_settings=sections.get('seo_settings', {}),
        performance_settings=sections.get('performance_settings', {}),
    )


def snap(id, title='Post', **fields):
    fields.setdefault('published_at', datetime(2024, 1, 5))
    return ContentSnapshot(id=id, title=title, status='published', **fields)


def render(widget, items, page=1, per_page=10, **kwargs):
    content_page = paginate(items, page, per_page)
    return WidgetRenderer().render(widget, content_page, eligible=items, **kwargs)


class TestTemplateRegistry:

    def test_every_widget_type_has_a_template(self):
        assert set(TEMPLATES) == set(WidgetType)

    def test_unknown_type_raises_render_error(self):
        with pytest.raises(RenderError):
            render(make_widget(type='mystery'), [])


class TestCommonMarkup:

    def test_root_element(self):
        payload = render(make_widget(layout='list', theme='dark'), [snap('a')])
        assert payload.html.startswith(
            '<div class="storyslip-widget storyslip-content-list storyslip-dark storyslip-layout-list" '
            'data-widget-id="widget_test"'
        )
        assert 'data-total-pages="1"' in payload.html
        root = payload.html.split('>', 1)[0]
        # only pagination buttons carry data-page
        assert 'data-current-page="1"' in root
        assert ' data-page=' not in root

    def test_empty_content(self):
        payload = render(make_widget(), [])
        assert 'No content available' in payload.html

    def test_item_markup(self):
        item = snap('a', 'Hello', canonical_url='https://blog.example.com/hello', author_name='Ada',
                    excerpt='Short intro', categories=(NEWS,))
        html = render(make_widget(), [item]).html
        assert 'data-content-id="a"' in html
        assert 'href="https://blog.example.com/hello"' in html
        assert 'By Ada' in html
        assert 'January 5, 2024' in html
        assert '<span class="storyslip-category" data-category="news">News</span>' in html

    def test_missing_url_links_to_hash(self):
        assert 'href="#"' in render(make_widget(), [snap('a')]).html

    def test_tenant_strings_are_escaped(self):
        item = snap('a', '<script>alert(1)</script>', excerpt='"quoted" & <b>',
                    author_name='<img src=x>', canonical_url='javascript:"x"')
        widget = make_widget(settings={'title': '<h1>Title</h1>', 'description': '<i>d</i>'})
        html = render(widget, [item], search='"><script>').html
        assert '<script>' not in html
        assert '<img src=x>' not in html
        assert '&lt;script&gt;alert(1)&lt;/script&gt;' in html
        assert '&lt;h1&gt;Title&lt;/h1&gt;' in html
        assert 'javascript:&#34;x&#34;' in html

    def test_excerpt_truncation(self):
        widget = make_widget(settings={'excerpt_length': 5})
        assert 'Hello...' in render(widget, [snap('a', excerpt='Hello world')]).html

    def test_branding_can_be_hidden(self):
        assert 'Powered by' in render(make_widget(), []).html
        assert 'Powered by' not in render(make_widget(settings={'hide_branding': True}), []).html

    def test_lazy_images(self):
        item = snap('a', featured_image_url='https://cdn.example.com/a.jpg')
        assert 'loading="lazy"' in render(make_widget(), [item]).html
        widget = make_widget(performance_settings={'enable_lazy_loading': False})
        assert 'loading="lazy"' not in render(widget, [item]).html


class TestPagination:

    def test_no_pagination_for_single_page(self):
        assert 'storyslip-pagination' not in render(make_widget(), [snap('a')]).html

    def test_numbered_pagination(self):
        items = [snap(str(n)) for n in range(6)]
        html = render(make_widget(), items, page=2, per_page=2).html
        assert 'data-page="1">Previous' in html
        assert 'aria-current="page">2</button>' in html
        assert 'data-page="3">Next' in html

    def test_infinite_scroll_renders_load_more(self):
        items = [snap(str(n)) for n in range(4)]
        html = render(make_widget(settings={'enable_infinite_scroll': True}), items, per_page=2).html
        assert 'storyslip-load-more" data-page="2"' in html
        assert 'storyslip-infinite-scroll' in html

    def test_page_window(self):
        assert page_window(1, 3) == [1, 2, 3]
        assert page_window(10, 20) == [8, 9, 10, 11, 12]
        assert page_window(20, 20) == [16, 17, 18, 19, 20]


class TestBlogHub:

    def hub(self, **settings):
        return make_widget(type='blog_hub', settings=settings)

    def test_hero_is_first_item_and_removed_from_grid(self):
        items = [snap('a', 'First'), snap('b', 'Second')]
        html = render(self.hub(show_hero_section=True), items).html
        hero = html.split('storyslip-hero">', 1)[1].split('</section>', 1)[0]
        assert 'First' in hero
        main = html.split('storyslip-main">', 1)[1]
        assert 'First' not in main
        assert 'Second' in main

    def test_hero_skipped_when_searching(self):
        html = render(self.hub(show_hero_section=True), [snap('a')], search='a').html
        assert 'storyslip-hero' not in html

    def test_category_navigation(self):
        items = [snap('a', categories=(NEWS,))]
        html = render(self.hub(show_category_navigation=True), items, category='news').html
        assert 'data-category="">All</a>' in html
        assert 'storyslip-active"><a href="#" data-category="news">' in html

    def test_sidebar_sections(self):
        items = [
            snap('a', 'One', tags=(TermRef('t1', 'Python', 'python'),), published_at=datetime(2024, 2, 3)),
            snap('b', 'Two', tags=(TermRef('t1', 'Python', 'python'),), published_at=datetime(2024, 1, 3)),
        ]
        html = render(self.hub(show_recent_posts=True, show_tag_cloud=True, show_archive_links=True), items).html
        assert 'storyslip-with-sidebar' in html
        assert 'Recent Posts' in html
        assert 'Python <span class="storyslip-post-count">(2)</span>' in html
        assert 'data-archive="2024-02"' in html


class TestOtherTemplates:

    def test_category_grid_groups_by_first_category(self):
        widget = make_widget(type='category_grid', settings={'show_post_count': True})
        html = render(widget, [snap('a', categories=(NEWS,)), snap('b')]).html
        assert 'News <span class="storyslip-post-count">(1)</span>' in html
        assert 'Uncategorized' in html

    def test_search_widget_summary(self):
        html = render(make_widget(type='search_widget'), [snap('a')], search='post').html
        assert 'storyslip-search-input' in html
        assert '1 result for &quot;post&quot;' in html

    def test_featured_posts(self):
        html = render(make_widget(type='featured_posts'), [snap('a')]).html
        assert 'storyslip-featured-item' in html


class TestCssAndMeta:

    def test_css_is_scoped_to_type_and_theme(self):
        css = render(make_widget(theme='minimal'), []).css
        assert '.storyslip-widget.storyslip-content-list.storyslip-minimal {' in css

    def test_custom_css_comes_last(self):
        css = render(make_widget(styling={'custom_css': '.mine { color: red; }'}), []).css
        assert css.rstrip().endswith('.mine { color: red; }')

    def test_layout_rules(self):
        css = render(make_widget(layout='carousel'), []).css
        assert 'scroll-snap-type: x mandatory' in css

    def test_outline_buttons(self):
        css = render(make_widget(styling={'button_style': 'outline', 'button_color': '#123456'}), []).css
        assert 'border: 1px solid #123456' in css
        assert 'background: transparent' in css

    def test_structured_data(self):
        meta = render(make_widget(), [snap('a', 'Hello')]).meta
        assert meta['structured_data']['@type'] == 'ItemList'
        assert meta['structured_data']['itemListElement'][0]['position'] == 1
        assert meta['pagination']['total_items'] == 1

    def test_js_hydrates_runtime(self):
        js = render(make_widget(), []).js
        assert 'StorySlipWidget.hydrate' in js
        assert '"widgetId": "widget_test"' in js


class TestRenderPage:

    def test_standalone_document(self):
        payload = RenderedWidgetPayload(html='<div>x</div>', css='a{}', js='1;',
                                        meta={'title': 'T & U', 'description': 'D'})
        page = render_page(payload)
        assert page.startswith('<!DOCTYPE html>')
        assert '<title>T &amp; U</title>' in page
        assert '<style>a{}</style>' in page
        assert '<script>1;</script>' in page

    def test_style_cannot_break_out(self):
        payload = RenderedWidgetPayload(html='', css='</style><script>x</script>')
        assert render_page(payload).count('</style>') == 1
