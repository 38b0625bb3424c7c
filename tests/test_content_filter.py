"""
Tests for the content filter and sort engine.

Tests cover:
- Published-only and featured-only filtering
- Include/exclude by category, tag and author
- Date range bounds
- Search and request-level narrowing
- Sorting with stable id tie-breaks
- Pagination edges
"""
from datetime import datetime

import pytest

from storyslip.services.content_filter import (
    filter_content,
    paginate,
    parse_date_bound,
    select_content,
    sort_content,
)
from storyslip.services.content_store import ContentSnapshot, TermRef, estimate_read_time


NEWS = TermRef('cat-news', 'News', 'news')
GUIDES = TermRef('cat-guides', 'Guides', 'guides')
PYTHON = TermRef('tag-python', 'Python', 'python')


def snap(id, title='Post', status='published', published_at=datetime(2024, 1, 1), **fields):
    return ContentSnapshot(id=id, title=title, status=status, published_at=published_at, **fields)


@pytest.fixture
def items():
    return [
        snap('a', 'Alpha release notes', published_at=datetime(2024, 3, 1), categories=(NEWS,),
             author_id='u1', author_name='Ada', view_count=10),
        snap('b', 'Beta guide', published_at=datetime(2024, 2, 1), categories=(GUIDES,), tags=(PYTHON,),
             author_id='u2', author_name='Bob', view_count=50, is_featured=True),
        snap('c', 'Gamma draft', status='draft', published_at=None),
        snap('d', 'Delta guide', published_at=datetime(2024, 1, 15), categories=(GUIDES, NEWS),
             excerpt='Learn python fast', author_id='u1', author_name='Ada', view_count=50),
    ]


class TestFilterContent:

    def test_published_only_by_default(self, items):
        result = filter_content(items, {})
        assert [i.id for i in result] == ['a', 'b', 'd']

    def test_published_only_disabled_keeps_drafts(self, items):
        result = filter_content(items, {'published_only': False})
        assert len(result) == 4

    def test_featured_only(self, items):
        result = filter_content(items, {'featured_only': True})
        assert [i.id for i in result] == ['b']

    def test_include_categories_matches_id_or_slug(self, items):
        by_slug = filter_content(items, {'include_categories': ['news']})
        by_id = filter_content(items, {'include_categories': ['cat-news']})
        assert [i.id for i in by_slug] == ['a', 'd']
        assert [i.id for i in by_id] == ['a', 'd']

    def test_exclude_wins_over_include(self, items):
        result = filter_content(items, {'include_categories': ['guides'], 'exclude_categories': ['news']})
        assert [i.id for i in result] == ['b']

    def test_tag_filters(self, items):
        assert [i.id for i in filter_content(items, {'include_tags': ['python']})] == ['b']
        assert [i.id for i in filter_content(items, {'exclude_tags': ['tag-python']})] == ['a', 'd']

    def test_author_filters_match_id_or_name(self, items):
        assert [i.id for i in filter_content(items, {'include_authors': ['Ada']})] == ['a', 'd']
        assert [i.id for i in filter_content(items, {'exclude_authors': ['u1']})] == ['b']

    def test_date_range_is_inclusive_of_whole_end_day(self, items):
        filters = {'date_range_start': '2024-01-15', 'date_range_end': '2024-02-01'}
        assert [i.id for i in filter_content(items, filters)] == ['b', 'd']

    def test_date_range_drops_undated_items(self, items):
        filters = {'published_only': False, 'date_range_start': '2023-01-01'}
        assert 'c' not in [i.id for i in filter_content(items, filters)]

    def test_search_is_case_insensitive_over_title_and_excerpt(self, items):
        assert [i.id for i in filter_content(items, {}, search='GUIDE')] == ['b', 'd']
        assert [i.id for i in filter_content(items, {}, search='python')] == ['d']

    def test_blank_search_is_ignored(self, items):
        assert len(filter_content(items, {}, search='   ')) == 3

    def test_request_narrowing(self, items):
        assert [i.id for i in filter_content(items, {}, category='news')] == ['a', 'd']
        assert [i.id for i in filter_content(items, {}, tag='python')] == ['b']
        assert [i.id for i in filter_content(items, {}, author='Bob')] == ['b']


class TestSortContent:

    def test_date_desc_is_default(self, items):
        published = filter_content(items, {})
        assert [i.id for i in sort_content(published)] == ['a', 'b', 'd']

    def test_title_asc(self, items):
        published = filter_content(items, {})
        assert [i.id for i in sort_content(published, 'title', 'asc')] == ['a', 'b', 'd']

    def test_ties_break_by_id_ascending_in_both_directions(self, items):
        published = filter_content(items, {})
        # b and d both have 50 views
        assert [i.id for i in sort_content(published, 'views', 'desc')] == ['b', 'd', 'a']
        assert [i.id for i in sort_content(published, 'views', 'asc')] == ['a', 'b', 'd']

    def test_unknown_sort_field_falls_back_to_date(self, items):
        published = filter_content(items, {})
        assert [i.id for i in sort_content(published, 'bogus')] == ['a', 'b', 'd']

    def test_custom_uses_sort_position(self):
        ordered = sort_content([snap('x', sort_position=2), snap('y', sort_position=1)], 'custom', 'asc')
        assert [i.id for i in ordered] == ['y', 'x']

    def test_input_is_not_mutated(self, items):
        before = [i.id for i in items]
        sort_content(items, 'title', 'desc')
        assert [i.id for i in items] == before


class TestPagination:

    def test_totals(self):
        page = paginate([snap(str(n)) for n in range(5)], page=2, per_page=2)
        assert [i.id for i in page.items] == ['2', '3']
        assert page.total_items == 5
        assert page.total_pages == 3
        assert page.has_next and page.has_previous

    def test_page_below_one_is_clamped(self):
        page = paginate([snap('a')], page=0, per_page=10)
        assert page.page == 1
        assert len(page.items) == 1

    def test_page_past_end_is_empty_with_totals(self):
        page = paginate([snap('a'), snap('b')], page=9, per_page=1)
        assert page.items == []
        assert page.total_pages == 2
        assert not page.has_next

    def test_empty_input(self):
        page = paginate([], page=1, per_page=10)
        assert page.total_pages == 0
        assert page.to_dict()['current_page'] == 1

    def test_select_content_is_deterministic(self, items):
        filters = {'sort_by': 'views', 'sort_order': 'desc'}
        first = select_content(items, filters, page=1, per_page=2)
        second = select_content(list(reversed(items)), filters, page=1, per_page=2)
        assert [i.id for i in first.items] == [i.id for i in second.items] == ['b', 'd']


class TestHelpers:

    def test_parse_date_bound_handles_z_suffix(self):
        assert parse_date_bound('2024-01-01T12:00:00Z') == datetime(2024, 1, 1, 12, 0)

    def test_parse_date_bound_converts_offsets_to_utc(self):
        assert parse_date_bound('2024-01-01T12:00:00+02:00') == datetime(2024, 1, 1, 10, 0)

    def test_parse_date_bound_end_of_day(self):
        assert parse_date_bound('2024-01-01', end_of_day=True).hour == 23

    def test_parse_date_bound_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_date_bound('yesterday')

    def test_read_time(self):
        assert estimate_read_time(None) is None
        assert estimate_read_time('word ' * 10) == 1
        assert estimate_read_time('word ' * 1000) == 5
