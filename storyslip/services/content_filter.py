"""
Content Filter & Sort Engine

Pure selection of the content a widget shows: configuration filters,
request-level narrowing (search, category, tag, author), ordering and
pagination. No I/O; identical inputs always yield identical output.

Usage:
    page = select_content(items, widget.get_content_filters(), page=2, per_page=10)
    page.items, page.total_pages
"""
import math
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Iterable, List, Optional, Sequence

from .content_store import ContentSnapshot


SORT_FIELDS = ('date', 'title', 'author', 'category', 'views', 'custom')
SORT_ORDERS = ('asc', 'desc')


@dataclass(frozen=True)
class ContentPage:
    """One page of selected content plus pagination totals."""
    items: List[ContentSnapshot]
    page: int
    per_page: int
    total_items: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def to_dict(self) -> dict:
        return {
            'current_page': self.page,
            'per_page': self.per_page,
            'total_items': self.total_items,
            'total_pages': self.total_pages,
            'has_next': self.has_next,
            'has_previous': self.has_previous,
        }


def parse_date_bound(value, end_of_day: bool = False) -> Optional[datetime]:
    """Parse a date-range bound into a naive UTC datetime."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
        # A bare date as upper bound covers the whole day
        if end_of_day and len(text) == 10:
            parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _normalize(values) -> set:
    return {str(v) for v in (values or []) if v not in (None, '')}


def _term_keys(terms) -> set:
    keys = set()
    for term in terms:
        keys.add(term.id)
        keys.add(term.slug)
    return keys


def _apply_include_exclude(items: Iterable[ContentSnapshot], include, exclude, keys_for) -> List[ContentSnapshot]:
    include = _normalize(include)
    exclude = _normalize(exclude)
    selected = []
    for item in items:
        keys = keys_for(item)
        if include and not (keys & include):
            continue
        if exclude and (keys & exclude):
            continue
        selected.append(item)
    return selected


def _author_keys(item: ContentSnapshot) -> set:
    return {k for k in (item.author_id, item.author_name) if k}


def _sort_key(sort_by: str):
    if sort_by == 'title':
        return lambda item: (item.title or '').casefold()
    if sort_by == 'author':
        return lambda item: (item.author_name or '').casefold()
    if sort_by == 'category':
        return lambda item: item.categories[0].name.casefold() if item.categories else ''
    if sort_by == 'views':
        return lambda item: item.view_count
    if sort_by == 'custom':
        return lambda item: item.sort_position
    # date; unpublished items sort as oldest
    return lambda item: item.published_at or datetime.min


def filter_content(
    items: Sequence[ContentSnapshot],
    filters: dict,
    search: str = None,
    category: str = None,
    tag: str = None,
    author: str = None,
) -> List[ContentSnapshot]:
    """Apply configuration filters and request narrowing, unsorted."""
    filters = filters or {}
    selected = list(items)

    if filters.get('published_only', True):
        selected = [i for i in selected if i.status == 'published']
    if filters.get('featured_only'):
        selected = [i for i in selected if i.is_featured]

    selected = _apply_include_exclude(
        selected, filters.get('include_categories'), filters.get('exclude_categories'),
        lambda i: _term_keys(i.categories),
    )
    selected = _apply_include_exclude(
        selected, filters.get('include_tags'), filters.get('exclude_tags'),
        lambda i: _term_keys(i.tags),
    )
    selected = _apply_include_exclude(
        selected, filters.get('include_authors'), filters.get('exclude_authors'),
        _author_keys,
    )

    start = parse_date_bound(filters.get('date_range_start'))
    end = parse_date_bound(filters.get('date_range_end'), end_of_day=True)
    if start or end:
        selected = [
            i for i in selected
            if i.published_at is not None
            and (start is None or i.published_at >= start)
            and (end is None or i.published_at <= end)
        ]

    if search and search.strip():
        needle = search.strip().casefold()
        selected = [
            i for i in selected
            if needle in (i.title or '').casefold() or needle in (i.excerpt or '').casefold()
        ]
    if category:
        selected = [i for i in selected if any(c.matches(category) for c in i.categories)]
    if tag:
        selected = [i for i in selected if any(t.matches(tag) for t in i.tags)]
    if author:
        selected = [i for i in selected if author in _author_keys(i)]

    return selected


def sort_content(items: Iterable[ContentSnapshot], sort_by: str = 'date',
                 sort_order: str = 'desc') -> List[ContentSnapshot]:
    """
    Order items by sort_by; ties always fall back to id ascending.

    Two stable passes: id ascending first, then the sort field in the
    requested direction. Python's sort keeps equal elements in their prior
    order even with reverse=True, so ties stay id-ascending.
    """
    if sort_by not in SORT_FIELDS:
        sort_by = 'date'
    ordered = sorted(items, key=lambda item: item.id)
    return sorted(ordered, key=_sort_key(sort_by), reverse=(sort_order != 'asc'))


def paginate(items: Sequence[ContentSnapshot], page: int, per_page: int) -> ContentPage:
    per_page = max(1, int(per_page or 1))
    page = max(1, int(page or 1))
    total = len(items)
    total_pages = math.ceil(total / per_page) if total else 0
    offset = (page - 1) * per_page
    return ContentPage(
        items=list(items[offset:offset + per_page]),
        page=page,
        per_page=per_page,
        total_items=total,
        total_pages=total_pages,
    )


def select_content(
    items: Sequence[ContentSnapshot],
    filters: dict,
    page: int = 1,
    per_page: int = 10,
    search: str = None,
    category: str = None,
    tag: str = None,
    author: str = None,
) -> ContentPage:
    """
    Filter, sort and paginate a website's content for a widget.

    Args:
        items: Every content item of the website
        filters: Merged content_filters section
        page: 1-based page; values below 1 are clamped, values past the
            end yield an empty page with correct totals
        per_page: Page size (settings.posts_per_page)
        search, category, tag, author: Optional request-level narrowing

    Returns:
        ContentPage
    """
    filters = filters or {}
    selected = filter_content(items, filters, search=search, category=category, tag=tag, author=author)
    ordered = sort_content(selected, filters.get('sort_by', 'date'), filters.get('sort_order', 'desc'))
    return paginate(ordered, page, per_page)
