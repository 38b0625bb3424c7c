"""
Widget Analytics Service

Records public tracking events (view, click, interaction) into per-day
aggregates and reports them back to website members.

Usage:
    service = WidgetAnalyticsService()
    service.track(widget_id, 'click', {'content_id': 'abc'}, website_id)
    summary = service.summary(widget_id, user_id, start, end)
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Optional

from ..extensions import db
from ..models.content import ContentItem
from ..models.widget import WidgetConfiguration
from ..models.widget_analytics import WidgetAnalytics
from ..utils.exceptions import ValidationError, WidgetNotFoundError
from .authorization import MEMBER_ROLES, AuthorizeFn, authorize

logger = logging.getLogger(__name__)


EVENT_TYPES = ('view', 'click', 'interaction')
POPULAR_POSTS_LIMIT = 10
DEFAULT_SUMMARY_DAYS = 30


def _increment(mapping: Optional[dict], key: str) -> dict:
    """Return a copy of mapping with key incremented (new object for change tracking)."""
    updated = dict(mapping or {})
    updated[key] = updated.get(key, 0) + 1
    return updated


def _merge_counts(target: Dict[str, int], source: Optional[dict]) -> None:
    for key, count in (source or {}).items():
        target[key] = target.get(key, 0) + (count or 0)


class WidgetAnalyticsService:
    """Per-widget daily analytics."""

    def __init__(self, authorize_fn: AuthorizeFn = authorize,
                 clock: Callable[[], datetime] = datetime.utcnow):
        self.authorize = authorize_fn
        self.clock = clock

    def today(self) -> date:
        return self.clock().date()

    def initialize(self, widget_id: str, day: date = None) -> WidgetAnalytics:
        """Create the zeroed record for a day (idempotent). Caller commits."""
        return WidgetAnalytics.get_or_create(widget_id, day or self.today())

    def track(self, widget_id: str, event_type: str, event_data: Optional[dict] = None,
              website_id: str = None) -> WidgetAnalytics:
        """
        Apply one tracking event to today's aggregate.

        Raises:
            ValidationError: Unknown event type or website mismatch
            WidgetNotFoundError: Widget does not exist
        """
        if event_type not in EVENT_TYPES:
            raise ValidationError(
                f"Invalid event_type. Must be one of: {', '.join(EVENT_TYPES)}", 'event_type'
            )
        if event_data is not None and not isinstance(event_data, dict):
            raise ValidationError('event_data must be an object', 'event_data')
        event_data = event_data or {}

        widget = db.session.get(WidgetConfiguration, widget_id)
        if widget is None:
            raise WidgetNotFoundError(widget_id)
        if website_id != widget.website_id:
            raise ValidationError('Widget does not belong to this website', 'website_id')

        # Row lock serializes concurrent events for the same widget and day
        record = WidgetAnalytics.get_or_create(widget_id, self.today(), lock=True)

        if event_type == 'view':
            record.views += 1
        elif event_type == 'click':
            record.clicks += 1
            content_id = event_data.get('content_id')
            if content_id:
                record.popular_posts = self._bump_popular_post(
                    record.popular_posts, website_id, str(content_id), event_data.get('title')
                )
        else:
            record.interactions += 1

        device = event_data.get('device')
        if device:
            record.device_breakdown = _increment(record.device_breakdown, str(device))
        source = event_data.get('source') or event_data.get('referrer')
        if source:
            record.traffic_sources = _increment(record.traffic_sources, str(source))
        country = event_data.get('country')
        if country:
            record.geographic_data = _increment(record.geographic_data, str(country))

        record.recalculate_engagement()
        db.session.commit()

        logger.debug('Tracked %s for widget %s', event_type, widget_id)
        return record

    def _bump_popular_post(self, popular_posts, website_id: str, content_id: str, title: str = None) -> list:
        posts = [dict(p) for p in (popular_posts or [])]
        for post in posts:
            if post.get('post_id') == content_id:
                post['clicks'] = post.get('clicks', 0) + 1
                break
        else:
            if not title:
                item = db.session.get(ContentItem, content_id)
                title = item.title if item and item.website_id == website_id else None
            posts.append({'post_id': content_id, 'title': title, 'clicks': 1})
        posts.sort(key=lambda p: (-p.get('clicks', 0), p.get('post_id')))
        return posts

    def summary(self, widget_id: str, requester_id: str, start: date = None,
                end: date = None) -> Dict[str, Any]:
        """
        Aggregate analytics over [start, end] for a website member.

        Defaults to the last DEFAULT_SUMMARY_DAYS days.
        """
        widget = db.session.get(WidgetConfiguration, widget_id)
        if widget is None:
            raise WidgetNotFoundError(widget_id)
        self.authorize(requester_id, widget.website_id, MEMBER_ROLES).raise_for_status()

        end = end or self.today()
        start = start or end - timedelta(days=DEFAULT_SUMMARY_DAYS - 1)
        if start > end:
            raise ValidationError('start must be on or before end', 'start')

        records = (
            WidgetAnalytics.query
            .filter(
                WidgetAnalytics.widget_id == widget_id,
                WidgetAnalytics.date >= start,
                WidgetAnalytics.date <= end,
            )
            .order_by(WidgetAnalytics.date.asc())
            .all()
        )

        views = sum(r.views for r in records)
        clicks = sum(r.clicks for r in records)
        interactions = sum(r.interactions for r in records)

        popular: Dict[str, dict] = {}
        traffic_sources: Dict[str, int] = {}
        devices: Dict[str, int] = {}
        geography: Dict[str, int] = {}
        for record in records:
            for post in record.popular_posts or []:
                entry = popular.setdefault(
                    post['post_id'], {'post_id': post['post_id'], 'title': post.get('title'), 'clicks': 0}
                )
                entry['clicks'] += post.get('clicks', 0)
                entry['title'] = entry['title'] or post.get('title')
            _merge_counts(traffic_sources, record.traffic_sources)
            _merge_counts(devices, record.device_breakdown)
            _merge_counts(geography, record.geographic_data)

        top_posts = sorted(popular.values(), key=lambda p: (-p['clicks'], p['post_id']))[:POPULAR_POSTS_LIMIT]

        return {
            'widget_id': widget_id,
            'start': start.isoformat(),
            'end': end.isoformat(),
            'totals': {
                'views': views,
                'clicks': clicks,
                'interactions': interactions,
                'engagement_rate': round(clicks / views * 100, 2) if views else 0.0,
            },
            'popular_posts': top_posts,
            'traffic_sources': traffic_sources,
            'device_breakdown': devices,
            'geographic_data': geography,
            'daily': [r.to_dict() for r in records],
        }
