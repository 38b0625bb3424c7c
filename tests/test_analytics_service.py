"""
Tests for WidgetAnalyticsService.

Tests cover:
- View/click/interaction counters and engagement rate
- Popular posts, device, traffic and geographic breakdowns
- Validation of event type and website
- Row locking and the first-event-of-day insert race
- Summary aggregation across days and membership checks
"""
from datetime import date, datetime
from unittest.mock import patch

import pytest
from sqlalchemy.dialects import postgresql

from storyslip.extensions import db
from storyslip.models import WidgetAnalytics
from storyslip.services.analytics_service import WidgetAnalyticsService
from storyslip.services.widget_configuration_service import WidgetConfigurationService
from storyslip.utils.exceptions import AuthorizationError, ValidationError, WidgetNotFoundError


class SettableClock:

    def __init__(self, now=datetime(2024, 6, 1, 9, 0)):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return SettableClock()


@pytest.fixture
def analytics(app, clock):
    return WidgetAnalyticsService(clock=clock)


@pytest.fixture
def widget(app, website, clock):
    return WidgetConfigurationService(clock=clock).create(
        website.id, 'user-owner', {'name': 'Blog', 'type': 'content_list'}
    )


class TestTrack:

    def test_counters_and_engagement(self, analytics, widget, website):
        for _ in range(4):
            analytics.track(widget.id, 'view', {}, website.id)
        analytics.track(widget.id, 'click', {'content_id': 'post-1', 'title': 'Hello'}, website.id)
        record = analytics.track(widget.id, 'interaction', {'action': 'paginate'}, website.id)

        assert record.views == 4
        assert record.clicks == 1
        assert record.interactions == 1
        assert record.engagement_rate == 25.0

    def test_engagement_zero_without_views(self, analytics, widget, website):
        record = analytics.track(widget.id, 'click', {'content_id': 'post-1'}, website.id)
        assert record.engagement_rate == 0.0

    def test_popular_posts_sorted_by_clicks(self, analytics, widget, website):
        analytics.track(widget.id, 'click', {'content_id': 'post-1', 'title': 'One'}, website.id)
        analytics.track(widget.id, 'click', {'content_id': 'post-2', 'title': 'Two'}, website.id)
        record = analytics.track(widget.id, 'click', {'content_id': 'post-2'}, website.id)

        assert record.popular_posts == [
            {'post_id': 'post-2', 'title': 'Two', 'clicks': 2},
            {'post_id': 'post-1', 'title': 'One', 'clicks': 1},
        ]

    def test_popular_post_title_looked_up_from_content(self, analytics, widget, website, make_content):
        item = make_content('Stored title')
        record = analytics.track(widget.id, 'click', {'content_id': item.id}, website.id)
        assert record.popular_posts[0]['title'] == 'Stored title'

    def test_breakdowns(self, analytics, widget, website):
        analytics.track(widget.id, 'view', {'device': 'mobile', 'source': 'google.com', 'country': 'NZ'},
                        website.id)
        record = analytics.track(widget.id, 'view', {'device': 'mobile', 'referrer': 'bing.com'}, website.id)

        assert record.device_breakdown == {'mobile': 2}
        assert record.traffic_sources == {'google.com': 1, 'bing.com': 1}
        assert record.geographic_data == {'NZ': 1}

    def test_new_day_gets_new_record(self, analytics, widget, website, clock):
        analytics.track(widget.id, 'view', {}, website.id)
        clock.now = datetime(2024, 6, 2, 9, 0)
        analytics.track(widget.id, 'view', {}, website.id)
        assert WidgetAnalytics.query.filter_by(widget_id=widget.id).count() == 2

    def test_invalid_event_type(self, analytics, widget, website):
        with pytest.raises(ValidationError) as exc:
            analytics.track(widget.id, 'hover', {}, website.id)
        assert exc.value.code == 'INVALID_EVENT_TYPE'

    def test_website_mismatch(self, analytics, widget, other_website):
        with pytest.raises(ValidationError) as exc:
            analytics.track(widget.id, 'view', {}, other_website.id)
        assert exc.value.field == 'website_id'

    def test_missing_widget(self, analytics, website):
        with pytest.raises(WidgetNotFoundError):
            analytics.track('widget_missing', 'view', {}, website.id)


class TestConcurrentTracking:

    def test_day_row_is_selected_for_update(self, app):
        query = WidgetAnalytics.day_query('widget_1', date(2024, 6, 1), lock=True)
        sql = str(query.statement.compile(dialect=postgresql.dialect()))
        assert 'FOR UPDATE' in sql

    def test_track_locks_the_day_row(self, analytics, widget, website):
        with patch.object(WidgetAnalytics, 'get_or_create', wraps=WidgetAnalytics.get_or_create) as get_or_create:
            analytics.track(widget.id, 'view', {}, website.id)
        assert get_or_create.call_args[1] == {'lock': True}

    def test_losing_the_insert_race_reuses_existing_row(self, analytics, widget, website, clock):
        widget_id, website_id = widget.id, website.id
        existing = WidgetAnalytics(widget_id=widget_id, date=clock.now.date(), views=1, clicks=0,
                                   interactions=0, engagement_rate=0.0, popular_posts=[],
                                   traffic_sources={}, device_breakdown={}, geographic_data={})
        db.session.add(existing)
        db.session.commit()

        original = WidgetAnalytics.get_for_day
        lookups = []

        def lookup_after_concurrent_insert(widget_id, day, lock=False):
            lookups.append(day)
            # first lookup ran before the other request committed its row
            return None if len(lookups) == 1 else original(widget_id, day, lock=lock)

        with patch.object(WidgetAnalytics, 'get_for_day', side_effect=lookup_after_concurrent_insert):
            record = analytics.track(widget_id, 'view', {}, website_id)

        assert len(lookups) == 2
        assert record.views == 2
        assert WidgetAnalytics.query.filter_by(widget_id=widget_id).count() == 1


class TestSummary:

    def test_aggregates_range(self, analytics, widget, website, clock):
        analytics.track(widget.id, 'view', {'device': 'desktop'}, website.id)
        analytics.track(widget.id, 'click', {'content_id': 'p1', 'title': 'P1'}, website.id)
        clock.now = datetime(2024, 6, 3, 9, 0)
        analytics.track(widget.id, 'view', {'device': 'desktop'}, website.id)
        analytics.track(widget.id, 'click', {'content_id': 'p1'}, website.id)

        summary = analytics.summary(widget.id, 'user-viewer', date(2024, 6, 1), date(2024, 6, 3))

        assert summary['totals'] == {'views': 2, 'clicks': 2, 'interactions': 0, 'engagement_rate': 100.0}
        assert summary['popular_posts'] == [{'post_id': 'p1', 'title': 'P1', 'clicks': 2}]
        assert summary['device_breakdown'] == {'desktop': 2}
        assert [d['date'] for d in summary['daily']] == ['2024-06-01', '2024-06-03']

    def test_range_excludes_outside_days(self, analytics, widget, website, clock):
        analytics.track(widget.id, 'view', {}, website.id)
        summary = analytics.summary(widget.id, 'user-owner', date(2024, 6, 2), date(2024, 6, 5))
        assert summary['totals']['views'] == 0
        assert summary['daily'] == []

    def test_defaults_to_last_30_days(self, analytics, widget):
        summary = analytics.summary(widget.id, 'user-owner')
        assert summary['end'] == '2024-06-01'
        assert summary['start'] == '2024-05-03'

    def test_start_after_end(self, analytics, widget):
        with pytest.raises(ValidationError):
            analytics.summary(widget.id, 'user-owner', date(2024, 6, 5), date(2024, 6, 1))

    def test_requires_membership(self, analytics, widget):
        with pytest.raises(AuthorizationError):
            analytics.summary(widget.id, 'user-outsider')
