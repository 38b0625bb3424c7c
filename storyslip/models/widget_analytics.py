"""
Widget analytics model: one aggregate row per widget per day.
"""
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from ..extensions import db


class WidgetAnalytics(db.Model):
    """
    Daily view/click aggregate for a widget.

    Rows are created lazily on the first event of a day and updated
    incrementally by tracking events under a row lock.
    """
    __tablename__ = 'widget_analytics'

    id = db.Column(db.Integer, primary_key=True)
    widget_id = db.Column(db.String(64), db.ForeignKey('widget_configurations.id'),
                          nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)

    views = db.Column(db.Integer, default=0, nullable=False)
    clicks = db.Column(db.Integer, default=0, nullable=False)
    interactions = db.Column(db.Integer, default=0, nullable=False)
    # Percentage, clicks / views * 100
    engagement_rate = db.Column(db.Float, default=0.0, nullable=False)

    # [{'post_id', 'title', 'clicks'}]
    popular_posts = db.Column(db.JSON, nullable=False, default=list)
    traffic_sources = db.Column(db.JSON, nullable=False, default=dict)
    device_breakdown = db.Column(db.JSON, nullable=False, default=dict)
    geographic_data = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('widget_id', 'date', name='unique_widget_analytics_date'),
    )

    def __repr__(self):
        return f'<WidgetAnalytics {self.widget_id} {self.date} views={self.views} clicks={self.clicks}>'

    def recalculate_engagement(self):
        self.engagement_rate = round(self.clicks / self.views * 100, 2) if self.views else 0.0

    def to_dict(self):
        return {
            'widget_id': self.widget_id,
            'date': self.date.isoformat() if self.date else None,
            'views': self.views,
            'clicks': self.clicks,
            'interactions': self.interactions,
            'engagement_rate': self.engagement_rate,
            'popular_posts': self.popular_posts or [],
            'traffic_sources': self.traffic_sources or {},
            'device_breakdown': self.device_breakdown or {},
            'geographic_data': self.geographic_data or {},
        }

    @classmethod
    def day_query(cls, widget_id: str, day, lock: bool = False):
        query = cls.query.filter_by(widget_id=widget_id, date=day)
        if lock:
            # refresh attributes already loaded into the session
            query = query.with_for_update().populate_existing()
        return query

    @classmethod
    def get_for_day(cls, widget_id: str, day, lock: bool = False) -> 'WidgetAnalytics':
        return cls.day_query(widget_id, day, lock=lock).first()

    @classmethod
    def get_or_create(cls, widget_id: str, day, lock: bool = False) -> 'WidgetAnalytics':
        """
        Get the row for a day, creating a zeroed one if missing.

        With lock=True the row is selected FOR UPDATE so concurrent
        trackers apply their increments one after another. When another
        transaction inserts the day's row first, the unique constraint
        fails; the session is rolled back and the winner's row is used.
        """
        record = cls.get_for_day(widget_id, day, lock=lock)
        if record:
            return record

        record = cls(
            widget_id=widget_id,
            date=day,
            views=0,
            clicks=0,
            interactions=0,
            engagement_rate=0.0,
            popular_posts=[],
            traffic_sources={},
            device_breakdown={},
            geographic_data={},
        )
        db.session.add(record)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            record = cls.get_for_day(widget_id, day, lock=lock)
            if record is None:
                raise
        return record
