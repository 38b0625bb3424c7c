"""
Widget Configuration Model

Database model for embeddable widget configurations, one row per widget
instance. Each configuration belongs to exactly one website and stores its
settings, styling, content filters, SEO and performance options as JSON
sections merged over the defaults below.
"""
import copy
import uuid
from datetime import datetime
from enum import Enum
from ..extensions import db


class WidgetType(str, Enum):
    """Types of widgets available in the system."""
    BLOG_HUB = 'blog_hub'  # Hero, search, category nav, sidebar
    CONTENT_LIST = 'content_list'  # Simple list of posts
    FEATURED_POSTS = 'featured_posts'  # Featured posts showcase
    CATEGORY_GRID = 'category_grid'  # Posts grouped by category
    SEARCH_WIDGET = 'search_widget'  # Search box with results


class WidgetLayout(str, Enum):
    GRID = 'grid'
    LIST = 'list'
    MASONRY = 'masonry'
    CAROUSEL = 'carousel'
    MAGAZINE = 'magazine'


class WidgetTheme(str, Enum):
    MODERN = 'modern'
    MINIMAL = 'minimal'
    CLASSIC = 'classic'
    MAGAZINE = 'magazine'
    DARK = 'dark'
    CUSTOM = 'custom'


# JSON sections stored on every configuration
CONFIG_SECTIONS = ('settings', 'styling', 'content_filters', 'seo_settings', 'performance_settings')

# Changes to these fields invalidate the generated embed code
EMBED_FIELDS = ('type', 'layout', 'theme', 'settings', 'styling')


DEFAULT_SETTINGS = {
    # Display
    'posts_per_page': 10,
    'show_excerpts': True,
    'excerpt_length': 150,
    'show_author': True,
    'show_date': True,
    'show_categories': True,
    'show_tags': False,
    'show_read_time': False,
    'show_featured_image': True,

    # Navigation
    'enable_pagination': True,
    'enable_infinite_scroll': False,
    'enable_search': False,
    'enable_filtering': False,
    'enable_sorting': False,

    # Blog hub
    'show_hero_section': False,
    'hero_post_id': None,
    'show_category_navigation': False,
    'show_tag_cloud': False,
    'show_archive_links': False,
    'show_recent_posts': False,
    'recent_posts_count': 5,

    # Organization
    'group_by_category': False,
    'show_post_count': False,

    # Header and branding
    'title': None,
    'description': None,
    'hide_branding': False,
}

DEFAULT_STYLING = {
    # Layout
    'container_width': '1200px',
    'container_padding': '1rem',
    'grid_columns': 3,
    'grid_gap': '1.5rem',

    # Typography
    'font_family': 'system-ui, -apple-system, sans-serif',
    'heading_font_size': '1.5rem',
    'body_font_size': '1rem',
    'line_height': '1.6',

    # Colors
    'primary_color': '#3b82f6',
    'secondary_color': '#1f2937',
    'text_color': '#333333',
    'background_color': '#ffffff',
    'border_color': '#e5e7eb',
    'hover_color': '#2563eb',

    # Cards
    'card_background': '#ffffff',
    'card_border_radius': '8px',
    'card_shadow': '0 1px 3px rgba(0, 0, 0, 0.1)',
    'card_padding': '1rem',

    # Buttons
    'button_style': 'solid',  # solid, outline, ghost
    'button_color': '#3b82f6',
    'button_hover_color': '#2563eb',

    'custom_css': '',
}

DEFAULT_CONTENT_FILTERS = {
    'include_categories': [],
    'exclude_categories': [],
    'include_tags': [],
    'exclude_tags': [],
    'include_authors': [],
    'exclude_authors': [],
    'published_only': True,
    'featured_only': False,
    'date_range_start': None,
    'date_range_end': None,
    'content_types': [],
    'sort_by': 'date',  # date, title, author, category, views, custom
    'sort_order': 'desc',
}

DEFAULT_SEO_SETTINGS = {
    'meta_title': None,
    'meta_description': None,
    'canonical_url': None,
    'og_title': None,
    'og_description': None,
    'og_image': None,
    'twitter_card': 'summary_large_image',
    'structured_data_enabled': True,
    'sitemap_included': False,
}

DEFAULT_PERFORMANCE_SETTINGS = {
    'enable_caching': True,
    'cache_duration': 300,  # seconds
    'enable_lazy_loading': True,
    'image_optimization': True,
    'preload_next_page': False,
}

DEFAULT_SECTIONS = {
    'settings': DEFAULT_SETTINGS,
    'styling': DEFAULT_STYLING,
    'content_filters': DEFAULT_CONTENT_FILTERS,
    'seo_settings': DEFAULT_SEO_SETTINGS,
    'performance_settings': DEFAULT_PERFORMANCE_SETTINGS,
}


# Pre-built widget templates
WIDGET_TEMPLATES = {
    'modern-blog-hub': {
        'name': 'Modern Blog Hub',
        'description': 'A modern, clean blog hub with grid layout and search functionality',
        'category': 'Blog',
        'type': WidgetType.BLOG_HUB.value,
        'layout': WidgetLayout.GRID.value,
        'theme': WidgetTheme.MODERN.value,
        'is_premium': False,
        'settings': {
            'posts_per_page': 12, 'show_excerpts': True, 'excerpt_length': 150,
            'show_author': True, 'show_date': True, 'show_categories': True,
            'enable_search': True, 'enable_filtering': True, 'show_hero_section': True,
            'show_category_navigation': True, 'show_recent_posts': True, 'recent_posts_count': 5,
        },
        'styling': {
            'container_width': '1200px', 'grid_columns': 3, 'grid_gap': '2rem',
            'primary_color': '#3b82f6', 'card_border_radius': '12px',
            'card_shadow': '0 4px 6px -1px rgba(0, 0, 0, 0.1)',
        },
    },
    'minimal-content-list': {
        'name': 'Minimal Content List',
        'description': 'A clean, minimal list view for blog posts',
        'category': 'Blog',
        'type': WidgetType.CONTENT_LIST.value,
        'layout': WidgetLayout.LIST.value,
        'theme': WidgetTheme.MINIMAL.value,
        'is_premium': False,
        'settings': {
            'posts_per_page': 10, 'show_excerpts': True, 'excerpt_length': 200,
            'show_author': True, 'show_date': True, 'enable_pagination': True,
        },
        'styling': {
            'container_width': '800px', 'primary_color': '#1f2937',
            'font_family': 'system-ui, sans-serif',
        },
    },
    'magazine-style-hub': {
        'name': 'Magazine Style Hub',
        'description': 'A magazine-style blog hub with featured posts and categories',
        'category': 'Blog',
        'type': WidgetType.BLOG_HUB.value,
        'layout': WidgetLayout.MAGAZINE.value,
        'theme': WidgetTheme.MAGAZINE.value,
        'is_premium': True,
        'settings': {
            'posts_per_page': 15, 'show_excerpts': True, 'show_featured_image': True,
            'show_hero_section': True, 'show_category_navigation': True,
            'group_by_category': True,
        },
        'styling': {
            'container_width': '1400px', 'grid_columns': 4,
            'primary_color': '#dc2626', 'secondary_color': '#fbbf24',
        },
    },
    'featured-posts-carousel': {
        'name': 'Featured Posts Carousel',
        'description': 'A carousel widget for showcasing featured blog posts',
        'category': 'Featured',
        'type': WidgetType.FEATURED_POSTS.value,
        'layout': WidgetLayout.CAROUSEL.value,
        'theme': WidgetTheme.MODERN.value,
        'is_premium': False,
        'settings': {
            'posts_per_page': 5, 'show_excerpts': True, 'show_featured_image': True,
        },
        'styling': {
            'container_width': '100%', 'card_border_radius': '8px', 'primary_color': '#10b981',
        },
    },
    'category-grid': {
        'name': 'Category Grid',
        'description': 'A grid layout for organizing posts by categories',
        'category': 'Organization',
        'type': WidgetType.CATEGORY_GRID.value,
        'layout': WidgetLayout.GRID.value,
        'theme': WidgetTheme.MODERN.value,
        'is_premium': False,
        'settings': {
            'posts_per_page': 20, 'group_by_category': True,
            'show_post_count': True, 'show_categories': True,
        },
        'styling': {
            'grid_columns': 2, 'grid_gap': '1.5rem', 'primary_color': '#8b5cf6',
        },
    },
}


def generate_widget_id() -> str:
    return f'widget_{uuid.uuid4().hex[:20]}'


def merge_section(section: str, values: dict = None, base: dict = None) -> dict:
    """
    Merge section values key-wise over a base (defaults when omitted).

    Returns a new dict; neither input is mutated.
    """
    merged = copy.deepcopy(base if base is not None else DEFAULT_SECTIONS[section])
    for key, value in (values or {}).items():
        merged[key] = copy.deepcopy(value)
    return merged


class WidgetConfiguration(db.Model):
    """
    Configuration for one embeddable widget instance.
    """
    __tablename__ = 'widget_configurations'

    id = db.Column(db.String(64), primary_key=True, default=generate_widget_id)
    website_id = db.Column(db.String(36), db.ForeignKey('websites.id'), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(50), nullable=False, index=True)
    layout = db.Column(db.String(50), nullable=False)
    theme = db.Column(db.String(50), nullable=False)

    settings = db.Column(db.JSON, nullable=False, default=dict)
    styling = db.Column(db.JSON, nullable=False, default=dict)
    content_filters = db.Column(db.JSON, nullable=False, default=dict)
    seo_settings = db.Column(db.JSON, nullable=False, default=dict)
    performance_settings = db.Column(db.JSON, nullable=False, default=dict)

    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)

    # Derived from id/type/layout/theme/settings/styling
    embed_code = db.Column(db.Text)
    preview_url = db.Column(db.String(1000))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    website = db.relationship('Website', backref=db.backref('widgets', lazy='dynamic'))
    analytics = db.relationship('WidgetAnalytics', backref='widget', lazy='dynamic',
                                cascade='all, delete-orphan')
    versions = db.relationship('WidgetVersion', backref='widget', lazy='dynamic',
                               cascade='all, delete-orphan',
                               order_by='WidgetVersion.version_number')

    def __repr__(self):
        return f'<WidgetConfiguration {self.id} {self.type} website={self.website_id}>'

    def section(self, name: str) -> dict:
        """Get a JSON section merged over its defaults."""
        return merge_section(name, getattr(self, name) or {})

    def get_settings(self) -> dict:
        return self.section('settings')

    def get_styling(self) -> dict:
        return self.section('styling')

    def get_content_filters(self) -> dict:
        return self.section('content_filters')

    def get_seo_settings(self) -> dict:
        return self.section('seo_settings')

    def get_performance_settings(self) -> dict:
        return self.section('performance_settings')

    def snapshot(self) -> dict:
        """Configuration sections as recorded in version history."""
        return {name: copy.deepcopy(getattr(self, name) or {}) for name in CONFIG_SECTIONS}

    def to_dict(self):
        """Serialize widget configuration to dictionary."""
        return {
            'id': self.id,
            'website_id': self.website_id,
            'name': self.name,
            'type': self.type,
            'layout': self.layout,
            'theme': self.theme,
            'settings': self.get_settings(),
            'styling': self.get_styling(),
            'content_filters': self.get_content_filters(),
            'seo_settings': self.get_seo_settings(),
            'performance_settings': self.get_performance_settings(),
            'is_active': self.is_active,
            'embed_code': self.embed_code,
            'preview_url': self.preview_url,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def get_all_for_website(cls, website_id: str, widget_type: str = None,
                            active_only: bool = False) -> 'db.Query':
        query = cls.query.filter_by(website_id=website_id)
        if widget_type:
            query = query.filter_by(type=widget_type)
        if active_only:
            query = query.filter_by(is_active=True)
        return query.order_by(cls.created_at.desc(), cls.id.desc())


class WidgetVersion(db.Model):
    """
    Version history entry, recorded when a configuration section changes.
    """
    __tablename__ = 'widget_versions'

    id = db.Column(db.Integer, primary_key=True)
    widget_id = db.Column(db.String(64), db.ForeignKey('widget_configurations.id'),
                          nullable=False, index=True)
    version_number = db.Column(db.Integer, nullable=False)
    configuration = db.Column(db.JSON, nullable=False)
    change_summary = db.Column(db.Text)
    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('widget_id', 'version_number', name='unique_widget_version'),
    )

    def to_dict(self):
        return {
            'version_number': self.version_number,
            'configuration': self.configuration,
            'change_summary': self.change_summary,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def next_version_number(cls, widget_id: str) -> int:
        latest = db.session.query(db.func.max(cls.version_number)).filter_by(
            widget_id=widget_id
        ).scalar()
        return (latest or 0) + 1
