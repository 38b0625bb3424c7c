"""
Client runtime configuration.

A ClientConfig is built from an inline dict (``StorySlipWidget.init``) or
from the data-* attributes of a declarative embed element.
"""
import logging
from dataclasses import dataclass, fields
from typing import List, Optional

logger = logging.getLogger(__name__)


DEFAULT_API_URL = 'https://api.storyslip.com/api'
DISPLAY_MODES = ('inline', 'popup', 'modal', 'sidebar', 'floating')
OVERLAY_MODES = ('popup', 'modal')
MAX_ITEMS_PER_PAGE = 50

# data-* attribute -> field
ATTRIBUTE_FIELDS = {
    'data-api-key': 'api_key',
    'data-widget-id': 'widget_id',
    'data-domain': 'domain',
    'data-website-id': 'website_id',
    'data-api-url': 'api_url',
    'data-display-mode': 'display_mode',
    'data-items-per-page': 'items_per_page',
    'data-theme': 'theme',
    'data-lazy-load': 'lazy_load',
    'data-auto-resize': 'auto_resize',
    'data-cache': 'cache_content',
    'data-cache-ttl': 'cache_ttl',
    'data-track-views': 'track_views',
    'data-track-clicks': 'track_clicks',
    'data-max-width': 'max_width',
    'data-max-height': 'max_height',
    'data-overlay': 'overlay',
}


@dataclass
class ClientConfig:
    """Settings for one embedded widget instance."""
    api_key: str = ''
    widget_id: str = ''
    domain: str = ''
    website_id: str = ''
    api_url: str = DEFAULT_API_URL
    container_id: Optional[str] = None

    display_mode: str = 'inline'
    items_per_page: int = 5
    theme: str = 'modern'

    # Caching
    cache_content: bool = True
    cache_ttl: float = 300.0  # seconds
    max_cache_entries: int = 50

    # Network
    timeout: float = 10.0  # seconds per attempt
    retries: int = 2
    retry_delay: float = 1.0  # seconds

    # Behaviour
    lazy_load: bool = False
    auto_resize: bool = True
    track_views: bool = True
    track_clicks: bool = True

    # Non-inline presentation
    max_width: str = '400px'
    max_height: str = '600px'
    overlay: bool = True
    close_button: bool = True

    @property
    def source_key(self) -> str:
        """Identity used in cache keys."""
        return self.widget_id or self.api_key

    def validate(self) -> List[str]:
        errors = []
        if not self.api_key and not self.widget_id:
            errors.append('API key or widget ID is required')
        if not self.domain and not self.website_id:
            errors.append('Domain or website ID is required')
        if self.display_mode not in DISPLAY_MODES:
            errors.append(f"Invalid display mode '{self.display_mode}'")
        if not _is_int(self.items_per_page) or not 1 <= self.items_per_page <= MAX_ITEMS_PER_PAGE:
            errors.append(f'items_per_page must be between 1 and {MAX_ITEMS_PER_PAGE}')
        if not isinstance(self.api_url, str) or not self.api_url.strip():
            errors.append('api_url must be a non-empty string')
        if self.container_id is not None and not isinstance(self.container_id, str):
            errors.append('container_id must be a string')
        for name in ('cache_ttl', 'retry_delay'):
            value = getattr(self, name)
            if not _is_number(value) or value < 0:
                errors.append(f'{name} must be a non-negative number')
        if not _is_number(self.timeout) or self.timeout <= 0:
            errors.append('timeout must be a positive number')
        if not _is_int(self.retries) or self.retries < 0:
            errors.append('retries must be a non-negative integer')
        if not _is_int(self.max_cache_entries) or self.max_cache_entries < 1:
            errors.append('max_cache_entries must be a positive integer')
        for name in ('max_width', 'max_height', 'theme'):
            if not isinstance(getattr(self, name), str):
                errors.append(f'{name} must be a string')
        return errors

    @classmethod
    def from_dict(cls, data: dict) -> 'ClientConfig':
        """Build from an inline config object; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    @classmethod
    def from_attributes(cls, attributes: dict, **defaults) -> 'ClientConfig':
        """Build from a declarative embed element's data-* attributes."""
        config = cls.from_dict(defaults)
        types = {f.name: f.type for f in fields(cls)}
        for attribute, name in ATTRIBUTE_FIELDS.items():
            raw = attributes.get(attribute)
            if raw is None:
                continue
            value = _coerce(raw, types[name])
            if value is None:
                logger.warning('StorySlip: ignoring invalid %s=%r', attribute, raw)
                continue
            setattr(config, name, value)
        return config


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce(raw: str, field_type):
    if field_type is bool:
        lowered = str(raw).strip().lower()
        if lowered in ('', 'true', '1', 'yes'):
            return True
        if lowered in ('false', '0', 'no'):
            return False
        return None
    if field_type is int:
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None
    if field_type is float:
        try:
            return float(raw)
        except (TypeError, ValueError):
            return None
    return str(raw)
