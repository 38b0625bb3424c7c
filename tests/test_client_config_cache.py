"""
Tests for ClientConfig and ContentCache.
"""
import pytest

from storyslip.client import CacheFullError, ClientConfig, ContentCache


class TestClientConfig:

    def test_defaults_are_valid_with_widget_and_domain(self):
        config = ClientConfig(widget_id='widget_1', domain='blog.example.com')
        assert config.validate() == []
        assert config.display_mode == 'inline'
        assert config.source_key == 'widget_1'

    def test_collects_every_error(self):
        errors = ClientConfig(display_mode='banner', items_per_page=0).validate()
        assert len(errors) == 4

    def test_from_dict_ignores_unknown_keys(self):
        config = ClientConfig.from_dict({'api_key': 'ss_key', 'colour': 'red'})
        assert config.api_key == 'ss_key'
        assert config.source_key == 'ss_key'

    def test_from_attributes_coerces_types(self):
        config = ClientConfig.from_attributes({
            'data-widget-id': 'widget_1',
            'data-items-per-page': '8',
            'data-lazy-load': '',
            'data-track-views': 'false',
            'data-cache-ttl': '60',
        })
        assert config.items_per_page == 8
        assert config.lazy_load is True
        assert config.track_views is False
        assert config.cache_ttl == 60.0

    def test_from_attributes_skips_invalid_values(self):
        config = ClientConfig.from_attributes({'data-items-per-page': 'lots', 'data-overlay': 'maybe'})
        assert config.items_per_page == 5
        assert config.overlay is True

    def test_from_attributes_applies_defaults(self):
        config = ClientConfig.from_attributes({'data-theme': 'dark'}, api_url='https://api.test/api')
        assert config.api_url == 'https://api.test/api'
        assert config.theme == 'dark'


class FakeClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestContentCache:

    @pytest.fixture
    def clock(self):
        return FakeClock()

    def test_get_within_ttl(self, clock):
        cache = ContentCache(ttl=10, clock=clock)
        cache.set('a', {'html': 'x'})
        clock.now = 9.9
        assert cache.get('a') == {'html': 'x'}
        assert 'a' in cache

    def test_expired_entries_are_absent(self, clock):
        cache = ContentCache(ttl=10, clock=clock)
        cache.set('a', {'html': 'x'})
        clock.now = 10
        assert cache.get('a') is None
        assert len(cache) == 0

    def test_full_cache_raises(self, clock):
        cache = ContentCache(ttl=10, max_entries=1, clock=clock)
        cache.set('a', {})
        with pytest.raises(CacheFullError):
            cache.set('b', {})
        # overwriting an existing key is always allowed
        cache.set('a', {'html': 'y'})

    def test_full_cache_purges_expired_first(self, clock):
        cache = ContentCache(ttl=10, max_entries=1, clock=clock)
        cache.set('a', {})
        clock.now = 20
        cache.set('b', {})
        assert len(cache) == 1
        assert cache.get('b') == {}

    def test_delete_and_clear(self, clock):
        cache = ContentCache(clock=clock)
        cache.set('a', {})
        cache.set('b', {})
        cache.delete('a')
        cache.delete('missing')
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0
