"""
Tests for the public widget delivery endpoints.

Tests cover:
- Render endpoint JSON and HTML formats
- ETag / If-None-Match and cache headers
- Tracking events
- Legacy content listing by API key
- Bootstrap script
- CORS on public routes
"""
import json
from datetime import datetime

import pytest

from storyslip.services.widget_configuration_service import WidgetConfigurationService


@pytest.fixture
def widget(app, website):
    return WidgetConfigurationService().create(website.id, 'user-owner', {
        'name': 'Blog', 'type': 'content_list', 'settings': {'posts_per_page': 2},
    })


class TestRender:

    def test_render_json(self, client, widget, make_content):
        make_content('Hello world')
        response = client.get(f'/api/widgets/{widget.id}/render')
        assert response.status_code == 200
        data = response.get_json()['data']
        assert 'Hello world' in data['html']
        assert data['css']
        assert data['meta']['pagination']['current_page'] == 1
        assert response.headers['Cache-Control'] == 'public, max-age=300, s-maxage=600'

    def test_render_html_format(self, client, widget, make_content):
        make_content('Hello world')
        response = client.get(f'/api/widgets/{widget.id}/render?format=html')
        assert response.mimetype == 'text/html'
        body = response.get_data(as_text=True)
        assert body.startswith('<!DOCTYPE html>')
        assert 'Hello world' in body

    def test_etag_round_trip(self, client, widget):
        first = client.get(f'/api/widgets/{widget.id}/render')
        etag = first.headers['ETag']
        assert widget.id in etag

        second = client.get(f'/api/widgets/{widget.id}/render', headers={'If-None-Match': etag})
        assert second.status_code == 304
        assert second.get_data() == b''

    def test_etag_changes_after_update(self, client, widget):
        etag = client.get(f'/api/widgets/{widget.id}/render').headers['ETag']
        WidgetConfigurationService().update(widget.id, 'user-owner', {'name': 'Renamed'})
        response = client.get(f'/api/widgets/{widget.id}/render', headers={'If-None-Match': etag})
        assert response.status_code == 200

    def test_etag_changes_after_new_content(self, client, widget, make_content):
        make_content('First post')
        etag = client.get(f'/api/widgets/{widget.id}/render').headers['ETag']

        make_content('Fresh post')
        response = client.get(f'/api/widgets/{widget.id}/render', headers={'If-None-Match': etag})
        assert response.status_code == 200
        assert 'Fresh post' in response.get_json()['data']['html']

    def test_etag_differs_per_query(self, client, widget):
        url = f'/api/widgets/{widget.id}/render'
        first = client.get(url).headers['ETag']
        assert client.get(f'{url}?page=2').headers['ETag'] != first
        assert client.get(f'{url}?search=py').headers['ETag'] != first
        assert client.get(f'{url}?format=html').headers['ETag'] != first

        response = client.get(f'{url}?page=2', headers={'If-None-Match': first})
        assert response.status_code == 200

    def test_pagination_params(self, client, widget, make_content):
        for n in range(3):
            make_content(f'Post {n}', published_at=datetime(2024, 1, n + 1))
        data = client.get(f'/api/widgets/{widget.id}/render?page=2').get_json()['data']
        assert 'Post 0' in data['html']
        assert 'Post 2' not in data['html']

    def test_missing_widget(self, client):
        response = client.get('/api/widgets/widget_missing/render')
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'WIDGET_NOT_FOUND'

    def test_public_cors(self, client, widget):
        response = client.get(f'/api/widgets/{widget.id}/render',
                              headers={'Origin': 'https://tenant-site.example'})
        assert response.headers.get('Access-Control-Allow-Origin') in ('*', 'https://tenant-site.example')


class TestTrack:

    def track(self, client, widget_id, **body):
        return client.post(f'/api/widgets/{widget_id}/track', data=json.dumps(body),
                           content_type='application/json')

    def test_track_view(self, client, widget, website):
        response = self.track(client, widget.id, event_type='view', website_id=website.id,
                              event_data={'device': 'mobile'})
        assert response.status_code == 200
        assert response.get_json()['data'] == {'tracked': True}

    def test_track_requires_event_type(self, client, widget, website):
        response = self.track(client, widget.id, website_id=website.id)
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'MISSING_FIELD'

    def test_track_requires_website(self, client, widget):
        response = self.track(client, widget.id, event_type='view')
        assert response.status_code == 400

    def test_track_invalid_event(self, client, widget, website):
        response = self.track(client, widget.id, event_type='scroll', website_id=website.id)
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_EVENT_TYPE'

    def test_track_wrong_website(self, client, widget, other_website):
        response = self.track(client, widget.id, event_type='view', website_id=other_website.id)
        assert response.status_code == 400


class TestLegacyContent:

    def test_lists_published_newest_first(self, client, website, make_content):
        make_content('Old', published_at=datetime(2024, 1, 1))
        make_content('New', published_at=datetime(2024, 3, 1))
        make_content('Hidden', status='draft')

        response = client.get(f'/api/widget/{website.api_key}/content')
        titles = [item['title'] for item in response.get_json()['data']]
        assert titles == ['New', 'Old']

    def test_limit_is_clamped(self, client, website, make_content):
        for n in range(3):
            make_content(f'Post {n}')
        assert len(client.get(f'/api/widget/{website.api_key}/content?limit=1').get_json()['data']) == 1
        assert len(client.get(f'/api/widget/{website.api_key}/content?limit=0').get_json()['data']) == 1
        assert len(client.get(f'/api/widget/{website.api_key}/content?limit=500').get_json()['data']) == 3

    def test_unknown_key(self, client):
        response = client.get('/api/widget/ss_unknown/content')
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'WEBSITE_NOT_FOUND'


class TestBootstrapScript:

    def test_script(self, client):
        response = client.get('/api/widgets/script.js')
        assert response.mimetype == 'application/javascript'
        assert response.headers['Cache-Control'] == 'public, max-age=3600'
        assert 'StorySlipWidget.autoInit' in response.get_data(as_text=True)
