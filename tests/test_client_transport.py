"""
Tests for the client RenderClient transport.

All HTTP traffic goes through a mocked requests.Session.
"""
from unittest.mock import MagicMock

import pytest
import requests

from storyslip.client.transport import RenderClient
from storyslip.utils.exceptions import NetworkError, RenderError, UpstreamError


def response(status=200, body=None, invalid_json=False):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    if invalid_json:
        resp.json.side_effect = ValueError('No JSON')
    else:
        resp.json.return_value = body
    return resp


RENDERED = {'success': True, 'data': {'html': '<div>ok</div>', 'css': '.a{}'}}


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(session, sleeps):
    return RenderClient('https://api.example.com/api/', retries=2, retry_delay=0.5,
                        session=session, sleep=sleeps.append)


class TestFetchRender:

    def test_success(self, client, session):
        session.get.return_value = response(body=RENDERED)
        assert client.fetch_render('widget_1', page=2, search='py') == RENDERED['data']

        url = session.get.call_args[0][0]
        params = session.get.call_args[1]['params']
        assert url == 'https://api.example.com/api/widgets/widget_1/render'
        assert params == {'page': 2, 'search': 'py'}

    def test_retries_network_errors_then_succeeds(self, client, session, sleeps):
        session.get.side_effect = [requests.ConnectionError('down'), response(body=RENDERED)]
        assert client.fetch_render('widget_1')['html'] == '<div>ok</div>'
        assert sleeps == [0.5]

    def test_gives_up_after_retries(self, client, session, sleeps):
        session.get.side_effect = requests.Timeout('slow')
        with pytest.raises(NetworkError):
            client.fetch_render('widget_1')
        assert session.get.call_count == 3
        assert sleeps == [0.5, 0.5]

    def test_server_errors_are_retried(self, client, session):
        session.get.side_effect = [response(503), response(body=RENDERED)]
        assert client.fetch_render('widget_1')['css'] == '.a{}'

    def test_client_errors_are_not_retried(self, client, session):
        session.get.return_value = response(404)
        with pytest.raises(UpstreamError) as exc:
            client.fetch_render('widget_1')
        assert exc.value.status_code == 404
        assert session.get.call_count == 1

    def test_rate_limited_is_retried(self, client, session):
        session.get.side_effect = [response(429), response(body=RENDERED)]
        assert client.fetch_render('widget_1')

    def test_malformed_payload(self, client, session):
        session.get.return_value = response(body={'success': True, 'data': {'html': 1}})
        with pytest.raises(RenderError):
            client.fetch_render('widget_1')

    def test_invalid_json(self, client, session):
        session.get.return_value = response(invalid_json=True)
        with pytest.raises(RenderError):
            client.fetch_render('widget_1')


class TestFetchContent:

    def test_lists_items(self, client, session):
        session.get.return_value = response(body={'success': True, 'data': [{'id': '1'}]})
        assert client.fetch_content('ss_key', limit=3) == [{'id': '1'}]
        assert session.get.call_args[1]['params'] == {'limit': 3}

    def test_non_list(self, client, session):
        session.get.return_value = response(body={'data': {}})
        with pytest.raises(RenderError):
            client.fetch_content('ss_key')


class TestTrack:

    def test_posts_event(self, client, session):
        session.post.return_value = response(200)
        assert client.track('widget_1', 'view', {'device': 'mobile'}, 'site-1') is True
        assert session.post.call_args[1]['json'] == {
            'event_type': 'view', 'event_data': {'device': 'mobile'}, 'website_id': 'site-1',
        }

    def test_failures_return_false(self, client, session):
        session.post.side_effect = requests.ConnectionError('down')
        assert client.track('widget_1', 'view', None, 'site-1') is False
        session.post.side_effect = None
        session.post.return_value = response(500)
        assert client.track('widget_1', 'view', None, 'site-1') is False
