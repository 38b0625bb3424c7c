"""
HTTP transport for the client runtime.

Wraps a requests.Session with a per-attempt timeout and a bounded number
of retries at a fixed delay. Failures surface as NetworkError (no
response), UpstreamError (non-2xx) or RenderError (malformed payload).
Tracking calls are fire-and-forget and never raise.
"""
import logging
import time
from typing import Callable, List, Optional

import requests

from ..utils.exceptions import NetworkError, RenderError, UpstreamError

logger = logging.getLogger(__name__)

# Client errors that are worth another attempt
RETRYABLE_4XX = (408, 429)


class RenderClient:
    """
    Client for the public delivery plane.

    Usage:
        client = RenderClient('https://api.storyslip.com/api')
        payload = client.fetch_render('widget_abc', page=2)
    """

    def __init__(
        self,
        api_url: str,
        timeout: float = 10.0,
        retries: int = 2,
        retry_delay: float = 1.0,
        session: requests.Session = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.retries = max(0, retries)
        self.retry_delay = retry_delay
        self.session = session or requests.Session()
        self.sleep = sleep

    def _get_json(self, path: str, params: dict = None) -> dict:
        url = f'{self.api_url}{path}'
        params = {k: v for k, v in (params or {}).items() if v not in (None, '')}
        last_error = None

        for attempt in range(self.retries + 1):
            if attempt:
                self.sleep(self.retry_delay)
            try:
                response = self.session.get(url, params=params, timeout=self.timeout,
                                            headers={'Accept': 'application/json'})
            except requests.RequestException as e:
                last_error = NetworkError(f'Request to {url} failed: {e}', e)
                logger.warning('StorySlip: attempt %s/%s failed: %s', attempt + 1, self.retries + 1, e)
                continue

            if not response.ok:
                last_error = UpstreamError(response.status_code)
                logger.warning('StorySlip: %s returned HTTP %s', url, response.status_code)
                if 400 <= response.status_code < 500 and response.status_code not in RETRYABLE_4XX:
                    raise last_error
                continue

            try:
                return response.json()
            except ValueError:
                last_error = RenderError('Response was not valid JSON')
                logger.warning('StorySlip: malformed response from %s', url)

        raise last_error

    def fetch_render(self, widget_id: str, page: int = 1, search: str = None,
                     category: str = None) -> dict:
        """
        Rendered widget payload ``{html, css, js?, meta?}``.

        Raises:
            NetworkError, UpstreamError, RenderError
        """
        body = self._get_json(f'/widgets/{widget_id}/render',
                              {'page': page, 'search': search, 'category': category})
        data = body.get('data') if isinstance(body, dict) else None
        if not isinstance(data, dict) or not isinstance(data.get('html'), str) \
                or not isinstance(data.get('css'), str):
            raise RenderError()
        return data

    def fetch_content(self, api_key: str, limit: int = 5) -> List[dict]:
        """Newest published content for a website's public API key."""
        body = self._get_json(f'/widget/{api_key}/content', {'limit': limit})
        data = body.get('data') if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise RenderError('Content listing was not a list')
        return data

    def track(self, widget_id: str, event_type: str, event_data: Optional[dict],
              website_id: str) -> bool:
        """Send a tracking event once; failures are logged and reported as False."""
        url = f'{self.api_url}/widgets/{widget_id}/track'
        try:
            response = self.session.post(
                url,
                json={'event_type': event_type, 'event_data': event_data or {}, 'website_id': website_id},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.debug('StorySlip: tracking %s failed: %s', event_type, e)
            return False
        if not response.ok:
            logger.debug('StorySlip: tracking %s returned HTTP %s', event_type, response.status_code)
            return False
        return True
