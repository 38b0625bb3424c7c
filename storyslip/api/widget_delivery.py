"""
Public Widget Delivery Endpoints

Called from third-party pages by the client runtime: rendered widget
output, tracking events, the legacy content listing and the bootstrap
script. No authentication; CORS is open and requests are rate limited.
"""
import json

from flask import Blueprint, Response, current_app, jsonify, request

from ..middleware.rate_limit import limiter, widget_rate_limit
from ..models.website import Website
from ..services.analytics_service import WidgetAnalyticsService
from ..services.content_store import ContentStore
from ..services.render_service import WidgetRenderService
from ..services.widget_renderer import render_page
from ..utils.errors import ErrorCode, bad_request
from ..utils.exceptions import WebsiteNotFoundError

widget_delivery_bp = Blueprint('widget_delivery', __name__)

RENDER_CACHE_CONTROL = 'public, max-age=300, s-maxage=600'
SCRIPT_CACHE_CONTROL = 'public, max-age=3600'
CONTENT_LIMIT_DEFAULT = 10
CONTENT_LIMIT_MAX = 50


@widget_delivery_bp.route('/widgets/<widget_id>/render', methods=['GET'])
@limiter.limit(widget_rate_limit)
def render_widget(widget_id):
    """
    GET /api/widgets/{widgetId}/render - Rendered widget output

    Query Params:
        page: 1-based page (default 1)
        search, category, tag, author: Narrow the content set
        format: 'json' (default) or 'html' for a standalone page

    Returns 304 when If-None-Match matches the current ETag, which covers
    the widget config, the website's content and the query.
    """
    service = WidgetRenderService()
    widget = service.get_renderable(widget_id)

    query = {
        'page': request.args.get('page', 1, type=int),
        'search': request.args.get('search') or None,
        'category': request.args.get('category') or None,
        'tag': request.args.get('tag') or None,
        'author': request.args.get('author') or None,
    }
    fmt = 'html' if request.args.get('format') == 'html' else 'json'

    etag = service.etag(widget, fmt=fmt, **query)
    if request.if_none_match.contains(etag):
        response = Response(status=304)
        response.set_etag(etag)
        response.headers['Cache-Control'] = RENDER_CACHE_CONTROL
        return response

    payload = service.render_widget(widget, **query)

    if fmt == 'html':
        response = Response(render_page(payload), mimetype='text/html')
    else:
        response = jsonify({'success': True, 'data': payload.to_dict()})

    response.set_etag(etag)
    response.headers['Cache-Control'] = RENDER_CACHE_CONTROL
    return response


@widget_delivery_bp.route('/widgets/<widget_id>/track', methods=['POST'])
@limiter.limit(widget_rate_limit)
def track_event(widget_id):
    """
    POST /api/widgets/{widgetId}/track - Record a view, click or interaction

    Request Body:
        {"event_type": "click", "event_data": {"content_id": "..."}, "website_id": "..."}
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return bad_request('Request body must be a JSON object')
    if not data.get('event_type'):
        return bad_request('event_type is required', ErrorCode.MISSING_FIELD)
    if not data.get('website_id'):
        return bad_request('website_id is required', ErrorCode.MISSING_FIELD)

    WidgetAnalyticsService().track(
        widget_id, data['event_type'], data.get('event_data'), data['website_id'],
    )
    return jsonify({'success': True, 'data': {'tracked': True}})


@widget_delivery_bp.route('/widget/<api_key>/content', methods=['GET'])
@limiter.limit(widget_rate_limit)
def list_content(api_key):
    """
    GET /api/widget/{apiKey}/content?limit=n - Newest published items

    Legacy listing for embeds keyed by the website's public API key.
    limit is clamped to 1..50.
    """
    website = Website.get_by_api_key(api_key)
    if not website:
        raise WebsiteNotFoundError()

    limit = request.args.get('limit', CONTENT_LIMIT_DEFAULT, type=int)
    limit = max(1, min(limit, CONTENT_LIMIT_MAX))
    items = ContentStore().list_published(website.id, limit)
    return jsonify({'success': True, 'data': [item.to_dict() for item in items]})


@widget_delivery_bp.route('/widgets/script.js', methods=['GET'])
def bootstrap_script():
    """
    GET /api/widgets/script.js - Loader for declarative embeds

    Loads the widget runtime once and auto-initialises every element
    carrying data-storyslip-widget.
    """
    widget_base = json.dumps(current_app.config['WIDGET_BASE_URL'].rstrip('/'))
    api_base = json.dumps(current_app.config['API_BASE_URL'].rstrip('/'))
    script = (
        '(function(){'
        f'var widgetBase={widget_base};var apiBase={api_base};'
        'function boot(){'
        "if(!document.querySelector('[data-storyslip-widget]')){return;}"
        'if(window.StorySlipWidget&&window.StorySlipWidget.autoInit){'
        'window.StorySlipWidget.autoInit({apiUrl:apiBase});return;}'
        "var s=document.createElement('script');s.src=widgetBase+'/widget.js';s.async=true;"
        's.onload=function(){if(window.StorySlipWidget&&window.StorySlipWidget.autoInit){'
        'window.StorySlipWidget.autoInit({apiUrl:apiBase});}};'
        'document.head.appendChild(s);}'
        "if(document.readyState==='loading'){document.addEventListener('DOMContentLoaded',boot);}"
        'else{boot();}'
        '})();'
    )
    response = Response(script, mimetype='application/javascript')
    response.headers['Cache-Control'] = SCRIPT_CACHE_CONTROL
    return response
