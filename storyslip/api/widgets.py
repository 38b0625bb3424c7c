"""
Widget Management API Endpoints

Configuration CRUD, templates, preview, embed codes, version history and
analytics for website members. All routes require an authenticated user;
role checks happen in the services.
"""
from datetime import date

from flask import Blueprint, g, jsonify, request

from ..middleware.auth import require_auth
from ..services.analytics_service import WidgetAnalyticsService
from ..services.widget_configuration_service import WidgetConfigurationService
from ..utils.errors import ErrorCode, bad_request
from ..utils.exceptions import ValidationError

widgets_bp = Blueprint('widgets', __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _date_arg(name: str):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f'{name} must be a date (YYYY-MM-DD)', name)


@widgets_bp.route('/websites/<website_id>/widgets', methods=['GET'])
@require_auth
def list_widgets(website_id):
    """
    GET /api/websites/{websiteId}/widgets - List a website's widgets

    Query Params:
        type: Filter by widget type
        active_only: 'true' to hide inactive widgets
        limit, offset: Pagination (limit max 100)
    """
    limit = request.args.get('limit', 50, type=int)
    offset = request.args.get('offset', 0, type=int)
    widgets, total = WidgetConfigurationService().list(
        website_id,
        g.user_id,
        widget_type=request.args.get('type') or None,
        active_only=request.args.get('active_only', 'false').lower() == 'true',
        limit=limit,
        offset=offset,
    )
    return jsonify({
        'success': True,
        'data': [w.to_dict() for w in widgets],
        'pagination': {'total': total, 'limit': limit, 'offset': offset},
    })


@widgets_bp.route('/websites/<website_id>/widgets', methods=['POST'])
@require_auth
def create_widget(website_id):
    """
    POST /api/websites/{websiteId}/widgets - Create a widget

    Request Body:
        {
            "name": "Blog Hub",
            "type": "blog_hub",
            "layout": "grid",
            "theme": "modern",
            "settings": {...},
            "styling": {...},
            "content_filters": {...},
            "seo_settings": {...},
            "performance_settings": {...}
        }
    """
    widget = WidgetConfigurationService().create(website_id, g.user_id, _json_body())
    return jsonify({'success': True, 'data': widget.to_dict()}), 201


@widgets_bp.route('/websites/<website_id>/widgets/from-template', methods=['POST'])
@require_auth
def create_widget_from_template(website_id):
    """
    POST /api/websites/{websiteId}/widgets/from-template

    Request Body:
        {"template_id": "modern-blog-hub", "name": "optional", "overrides": {...}}
    """
    data = _json_body()
    template_id = data.get('template_id')
    if not template_id:
        return bad_request('template_id is required', ErrorCode.MISSING_FIELD)

    widget = WidgetConfigurationService().create_from_template(
        website_id, g.user_id, template_id, name=data.get('name'), overrides=data.get('overrides'),
    )
    return jsonify({'success': True, 'data': widget.to_dict()}), 201


@widgets_bp.route('/widgets/templates', methods=['GET'])
@require_auth
def list_templates():
    """GET /api/widgets/templates - Pre-built widget templates"""
    return jsonify({'success': True, 'data': WidgetConfigurationService.list_templates()})


@widgets_bp.route('/widgets/<widget_id>', methods=['GET'])
@require_auth
def get_widget(widget_id):
    widget = WidgetConfigurationService().get(widget_id, g.user_id)
    return jsonify({'success': True, 'data': widget.to_dict()})


@widgets_bp.route('/widgets/<widget_id>', methods=['PUT'])
@require_auth
def update_widget(widget_id):
    """
    PUT /api/widgets/{widgetId} - Partially update a widget

    Section objects (settings, styling, ...) merge into the stored values.
    """
    widget = WidgetConfigurationService().update(widget_id, g.user_id, _json_body())
    return jsonify({'success': True, 'data': widget.to_dict()})


@widgets_bp.route('/widgets/<widget_id>', methods=['DELETE'])
@require_auth
def delete_widget(widget_id):
    WidgetConfigurationService().delete(widget_id, g.user_id)
    return jsonify({'success': True, 'data': {'deleted': True}})


@widgets_bp.route('/widgets/<widget_id>/preview', methods=['GET'])
@require_auth
def preview_widget(widget_id):
    page = request.args.get('page', 1, type=int)
    payload = WidgetConfigurationService().preview(widget_id, g.user_id, page=page)
    return jsonify({'success': True, 'data': payload.to_dict()})


@widgets_bp.route('/widgets/<widget_id>/embed-code', methods=['GET'])
@require_auth
def get_embed_code(widget_id):
    """
    GET /api/widgets/{widgetId}/embed-code?type=javascript|declarative|iframe|amp
    """
    variant = request.args.get('type', 'javascript')
    service = WidgetConfigurationService()
    widget = service.get(widget_id, g.user_id)
    return jsonify({
        'success': True,
        'data': {
            'type': variant,
            'embed_code': service.embed_code(widget, variant),
            'preview_url': widget.preview_url,
        },
    })


@widgets_bp.route('/widgets/<widget_id>/versions', methods=['GET'])
@require_auth
def list_versions(widget_id):
    versions = WidgetConfigurationService().versions(widget_id, g.user_id)
    return jsonify({'success': True, 'data': [v.to_dict() for v in versions]})


@widgets_bp.route('/widgets/<widget_id>/analytics', methods=['GET'])
@require_auth
def get_analytics(widget_id):
    """
    GET /api/widgets/{widgetId}/analytics?start=YYYY-MM-DD&end=YYYY-MM-DD

    Defaults to the last 30 days.
    """
    summary = WidgetAnalyticsService().summary(
        widget_id, g.user_id, start=_date_arg('start'), end=_date_arg('end'),
    )
    return jsonify({'success': True, 'data': summary})
