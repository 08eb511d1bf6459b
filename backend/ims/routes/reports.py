from flask import Blueprint, Response, current_app, request, abort
from ims.constants.permissions import Permission
from ims.decorators.auth import require_permissions
from ims.services.audit import recent_activity
from ims.services.policy import has_permissions
from ims.services.reports import category_performance, dashboard_metrics, inventory_csv

rpt_bp = Blueprint('reports', __name__)


@rpt_bp.get('/dashboard')
@require_permissions(Permission.REPORTS_VIEW)
def dashboard():
    body = dashboard_metrics()
    # advanced breakdowns only for roles holding the advanced reports permission
    if has_permissions(Permission.REPORTS_ADVANCED):
        body['category_performance'] = category_performance()
    return body


@rpt_bp.get('/recent-activity')
@require_permissions(Permission.REPORTS_VIEW)
def recent():
    raw = request.args.get('limit')
    try:
        limit = int(raw) if raw is not None else current_app.config['RECENT_ACTIVITY_LIMIT']
    except ValueError:
        abort(400, description='limit must be int')
    limit = max(1, min(limit, 100))
    return {'data': recent_activity(limit)}


@rpt_bp.get('/inventory.csv')
@require_permissions(Permission.REPORTS_EXPORT)
def export_inventory():
    return Response(
        inventory_csv(),
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=inventory.csv'},
    )
