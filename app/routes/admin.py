from flask import Blueprint, request, jsonify
from app.middleware.auth import require_auth, require_admin, require_cron_secret
from app.utils.logger import get_logger
from app.utils.responses import get_service

bp = Blueprint('admin', __name__)
logger = get_logger(__name__)


@bp.route('/admin/settings', methods=['GET'])
@require_auth
@require_admin
def get_settings(current_user):
    """System settings (maintenance mode)"""
    return jsonify({'maintenanceMode': get_service('settings').get_maintenance_mode()}), 200


@bp.route('/admin/settings', methods=['PATCH'])
@require_auth
@require_admin
def update_settings(current_user):
    """Toggle maintenance mode"""
    data = request.get_json(silent=True) or {}
    maintenance = data.get('maintenanceMode')

    if maintenance is not None:
        if not isinstance(maintenance, dict) or not isinstance(maintenance.get('enabled'), bool) \
                or not isinstance(maintenance.get('message', ''), str):
            return jsonify({
                'error': 'Invalid request data',
                'details': [{'field': 'maintenanceMode', 'message': 'enabled (bool) and message (str) required'}]
            }), 400

        get_service('settings').update_maintenance_mode(maintenance['enabled'], maintenance.get('message', ''))
        logger.info(f"Admin {current_user['member_id']} updated maintenance mode")

    return jsonify({'success': True}), 200


@bp.route('/admin/usage', methods=['GET'])
@require_auth
@require_admin
def get_usage(current_user):
    """Monthly API usage against the ceiling"""
    try:
        usage_service = get_service('usage')
        stats = usage_service.get_monthly_usage_stats()
        return jsonify({
            'stats': stats,
            'threshold': usage_service.threshold,
            'percentUsed': (stats['totalRequests'] / usage_service.threshold) * 100,
        }), 200
    except Exception as e:
        logger.error(f"Error getting usage stats: {str(e)}")
        return jsonify({'error': 'Failed to get usage stats'}), 500


@bp.route('/cron/usage-check', methods=['GET'])
@require_cron_secret
def cron_usage_check():
    """Alert operators when usage nears the ceiling"""
    try:
        return jsonify(get_service('usage').check_and_alert_usage()), 200
    except Exception as e:
        logger.error(f"Cron usage-check error: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500


@bp.route('/cron/daily-report', methods=['GET'])
@require_cron_secret
def cron_daily_report():
    """Post the daily usage report"""
    try:
        return jsonify({'sent': get_service('usage').send_daily_report()}), 200
    except Exception as e:
        logger.error(f"Cron daily-report error: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500
