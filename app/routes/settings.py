from flask import Blueprint, request
from app.middleware.auth import require_auth
from app.utils.logger import get_logger
from app.utils.responses import get_service, service_response

bp = Blueprint('settings', __name__)
logger = get_logger(__name__)


@bp.route('/availability', methods=['GET'])
@require_auth
def get_availability_settings(current_user):
    """Current member's weekly availability"""
    result = get_service('settings').get_member_availability(current_user['member_id'])
    return service_response(result)


@bp.route('/availability', methods=['PUT'])
@require_auth
def update_availability_settings(current_user):
    """Replace the current member's weekly availability"""
    data = request.get_json(silent=True)
    result = get_service('settings').update_member_availability(current_user['member_id'], data)
    return service_response(result)
