from flask import Blueprint, request
from app.middleware.auth import require_auth, require_admin
from app.utils.logger import get_logger
from app.utils.responses import get_service, service_response

bp = Blueprint('presets', __name__)
logger = get_logger(__name__)


@bp.route('', methods=['GET'])
@require_auth
def list_presets(current_user):
    """Time slot presets of the current member's team"""
    return service_response(get_service('presets').list_presets(current_user['member_id']))


@bp.route('', methods=['POST'])
@require_auth
@require_admin
def create_preset(current_user):
    data = request.get_json(silent=True)
    result = get_service('presets').create_preset(current_user['member_id'], data)
    return service_response(result, success_status=201)


@bp.route('/<preset_id>', methods=['PATCH'])
@require_auth
@require_admin
def update_preset(current_user, preset_id):
    data = request.get_json(silent=True)
    result = get_service('presets').update_preset(current_user['member_id'], preset_id, data)
    return service_response(result)


@bp.route('/<preset_id>', methods=['DELETE'])
@require_auth
@require_admin
def delete_preset(current_user, preset_id):
    """Delete a preset; event types using it lose their preset reference"""
    result = get_service('presets').delete_preset(current_user['member_id'], preset_id)
    return service_response(result)
