from flask import Blueprint, request
from app.middleware.auth import require_auth
from app.utils.logger import get_logger
from app.utils.responses import get_service, service_response

bp = Blueprint('event_types', __name__)
logger = get_logger(__name__)


@bp.route('/public', methods=['GET'])
def get_public_event_type():
    """Active event type by ``slug`` or ``id`` for the booking page"""
    result = get_service('event_types').get_public_event_type(
        event_type_id=request.args.get('id'), slug=request.args.get('slug')
    )
    return service_response(result)


@bp.route('', methods=['GET'])
@require_auth
def list_event_types(current_user):
    return service_response(get_service('event_types').list_event_types(current_user['member_id']))


@bp.route('', methods=['POST'])
@require_auth
def create_event_type(current_user):
    """Create an event type organized by the current member"""
    data = request.get_json(silent=True)
    result = get_service('event_types').create_event_type(current_user['member_id'], data)
    return service_response(result, success_status=201)


@bp.route('/<event_type_id>', methods=['PATCH'])
@require_auth
def update_event_type(current_user, event_type_id):
    """Edit an event type (organizer or admin)"""
    data = request.get_json(silent=True)
    result = get_service('event_types').update_event_type(current_user['member_id'], event_type_id, data)
    return service_response(result)


@bp.route('/<event_type_id>', methods=['DELETE'])
@require_auth
def delete_event_type(current_user, event_type_id):
    """Delete an event type and its bookings (organizer or admin)"""
    result = get_service('event_types').delete_event_type(current_user['member_id'], event_type_id)
    return service_response(result)


@bp.route('/<event_type_id>/members', methods=['GET'])
@require_auth
def get_event_type_members(current_user, event_type_id):
    result = get_service('event_types').get_member_ids(current_user['member_id'], event_type_id)
    return service_response(result)
