from flask import Blueprint, request
from app.middleware.auth import require_auth
from app.services.rate_limiter import get_client_ip
from app.utils.logger import get_logger
from app.utils.responses import get_service, service_response

bp = Blueprint('bookings', __name__)
logger = get_logger(__name__)


@bp.route('', methods=['POST'])
def create_booking():
    """Book a slot (no account required)"""
    data = request.get_json(silent=True)
    result = get_service('booking').create_booking(data, get_client_ip(request.headers))
    return service_response(result)


@bp.route('/cancel', methods=['POST'])
def cancel_booking():
    """Cancel a booking with the token from the cancel URL"""
    data = request.get_json(silent=True)
    result = get_service('booking').cancel_booking(data, get_client_ip(request.headers))
    return service_response(result)


@bp.route('', methods=['GET'])
@require_auth
def list_bookings(current_user):
    """Team bookings, optionally filtered by status and to upcoming ones"""
    result = get_service('booking').list_bookings(
        current_user['member_id'],
        status=request.args.get('status'),
        upcoming=request.args.get('upcoming') == 'true',
    )
    return service_response(result)
