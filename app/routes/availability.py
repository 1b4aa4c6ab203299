from flask import Blueprint, request, jsonify
from app.utils.logger import get_logger
from app.utils.responses import get_service, service_response
from app.utils.validators import validate_uuid

bp = Blueprint('availability', __name__)
logger = get_logger(__name__)


@bp.route('', methods=['GET'])
def get_availability():
    """Bookable slots for an event type"""
    event_type_id = request.args.get('eventTypeId')
    valid, error = validate_uuid(event_type_id, 'eventTypeId')
    if not valid:
        return jsonify({'error': error}), 400

    days_ahead = request.args.get('daysAhead')
    if days_ahead is not None:
        try:
            days_ahead = int(days_ahead)
        except ValueError:
            return jsonify({'error': 'daysAhead must be an integer'}), 400

    try:
        result = get_service('availability').get_availability(event_type_id, days_ahead)
        return service_response(result)
    except Exception as e:
        logger.error(f"Availability API error: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500
