from typing import Dict
from flask import current_app, jsonify

ERROR_STATUS = {
    'validation': 400,
    'unauthorized': 401,
    'forbidden': 403,
    'not_found': 404,
    'conflict': 409,
    'rate_limited': 429,
    'internal': 500,
    'maintenance': 503,
}


def get_service(name: str):
    """Service instance registered by the app factory"""
    return current_app.extensions['meetflow'][name]


def service_response(result: Dict, success_status: int = 200):
    """Turn a service result dict into a JSON response"""
    if result.get('error'):
        body = {'error': result['error']}
        if result.get('details'):
            body['details'] = result['details']
        return jsonify(body), ERROR_STATUS.get(result.get('error_type'), 400)

    return jsonify(result), success_status


def service_error(message: str, error_type: str, **extra) -> Dict:
    """Service-layer failure; ``error_type`` picks the HTTP status"""
    result = {'error': message, 'error_type': error_type}
    result.update(extra)
    return result
