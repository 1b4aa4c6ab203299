from flask import Flask, jsonify
from config.config import config
from app.database import init_db
from app.integrations import GoogleCalendarClient
from app.routes import admin, availability, bookings, event_types, presets, settings
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.calendar_service import CalendarService
from app.services.event_type_service import EventTypeService
from app.services.preset_service import PresetService
from app.services.rate_limiter import RateLimiter
from app.services.settings_service import SettingsService
from app.services.usage_service import UsageService
from app.utils.logger import get_logger

logger = get_logger(__name__)


def create_services(app_config, calendar_client=None, notification_service=None):
    """Wire services around one process-local RateLimiter"""
    usage_service = UsageService(notification_service=notification_service,
                                 threshold=app_config.USAGE_ALERT_THRESHOLD)
    rate_limiter = RateLimiter(usage_provider=usage_service.get_monthly_total,
                               monthly_limit=app_config.USAGE_ALERT_THRESHOLD)
    usage_service.rate_limiter = rate_limiter

    calendar_service = CalendarService(calendar_client or GoogleCalendarClient())
    settings_service = SettingsService()
    event_type_service = EventTypeService()

    return {
        'rate_limiter': rate_limiter,
        'usage': usage_service,
        'settings': settings_service,
        'event_types': event_type_service,
        'presets': PresetService(event_type_service),
        'availability': AvailabilityService(calendar_service=calendar_service, usage_service=usage_service,
                                            event_type_service=event_type_service),
        'booking': BookingService(
            rate_limiter,
            calendar_service=calendar_service,
            usage_service=usage_service,
            settings_service=settings_service,
            event_type_service=event_type_service,
            app_url=app_config.APP_URL,
        ),
    }


def create_app(config_name='default', calendar_client=None, notification_service=None):
    """Application factory"""
    app = Flask(__name__)
    app_config = config[config_name]
    app.config.from_object(app_config)
    app.json.ensure_ascii = False

    init_db()

    app.extensions['meetflow'] = create_services(app_config, calendar_client, notification_service)

    app.register_blueprint(availability.bp, url_prefix='/api/availability')
    app.register_blueprint(bookings.bp, url_prefix='/api/bookings')
    app.register_blueprint(event_types.bp, url_prefix='/api/event-types')
    app.register_blueprint(presets.bp, url_prefix='/api/time-slot-presets')
    app.register_blueprint(settings.bp, url_prefix='/api/settings')
    app.register_blueprint(admin.bp, url_prefix='/api')

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({'status': 'ok'}), 200

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Unhandled error: {str(e)}")
        return jsonify({'error': 'Internal server error'}), 500

    logger.info(f"MeetFlow app created ({config_name})")
    return app
