import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///meetflow.db'
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Google APIs
    GOOGLE_CLIENT_ID = os.environ.get('GOOGLE_CLIENT_ID')
    GOOGLE_CLIENT_SECRET = os.environ.get('GOOGLE_CLIENT_SECRET')
    GOOGLE_TOKEN_URI = 'https://oauth2.googleapis.com/token'
    GOOGLE_CHAT_WEBHOOK_URL = os.environ.get('GOOGLE_CHAT_WEBHOOK_URL')

    # Fernet key used for refresh tokens at rest (urlsafe base64, 32 bytes)
    ENCRYPTION_KEY = os.environ.get('ENCRYPTION_KEY')

    # Application Settings
    APP_URL = os.environ.get('APP_URL', 'http://localhost:5001')
    TIMEZONE = 'Asia/Tokyo'
    MIN_BOOKING_NOTICE_MINUTES = int(os.environ.get('MIN_BOOKING_NOTICE_MINUTES', '60'))
    DEFAULT_DAYS_AHEAD = int(os.environ.get('DEFAULT_DAYS_AHEAD', '14'))
    MAX_DAYS_AHEAD = int(os.environ.get('MAX_DAYS_AHEAD', '60'))
    ALLOWED_DURATIONS = (15, 30, 45, 60, 90, 120)

    # Rate Limiting
    RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get('RATE_LIMIT_WINDOW_SECONDS', '10'))
    RATE_LIMIT_MAX_REQUESTS = int(os.environ.get('RATE_LIMIT_MAX_REQUESTS', '5'))
    RATE_LIMIT_CLEANUP_INTERVAL_SECONDS = int(os.environ.get('RATE_LIMIT_CLEANUP_INTERVAL_SECONDS', '300'))
    MONTHLY_USAGE_CACHE_TTL_SECONDS = int(os.environ.get('MONTHLY_USAGE_CACHE_TTL_SECONDS', '60'))
    USAGE_ALERT_THRESHOLD = int(os.environ.get('USAGE_ALERT_THRESHOLD', '800000'))
    USAGE_ALERT_PERCENT = 80

    # Cron endpoints
    CRON_SECRET = os.environ.get('CRON_SECRET')

    # Token Settings
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours

    # Logging
    LOG_FILE = os.environ.get('LOG_FILE', 'logs/meetflow.log')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    DEBUG = True
    TESTING = True


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
