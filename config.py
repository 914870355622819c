import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'secret-key-goes-here')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///academics.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Admin self-registration is gated by a shared key
    ADMIN_REGISTRATION_KEY = os.environ.get('ADMIN_REGISTRATION_KEY', 'CHANGE_THIS_SECRET_KEY_IN_PRODUCTION')

    # Token lifetimes in seconds
    ACCESS_TOKEN_MAX_AGE = int(os.environ.get('ACCESS_TOKEN_MAX_AGE', 24 * 60 * 60))
    REFRESH_TOKEN_MAX_AGE = int(os.environ.get('REFRESH_TOKEN_MAX_AGE', 30 * 24 * 60 * 60))
    TOKEN_BLACKLIST_TTL = int(os.environ.get('TOKEN_BLACKLIST_TTL', 7 * 24 * 60 * 60))

    # Student portal, admin portal and public site
    CORS_ORIGINS = os.environ.get(
        'CORS_ORIGINS', 'http://localhost:3000,http://localhost:3001,http://localhost:3002'
    ).split(',')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    MAX_CONTENT_LENGTH = 16 * 1024 * 1024


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    ADMIN_REGISTRATION_KEY = 'test-registration-key'
    LOG_LEVEL = 'WARNING'
