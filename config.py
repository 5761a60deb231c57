import os


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-prod'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///election.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # JSON API authenticated with bearer tokens, no browser forms to protect
    WTF_CSRF_ENABLED = False

    # Default super admin created on first start
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL') or 'admin@example.com'
    ADMIN_NAME = os.environ.get('ADMIN_NAME') or 'Election Commission'

    OTP_TTL_SECONDS = int(os.environ.get('OTP_TTL_SECONDS', 300))

    # Session lifetimes per role, in seconds
    SESSION_TTL_ADMIN = 24 * 3600
    SESSION_TTL_SUBADMIN = 24 * 3600
    SESSION_TTL_VOTER = 24 * 3600
    SESSION_TTL_CANDIDATE = 7 * 24 * 3600

    # Nomination fee (SSLCommerz)
    NOMINATION_FEE = int(os.environ.get('NOMINATION_FEE', 500))
    NOMINATION_FEE_CURRENCY = os.environ.get('NOMINATION_FEE_CURRENCY', 'BDT')
    NOMINATION_FEE_REQUIRED = _env_flag('NOMINATION_FEE_REQUIRED', True)
    SSL_STORE_ID = os.environ.get('SSL_STORE_ID', '')
    SSL_STORE_PASS = os.environ.get('SSL_STORE_PASS', '')
    SSL_IS_LIVE = _env_flag('SSL_IS_LIVE', False)
    PAYMENT_VALIDATE_CALLBACKS = _env_flag('PAYMENT_VALIDATE_CALLBACKS', True)
    PAYMENT_TIMEOUT = 15

    BACKEND_URL = os.environ.get('BACKEND_URL') or 'http://localhost:5000'
    FRONTEND_URL = os.environ.get('FRONTEND_URL') or 'http://localhost:5173'

    # Email Configuration (Gmail API)
    # No SMTP passwords here. We use token.json generated via `flask setup-gmail`.
    GMAIL_TOKEN_PATH = os.environ.get('GMAIL_TOKEN_PATH') or 'token.json'
    GMAIL_CREDENTIALS_PATH = os.environ.get('GMAIL_CREDENTIALS_PATH') or 'credentials.json'
    GMAIL_SENDER = os.environ.get('GMAIL_SENDER') or 'me'


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    ADMIN_EMAIL = 'admin@example.com'
    PAYMENT_VALIDATE_CALLBACKS = True
    LOG_LEVEL = 'DEBUG'
