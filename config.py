import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _first_env(*names, default=None):
    """Return the first non-empty environment variable among several aliases"""
    for name in names:
        value = os.environ.get(name)
        if value:
            return value.strip()
    return default


def _email_list(raw):
    if not raw:
        return []
    return [e.strip().lower() for e in raw.split(',') if e.strip()]


class Config:
    SECRET_KEY = _first_env('SESSION_SECRET', 'SECRET_KEY', default='dev-secret-key')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quickbite.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_HOURS = int(os.environ.get('JWT_ACCESS_TOKEN_HOURS', 24))

    # Hosted backend (identity provider + object storage)
    SUPABASE_URL = _first_env('SUPABASE_URL', 'VITE_SUPABASE_URL', default='')
    SUPABASE_SERVICE_KEY = _first_env('SUPABASE_SERVICE_KEY', 'SUPABASE_SERVICE_ROLE_KEY', default='')
    SUPABASE_ANON_KEY = _first_env('SUPABASE_ANON_KEY', 'VITE_SUPABASE_ANON_KEY', default='')
    SUPABASE_TIMEOUT = int(os.environ.get('SUPABASE_TIMEOUT', 10))
    STORAGE_BUCKET = os.environ.get('STORAGE_BUCKET', 'uploads')

    # Admin allow-list
    ADMIN_EMAILS = _email_list(_first_env('ADMIN_EMAILS', 'ADMIN_EMAIL'))

    # Email Configuration
    RESEND_API_KEY = os.environ.get('RESEND_API_KEY')
    MAIL_FROM = os.environ.get('MAIL_FROM', 'QuickBite <noreply@quickbite.app>')

    # Uploads
    MAX_UPLOAD_SIZE = 5 * 1024 * 1024
    # Cap on the whole request body; Werkzeug answers 413 above it
    MAX_CONTENT_LENGTH = MAX_UPLOAD_SIZE + 64 * 1024
    ALLOWED_IMAGE_EXTENSIONS = {'jpeg', 'jpg', 'png', 'gif', 'webp'}

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'
    TESTING = False


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quickbite.db'


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')  # Must be set in production


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    SUPABASE_URL = 'https://quickbite.supabase.test'
    SUPABASE_SERVICE_KEY = 'service-role-test-key'
    SUPABASE_ANON_KEY = ''
    ADMIN_EMAILS = ['admin@quickbite.test']
    RESEND_API_KEY = None
    LOG_LEVEL = 'DEBUG'
