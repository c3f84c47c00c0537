import os
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))


def _database_url(env_var, fallback):
    """Read a database URL from the environment; SQLAlchemy wants postgresql://"""
    url = os.environ.get(env_var)
    if not url:
        return fallback
    if url.startswith('postgres://'):
        url = 'postgresql://' + url[len('postgres://'):]
    return url


def _csv_env(env_var, default):
    raw = os.environ.get(env_var)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(',') if item.strip()]


class Config:
    """Settings shared by every showroom environment"""

    SECRET_KEY = os.environ.get('SECRET_KEY', 'showroom-dev-key')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # Catalog front-end dev servers
    CORS_ORIGINS = ['http://localhost:3000', 'http://localhost:5173']

    # Fabric images
    AZURE_STORAGE_CONNECTION_STRING = os.environ.get('AZURE_STORAGE_CONNECTION_STRING')
    AZURE_STORAGE_CONTAINER_NAME = os.environ.get('AZURE_STORAGE_CONTAINER_NAME', 'showroom')
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', 'uploads')  # local fallback, relative to instance path
    UPLOAD_MAX_WORKERS = int(os.environ.get('UPLOAD_MAX_WORKERS', 8))
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 64 * 1024 * 1024))  # one add-fabric batch

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # LC_TIME for spreadsheet end dates; empty means the host's locale
    LOCALE = os.environ.get('LOCALE', '')

    def __init__(self):
        self.SQLALCHEMY_DATABASE_URI = _database_url('DATABASE_URL', 'sqlite:///showroom.db')
        self.CORS_ORIGINS = _csv_env('CORS_ORIGINS', self.CORS_ORIGINS)


class DevelopmentConfig(Config):
    DEBUG = True

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = _database_url('DATABASE_URL', 'sqlite:///showroom_dev.db')


class ProductionConfig(Config):
    DEBUG = False

    def __init__(self):
        super().__init__()
        for required in ('SECRET_KEY', 'DATABASE_URL'):
            if not os.environ.get(required):
                raise ValueError(f"{required} environment variable is required in production")
        self.SECRET_KEY = os.environ['SECRET_KEY']
        self.SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_pre_ping': True,
            'pool_recycle': 1800,
            'pool_size': 5,
            'max_overflow': 10,
        }


class TestingConfig(Config):
    TESTING = True
    AZURE_STORAGE_CONNECTION_STRING = None
    UPLOAD_MAX_WORKERS = 4
    LOCALE = 'C'

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.CORS_ORIGINS = ['*']


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}


def get_config_name():
    """Pick the environment from FLASK_ENV, else Azure App Service, else development"""
    name = os.environ.get('FLASK_ENV', '').lower()
    if name in config:
        return name
    if os.environ.get('WEBSITE_SITE_NAME'):
        return 'production'
    return 'development'
