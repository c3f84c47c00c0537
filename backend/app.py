import os
import logging
import locale
import importlib
from flask import Flask, request, jsonify, send_from_directory, abort
from flask_cors import CORS
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

from config import config, get_config_name
from models import db
from routes import BLUEPRINTS
from services import blob_storage
from services.uploads import ProgressRegistry

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

# status -> (error, message, code) for the JSON error bodies
ERROR_BODIES = {
    404: ('Not Found', 'No such endpoint: {path}', 'NOT_FOUND'),
    405: ('Method Not Allowed', '{method} is not supported on {path}', 'METHOD_NOT_ALLOWED'),
    413: ('Upload too large', 'The selected files exceed the upload size limit', 'PAYLOAD_TOO_LARGE'),
    500: ('Internal Server Error', 'Something went wrong on the showroom server', 'INTERNAL_ERROR'),
}


def create_app(config_name=None):
    """
    Application factory for the showroom API
    """
    config_name = config_name or get_config_name()
    app = Flask(__name__)
    app.config.from_object(config[config_name]())

    _configure_logging(app, config_name)
    _apply_locale(app)
    app.logger.info(f"Starting showroom API ({config_name})")

    os.makedirs(app.instance_path, exist_ok=True)

    db.init_app(app)
    CORS(app,
         origins=app.config.get('CORS_ORIGINS', []),
         methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type', 'Accept', 'Origin', 'X-Requested-With'],
         max_age=86400)

    storage = blob_storage.init_app(app)
    app.extensions['upload_progress'] = ProgressRegistry()
    app.logger.info(f"Fabric images: {'azure' if storage.use_azure else 'local disk'}")

    for module_name, blueprint_name, url_prefix in BLUEPRINTS:
        try:
            module = importlib.import_module(module_name)
            app.register_blueprint(getattr(module, blueprint_name), url_prefix=url_prefix)
        except (ImportError, AttributeError) as e:
            app.logger.error(f"Failed to register {blueprint_name} from {module_name}: {e}")
            raise
        app.logger.debug(f"Registered {blueprint_name} at {url_prefix}")

    @app.route('/')
    def index():
        return jsonify({
            'message': 'Butterfly Showroom API',
            'status': 'running',
            'version': '1.0.0',
            'environment': config_name,
            'endpoints': {
                'health': '/api/health',
                'fabrics': '/api/fabrics',
                'machines': '/api/machines',
                'orders': '/api/orders',
                'imports': '/api/imports'
            }
        })

    @app.route('/uploads/<path:blob_path>')
    def serve_local_upload(blob_path):
        """Serve images kept by the local storage fallback"""
        current = blob_storage.get_storage()
        if current.use_azure:
            abort(404)
        return send_from_directory(current.local_root, blob_path)

    def json_error(error):
        status = error.code if isinstance(error, HTTPException) else 500
        if status == 500:
            db.session.rollback()
            app.logger.error(f"Internal server error on {request.method} {request.path}: {error}")
        title, message, code = ERROR_BODIES[status]
        return jsonify({
            'error': title,
            'message': message.format(path=request.path, method=request.method),
            'code': code
        }), status

    for status in ERROR_BODIES:
        app.register_error_handler(status, json_error)

    with app.app_context():
        try:
            db.session.execute(text('SELECT 1'))
            db.create_all()
        except Exception as db_error:
            app.logger.error(f"Database initialization error: {db_error}")
            raise
        app.logger.info("Fabric, machine and order tables ready")

    return app


def _apply_locale(app):
    """Spreadsheet end dates render with %x, which follows LC_TIME"""
    name = app.config.get('LOCALE', '')
    try:
        locale.setlocale(locale.LC_TIME, name)
    except locale.Error as e:
        app.logger.warning(f"Locale {name!r} unavailable, end dates keep "
                           f"{locale.setlocale(locale.LC_TIME)!r}: {e}")
        return
    app.logger.info(f"End dates rendered for locale {locale.setlocale(locale.LC_TIME)!r}")


def _configure_logging(app, config_name):
    if app.debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    app.logger.setLevel(level)

    if config_name == 'production':
        # App Service collects stdout; keep source locations for tracebacks
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT + ' [in %(pathname)s:%(lineno)d]'))
        app.logger.addHandler(handler)
        app.logger.propagate = False


if __name__ == '__main__':
    dev_app = create_app()
    dev_app.run(
        debug=dev_app.config.get('DEBUG', False),
        host='0.0.0.0',
        port=int(os.environ.get('PORT', 5000))
    )
