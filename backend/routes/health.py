from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from models import db

health_bp = Blueprint('health', __name__)


def _database_check():
    db.session.execute(text('SELECT 1'))
    backend = db.engine.url.get_backend_name()
    return {
        'status': 'healthy',
        'type': {'sqlite': 'SQLite', 'postgresql': 'PostgreSQL'}.get(backend, backend),
        'connected': True
    }


def _storage_check():
    storage = current_app.extensions.get('blob_storage')
    if storage is not None and storage.use_azure:
        return {'status': 'healthy', 'backend': 'azure', 'container': storage.container_name}
    return {
        'status': 'warning',
        'backend': 'local',
        'message': 'Azure Storage not configured - fabric images kept on local disk'
    }


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Connectivity of the document store and mode of the image store.
    Drives the "Connected to main server" badge on the catalog page.
    """
    checks = {}
    status = 'healthy'

    try:
        checks['database'] = _database_check()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Database health check failed: {e}")
        checks['database'] = {'status': 'unhealthy', 'connected': False, 'error': str(e)}
        status = 'unhealthy'

    checks['blob_storage'] = _storage_check()
    if status == 'healthy' and checks['blob_storage']['status'] != 'healthy':
        status = 'degraded'

    connected = status != 'unhealthy'
    body = {
        'status': status,
        'app': 'Butterfly Showroom API',
        'version': '1.0.0',
        'timestamp': datetime.utcnow().isoformat() + 'Z',
        'checks': checks,
        'message': 'Connected to main server' if connected else 'Failed to connect to main server'
    }
    current_app.logger.debug(f"Health check: {status}")
    return jsonify(body), 200 if connected else 503


@health_bp.route('/health/simple', methods=['GET'])
def simple_health_check():
    """Minimal probe for the App Service health check"""
    try:
        db.session.execute(text('SELECT 1'))
        return jsonify({'status': 'healthy'}), 200
    except SQLAlchemyError as e:
        current_app.logger.error(f"Simple health check failed: {e}")
        return jsonify({'status': 'unhealthy'}), 503
