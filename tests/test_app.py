import locale

from app import create_app
from config import TestingConfig


def test_app_applies_configured_time_locale(app):
    assert app.config['LOCALE'] == 'C'
    assert locale.setlocale(locale.LC_TIME) == 'C'


def test_unknown_locale_does_not_stop_startup(monkeypatch, caplog):
    monkeypatch.setattr(TestingConfig, 'LOCALE', 'xx_NOWHERE.UTF-8')
    app = create_app('testing')
    assert app.config['LOCALE'] == 'xx_NOWHERE.UTF-8'
    assert "Locale 'xx_NOWHERE.UTF-8' unavailable" in caplog.text


def test_index_lists_endpoints(client):
    body = client.get('/').get_json()
    assert body['message'] == 'Butterfly Showroom API'
    assert body['endpoints']['imports'] == '/api/imports'
