import io
import locale

import pytest
from openpyxl import Workbook
from PIL import Image

from app import create_app
from models import db, Fabric, Machine
from services.blob_storage import BlobStorageService


@pytest.fixture
def app(tmp_path):
    app = create_app('testing')
    app.extensions['blob_storage'] = BlobStorageService(local_root=str(tmp_path / 'uploads'))
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    return app.extensions['blob_storage']


def make_png(color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new('RGB', (4, 4), color).save(buf, format='PNG')
    return buf.getvalue()


def make_workbook(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def seed(app):
    """Two fabrics and one machine linked to the first of them"""
    with app.app_context():
        jersey = Fabric(name='Jersey Lycra', main_image='/uploads/fabrics/j/main/1_j.png')
        fleece = Fabric(name='Fleece 3 Thread', main_image='/uploads/fabrics/f/main/1_f.png')
        db.session.add_all([jersey, fleece])
        db.session.flush()
        mayer = Machine(name='Mayer 34A', type='Single', dia_gauge='34/24', fabrics=[jersey])
        db.session.add(mayer)
        db.session.commit()
        return {'jersey': jersey.id, 'fleece': fleece.id, 'mayer': mayer.id}


@pytest.fixture
def c_time_locale():
    """Pin LC_TIME to C so %x renders as MM/DD/YY"""
    previous = locale.setlocale(locale.LC_TIME)
    locale.setlocale(locale.LC_TIME, 'C')
    yield
    locale.setlocale(locale.LC_TIME, previous)
