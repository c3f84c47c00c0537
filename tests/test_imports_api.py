import io
from datetime import time

from conftest import make_workbook


def upload(client, url, content, filename='sheet.xlsx'):
    return client.post(url, data={'file': (io.BytesIO(content), filename)},
                       content_type='multipart/form-data')


def test_fabric_machine_sheet(client):
    content = make_workbook([
        ('Fabric', 'Machines'),
        ('Jersey Lycra', 'Mayer34A-OR34b'),
        ('Fleece', 'OR34b'),
    ])
    response = upload(client, '/api/imports/fabric-machines', content)

    assert response.status_code == 200
    assert response.get_json() == [
        {'machineName': 'Mayer34A', 'fabrics': ['Jersey Lycra']},
        {'machineName': 'OR34b', 'fabrics': ['Jersey Lycra', 'Fleece']},
    ]


def test_malformed_row_reports_its_index(client):
    content = make_workbook([('Fabric', 'Machines'), ('Jersey', 'A'), ('Rib', None)])
    response = upload(client, '/api/imports/fabric-machines', content)

    assert response.status_code == 400
    body = response.get_json()
    assert body['row'] == 2
    assert body['error'].startswith('Row 2:')


def test_wrong_file_type(client):
    response = upload(client, '/api/imports/fabric-machines', b'a,b', filename='sheet.csv')
    assert response.status_code == 400
    assert client.post('/api/imports/orders-plan').status_code == 400


def test_unreadable_workbook(client):
    response = upload(client, '/api/imports/orders-plan', b'garbage')
    assert response.status_code == 400
    assert 'row' not in response.get_json()


def test_orders_plan_then_check_machines(client, seed):
    content = make_workbook([
        ('Machine', 'Fabric', 'Rate', None, 'Days', 'Customer', 'Notes', 'End'),
        ('mayer 34a', None),
        (None, 'Jersey', 300, None, 5, 'Acme', 'rush', 'next week'),
        ('Terrot 30', None),
        (None, 'Rib', 150, None, 2, 'Beta', None, 'friday'),
    ])
    response = upload(client, '/api/imports/orders-plan', content)

    assert response.status_code == 200
    blocks = response.get_json()
    assert [b['machineName'] for b in blocks] == ['mayer 34a', 'Terrot 30']
    assert blocks[0]['orders'][0] == {
        'fabric': 'Jersey',
        'productionRate': 300,
        'customer': 'Acme',
        'days': 5,
        'endDate': 'next week',
        'otherDetails': ['Acme', 'rush'],
    }
    assert not any(b['exists'] for b in blocks)

    checked = client.post('/api/imports/orders-plan/check', json={'blocks': blocks}).get_json()
    assert [b['exists'] for b in checked] == [True, False]
    assert checked[0]['orders'] == blocks[0]['orders']


def test_check_requires_block_list(client):
    response = client.post('/api/imports/orders-plan/check', json={'blocks': 'Mayer'})
    assert response.status_code == 400


def test_orders_plan_with_time_cells_and_huge_serial(client):
    content = make_workbook([
        ('Machine', 'Fabric', 'Rate', None, 'Days', 'Customer', 'Notes', 'End'),
        ('Mayer 34A', None),
        (None, 'Jersey', 300, None, 5, 'Acme', time(8, 30), 99999999),
    ])
    response = upload(client, '/api/imports/orders-plan', content)

    assert response.status_code == 200
    order = response.get_json()[0]['orders'][0]
    assert order['otherDetails'] == ['Acme', '08:30:00']
    assert order['endDate'] == 99999999


def test_orders_plan_end_date_follows_configured_locale(client):
    content = make_workbook([
        ('Machine', 'Fabric', 'Rate', None, 'Days', 'Customer', 'Notes', 'End'),
        ('Mayer 34A', None),
        (None, 'Jersey', 300, None, 5, 'Acme', None, 45000),
    ])
    order = upload(client, '/api/imports/orders-plan', content).get_json()[0]['orders'][0]
    assert order['endDate'] == '03/15/23'
