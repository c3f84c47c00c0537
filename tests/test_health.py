def test_health_reports_local_storage_as_degraded(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'degraded'
    assert body['checks']['database']['type'] == 'SQLite'
    assert body['checks']['blob_storage']['backend'] == 'local'
    assert body['message'] == 'Connected to main server'


def test_simple_health(client):
    assert client.get('/api/health/simple').get_json()['status'] == 'healthy'


def test_unknown_api_route_is_json_404(client):
    response = client.get('/api/nothing-here')
    assert response.status_code == 404
    assert response.get_json()['code'] == 'NOT_FOUND'
