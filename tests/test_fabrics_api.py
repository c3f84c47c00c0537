import io

from conftest import make_png
from models import db, Fabric


def image(name, color=(200, 30, 30)):
    return (io.BytesIO(make_png(color)), name)


def post_fabric(client, **fields):
    return client.post('/api/fabrics', data=fields, content_type='multipart/form-data')


def test_create_fabric_uploads_every_segment(client, app):
    response = post_fabric(
        client,
        name='Jersey Lycra',
        main_image=image('main.png'),
        men_collection=[image('m1.png'), image('m2.png')],
        kids_collection=[image('k1.png')],
        upload_id='batch-1',
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body['uploaded'] == body['total'] == 4
    assert body['percent'] == 100
    assert body['status'] == f"Fabric added successfully! ID: {body['fabric']['id']}"

    fabric = body['fabric']
    assert fabric['name'] == 'Jersey Lycra'
    assert fabric['mainImage'].startswith('/uploads/fabrics/Jersey_Lycra_')
    assert len(fabric['menCollection']) == 2
    assert fabric['womenCollection'] == []
    assert len(fabric['kidsCollection']) == 1
    assert fabric['machines'] == []

    # the batch is only tracked while the request runs
    assert client.get('/api/fabrics/uploads/batch-1').status_code == 404


def test_uploaded_images_are_served_locally(client):
    body = post_fabric(client, name='Rib', main_image=image('main.png')).get_json()
    served = client.get(body['fabric']['mainImage'])
    assert served.status_code == 200
    assert served.data == make_png()


def test_missing_name_or_main_image_is_rejected(client, app):
    response = post_fabric(client, name='  ', main_image=image('main.png'))
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Please enter a fabric name and select a main image.'

    response = post_fabric(client, name='Rib', men_collection=[image('m.png')])
    assert response.status_code == 400

    with app.app_context():
        assert Fabric.query.count() == 0


def test_non_image_is_rejected(client):
    response = post_fabric(
        client,
        name='Rib',
        main_image=image('main.png'),
        women_collection=[(io.BytesIO(b'not an image'), 'notes.txt')],
    )
    assert response.status_code == 400
    assert response.get_json()['error'] == 'notes.txt is not an image'


def test_failed_upload_writes_no_record(client, app, storage, monkeypatch):
    real_upload = storage.upload_file

    def flaky_upload(content, blob_path):
        if blob_path.endswith('_bad.png'):
            return False, 'Upload failed: connection reset', None
        return real_upload(content, blob_path)

    monkeypatch.setattr(storage, 'upload_file', flaky_upload)

    response = post_fabric(
        client,
        name='Jersey',
        main_image=image('main.png'),
        men_collection=[image('good.png'), image('bad.png')],
    )

    assert response.status_code == 500
    body = response.get_json()
    assert body['status'].startswith('Error adding fabric: bad.png')
    assert body['uploaded'] < body['total'] == 3
    assert body['percent'] == round(body['uploaded'] / 3 * 100)

    with app.app_context():
        assert Fabric.query.count() == 0


def test_list_names_and_get(client, seed):
    listing = client.get('/api/fabrics').get_json()
    assert [f['name'] for f in listing] == ['Jersey Lycra', 'Fleece 3 Thread']
    assert listing[0]['machines'] == [seed['mayer']]

    assert client.get('/api/fabrics/names').get_json() == ['Jersey Lycra', 'Fleece 3 Thread']

    assert client.get(f"/api/fabrics/{seed['fleece']}").get_json()['name'] == 'Fleece 3 Thread'
    missing = client.get('/api/fabrics/999')
    assert missing.status_code == 404
    assert missing.get_json()['error'] == 'No such fabric!'


def test_rename_fabric(client, seed):
    response = client.put(f"/api/fabrics/{seed['jersey']}", json={'name': '  Jersey Lycra 180 '})
    assert response.status_code == 200
    body = response.get_json()
    assert body['updated'] == ['name']
    assert body['fabric']['name'] == 'Jersey Lycra 180'


def test_unchanged_or_empty_name_is_ignored(client, seed):
    for name in ['Jersey Lycra', '   ']:
        body = client.put(f"/api/fabrics/{seed['jersey']}", json={'name': name}).get_json()
        assert body['updated'] == []
        assert body['fabric']['name'] == 'Jersey Lycra'


def test_replace_main_image(client, seed):
    response = client.put(
        f"/api/fabrics/{seed['jersey']}",
        data={'main_image': image('new.png', (0, 0, 255))},
        content_type='multipart/form-data',
    )
    body = response.get_json()
    assert body['updated'] == ['main_image']
    assert body['fabric']['mainImage'].startswith(f"/uploads/fabrics/{seed['jersey']}/main/")


def test_add_gallery_images_appends(client, seed):
    url = f"/api/fabrics/{seed['jersey']}/images/women"
    first = client.post(url, data={'files': [image('w1.png')]}, content_type='multipart/form-data')
    second = client.post(url, data={'files': [image('w2.png'), image('w3.png')]},
                         content_type='multipart/form-data')

    assert first.status_code == second.status_code == 201
    collection = second.get_json()['collection']
    assert len(collection) == 3
    assert collection[0] == first.get_json()['added'][0]
    assert all(f"fabrics/{seed['jersey']}/women/" in u for u in collection)


def test_add_to_unknown_segment(client, seed):
    response = client.post(f"/api/fabrics/{seed['jersey']}/images/babies",
                           data={'files': [image('b.png')]}, content_type='multipart/form-data')
    assert response.status_code == 404


def test_delete_gallery_image(client, seed, storage):
    added = client.post(f"/api/fabrics/{seed['jersey']}/images/men",
                        data={'files': [image('m1.png'), image('m2.png')]},
                        content_type='multipart/form-data').get_json()['added']

    response = client.delete(f"/api/fabrics/{seed['jersey']}/images/men", json={'url': added[0]})

    assert response.status_code == 200
    body = response.get_json()
    assert body['outcome'] == {'document_removed': True, 'blob_removed': True}
    assert body['collection'] == [added[1]]
    assert client.get(added[0]).status_code == 404


def test_delete_keeps_going_when_blob_delete_fails(client, app, seed, storage, monkeypatch):
    with app.app_context():
        fabric = db.session.get(Fabric, seed['jersey'])
        fabric.add_images('kids', ['/uploads/fabrics/1/kids/1_k.png'])
        db.session.commit()

    monkeypatch.setattr(storage, 'delete_file', lambda url: (False, 'Deletion failed: locked'))

    response = client.delete(f"/api/fabrics/{seed['jersey']}/images/kids",
                             json={'url': '/uploads/fabrics/1/kids/1_k.png'})

    assert response.get_json()['outcome'] == {'document_removed': True, 'blob_removed': False}
    with app.app_context():
        assert db.session.get(Fabric, seed['jersey']).kids_collection == []


def test_delete_unknown_url(client, seed):
    response = client.delete(f"/api/fabrics/{seed['jersey']}/images/men",
                             json={'url': '/uploads/fabrics/1/men/nope.png'})
    assert response.status_code == 404
