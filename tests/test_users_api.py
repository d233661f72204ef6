"""
HTTP tests for /api/users and /api/veterinarians.
"""

import json

from sqlalchemy import func, select

from vet_clinic.extensions import db
from vet_clinic.models import AuditLog, User, Veterinarian

from tests.factories import image_upload, user_payload, vet_payload


def count(model):
    return db.session.scalar(select(func.count()).select_from(model))


class TestCreateUser:
    """Test cases for POST /api/users."""

    def test_create_veterinarian(self, client, admin_headers):
        """Creating a VETERINARIAN returns the nested profile and never the password."""
        response = client.post('/api/users', headers=admin_headers, json={
            'first_name': 'A',
            'last_name': 'B',
            'email': 'a@b.com',
            'password': 'secret1',
            'phone': '555',
            'role': 'VETERINARIAN',
            'license_number': 'LIC1',
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        data = body['data']
        assert data['role'] == 'VETERINARIAN'
        assert data['veterinarian']['license_number'] == 'LIC1'
        assert 'password' not in data
        assert 'password_hash' not in data

    def test_role_change_to_staff_drops_profile(self, client, admin_headers):
        created = client.post('/api/users', headers=admin_headers, json=vet_payload(license_number='LIC1'))
        user_id = created.get_json()['data']['id']

        response = client.put(f'/api/users/{user_id}', headers=admin_headers, json={'role': 'STAFF'})

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['role'] == 'STAFF'
        assert data['veterinarian'] is None
        assert count(Veterinarian) == 0

    def test_create_with_image(self, client, admin_headers, storage):
        data = user_payload()
        data['image_file'] = image_upload()

        response = client.post('/api/users', headers=admin_headers, data=data,
                               content_type='multipart/form-data')

        assert response.status_code == 201
        assert response.get_json()['data']['image_url'] == storage.uploads[0]

    def test_invalid_image_type(self, client, admin_headers, storage):
        """Non-image uploads are rejected before anything is stored."""
        data = user_payload()
        data['image_file'] = image_upload(filename='notes.txt', content_type='text/plain')

        response = client.post('/api/users', headers=admin_headers, data=data,
                               content_type='multipart/form-data')

        assert response.status_code == 400
        assert response.get_json()['success'] is False
        assert storage.uploads == []

    def test_upload_failure_returns_500(self, client, admin_headers, storage):
        storage.fail_upload = True
        data = user_payload(email='nofile@example.com')
        data['image_file'] = image_upload()

        response = client.post('/api/users', headers=admin_headers, data=data,
                               content_type='multipart/form-data')

        assert response.status_code == 500
        assert response.get_json()['success'] is False
        assert User.query.filter_by(email='nofile@example.com').first() is None

    def test_missing_fields(self, client, admin_headers):
        response = client.post('/api/users', headers=admin_headers, json={'first_name': 'Only'})

        assert response.status_code == 400
        assert 'email' in response.get_json()['details']['missing']

    def test_veterinarian_without_license(self, client, admin_headers):
        response = client.post('/api/users', headers=admin_headers, json=vet_payload(license_number=''))

        assert response.status_code == 400
        assert response.get_json()['details']['field'] == 'license_number'

    def test_duplicate_email(self, client, admin_headers, staff):
        response = client.post('/api/users', headers=admin_headers, json=user_payload(email='staff@example.com'))

        assert response.status_code == 409
        assert response.get_json()['error'] == 'Email already exists'

    def test_requires_token(self, client):
        response = client.post('/api/users', json=user_payload())

        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_requires_admin(self, client, staff_headers):
        response = client.post('/api/users', headers=staff_headers, json=user_payload())

        assert response.status_code == 403

    def test_create_is_audited(self, client, admin, admin_headers):
        response = client.post('/api/users', headers=admin_headers, json=user_payload())
        user_id = response.get_json()['data']['id']

        entry = AuditLog.query.filter_by(entity_type='user', action='create').one()
        assert entry.entity_id == str(user_id)
        assert entry.user_id == admin.id


class TestReadUsers:
    """Test cases for GET /api/users."""

    def test_list_users(self, client, admin, staff, staff_headers):
        response = client.get('/api/users', headers=staff_headers)

        assert response.status_code == 200
        emails = {u['email'] for u in response.get_json()['data']}
        assert emails == {'admin@example.com', 'staff@example.com'}

    def test_list_by_role(self, client, admin_headers, make_user):
        vet = make_user('VETERINARIAN')

        response = client.get('/api/users?role=VETERINARIAN', headers=admin_headers)

        assert [u['id'] for u in response.get_json()['data']] == [vet.id]

    def test_list_invalid_role(self, client, admin_headers):
        response = client.get('/api/users?role=OWNER', headers=admin_headers)

        assert response.status_code == 400

    def test_get_user(self, client, staff, staff_headers):
        response = client.get(f'/api/users/{staff.id}', headers=staff_headers)

        assert response.status_code == 200
        assert response.get_json()['data']['email'] == 'staff@example.com'

    def test_get_missing_user(self, client, admin_headers):
        response = client.get('/api/users/999', headers=admin_headers)

        assert response.status_code == 404
        assert response.get_json() == {
            'success': False,
            'error': 'User not found',
            'error_code': 'NotFoundError',
            'details': {'id': 999},
        }


class TestUpdateUser:
    """Test cases for PUT /api/users/<id>."""

    def test_promote_without_license(self, client, admin_headers, staff):
        response = client.put(f'/api/users/{staff.id}', headers=admin_headers, json={'role': 'VETERINARIAN'})

        assert response.status_code == 400

    def test_replace_and_remove_image(self, client, admin_headers, staff, storage):
        first = client.put(f'/api/users/{staff.id}', headers=admin_headers,
                           data={'image_file': image_upload()}, content_type='multipart/form-data')
        first_url = first.get_json()['data']['image_url']

        removed = client.put(f'/api/users/{staff.id}', headers=admin_headers,
                             data={'remove_image': 'true'}, content_type='multipart/form-data')

        assert removed.status_code == 200
        assert removed.get_json()['data']['image_url'] is None
        assert storage.deleted == [first_url]

    def test_email_race_returns_conflict_and_cleans_upload(self, client, admin_headers, service,
                                                           make_user, storage, monkeypatch):
        """The unique constraint decides when the pre-check is bypassed; the new image is deleted."""
        make_user('STAFF', email='other@example.com')
        user = make_user('STAFF', email='mine@example.com')
        monkeypatch.setattr(service, '_ensure_email_available', lambda *args, **kwargs: None)

        response = client.put(f'/api/users/{user.id}', headers=admin_headers,
                              data={'email': 'other@example.com', 'image_file': image_upload()},
                              content_type='multipart/form-data')

        assert response.status_code == 409
        assert response.get_json()['error'] == 'Email already exists'
        assert len(storage.uploads) == 1
        assert storage.deleted == storage.uploads
        db.session.expire_all()
        assert db.session.get(User, user.id).email == 'mine@example.com'

    def test_email_race_while_demoting_veterinarian(self, client, admin_headers, service,
                                                    make_user, storage, monkeypatch):
        make_user('STAFF', email='other@example.com')
        vet = make_user('VETERINARIAN', license_number='LIC-RACE')
        monkeypatch.setattr(service, '_ensure_email_available', lambda *args, **kwargs: None)

        response = client.put(f'/api/users/{vet.id}', headers=admin_headers,
                              data={'email': 'other@example.com', 'role': 'STAFF', 'image_file': image_upload()},
                              content_type='multipart/form-data')

        assert response.status_code == 409
        assert storage.deleted == storage.uploads
        db.session.expire_all()
        assert db.session.get(User, vet.id).role.value == 'VETERINARIAN'
        assert count(Veterinarian) == 1

    def test_license_race_returns_conflict_and_cleans_upload(self, client, admin_headers, service,
                                                             make_user, storage, monkeypatch):
        make_user('VETERINARIAN', license_number='LIC-TAKEN')
        vet = make_user('VETERINARIAN', license_number='LIC-MINE')
        monkeypatch.setattr(service, '_ensure_license_available', lambda *args, **kwargs: None)

        response = client.put(f'/api/users/{vet.id}', headers=admin_headers,
                              data={'license_number': 'LIC-TAKEN', 'image_file': image_upload()},
                              content_type='multipart/form-data')

        assert response.status_code == 409
        assert response.get_json()['error'] == 'License number already exists'
        assert storage.deleted == storage.uploads
        db.session.expire_all()
        assert db.session.get(Veterinarian, vet.id).license_number == 'LIC-MINE'

    def test_remove_wins_over_new_image(self, client, admin, admin_headers, staff, storage):
        """Sending both remove_image and image_file removes the image and audits a removal."""
        client.put(f'/api/users/{staff.id}', headers=admin_headers,
                   data={'image_file': image_upload()}, content_type='multipart/form-data')

        response = client.put(f'/api/users/{staff.id}', headers=admin_headers,
                              data={'remove_image': 'true', 'image_file': image_upload()},
                              content_type='multipart/form-data')

        assert response.status_code == 200
        assert response.get_json()['data']['image_url'] is None
        assert len(storage.uploads) == 1
        entry = AuditLog.query.filter_by(entity_type='user', action='update').order_by(AuditLog.id.desc()).first()
        assert json.loads(entry.details)['image'] == 'removed'

    def test_update_missing_user(self, client, admin_headers):
        response = client.put('/api/users/999', headers=admin_headers, json={'first_name': 'X'})

        assert response.status_code == 404

    def test_requires_admin(self, client, staff, staff_headers):
        response = client.put(f'/api/users/{staff.id}', headers=staff_headers, json={'role': 'ADMIN'})

        assert response.status_code == 403


class TestDeleteUser:
    """Test cases for DELETE /api/users/<id>."""

    def test_delete_veterinarian(self, client, admin_headers, make_user):
        vet = make_user('VETERINARIAN')

        response = client.delete(f'/api/users/{vet.id}', headers=admin_headers)

        assert response.status_code == 200
        assert count(Veterinarian) == 0
        assert db.session.get(User, vet.id) is None

    def test_cannot_delete_self(self, client, admin, admin_headers):
        response = client.delete(f'/api/users/{admin.id}', headers=admin_headers)

        assert response.status_code == 400
        assert db.session.get(User, admin.id) is not None

    def test_delete_missing_user(self, client, admin_headers):
        response = client.delete('/api/users/999', headers=admin_headers)

        assert response.status_code == 404


class TestVeterinarians:
    """Test cases for /api/veterinarians."""

    def test_list_veterinarians(self, client, staff_headers, make_user):
        vet = make_user('VETERINARIAN', license_number='LIC-LIST', first_name='Vera')

        response = client.get('/api/veterinarians', headers=staff_headers)

        data = response.get_json()['data']
        assert len(data) == 1
        assert data[0]['user_id'] == vet.id
        assert data[0]['license_number'] == 'LIC-LIST'
        assert data[0]['first_name'] == 'Vera'

    def test_get_veterinarian(self, client, staff_headers, make_user):
        vet = make_user('VETERINARIAN')

        response = client.get(f'/api/veterinarians/{vet.id}', headers=staff_headers)

        assert response.status_code == 200
        assert response.get_json()['data']['email'] == vet.email

    def test_staff_is_not_a_veterinarian(self, client, staff, staff_headers):
        response = client.get(f'/api/veterinarians/{staff.id}', headers=staff_headers)

        assert response.status_code == 404
