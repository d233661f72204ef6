"""
Pytest configuration and fixtures for the vet clinic backend.

Every test runs against a fresh in-memory SQLite database with foreign keys
enforced, and a recording ``FakeImageStore`` in place of Cloudinary.
"""

import pytest
from flask_jwt_extended import create_access_token

from vet_clinic import create_app
from vet_clinic.extensions import db
from vet_clinic.models import Owner, Pet, PetType
from vet_clinic.services import ProfileChanges

from tests.factories import FakeImageStore, user_payload, vet_payload


@pytest.fixture
def storage():
    return FakeImageStore()


@pytest.fixture
def app(storage):
    """Application bound to an in-memory database, inside an app context."""
    app = create_app('testing', storage=storage)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def service(app):
    return app.extensions['profile_service']


@pytest.fixture
def make_user(service):
    """Factory creating users through the profile service."""

    def _make(role='STAFF', **overrides):
        if role == 'VETERINARIAN':
            data = vet_payload(**overrides)
        else:
            data = user_payload(role=role, **overrides)
        return service.create(ProfileChanges.from_mapping(data))

    return _make


@pytest.fixture
def admin(make_user):
    return make_user('ADMIN', email='admin@example.com', first_name='Ada', last_name='Admin')


@pytest.fixture
def staff(make_user):
    return make_user('STAFF', email='staff@example.com', first_name='Sam', last_name='Staff')


@pytest.fixture
def auth_headers(app):
    """Build an Authorization header for a user."""

    def _headers(user):
        token = create_access_token(
            identity=str(user.id),
            additional_claims={'email': user.email, 'role': user.role.value},
        )
        return {'Authorization': f'Bearer {token}'}

    return _headers


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


@pytest.fixture
def staff_headers(staff, auth_headers):
    return auth_headers(staff)


@pytest.fixture
def owner(app):
    owner = Owner(first_name='Olive', last_name='Owner', email='olive@example.com', phone='5550199')
    db.session.add(owner)
    db.session.commit()
    return owner


@pytest.fixture
def pet_type(app):
    pet_type = PetType(name='Dog')
    db.session.add(pet_type)
    db.session.commit()
    return pet_type


@pytest.fixture
def pet(owner, pet_type):
    pet = Pet(name='Rex', owner_id=owner.id, type_id=pet_type.id, gender='MALE')
    db.session.add(pet)
    db.session.commit()
    return pet
