"""
Tests for ProfileService: role-dependent veterinarian profiles, image
lifecycle, password changes and transactional integrity.
"""

import pytest
from sqlalchemy import func, select, text

from vet_clinic.exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from vet_clinic.extensions import db
from vet_clinic.models import User, UserRole, Veterinarian
from vet_clinic.services import ProfileChanges, UNSET

from tests.factories import image_upload, user_payload, vet_payload


def count(model):
    return db.session.scalar(select(func.count()).select_from(model))


def changes(**fields):
    return ProfileChanges.from_mapping(fields)


class TestProfileChanges:
    """Test cases for the ProfileChanges value object."""

    def test_unsupplied_fields_are_unset(self):
        """Fields not present in the mapping stay UNSET, not None."""
        c = changes(first_name='A', education=None)

        assert c.supplied('first_name')
        assert c.supplied('education')
        assert c.education is None
        assert not c.supplied('license_number')
        assert c.license_number is UNSET

    def test_unknown_keys_are_ignored(self):
        """Keys that are not profile fields are dropped."""
        c = changes(first_name='A', is_superuser=True)

        assert c.supplied_names() == ['first_name']


class TestCreate:
    """Test cases for ProfileService.create."""

    def test_create_veterinarian_with_profile(self, service):
        """A VETERINARIAN user gets a nested profile with the given license."""
        user = service.create(changes(**vet_payload(license_number='LIC1', experience=7)))

        assert user.role is UserRole.VETERINARIAN
        assert user.veterinarian is not None
        assert user.veterinarian.license_number == 'LIC1'
        assert user.veterinarian.experience == 7
        assert count(Veterinarian) == 1

    @pytest.mark.parametrize('role', ['STAFF', 'ADMIN'])
    def test_create_non_veterinarian_has_no_profile(self, service, role):
        """STAFF and ADMIN users never get a veterinarian row."""
        user = service.create(changes(**user_payload(role=role, license_number='IGNORED')))

        assert user.veterinarian is None
        assert count(Veterinarian) == 0

    def test_password_is_hashed(self, service):
        """The stored hash is not the password and verifies against it."""
        user = service.create(changes(**user_payload(password='secret1')))

        assert user.password_hash != 'secret1'
        assert user.check_password('secret1')
        assert 'password' not in user.to_dict()
        assert 'password_hash' not in user.to_dict()

    def test_email_is_normalized(self, service):
        """Emails are stored trimmed and lowercased."""
        user = service.create(changes(**user_payload(email='  Mixed.Case@Example.COM ')))

        assert user.email == 'mixed.case@example.com'

    def test_role_is_case_insensitive(self, service):
        user = service.create(changes(**user_payload(role='admin')))

        assert user.role is UserRole.ADMIN

    def test_missing_required_fields(self, service):
        """Every missing required field is reported."""
        with pytest.raises(ValidationError) as exc_info:
            service.create(changes(first_name='A', email='a@b.com'))

        missing = exc_info.value.details['missing']
        assert set(missing) == {'password', 'last_name', 'phone', 'role'}
        assert count(User) == 0

    def test_invalid_role(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create(changes(**user_payload(role='OWNER')))

        assert exc_info.value.field == 'role'

    def test_invalid_email(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create(changes(**user_payload(email='not-an-email')))

        assert exc_info.value.field == 'email'

    def test_short_password(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create(changes(**user_payload(password='abc')))

        assert exc_info.value.field == 'password'

    def test_veterinarian_requires_license(self, service):
        """A VETERINARIAN without a license number is rejected and nothing is written."""
        with pytest.raises(ValidationError) as exc_info:
            service.create(changes(**vet_payload(license_number='   ')))

        assert exc_info.value.field == 'license_number'
        assert count(User) == 0

    def test_negative_experience(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create(changes(**vet_payload(experience=-1)))

        assert exc_info.value.field == 'experience'
        assert count(User) == 0

    def test_non_integer_experience(self, service):
        with pytest.raises(ValidationError):
            service.create(changes(**vet_payload(experience='three')))

    def test_experience_from_form_string(self, service):
        """Multipart forms send numbers as strings."""
        user = service.create(changes(**vet_payload(experience='4')))

        assert user.veterinarian.experience == 4

    def test_duplicate_email(self, service):
        service.create(changes(**user_payload(email='dup@example.com')))

        with pytest.raises(ConflictError) as exc_info:
            service.create(changes(**user_payload(email='DUP@example.com')))

        assert exc_info.value.status_code == 409
        assert count(User) == 1

    def test_duplicate_license(self, service):
        service.create(changes(**vet_payload(license_number='LIC-SAME')))

        with pytest.raises(ConflictError):
            service.create(changes(**vet_payload(license_number='LIC-SAME')))

        assert count(User) == 1
        assert count(Veterinarian) == 1

    def test_duplicate_email_enforced_by_constraint(self, service, monkeypatch):
        """With the pre-check bypassed, the unique constraint still rejects the second insert."""
        service.create(changes(**user_payload(email='race@example.com')))
        monkeypatch.setattr(service, '_ensure_email_available', lambda *args, **kwargs: None)

        with pytest.raises(ConflictError) as exc_info:
            service.create(changes(**user_payload(email='race@example.com')))

        assert 'Email' in exc_info.value.message
        assert count(User) == 1

    def test_duplicate_license_enforced_by_constraint(self, service, monkeypatch):
        """The license constraint rolls back the user row created in the same transaction."""
        service.create(changes(**vet_payload(license_number='LIC-RACE')))
        monkeypatch.setattr(service, '_ensure_license_available', lambda *args, **kwargs: None)

        with pytest.raises(ConflictError):
            service.create(changes(**vet_payload(license_number='LIC-RACE')))

        assert count(User) == 1
        assert count(Veterinarian) == 1

    def test_create_with_image(self, service, storage):
        user = service.create(changes(**user_payload()), image_file=image_upload())

        assert user.image_url == storage.uploads[0]
        assert 'vet-clinic/users' in user.image_url

    def test_upload_failure_writes_nothing(self, service, storage):
        """A failed upload aborts the creation before any row is written."""
        storage.fail_upload = True

        with pytest.raises(UploadError):
            service.create(changes(**vet_payload()), image_file=image_upload())

        assert count(User) == 0
        assert count(Veterinarian) == 0

    def test_failed_commit_removes_uploaded_image(self, service, storage, monkeypatch):
        """An image uploaded for a creation that fails to commit is deleted again."""
        service.create(changes(**user_payload(email='taken@example.com')))
        monkeypatch.setattr(service, '_ensure_email_available', lambda *args, **kwargs: None)

        with pytest.raises(ConflictError):
            service.create(changes(**user_payload(email='taken@example.com')), image_file=image_upload())

        assert storage.deleted == storage.uploads


class TestRoleTransitions:
    """Test cases for role changes through ProfileService.update."""

    def test_veterinarian_to_staff_removes_profile(self, service, make_user):
        vet = make_user('VETERINARIAN')

        user = service.update(vet.id, changes(role='STAFF'))

        assert user.role is UserRole.STAFF
        assert user.veterinarian is None
        assert count(Veterinarian) == 0

    def test_promote_without_license_fails(self, service, make_user):
        """Becoming a VETERINARIAN without a profile requires a license; nothing changes."""
        staff = make_user('STAFF', first_name='Before')

        with pytest.raises(ValidationError) as exc_info:
            service.update(staff.id, changes(role='VETERINARIAN', first_name='After'))

        assert exc_info.value.field == 'license_number'
        db.session.expire_all()
        reloaded = db.session.get(User, staff.id)
        assert reloaded.role is UserRole.STAFF
        assert reloaded.first_name == 'Before'
        assert count(Veterinarian) == 0

    def test_demote_then_promote_without_license_fails(self, service, make_user):
        vet = make_user('VETERINARIAN')
        service.update(vet.id, changes(role='STAFF'))

        with pytest.raises(ValidationError):
            service.update(vet.id, changes(role='VETERINARIAN'))

    def test_promote_with_license_creates_profile(self, service, make_user):
        staff = make_user('STAFF')

        user = service.update(
            staff.id,
            changes(role='VETERINARIAN', license_number='LIC-NEW', experience=2, education='BVSc'),
        )

        assert user.veterinarian.license_number == 'LIC-NEW'
        assert user.veterinarian.experience == 2
        assert user.veterinarian.education == 'BVSc'

    def test_veterinarian_update_merges_profile(self, service, make_user):
        """Only supplied profile fields change; the license is kept."""
        vet = make_user('VETERINARIAN', license_number='LIC-KEEP', education='DVM')

        user = service.update(vet.id, changes(experience=10))

        assert user.veterinarian.license_number == 'LIC-KEEP'
        assert user.veterinarian.experience == 10
        assert user.veterinarian.education == 'DVM'

    def test_blank_license_keeps_existing(self, service, make_user):
        vet = make_user('VETERINARIAN', license_number='LIC-KEEP')

        user = service.update(vet.id, changes(license_number=''))

        assert user.veterinarian.license_number == 'LIC-KEEP'

    def test_explicit_none_clears_optional_field(self, service, make_user):
        vet = make_user('VETERINARIAN', education='DVM')

        user = service.update(vet.id, changes(education=None))

        assert user.veterinarian.education is None

    def test_license_taken_by_other_veterinarian(self, service, make_user):
        make_user('VETERINARIAN', license_number='LIC-A')
        other = make_user('VETERINARIAN', license_number='LIC-B')

        with pytest.raises(ConflictError):
            service.update(other.id, changes(license_number='LIC-A'))

    def test_own_license_is_not_a_conflict(self, service, make_user):
        vet = make_user('VETERINARIAN', license_number='LIC-SELF')

        user = service.update(vet.id, changes(license_number='LIC-SELF', experience=1))

        assert user.veterinarian.license_number == 'LIC-SELF'

    def test_profile_fields_ignored_for_staff(self, service, make_user):
        staff = make_user('STAFF')

        user = service.update(staff.id, changes(experience=5))

        assert user.veterinarian is None


class TestUpdate:
    """Test cases for field and image updates."""

    def test_update_fields(self, service, make_user):
        user = make_user('STAFF')

        updated = service.update(user.id, changes(first_name=' New ', phone='5559999'))

        assert updated.first_name == 'New'
        assert updated.phone == '5559999'

    def test_empty_required_field_rejected(self, service, make_user):
        user = make_user('STAFF')

        with pytest.raises(ValidationError):
            service.update(user.id, changes(last_name='  '))

    def test_email_taken_by_other_user(self, service, make_user):
        make_user('STAFF', email='first@example.com')
        second = make_user('STAFF')

        with pytest.raises(ConflictError):
            service.update(second.id, changes(email='FIRST@example.com'))

    def test_password_update_rehashes(self, service, make_user):
        user = make_user('STAFF')

        service.update(user.id, changes(password='another1'))

        assert user.check_password('another1')

    def test_update_missing_user(self, service):
        with pytest.raises(NotFoundError):
            service.update(999, changes(first_name='X'))

    def test_replace_image_deletes_previous(self, service, storage, make_user):
        """The superseded image is deleted after the new one is stored."""
        user = make_user('STAFF')
        first = service.update(user.id, changes(), image_file=image_upload()).image_url

        second = service.update(user.id, changes(), image_file=image_upload()).image_url

        assert second != first
        assert storage.deleted == [first]

    def test_remove_image(self, service, storage, make_user):
        user = make_user('STAFF')
        url = service.update(user.id, changes(), image_file=image_upload()).image_url

        updated = service.update(user.id, changes(), remove_image=True)

        assert updated.image_url is None
        assert storage.deleted == [url]

    def test_remove_image_without_image(self, service, storage, make_user):
        user = make_user('STAFF')

        service.update(user.id, changes(), remove_image=True)

        assert storage.deleted == []

    def test_upload_failure_leaves_user_unchanged(self, service, storage, make_user):
        user = make_user('STAFF', first_name='Before')
        storage.fail_upload = True

        with pytest.raises(UploadError):
            service.update(user.id, changes(first_name='After'), image_file=image_upload())

        db.session.expire_all()
        assert db.session.get(User, user.id).first_name == 'Before'

    def test_failed_commit_keeps_previous_image(self, service, storage, make_user, monkeypatch):
        """When the commit fails the new image is removed and the old one survives."""
        make_user('STAFF', email='other@example.com')
        user = make_user('STAFF')
        old_url = service.update(user.id, changes(), image_file=image_upload()).image_url
        monkeypatch.setattr(service, '_ensure_email_available', lambda *args, **kwargs: None)

        with pytest.raises(ConflictError):
            service.update(user.id, changes(email='other@example.com'), image_file=image_upload())

        new_url = storage.uploads[-1]
        assert storage.deleted == [new_url]
        db.session.expire_all()
        assert db.session.get(User, user.id).image_url == old_url

    def test_failed_commit_after_demotion_keeps_profile(self, service, storage, make_user, monkeypatch):
        """A VETERINARIAN->STAFF update that loses the email race changes nothing."""
        make_user('STAFF', email='other@example.com')
        vet = make_user('VETERINARIAN', license_number='LIC-KEEP')
        monkeypatch.setattr(service, '_ensure_email_available', lambda *args, **kwargs: None)

        with pytest.raises(ConflictError) as exc_info:
            service.update(vet.id, changes(email='other@example.com', role='STAFF'), image_file=image_upload())

        assert exc_info.value.message == "Email already exists"
        assert storage.deleted == storage.uploads
        db.session.expire_all()
        assert db.session.get(User, vet.id).role is UserRole.VETERINARIAN
        assert db.session.get(Veterinarian, vet.id).license_number == 'LIC-KEEP'

    def test_delete_failure_does_not_fail_update(self, service, storage, make_user):
        """Cleanup of the old image is best-effort."""
        user = make_user('STAFF')
        service.update(user.id, changes(), image_file=image_upload())
        storage.fail_delete = True

        updated = service.update(user.id, changes(), image_file=image_upload())

        assert updated.image_url == storage.uploads[-1]


class TestChangePassword:
    """Test cases for ProfileService.change_password."""

    def test_change_password(self, service, make_user):
        user = make_user('STAFF', password='secret1')

        service.change_password(user.id, 'secret1', 'newsecret')

        assert user.check_password('newsecret')
        assert not user.check_password('secret1')

    def test_wrong_current_password(self, service, make_user):
        user = make_user('STAFF', password='secret1')

        with pytest.raises(AuthError):
            service.change_password(user.id, 'wrong-password', 'newsecret')

    def test_same_password_rejected(self, service, make_user):
        user = make_user('STAFF', password='secret1')

        with pytest.raises(ValidationError) as exc_info:
            service.change_password(user.id, 'secret1', 'secret1')

        assert exc_info.value.field == 'new_password'

    def test_short_new_password(self, service, make_user):
        user = make_user('STAFF', password='secret1')

        with pytest.raises(ValidationError):
            service.change_password(user.id, 'secret1', 'abc')


class TestDelete:
    """Test cases for ProfileService.delete."""

    def test_delete_veterinarian_removes_both_rows(self, service, make_user):
        vet = make_user('VETERINARIAN')
        vet_id = vet.id
        db.session.expunge_all()

        service.delete(vet_id)

        assert count(User) == 0
        assert count(Veterinarian) == 0

    def test_database_cascades_profile(self, make_user):
        """Removing the user row directly also removes its profile."""
        vet = make_user('VETERINARIAN')
        db.session.execute(text('DELETE FROM users WHERE id = :id'), {'id': vet.id})
        db.session.commit()

        assert count(Veterinarian) == 0

    def test_delete_removes_image(self, service, storage, make_user):
        user = make_user('STAFF')
        url = service.update(user.id, changes(), image_file=image_upload()).image_url

        service.delete(user.id)

        assert storage.deleted == [url]

    def test_delete_missing_user(self, service):
        with pytest.raises(NotFoundError):
            service.delete(42)


class TestReads:
    """Test cases for get and list."""

    def test_list_filters_by_role(self, service, make_user):
        make_user('STAFF')
        vet = make_user('VETERINARIAN')

        result = service.list(role='veterinarian')

        assert [u.id for u in result] == [vet.id]

    def test_list_invalid_role(self, service):
        with pytest.raises(ValidationError):
            service.list(role='OWNER')
