"""
Profile Service
Staff account management: role-dependent veterinarian profiles, profile
images and password changes.

A VETERINARIAN user owns exactly one ``Veterinarian`` row; any other role owns
none. ``ProfileService._apply_role_transition`` is the only place that creates,
merges or drops that row, and it always does so in the same commit as the
user row.
"""
import logging
import re
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from vet_clinic.exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from vet_clinic.models import User, UserRole, Veterinarian

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 6

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

REQUIRED_CREATE_FIELDS = ('password', 'first_name', 'last_name', 'email', 'phone', 'role')


class _Unset:
    """Marker for a field the caller did not supply."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return 'UNSET'


UNSET = _Unset()


@dataclass
class ProfileChanges:
    """
    Field changes for one create/update call.

    Every field defaults to ``UNSET``. ``None`` means "explicitly cleared",
    which matters for the optional veterinarian fields.
    """

    first_name: Any = UNSET
    last_name: Any = UNSET
    email: Any = UNSET
    password: Any = UNSET
    phone: Any = UNSET
    role: Any = UNSET
    license_number: Any = UNSET
    experience: Any = UNSET
    education: Any = UNSET

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'ProfileChanges':
        """Build from a JSON body or form; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def supplied(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    def supplied_names(self) -> List[str]:
        return [f.name for f in fields(self) if self.supplied(f.name)]


def _clean(value):
    """Strip strings; blank strings become None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class ProfileService:
    """
    Orchestrates user persistence, image lifecycle and veterinarian profiles.

    Args:
        session: SQLAlchemy session (``db.session``)
        storage: Image store with ``upload(file, folder)`` and ``delete(locator)``
        image_folder: Folder that profile images are uploaded to
    """

    def __init__(self, session, storage, image_folder: str = 'vet-clinic/users'):
        self.session = session
        self.storage = storage
        self.image_folder = image_folder

    # ------------------------------------------------------------------ reads

    def get(self, user_id) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError('User', user_id)
        return user

    def list(self, role=None) -> List[User]:
        query = self.session.query(User)
        if role is not None:
            parsed = UserRole.parse(role)
            if parsed is None:
                raise ValidationError(f"Invalid role '{role}'", field='role')
            query = query.filter(User.role == parsed)
        return query.order_by(User.id.asc()).all()

    # ---------------------------------------------------------------- writes

    def create(self, changes: ProfileChanges, image_file=None) -> User:
        """
        Create a user and, for VETERINARIAN, its profile in one transaction.

        The image (if any) is uploaded before anything is written; an upload
        failure leaves the database untouched.
        """
        missing = [
            name for name in REQUIRED_CREATE_FIELDS
            if not changes.supplied(name) or _clean(getattr(changes, name)) is None
        ]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={'missing': missing},
            )

        role = self._parse_role(changes.role)
        email = self._normalize_email(changes.email)
        password = changes.password
        self._check_password_policy(password)

        profile_fields = self._profile_fields(changes)
        license_number = profile_fields.get('license_number')
        if role is UserRole.VETERINARIAN and not license_number:
            raise ValidationError("license_number is required for veterinarians", field='license_number')

        self._ensure_email_available(email)
        if role is UserRole.VETERINARIAN:
            self._ensure_license_available(license_number)

        image_url = None
        if image_file is not None:
            image_url = self.storage.upload(image_file, self.image_folder)

        user = User(
            first_name=_clean(changes.first_name),
            last_name=_clean(changes.last_name),
            email=email,
            phone=_clean(changes.phone),
            role=role,
            image_url=image_url,
        )
        user.set_password(password)
        self.session.add(user)
        self._apply_role_transition(user, None, role, profile_fields)

        try:
            self._commit()
        except Exception:
            if image_url:
                self.storage.delete(image_url)
            raise

        logger.info("Created user %s (%s)", user.id, role.value)
        return user

    def update(self, user_id, changes: ProfileChanges, image_file=None, remove_image=False) -> User:
        """
        Apply field changes, an image change and any role transition atomically.

        Image handling is one of: remove the current image, replace it with
        ``image_file``, or leave it alone. The new image is uploaded before the
        commit (a failed upload aborts the update); the image it supersedes is
        deleted best-effort once the commit has succeeded.
        """
        user = self.get(user_id)

        target_role = self._parse_role(changes.role) if changes.supplied('role') else user.role

        email = None
        if changes.supplied('email'):
            email = self._normalize_email(changes.email)
            if email != user.email:
                self._ensure_email_available(email, exclude_user_id=user.id)

        names = {}
        for name in ('first_name', 'last_name', 'phone'):
            if changes.supplied(name):
                value = _clean(getattr(changes, name))
                if value is None:
                    raise ValidationError(f"{name} cannot be empty", field=name)
                names[name] = value

        if changes.supplied('password'):
            self._check_password_policy(changes.password)

        # Loaded before any mutation so the lazy load cannot autoflush
        profile = user.veterinarian
        profile_fields = self._profile_fields(changes)
        license_number = profile_fields.get('license_number')
        if target_role is UserRole.VETERINARIAN:
            if profile is None and not license_number:
                raise ValidationError(
                    "license_number is required when assigning the VETERINARIAN role",
                    field='license_number',
                )
            if license_number:
                self._ensure_license_available(license_number, exclude_user_id=user.id)

        previous_image = user.image_url
        uploaded_image = None
        if not remove_image and image_file is not None:
            uploaded_image = self.storage.upload(image_file, self.image_folder)

        previous_role = user.role
        # Nothing is flushed until _commit
        with self.session.no_autoflush:
            if remove_image:
                user.image_url = None
            elif uploaded_image:
                user.image_url = uploaded_image

            for name, value in names.items():
                setattr(user, name, value)
            if email is not None:
                user.email = email
            if changes.supplied('password'):
                user.set_password(changes.password)

            user.role = target_role
            self._apply_role_transition(user, profile, target_role, profile_fields)

        try:
            self._commit()
        except Exception:
            if uploaded_image:
                self.storage.delete(uploaded_image)
            raise

        if previous_image and previous_image != user.image_url:
            self.storage.delete(previous_image)

        if previous_role is not target_role:
            logger.info("User %s role changed %s -> %s", user.id, previous_role.value, target_role.value)
        logger.info("Updated user %s (fields: %s)", user.id, ', '.join(changes.supplied_names()) or 'none')
        return user

    def change_password(self, user_id, current_password, new_password) -> User:
        user = self.get(user_id)

        if not user.check_password(current_password):
            raise AuthError("Current password is incorrect")

        self._check_password_policy(new_password, field='new_password')
        if user.check_password(new_password):
            raise ValidationError(
                "New password must be different from the current password",
                field='new_password',
            )

        user.set_password(new_password)
        self._commit()
        logger.info("Password changed for user %s", user.id)
        return user

    def delete(self, user_id) -> None:
        """
        Delete a user.

        The veterinarian row is removed by the ``ON DELETE CASCADE`` on
        ``veterinarians.user_id``, not here.
        """
        user = self.get(user_id)
        image_url = user.image_url

        self.session.delete(user)
        self._commit()

        if image_url:
            self.storage.delete(image_url)
        logger.info("Deleted user %s", user_id)

    # --------------------------------------------------------------- helpers

    def _apply_role_transition(self, user: User, profile: Optional[Veterinarian], role: UserRole,
                               profile_fields: Dict[str, Any]) -> None:
        if role is not UserRole.VETERINARIAN:
            if profile is not None:
                # delete-orphan removes the row at flush
                user.veterinarian = None
            return

        if profile is None:
            user.veterinarian = Veterinarian(
                license_number=profile_fields['license_number'],
                experience=profile_fields.get('experience'),
                education=profile_fields.get('education'),
            )
            return

        for name, value in profile_fields.items():
            if name == 'license_number' and not value:
                continue
            setattr(profile, name, value)

    def _profile_fields(self, changes: ProfileChanges) -> Dict[str, Any]:
        """Supplied veterinarian fields, cleaned and type-checked."""
        result = {}
        if changes.supplied('license_number'):
            license_number = _clean(changes.license_number)
            if license_number is not None:
                result['license_number'] = str(license_number)
        if changes.supplied('experience'):
            result['experience'] = self._parse_experience(changes.experience)
        if changes.supplied('education'):
            result['education'] = _clean(changes.education)
        return result

    @staticmethod
    def _parse_role(value) -> UserRole:
        role = UserRole.parse(value)
        if role is None:
            allowed = ', '.join(r.value for r in UserRole)
            raise ValidationError(f"Invalid role. Allowed: {allowed}", field='role')
        return role

    @staticmethod
    def _parse_experience(value) -> Optional[int]:
        value = _clean(value)
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValidationError("experience must be a whole number of years", field='experience')
        try:
            years = int(value)
        except (TypeError, ValueError):
            raise ValidationError("experience must be a whole number of years", field='experience')
        if isinstance(value, float) and value != years:
            raise ValidationError("experience must be a whole number of years", field='experience')
        if years < 0:
            raise ValidationError("experience cannot be negative", field='experience')
        return years

    @staticmethod
    def _normalize_email(value) -> str:
        email = _clean(value)
        if not isinstance(email, str) or not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format", field='email')
        return email.lower()

    @staticmethod
    def _check_password_policy(password, field='password') -> None:
        if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
                field=field,
            )

    def _ensure_email_available(self, email: str, exclude_user_id=None) -> None:
        query = self.session.query(User.id).filter(User.email == email)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first() is not None:
            raise ConflictError("Email already exists", field='email')

    def _ensure_license_available(self, license_number: str, exclude_user_id=None) -> None:
        query = self.session.query(Veterinarian.user_id).filter(
            Veterinarian.license_number == license_number
        )
        if exclude_user_id is not None:
            query = query.filter(Veterinarian.user_id != exclude_user_id)
        if query.first() is not None:
            raise ConflictError("License number already exists", field='license_number')

    def _commit(self) -> None:
        """Commit, mapping constraint violations to ConflictError."""
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError(_describe_integrity_error(e), original_error=e)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Database error while saving user: %s", e)
            raise PersistenceError("Database error while saving user", original_error=e)


def _describe_integrity_error(error: IntegrityError) -> str:
    text = str(error.orig).lower()
    if 'license_number' in text:
        return "License number already exists"
    if 'email' in text:
        return "Email already exists"
    if 'experience' in text:
        return "experience cannot be negative"
    return "Record conflicts with existing data"
