import enum

from vet_clinic.extensions import db, bcrypt
from .base import TimestampMixin, isoformat


class UserRole(str, enum.Enum):
    """Access tier of a staff account."""

    STAFF = "STAFF"
    ADMIN = "ADMIN"
    VETERINARIAN = "VETERINARIAN"

    @classmethod
    def parse(cls, value):
        """Return the role for ``value`` (case-insensitive), or None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class User(db.Model, TimestampMixin):
    __tablename__ = 'users'
    __table_args__ = (
        db.UniqueConstraint('email', name='uq_users_email'),
    )

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=False)

    # STAFF, ADMIN or VETERINARIAN
    role = db.Column(db.Enum(UserRole, name='user_role'), nullable=False, index=True)

    # Cloudinary secure_url of the profile image
    image_url = db.Column(db.String(500), nullable=True)

    # Present only while role == VETERINARIAN; the database drops it with the user
    veterinarian = db.relationship(
        'Veterinarian',
        back_populates='user',
        uselist=False,
        cascade='all, delete-orphan',
        passive_deletes=True,
    )

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        """Check if provided password matches hash"""
        if not password or not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def has_role(self, *role_names):
        """Check if user has any of the specified roles"""
        return self.role.value in role_names

    def to_dict(self):
        """Public representation; never includes the password hash."""
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'phone': self.phone,
            'role': self.role.value if self.role else None,
            'image_url': self.image_url,
            'veterinarian': self.veterinarian.to_dict() if self.veterinarian else None,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<User {self.email} ({self.first_name} {self.last_name}) - {self.role}>"
