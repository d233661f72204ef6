from vet_clinic.extensions import db
from .base import TimestampMixin, isoformat


class Veterinarian(db.Model, TimestampMixin):
    """Professional details of a VETERINARIAN user, keyed by the user's id."""

    __tablename__ = 'veterinarians'
    __table_args__ = (
        db.UniqueConstraint('license_number', name='uq_veterinarians_license_number'),
        db.CheckConstraint(
            'experience IS NULL OR experience >= 0',
            name='ck_veterinarians_experience_non_negative',
        ),
    )

    user_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id', ondelete='CASCADE'),
        primary_key=True,
    )
    license_number = db.Column(db.String(50), nullable=False, index=True)
    experience = db.Column(db.Integer, nullable=True)  # years
    education = db.Column(db.Text, nullable=True)

    user = db.relationship('User', back_populates='veterinarian')

    def to_dict(self, include_user=False):
        data = {
            'user_id': self.user_id,
            'license_number': self.license_number,
            'experience': self.experience,
            'education': self.education,
        }
        if include_user and self.user is not None:
            data.update({
                'first_name': self.user.first_name,
                'last_name': self.user.last_name,
                'email': self.user.email,
                'phone': self.user.phone,
                'image_url': self.user.image_url,
                'created_at': isoformat(self.created_at),
            })
        return data

    def __repr__(self):
        return f"<Veterinarian user={self.user_id} license={self.license_number}>"
