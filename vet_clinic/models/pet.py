from vet_clinic.extensions import db
from .base import TimestampMixin, isoformat


class PetType(db.Model, TimestampMixin):
    __tablename__ = 'pet_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<PetType {self.name}>"


class Pet(db.Model, TimestampMixin):
    __tablename__ = 'pets'

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(
        db.Integer, db.ForeignKey('owners.id', ondelete='CASCADE'), nullable=False, index=True
    )
    # Deleting a type that pets still use is rejected by the database
    type_id = db.Column(db.Integer, db.ForeignKey('pet_types.id'), nullable=True, index=True)

    name = db.Column(db.String(100), nullable=False)
    breed = db.Column(db.String(100))
    gender = db.Column(db.String(10))  # MALE, FEMALE, UNKNOWN
    birth_date = db.Column(db.Date)
    weight = db.Column(db.Float)  # kg

    # Cloudinary secure_url of the pet photo
    image_url = db.Column(db.String(500), nullable=True)

    owner = db.relationship('Owner', back_populates='pets')
    pet_type = db.relationship('PetType', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'owner_id': self.owner_id,
            'type_id': self.type_id,
            'type_name': self.pet_type.name if self.pet_type else None,
            'breed': self.breed,
            'gender': self.gender,
            'birth_date': isoformat(self.birth_date),
            'weight': self.weight,
            'image_url': self.image_url,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Pet {self.name} (owner={self.owner_id})>"
