from vet_clinic.extensions import db
from .base import TimestampMixin, isoformat


class MedicalRecord(db.Model, TimestampMixin):
    __tablename__ = 'medical_records'

    id = db.Column(db.Integer, primary_key=True)
    pet_id = db.Column(
        db.Integer, db.ForeignKey('pets.id', ondelete='CASCADE'), nullable=False, index=True
    )
    vet_id = db.Column(
        db.Integer,
        db.ForeignKey('veterinarians.user_id', ondelete='SET NULL'),
        nullable=True,
        index=True,
    )

    visit_date = db.Column(db.Date, nullable=False)
    diagnosis = db.Column(db.Text)
    treatment = db.Column(db.Text)
    notes = db.Column(db.Text)

    pet = db.relationship('Pet', lazy=True)
    veterinarian = db.relationship('Veterinarian', lazy=True)

    # Appointments booked against a record go with it
    appointments = db.relationship(
        'Appointment',
        back_populates='record',
        lazy='dynamic',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )

    def to_dict(self):
        return {
            'id': self.id,
            'pet_id': self.pet_id,
            'vet_id': self.vet_id,
            'visit_date': isoformat(self.visit_date),
            'diagnosis': self.diagnosis,
            'treatment': self.treatment,
            'notes': self.notes,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<MedicalRecord pet={self.pet_id} on {self.visit_date}>"
