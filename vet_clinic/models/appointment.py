import enum

from vet_clinic.extensions import db
from .base import TimestampMixin, isoformat


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'

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
    record_id = db.Column(
        db.Integer,
        db.ForeignKey('medical_records.id', ondelete='CASCADE'),
        nullable=True,
        index=True,
    )

    date = db.Column(db.Date, nullable=False, index=True)
    time = db.Column(db.String(5), nullable=False)  # e.g. "10:45"
    status = db.Column(
        db.Enum(AppointmentStatus, name='appointment_status'),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )
    reason = db.Column(db.String(255))

    pet = db.relationship('Pet', lazy=True)
    veterinarian = db.relationship('Veterinarian', lazy=True)
    record = db.relationship('MedicalRecord', back_populates='appointments')

    def to_dict(self):
        return {
            'id': self.id,
            'pet_id': self.pet_id,
            'vet_id': self.vet_id,
            'record_id': self.record_id,
            'date': isoformat(self.date),
            'time': self.time,
            'status': self.status.value if self.status else None,
            'reason': self.reason,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Appointment pet={self.pet_id} on {self.date} {self.time}>"
