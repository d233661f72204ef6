from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from vet_clinic.exceptions import NotFoundError, ValidationError
from vet_clinic.extensions import db
from vet_clinic.models import Appointment, AppointmentStatus, MedicalRecord, Pet, Veterinarian
from vet_clinic.utils.audit import log_audit
from vet_clinic.utils.decorators import current_user_or_401
from vet_clinic.utils.pagination import paginate
from vet_clinic.utils.validation import (
    clean_text,
    parse_date,
    parse_int,
    parse_time,
    require_fields,
)

appointments_bp = Blueprint('appointments', __name__, url_prefix='/api/appointments')


def _parse_status(value):
    status = clean_text(value)
    if status is None:
        return None
    try:
        return AppointmentStatus(status.upper())
    except ValueError:
        allowed = ', '.join(s.value for s in AppointmentStatus)
        raise ValidationError(f"Invalid status. Allowed: {allowed}", field='status')


def _get_appointment(appointment_id):
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError('Appointment', appointment_id)
    return appointment


def _apply_fields(appointment, data):
    if 'pet_id' in data:
        pet_id = parse_int(data['pet_id'], 'pet_id')
        if pet_id is None or db.session.get(Pet, pet_id) is None:
            raise ValidationError("Pet does not exist", field='pet_id')
        appointment.pet_id = pet_id

    if 'vet_id' in data:
        vet_id = parse_int(data['vet_id'], 'vet_id')
        if vet_id is not None and db.session.get(Veterinarian, vet_id) is None:
            raise ValidationError("Veterinarian does not exist", field='vet_id')
        appointment.vet_id = vet_id

    if 'record_id' in data:
        record_id = parse_int(data['record_id'], 'record_id')
        if record_id is not None and db.session.get(MedicalRecord, record_id) is None:
            raise ValidationError("Medical record does not exist", field='record_id')
        appointment.record_id = record_id

    if 'date' in data:
        appointment_date = parse_date(data['date'], 'date')
        if appointment_date is None:
            raise ValidationError("date cannot be empty", field='date')
        appointment.date = appointment_date

    if 'time' in data:
        appointment_time = parse_time(data['time'], 'time')
        if appointment_time is None:
            raise ValidationError("time cannot be empty", field='time')
        appointment.time = appointment_time

    if 'status' in data:
        status = _parse_status(data['status'])
        if status is None:
            raise ValidationError("status cannot be empty", field='status')
        appointment.status = status

    if 'reason' in data:
        appointment.reason = clean_text(data['reason'])


@appointments_bp.route('', methods=['GET'])
@jwt_required()
def list_appointments():
    """
    List appointments with filters and pagination.
    Query params:
        date: YYYY-MM-DD (optional)
        pet_id, vet_id: Filter by pet / veterinarian (optional)
        status: SCHEDULED, COMPLETED or CANCELLED (optional)
        page, limit: Pagination
    """
    filter_date = parse_date(request.args.get('date'), 'date')
    pet_id = parse_int(request.args.get('pet_id'), 'pet_id')
    vet_id = parse_int(request.args.get('vet_id'), 'vet_id')
    status = _parse_status(request.args.get('status'))

    query = Appointment.query
    if filter_date is not None:
        query = query.filter(Appointment.date == filter_date)
    if pet_id is not None:
        query = query.filter(Appointment.pet_id == pet_id)
    if vet_id is not None:
        query = query.filter(Appointment.vet_id == vet_id)
    if status is not None:
        query = query.filter(Appointment.status == status)

    appointments, pagination = paginate(
        query.order_by(Appointment.date.desc(), Appointment.time.asc())
    )
    return jsonify({
        'success': True,
        'data': [a.to_dict() for a in appointments],
        'pagination': pagination
    }), 200


@appointments_bp.route('/<int:appointment_id>', methods=['GET'])
@jwt_required()
def get_appointment(appointment_id):
    return jsonify({
        'success': True,
        'data': _get_appointment(appointment_id).to_dict()
    }), 200


@appointments_bp.route('', methods=['POST'])
@jwt_required()
def create_appointment():
    """
    Book an appointment
    Required: pet_id, date, time. Optional: vet_id, record_id, status, reason
    """
    user = current_user_or_401()
    data = request.get_json(silent=True) or {}
    require_fields(data, 'pet_id', 'date', 'time')

    appointment = Appointment(status=AppointmentStatus.SCHEDULED)
    _apply_fields(appointment, data)
    db.session.add(appointment)
    db.session.commit()

    log_audit("appointment", "create", user_id=user.id, entity_id=str(appointment.id))

    return jsonify({
        'success': True,
        'message': 'Appointment created successfully',
        'data': appointment.to_dict()
    }), 201


@appointments_bp.route('/<int:appointment_id>', methods=['PUT'])
@jwt_required()
def update_appointment(appointment_id):
    user = current_user_or_401()
    appointment = _get_appointment(appointment_id)
    data = request.get_json(silent=True) or {}

    _apply_fields(appointment, data)
    db.session.commit()

    log_audit("appointment", "update", user_id=user.id, entity_id=str(appointment.id),
              details={"fields": sorted(data.keys())})

    return jsonify({
        'success': True,
        'message': 'Appointment updated successfully',
        'data': appointment.to_dict()
    }), 200


@appointments_bp.route('/<int:appointment_id>', methods=['DELETE'])
@jwt_required()
def delete_appointment(appointment_id):
    user = current_user_or_401()
    appointment = _get_appointment(appointment_id)
    db.session.delete(appointment)
    db.session.commit()

    log_audit("appointment", "delete", user_id=user.id, entity_id=str(appointment_id))

    return jsonify({
        'success': True,
        'message': 'Appointment deleted successfully'
    }), 200
