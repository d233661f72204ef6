from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from vet_clinic.exceptions import NotFoundError, ValidationError
from vet_clinic.extensions import db
from vet_clinic.models import MedicalRecord, Pet, Veterinarian
from vet_clinic.utils.audit import log_audit
from vet_clinic.utils.decorators import current_user_or_401
from vet_clinic.utils.pagination import paginate
from vet_clinic.utils.validation import clean_text, parse_date, parse_int, require_fields

records_bp = Blueprint('records', __name__, url_prefix='/api/records')


def _get_record(record_id):
    record = db.session.get(MedicalRecord, record_id)
    if record is None:
        raise NotFoundError('Medical record', record_id)
    return record


def _apply_fields(record, data):
    if 'pet_id' in data:
        pet_id = parse_int(data['pet_id'], 'pet_id')
        if pet_id is None or db.session.get(Pet, pet_id) is None:
            raise ValidationError("Pet does not exist", field='pet_id')
        record.pet_id = pet_id

    if 'vet_id' in data:
        vet_id = parse_int(data['vet_id'], 'vet_id')
        if vet_id is not None and db.session.get(Veterinarian, vet_id) is None:
            raise ValidationError("Veterinarian does not exist", field='vet_id')
        record.vet_id = vet_id

    if 'visit_date' in data:
        visit_date = parse_date(data['visit_date'], 'visit_date')
        if visit_date is None:
            raise ValidationError("visit_date cannot be empty", field='visit_date')
        record.visit_date = visit_date

    for field in ('diagnosis', 'treatment', 'notes'):
        if field in data:
            setattr(record, field, clean_text(data[field]))


@records_bp.route('', methods=['GET'])
@jwt_required()
def list_records():
    """
    List medical records, newest visit first
    Query params: page, limit, pet_id, vet_id
    """
    pet_id = parse_int(request.args.get('pet_id'), 'pet_id')
    vet_id = parse_int(request.args.get('vet_id'), 'vet_id')

    query = MedicalRecord.query
    if pet_id is not None:
        query = query.filter(MedicalRecord.pet_id == pet_id)
    if vet_id is not None:
        query = query.filter(MedicalRecord.vet_id == vet_id)

    records, pagination = paginate(
        query.order_by(MedicalRecord.visit_date.desc(), MedicalRecord.id.desc())
    )
    return jsonify({
        'success': True,
        'data': [r.to_dict() for r in records],
        'pagination': pagination
    }), 200


@records_bp.route('/<int:record_id>', methods=['GET'])
@jwt_required()
def get_record(record_id):
    record = _get_record(record_id)
    data = record.to_dict()
    data['appointments'] = [a.to_dict() for a in record.appointments]
    return jsonify({
        'success': True,
        'data': data
    }), 200


@records_bp.route('', methods=['POST'])
@jwt_required()
def create_record():
    """
    Create a medical record
    Required: pet_id, visit_date. Optional: vet_id, diagnosis, treatment, notes
    """
    user = current_user_or_401()
    data = request.get_json(silent=True) or {}
    require_fields(data, 'pet_id', 'visit_date')

    record = MedicalRecord()
    _apply_fields(record, data)
    db.session.add(record)
    db.session.commit()

    log_audit("medical_record", "create", user_id=user.id, entity_id=str(record.id))

    return jsonify({
        'success': True,
        'message': 'Medical record created successfully',
        'data': record.to_dict()
    }), 201


@records_bp.route('/<int:record_id>', methods=['PUT'])
@jwt_required()
def update_record(record_id):
    user = current_user_or_401()
    record = _get_record(record_id)
    data = request.get_json(silent=True) or {}

    _apply_fields(record, data)
    db.session.commit()

    log_audit("medical_record", "update", user_id=user.id, entity_id=str(record.id),
              details={"fields": sorted(data.keys())})

    return jsonify({
        'success': True,
        'message': 'Medical record updated successfully',
        'data': record.to_dict()
    }), 200


@records_bp.route('/<int:record_id>', methods=['DELETE'])
@jwt_required()
def delete_record(record_id):
    """Delete a medical record and the appointments booked against it"""
    user = current_user_or_401()
    record = _get_record(record_id)
    db.session.delete(record)
    db.session.commit()

    log_audit("medical_record", "delete", user_id=user.id, entity_id=str(record_id))

    return jsonify({
        'success': True,
        'message': 'Medical record deleted successfully'
    }), 200
