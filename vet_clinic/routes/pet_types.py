from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import IntegrityError

from vet_clinic.exceptions import ConflictError, NotFoundError, ValidationError
from vet_clinic.extensions import db
from vet_clinic.models import Pet, PetType
from vet_clinic.utils.audit import log_audit
from vet_clinic.utils.decorators import require_role, current_user_or_401
from vet_clinic.utils.validation import clean_text

pet_types_bp = Blueprint('pet_types', __name__, url_prefix='/api/pet-types')


def _get_pet_type(type_id):
    pet_type = db.session.get(PetType, type_id)
    if pet_type is None:
        raise NotFoundError('Pet type', type_id)
    return pet_type


def _read_name():
    data = request.get_json(silent=True) or {}
    name = clean_text(data.get('name'))
    if name is None:
        raise ValidationError("Field 'name' is required", field='name')
    return name


def _commit_pet_type():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Pet type already exists", field='name')


@pet_types_bp.route('', methods=['GET'])
@jwt_required()
def list_pet_types():
    pet_types = PetType.query.order_by(PetType.name.asc()).all()
    return jsonify({
        'success': True,
        'data': [t.to_dict() for t in pet_types]
    }), 200


@pet_types_bp.route('/<int:type_id>', methods=['GET'])
@jwt_required()
def get_pet_type(type_id):
    return jsonify({
        'success': True,
        'data': _get_pet_type(type_id).to_dict()
    }), 200


@pet_types_bp.route('', methods=['POST'])
@jwt_required()
@require_role('ADMIN')
def create_pet_type():
    user = current_user_or_401()
    pet_type = PetType(name=_read_name())
    db.session.add(pet_type)
    _commit_pet_type()

    log_audit("pet_type", "create", user_id=user.id, entity_id=str(pet_type.id))
    return jsonify({
        'success': True,
        'data': pet_type.to_dict()
    }), 201


@pet_types_bp.route('/<int:type_id>', methods=['PUT'])
@jwt_required()
@require_role('ADMIN')
def update_pet_type(type_id):
    user = current_user_or_401()
    pet_type = _get_pet_type(type_id)
    pet_type.name = _read_name()
    _commit_pet_type()

    log_audit("pet_type", "update", user_id=user.id, entity_id=str(type_id))
    return jsonify({
        'success': True,
        'data': pet_type.to_dict()
    }), 200


@pet_types_bp.route('/<int:type_id>', methods=['DELETE'])
@jwt_required()
@require_role('ADMIN')
def delete_pet_type(type_id):
    """Delete a pet type that no pet uses"""
    user = current_user_or_401()
    pet_type = _get_pet_type(type_id)

    if Pet.query.filter_by(type_id=type_id).first() is not None:
        raise ConflictError("Pet type is in use by existing pets")

    db.session.delete(pet_type)
    _commit_pet_type()

    log_audit("pet_type", "delete", user_id=user.id, entity_id=str(type_id))
    return jsonify({
        'success': True,
        'message': 'Pet type deleted successfully'
    }), 200
