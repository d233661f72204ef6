"""
Pet endpoints. Create and update accept JSON or multipart/form-data with the
photo in ``image_file`` and an optional ``remove_image`` flag.
"""
from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import or_

from vet_clinic.models import Pet
from vet_clinic.services import pet_service
from vet_clinic.utils.audit import log_audit
from vet_clinic.utils.decorators import current_user_or_401
from vet_clinic.utils.pagination import paginate
from vet_clinic.utils.uploads import read_payload
from vet_clinic.utils.validation import parse_int

pets_bp = Blueprint('pets', __name__, url_prefix='/api/pets')


@pets_bp.route('', methods=['GET'])
@jwt_required()
def list_pets():
    """
    List pets with pagination
    Query params: page, limit, owner_id, type_id, search (name or breed)
    """
    owner_id = parse_int(request.args.get('owner_id'), 'owner_id')
    type_id = parse_int(request.args.get('type_id'), 'type_id')
    search = request.args.get('search', '', type=str).strip()

    query = Pet.query
    if owner_id is not None:
        query = query.filter(Pet.owner_id == owner_id)
    if type_id is not None:
        query = query.filter(Pet.type_id == type_id)
    if search:
        query = query.filter(or_(
            Pet.name.ilike(f'%{search}%'),
            Pet.breed.ilike(f'%{search}%'),
        ))

    pets, pagination = paginate(query.order_by(Pet.name.asc()))
    return jsonify({
        'success': True,
        'data': [p.to_dict() for p in pets],
        'pagination': pagination
    }), 200


@pets_bp.route('/<int:pet_id>', methods=['GET'])
@jwt_required()
def get_pet(pet_id):
    return jsonify({
        'success': True,
        'data': pet_service.get_pet(pet_id).to_dict()
    }), 200


@pets_bp.route('', methods=['POST'])
@jwt_required()
def create_pet():
    """
    Create a pet
    Required: name, owner_id. Optional: type_id, breed, gender, birth_date, weight, image_file
    """
    user = current_user_or_401()
    data, image_file, _ = read_payload()

    pet = pet_service.create_pet(data, image_file=image_file)
    log_audit("pet", "create", user_id=user.id, entity_id=str(pet.id))

    return jsonify({
        'success': True,
        'message': 'Pet created successfully',
        'data': pet.to_dict()
    }), 201


@pets_bp.route('/<int:pet_id>', methods=['PUT'])
@jwt_required()
def update_pet(pet_id):
    user = current_user_or_401()
    data, image_file, remove_image = read_payload()

    pet = pet_service.update_pet(pet_id, data, image_file=image_file, remove_image=remove_image)
    log_audit("pet", "update", user_id=user.id, entity_id=str(pet.id),
              details={"fields": sorted(data.keys())})

    return jsonify({
        'success': True,
        'message': 'Pet updated successfully',
        'data': pet.to_dict()
    }), 200


@pets_bp.route('/<int:pet_id>', methods=['DELETE'])
@jwt_required()
def delete_pet(pet_id):
    """Delete a pet together with its records and appointments"""
    user = current_user_or_401()
    pet_service.delete_pet(pet_id)
    log_audit("pet", "delete", user_id=user.id, entity_id=str(pet_id))

    return jsonify({
        'success': True,
        'message': 'Pet deleted successfully'
    }), 200
