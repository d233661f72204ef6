from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from vet_clinic.exceptions import ConflictError, NotFoundError, ValidationError
from vet_clinic.extensions import db
from vet_clinic.models import Owner
from vet_clinic.services import delete_owner as remove_owner
from vet_clinic.utils.audit import log_audit
from vet_clinic.utils.decorators import current_user_or_401
from vet_clinic.utils.pagination import paginate
from vet_clinic.utils.validation import clean_text, require_fields

owners_bp = Blueprint('owners', __name__, url_prefix='/api/owners')

OWNER_FIELDS = ('first_name', 'last_name', 'email', 'phone', 'address')


def _get_owner(owner_id):
    owner = db.session.get(Owner, owner_id)
    if owner is None:
        raise NotFoundError('Owner', owner_id)
    return owner


def _apply_fields(owner, data):
    for field in OWNER_FIELDS:
        if field not in data:
            continue
        value = clean_text(data[field])
        if field in ('first_name', 'last_name', 'email') and value is None:
            raise ValidationError(f"{field} cannot be empty", field=field)
        if field == 'email':
            if '@' not in value:
                raise ValidationError("Invalid email format", field='email')
            value = value.lower()
        setattr(owner, field, value)


def _commit_owner():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Owner email already exists", field='email')


@owners_bp.route('', methods=['GET'])
@jwt_required()
def list_owners():
    """
    List owners with pagination and search
    Query params: page, limit, search (name, email or phone)
    """
    search = request.args.get('search', '', type=str).strip()

    query = Owner.query
    if search:
        query = query.filter(or_(
            Owner.first_name.ilike(f'%{search}%'),
            Owner.last_name.ilike(f'%{search}%'),
            Owner.email.ilike(f'%{search}%'),
            Owner.phone.ilike(f'%{search}%'),
        ))

    owners, pagination = paginate(query.order_by(Owner.last_name.asc(), Owner.first_name.asc()))
    return jsonify({
        'success': True,
        'data': [o.to_dict() for o in owners],
        'pagination': pagination
    }), 200


@owners_bp.route('/<int:owner_id>', methods=['GET'])
@jwt_required()
def get_owner(owner_id):
    """Get an owner together with their pets"""
    owner = _get_owner(owner_id)
    data = owner.to_dict()
    data['pets'] = [p.to_dict() for p in owner.pets]
    return jsonify({
        'success': True,
        'data': data
    }), 200


@owners_bp.route('', methods=['POST'])
@jwt_required()
def create_owner():
    """
    Create an owner
    Required: first_name, last_name, email. Optional: phone, address
    """
    user = current_user_or_401()
    data = request.get_json(silent=True) or {}
    require_fields(data, 'first_name', 'last_name', 'email')

    owner = Owner()
    _apply_fields(owner, data)
    db.session.add(owner)
    _commit_owner()

    log_audit("owner", "create", user_id=user.id, entity_id=str(owner.id))

    return jsonify({
        'success': True,
        'message': 'Owner created successfully',
        'data': owner.to_dict()
    }), 201


@owners_bp.route('/<int:owner_id>', methods=['PUT'])
@jwt_required()
def update_owner(owner_id):
    user = current_user_or_401()
    owner = _get_owner(owner_id)
    data = request.get_json(silent=True) or {}

    _apply_fields(owner, data)
    _commit_owner()

    log_audit("owner", "update", user_id=user.id, entity_id=str(owner.id),
              details={"fields": sorted(k for k in data if k in OWNER_FIELDS)})

    return jsonify({
        'success': True,
        'message': 'Owner updated successfully',
        'data': owner.to_dict()
    }), 200


@owners_bp.route('/<int:owner_id>', methods=['DELETE'])
@jwt_required()
def delete_owner(owner_id):
    """Delete an owner; their pets, records and appointments are removed with them"""
    user = current_user_or_401()
    remove_owner(owner_id)
    log_audit("owner", "delete", user_id=user.id, entity_id=str(owner_id))

    return jsonify({
        'success': True,
        'message': 'Owner deleted successfully'
    }), 200
