"""
User management: staff, administrators and veterinarians.

Reads need a valid token; writes need the ADMIN role. Create and update accept
JSON or multipart/form-data with the profile image in ``image_file``.
"""
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from vet_clinic.exceptions import ValidationError
from vet_clinic.services import ProfileChanges
from vet_clinic.utils.audit import log_audit
from vet_clinic.utils.decorators import require_role, current_user_or_401
from vet_clinic.utils.uploads import read_payload

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def _profile_service():
    return current_app.extensions['profile_service']


@users_bp.route('', methods=['GET'])
@jwt_required()
def list_users():
    """
    List users
    Query params: role (STAFF, ADMIN, VETERINARIAN)
    """
    role = request.args.get('role', '').strip() or None
    users = _profile_service().list(role=role)
    return jsonify({
        'success': True,
        'data': [u.to_dict() for u in users],
        'total': len(users)
    }), 200


@users_bp.route('/<int:user_id>', methods=['GET'])
@jwt_required()
def get_user(user_id):
    user = _profile_service().get(user_id)
    return jsonify({
        'success': True,
        'data': user.to_dict()
    }), 200


@users_bp.route('', methods=['POST'])
@jwt_required()
@require_role('ADMIN')
def create_user():
    """
    Create a user (ADMIN only)

    Required: first_name, last_name, email, password, phone, role.
    VETERINARIAN also requires license_number; experience and education are optional.
    """
    actor = current_user_or_401()
    data, image_file, _ = read_payload()

    user = _profile_service().create(ProfileChanges.from_mapping(data), image_file=image_file)

    log_audit(
        "user",
        "create",
        user_id=actor.id,
        entity_id=str(user.id),
        details={"email": user.email, "role": user.role.value},
    )

    return jsonify({
        'success': True,
        'message': 'User created successfully',
        'data': user.to_dict()
    }), 201


@users_bp.route('/<int:user_id>', methods=['PUT'])
@jwt_required()
@require_role('ADMIN')
def update_user(user_id):
    """
    Update a user (ADMIN only)

    Any subset of the create fields. ``remove_image=true`` clears the image;
    a new ``image_file`` replaces it. Changing role to/from VETERINARIAN
    creates or removes the veterinarian profile.
    """
    actor = current_user_or_401()
    data, image_file, remove_image = read_payload()
    changes = ProfileChanges.from_mapping(data)

    user = _profile_service().update(
        user_id,
        changes,
        image_file=image_file,
        remove_image=remove_image,
    )

    details = {"fields": changes.supplied_names()}
    if remove_image:
        details["image"] = "removed"
    elif image_file is not None:
        details["image"] = "replaced"
    log_audit("user", "update", user_id=actor.id, entity_id=str(user.id), details=details)

    return jsonify({
        'success': True,
        'message': 'User updated successfully',
        'data': user.to_dict()
    }), 200


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@jwt_required()
@require_role('ADMIN')
def delete_user(user_id):
    """Delete a user (ADMIN only). An administrator cannot delete their own account."""
    actor = current_user_or_401()
    if actor.id == user_id:
        raise ValidationError('You cannot delete your own account')

    _profile_service().delete(user_id)
    log_audit("user", "delete", user_id=actor.id, entity_id=str(user_id))

    return jsonify({
        'success': True,
        'message': 'User deleted successfully'
    }), 200
