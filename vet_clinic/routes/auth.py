from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
    get_jwt,
)

from vet_clinic.exceptions import PermissionDeniedError, ValidationError
from vet_clinic.models import User, UserRole
from vet_clinic.services import ProfileChanges
from vet_clinic.utils.audit import log_audit
from vet_clinic.utils.decorators import current_user_or_401
from vet_clinic.utils.uploads import read_payload

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

# Frontend landing pages per role
STAFF_LANDING_PATH = '/pet'
DEFAULT_LANDING_PATH = '/admin'


def landing_path(role):
    """Page a signed-in user is sent to: STAFF to the pet desk, everyone else to admin."""
    return STAFF_LANDING_PATH if UserRole.parse(role) is UserRole.STAFF else DEFAULT_LANDING_PATH


def _profile_service():
    return current_app.extensions['profile_service']


def _token_claims(user):
    return {
        "email": user.email,
        "role": user.role.value,
    }


def _expires_in():
    return int(current_app.config['JWT_ACCESS_TOKEN_EXPIRES'].total_seconds())


@auth_bp.route('/login', methods=['POST'])
def login():
    """Login endpoint - authenticates a user and returns JWT tokens"""
    data = request.get_json(silent=True)

    if not data:
        return jsonify({
            'success': False,
            'error': 'Request body must be JSON'
        }), 400

    email = (data.get('email') or '').strip().lower()
    password = data.get('password')

    if not email or not password:
        return jsonify({
            'success': False,
            'error': 'Email and password required'
        }), 400

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return jsonify({
            'success': False,
            'error': 'Invalid email or password'
        }), 401

    # Identity must be a string for the JWT "sub" claim
    identity = str(user.id)
    additional_claims = _token_claims(user)

    access_token = create_access_token(
        identity=identity,
        additional_claims=additional_claims,
        fresh=True,
    )
    refresh_token = create_refresh_token(
        identity=identity,
        additional_claims=additional_claims,
    )

    return jsonify({
        'success': True,
        'data': user.to_dict(),
        'access_token': access_token,
        'refresh_token': refresh_token,
        'token_type': 'bearer',
        'expires_in': _expires_in(),
        'redirect': landing_path(user.role),
    }), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    """Refresh access token using refresh token"""
    identity = get_jwt_identity()
    claims = get_jwt()
    new_access_token = create_access_token(
        identity=identity,
        additional_claims={
            "email": claims.get("email"),
            "role": claims.get("role"),
        },
        fresh=False,
    )
    return jsonify({
        'success': True,
        'access_token': new_access_token,
        'token_type': 'bearer',
        'expires_in': _expires_in(),
    }), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_current_user():
    """Get current signed-in user"""
    user = current_user_or_401()
    return jsonify({
        'success': True,
        'data': user.to_dict(),
        'redirect': landing_path(user.role),
    }), 200


@auth_bp.route('/profile', methods=['PUT'])
@jwt_required()
def update_profile():
    """
    Update the signed-in user's own profile.

    Accepts JSON or multipart/form-data (``image_file``, ``remove_image``).
    Role changes go through /api/users and need an administrator.
    """
    user = current_user_or_401()
    data, image_file, remove_image = read_payload()

    if 'role' in data and UserRole.parse(data['role']) is not user.role:
        raise PermissionDeniedError('Role changes require an administrator')
    data.pop('role', None)
    if 'password' in data:
        raise ValidationError('Use /api/auth/change-password to change your password', field='password')

    updated = _profile_service().update(
        user.id,
        ProfileChanges.from_mapping(data),
        image_file=image_file,
        remove_image=remove_image,
    )

    log_audit(
        "user",
        "update",
        user_id=user.id,
        entity_id=str(user.id),
        details={"fields": sorted(data.keys()), "self_service": True},
    )

    return jsonify({
        'success': True,
        'message': 'Profile updated successfully',
        'data': updated.to_dict(),
    }), 200


@auth_bp.route('/change-password', methods=['POST'])
@jwt_required()
def change_password():
    """
    Change the signed-in user's password.
    Body: { "current_password": "...", "new_password": "..." }
    """
    user = current_user_or_401()
    data = request.get_json(silent=True) or {}

    current_password = data.get('current_password')
    new_password = data.get('new_password')
    if not current_password or not new_password:
        raise ValidationError('Fields "current_password" and "new_password" are required')

    _profile_service().change_password(user.id, current_password, new_password)

    log_audit("user", "change_password", user_id=user.id, entity_id=str(user.id))

    return jsonify({
        'success': True,
        'message': 'Password changed successfully'
    }), 200
