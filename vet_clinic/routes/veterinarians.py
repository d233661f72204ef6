from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from vet_clinic.exceptions import NotFoundError
from vet_clinic.extensions import db
from vet_clinic.models import User, Veterinarian

veterinarians_bp = Blueprint('veterinarians', __name__, url_prefix='/api/veterinarians')


@veterinarians_bp.route('', methods=['GET'])
@jwt_required()
def list_veterinarians():
    """List veterinarian profiles with their user details"""
    vets = (
        Veterinarian.query
        .join(User, Veterinarian.user_id == User.id)
        .order_by(User.last_name.asc(), User.first_name.asc())
        .all()
    )
    return jsonify({
        'success': True,
        'data': [v.to_dict(include_user=True) for v in vets],
        'total': len(vets)
    }), 200


@veterinarians_bp.route('/<int:user_id>', methods=['GET'])
@jwt_required()
def get_veterinarian(user_id):
    vet = db.session.get(Veterinarian, user_id)
    if vet is None:
        raise NotFoundError('Veterinarian', user_id)
    return jsonify({
        'success': True,
        'data': vet.to_dict(include_user=True)
    }), 200
