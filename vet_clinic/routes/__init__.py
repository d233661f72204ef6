from .health import health_bp
from .auth import auth_bp
from .users import users_bp
from .veterinarians import veterinarians_bp
from .owners import owners_bp
from .pet_types import pet_types_bp
from .pets import pets_bp
from .records import records_bp
from .appointments import appointments_bp

__all__ = [
    'health_bp',
    'auth_bp',
    'users_bp',
    'veterinarians_bp',
    'owners_bp',
    'pet_types_bp',
    'pets_bp',
    'records_bp',
    'appointments_bp',
]
