from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from .extensions import db, migrate, bcrypt, jwt
import logging
import os

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'migrations')


def create_app(config_name=None, storage=None):
    """
    Create Flask application factory

    Args:
        config_name: Key into ``vet_clinic.config.config``; defaults to FLASK_ENV
        storage: Image store to bind instead of the Cloudinary-backed one
    """
    app = Flask(__name__)

    # Load configuration
    from vet_clinic.config import config, get_config, ProductionConfig
    if config_name:
        config_class = config.get(config_name, config['default'])
    else:
        config_class = get_config()
    if config_class is ProductionConfig:
        ProductionConfig.validate()
    app.config.from_object(config_class)

    # Ensure production mode if FLASK_ENV is production
    if os.getenv('FLASK_ENV') == 'production':
        app.config['DEBUG'] = False
        app.config['TESTING'] = False

    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Initialize extensions first (before error handlers)
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)
    bcrypt.init_app(app)
    jwt.init_app(app)
    _register_jwt_handlers()

    # Initialize CORS
    from vet_clinic.utils.cors import init_cors
    init_cors(app)

    # Image storage and the profile service built on it
    from vet_clinic.services import image_store, ProfileService
    storage = storage or image_store
    storage.init_app(app)
    app.extensions['profile_service'] = ProfileService(
        db.session,
        storage,
        image_folder=app.config['IMAGE_UPLOAD_FOLDER'],
    )

    _register_error_handlers(app)

    # Setup logging
    if not app.debug and not app.testing:
        _setup_file_logging(app)

    from vet_clinic.middleware import setup_middleware
    setup_middleware(app)

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from . import models  # noqa: F401

        # Register blueprints
        from .routes import (
            health_bp, auth_bp, users_bp, veterinarians_bp, owners_bp,
            pet_types_bp, pets_bp, records_bp, appointments_bp,
        )
        app.register_blueprint(health_bp)  # Register health check first
        app.register_blueprint(auth_bp)
        app.register_blueprint(users_bp)
        app.register_blueprint(veterinarians_bp)
        app.register_blueprint(owners_bp)
        app.register_blueprint(pet_types_bp)
        app.register_blueprint(pets_bp)
        app.register_blueprint(records_bp)
        app.register_blueprint(appointments_bp)

    return app


def _register_jwt_handlers():
    """Return the JSON envelope instead of Flask-JWT-Extended's default body."""

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({
            'success': False,
            'error': 'Authentication required'
        }), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({
            'success': False,
            'error': f'Invalid token: {reason}'
        }), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({
            'success': False,
            'error': 'Token has expired'
        }), 401


def _register_error_handlers(app):
    from vet_clinic.exceptions import VetClinicError

    @app.errorhandler(VetClinicError)
    def handle_app_error(error):
        level = logging.ERROR if error.status_code >= 500 else logging.INFO
        error.log_error(logger, level=level)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'success': False,
            'error': 'Method not allowed'
        }), 405

    @app.errorhandler(413)
    def request_too_large(error):
        limit_mb = app.config.get('MAX_CONTENT_LENGTH', 0) // (1024 * 1024)
        return jsonify({
            'success': False,
            'error': f'Request exceeds {limit_mb}MB limit'
        }), 413

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({
                'success': False,
                'error': e.description
            }), e.code
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        db.session.rollback()
        message = 'Internal server error. Check server logs for details.'
        if app.debug:
            message = f'An error occurred: {str(e)}'
        return jsonify({
            'success': False,
            'error': message
        }), 500


def _setup_file_logging(app):
    from logging.handlers import RotatingFileHandler

    log_file = app.config.get('LOG_FILE', 'logs/app.log')
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10240000,
        backupCount=10
    )
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
    ))
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)
    app.logger.setLevel(logging.INFO)
    app.logger.info('Application startup')
