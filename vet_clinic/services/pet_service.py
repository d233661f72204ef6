"""
Pet Service
Pet records and their photos
"""
import logging
from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from vet_clinic.extensions import db
from vet_clinic.exceptions import ConflictError, NotFoundError, ValidationError
from vet_clinic.models import Owner, Pet, PetType
from vet_clinic.utils.validation import clean_text, parse_date, parse_float, parse_int

logger = logging.getLogger(__name__)

PET_GENDERS = ('MALE', 'FEMALE', 'UNKNOWN')


def _storage():
    return current_app.extensions['image_store']


def _image_folder():
    return current_app.config.get('PET_IMAGE_FOLDER', 'vet-clinic/pets')


def _apply_fields(pet: Pet, data: Dict[str, Any]) -> None:
    """Copy supplied fields onto the pet, validating references and formats."""
    if 'name' in data:
        name = clean_text(data['name'])
        if not name:
            raise ValidationError("Pet name is required", field='name')
        pet.name = name

    if 'owner_id' in data:
        owner_id = parse_int(data['owner_id'], 'owner_id')
        if owner_id is None or db.session.get(Owner, owner_id) is None:
            raise ValidationError("Owner does not exist", field='owner_id')
        pet.owner_id = owner_id

    if 'type_id' in data:
        type_id = parse_int(data['type_id'], 'type_id')
        if type_id is not None and db.session.get(PetType, type_id) is None:
            raise ValidationError("Pet type does not exist", field='type_id')
        pet.type_id = type_id

    if 'gender' in data:
        gender = clean_text(data['gender'])
        if gender is not None:
            gender = gender.upper()
            if gender not in PET_GENDERS:
                raise ValidationError(f"Invalid gender. Allowed: {', '.join(PET_GENDERS)}", field='gender')
        pet.gender = gender

    if 'breed' in data:
        pet.breed = clean_text(data['breed'])
    if 'birth_date' in data:
        pet.birth_date = parse_date(data['birth_date'], 'birth_date')
    if 'weight' in data:
        weight = parse_float(data['weight'], 'weight')
        if weight is not None and weight < 0:
            raise ValidationError("weight cannot be negative", field='weight')
        pet.weight = weight


def get_pet(pet_id) -> Pet:
    pet = db.session.get(Pet, pet_id)
    if pet is None:
        raise NotFoundError('Pet', pet_id)
    return pet


def create_pet(data: Dict[str, Any], image_file=None) -> Pet:
    """
    Create a pet, uploading its photo first.

    Args:
        data: Pet fields; ``name`` and ``owner_id`` are required
        image_file: Optional already-validated image

    Returns:
        Pet: Created pet
    """
    for field in ('name', 'owner_id'):
        if clean_text(data.get(field)) is None:
            raise ValidationError(f"Field '{field}' is required", field=field)

    pet = Pet()
    _apply_fields(pet, data)

    if image_file is not None:
        pet.image_url = _storage().upload(image_file, _image_folder())

    db.session.add(pet)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if pet.image_url:
            _storage().delete(pet.image_url)
        raise ConflictError("Pet conflicts with existing data", original_error=e)

    logger.info("Created pet %s for owner %s", pet.id, pet.owner_id)
    return pet


def update_pet(pet_id, data: Dict[str, Any], image_file=None, remove_image: bool = False) -> Pet:
    """Update a pet; the replaced photo is deleted best-effort after commit."""
    pet = get_pet(pet_id)
    _apply_fields(pet, data)

    previous_image = pet.image_url
    uploaded_image: Optional[str] = None
    if remove_image:
        pet.image_url = None
    elif image_file is not None:
        uploaded_image = _storage().upload(image_file, _image_folder())
        pet.image_url = uploaded_image

    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if uploaded_image:
            _storage().delete(uploaded_image)
        raise ConflictError("Pet conflicts with existing data", original_error=e)

    if previous_image and previous_image != pet.image_url:
        _storage().delete(previous_image)
    return pet


def delete_pet(pet_id) -> None:
    """Delete a pet; its records and appointments go with it at the database level."""
    pet = get_pet(pet_id)
    image_url = pet.image_url
    db.session.delete(pet)
    db.session.commit()
    if image_url:
        _storage().delete(image_url)
    logger.info("Deleted pet %s", pet_id)


def delete_owner(owner_id) -> None:
    """Delete an owner with their pets, then drop the pets' photos."""
    owner = db.session.get(Owner, owner_id)
    if owner is None:
        raise NotFoundError('Owner', owner_id)

    image_urls = [pet.image_url for pet in owner.pets if pet.image_url]
    db.session.delete(owner)
    db.session.commit()

    for url in image_urls:
        _storage().delete(url)
    logger.info("Deleted owner %s (%d pet photo(s) removed)", owner_id, len(image_urls))
