from .storage_service import ImageStore, image_store, public_id_from_url

from .profile_service import ProfileService, ProfileChanges, UNSET

from .pet_service import (
    get_pet,
    create_pet,
    update_pet,
    delete_pet,
    delete_owner,
)

__all__ = [
    # Image Storage
    "ImageStore",
    "image_store",
    "public_id_from_url",
    # Profile Services
    "ProfileService",
    "ProfileChanges",
    "UNSET",
    # Pet Services
    "get_pet",
    "create_pet",
    "update_pet",
    "delete_pet",
    "delete_owner",
]
