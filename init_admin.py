#!/usr/bin/env python3
"""
Seed default accounts for the vet clinic: one per role.
Run with: python3 init_admin.py
"""
from flask import current_app

from vet_clinic import create_app
from vet_clinic.exceptions import VetClinicError
from vet_clinic.models import User
from vet_clinic.services import ProfileChanges

# Default users to create
DEFAULT_USERS = [
    {
        'email': 'admin@vetclinic.com',
        'password': 'admin123',
        'first_name': 'Clinic',
        'last_name': 'Admin',
        'phone': '0000000000',
        'role': 'ADMIN',
    },
    {
        'email': 'staff@vetclinic.com',
        'password': 'staff123',
        'first_name': 'Front',
        'last_name': 'Desk',
        'phone': '0000000001',
        'role': 'STAFF',
    },
    {
        'email': 'vet@vetclinic.com',
        'password': 'vet12345',
        'first_name': 'Jane',
        'last_name': 'Vet',
        'phone': '0000000002',
        'role': 'VETERINARIAN',
        'license_number': 'VET-0001',
        'experience': 5,
        'education': 'DVM',
    },
]


def create_default_users():
    """Create default users through the profile service"""
    app = create_app()

    with app.app_context():
        service = current_app.extensions['profile_service']

        print("=" * 60)
        print("Initializing Default Users")
        print("=" * 60)
        print()

        created_count = 0
        for user_data in DEFAULT_USERS:
            email = user_data['email']
            if User.query.filter_by(email=email).first():
                print(f"  - User '{email}' already exists (skipping)")
                continue

            try:
                user = service.create(ProfileChanges.from_mapping(user_data))
            except VetClinicError as e:
                print(f"  x Could not create '{email}': {e.message}")
                continue

            created_count += 1
            print(f"  + Created: {email} ({user.role.value}) - Password: {user_data['password']}")

        print()
        print("=" * 60)
        print(f"Created {created_count} new user(s)")
        print("=" * 60)
        print("\nIMPORTANT: Change passwords after first login!")


if __name__ == '__main__':
    create_default_users()
