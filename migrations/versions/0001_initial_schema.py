"""Initial schema: users, veterinarians, owners, pets, records, appointments, audit logs

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum('STAFF', 'ADMIN', 'VETERINARIAN', name='user_role')
appointment_status = sa.Enum('SCHEDULED', 'COMPLETED', 'CANCELLED', name='appointment_status')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=False)
    op.create_index('ix_users_role', 'users', ['role'], unique=False)

    # One row per VETERINARIAN user; removed by the database with the user
    op.create_table(
        'veterinarians',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('license_number', sa.String(length=50), nullable=False),
        sa.Column('experience', sa.Integer(), nullable=True),
        sa.Column('education', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('license_number', name='uq_veterinarians_license_number'),
        sa.CheckConstraint(
            'experience IS NULL OR experience >= 0',
            name='ck_veterinarians_experience_non_negative',
        ),
    )
    op.create_index('ix_veterinarians_license_number', 'veterinarians', ['license_number'], unique=False)

    op.create_table(
        'owners',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_owners_email', 'owners', ['email'], unique=True)

    op.create_table(
        'pet_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=50), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        'pets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('owners.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type_id', sa.Integer(), sa.ForeignKey('pet_types.id'), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('breed', sa.String(length=100), nullable=True),
        sa.Column('gender', sa.String(length=10), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('weight', sa.Float(), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_pets_owner_id', 'pets', ['owner_id'], unique=False)
    op.create_index('ix_pets_type_id', 'pets', ['type_id'], unique=False)

    op.create_table(
        'medical_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pet_id', sa.Integer(), sa.ForeignKey('pets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('vet_id', sa.Integer(), sa.ForeignKey('veterinarians.user_id', ondelete='SET NULL'), nullable=True),
        sa.Column('visit_date', sa.Date(), nullable=False),
        sa.Column('diagnosis', sa.Text(), nullable=True),
        sa.Column('treatment', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_medical_records_pet_id', 'medical_records', ['pet_id'], unique=False)
    op.create_index('ix_medical_records_vet_id', 'medical_records', ['vet_id'], unique=False)

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pet_id', sa.Integer(), sa.ForeignKey('pets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('vet_id', sa.Integer(), sa.ForeignKey('veterinarians.user_id', ondelete='SET NULL'), nullable=True),
        sa.Column('record_id', sa.Integer(), sa.ForeignKey('medical_records.id', ondelete='CASCADE'), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('status', appointment_status, nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_appointments_pet_id', 'appointments', ['pet_id'], unique=False)
    op.create_index('ix_appointments_vet_id', 'appointments', ['vet_id'], unique=False)
    op.create_index('ix_appointments_record_id', 'appointments', ['record_id'], unique=False)
    op.create_index('ix_appointments_date', 'appointments', ['date'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'], unique=False)
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'], unique=False)
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'], unique=False)
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'], unique=False)


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('appointments')
    op.drop_table('medical_records')
    op.drop_table('pets')
    op.drop_table('pet_types')
    op.drop_table('owners')
    op.drop_table('veterinarians')
    op.drop_table('users')
    appointment_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
