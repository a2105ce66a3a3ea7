"""Initial veterinarian aggregate tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

JSON_DOCUMENT = sa.JSON().with_variant(
    postgresql.JSONB(astext_type=sa.Text()), 'postgresql'
)

VETERINARIAN_STATUS = sa.Enum(
    'pending_verification', 'active', 'inactive', 'suspended', 'under_review',
    'deactivated', name='veterinarianstatus'
)
ONBOARDING_STEP = sa.Enum(
    'personal_info', 'professional_info', 'license_verification',
    'education_verification', 'insurance_verification',
    'specialization_assessment', 'platform_training', 'educational_training',
    'trial_consultations', 'final_approval', name='onboardingstep'
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Create veterinarians table
    op.create_table('veterinarians',
        sa.Column('id', sa.String(length=64), nullable=False, comment='Veterinarian identifier'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Contact email, duplicated from the profile for lookups'),
        sa.Column('status', VETERINARIAN_STATUS, nullable=False, comment='Current profile status'),
        sa.Column('profile', JSON_DOCUMENT, nullable=False, comment='Full veterinarian profile document'),
        sa.Column('version', sa.Integer(), nullable=False, comment='Optimistic concurrency version of the aggregate'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_veterinarians_email', 'veterinarians', ['email'])
    op.create_index('ix_veterinarians_status', 'veterinarians', ['status'])

    # Create veterinarian_onboarding table
    op.create_table('veterinarian_onboarding',
        sa.Column('veterinarian_id', sa.String(length=64), nullable=False, comment='Veterinarian being onboarded'),
        sa.Column('current_step', ONBOARDING_STEP, nullable=False, comment='Step the veterinarian is currently on'),
        sa.Column('progress', JSON_DOCUMENT, nullable=False, comment='Full onboarding progress document'),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True, comment='When the final step was completed'),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True, comment='When the progress document was archived'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['veterinarian_id'], ['veterinarians.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('veterinarian_id')
    )
    op.create_index('ix_veterinarian_onboarding_archived_at', 'veterinarian_onboarding', ['archived_at'])

    # Create veterinarian_workflows table
    op.create_table('veterinarian_workflows',
        sa.Column('veterinarian_id', sa.String(length=64), nullable=False, comment='Veterinarian owning the workflow'),
        sa.Column('state', JSON_DOCUMENT, nullable=False, comment='Full workflow state document'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['veterinarian_id'], ['veterinarians.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('veterinarian_id')
    )

    # Create case_assignments table
    op.create_table('case_assignments',
        sa.Column('case_id', sa.String(length=64), nullable=False, comment='Case identifier, unique system-wide'),
        sa.Column('veterinarian_id', sa.String(length=64), nullable=False, comment='Veterinarian that owns the case'),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True, comment="When the case left the veterinarian's current cases"),
        *_timestamps(),
        sa.ForeignKeyConstraint(['veterinarian_id'], ['veterinarians.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('case_id')
    )
    op.create_index('ix_case_assignments_veterinarian_id', 'case_assignments', ['veterinarian_id'])


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('case_assignments')
    op.drop_table('veterinarian_workflows')
    op.drop_table('veterinarian_onboarding')
    op.drop_table('veterinarians')

    # Drop enum types
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("DROP TYPE IF EXISTS onboardingstep")
        op.execute("DROP TYPE IF EXISTS veterinarianstatus")
