"""create walk scheduling tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None

SCHEDULED = sa.text("status = 'scheduled'")
PENDING = sa.text("status = 'pending'")


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('experience_level', sa.String(length=10), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(), nullable=True),
        sa.Column('terms_accepted_at', sa.DateTime(), nullable=False),
        sa.Column('deactivated_at', sa.DateTime(), nullable=True),
        sa.Column('deactivation_reason', sa.String(length=120), nullable=True),
        sa.Column('reactivated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("experience_level IN ('green', 'blue', 'orange')", name='ck_users_experience_level'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)
        batch_op.create_index('ix_users_activity', ['is_active', 'last_activity_at'], unique=False)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('user_id', 'role_id')
    )
    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_seen_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sessions_token_hash'), ['token_hash'], unique=True)
        batch_op.create_index(batch_op.f('ix_sessions_user_id'), ['user_id'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('entity', sa.String(length=80), nullable=True),
        sa.Column('entity_id', sa.String(length=80), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('metadata_json', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'dogs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('breed', sa.String(length=120), nullable=False),
        sa.Column('size', sa.String(length=10), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(length=10), nullable=False),
        sa.Column('special_needs', sa.Text(), nullable=True),
        sa.Column('default_morning_time', sa.String(length=5), nullable=True),
        sa.Column('default_evening_time', sa.String(length=5), nullable=True),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('unavailable_reason', sa.String(length=255), nullable=True),
        sa.Column('unavailable_since', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("category IN ('green', 'blue', 'orange')", name='ck_dogs_category'),
        sa.CheckConstraint("size IS NULL OR size IN ('small', 'medium', 'large')", name='ck_dogs_size'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('dogs', schema=None) as batch_op:
        batch_op.create_index('ix_dogs_available', ['is_available', 'category'], unique=False)

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('dog_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('walk_type', sa.String(length=10), nullable=False),
        sa.Column('scheduled_time', sa.String(length=5), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=255), nullable=True),
        sa.Column('rescheduled_from_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("status IN ('scheduled', 'cancelled', 'completed')", name='ck_bookings_status'),
        sa.CheckConstraint("walk_type IN ('morning', 'evening')", name='ck_bookings_walk_type'),
        sa.ForeignKeyConstraint(['dog_id'], ['dogs.id'], ),
        sa.ForeignKeyConstraint(['rescheduled_from_id'], ['bookings.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_bookings_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_dog_id'), ['dog_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_date'), ['date'], unique=False)
        batch_op.create_index(
            'uq_booking_slot_scheduled', ['dog_id', 'date', 'scheduled_time'], unique=True,
            sqlite_where=SCHEDULED, postgresql_where=SCHEDULED,
        )
        batch_op.create_index(
            'uq_booking_user_day_scheduled', ['user_id', 'date'], unique=True,
            sqlite_where=SCHEDULED, postgresql_where=SCHEDULED,
        )

    op.create_table(
        'blocked_dates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('blocked_dates', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_blocked_dates_date'), ['date'], unique=True)

    op.create_table(
        'system_settings',
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('key')
    )

    op.create_table(
        'experience_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('requested_level', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('admin_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_by', sa.Integer(), nullable=True),
        sa.CheckConstraint("requested_level IN ('blue', 'orange')", name='ck_experience_requests_level'),
        sa.CheckConstraint("status IN ('pending', 'approved', 'denied')", name='ck_experience_requests_status'),
        sa.ForeignKeyConstraint(['resolved_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('experience_requests', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_experience_requests_user_id'), ['user_id'], unique=False)
        batch_op.create_index(
            'uq_experience_request_pending', ['user_id'], unique=True,
            sqlite_where=PENDING, postgresql_where=PENDING,
        )

    op.create_table(
        'reactivation_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('admin_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_by', sa.Integer(), nullable=True),
        sa.CheckConstraint("status IN ('pending', 'approved', 'denied')", name='ck_reactivation_requests_status'),
        sa.ForeignKeyConstraint(['resolved_by'], ['users.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('reactivation_requests', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reactivation_requests_user_id'), ['user_id'], unique=False)
        batch_op.create_index(
            'uq_reactivation_request_pending', ['user_id'], unique=True,
            sqlite_where=PENDING, postgresql_where=PENDING,
        )

    op.create_table(
        'sweep_leases',
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('holder', sa.String(length=64), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('name')
    )

    # default scheduling policy
    settings = sa.table(
        'system_settings',
        sa.column('key', sa.String),
        sa.column('value', sa.String),
        sa.column('updated_at', sa.DateTime),
    )
    op.execute(settings.insert().values([
        {'key': 'booking_advance_days', 'value': '14', 'updated_at': sa.func.now()},
        {'key': 'cancellation_notice_hours', 'value': '12', 'updated_at': sa.func.now()},
        {'key': 'auto_deactivation_days', 'value': '365', 'updated_at': sa.func.now()},
    ]))


def downgrade():
    op.drop_table('sweep_leases')
    with op.batch_alter_table('reactivation_requests', schema=None) as batch_op:
        batch_op.drop_index('uq_reactivation_request_pending')
        batch_op.drop_index(batch_op.f('ix_reactivation_requests_user_id'))
    op.drop_table('reactivation_requests')
    with op.batch_alter_table('experience_requests', schema=None) as batch_op:
        batch_op.drop_index('uq_experience_request_pending')
        batch_op.drop_index(batch_op.f('ix_experience_requests_user_id'))
    op.drop_table('experience_requests')
    op.drop_table('system_settings')
    with op.batch_alter_table('blocked_dates', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_blocked_dates_date'))
    op.drop_table('blocked_dates')
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.drop_index('uq_booking_user_day_scheduled')
        batch_op.drop_index('uq_booking_slot_scheduled')
        batch_op.drop_index(batch_op.f('ix_bookings_date'))
        batch_op.drop_index(batch_op.f('ix_bookings_dog_id'))
        batch_op.drop_index(batch_op.f('ix_bookings_user_id'))
    op.drop_table('bookings')
    with op.batch_alter_table('dogs', schema=None) as batch_op:
        batch_op.drop_index('ix_dogs_available')
    op.drop_table('dogs')
    op.drop_table('audit_logs')
    with op.batch_alter_table('sessions', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_sessions_user_id'))
        batch_op.drop_index(batch_op.f('ix_sessions_token_hash'))
    op.drop_table('sessions')
    op.drop_table('user_roles')
    op.drop_table('roles')
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_index('ix_users_activity')
        batch_op.drop_index(batch_op.f('ix_users_email'))
    op.drop_table('users')
