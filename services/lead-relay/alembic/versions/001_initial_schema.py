"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2025-11-03 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


TARGET_KINDS = ['lead_name', 'contact_first_name', 'contact_custom_field', 'lead_custom_field', 'tag']
REQUEST_STATES = ['pending', 'success', 'failure']


def create_enum_if_not_exists(enum_name, enum_values):
    """Create PostgreSQL ENUM type if it doesn't exist"""
    enum_name_escaped = enum_name.replace('"', '""')
    values_str = ", ".join(["'" + v.replace("'", "''") + "'" for v in enum_values])
    op.execute(f"""
        DO $$ BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = '{enum_name_escaped}') THEN
                CREATE TYPE "{enum_name_escaped}" AS ENUM ({values_str});
            END IF;
        END $$;
    """)


def upgrade() -> None:
    create_enum_if_not_exists('targetkind', TARGET_KINDS)
    create_enum_if_not_exists('requeststate', REQUEST_STATES)

    # Sources
    op.create_table(
        'sources',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False, server_default='webhook'),
        sa.Column('feed_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_sources_name'), 'sources', ['name'], unique=True)

    # Field mapping rules
    op.create_table(
        'field_mapping_rules',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('source_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('sources.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('source_field_path', sa.String(), nullable=False),
        sa.Column('target_kind', postgresql.ENUM(*TARGET_KINDS, name='targetkind', create_type=False), nullable=False),
        sa.Column('target_code', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_field_mapping_rules_source_id'), 'field_mapping_rules', ['source_id'], unique=False)

    # Request logs
    op.create_table(
        'request_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('source_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('sources.id'), nullable=False),
        sa.Column('state', postgresql.ENUM(*REQUEST_STATES, name='requeststate', create_type=False), nullable=False),
        sa.Column('raw_input', postgresql.JSONB(), nullable=True),
        sa.Column('response', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index(op.f('ix_request_logs_source_id'), 'request_logs', ['source_id'], unique=False)
    op.create_index(op.f('ix_request_logs_state'), 'request_logs', ['state'], unique=False)
    op.create_index(op.f('ix_request_logs_created_at'), 'request_logs', ['created_at'], unique=False)

    # Config entries (KOMMO_REFRESH_TOKEN)
    op.create_table(
        'config_entries',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_config_entries_key'), 'config_entries', ['key'], unique=True)

    # Legacy form leads
    op.create_table(
        'leads',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('origin', sa.String(50), nullable=True),
        sa.Column('form_data', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index(op.f('ix_leads_email'), 'leads', ['email'], unique=False)
    op.create_index(op.f('ix_leads_created_at'), 'leads', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('leads')
    op.drop_table('config_entries')
    op.drop_table('request_logs')
    op.drop_table('field_mapping_rules')
    op.drop_table('sources')
    op.execute('DROP TYPE IF EXISTS requeststate')
    op.execute('DROP TYPE IF EXISTS targetkind')
