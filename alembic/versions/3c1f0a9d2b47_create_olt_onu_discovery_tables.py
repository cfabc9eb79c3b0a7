"""Create olt, onu and discovery run tables

Revision ID: 3c1f0a9d2b47
Revises:
Create Date: 2026-10-19 09:12:44.318201

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d2b47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'olts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('vendor', sa.String(), nullable=False),
        sa.Column('model', sa.String(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('ip_address', sa.String(), nullable=False),
        sa.Column('telnet_enabled', sa.Boolean(), nullable=False),
        sa.Column('telnet_port', sa.Integer(), nullable=False),
        sa.Column('telnet_username', sa.String(), nullable=True),
        sa.Column('telnet_password', sa.String(), nullable=True),
        sa.Column('enable_password', sa.String(), nullable=True),
        sa.Column('snmp_enabled', sa.Boolean(), nullable=False),
        sa.Column('snmp_port', sa.Integer(), nullable=False),
        sa.Column('snmp_community', sa.String(), nullable=True),
        sa.Column('total_pon_slots', sa.Integer(), nullable=True),
        sa.Column('ports_per_slot', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ip_address'),
    )
    op.create_index(op.f('ix_olts_id'), 'olts', ['id'], unique=False)
    op.create_index(op.f('ix_olts_name'), 'olts', ['name'], unique=True)

    op.create_table(
        'onus',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('olt_id', sa.Integer(), nullable=False),
        sa.Column('pon_serial', sa.String(), nullable=False),
        sa.Column('pon_port', sa.String(), nullable=False),
        sa.Column('onu_id', sa.Integer(), nullable=True),
        sa.Column('mac_address', sa.String(), nullable=True),
        sa.Column('signal_rx', sa.Float(), nullable=True),
        sa.Column('signal_tx', sa.Float(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('distance', sa.Integer(), nullable=True),
        sa.Column('onu_type', sa.String(), nullable=True),
        sa.Column('data_hash', sa.String(length=64), nullable=True),
        sa.Column('last_online', sa.DateTime(), nullable=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True),
        sa.Column('admin_state', sa.String(), nullable=True),
        sa.Column('phase_state', sa.String(), nullable=True),
        sa.Column('config_state', sa.String(), nullable=True),
        sa.Column('authentication_mode', sa.String(), nullable=True),
        sa.Column('sn_bind', sa.String(), nullable=True),
        sa.Column('serial_number', sa.String(), nullable=True),
        sa.Column('vport_mode', sa.String(), nullable=True),
        sa.Column('dba_mode', sa.String(), nullable=True),
        sa.Column('fec', sa.String(), nullable=True),
        sa.Column('online_duration', sa.String(), nullable=True),
        sa.Column('current_channel', sa.String(), nullable=True),
        sa.Column('line_profile', sa.String(), nullable=True),
        sa.Column('service_profile', sa.String(), nullable=True),
        sa.Column('last_authpass_time', sa.DateTime(), nullable=True),
        sa.Column('last_offline_time', sa.DateTime(), nullable=True),
        sa.Column('last_down_cause', sa.String(), nullable=True),
        sa.Column('details_raw_output', sa.Text(), nullable=True),
        sa.Column('details_updated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['olt_id'], ['olts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_onus_id'), 'onus', ['id'], unique=False)
    op.create_index(op.f('ix_onus_olt_id'), 'onus', ['olt_id'], unique=False)
    op.create_index(op.f('ix_onus_pon_serial'), 'onus', ['pon_serial'], unique=True)

    op.create_table(
        'discovery_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('olt_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('last_run_at', sa.DateTime(), nullable=True),
        sa.Column('error_message', sa.String(), nullable=True),
        sa.Column('discovered_count', sa.Integer(), nullable=False),
        sa.Column('updated_count', sa.Integer(), nullable=False),
        sa.Column('skipped_count', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['olt_id'], ['olts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('olt_id'),
    )
    op.create_index(op.f('ix_discovery_runs_id'), 'discovery_runs', ['id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_discovery_runs_id'), table_name='discovery_runs')
    op.drop_table('discovery_runs')
    op.drop_index(op.f('ix_onus_pon_serial'), table_name='onus')
    op.drop_index(op.f('ix_onus_olt_id'), table_name='onus')
    op.drop_index(op.f('ix_onus_id'), table_name='onus')
    op.drop_table('onus')
    op.drop_index(op.f('ix_olts_name'), table_name='olts')
    op.drop_index(op.f('ix_olts_id'), table_name='olts')
    op.drop_table('olts')
