"""create memory and pipeline run tables

Revision ID: 4f2a9c1e7b3d
Revises:
Create Date: 2026-10-19 10:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4f2a9c1e7b3d'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    op.create_table('entities',
    sa.Column('id', sa.UUID(), nullable=False, comment='Unique identifier'),
    sa.Column('name', sa.String(length=255), nullable=False, comment='Entity name'),
    sa.Column('type', sa.String(length=255), nullable=False, comment='Entity type (Person, Organization, Project...)'),
    sa.Column('details', sa.Text(), nullable=True, comment='Free text or serialized JSON details'),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='When this record was created or last refreshed (UTC)'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name', 'type', name='uq_entities_name_type')
    )
    op.create_index('idx_entities_created', 'entities', ['created_at'], unique=False)

    op.create_table('contacts',
    sa.Column('id', sa.UUID(), nullable=False, comment='Unique identifier'),
    sa.Column('name', sa.String(length=255), nullable=False, comment='Display name'),
    sa.Column('email', sa.String(length=255), nullable=True),
    sa.Column('company', sa.String(length=255), nullable=True),
    sa.Column('phone', sa.String(length=50), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='Free-form labels'),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='When this record was created or last refreshed (UTC)'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('name', 'email', name='uq_contacts_name_email')
    )
    op.create_index('idx_contacts_name', 'contacts', ['name'], unique=False)

    op.create_table('messages',
    sa.Column('id', sa.UUID(), nullable=False, comment='Unique identifier'),
    sa.Column('conversation_id', sa.UUID(), nullable=False, comment='Conversation this turn belongs to'),
    sa.Column('role', sa.String(length=20), nullable=False, comment='user | model'),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('turn_index', sa.Integer(), nullable=False, comment='Position of the turn within its conversation'),
    sa.Column('token_count', sa.Integer(), nullable=True),
    sa.Column('is_bookmarked', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='When this record was created or last refreshed (UTC)'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('conversation_id', 'turn_index', name='uq_messages_conversation_turn')
    )
    op.create_index('idx_messages_conversation', 'messages', ['conversation_id', 'turn_index'], unique=False)

    op.create_table('knowledge_chunks',
    sa.Column('id', sa.UUID(), nullable=False, comment='Unique identifier'),
    sa.Column('text', sa.Text(), nullable=False, comment='Chunk text'),
    sa.Column('source', sa.String(length=100), nullable=True, comment='Where the chunk came from (extraction, manual)'),
    sa.Column('embedding', Vector(dim=768), nullable=False, comment='768-dim embedding for similarity search'),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='When this record was created or last refreshed (UTC)'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_knowledge_text', 'knowledge_chunks', ['text'], unique=False, postgresql_using='hash')
    op.create_index('idx_knowledge_embedding', 'knowledge_chunks', ['embedding'], unique=False, postgresql_using='hnsw', postgresql_ops={'embedding': 'vector_cosine_ops'})

    op.create_table('pipeline_runs',
    sa.Column('id', sa.UUID(), nullable=False, comment='Unique identifier'),
    sa.Column('run_type', sa.String(length=50), nullable=False, comment='ContextAssembly | MemoryExtraction'),
    sa.Column('status', sa.String(length=20), nullable=False, comment='running | completed | failed'),
    sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
    sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
    sa.Column('duration_ms', sa.Integer(), nullable=True),
    sa.Column('final_output', sa.Text(), nullable=True, comment='Human-readable summary of the run result'),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='When this record was created or last refreshed (UTC)'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_pipeline_runs_type_start', 'pipeline_runs', ['run_type', 'start_time'], unique=False)

    op.create_table('pipeline_run_steps',
    sa.Column('id', sa.UUID(), nullable=False, comment='Unique identifier'),
    sa.Column('run_id', sa.UUID(), nullable=False),
    sa.Column('step_order', sa.Integer(), nullable=False),
    sa.Column('step_name', sa.String(length=100), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, comment='completed | failed'),
    sa.Column('input_payload', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('output_payload', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('duration_ms', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='When this record was created or last refreshed (UTC)'),
    sa.ForeignKeyConstraint(['run_id'], ['pipeline_runs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('run_id', 'step_order', name='uq_run_steps_order')
    )
    op.create_index(op.f('ix_pipeline_run_steps_run_id'), 'pipeline_run_steps', ['run_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_pipeline_run_steps_run_id'), table_name='pipeline_run_steps')
    op.drop_table('pipeline_run_steps')
    op.drop_index('idx_pipeline_runs_type_start', table_name='pipeline_runs')
    op.drop_table('pipeline_runs')
    op.drop_index('idx_knowledge_embedding', table_name='knowledge_chunks')
    op.drop_index('idx_knowledge_text', table_name='knowledge_chunks')
    op.drop_table('knowledge_chunks')
    op.drop_index('idx_messages_conversation', table_name='messages')
    op.drop_table('messages')
    op.drop_index('idx_contacts_name', table_name='contacts')
    op.drop_table('contacts')
    op.drop_index('idx_entities_created', table_name='entities')
    op.drop_table('entities')
