"""Initial schema: tenders, bids, invitations, Q&A, history, documents and versions

Revision ID: 1_create_tables
Revises:
Create Date: 2025-03-14 12:00:00
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '1_create_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ### Создание таблицы tenders ###
    op.create_table(
        'tenders',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('project_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('contract_standard', sa.String(), nullable=False),
        sa.Column('status', sa.String(), server_default='draft', nullable=False),
        sa.Column('price', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('entrepriseform', sa.String(), nullable=True),
        sa.Column('cpv', sa.String(), nullable=True),
        sa.Column('evaluation_criteria', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('ns8405', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('ns8406', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('ns8407', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('publish_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('question_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deadline', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('awarded_bid_id', sa.String(), nullable=True),
        sa.Column('awarded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('standstill_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('standstill_end_date', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tenders_id', 'tenders', ['id'], unique=False)
    op.create_index('ix_tenders_project_id', 'tenders', ['project_id'], unique=False)
    op.create_index('ix_tenders_status', 'tenders', ['status'], unique=False)
    op.create_index('ix_tenders_created_by', 'tenders', ['created_by'], unique=False)

    # ### Создание таблицы bids ###
    op.create_table(
        'bids',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('tender_id', sa.String(), nullable=False),
        sa.Column('supplier_id', sa.String(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('price', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('price_structure', sa.String(), server_default='fastpris', nullable=False),
        sa.Column('hourly_rate', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('estimated_hours', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('documents', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('score', sa.Numeric(precision=7, scale=2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), server_default='submitted', nullable=False),
        sa.ForeignKeyConstraint(['tender_id'], ['tenders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bids_tender_id', 'bids', ['tender_id'], unique=False)

    # ### Создание таблицы invited_suppliers ###
    op.create_table(
        'invited_suppliers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tender_id', sa.String(), nullable=False),
        sa.Column('supplier_id', sa.String(), nullable=True),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('org_number', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('invited_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(), server_default='invited', nullable=False),
        sa.Column('viewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tender_id'], ['tenders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_invited_suppliers_tender_id', 'invited_suppliers', ['tender_id'], unique=False)
    op.create_index('ix_invited_suppliers_supplier_id', 'invited_suppliers', ['supplier_id'], unique=False)

    # ### Создание таблицы tender_questions ###
    op.create_table(
        'tender_questions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('tender_id', sa.String(), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('asked_by', sa.String(), nullable=False),
        sa.Column('asked_by_company', sa.String(), nullable=True),
        sa.Column('asked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('answer', sa.Text(), nullable=True),
        sa.Column('answered_by', sa.String(), nullable=True),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tender_id'], ['tenders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tender_questions_tender_id', 'tender_questions', ['tender_id'], unique=False)

    # ### Создание таблицы tender_history ###
    op.create_table(
        'tender_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tender_id', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('actor_id', sa.String(), nullable=True),
        sa.Column('actor_name', sa.String(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['tender_id'], ['tenders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tender_history_tender_id', 'tender_history', ['tender_id'], unique=False)

    # ### Создание таблицы tender_documents ###
    op.create_table(
        'tender_documents',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('tender_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('storage_path', sa.String(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('uploaded_by', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['tender_id'], ['tenders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tender_documents_tender_id', 'tender_documents', ['tender_id'], unique=False)

    # ### Создание таблицы document_versions ###
    op.create_table(
        'document_versions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('document_id', sa.String(), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('url', sa.String(), nullable=True),
        sa.Column('storage_path', sa.String(), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(), nullable=True),
        sa.Column('context', sa.String(), nullable=False),
        sa.Column('context_id', sa.String(), nullable=False),
        sa.Column('uploaded_by', sa.String(), nullable=True),
        sa.Column('uploaded_by_name', sa.String(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('change_reason', sa.Text(), nullable=True),
        sa.Column('changes', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('is_current', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_id', 'version_number', name='uq_document_version')
    )
    op.create_index('ix_document_versions_document_id', 'document_versions', ['document_id'], unique=False)
    op.create_index('ix_document_versions_context', 'document_versions', ['context', 'context_id'], unique=False)


def downgrade():
    op.drop_index('ix_document_versions_context', table_name='document_versions')
    op.drop_index('ix_document_versions_document_id', table_name='document_versions')
    op.drop_table('document_versions')
    op.drop_table('tender_documents')
    op.drop_table('tender_history')
    op.drop_table('tender_questions')
    op.drop_table('invited_suppliers')
    op.drop_table('bids')
    op.drop_table('tenders')
