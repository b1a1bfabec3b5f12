"""Create calendar_documents table

Revision ID: 001_calendar_documents
Revises:
Create Date: 2026-10-19

Keyed JSON documents for the bookings and monthAvailability collections.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_calendar_documents'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'calendar_documents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('collection', sa.String(50), nullable=False),
        sa.Column('doc_key', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('collection', 'doc_key', name='uq_calendar_document_key'),
    )
    op.create_index(
        'ix_calendar_document_collection',
        'calendar_documents',
        ['collection', 'doc_key'],
    )


def downgrade() -> None:
    op.drop_index('ix_calendar_document_collection', table_name='calendar_documents')
    op.drop_table('calendar_documents')
