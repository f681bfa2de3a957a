"""Initial schema: files and jobs

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FILE_TYPES = ('IMAGE', 'PDF', 'VIDEO', 'DOCUMENT', 'TEXT', 'OTHER')
FILE_STATES = ('LIVE', 'SOFT_DELETED')
JOB_TYPES = (
    'IMAGE_TO_PDF', 'IMAGE_TO_TXT', 'IMAGE_FORMAT_CONVERT', 'IMAGE_TRANSFORM', 'IMAGE_MERGE',
    'PDF_MERGE', 'PDF_SPLIT', 'PDF_REORDER', 'PDF_EXTRACT_TEXT', 'PDF_EXTRACT_IMAGES',
    'DOCX_TO_PDF', 'PPTX_TO_PDF',
    'COMPRESS_IMAGE', 'COMPRESS_PDF', 'COMPRESS_VIDEO',
)
JOB_STATUSES = ('PENDING', 'RUNNING', 'COMPLETED', 'FAILED')


def upgrade() -> None:
    # Create files table
    op.create_table(
        'files',
        sa.Column('file_id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('original_name', sa.String(255), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False, unique=True),
        sa.Column('mime_type', sa.String(255), nullable=False),
        sa.Column('size', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('storage_path', sa.String(1024), nullable=False),
        sa.Column('storage_key', sa.String(1024), nullable=False, unique=True),
        sa.Column('file_type', sa.Enum(*FILE_TYPES, name='filetype'), nullable=False),
        sa.Column('extension', sa.String(32), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('is_favorite', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('state', sa.Enum(*FILE_STATES, name='filestate'), nullable=False, server_default='LIVE'),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('source_job_id', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_files_owner_id', 'files', ['owner_id'])
    op.create_index('ix_files_file_type', 'files', ['file_type'])
    op.create_index('ix_files_state', 'files', ['state'])
    op.create_index('ix_files_owner_created', 'files', ['owner_id', 'created_at'])
    op.create_index('ix_files_owner_type', 'files', ['owner_id', 'file_type'])
    op.create_index('ix_files_owner_state', 'files', ['owner_id', 'state'])

    # Create jobs table
    op.create_table(
        'jobs',
        sa.Column('job_id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('job_type', sa.Enum(*JOB_TYPES, name='jobtype'), nullable=False),
        sa.Column('status', sa.Enum(*JOB_STATUSES, name='jobstatus'), nullable=False, server_default='PENDING'),
        sa.Column('input_files', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('output_files', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('options', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_jobs_owner_id', 'jobs', ['owner_id'])
    op.create_index('ix_jobs_job_type', 'jobs', ['job_type'])
    op.create_index('ix_jobs_status', 'jobs', ['status'])
    op.create_index('ix_jobs_owner_created', 'jobs', ['owner_id', 'created_at'])
    op.create_index('ix_jobs_owner_status', 'jobs', ['owner_id', 'status'])
    op.create_index('ix_jobs_owner_type', 'jobs', ['owner_id', 'job_type'])


def downgrade() -> None:
    op.drop_table('jobs')
    op.drop_table('files')
    sa.Enum(name='jobstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='jobtype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='filestate').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='filetype').drop(op.get_bind(), checkfirst=True)
