"""initial_schema

Revision ID: 5f2a9c1e7b40
Revises:
Create Date: 2026-10-19 10:12:31.418552

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5f2a9c1e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all application tables."""
    op.create_table(
        'companies',
        sa.Column('company_key', sa.String(32), primary_key=True),
        sa.Column('company_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
    )

    op.create_table(
        'candidates',
        sa.Column('candidate_key', sa.String(32), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('skills', sa.JSON, nullable=False),
    )

    op.create_table(
        'job_postings',
        sa.Column('job_posting_key', sa.String(32), primary_key=True),
        sa.Column('company_key', sa.String(32), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('job_category', sa.String(100), nullable=False),
        sa.Column('career', sa.Integer, nullable=True),
        sa.Column('work_location', sa.String(255), nullable=False, server_default=''),
        sa.Column('education', sa.String(100), nullable=False, server_default=''),
        sa.Column('employment_type', sa.String(50), nullable=False, server_default=''),
        sa.Column('salary', sa.Integer, nullable=True),
        sa.Column('work_time', sa.String(100), nullable=False, server_default=''),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('job_posting_content', sa.Text, nullable=False, server_default=''),
        sa.Column('passing_number', sa.Integer, nullable=False),
        sa.Column('tech_stack', sa.JSON, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )

    op.create_table(
        'job_posting_steps',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('job_posting_key', sa.String(32), nullable=False, index=True),
        sa.Column('step', sa.String(100), nullable=False),
    )

    op.create_table(
        'applicants',
        sa.Column('applicant_key', sa.String(32), primary_key=True),
        sa.Column('candidate_key', sa.String(32), nullable=False),
        sa.Column('job_posting_key', sa.String(32), nullable=False, index=True),
        sa.Column('score', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('candidate_key', 'job_posting_key'),
    )

    op.create_table(
        'candidate_lists',
        sa.Column('candidate_list_key', sa.String(32), primary_key=True),
        sa.Column('job_posting_key', sa.String(32), nullable=False, index=True),
        sa.Column('job_posting_step_id', sa.Integer, nullable=False),
        sa.Column('candidate_key', sa.String(32), nullable=False),
        sa.Column('candidate_name', sa.String(100), nullable=False),
    )

    op.create_table(
        'applied_job_postings',
        sa.Column('applied_job_posting_key', sa.String(32), primary_key=True),
        sa.Column('candidate_key', sa.String(32), nullable=False, index=True),
        sa.Column('job_posting_key', sa.String(32), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('step_name', sa.String(100), nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('candidate_key', 'job_posting_key'),
    )

    op.create_table(
        'screening_runs',
        sa.Column('job_posting_key', sa.String(32), primary_key=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('filter_deferrals', sa.Integer, nullable=False, server_default='0'),
        sa.Column('scored_at', sa.DateTime, nullable=True),
        sa.Column('filtered_at', sa.DateTime, nullable=True),
        sa.Column('error', sa.Text, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )


def downgrade() -> None:
    """Drop all application tables."""
    op.drop_table('screening_runs')
    op.drop_table('applied_job_postings')
    op.drop_table('candidate_lists')
    op.drop_table('applicants')
    op.drop_table('job_posting_steps')
    op.drop_table('job_postings')
    op.drop_table('candidates')
    op.drop_table('companies')
