"""Video jobs table."""

from alembic import op
import sqlalchemy as sa


revision = "0001_video_jobs"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "video_jobs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("provider_job_id", sa.String(length=512), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("progress_pct", sa.Integer(), nullable=True),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("params_json", sa.JSON(), nullable=False),
        sa.Column("outputs_json", sa.JSON(), nullable=False),
        sa.Column("error_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_video_jobs_provider", "video_jobs", ["provider"], unique=False)
    op.create_index("ix_video_jobs_status", "video_jobs", ["status"], unique=False)
    op.create_index("ix_video_jobs_created_at", "video_jobs", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_video_jobs_created_at", table_name="video_jobs")
    op.drop_index("ix_video_jobs_status", table_name="video_jobs")
    op.drop_index("ix_video_jobs_provider", table_name="video_jobs")
    op.drop_table("video_jobs")
