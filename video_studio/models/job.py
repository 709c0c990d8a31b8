from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from video_studio.db.base import Base
from video_studio.models.common import TimestampMixin, UUIDPrimaryKeyMixin

TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})


class VideoJob(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One generation attempt against a single provider."""

    __tablename__ = "video_jobs"

    provider: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    provider_job_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="queued", nullable=False, index=True)
    progress_pct: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    params_json: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    outputs_json: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    error_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
