from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from exam_portal.core.db import Base

# Evidence rows are append-only and keyed by (test_id, user_email).

class Snapshot(Base):
    __tablename__ = "snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    test_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    snapshot: Mapped[str] = mapped_column(String(1000), nullable=False)  # blob URL
    timestamp: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

class VideoChunk(Base):
    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    test_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    video_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    chunk_index: Mapped[int | None] = mapped_column(Integer, nullable=True)  # advisory only
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

class VisibilityEvent(Base):
    __tablename__ = "visibility_events"
    # seq orders the pair's log; concurrent writers of the same seq collide here
    __table_args__ = (UniqueConstraint("test_id", "user_email", "seq", name="uq_visibility_seq"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    test_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-based position in the pair's log
    event: Mapped[str] = mapped_column(String(16), nullable=False)  # hidden | visible
    switch_count: Mapped[int] = mapped_column(Integer, nullable=False)  # recomputed from the log
    reported_switch_count: Mapped[int | None] = mapped_column(Integer, nullable=True)  # as sent by the client
    timestamp: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
