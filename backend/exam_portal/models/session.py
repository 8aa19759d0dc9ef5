import enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from exam_portal.core.db import Base

class SessionStatus(str, enum.Enum):
    OPENED = "opened"
    SUBMITTED = "submitted"
    EXPIRED = "expired"
    ABANDONED = "abandoned"

class ExamSession(Base):
    __tablename__ = "exam_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # plain reference, the test is not required to exist
    test_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    identity_photo: Mapped[str] = mapped_column(String(1000), nullable=False)

    started_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), nullable=False)
    deadline: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[SessionStatus] = mapped_column(
        SAEnum(SessionStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=SessionStatus.OPENED,
        nullable=False,
    )
    closed_at: Mapped["DateTime | None"] = mapped_column(DateTime(timezone=True), nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    device: Mapped[str | None] = mapped_column(String(64), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(64), nullable=True)
    os: Mapped[str | None] = mapped_column(String(64), nullable=True)
    location: Mapped[str | None] = mapped_column(String(128), nullable=True)
