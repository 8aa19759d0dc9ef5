from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship, Mapped, mapped_column
from exam_portal.core.db import Base

class Submission(Base):
    __tablename__ = "submissions"
    # one row per attempt; concurrent writers of the same attempt collide here
    __table_args__ = (UniqueConstraint("test_id", "user_email", "attempt", name="uq_submission_attempt"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    test_id: Mapped[int] = mapped_column(ForeignKey("tests.id"), nullable=False, index=True)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    attempt: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # 1-based per (test, email)

    score: Mapped[float] = mapped_column(Float, nullable=False)  # percentage
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False)
    wrong_count: Mapped[int] = mapped_column(Integer, nullable=False)
    submitted_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())

    test: Mapped["Test"] = relationship("Test")
    answers: Mapped[list["SubmissionAnswer"]] = relationship(
        "SubmissionAnswer",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionAnswer.position",
    )

class SubmissionAnswer(Base):
    __tablename__ = "submission_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    submission_id: Mapped[int] = mapped_column(ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    question: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    selected_option: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None = not answered
    correct_option: Mapped[int | None] = mapped_column(Integer, nullable=True)
    correct_option_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    explanation: Mapped[str] = mapped_column(Text, default="", nullable=False)

    submission: Mapped["Submission"] = relationship("Submission", back_populates="answers")
