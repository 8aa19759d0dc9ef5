import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from exam_portal.core.config import Settings
from exam_portal.core.errors import Conflict, InvalidPayload, NotFound, PersistenceError
from exam_portal.models import Submission, SubmissionAnswer, Test
from exam_portal.services.records import save_record
from exam_portal.services.scoring import score_submission
from exam_portal.services.sessions import SessionTracker

logger = logging.getLogger(__name__)


class SubmissionService:
    def __init__(self, db: Session, settings: Settings, sessions: SessionTracker):
        self.db = db
        self.settings = settings
        self.sessions = sessions

    def submit(self, test_id: int, answers: Any, user_email: str, user_name: str) -> Submission:
        if not user_email or not user_name:
            raise InvalidPayload("userEmail and userName are required")
        if answers is None:
            raise InvalidPayload("answers are required")

        test = self.db.get(Test, test_id)
        if test is None:
            raise NotFound("Test not found")

        attempt = self._next_attempt(test_id, user_email)

        result = score_submission(test, answers)

        sub = Submission(
            test_id=test_id,
            user_email=user_email,
            user_name=user_name,
            attempt=attempt,
            score=result.score,
            total_questions=result.total_questions,
            correct_count=result.correct_count,
            wrong_count=result.wrong_count,
            answers=[
                SubmissionAnswer(
                    position=a.position,
                    question=a.question,
                    options=a.options,
                    selected_option=a.selected_option,
                    correct_option=a.correct_option,
                    correct_option_text=a.correct_option_text,
                    is_correct=a.is_correct,
                    explanation=a.explanation,
                )
                for a in result.answers
            ],
        )
        # closes the open attempt in the same commit as the submission
        self.sessions.mark_submitted(test_id, user_email)
        try:
            save_record(self.db, sub)
        except PersistenceError as e:
            # another request stored this attempt first
            if isinstance(e.__cause__, IntegrityError):
                raise Conflict("Test already submitted") from e
            raise
        logger.info(
            "Submission %s for test %s by %s: %.2f%% (%d/%d)",
            sub.id, test_id, user_email, sub.score, sub.correct_count, sub.total_questions,
        )
        return sub

    def _next_attempt(self, test_id: int, user_email: str) -> int:
        stmt = select(func.max(Submission.attempt)).where(
            Submission.test_id == test_id, Submission.user_email == user_email
        )
        last = self.db.scalar(stmt)
        if last is None:
            return 1
        if not self.settings.allow_resubmission:
            raise Conflict("Test already submitted")
        return last + 1

    def list_all(self) -> list[Submission]:
        stmt = (
            select(Submission)
            .options(selectinload(Submission.test), selectinload(Submission.answers))
            .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        )
        return list(self.db.scalars(stmt).all())

    def list_for_user(self, user_email: str) -> list[Submission]:
        stmt = (
            select(Submission)
            .where(Submission.user_email == user_email)
            .options(selectinload(Submission.test), selectinload(Submission.answers))
            .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        )
        return list(self.db.scalars(stmt).all())
