from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from exam_portal.core.errors import NotFound
from exam_portal.models import Question, Test
from exam_portal.schemas.test import TestCreate


class TestCatalog:
    __test__ = False

    def __init__(self, db: Session):
        self.db = db

    def create_test(self, payload: TestCreate) -> Test:
        t = Test(
            title=payload.title,
            subject=payload.subject,
            duration=payload.duration,
            results_declared=False,
            questions=[
                Question(
                    position=i,
                    question=q.question,
                    options=list(q.options),
                    correct_answer=q.correct_answer,
                    explanation=q.explanation or "",
                )
                for i, q in enumerate(payload.questions)
            ],
        )
        self.db.add(t)
        self.db.commit()
        self.db.refresh(t)
        return t

    def list_tests(self) -> list[Test]:
        stmt = select(Test).options(selectinload(Test.questions)).order_by(Test.created_at.desc(), Test.id.desc())
        return list(self.db.scalars(stmt).all())

    def get_test(self, test_id: int) -> Test:
        t = self.db.get(Test, test_id)
        if not t:
            raise NotFound("Test not found")
        return t

    def declare_results(self, test_id: int, declared: bool) -> Test:
        t = self.get_test(test_id)
        t.results_declared = declared
        self.db.commit()
        self.db.refresh(t)
        return t
