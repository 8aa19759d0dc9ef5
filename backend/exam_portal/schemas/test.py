from datetime import datetime

from pydantic import Field, model_validator

from exam_portal.schemas.base import CamelModel

class QuestionCreate(CamelModel):
    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correct_answer: int
    explanation: str = ""

    @model_validator(mode="after")
    def check_correct_answer(self):
        if not (0 <= self.correct_answer < len(self.options)):
            raise ValueError(f"correctAnswer {self.correct_answer} is outside options (0..{len(self.options) - 1})")
        return self

class TestCreate(CamelModel):
    __test__ = False

    title: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    duration: int | None = Field(default=None, ge=1)  # minutes
    questions: list[QuestionCreate]

class TestCreated(CamelModel):
    success: bool = True
    message: str = "Test added"
    test_id: int

class DeclareResultsIn(CamelModel):
    results_declared: bool

class QuestionView(CamelModel):
    question: str
    options: list[str]

class QuestionOut(QuestionView):
    correct_answer: int
    explanation: str

class TestView(CamelModel):
    """Student-facing test, without the answer key."""

    id: int
    title: str
    subject: str
    duration: int | None
    results_declared: bool
    questions: list[QuestionView]

class TestOut(TestView):
    created_at: datetime | None = None
    questions: list[QuestionOut]
