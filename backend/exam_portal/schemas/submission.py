from datetime import datetime

from pydantic import Field, StrictInt

from exam_portal.schemas.base import CamelModel

class SubmitTestIn(CamelModel):
    test_id: int
    # a list by question position, or {"<index>": option}; null means not answered
    answers: list[StrictInt | None] | dict[int, StrictInt | None]
    user_email: str = Field(min_length=1)
    user_name: str = Field(min_length=1)

class SubmitTestOut(CamelModel):
    success: bool = True
    message: str = "Test submitted successfully!"
    score: float
    correct_count: int
    wrong_count: int
    submission_id: int

class SubmissionAnswerOut(CamelModel):
    question: str
    options: list[str]
    selected_option: int | None
    correct_option: int | None
    correct_option_text: str | None
    is_correct: bool
    explanation: str

class SubmissionOut(CamelModel):
    id: int
    test_id: int
    test_title: str | None = None
    test_subject: str | None = None
    user_email: str
    user_name: str
    results_declared: bool = True
    score: float | None
    total_questions: int
    correct_count: int | None
    wrong_count: int | None
    answers: list[SubmissionAnswerOut] | None
    submitted_at: datetime | None = None
