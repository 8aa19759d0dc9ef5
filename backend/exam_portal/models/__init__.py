from .user import User
from .test import Test, Question
from .submission import Submission, SubmissionAnswer
from .student import Student
from .session import ExamSession, SessionStatus
from .evidence import Snapshot, VideoChunk, VisibilityEvent

__all__ = [
    "User",
    "Test",
    "Question",
    "Submission",
    "SubmissionAnswer",
    "Student",
    "ExamSession",
    "SessionStatus",
    "Snapshot",
    "VideoChunk",
    "VisibilityEvent",
]
