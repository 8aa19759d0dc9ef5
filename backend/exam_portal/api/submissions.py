from fastapi import APIRouter, Depends

from exam_portal.api.deps import get_submission_service, require_admin
from exam_portal.models import Submission
from exam_portal.schemas.submission import SubmissionAnswerOut, SubmissionOut, SubmitTestIn, SubmitTestOut
from exam_portal.services.submissions import SubmissionService

router = APIRouter(tags=["submissions"])

def _to_out(sub: Submission, *, reveal: bool) -> SubmissionOut:
    declared = bool(sub.test and sub.test.results_declared)
    show = reveal or declared
    return SubmissionOut(
        id=sub.id,
        test_id=sub.test_id,
        test_title=sub.test.title if sub.test else None,
        test_subject=sub.test.subject if sub.test else None,
        user_email=sub.user_email,
        user_name=sub.user_name,
        results_declared=declared,
        score=sub.score if show else None,
        total_questions=sub.total_questions,
        correct_count=sub.correct_count if show else None,
        wrong_count=sub.wrong_count if show else None,
        answers=[SubmissionAnswerOut.model_validate(a) for a in sub.answers] if show else None,
        submitted_at=sub.submitted_at,
    )

@router.post("/api/submissions", response_model=SubmitTestOut)
def submit_test(payload: SubmitTestIn, service: SubmissionService = Depends(get_submission_service)):
    sub = service.submit(payload.test_id, payload.answers, payload.user_email, payload.user_name)
    return SubmitTestOut(
        score=sub.score,
        correct_count=sub.correct_count,
        wrong_count=sub.wrong_count,
        submission_id=sub.id,
    )

@router.get("/admin/submissions", response_model=list[SubmissionOut], dependencies=[Depends(require_admin)])
def list_submissions(service: SubmissionService = Depends(get_submission_service)):
    return [_to_out(s, reveal=True) for s in service.list_all()]

@router.get("/api/users/{email}/submissions", response_model=list[SubmissionOut])
def user_submissions(email: str, service: SubmissionService = Depends(get_submission_service)):
    # scores and the grading trace stay hidden until results are declared
    return [_to_out(s, reveal=False) for s in service.list_for_user(email)]
