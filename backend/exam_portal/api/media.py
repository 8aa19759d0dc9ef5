from fastapi import APIRouter, Depends

from exam_portal.api.deps import get_media_query, get_session_tracker, require_admin
from exam_portal.schemas.exam import ExamMediaOut, ExamTimelineOut, SessionOut, SnapshotRecord, TimelineEntryOut
from exam_portal.services.media_query import ExamMediaQuery
from exam_portal.services.sessions import SessionTracker

router = APIRouter(prefix="/admin", tags=["review"], dependencies=[Depends(require_admin)])

@router.get("/exam-media/{test_id}/{email}", response_model=ExamMediaOut)
def get_exam_media(test_id: int, email: str, query: ExamMediaQuery = Depends(get_media_query)):
    media = query.get_exam_media(test_id, email)
    return ExamMediaOut(
        snapshots=[SnapshotRecord.model_validate(s) for s in media.snapshots],
        videos=media.video_urls,
    )

@router.get("/exam-timeline/{test_id}/{email}", response_model=ExamTimelineOut)
def get_exam_timeline(
    test_id: int,
    email: str,
    query: ExamMediaQuery = Depends(get_media_query),
    sessions: SessionTracker = Depends(get_session_tracker),
):
    timeline = query.get_timeline(test_id, email, sessions.sessions_for(test_id, email))
    return ExamTimelineOut(
        sessions=[SessionOut.model_validate(s) for s in timeline.sessions],
        tab_switches=timeline.tab_switches,
        entries=[TimelineEntryOut.model_validate(e) for e in timeline.entries],
    )
