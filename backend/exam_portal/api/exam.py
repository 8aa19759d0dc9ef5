from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from exam_portal.api.deps import get_ingestor, get_session_tracker, get_settings
from exam_portal.core.config import Settings
from exam_portal.core.errors import PayloadTooLarge
from exam_portal.schemas.exam import (
    SessionOut,
    SessionStatusOut,
    SnapshotIn,
    SnapshotOut,
    StartExamIn,
    StartExamOut,
    VideoChunkOut,
    VisibilityEventIn,
    VisibilityEventOut,
)
from exam_portal.services.evidence import EvidenceIngestor
from exam_portal.services.sessions import ClientInfo, SessionTracker
from exam_portal.utils.ip_location import lookup_location
from exam_portal.utils.user_agent import parse_user_agent

router = APIRouter(prefix="/api/exam", tags=["exam"])

@router.post("/start", response_model=StartExamOut)
async def start_exam(
    payload: StartExamIn,
    request: Request,
    sessions: SessionTracker = Depends(get_session_tracker),
    settings: Settings = Depends(get_settings),
):
    # Client metadata kept with the attempt: IP, parsed UA, IP-based location
    ip = request.client.host if request.client else None
    device, browser, os = parse_user_agent(request.headers.get("user-agent"))
    location = await lookup_location(ip, settings.geolookup_provider)

    session = sessions.start_session(
        payload.test_id,
        payload.user_email,
        payload.user_name,
        payload.identity_photo,
        payload.timestamp,
        ClientInfo(ip_address=ip, device=device, browser=browser, os=os, location=location),
    )
    return StartExamOut(session_id=session.id, deadline=session.deadline)

@router.get("/sessions/{session_id}", response_model=SessionStatusOut)
def get_session(session_id: int, sessions: SessionTracker = Depends(get_session_tracker)):
    return SessionStatusOut(session=SessionOut.model_validate(sessions.get_session(session_id)))

@router.post("/sessions/{session_id}/abandon", response_model=SessionStatusOut)
def abandon_session(session_id: int, sessions: SessionTracker = Depends(get_session_tracker)):
    return SessionStatusOut(session=SessionOut.model_validate(sessions.abandon(session_id)))

@router.post("/snapshots", response_model=SnapshotOut)
def upload_snapshot(payload: SnapshotIn, ingestor: EvidenceIngestor = Depends(get_ingestor)):
    snap = ingestor.ingest_snapshot(payload.test_id, payload.user_email, payload.snapshot, payload.timestamp)
    return SnapshotOut(snapshot_id=snap.id)

@router.post("/video-chunks", response_model=VideoChunkOut)
async def upload_video_chunk(
    test_id: int = Form(..., alias="testId"),
    user_email: str = Form(..., alias="userEmail"),
    chunk_index: int | None = Form(None, alias="chunkIndex"),
    timestamp: datetime | None = Form(None),
    video: UploadFile = File(...),
    ingestor: EvidenceIngestor = Depends(get_ingestor),
    settings: Settings = Depends(get_settings),
):
    # the part is already spooled by the form parser; read at most one byte past
    # the ceiling so an oversized chunk never lands in memory whole
    raw = await video.read(settings.max_video_chunk_bytes + 1)
    if len(raw) > settings.max_video_chunk_bytes:
        raise PayloadTooLarge(f"Video chunk exceeds {settings.max_video_chunk_bytes} bytes")

    chunk = ingestor.ingest_video_chunk(test_id, user_email, chunk_index, raw, timestamp, video.content_type)
    return VideoChunkOut(url=chunk.video_url, chunk_index=chunk.chunk_index)

@router.post("/visibility", response_model=VisibilityEventOut)
def record_visibility(payload: VisibilityEventIn, ingestor: EvidenceIngestor = Depends(get_ingestor)):
    e = ingestor.ingest_visibility_event(
        payload.test_id, payload.user_email, payload.event, payload.switch_count, payload.timestamp
    )
    return VisibilityEventOut(event_id=e.id, switch_count=e.switch_count)
