from datetime import datetime
from typing import Literal

from pydantic import Field

from exam_portal.models.session import SessionStatus
from exam_portal.schemas.base import CamelModel

class StartExamIn(CamelModel):
    test_id: int
    user_email: str = Field(min_length=1)
    user_name: str = Field(min_length=1)
    identity_photo: str | None = None  # base64 data URL
    timestamp: datetime | None = None

class SessionOut(CamelModel):
    id: int
    test_id: int
    user_email: str
    user_name: str
    identity_photo: str
    started_at: datetime
    deadline: datetime | None
    status: SessionStatus
    closed_at: datetime | None
    ip_address: str | None
    device: str | None
    browser: str | None
    os: str | None
    location: str | None

class StartExamOut(CamelModel):
    success: bool = True
    message: str = "Exam session started"
    session_id: int
    deadline: datetime | None = None

class SessionStatusOut(CamelModel):
    success: bool = True
    session: SessionOut

class SnapshotIn(CamelModel):
    test_id: int
    user_email: str = Field(min_length=1)
    snapshot: str | None = None  # base64 data URL
    timestamp: datetime | None = None

class SnapshotOut(CamelModel):
    success: bool = True
    message: str = "Snapshot stored"
    snapshot_id: int

class VideoChunkOut(CamelModel):
    success: bool = True
    url: str
    chunk_index: int | None

class VisibilityEventIn(CamelModel):
    test_id: int
    user_email: str = Field(min_length=1)
    event: Literal["hidden", "visible"]
    switch_count: int | None = Field(default=None, ge=0)
    timestamp: datetime | None = None

class VisibilityEventOut(CamelModel):
    success: bool = True
    event_id: int
    switch_count: int

class SnapshotRecord(CamelModel):
    id: int
    test_id: int
    user_email: str
    snapshot: str
    timestamp: datetime

class ExamMediaOut(CamelModel):
    success: bool = True
    snapshots: list[SnapshotRecord]
    videos: list[str]

class TimelineEntryOut(CamelModel):
    kind: str
    id: int
    timestamp: datetime
    url: str | None = None
    chunk_index: int | None = None
    event: str | None = None
    switch_count: int | None = None

class ExamTimelineOut(CamelModel):
    success: bool = True
    sessions: list[SessionOut]
    tab_switches: int
    entries: list[TimelineEntryOut]
