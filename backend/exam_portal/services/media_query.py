"""Read side of the evidence log, assembled for admin review."""
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from exam_portal.models import ExamSession, Snapshot, VideoChunk, VisibilityEvent
from exam_portal.utils.timezone import as_utc


@dataclass(slots=True)
class ExamMedia:
    snapshots: list[Snapshot] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TimelineEntry:
    kind: str  # snapshot | video | visibility
    id: int
    timestamp: datetime
    url: str | None = None
    chunk_index: int | None = None
    event: str | None = None
    switch_count: int | None = None


@dataclass(slots=True)
class ExamTimeline:
    entries: list[TimelineEntry]
    sessions: list[ExamSession]
    tab_switches: int


_KIND_ORDER = {"snapshot": 0, "video": 1, "visibility": 2}


class ExamMediaQuery:
    def __init__(self, db: Session):
        self.db = db

    def _evidence(self, model, test_id: int, user_email: str) -> list:
        stmt = (
            select(model)
            .where(model.test_id == test_id, model.user_email == user_email)
            .order_by(model.timestamp, model.id)
        )
        return list(self.db.scalars(stmt).all())

    def get_exam_media(self, test_id: int, user_email: str) -> ExamMedia:
        snapshots = self._evidence(Snapshot, test_id, user_email)
        videos = self._evidence(VideoChunk, test_id, user_email)
        return ExamMedia(snapshots=snapshots, video_urls=[v.video_url for v in videos])

    def get_timeline(self, test_id: int, user_email: str, sessions: list[ExamSession] | None = None) -> ExamTimeline:
        entries: list[TimelineEntry] = []
        for s in self._evidence(Snapshot, test_id, user_email):
            entries.append(TimelineEntry("snapshot", s.id, as_utc(s.timestamp), url=s.snapshot))
        for v in self._evidence(VideoChunk, test_id, user_email):
            entries.append(TimelineEntry("video", v.id, as_utc(v.timestamp), url=v.video_url, chunk_index=v.chunk_index))

        switches = 0
        for e in self._evidence(VisibilityEvent, test_id, user_email):
            if e.event == "hidden":
                switches += 1
            # running tally from the log, not the value stored at ingest time
            entries.append(TimelineEntry("visibility", e.id, as_utc(e.timestamp), event=e.event, switch_count=switches))

        entries.sort(key=lambda x: (x.timestamp, _KIND_ORDER[x.kind], x.id))
        return ExamTimeline(entries=entries, sessions=sessions or [], tab_switches=switches)
