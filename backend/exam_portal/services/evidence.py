"""Ingestion of proctoring evidence.

Every unit is handled on its own: the media goes to the blob store first and
the metadata row is written last, so a row never points at missing media. A
failed upload leaves nothing behind; a failed metadata write leaves an
orphaned blob and is reported as ``PersistenceError``. Records are only ever
appended.
"""
import logging
import time
import uuid
from datetime import datetime

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exam_portal.core.config import Settings
from exam_portal.core.errors import InvalidPayload, PayloadTooLarge, PersistenceError
from exam_portal.models import Snapshot, VideoChunk, VisibilityEvent
from exam_portal.services.media_store import BlobStore, decode_image_data_url, safe_email
from exam_portal.services.records import save_record
from exam_portal.services.sessions import SessionTracker
from exam_portal.utils.timezone import as_utc, utcnow

logger = logging.getLogger(__name__)

VISIBILITY_EVENTS = ("hidden", "visible")
# times a visibility write is retried after losing its log position to a concurrent one
VISIBILITY_WRITE_ATTEMPTS = 5

VIDEO_EXTENSIONS = {
    "video/webm": "webm",
    "video/mp4": "mp4",
    "video/ogg": "ogv",
    "video/quicktime": "mov",
}


def snapshot_folder(user_email: str) -> str:
    return f"snapshots/{safe_email(user_email)}"


def video_folder(user_email: str) -> str:
    return f"uploads/{safe_email(user_email)}_videos"


def _require_identity(test_id, user_email) -> None:
    if test_id is None or not user_email:
        raise InvalidPayload("testId and userEmail are required")


class EvidenceIngestor:
    def __init__(self, db: Session, blob_store: BlobStore, settings: Settings, sessions: SessionTracker | None = None):
        self.db = db
        self.blob_store = blob_store
        self.settings = settings
        self.sessions = sessions or SessionTracker(db, blob_store, settings)

    def ingest_snapshot(self, test_id: int, user_email: str, image: str | None, timestamp: datetime | None = None) -> Snapshot:
        _require_identity(test_id, user_email)
        data, ext = decode_image_data_url(image, self.settings.max_photo_bytes)
        self.sessions.ensure_accepting_evidence(test_id, user_email)

        logger.info("Snapshot received for test %s from %s (%d bytes)", test_id, user_email, len(data))
        url = self.blob_store.put(data, snapshot_folder(user_email), f"{uuid.uuid4().hex}.{ext}")

        snap = Snapshot(
            test_id=test_id,
            user_email=user_email,
            snapshot=url,
            timestamp=as_utc(timestamp) or utcnow(),
        )
        return save_record(self.db, snap, orphan_url=url)

    def ingest_video_chunk(
        self,
        test_id: int,
        user_email: str,
        chunk_index: int | None,
        data: bytes,
        timestamp: datetime | None = None,
        content_type: str | None = None,
    ) -> VideoChunk:
        _require_identity(test_id, user_email)
        if not data:
            raise InvalidPayload("Video chunk is empty")
        if len(data) > self.settings.max_video_chunk_bytes:
            raise PayloadTooLarge(f"Video chunk exceeds {self.settings.max_video_chunk_bytes} bytes")
        self.sessions.ensure_accepting_evidence(test_id, user_email)

        logger.info("Received chunk %s size=%d bytes for %s (test %s)", chunk_index, len(data), user_email, test_id)
        ext = VIDEO_EXTENSIONS.get((content_type or "").split(";")[0].strip().lower(), "webm")
        # unique per upload; concurrent chunks may share an index and a millisecond
        filename = f"video_{int(time.time() * 1000)}_chunk_{chunk_index}_{uuid.uuid4().hex[:8]}.{ext}"
        url = self.blob_store.put(data, video_folder(user_email), filename)

        chunk = VideoChunk(
            test_id=test_id,
            user_email=user_email,
            video_url=url,
            chunk_index=chunk_index,
            size_bytes=len(data),
            timestamp=as_utc(timestamp) or utcnow(),
        )
        return save_record(self.db, chunk, orphan_url=url)

    def log_position(self, test_id: int, user_email: str) -> tuple[int, int]:
        """Next sequence number and current hidden-event count for the pair's log."""
        stmt = select(
            func.coalesce(func.max(VisibilityEvent.seq), 0),
            func.coalesce(func.sum(case((VisibilityEvent.event == "hidden", 1), else_=0)), 0),
        ).where(VisibilityEvent.test_id == test_id, VisibilityEvent.user_email == user_email)
        last_seq, hidden = self.db.execute(stmt).one()
        return last_seq + 1, hidden

    def ingest_visibility_event(
        self,
        test_id: int,
        user_email: str,
        event: str,
        reported_switch_count: int | None = None,
        timestamp: datetime | None = None,
    ) -> VisibilityEvent:
        _require_identity(test_id, user_email)
        if event not in VISIBILITY_EVENTS:
            raise InvalidPayload(f"event must be one of {', '.join(VISIBILITY_EVENTS)}")
        self.sessions.ensure_accepting_evidence(test_id, user_email)
        timestamp = as_utc(timestamp) or utcnow()

        for attempt in range(1, VISIBILITY_WRITE_ATTEMPTS + 1):
            seq, hidden = self.log_position(test_id, user_email)
            record = VisibilityEvent(
                test_id=test_id,
                user_email=user_email,
                seq=seq,
                event=event,
                switch_count=hidden + (1 if event == "hidden" else 0),
                reported_switch_count=reported_switch_count,
                timestamp=timestamp,
            )
            try:
                record = save_record(self.db, record)
                break
            except PersistenceError as e:
                if not isinstance(e.__cause__, IntegrityError) or attempt == VISIBILITY_WRITE_ATTEMPTS:
                    raise
                logger.info("Visibility log position %s for %s on test %s taken, retrying", seq, user_email, test_id)

        if reported_switch_count is not None and reported_switch_count != record.switch_count:
            logger.warning(
                "Client reported %s tab switches for %s on test %s, log has %s",
                reported_switch_count, user_email, test_id, record.switch_count,
            )
        return record
