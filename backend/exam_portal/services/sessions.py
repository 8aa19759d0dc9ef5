"""Exam attempts and their lifecycle.

A session moves ``opened -> submitted | expired | abandoned`` and never back.
Expiry is applied lazily whenever a session is read past its deadline.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from exam_portal.core.config import Settings
from exam_portal.core.errors import InvalidPayload, NotFound, SessionClosed
from exam_portal.models import ExamSession, SessionStatus, Test
from exam_portal.services.media_store import BlobStore, decode_image_data_url
from exam_portal.services.records import save_record
from exam_portal.utils.timezone import as_utc, utcnow

logger = logging.getLogger(__name__)

IDENTITY_FOLDER = "identity"


@dataclass(slots=True)
class ClientInfo:
    ip_address: str | None = None
    device: str | None = None
    browser: str | None = None
    os: str | None = None
    location: str | None = None


class SessionTracker:
    def __init__(self, db: Session, blob_store: BlobStore, settings: Settings):
        self.db = db
        self.blob_store = blob_store
        self.settings = settings

    def start_session(
        self,
        test_id: int,
        user_email: str,
        user_name: str,
        identity_photo: str | None,
        timestamp: datetime | None = None,
        client: ClientInfo | None = None,
    ) -> ExamSession:
        if not user_email or not user_name:
            raise InvalidPayload("userEmail and userName are required")
        data, ext = decode_image_data_url(identity_photo, self.settings.max_photo_bytes)

        started_at = as_utc(timestamp) or utcnow()
        deadline = None
        test = self.db.get(Test, test_id)
        if test is not None and test.duration:
            deadline = started_at + timedelta(minutes=test.duration + self.settings.session_grace_minutes)

        photo_url = self.blob_store.put(data, IDENTITY_FOLDER, f"{uuid.uuid4().hex}.{ext}")

        client = client or ClientInfo()
        session = ExamSession(
            test_id=test_id,
            user_email=user_email,
            user_name=user_name,
            identity_photo=photo_url,
            started_at=started_at,
            deadline=deadline,
            status=SessionStatus.OPENED,
            ip_address=client.ip_address,
            device=client.device,
            browser=client.browser,
            os=client.os,
            location=client.location,
        )
        # a new attempt supersedes any attempt still open for the pair
        for prior in self._open_sessions(test_id, user_email):
            self._close(prior, SessionStatus.ABANDONED)
            logger.info("Exam session %s abandoned by a new attempt", prior.id)
        save_record(self.db, session, orphan_url=photo_url)
        logger.info("Exam session %s opened for test %s by %s", session.id, test_id, user_email)
        return session

    def get_session(self, session_id: int) -> ExamSession:
        session = self.db.get(ExamSession, session_id)
        if session is None:
            raise NotFound("Exam session not found")
        return self.expire_if_due(session)

    def expire_if_due(self, session: ExamSession, now: datetime | None = None) -> ExamSession:
        # flushed, not committed; the next commit on this db session persists it
        if session.status != SessionStatus.OPENED or session.deadline is None:
            return session
        deadline = as_utc(session.deadline)
        if (now or utcnow()) > deadline:
            session.status = SessionStatus.EXPIRED
            session.closed_at = deadline
            self.db.flush()
            logger.info("Exam session %s expired at %s", session.id, deadline.isoformat())
        return session

    def current_session(self, test_id: int, user_email: str) -> ExamSession | None:
        stmt = (
            select(ExamSession)
            .where(ExamSession.test_id == test_id, ExamSession.user_email == user_email)
            .order_by(ExamSession.started_at.desc(), ExamSession.id.desc())
            .limit(1)
        )
        session = self.db.scalars(stmt).first()
        return self.expire_if_due(session) if session is not None else None

    def sessions_for(self, test_id: int, user_email: str) -> list[ExamSession]:
        stmt = (
            select(ExamSession)
            .where(ExamSession.test_id == test_id, ExamSession.user_email == user_email)
            .order_by(ExamSession.started_at, ExamSession.id)
        )
        return [self.expire_if_due(s) for s in self.db.scalars(stmt).all()]

    def _open_sessions(self, test_id: int, user_email: str) -> list[ExamSession]:
        stmt = select(ExamSession).where(
            ExamSession.test_id == test_id,
            ExamSession.user_email == user_email,
            ExamSession.status == SessionStatus.OPENED,
        )
        sessions = [self.expire_if_due(s) for s in self.db.scalars(stmt).all()]
        return [s for s in sessions if s.status == SessionStatus.OPENED]

    def _close(self, session: ExamSession, status: SessionStatus) -> ExamSession:
        if session.status != SessionStatus.OPENED:
            raise SessionClosed(f"Exam session {session.id} is already {session.status.value}")
        session.status = status
        session.closed_at = utcnow()
        return session

    def mark_submitted(self, test_id: int, user_email: str) -> ExamSession | None:
        """Close the pair's open session, if any. The caller commits."""
        session = self.current_session(test_id, user_email)
        if session is None or session.status != SessionStatus.OPENED:
            return session
        return self._close(session, SessionStatus.SUBMITTED)

    def abandon(self, session_id: int) -> ExamSession:
        session = self.get_session(session_id)
        self._close(session, SessionStatus.ABANDONED)
        self.db.commit()
        self.db.refresh(session)
        logger.info("Exam session %s abandoned", session.id)
        return session

    def ensure_accepting_evidence(self, test_id: int, user_email: str) -> ExamSession | None:
        session = self.current_session(test_id, user_email)
        if session is None:
            if self.settings.require_open_session:
                raise SessionClosed("No open exam session for this test and user")
            return None
        if session.status != SessionStatus.OPENED:
            # persist a lazily applied expiry
            self.db.commit()
            raise SessionClosed(f"Exam session {session.id} is {session.status.value}")
        return session
