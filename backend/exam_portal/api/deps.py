from collections.abc import Iterator

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from exam_portal.core.config import Settings
from exam_portal.core.errors import AuthError
from exam_portal.services.catalog import TestCatalog
from exam_portal.services.credentials import CredentialStore
from exam_portal.services.evidence import EvidenceIngestor
from exam_portal.services.media_query import ExamMediaQuery
from exam_portal.services.media_store import BlobStore
from exam_portal.services.sessions import SessionTracker
from exam_portal.services.students import StudentRegistry
from exam_portal.services.submissions import SubmissionService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_db(request: Request) -> Iterator[Session]:
    yield from request.app.state.db.session()


def require_admin(
    settings: Settings = Depends(get_settings),
    x_admin_key: str | None = Header(default=None),
) -> None:
    if settings.admin_api_key and x_admin_key != settings.admin_api_key:
        raise AuthError("Admin key required")


def get_session_tracker(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> SessionTracker:
    return SessionTracker(db, blob_store, settings)


def get_ingestor(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
    sessions: SessionTracker = Depends(get_session_tracker),
) -> EvidenceIngestor:
    return EvidenceIngestor(db, blob_store, settings, sessions)


def get_submission_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sessions: SessionTracker = Depends(get_session_tracker),
) -> SubmissionService:
    return SubmissionService(db, settings, sessions)


def get_media_query(db: Session = Depends(get_db)) -> ExamMediaQuery:
    return ExamMediaQuery(db)


def get_catalog(db: Session = Depends(get_db)) -> TestCatalog:
    return TestCatalog(db)


def get_credentials(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_student_registry(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> StudentRegistry:
    return StudentRegistry(db, blob_store, settings)
