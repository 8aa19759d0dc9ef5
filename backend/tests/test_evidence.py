from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from exam_portal.core.errors import InvalidPayload, PayloadTooLarge, PersistenceError, SessionClosed, UploadError
from exam_portal.models import Snapshot, VideoChunk, VisibilityEvent
from exam_portal.services.evidence import EvidenceIngestor
from exam_portal.services.media_query import ExamMediaQuery
from exam_portal.services.sessions import SessionTracker

from conftest import PNG_DATA_URL

EMAIL = "jane.doe@uni.edu"
T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def ingestor(db, blob_store, settings):
    return EvidenceIngestor(db, blob_store, settings)


def count(db, model):
    return db.scalar(select(func.count(model.id)))


def test_snapshot_uploads_then_records(ingestor, blob_store):
    snap = ingestor.ingest_snapshot(1, EMAIL, PNG_DATA_URL, T0)

    assert blob_store.folders() == ["snapshots/jane_doe_uni_edu"]
    assert snap.id is not None
    assert snap.snapshot.startswith("https://blobs.example/snapshots/jane_doe_uni_edu/")
    assert snap.snapshot.endswith(".png")


def test_chunks_arriving_out_of_order_are_all_kept(ingestor, db, blob_store):
    for n, index in enumerate([2, 0, 1]):
        ingestor.ingest_video_chunk(7, EMAIL, index, b"webm-bytes-%d" % index, T0 + timedelta(seconds=n))

    chunks = db.scalars(select(VideoChunk).order_by(VideoChunk.id)).all()
    assert [c.chunk_index for c in chunks] == [2, 0, 1]
    assert len({c.video_url for c in chunks}) == 3
    assert all(f == "uploads/jane_doe_uni_edu_videos" for f in blob_store.folders())

    media = ExamMediaQuery(db).get_exam_media(7, EMAIL)
    assert media.video_urls == [c.video_url for c in chunks]


def test_failed_upload_leaves_no_record(ingestor, db, blob_store):
    blob_store.fail = True

    with pytest.raises(UploadError):
        ingestor.ingest_snapshot(1, EMAIL, PNG_DATA_URL, T0)
    with pytest.raises(UploadError):
        ingestor.ingest_video_chunk(1, EMAIL, 0, b"chunk", T0)

    assert count(db, Snapshot) == 0
    assert count(db, VideoChunk) == 0
    media = ExamMediaQuery(db).get_exam_media(1, EMAIL)
    assert media.snapshots == [] and media.video_urls == []


def test_failed_metadata_write_reports_orphan(ingestor, db, blob_store, monkeypatch):
    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(PersistenceError) as exc:
        ingestor.ingest_snapshot(1, EMAIL, PNG_DATA_URL, T0)

    folder, filename, _ = blob_store.puts[0]
    assert exc.value.orphan_url == f"https://blobs.example/{folder}/{filename}"
    monkeypatch.undo()
    assert count(db, Snapshot) == 0


def test_oversized_chunk_is_rejected_before_upload(db, blob_store, settings):
    settings.max_video_chunk_bytes = 8
    ingestor = EvidenceIngestor(db, blob_store, settings)

    with pytest.raises(PayloadTooLarge):
        ingestor.ingest_video_chunk(1, EMAIL, 0, b"x" * 9, T0)
    assert blob_store.puts == []


def test_empty_chunk_is_invalid(ingestor):
    with pytest.raises(InvalidPayload):
        ingestor.ingest_video_chunk(1, EMAIL, 0, b"", T0)


def test_snapshot_must_be_an_image(ingestor, blob_store):
    with pytest.raises(InvalidPayload):
        ingestor.ingest_snapshot(1, EMAIL, "data:text/html;base64,PGI+", T0)
    assert blob_store.puts == []


def test_resubmitted_evidence_is_appended(ingestor, db):
    ingestor.ingest_snapshot(1, EMAIL, PNG_DATA_URL, T0)
    ingestor.ingest_snapshot(1, EMAIL, PNG_DATA_URL, T0)
    assert count(db, Snapshot) == 2


def test_switch_count_comes_from_the_log(ingestor, db):
    first = ingestor.ingest_visibility_event(1, EMAIL, "hidden", 5, T0)
    back = ingestor.ingest_visibility_event(1, EMAIL, "visible", 5, T0 + timedelta(seconds=3))
    second = ingestor.ingest_visibility_event(1, EMAIL, "hidden", 0, T0 + timedelta(seconds=9))
    other_user = ingestor.ingest_visibility_event(1, "someone@uni.edu", "hidden", None, T0)

    assert [first.switch_count, back.switch_count, second.switch_count] == [1, 1, 2]
    assert [first.reported_switch_count, second.reported_switch_count] == [5, 0]
    assert other_user.switch_count == 1


def test_unknown_visibility_event_is_invalid(ingestor, db):
    with pytest.raises(InvalidPayload):
        ingestor.ingest_visibility_event(1, EMAIL, "blurred", 1, T0)
    assert count(db, VisibilityEvent) == 0


def test_missing_timestamp_uses_server_time(ingestor):
    before = datetime.now(timezone.utc)
    snap = ingestor.ingest_snapshot(1, EMAIL, PNG_DATA_URL)
    stamp = snap.timestamp if snap.timestamp.tzinfo else snap.timestamp.replace(tzinfo=timezone.utc)
    assert stamp >= before - timedelta(seconds=1)


def test_evidence_after_session_closed_is_rejected(db, blob_store, settings, ingestor):
    tracker = SessionTracker(db, blob_store, settings)
    session = tracker.start_session(3, EMAIL, "Jane", PNG_DATA_URL)
    ingestor.ingest_snapshot(3, EMAIL, PNG_DATA_URL)
    tracker.abandon(session.id)
    uploads = len(blob_store.puts)

    with pytest.raises(SessionClosed):
        ingestor.ingest_snapshot(3, EMAIL, PNG_DATA_URL)
    with pytest.raises(SessionClosed):
        ingestor.ingest_visibility_event(3, EMAIL, "hidden", 1)

    assert len(blob_store.puts) == uploads
    assert count(db, Snapshot) == 1


def test_open_session_can_be_required(db, blob_store, settings):
    settings.require_open_session = True
    ingestor = EvidenceIngestor(db, blob_store, settings)

    with pytest.raises(SessionClosed):
        ingestor.ingest_video_chunk(1, EMAIL, 0, b"chunk", T0)

    SessionTracker(db, blob_store, settings).start_session(1, EMAIL, "Jane", PNG_DATA_URL)
    assert ingestor.ingest_video_chunk(1, EMAIL, 0, b"chunk", T0).id is not None


def test_concurrent_hidden_events_get_consecutive_switch_counts(shared_database, blob_store, settings, monkeypatch):
    first, second = shared_database.SessionLocal(), shared_database.SessionLocal()
    racing = EvidenceIngestor(first, blob_store, settings)
    other = EvidenceIngestor(second, blob_store, settings)

    read_position = racing.log_position
    interleaved = []

    def other_event_lands_in_between(test_id, user_email):
        position = read_position(test_id, user_email)
        if not interleaved:
            interleaved.append(other.ingest_visibility_event(test_id, user_email, "hidden", 1, T0))
        return position

    monkeypatch.setattr(racing, "log_position", other_event_lands_in_between)

    mine = racing.ingest_visibility_event(1, EMAIL, "hidden", 1, T0 + timedelta(seconds=1))

    assert interleaved[0].switch_count == 1
    assert mine.switch_count == 2
    stored = second.scalars(select(VisibilityEvent).order_by(VisibilityEvent.seq)).all()
    assert [(e.seq, e.switch_count) for e in stored] == [(1, 1), (2, 2)]
    first.close()
    second.close()
