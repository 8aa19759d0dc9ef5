from datetime import datetime, timedelta, timezone

from exam_portal.models import Snapshot, VideoChunk, VisibilityEvent
from exam_portal.services.media_query import ExamMediaQuery

EMAIL = "ana@uni.edu"
T0 = datetime(2025, 5, 2, 14, 0, tzinfo=timezone.utc)


def at(seconds):
    return T0 + timedelta(seconds=seconds)


def test_no_evidence_is_an_empty_result(db):
    media = ExamMediaQuery(db).get_exam_media(1, EMAIL)
    assert media.snapshots == []
    assert media.video_urls == []


def test_results_sorted_by_timestamp_not_insertion(db):
    db.add_all([
        Snapshot(test_id=1, user_email=EMAIL, snapshot="s/late", timestamp=at(30)),
        Snapshot(test_id=1, user_email=EMAIL, snapshot="s/early", timestamp=at(10)),
        Snapshot(test_id=2, user_email=EMAIL, snapshot="s/other-test", timestamp=at(0)),
        VideoChunk(test_id=1, user_email=EMAIL, video_url="v/2", chunk_index=2, size_bytes=1, timestamp=at(20)),
        VideoChunk(test_id=1, user_email=EMAIL, video_url="v/1", chunk_index=1, size_bytes=1, timestamp=at(5)),
        VideoChunk(test_id=1, user_email="bo@uni.edu", video_url="v/bo", chunk_index=0, size_bytes=1, timestamp=at(1)),
    ])
    db.commit()

    media = ExamMediaQuery(db).get_exam_media(1, EMAIL)

    assert [s.snapshot for s in media.snapshots] == ["s/early", "s/late"]
    assert media.video_urls == ["v/1", "v/2"]


def test_timeline_merges_all_evidence(db):
    db.add_all([
        VisibilityEvent(test_id=1, user_email=EMAIL, seq=1, event="hidden", switch_count=9, reported_switch_count=9, timestamp=at(12)),
        Snapshot(test_id=1, user_email=EMAIL, snapshot="s/1", timestamp=at(3)),
        VisibilityEvent(test_id=1, user_email=EMAIL, seq=2, event="visible", switch_count=9, timestamp=at(15)),
        VideoChunk(test_id=1, user_email=EMAIL, video_url="v/0", chunk_index=0, size_bytes=1, timestamp=at(8)),
        VisibilityEvent(test_id=1, user_email=EMAIL, seq=3, event="hidden", switch_count=9, timestamp=at(40)),
    ])
    db.commit()

    timeline = ExamMediaQuery(db).get_timeline(1, EMAIL)

    assert [e.kind for e in timeline.entries] == ["snapshot", "video", "visibility", "visibility", "visibility"]
    assert [e.switch_count for e in timeline.entries if e.kind == "visibility"] == [1, 1, 2]
    assert timeline.tab_switches == 2
    assert timeline.entries[1].chunk_index == 0
