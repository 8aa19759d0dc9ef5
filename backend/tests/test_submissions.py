import pytest
from sqlalchemy import func, select

from exam_portal.core.errors import Conflict, InvalidTest, NotFound
from exam_portal.models import Question, SessionStatus, Submission, Test
from exam_portal.services.sessions import SessionTracker
from exam_portal.services.submissions import SubmissionService

from conftest import PNG_DATA_URL

EMAIL = "lee@uni.edu"


@pytest.fixture
def tracker(db, blob_store, settings):
    return SessionTracker(db, blob_store, settings)


@pytest.fixture
def service(db, settings, tracker):
    return SubmissionService(db, settings, tracker)


def test_submit_persists_the_grading_trace(service, make_test):
    t = make_test(correct=(0, 1))

    sub = service.submit(t.id, {0: 0, 1: 0}, EMAIL, "Lee")

    assert sub.score == 50
    assert (sub.correct_count, sub.wrong_count, sub.total_questions) == (1, 1, 2)
    assert len(sub.answers) == sub.total_questions
    assert [a.selected_option for a in sub.answers] == [0, 0]
    assert [a.correct_option_text for a in sub.answers] == ["A", "B"]


def test_submit_closes_the_open_session(service, tracker, make_test):
    t = make_test()
    session = tracker.start_session(t.id, EMAIL, "Lee", PNG_DATA_URL)

    service.submit(t.id, [0, 1], EMAIL, "Lee")

    assert tracker.get_session(session.id).status == SessionStatus.SUBMITTED


def test_unknown_test_is_not_found(service):
    with pytest.raises(NotFound):
        service.submit(999, [0], EMAIL, "Lee")


def test_empty_test_cannot_be_scored(service, db):
    t = Test(title="Empty", subject="None", questions=[])
    db.add(t)
    db.commit()

    with pytest.raises(InvalidTest):
        service.submit(t.id, [], EMAIL, "Lee")
    assert db.scalar(select(func.count(Submission.id))) == 0


def test_resubmission_allowed_by_default(service, make_test, db):
    t = make_test()
    service.submit(t.id, [0, 1], EMAIL, "Lee")
    service.submit(t.id, [1, 1], EMAIL, "Lee")

    assert len(service.list_for_user(EMAIL)) == 2


def test_resubmission_can_be_disabled(db, settings, tracker, make_test):
    settings.allow_resubmission = False
    service = SubmissionService(db, settings, tracker)
    t = make_test()
    service.submit(t.id, [0, 1], EMAIL, "Lee")

    with pytest.raises(Conflict):
        service.submit(t.id, [0, 1], EMAIL, "Lee")
    assert db.scalar(select(func.count(Submission.id))) == 1
    # another student is unaffected
    service.submit(t.id, [0, 1], "kim@uni.edu", "Kim")


def test_admin_listing_includes_test_details(service, make_test):
    t = make_test(title="Physics")
    service.submit(t.id, [0, 1], EMAIL, "Lee")

    [sub] = service.list_all()
    assert sub.test.title == "Physics"


def test_concurrent_submits_store_one_when_resubmission_is_off(shared_database, settings, blob_store, monkeypatch):
    settings.allow_resubmission = False
    first, second = shared_database.SessionLocal(), shared_database.SessionLocal()
    t = Test(title="Algebra", subject="Maths", questions=[
        Question(position=0, question="Q1", options=["A", "B"], correct_answer=0, explanation=""),
    ])
    first.add(t)
    first.commit()
    racing = SubmissionService(first, settings, SessionTracker(first, blob_store, settings))
    winner = SubmissionService(second, settings, SessionTracker(second, blob_store, settings))

    checked = racing._next_attempt

    def other_request_lands_in_between(test_id, user_email):
        attempt = checked(test_id, user_email)
        winner.submit(test_id, [0], user_email, "Lee")
        return attempt

    monkeypatch.setattr(racing, "_next_attempt", other_request_lands_in_between)

    with pytest.raises(Conflict):
        racing.submit(t.id, [1], EMAIL, "Lee")
    assert second.scalar(select(func.count(Submission.id))) == 1
    first.close()
    second.close()


def test_retakes_are_numbered(service, make_test):
    t = make_test()
    service.submit(t.id, [0, 1], EMAIL, "Lee")
    service.submit(t.id, [1, 1], EMAIL, "Lee")

    assert sorted(s.attempt for s in service.list_for_user(EMAIL)) == [1, 2]
