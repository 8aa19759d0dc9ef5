import base64
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from exam_portal.core.config import Settings
from exam_portal.core.db import Database
from exam_portal.core.errors import UploadError
from exam_portal.main import create_app
from exam_portal.models import Question, Test


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


class FakeBlobStore:
    """Records every put; set ``fail`` to make uploads raise like a dead backend."""

    def __init__(self):
        self.puts = []
        self.fail = False

    def put(self, data, folder, filename):
        if self.fail:
            raise UploadError("blob store unavailable")
        self.puts.append((folder, filename, data))
        return f"https://blobs.example/{folder}/{filename}"

    def folders(self):
        return [folder for folder, _, _ in self.puts]


def answer_key(*correct, options=("A", "B", "C")):
    """Duck-typed test object for the scorer."""
    questions = [
        SimpleNamespace(question=f"Q{i + 1}", options=list(options), correct_answer=c, explanation=f"because {i}")
        for i, c in enumerate(correct)
    ]
    return SimpleNamespace(questions=questions)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        media_dir=str(tmp_path / "media"),
        public_base_url="http://testserver",
    )


@pytest.fixture
def database(settings):
    database = Database(settings.database_url)
    database.create_all()
    yield database
    database.engine.dispose()


@pytest.fixture
def db(database):
    session = database.SessionLocal()
    yield session
    session.close()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def make_test(db):
    def _make(correct=(0, 1), duration=None, title="Algebra", options=("A", "B", "C")):
        t = Test(
            title=title,
            subject="Maths",
            duration=duration,
            questions=[
                Question(position=i, question=f"Q{i + 1}", options=list(options), correct_answer=c, explanation="")
                for i, c in enumerate(correct)
            ],
        )
        db.add(t)
        db.commit()
        db.refresh(t)
        return t

    return _make


@pytest.fixture
def client(settings, blob_store):
    app = create_app(settings, blob_store=blob_store)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def shared_database(tmp_path):
    """File-backed database for tests that need two independent db sessions."""
    database = Database(f"sqlite:///{tmp_path / 'shared.db'}")
    database.create_all()
    yield database
    database.engine.dispose()
