import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exam_portal.core.config import Settings
from exam_portal.core.errors import Conflict, NotFound, PersistenceError
from exam_portal.models import Student
from exam_portal.schemas.student import StudentCreate
from exam_portal.services.media_store import BlobStore, decode_image_data_url, safe_email
from exam_portal.services.records import save_record

logger = logging.getLogger(__name__)


def student_photo_folder(email: str) -> str:
    return f"studentIdentities/{safe_email(email)}/photo"


class StudentRegistry:
    def __init__(self, db: Session, blob_store: BlobStore, settings: Settings):
        self.db = db
        self.blob_store = blob_store
        self.settings = settings

    def find(self, email: str) -> Student | None:
        return self.db.scalars(select(Student).where(Student.email == email)).first()

    def register_student(self, details: StudentCreate) -> Student:
        data, ext = decode_image_data_url(details.photo, self.settings.max_photo_bytes)
        if self.find(details.email) is not None:
            raise Conflict("Student details already saved")

        url = self.blob_store.put(data, student_photo_folder(details.email), f"{uuid.uuid4().hex}.{ext}")
        student = Student(
            name=details.name,
            dob=details.dob,
            gender=details.gender,
            branch=details.branch,
            year=details.year,
            college=details.college,
            passing_year=details.passing_year,
            email=details.email,
            phone=details.phone,
            address=details.address,
            photo=url,
            tests_taken=False,
        )
        try:
            return save_record(self.db, student, orphan_url=url)
        except PersistenceError as e:
            # a concurrent registration won the unique email
            if isinstance(e.__cause__, IntegrityError):
                raise Conflict("Student details already saved") from e
            raise

    def get_student(self, email: str) -> Student:
        student = self.find(email)
        if student is None:
            raise NotFound("Student not found")
        return student

    def set_tests_taken(self, email: str, tests_taken: bool) -> Student:
        student = self.get_student(email)
        student.tests_taken = tests_taken
        self.db.commit()
        self.db.refresh(student)
        return student
