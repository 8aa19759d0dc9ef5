from datetime import date, datetime

from pydantic import AliasChoices, EmailStr, Field

from exam_portal.schemas.base import CamelModel

class StudentCreate(CamelModel):
    name: str = Field(min_length=1)
    dob: date
    gender: str = Field(min_length=1)
    branch: str = Field(min_length=1)
    year: str = Field(min_length=1)
    college: str = Field(min_length=1)
    # older clients send "passingyear"
    passing_year: str = Field(min_length=1, validation_alias=AliasChoices("passingYear", "passingyear", "passing_year"))
    email: EmailStr
    phone: str = Field(min_length=1)
    address: str | None = None
    photo: str = Field(min_length=1)  # base64 data URL

class StudentOut(CamelModel):
    id: int
    name: str
    dob: date
    gender: str
    branch: str
    year: str
    college: str
    passing_year: str
    email: str
    phone: str
    address: str | None
    photo: str
    tests_taken: bool
    created_at: datetime | None = None

class StudentEnvelope(CamelModel):
    success: bool = True
    message: str | None = None
    student: StudentOut

class TestsTakenIn(CamelModel):
    tests_taken: bool
