from typing import Literal

from pydantic import EmailStr, Field

from exam_portal.schemas.base import CamelModel

class RegisterIn(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    role: Literal["student", "admin"] = "student"

class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)

class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: str

class LoginOut(CamelModel):
    success: bool = True
    message: str = "Login successful"
    username: str
    email: str
    user_id: int
    role: str
