"""
Request and response bodies.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, StringConstraints

NameStr = Annotated[str, StringConstraints(min_length=1, max_length=80, strip_whitespace=True)]
# bcrypt only takes the first 72 bytes
MAX_PASSWORD_BYTES = 72


def _fits_bcrypt(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


PasswordStr = Annotated[
    str, StringConstraints(min_length=6, max_length=MAX_PASSWORD_BYTES), AfterValidator(_fits_bcrypt)
]
CodeStr = Annotated[str, StringConstraints(min_length=1, max_length=32, strip_whitespace=True)]
HourMinute = Annotated[str, StringConstraints(pattern=r"^([01]\d|2[0-3]):([0-5]\d)$")]
Role = Literal["user", "admin"]


class SignupBody(BaseModel):
    name: NameStr
    email: EmailStr
    password: PasswordStr


class LoginBody(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class EmailVerifyBody(BaseModel):
    userid: str = Field(min_length=1)
    verificationCode: CodeStr


class EmailVerifyResetBody(BaseModel):
    userid: str = Field(min_length=1)


class UserBasicUpdateBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[NameStr] = None
    role: Optional[Annotated[List[Role], Field(min_length=1)]] = None


class PasswordUpdateBody(BaseModel):
    password: str = Field(min_length=1)
    new_password: PasswordStr


class EmailUpdateInitBody(BaseModel):
    new_email: EmailStr


class EmailUpdateVerifyBody(BaseModel):
    verificationCode: CodeStr


class ResetPasswordInitBody(BaseModel):
    email: EmailStr


class ResetPasswordVerifyBody(BaseModel):
    email: EmailStr
    verificationCode: CodeStr


class ChangePasswordBody(BaseModel):
    email: EmailStr
    password: PasswordStr


class TimeSlot(BaseModel):
    dayOfWeek: str = Field(min_length=1, max_length=16)
    startTime: HourMinute
    endTime: HourMinute


class AvailabilityBody(BaseModel):
    timeSlots: List[TimeSlot] = Field(min_length=1)


class UserOut(BaseModel):
    userid: str
    name: str
    email: str
    role: List[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SignupOut(BaseModel):
    userid: str
    name: str
    email: str
    role: List[str]


class LoginOut(BaseModel):
    accessToken: str


class MessageOut(BaseModel):
    message: str


class AvailabilityOut(BaseModel):
    timeSlots: List[TimeSlot]
