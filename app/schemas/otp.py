# File: app/schemas/otp.py
from typing import Optional

from pydantic import EmailStr

from app.schemas.common import CamelModel


class OtpSendRequest(CamelModel):
    value: EmailStr
    registration_type: str


class OtpVerifyRequest(CamelModel):
    value: EmailStr
    otp: str
    registration_type: str


class ExistingRegistration(CamelModel):
    id: str
    role: str
    ticket_code: Optional[str] = None
    collection: str


class EmailCheckResponse(CamelModel):
    success: bool = True
    found: bool
    info: Optional[ExistingRegistration] = None


class OtpVerifyResponse(CamelModel):
    success: bool = True
    verification_token: str
    existing: Optional[ExistingRegistration] = None
