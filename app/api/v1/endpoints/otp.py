# File: app/api/v1/endpoints/otp.py
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app import schemas
from app.api import deps
from app.core.config import settings
from app.core.email_service import email_service
from app.core.errors import ConflictError, DeliveryFailedError, ValidationError
from app.core.otp_store import OtpStore
from app.crud.registrant import find_by_email_any
from app.db.database import get_db
from app.services.roles import resolve_role

logger = logging.getLogger(__name__)

router = APIRouter()


def _existing(db: Session, email: str, role: str) -> Optional[schemas.ExistingRegistration]:
    found = find_by_email_any(db, email=email, prefer_role=role)
    if found is None:
        return None
    info, record = found
    return schemas.ExistingRegistration(
        id=record.id, role=record.role, ticket_code=record.ticket_code, collection=info.table
    )


@router.get("/check-email", response_model=schemas.EmailCheckResponse, response_model_exclude_none=True)
def check_email(
    email: str = Query(...),
    type: str = Query(...),
    db: Session = Depends(get_db),
) -> Any:
    email = email.strip().lower()
    if "@" not in email:
        raise ValidationError("Invalid email")
    info = resolve_role(type)
    existing = _existing(db, email, info.role)
    return schemas.EmailCheckResponse(found=existing is not None, info=existing)


@router.post("/send")
def send_otp(
    body: schemas.OtpSendRequest,
    db: Session = Depends(get_db),
    otp: OtpStore = Depends(deps.get_otp_store),
) -> Any:
    info = resolve_role(body.registration_type)
    email = str(body.value).strip().lower()

    if _existing(db, email, info.role) is not None:
        raise ConflictError("Email already exists")

    code = otp.issue(info.role, email)
    minutes = max(1, otp.ttl_seconds // 60)
    result = email_service.send_mail(
        to=email,
        subject=f"Your {settings.EVENT_NAME} OTP",
        text=f"Your OTP is {code}. It expires in {minutes} minutes.",
        html=f"<p>Your OTP is <b>{code}</b>. It expires in {minutes} minutes.</p>",
    )
    if not result.success:
        otp.discard(info.role, email)
        raise DeliveryFailedError("Failed to send OTP")

    logger.info(f"🔐 OTP sent to {email} for {info.role}")
    return {
        "success": True,
        "email": email,
        "registrationType": info.role,
        "otpSent": True,
        "expiresInSec": otp.ttl_seconds,
    }


@router.post("/verify", response_model=schemas.OtpVerifyResponse, response_model_exclude_none=True)
def verify_otp(
    body: schemas.OtpVerifyRequest,
    db: Session = Depends(get_db),
    otp: OtpStore = Depends(deps.get_otp_store),
) -> Any:
    info = resolve_role(body.registration_type)
    email = str(body.value).strip().lower()
    token = otp.verify(info.role, email, body.otp)
    logger.info(f"✅ OTP verified for {email} ({info.role})")
    return schemas.OtpVerifyResponse(verification_token=token, existing=_existing(db, email, info.role))
