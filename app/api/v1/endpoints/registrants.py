# File: app/api/v1/endpoints/registrants.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud, schemas
from app.api import deps
from app.core.config import settings
from app.core.errors import (
    ConflictError, DeliveryFailedError, ForbiddenError, NotFoundError, ValidationError,
)
from app.core.otp_store import OtpStore
from app.db.database import get_db
from app.services.field_normalization import extract_email, normalize_and_filter
from app.services.identity_allocator import allocate
from app.services.notification_service import TicketNotifier
from app.services.roles import resolve_role

logger = logging.getLogger(__name__)

router = APIRouter()

REVIEWED_ROLES = ("exhibitor", "partner")


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _get_registrant_or_404(db: Session, role: str, registrant_id: str):
    info = resolve_role(role)
    record = crud.for_role(info.role).get(db, registrant_id)
    if record is None:
        raise NotFoundError(f"{info.role.capitalize()} not found")
    return info, record


@router.post("/{role}", response_model=schemas.RegistrationResponse)
def register(
    role: str,
    background_tasks: BackgroundTasks,
    form: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    otp: OtpStore = Depends(deps.get_otp_store),
    notifier: TicketNotifier = Depends(deps.get_notifier),
) -> Any:
    """Register a visitor, exhibitor, partner, speaker or awardee.

    Re-submitting an email already registered for the role returns the
    existing ticket with ``existed: true``.
    """
    info = resolve_role(role)
    form = dict(form)
    flags = [form.pop(key, None) for key in ("added_by_admin", "addedByAdmin")]
    added_by_admin = any(_truthy(flag) for flag in flags)
    tokens = [form.pop(key, None) for key in ("verificationToken", "verification_token")]
    token = next((t for t in tokens if t), None)

    if settings.REQUIRE_OTP_FOR_REGISTRATION and not added_by_admin:
        email = extract_email(normalize_and_filter(form))
        if not email or not otp.consume_token(token, info.role, email):
            raise ForbiddenError("Email has not been verified")

    whitelist = crud.registration_config.get_field_whitelist(db, page=info.role)
    result = allocate(db, info.role, form, added_by_admin=added_by_admin, whitelist=whitelist)
    logger.info(f"📝 {info.role} registration {result.id} (existed={result.existed})")

    if settings.AUTO_SEND_TICKET_EMAILS and not result.existed:
        background_tasks.add_task(notifier.send_ticket_email, info.table, result.id)

    return schemas.RegistrationResponse(
        id=result.id, ticket_code=result.ticket_code, existed=result.existed, role=result.role
    )


@router.get("/{role}", response_model=List[schemas.Registrant])
def list_registrants(
    role: str,
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
) -> Any:
    """Newest first."""
    return crud.for_role(role).get_newest(db, skip=skip, limit=limit)


@router.get("/{role}/stats", response_model=schemas.RegistrantStats)
def registrant_stats(role: str, db: Session = Depends(get_db)) -> Any:
    """Paid means a payment reference is stored; free covers free and general categories."""
    return crud.for_role(role).stats(db)


@router.post("/{role}/notify", response_model=schemas.NotifyResponse)
def notify_registrant(
    role: str,
    body: schemas.NotifyRequest,
    db: Session = Depends(get_db),
    notifier: TicketNotifier = Depends(deps.get_notifier),
) -> Any:
    """Re-send the thank-you mail to a stored registrant or an unsaved form, copying admins."""
    info = resolve_role(role)
    record = None
    if body.registrant_id:
        _, record = _get_registrant_or_404(db, info.role, body.registrant_id)
    elif not body.form:
        raise ValidationError("registrantId or form required")

    to, result = notifier.send_acknowledgement(db, info, record=record, form=body.form)
    label = body.registrant_id or to or "new"
    admin_results = notifier.notify_admins(
        subject=f"{info.role.capitalize()} notification - {label}",
        text=f"{info.role.capitalize()} notification sent to {to or 'nobody'} (success={result.success})",
    )
    return schemas.NotifyResponse(
        mail=schemas.DeliveryReport(to=to, success=result.success, error=result.error),
        admin_results=[schemas.DeliveryReport(**r) for r in admin_results],
    )


@router.post("/{role}/send-reminders", response_model=schemas.ReminderResponse)
def send_reminders(
    role: str,
    db: Session = Depends(get_db),
    notifier: TicketNotifier = Depends(deps.get_notifier),
) -> Any:
    sent, failed = notifier.send_reminders(db, resolve_role(role))
    return schemas.ReminderResponse(sent=sent, failed=failed)


@router.get("/{role}/{registrant_id}", response_model=schemas.Registrant)
def get_registrant(role: str, registrant_id: str, db: Session = Depends(get_db)) -> Any:
    _, record = _get_registrant_or_404(db, role, registrant_id)
    return record


@router.put("/{role}/{registrant_id}", response_model=schemas.Registrant)
def update_registrant(
    role: str,
    registrant_id: str,
    registrant_in: schemas.RegistrantUpdate,
    db: Session = Depends(get_db),
) -> Any:
    info, record = _get_registrant_or_404(db, role, registrant_id)
    update_data = registrant_in.model_dump(exclude_unset=True)

    if "email" in update_data:
        update_data["email"] = (update_data["email"] or "").strip().lower() or None
    if update_data.get("data") is not None:
        update_data["data"] = {**(record.data or {}), **normalize_and_filter(update_data["data"])}

    try:
        record = crud.for_role(info.role).update(db, db_obj=record, obj_in=update_data)
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Another {info.role} already uses this email")
    logger.info(f"✏️ {info.role} {record.id} updated: {sorted(update_data)}")
    return record


@router.delete("/{role}/{registrant_id}", response_model=schemas.MessageResponse)
def delete_registrant(role: str, registrant_id: str, db: Session = Depends(get_db)) -> Any:
    info, record = _get_registrant_or_404(db, role, registrant_id)
    crud.for_role(info.role).remove(db, id=record.id)
    logger.info(f"🗑️ {info.role} {registrant_id} deleted")
    return schemas.MessageResponse(message=f"{info.role.capitalize()} deleted")


@router.post("/{role}/{registrant_id}/resend-email", response_model=schemas.MessageResponse)
def resend_ticket_email(
    role: str,
    registrant_id: str,
    db: Session = Depends(get_db),
    notifier: TicketNotifier = Depends(deps.get_notifier),
) -> Any:
    info, record = _get_registrant_or_404(db, role, registrant_id)
    result = notifier.deliver(db, info, record)
    if not result.success:
        raise DeliveryFailedError(result.error or "Mail failed")
    return schemas.MessageResponse(message=f"Ticket email sent to {record.email}")


def _change_status(
    role: str,
    registrant_id: str,
    status: str,
    body: Optional[schemas.StatusChange],
    background_tasks: BackgroundTasks,
    db: Session,
    notifier: TicketNotifier,
):
    info, record = _get_registrant_or_404(db, role, registrant_id)
    if info.role not in REVIEWED_ROLES:
        raise ValidationError(f"Only exhibitors and partners can be {status}")

    admin = ((body.admin if body else None) or "").strip() or "web-admin"
    record = crud.for_role(info.role).set_status(db, db_obj=record, status=status, admin=admin)
    logger.info(f"🗂️ {info.role} {record.id} {status} by {admin}")

    background_tasks.add_task(notifier.send_status_email, info.table, record.id, status)
    background_tasks.add_task(
        notifier.notify_admins,
        f"{info.role.capitalize()} {status} - ID: {record.id}",
        f"{info.role.capitalize()} {status}\nID: {record.id}\n"
        f"Name: {record.display_name}\nEmail: {record.email or ''}\nBy: {admin}",
    )
    return record


@router.post("/{role}/{registrant_id}/approve", response_model=schemas.Registrant)
def approve_registrant(
    role: str,
    registrant_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[schemas.StatusChange] = None,
    db: Session = Depends(get_db),
    notifier: TicketNotifier = Depends(deps.get_notifier),
) -> Any:
    """Exhibitors and partners only. The status mail carries no badge."""
    return _change_status(role, registrant_id, "approved", body, background_tasks, db, notifier)


@router.post("/{role}/{registrant_id}/cancel", response_model=schemas.Registrant)
def cancel_registrant(
    role: str,
    registrant_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[schemas.StatusChange] = None,
    db: Session = Depends(get_db),
    notifier: TicketNotifier = Depends(deps.get_notifier),
) -> Any:
    return _change_status(role, registrant_id, "cancelled", body, background_tasks, db, notifier)
