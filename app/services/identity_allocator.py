# File: app/services/identity_allocator.py
"""Registrant allocation: one record and one ticket code per email per role."""
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AllocationExhaustedError
from app.core.retry import RetryExhausted, with_retry
from app.crud.registrant import for_model
from app.db.indexes import ensure_indexes
from app.models.registrant import RegistrantMixin
from app.services.field_normalization import extract_email, normalize_and_filter
from app.services.roles import RoleInfo, resolve_role
from app.services.ticket_codes import generate_ticket_code, numeric_projection, style_for_role

logger = logging.getLogger(__name__)

NAME_KEYS = ("name", "full_name", "fullname")
COMPANY_KEYS = ("company", "organization", "organisation", "company_name")
MOBILE_KEYS = ("mobile", "phone", "phone_number", "mobile_number")


@dataclass
class AllocationResult:
    id: str
    ticket_code: str
    existed: bool
    role: str


def _first(fields: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = fields.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return None


def _is_collision(exc: BaseException) -> bool:
    return isinstance(exc, IntegrityError)


def _result(record: RegistrantMixin, info: RoleInfo, existed: bool) -> AllocationResult:
    return AllocationResult(id=record.id, ticket_code=record.ticket_code, existed=existed, role=info.role)


def _backfill_code(db: Session, record: RegistrantMixin, info: RoleInfo) -> None:
    """Give a code to an older record that was stored without one."""
    style = style_for_role(info.role)

    def attempt(n: int) -> None:
        code = generate_ticket_code(style)
        record.ticket_code = code
        record.ticket_code_num = numeric_projection(code)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise

    try:
        with_retry(settings.TICKET_CODE_MAX_ATTEMPTS, attempt, _is_collision)
    except RetryExhausted as e:
        raise AllocationExhaustedError(e.attempts)
    db.refresh(record)


def allocate(
    db: Session,
    role: str,
    form: Optional[Dict[str, Any]],
    *,
    added_by_admin: bool = False,
    whitelist: Optional[Iterable[str]] = None,
) -> AllocationResult:
    """Store a registration and return its identity.

    With an email the call is an upsert: an existing record is returned
    untouched with ``existed=True``. Without one a new record is always
    inserted. Code collisions are retried up to ``TICKET_CODE_MAX_ATTEMPTS``.
    """
    info = resolve_role(role)
    crud = for_model(info.model)
    form = form if isinstance(form, dict) else {}

    # Email is read before the whitelist so deduplication never depends on it
    email = extract_email(normalize_and_filter(form))
    fields = normalize_and_filter(form, whitelist)
    fields.pop("ticket_code", None)

    ensure_indexes(db, info.model)

    if email:
        existing = crud.get_by_email(db, email=email)
        if existing is not None:
            if not existing.ticket_code:
                _backfill_code(db, existing, info)
            logger.info(f"♻️ {info.role} {existing.id} already registered, returning existing ticket")
            return _result(existing, info, existed=True)

    style = style_for_role(info.role)
    raw_form = {k: v for k, v in form.items() if k != "_rawForm"}

    def attempt(n: int) -> AllocationResult:
        code = generate_ticket_code(style)
        record = info.model(
            id=str(uuid.uuid4()),
            email=email,
            ticket_code=code,
            ticket_code_num=numeric_projection(code),
            ticket_category=info.role,
            role=info.role,
            name=_first(fields, NAME_KEYS),
            company=_first(fields, COMPANY_KEYS),
            mobile=_first(fields, MOBILE_KEYS),
            added_by_admin=bool(added_by_admin),
            data=fields,
            raw_form=raw_form,
        )
        db.add(record)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if email:
                # A concurrent request registered the same email first
                winner = crud.get_by_email(db, email=email)
                if winner is not None:
                    logger.info(f"♻️ {info.role} {winner.id} created concurrently for the same email")
                    return _result(winner, info, existed=True)
            raise
        db.refresh(record)
        return _result(record, info, existed=False)

    try:
        result = with_retry(settings.TICKET_CODE_MAX_ATTEMPTS, attempt, _is_collision)
    except RetryExhausted as e:
        logger.error(f"❌ Ticket code allocation exhausted for {info.role}: {e.last_error}")
        raise AllocationExhaustedError(e.attempts)

    if not result.existed:
        logger.info(f"🎫 Allocated {info.role} {result.id} with ticket {result.ticket_code}")
    return result
