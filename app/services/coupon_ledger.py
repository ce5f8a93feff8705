# File: app/services/coupon_ledger.py
"""Discount coupons: read-only validation, atomic consumption and the audit log."""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.core.retry import RetryExhausted, with_retry
from app.crud.coupon import coupon as crud_coupon
from app.models.coupon import Coupon, CouponLog

logger = logging.getLogger(__name__)

# No 0/O or 1/I so codes survive being read aloud
COUPON_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DEFAULT_CODE_LENGTH = 8
MAX_BATCH = 1000


@dataclass
class CouponCheck:
    valid: bool
    code: str = ""
    discount: Optional[float] = None
    reason: Optional[str] = None


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


def reduced_price(price: float, discount: float) -> float:
    return max(0.0, round(float(price) - float(price) * float(discount) / 100, 2))


def _check_discount(discount) -> float:
    try:
        value = float(discount)
    except (TypeError, ValueError):
        raise ValidationError("Discount must be a number")
    if not 0 <= value <= 100:
        raise ValidationError("Discount must be between 0 and 100")
    return value


def write_log(
    db: Session,
    type: str,
    *,
    code: Optional[str] = None,
    discount: Optional[float] = None,
    actor: Optional[str] = None,
    count: Optional[int] = None,
) -> None:
    """Append an audit entry. Never raises; the ledger change already happened."""
    try:
        db.add(CouponLog(type=type, code=code, discount=discount, actor=actor, count=count))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"⚠️ Coupon log write failed ({type} {code}): {e}")


def validate(db: Session, code) -> CouponCheck:
    """Peek at a coupon without spending it."""
    normalized = normalize_code(code)
    if not normalized:
        return CouponCheck(valid=False, reason="Coupon code is required")

    db_coupon = crud_coupon.get_by_code(db, code=normalized)
    if db_coupon is None:
        return CouponCheck(valid=False, code=normalized, reason="Coupon not found")
    if db_coupon.used:
        return CouponCheck(valid=False, code=normalized, reason="Coupon already used")
    return CouponCheck(valid=True, code=normalized, discount=float(db_coupon.discount))


def consume(db: Session, code, consumer: Optional[str] = None) -> CouponCheck:
    """Mark the coupon used if and only if it is currently unused.

    The check and the write are one UPDATE statement, so of several
    concurrent callers exactly one sees an affected row.
    """
    normalized = normalize_code(code)
    if not normalized:
        return CouponCheck(valid=False, reason="Coupon code is required")

    stmt = (
        update(Coupon)
        .where(Coupon.code == normalized, Coupon.used.isnot(True))
        .values(used=True, used_at=datetime.now(timezone.utc), used_by=consumer)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()

    if result.rowcount != 1:
        logger.info(f"🚫 Coupon {normalized} rejected: already used or invalid")
        return CouponCheck(valid=False, code=normalized, reason="Coupon already used or invalid")

    db_coupon = crud_coupon.get_by_code(db, code=normalized)
    discount = float(db_coupon.discount)
    write_log(db, "use", code=normalized, discount=discount, actor=consumer)
    logger.info(f"🎟️ Coupon {normalized} consumed by {consumer or 'anonymous'}")
    return CouponCheck(valid=True, code=normalized, discount=discount)


def create(db: Session, code, discount, actor: Optional[str] = None) -> Coupon:
    normalized = normalize_code(code)
    if not normalized:
        raise ValidationError("Coupon code is required")
    value = _check_discount(discount)

    db_coupon = Coupon(code=normalized, discount=value, used=False)
    db.add(db_coupon)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError(f"Coupon {normalized} already exists")
    db.refresh(db_coupon)
    write_log(db, "create", code=normalized, discount=value, actor=actor)
    return db_coupon


def _random_code(length: int, prefix: str) -> str:
    body = "".join(secrets.choice(COUPON_ALPHABET) for _ in range(length))
    return f"{normalize_code(prefix)}{body}"


def generate(
    db: Session,
    count: int,
    discount,
    *,
    length: int = DEFAULT_CODE_LENGTH,
    prefix: str = "",
    actor: Optional[str] = None,
) -> List[Coupon]:
    """Create ``count`` random coupons sharing one discount."""
    if not 1 <= int(count) <= MAX_BATCH:
        raise ValidationError(f"Count must be between 1 and {MAX_BATCH}")
    if not 4 <= int(length) <= 32:
        raise ValidationError("Length must be between 4 and 32")
    value = _check_discount(discount)

    def insert_one(n: int) -> Coupon:
        db_coupon = Coupon(code=_random_code(int(length), prefix), discount=value, used=False)
        db.add(db_coupon)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise
        db.refresh(db_coupon)
        return db_coupon

    created = []
    for _ in range(int(count)):
        try:
            created.append(
                with_retry(settings.TICKET_CODE_MAX_ATTEMPTS, insert_one, lambda e: isinstance(e, IntegrityError))
            )
        except RetryExhausted as e:
            logger.error(f"❌ Coupon generation stopped after {len(created)} codes: {e.last_error}")
            break

    write_log(db, "generate", discount=value, actor=actor, count=len(created))
    logger.info(f"🎟️ Generated {len(created)} coupons at {value}%")
    return created


def _get_or_404(db: Session, coupon_id: int) -> Coupon:
    db_coupon = crud_coupon.get(db, coupon_id)
    if db_coupon is None:
        raise NotFoundError("Coupon not found")
    return db_coupon


def mark_used(db: Session, coupon_id: int, actor: Optional[str] = None) -> Coupon:
    db_coupon = _get_or_404(db, coupon_id)
    db_coupon.used = True
    db_coupon.used_at = datetime.now(timezone.utc)
    db_coupon.used_by = actor or "admin"
    db.commit()
    db.refresh(db_coupon)
    write_log(db, "mark_used", code=db_coupon.code, discount=float(db_coupon.discount), actor=actor)
    return db_coupon


def mark_unused(db: Session, coupon_id: int, actor: Optional[str] = None) -> Coupon:
    db_coupon = _get_or_404(db, coupon_id)
    db_coupon.used = False
    db_coupon.used_at = None
    db_coupon.used_by = None
    db.commit()
    db.refresh(db_coupon)
    write_log(db, "mark_unused", code=db_coupon.code, discount=float(db_coupon.discount), actor=actor)
    return db_coupon


def delete(db: Session, coupon_id: int, actor: Optional[str] = None) -> None:
    db_coupon = _get_or_404(db, coupon_id)
    code, discount = db_coupon.code, float(db_coupon.discount)
    db.delete(db_coupon)
    db.commit()
    write_log(db, "delete", code=code, discount=discount, actor=actor)
