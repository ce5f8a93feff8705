# File: app/services/upgrade_service.py
"""Ticket category upgrades.

A paid upgrade is two calls: the quote call (amount > 0, no tx_id) only
creates a payment order; the confirm call (tx_id present, or a free
upgrade) spends the coupon and rewrites the ticket and registrant.
Nothing already written is rolled back when a later step fails.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    AllocationExhaustedError,
    CouponInvalidError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.core.retry import RetryExhausted, with_retry
from app.crud.ticket import ticket as crud_ticket
from app.db.indexes import ensure_indexes
from app.models.registrant import RegistrantMixin
from app.models.ticket import Ticket
from app.services import coupon_ledger
from app.services.notification_service import TicketNotifier, ticket_notifier
from app.services.payment_service import PaymentService
from app.services.roles import RoleInfo, resolve_role
from app.services.ticket_codes import generate_ticket_code, numeric_projection, style_for_role

logger = logging.getLogger(__name__)

Scheduler = Callable[..., Any]


@dataclass
class UpgradeOutcome:
    upgraded: bool
    category: str
    ticket_code: Optional[str] = None
    payment_required: bool = False
    checkout_url: Optional[str] = None
    order_id: Optional[str] = None
    amount: Optional[float] = None
    discount: Optional[float] = None


class UpgradeService:
    def __init__(self, payment_service: PaymentService, notifier: TicketNotifier = ticket_notifier):
        self.payment_service = payment_service
        self.notifier = notifier

    async def upgrade(
        self,
        db: Session,
        *,
        entity_type: str,
        entity_id: str,
        new_category: str,
        amount: float = 0,
        email: Optional[str] = None,
        tx_id: Optional[str] = None,
        coupon_code: Optional[str] = None,
        schedule: Optional[Scheduler] = None,
    ) -> UpgradeOutcome:
        # Session work runs in the executor so the event loop never waits on the database
        loop = asyncio.get_event_loop()

        # 1-2. inputs and email ownership
        info, record, category, customer = await loop.run_in_executor(
            None, self._authorize, db, entity_type, entity_id, new_category, amount, email
        )
        registrant_id = record.id

        tx_id = (tx_id or "").strip() or None
        coupon_code = coupon_ledger.normalize_code(coupon_code) or None

        # 3. quote: create a payment order, change nothing
        if amount > 0 and not tx_id:
            price = float(amount)
            discount = None
            if coupon_code:
                check = await loop.run_in_executor(None, coupon_ledger.validate, db, coupon_code)
                if not check.valid:
                    raise CouponInvalidError(check.reason or "Coupon already used or invalid")
                discount = check.discount
                price = coupon_ledger.reduced_price(price, discount)

            if price > 0:
                order = await self.payment_service.create_order(
                    amount=price,
                    reference_id=f"{info.table}:{registrant_id}",
                    description=f"{settings.EVENT_NAME} upgrade to {category}",
                    metadata={
                        "entity_type": info.table,
                        "entity_id": registrant_id,
                        "new_category": category,
                        "coupon_code": coupon_code,
                        "original_amount": float(amount),
                    },
                    customer=customer,
                )
                return UpgradeOutcome(
                    upgraded=False,
                    category=category,
                    ticket_code=record.ticket_code,
                    payment_required=True,
                    checkout_url=order.checkout_url,
                    order_id=order.order_id,
                    amount=price,
                    discount=discount,
                )
            logger.info(f"🎟️ Coupon {coupon_code} covers the full price for {info.role} {registrant_id}")

        # 4-6. coupon, ticket record, registrant sync
        ticket_code, discount = await loop.run_in_executor(
            None, self._apply, db, info, record, category, customer["email"], tx_id, coupon_code
        )

        # 7. notification
        if schedule is not None:
            schedule(self.notifier.send_ticket_email, info.table, registrant_id)

        logger.info(f"⬆️ {info.table} {registrant_id} upgraded to {category} ({ticket_code})")
        return UpgradeOutcome(
            upgraded=True,
            category=category,
            ticket_code=ticket_code,
            amount=float(amount),
            discount=discount,
        )

    def _authorize(
        self,
        db: Session,
        entity_type: str,
        entity_id: str,
        new_category: str,
        amount: float,
        email: Optional[str],
    ) -> Tuple[RoleInfo, RegistrantMixin, str, Dict[str, Any]]:
        info = resolve_role(entity_type)
        category = (new_category or "").strip()
        if not category:
            raise ValidationError("newCategory is required")
        if amount is None or amount < 0:
            raise ValidationError("amount must be zero or positive")
        record = db.get(info.model, str(entity_id))
        if record is None:
            raise NotFoundError(f"{info.role.capitalize()} not found")

        stored_email = (record.email or "").strip().lower()
        if not stored_email:
            raise ForbiddenError("No verified email on file for this registrant")
        if email and email.strip().lower() != stored_email:
            raise ForbiddenError("Email does not match the registrant")

        customer = {
            "name": record.display_name,
            "email": stored_email,
            "phone": record.mobile,
        }
        return info, record, category, customer

    def _apply(
        self,
        db: Session,
        info: RoleInfo,
        record: RegistrantMixin,
        category: str,
        consumer: str,
        tx_id: Optional[str],
        coupon_code: Optional[str],
    ) -> Tuple[str, Optional[float]]:
        discount = None
        if coupon_code:
            check = coupon_ledger.consume(db, coupon_code, consumer=consumer)
            if not check.valid:
                raise CouponInvalidError(check.reason or "Coupon already used or invalid")
            discount = check.discount

        entity_id = record.id
        try:
            db_ticket = self._upsert_ticket(db, info, record, category, tx_id, coupon_code)
        except Exception:
            if coupon_code:
                logger.error(f"❌ Upgrade of {info.table} {entity_id} failed after coupon {coupon_code} was consumed")
            raise

        ticket_code = db_ticket.ticket_code
        self._sync_registrant(db, record, db_ticket, tx_id)
        return ticket_code, discount

    def _upsert_ticket(
        self,
        db: Session,
        info: RoleInfo,
        record: RegistrantMixin,
        category: str,
        tx_id: Optional[str],
        coupon_code: Optional[str],
    ) -> Ticket:
        ensure_indexes(db, Ticket)
        entity_id = record.id
        snapshot = {"name": record.display_name, "email": record.email, "company": record.display_company}
        style = style_for_role(info.role)

        def attempt(n: int) -> Ticket:
            now = datetime.now(timezone.utc).isoformat()
            db_ticket = crud_ticket.get_by_entity(db, entity_type=info.table, entity_id=entity_id)
            if db_ticket is not None:
                db_ticket.meta = {
                    **(db_ticket.meta or {}),
                    "previous_category": db_ticket.category,
                    "upgraded_at": now,
                    "tx_id": tx_id,
                    "coupon_code": coupon_code,
                }
                db_ticket.category = category
                for key, value in snapshot.items():
                    setattr(db_ticket, key, value)
                db.commit()
                db.refresh(db_ticket)
                return db_ticket

            code = generate_ticket_code(style)
            db_ticket = Ticket(
                ticket_code=code,
                entity_type=info.table,
                entity_id=entity_id,
                category=category,
                meta={
                    "previous_category": record.ticket_category,
                    "upgraded_at": now,
                    "upgraded_from": "registration",
                    "tx_id": tx_id,
                    "coupon_code": coupon_code,
                },
                **snapshot,
            )
            db.add(db_ticket)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise
            db.refresh(db_ticket)
            return db_ticket

        try:
            return with_retry(settings.TICKET_CODE_MAX_ATTEMPTS, attempt, lambda e: isinstance(e, IntegrityError))
        except RetryExhausted as e:
            logger.error(f"❌ Ticket upsert exhausted for {info.table} {entity_id}: {e.last_error}")
            raise AllocationExhaustedError(e.attempts)

    def _sync_registrant(
        self, db: Session, record: RegistrantMixin, db_ticket: Ticket, tx_id: Optional[str]
    ) -> None:
        """Best-effort: the ticket record is already authoritative."""
        try:
            record.ticket_category = db_ticket.category
            record.ticket_code = db_ticket.ticket_code
            record.ticket_code_num = numeric_projection(db_ticket.ticket_code)
            record.upgraded_at = datetime.now(timezone.utc)
            if tx_id:
                record.tx_id = tx_id
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"❌ Registrant {db_ticket.entity_type} {db_ticket.entity_id} out of sync with ticket "
                f"{db_ticket.ticket_code}: {e}"
            )
