# File: app/api/deps.py
from fastapi import Depends

from app.core.otp_store import OtpStore, otp_store
from app.db.database import get_db  # noqa: F401
from app.services.notification_service import TicketNotifier, ticket_notifier
from app.services.payment_service import PaymentService, get_payment_service
from app.services.upgrade_service import UpgradeService


def get_otp_store() -> OtpStore:
    return otp_store


def get_notifier() -> TicketNotifier:
    return ticket_notifier


def get_upgrade_service(
    payment_service: PaymentService = Depends(get_payment_service),
    notifier: TicketNotifier = Depends(get_notifier),
) -> UpgradeService:
    return UpgradeService(payment_service=payment_service, notifier=notifier)
