import os
import tempfile

# Configure the app before anything imports it
_db_dir = tempfile.mkdtemp(prefix="expo-registration-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["SEND_EMAILS"] = "false"
os.environ["AUTO_SEND_TICKET_EMAILS"] = "false"
os.environ["REQUIRE_OTP_FOR_REGISTRATION"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.core.email_service import MailResult, email_service
from app.core.errors import PaymentOrderError
from app.core.otp_store import OtpStore
from app.db.database import Base, SessionLocal, engine, init_db
from app.main import app
from app.services.identity_allocator import allocate
from app.services.payment_service import PaymentOrder, get_payment_service


class FakePaymentService:
    """Records orders instead of calling the payment service."""

    def __init__(self):
        self.orders = []
        self.fail = False

    async def create_order(self, **kwargs):
        if self.fail:
            raise PaymentOrderError("Payment service unavailable")
        self.orders.append(kwargs)
        n = len(self.orders)
        return PaymentOrder(checkout_url=f"https://pay.example.test/checkout/{n}", order_id=f"order_{n}")


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session", autouse=True)
def _schema():
    init_db()
    yield
    engine.dispose()


@pytest.fixture(autouse=True)
def _clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def payments():
    return FakePaymentService()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def otp(clock):
    return OtpStore(ttl_seconds=300, cooldown_seconds=60, max_attempts=5, verified_ttl_seconds=900, clock=clock)


@pytest.fixture
def outbox(monkeypatch):
    """Capture outgoing mail; set ``outbox.fail`` to simulate SMTP errors."""

    class Outbox(list):
        fail = False

    sent = Outbox()

    def fake_send_mail(to, subject, text=None, html=None, attachments=None):
        if sent.fail:
            return MailResult(success=False, error="SMTP connection refused")
        sent.append({"to": to, "subject": subject, "text": text, "html": html, "attachments": attachments or []})
        return MailResult(success=True)

    monkeypatch.setattr(email_service, "send_mail", fake_send_mail)
    return sent


@pytest.fixture
def client(payments, otp):
    app.dependency_overrides[get_payment_service] = lambda: payments
    app.dependency_overrides[deps.get_otp_store] = lambda: otp
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_registrant(db):
    def _make(role="visitor", **form):
        return allocate(db, role, form)

    return _make
