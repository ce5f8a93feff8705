from app.core.email_service import MailResult
from app.db.database import SessionLocal
from app.models.registrant import Exhibitor, Speaker, Visitor
from app.services.notification_service import TicketNotifier


class FakeMailer:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send_mail(self, to, subject, text=None, html=None, attachments=None):
        if self.fail:
            return MailResult(success=False, error="SMTP connection refused")
        self.sent.append({"to": to, "subject": subject, "text": text, "attachments": attachments or []})
        return MailResult(success=True)


def test_send_ticket_email_records_success(db, make_registrant):
    mailer = FakeMailer()
    notifier = TicketNotifier(mailer=mailer, session_factory=SessionLocal)
    result = make_registrant("exhibitor", email="booth@x.com", company="Acme Rail")

    outcome = notifier.send_ticket_email("exhibitors", result.id)

    assert outcome.success is True
    assert len(mailer.sent) == 1
    mail = mailer.sent[0]
    assert mail["to"] == "booth@x.com"
    assert "Exhibitor Pass" in mail["subject"]
    assert result.ticket_code in mail["text"]
    attachment = mail["attachments"][0]
    assert attachment.filename == f"badge-{result.ticket_code}.pdf"
    assert attachment.content.startswith(b"%PDF")

    db.expire_all()
    record = db.get(Exhibitor, result.id)
    assert record.email_sent_at is not None
    assert record.email_failed is False


def test_send_ticket_email_records_failure(db, make_registrant):
    notifier = TicketNotifier(mailer=FakeMailer(fail=True), session_factory=SessionLocal)
    result = make_registrant("visitor", email="v@x.com")

    outcome = notifier.send_ticket_email("visitors", result.id)

    assert outcome.success is False
    db.expire_all()
    record = db.get(Visitor, result.id)
    assert record.email_failed is True
    assert record.email_failed_at is not None
    assert record.email_sent_at is None


def test_send_ticket_email_without_address(db, make_registrant):
    mailer = FakeMailer()
    notifier = TicketNotifier(mailer=mailer, session_factory=SessionLocal)
    result = make_registrant("visitor", name="Walk-in")

    outcome = notifier.send_ticket_email("visitors", result.id)

    assert outcome.success is False
    assert mailer.sent == []
    db.expire_all()
    assert db.get(Visitor, result.id).email_failed is True


def test_send_ticket_email_never_raises():
    notifier = TicketNotifier(mailer=FakeMailer(), session_factory=SessionLocal)

    missing = notifier.send_ticket_email("visitors", "does-not-exist")
    unknown = notifier.send_ticket_email("sponsors", "whatever")

    assert missing.success is False
    assert unknown.success is False


def test_success_clears_previous_failure(db, make_registrant):
    result = make_registrant("visitor", email="retry@x.com")
    TicketNotifier(mailer=FakeMailer(fail=True)).send_ticket_email("visitors", result.id)

    TicketNotifier(mailer=FakeMailer()).send_ticket_email("visitors", result.id)

    db.expire_all()
    record = db.get(Visitor, result.id)
    assert record.email_failed is False
    assert record.email_failed_at is None
    assert record.email_sent_at is not None


def test_badge_crash_is_recorded_as_failure(db, make_registrant, monkeypatch):
    def broken_badge(*args, **kwargs):
        raise RuntimeError("qr overflow")

    monkeypatch.setattr("app.services.notification_service.render_badge", broken_badge)
    mailer = FakeMailer()
    result = make_registrant("visitor", email="crash@x.com")

    outcome = TicketNotifier(mailer=mailer, session_factory=SessionLocal).send_ticket_email("visitors", result.id)

    assert outcome.success is False
    assert "qr overflow" in outcome.error
    assert mailer.sent == []
    db.expire_all()
    record = db.get(Visitor, result.id)
    assert record.email_failed is True
    assert record.email_failed_at is not None


def test_mailer_crash_is_recorded_as_failure(db, make_registrant):
    class ExplodingMailer(FakeMailer):
        def send_mail(self, *args, **kwargs):
            raise OSError("socket closed")

    result = make_registrant("speaker", email="talk@x.com")

    outcome = TicketNotifier(mailer=ExplodingMailer()).send_ticket_email("speakers", result.id)

    assert outcome.success is False
    db.expire_all()
    assert db.get(Speaker, result.id).email_failed is True
