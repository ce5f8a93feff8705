from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.email_service import EmailService, MailAttachment, MailResult, email_service
from app.core.errors import DomainError
from app.crud.registrant import registrants
from app.db.database import SessionLocal
from app.models.registrant import RegistrantMixin
from app.services.badge_generation import render_badge
from app.services.field_normalization import extract_email, normalize_and_filter
from app.services.roles import RoleInfo, resolve_role

logger = logging.getLogger(__name__)

ROLE_SUBJECTS = {
    "visitor": "Your Visitor E-Badge",
    "exhibitor": "Your Exhibitor Pass",
    "partner": "Your Partner Badge",
    "speaker": "Speaker Confirmation & Badge",
    "awardee": "Awardee Registration Confirmation",
}


def _ticket_email_html(record: RegistrantMixin, info: RoleInfo) -> str:
    name = record.display_name or "there"
    return f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="utf-8"><title>{settings.EVENT_NAME}</title></head>
    <body style="font-family: Arial, sans-serif; background-color: #f5f5f5; padding: 20px;">
        <div style="max-width: 600px; margin: 0 auto; background: white; padding: 30px; border-radius: 10px;">
            <h2 style="color: #1f2937;">{ROLE_SUBJECTS.get(info.role, 'Your Ticket')}</h2>
            <p>Hello {name},</p>
            <p>Thank you for registering as a {info.role} for <strong>{settings.EVENT_NAME}</strong>.</p>
            <p>Your ticket code is <strong style="font-size: 18px;">{record.ticket_code}</strong>
               ({record.ticket_category or info.role}).</p>
            <p>Your badge is attached. Please keep the QR code handy at the entrance.</p>
            <p style="margin-top: 30px;">
                <a href="{settings.frontend_url}" style="background-color: #2563eb; color: white;
                   padding: 12px 24px; text-decoration: none; border-radius: 6px;">Visit event site</a>
            </p>
            <p style="color: #6b7280; font-size: 13px; margin-top: 30px;">{settings.EVENT_TAGLINE}</p>
        </div>
    </body>
    </html>
    """


def _ticket_email_text(record: RegistrantMixin, info: RoleInfo) -> str:
    return (
        f"Hello {record.display_name or 'there'},\n\n"
        f"Thank you for registering as a {info.role} for {settings.EVENT_NAME}.\n"
        f"Your ticket code is {record.ticket_code} ({record.ticket_category or info.role}).\n"
        f"Your badge is attached.\n\n{settings.EVENT_TAGLINE}\n"
    )


def _status_email(record: RegistrantMixin, info: RoleInfo, status: str) -> Tuple[str, str, str]:
    name = record.display_name or "there"
    subject = f"Your {info.role} registration has been {status} - {settings.EVENT_NAME}"
    if status == "approved":
        follow_up = "Our team will contact you with next steps."
    else:
        follow_up = "If you believe this is an error, please reply to this email."
    text = (
        f"Hello {name},\n\n"
        f"Your {info.role} registration (ID: {record.id}) has been {status}. {follow_up}\n\n"
        f"Regards,\n{settings.FROM_NAME}\n"
    )
    html = (
        f"<p>Hello {name},</p>"
        f"<p>Your {info.role} registration (ID: <strong>{record.id}</strong>) has been "
        f"<strong>{status}</strong>. {follow_up}</p>"
    )
    return subject, text, html


def _acknowledgement_email(name: str, company: str, info: RoleInfo) -> Tuple[str, str, str]:
    who = name or company or "there"
    subject = f"Thank you for registering as a {info.role} - {settings.EVENT_NAME}"
    text = (
        f"Hello {who},\n\n"
        f"Thank you for your interest in {settings.EVENT_NAME}. "
        f"We have received your {info.role} registration and will be in touch shortly.\n\n"
        f"Regards,\n{settings.FROM_NAME}\n"
    )
    html = (
        f"<p>Hello {who},</p><p>Thank you for your interest in <strong>{settings.EVENT_NAME}</strong>. "
        f"We have received your {info.role} registration and will be in touch shortly.</p>"
    )
    return subject, text, html


def _reminder_email(record: RegistrantMixin) -> Tuple[str, str, str]:
    who = record.display_name or record.display_company or "Participant"
    subject = f"Reminder: {settings.EVENT_NAME}"
    text = (
        f"Hello {who},\n\n"
        f"This is a reminder about {settings.EVENT_NAME}. We will be in touch with further details soon.\n\n"
        f"Regards,\n{settings.FROM_NAME}\n"
    )
    html = (
        f"<p>Hello {who},</p><p>This is a reminder about <strong>{settings.EVENT_NAME}</strong>. "
        f"We will be in touch with further details soon.</p>"
    )
    return subject, text, html


class TicketNotifier:
    """Mail to registrants and admins. Ticket mail records its outcome on the registrant."""

    def __init__(
        self,
        mailer: Optional[EmailService] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.mailer = mailer or email_service
        self.session_factory = session_factory

    def send_ticket_email(self, entity_type: str, entity_id: str) -> MailResult:
        """Background entry point. Opens its own session and never raises."""
        db = self.session_factory()
        try:
            info = resolve_role(entity_type)
            record = db.get(info.model, entity_id)
            if record is None:
                logger.warning(f"⚠️ Ticket email skipped, {entity_type} {entity_id} not found")
                return MailResult(success=False, error="Registrant not found")
            return self.deliver(db, info, record)
        except Exception as e:
            logger.error(f"❌ Ticket email for {entity_type} {entity_id} failed: {e}")
            return MailResult(success=False, error=str(e))
        finally:
            db.close()

    def deliver(self, db: Session, info: RoleInfo, record: RegistrantMixin) -> MailResult:
        if not record.email:
            result = MailResult(success=False, error="No email on file")
        else:
            try:
                pdf = render_badge(info.table, record, mode="email")
                result = self.mailer.send_mail(
                    to=record.email,
                    subject=f"{ROLE_SUBJECTS.get(info.role, 'Your Ticket')} - {settings.EVENT_NAME}",
                    text=_ticket_email_text(record, info),
                    html=_ticket_email_html(record, info),
                    attachments=[MailAttachment(f"badge-{record.ticket_code}.pdf", pdf)],
                )
            except DomainError as e:
                result = MailResult(success=False, error=e.message)
            except Exception as e:
                logger.error(f"❌ Badge or mail step crashed for {record.role} {record.id}: {e}")
                result = MailResult(success=False, error=str(e))

        self._record_status(db, record, result)
        return result

    def _record_status(self, db: Session, record: RegistrantMixin, result: MailResult) -> None:
        now = datetime.now(timezone.utc)
        if result.success:
            record.email_sent_at = now
            record.email_failed = False
            record.email_failed_at = None
            logger.info(f"📧 Email sent for {record.role} {record.id}")
        else:
            record.email_failed = True
            record.email_failed_at = now
            logger.warning(f"⚠️ Email failed for {record.role} {record.id}: {result.error}")
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Could not record delivery status for {record.id}: {e}")

    def _send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> MailResult:
        try:
            return self.mailer.send_mail(to=to, subject=subject, text=text, html=html)
        except Exception as e:
            logger.error(f"❌ Mail to {to} crashed: {e}")
            return MailResult(success=False, error=str(e))

    def send_status_email(self, entity_type: str, entity_id: str, status: str) -> MailResult:
        """Background entry point for approve/cancel mail. No badge attached, never raises."""
        db = self.session_factory()
        try:
            info = resolve_role(entity_type)
            record = db.get(info.model, entity_id)
            if record is None or not record.email:
                logger.warning(f"⚠️ Status email skipped for {entity_type} {entity_id}: no recipient")
                return MailResult(success=False, error="No email on file")
            subject, text, html = _status_email(record, info, status)
            result = self._send(record.email, subject, text, html)
            if result.success:
                logger.info(f"📧 {status.capitalize()} email sent for {info.role} {record.id}")
            else:
                logger.warning(f"⚠️ {status.capitalize()} email failed for {info.role} {record.id}: {result.error}")
            return result
        except Exception as e:
            logger.error(f"❌ Status email for {entity_type} {entity_id} failed: {e}")
            return MailResult(success=False, error=str(e))
        finally:
            db.close()

    def notify_admins(self, subject: str, text: str, html: Optional[str] = None) -> List[Dict[str, Any]]:
        """Copy every configured admin address. Failures are reported, not raised."""
        results = []
        for address in settings.admin_emails:
            result = self._send(address, subject, text, html)
            results.append({"to": address, "success": result.success, "error": result.error})
        if results:
            logger.info(f"📨 Admin notice '{subject}' sent to {sum(r['success'] for r in results)}/{len(results)}")
        return results

    def send_acknowledgement(
        self,
        db: Session,
        info: RoleInfo,
        record: Optional[RegistrantMixin] = None,
        form: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Optional[str], MailResult]:
        """Thank-you mail to a stored registrant, or to the address in an unsaved form."""
        if record is not None:
            to, name, company = record.email, record.display_name, record.display_company
        else:
            data = normalize_and_filter(form or {})
            to = extract_email(data)
            name = data.get("name") or data.get("full_name") or ""
            company = data.get("company") or data.get("organization") or ""

        if not to:
            return None, MailResult(success=False, error="No valid email address")

        subject, text, html = _acknowledgement_email(name, company, info)
        result = self._send(to, subject, text, html)
        if record is not None and result.success:
            self._record_status(db, record, result)
        return to, result

    def send_reminders(self, db: Session, info: RoleInfo) -> Tuple[int, int]:
        """Reminder to every registrant of the role with an email. Returns (sent, failed)."""
        sent = failed = 0
        for record in registrants[info.role].get_with_email(db):
            subject, text, html = _reminder_email(record)
            if self._send(record.email, subject, text, html).success:
                sent += 1
            else:
                failed += 1
                logger.warning(f"⚠️ Reminder failed for {info.role} {record.id}")
        logger.info(f"📨 {info.role} reminders: {sent} sent, {failed} failed")
        return sent, failed


ticket_notifier = TicketNotifier()
