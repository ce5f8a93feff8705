import smtplib
import ssl
import logging
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Union

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass
class MailResult:
    success: bool
    error: Optional[str] = None


class EmailService:
    def __init__(self):
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME
        self.timeout = settings.EMAIL_TIMEOUT

    def _build_message(
        self,
        to_emails: List[str],
        subject: str,
        text: Optional[str],
        html: Optional[str],
        attachments: Optional[List[MailAttachment]],
    ) -> MIMEMultipart:
        message = MIMEMultipart("mixed")
        message["Subject"] = subject
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = ", ".join(to_emails)

        body = MIMEMultipart("alternative")
        if text:
            body.attach(MIMEText(text, "plain"))
        if html:
            body.attach(MIMEText(html, "html"))
        message.attach(body)

        for attachment in attachments or []:
            subtype = attachment.content_type.split("/")[-1]
            part = MIMEApplication(attachment.content, _subtype=subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            message.attach(part)

        return message

    def send_mail(
        self,
        to: Union[str, List[str]],
        subject: str,
        text: Optional[str] = None,
        html: Optional[str] = None,
        attachments: Optional[List[MailAttachment]] = None,
    ) -> MailResult:
        """Send one message over SMTP. Failures come back as a result, never raised."""
        to_emails = [to] if isinstance(to, str) else list(to)
        if not to_emails:
            return MailResult(success=False, error="No recipient")

        if not settings.SEND_EMAILS:
            logger.info(f"📧 Email sending disabled. Would send: {subject} to {to_emails}")
            return MailResult(success=True)

        try:
            message = self._build_message(to_emails, subject, text, html, attachments)
            with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.sendmail(self.from_email, to_emails, message.as_string())

            logger.info(f"📧 Email sent successfully to {to_emails}")
            return MailResult(success=True)

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Failed to send email to {to_emails}: {e}")
            return MailResult(success=False, error=str(e))


email_service = EmailService()
